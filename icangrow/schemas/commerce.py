"""
Request/response models for suppliers, purchase orders, clients and
dispatches.
"""

import uuid
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from icangrow.lifecycle import ClientStatus, Priority
from icangrow.schemas.common import RequestModel


# ══════════════════════════════════════════════════════════════════════════
# Suppliers
# ══════════════════════════════════════════════════════════════════════════


class SupplierCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None
    supplier_type: str = Field(min_length=1, max_length=50)
    license_number: Optional[str] = Field(default=None, max_length=100)
    materials_supplied: Optional[List[str]] = None
    payment_terms: Optional[str] = Field(default=None, max_length=100)
    certification_expiry: Optional[date] = None
    quality_rating: Optional[float] = Field(default=None, ge=0, le=5)
    delivery_rating: Optional[float] = Field(default=None, ge=0, le=5)
    notes: Optional[str] = None


class SupplierUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    contact_person: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None
    supplier_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    license_number: Optional[str] = Field(default=None, max_length=100)
    materials_supplied: Optional[List[str]] = None
    payment_terms: Optional[str] = Field(default=None, max_length=100)
    status: Optional[str] = Field(default=None, max_length=20)
    certification_expiry: Optional[date] = None
    quality_rating: Optional[float] = Field(default=None, ge=0, le=5)
    delivery_rating: Optional[float] = Field(default=None, ge=0, le=5)
    notes: Optional[str] = None


class SupplierApprove(RequestModel):
    status: Literal["approved", "rejected"]


class SupplierResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    contact_person: Optional[str] = None
    address: Optional[str] = None
    supplier_type: str
    license_number: Optional[str] = None
    materials_supplied: Optional[List[str]] = None
    payment_terms: Optional[str] = None
    status: str
    approval_status: str
    approved_by: Optional[uuid.UUID] = None
    approval_date: Optional[date] = None
    certification_expiry: Optional[date] = None
    quality_rating: Optional[float] = None
    delivery_rating: Optional[float] = None
    notes: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SupplierSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


# ══════════════════════════════════════════════════════════════════════════
# Purchase Orders
# ══════════════════════════════════════════════════════════════════════════


class PurchaseOrderItemCreate(RequestModel):
    product_name: str = Field(min_length=1, max_length=200)
    qty: float = Field(gt=0)
    price_per_unit: float = Field(default=0, ge=0)


class PurchaseOrderCreate(RequestModel):
    supplier_id: uuid.UUID
    priority: Priority = Priority.MEDIUM
    expected_delivery_date: Optional[date] = None
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    payment_terms: Optional[str] = Field(default=None, max_length=100)
    vat_percentage: float = Field(default=0, ge=0, le=100)
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(min_length=1)


class PurchaseOrderUpdate(RequestModel):
    """Status moves go through /approve and /deliver; cancellation through here."""

    priority: Optional[Priority] = None
    expected_delivery_date: Optional[date] = None
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    payment_terms: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None
    status: Optional[Literal["cancelled"]] = None


class PurchaseOrderItemResponse(BaseModel):
    id: uuid.UUID
    po_id: uuid.UUID
    product_name: str
    qty: float
    price_per_unit: float
    total_price: float
    received_qty: Optional[float] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class PurchaseOrderResponse(BaseModel):
    id: uuid.UUID
    po_number: str
    supplier_id: Optional[uuid.UUID] = None
    status: str
    priority: str
    expected_delivery_date: Optional[date] = None
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    payment_terms: Optional[str] = None
    subtotal: float
    vat_percentage: float
    vat_amount: float
    total_amount: float
    notes: Optional[str] = None
    approved_by: Optional[uuid.UUID] = None
    approval_date: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    supplier: Optional[SupplierSummary] = None
    items: List[PurchaseOrderItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


# ══════════════════════════════════════════════════════════════════════════
# Clients
# ══════════════════════════════════════════════════════════════════════════


class ClientCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    company: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    client_type: str = Field(min_length=1, max_length=50)
    license_number: Optional[str] = Field(default=None, max_length=100)
    status: ClientStatus = ClientStatus.ACTIVE
    notes: Optional[str] = None


class ClientUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    company: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    client_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    license_number: Optional[str] = Field(default=None, max_length=100)
    status: Optional[ClientStatus] = None
    notes: Optional[str] = None


class ClientResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    company: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    client_type: str
    license_number: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientSummary(BaseModel):
    id: uuid.UUID
    name: str
    company: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)


# ══════════════════════════════════════════════════════════════════════════
# Dispatches
# ══════════════════════════════════════════════════════════════════════════


class DispatchItemCreate(RequestModel):
    lot_id: uuid.UUID
    quantity: float = Field(gt=0)


class DispatchCreate(RequestModel):
    client_id: uuid.UUID
    origin_facility: str = Field(min_length=1, max_length=100)
    carrier: Optional[str] = Field(default=None, max_length=100)
    driver_name: Optional[str] = Field(default=None, max_length=100)
    license_plate: Optional[str] = Field(default=None, max_length=20)
    vehicle_info: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = None
    items: List[DispatchItemCreate] = Field(min_length=1)


class LotSummary(BaseModel):
    id: uuid.UUID
    lot_code: str
    product_name: str
    strain: str
    status: str
    coa_approved: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)


class DispatchItemResponse(BaseModel):
    id: uuid.UUID
    dispatch_id: uuid.UUID
    lot_id: uuid.UUID
    quantity: float
    unit_of_measure: str
    available_at_selection: Optional[float] = None
    lot: Optional[LotSummary] = None

    model_config = ConfigDict(from_attributes=True)


class DispatchResponse(BaseModel):
    id: uuid.UUID
    dispatch_number: str
    client_id: uuid.UUID
    status: str
    origin_facility: str
    carrier: Optional[str] = None
    driver_name: Optional[str] = None
    license_plate: Optional[str] = None
    vehicle_info: Optional[str] = None
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientSummary] = None
    items: List[DispatchItemResponse] = []

    model_config = ConfigDict(from_attributes=True)

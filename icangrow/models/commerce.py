"""
iCanGrow API — Suppliers, Purchasing, Clients & Dispatch Models
=================================================================

    Supplier 1 ── * PurchaseOrder 1 ── * PurchaseOrderItem
    Client   1 ── * Dispatch      1 ── * DispatchItem * ── 1 InventoryLot
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from icangrow.database import Base
from icangrow.lifecycle import (
    ClientStatus,
    DispatchStatus,
    Priority,
    PurchaseOrderStatus,
    SupplierApprovalStatus,
)
from icangrow.models.inventory import InventoryLot
from icangrow.models.mixins import CreatedAt, Timestamps, UUIDPrimaryKey


class Supplier(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    supplier_type: Mapped[str] = mapped_column(String(50), nullable=False)
    license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    materials_supplied: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SupplierApprovalStatus.PENDING.value
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approval_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    certification_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    quality_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delivery_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)


class PurchaseOrderItem(UUIDPrimaryKey, CreatedAt, Base):
    __tablename__ = "purchase_order_items"

    po_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    qty: Mapped[float] = mapped_column(Float, nullable=False)
    price_per_unit: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    received_qty: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")


class PurchaseOrder(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("suppliers.id"), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PurchaseOrderStatus.PENDING.value
    )
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM.value)
    expected_delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    vat_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    vat_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    fulfilled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)

    supplier: Mapped[Optional[Supplier]] = relationship(lazy="selectin")
    items: Mapped[List[PurchaseOrderItem]] = relationship(
        lazy="selectin", order_by=PurchaseOrderItem.created_at
    )


class Client(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    company: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    client_type: Mapped[str] = mapped_column(String(50), nullable=False)
    license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ClientStatus.ACTIVE.value)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)


class DispatchItem(UUIDPrimaryKey, CreatedAt, Base):
    __tablename__ = "dispatch_items"

    dispatch_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("dispatches.id"), nullable=False, index=True)
    lot_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("inventory_lots.id"), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False, default="units")
    available_at_selection: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    lot: Mapped[Optional[InventoryLot]] = relationship(lazy="selectin")


class Dispatch(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "dispatches"

    dispatch_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("clients.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=DispatchStatus.DRAFT.value)
    origin_facility: Mapped[str] = mapped_column(String(100), nullable=False)
    carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    driver_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    license_plate: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    vehicle_info: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)

    client: Mapped[Optional[Client]] = relationship(lazy="selectin")
    items: Mapped[List[DispatchItem]] = relationship(
        lazy="selectin", order_by=DispatchItem.created_at
    )

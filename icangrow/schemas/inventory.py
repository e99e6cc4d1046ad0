"""Request/response models for /api/v1/inventory."""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from icangrow.schemas.common import RequestModel


class StockAdjust(RequestModel):
    """Signed delta applied to the lot's available quantity (floored at 0)."""

    quantity: float = Field(description="Positive to add stock, negative to remove")
    reason: str = Field(min_length=1, max_length=500)
    unit_of_measure: Optional[str] = Field(default=None, max_length=20)


class QuarantineToggle(RequestModel):
    action: Literal["quarantine", "release"]
    reason: Optional[str] = Field(default=None, max_length=500)


class StockLevelResponse(BaseModel):
    facility: str
    available_quantity: float
    reserved_quantity: float

    model_config = ConfigDict(from_attributes=True)


class InventoryLotResponse(BaseModel):
    id: uuid.UUID
    lot_code: str
    product_name: str
    product_type: str
    strain: str
    batch_id: Optional[uuid.UUID] = None
    facility: str
    stage: str
    status: str
    quantity: float
    unit_of_measure: str
    coa_approved: Optional[bool] = None
    expiry_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    stock_level: Optional[StockLevelResponse] = None

    model_config = ConfigDict(from_attributes=True)


class StockMovementResponse(BaseModel):
    id: uuid.UUID
    lot_id: uuid.UUID
    movement_type: str
    quantity: float
    unit_of_measure: str
    from_facility: Optional[str] = None
    to_facility: Optional[str] = None
    reason: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[uuid.UUID] = None
    performed_by: uuid.UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockAdjustResult(BaseModel):
    lot_id: uuid.UUID
    previous_quantity: float
    adjustment: float
    new_quantity: float


class QuarantineResult(BaseModel):
    lot_id: uuid.UUID
    old_status: str
    new_status: str


class InventoryStats(BaseModel):
    total_lots: int
    dispatch_ready: int
    quarantined: int
    expired: int

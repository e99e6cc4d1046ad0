"""
Request/response models for the production record endpoints under
/api/v1/erp: daily logs, packaging runs, finished goods, waste and the
batch review sign-off.

`datetime` is imported as a module here because DailyLog has a field
called `date`.
"""

import datetime as dt
import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from icangrow.lifecycle import GrowthStage
from icangrow.schemas.common import RequestModel


# ── Daily logs ────────────────────────────────────────────────────────────

class DailyLogUpdate(RequestModel):
    """Every field of a daily log except its batch."""

    date: Optional[dt.date] = None
    stage: Optional[GrowthStage] = None
    stage_id: Optional[uuid.UUID] = None
    plant_count: Optional[int] = Field(default=None, gt=0)
    previous_plant_count: Optional[int] = Field(default=None, gt=0)
    plant_variance: Optional[float] = None
    plant_variance_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    temperature: Optional[float] = None
    humidity: Optional[float] = Field(default=None, ge=0, le=100)
    ph_level: Optional[float] = Field(default=None, ge=0, le=14)
    co2_level: Optional[float] = None
    observations: Optional[str] = Field(default=None, max_length=2000)
    actions: Optional[str] = Field(default=None, max_length=2000)
    actions_taken: Optional[str] = Field(default=None, max_length=2000)
    issues: Optional[str] = Field(default=None, max_length=2000)
    issues_raised: Optional[str] = Field(default=None, max_length=2000)
    activity_types: Optional[List[str]] = None
    photos: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class DailyLogCreate(DailyLogUpdate):
    batch_id: uuid.UUID
    date: dt.date
    stage: GrowthStage


class DailyLogResponse(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    date: dt.date
    stage: str
    stage_id: Optional[uuid.UUID] = None
    plant_count: Optional[int] = None
    previous_plant_count: Optional[int] = None
    plant_variance: Optional[float] = None
    plant_variance_percentage: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    ph_level: Optional[float] = None
    co2_level: Optional[float] = None
    observations: Optional[str] = None
    actions: Optional[str] = None
    actions_taken: Optional[str] = None
    issues: Optional[str] = None
    issues_raised: Optional[str] = None
    activity_types: Optional[List[str]] = None
    photos: Optional[List[str]] = None
    notes: Optional[str] = None
    logged_by: uuid.UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


# ── Packaging runs ────────────────────────────────────────────────────────

class PackagingRunCreate(RequestModel):
    batch_id: uuid.UUID
    coa_id: Optional[uuid.UUID] = None
    moisture_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    visual_inspection_pass: bool
    packaging_integrity: bool
    status: str = Field(default="pending", min_length=1, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=1000)
    attachments: Optional[List[str]] = None


class PackagingRunResponse(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    coa_id: Optional[uuid.UUID] = None
    moisture_percentage: Optional[float] = None
    visual_inspection_pass: bool
    packaging_integrity: bool
    status: str
    notes: Optional[str] = None
    attachments: Optional[List[str]] = None
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[dt.datetime] = None
    created_by: uuid.UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


# ── Finished goods ────────────────────────────────────────────────────────

class FinishedGoodUpdate(RequestModel):
    quantity_available: Optional[int] = Field(default=None, ge=0)
    quantity_reserved: Optional[int] = Field(default=None, ge=0)
    price_per_gram: Optional[float] = Field(default=None, gt=0)
    cost_per_gram: Optional[float] = Field(default=None, gt=0)
    production_cost: Optional[float] = Field(default=None, gt=0)
    total_cost: Optional[float] = Field(default=None, gt=0)
    qa_status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    quarantine_status: Optional[str] = Field(default=None, max_length=50)
    storage_location: Optional[str] = Field(default=None, max_length=100)
    package_date: Optional[dt.datetime] = None
    expiry_date: Optional[dt.datetime] = None
    thc_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    cbd_percentage: Optional[float] = Field(default=None, ge=0, le=100)


class FinishedGoodCreate(FinishedGoodUpdate):
    product_name: str = Field(min_length=1, max_length=200)
    strain: str = Field(min_length=1, max_length=100)
    batch_id: Optional[uuid.UUID] = None
    coa_id: Optional[uuid.UUID] = None
    unit_type: str = Field(default="grams", min_length=1, max_length=20)
    quantity_available: int = Field(default=0, ge=0)
    quantity_reserved: int = Field(default=0, ge=0)
    qa_status: str = Field(default="pending", min_length=1, max_length=50)


class FinishedGoodResponse(BaseModel):
    id: uuid.UUID
    batch_id: Optional[uuid.UUID] = None
    coa_id: Optional[uuid.UUID] = None
    product_name: str
    strain: str
    unit_type: str
    quantity_available: int
    quantity_reserved: int
    price_per_gram: Optional[float] = None
    cost_per_gram: Optional[float] = None
    production_cost: Optional[float] = None
    total_cost: Optional[float] = None
    qa_status: str
    quarantine_status: Optional[str] = None
    storage_location: Optional[str] = None
    package_date: Optional[dt.datetime] = None
    expiry_date: Optional[dt.datetime] = None
    thc_percentage: Optional[float] = None
    cbd_percentage: Optional[float] = None
    created_by: uuid.UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


# ── Waste ─────────────────────────────────────────────────────────────────

class WasteRecordCreate(RequestModel):
    batch_id: uuid.UUID
    waste_type: str = Field(min_length=1, max_length=100)
    quantity: float = Field(gt=0)
    unit: str = Field(min_length=1, max_length=20)
    reason: str = Field(min_length=1, max_length=500)
    disposal_method: str = Field(min_length=1, max_length=100)
    disposal_date: dt.datetime
    notes: Optional[str] = Field(default=None, max_length=1000)
    photos: Optional[List[str]] = None


class WasteRecordResponse(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    waste_type: str
    quantity: float
    unit: str
    reason: str
    disposal_method: str
    disposal_date: dt.datetime
    notes: Optional[str] = None
    photos: Optional[List[str]] = None
    created_by: uuid.UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


# ── Batch review ──────────────────────────────────────────────────────────

class BatchReviewRequest(RequestModel):
    pass_fail_status: Literal["pass", "fail", "conditional"]
    review_notes: Optional[str] = Field(default=None, max_length=2000)
    rejection_reason: Optional[str] = Field(default=None, max_length=500)
    requires_reprocessing: Optional[bool] = None

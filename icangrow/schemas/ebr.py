"""
iCanGrow API — eBR Schemas
============================

What:  Request/response models for /api/v1/qms/ebr and /api/v1/ops.
Why:   The disposition endpoints are where QA signs off a batch. Validation
       that belongs to the request shape (non-empty rejection reason, known
       checklist category) happens here, before EbrService runs.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from icangrow.lifecycle import ChecklistCategory
from icangrow.schemas.common import ProfileSummary, RequestModel
from icangrow.schemas.cultivation import BatchSummary


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class EbrCreate(RequestModel):
    batch_id: uuid.UUID


class ChecklistItemCreate(RequestModel):
    checklist_item: str = Field(min_length=1, description="What the reviewer checked")
    item_category: ChecklistCategory
    is_compliant: Optional[bool] = None
    comments: Optional[str] = None
    evidence_urls: List[str] = []


class ChecklistItemUpdate(RequestModel):
    is_compliant: Optional[bool] = None
    comments: Optional[str] = None
    evidence_urls: Optional[List[str]] = None
    reviewed_at: Optional[datetime] = None


class ApproveRequest(RequestModel):
    approval_reason: Optional[str] = Field(default=None, max_length=2000)


class RejectRequest(RequestModel):
    """
    Whitespace is stripped before the length check, so "   " is rejected
    with a 400 before the service is called.
    """

    rejection_reason: str = Field(min_length=1, max_length=2000)
    requires_reprocessing: bool = False


class ReopenRequest(RequestModel):
    reason: str = Field(min_length=1, max_length=2000)


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class EbrRecordResponse(BaseModel):
    id: uuid.UUID
    ebr_number: str
    batch_id: uuid.UUID
    batch_name: str
    strain: str
    current_stage: str
    start_date: date
    total_plant_count: Optional[int] = None

    compliance_status: str
    pass_fail_status: str
    compliance_score: Optional[float] = None

    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    requires_reprocessing: Optional[bool] = None

    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    packaging_complete: Optional[bool] = None
    stage_reviews_complete: Optional[bool] = None
    waste_recorded: Optional[bool] = None
    daily_logs_count: Optional[int] = None
    critical_deviations_count: Optional[int] = None
    environmental_alerts_count: Optional[int] = None
    failed_hygiene_checks_count: Optional[int] = None
    final_weight: Optional[float] = None
    completion_date: Optional[date] = None

    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    batch: Optional[BatchSummary] = None
    created_by_profile: Optional[ProfileSummary] = None
    approved_by_profile: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class ChecklistItemResponse(BaseModel):
    id: uuid.UUID
    ebr_id: uuid.UUID
    checklist_item: str
    item_category: str
    is_compliant: Optional[bool] = None
    comments: Optional[str] = None
    evidence_urls: Optional[List[str]] = None
    reviewer_id: uuid.UUID
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EbrDetails(BaseModel):
    ebr_record: EbrRecordResponse
    checklist: List[ChecklistItemResponse]


class EbrStatistics(BaseModel):
    total_records: int
    pass_count: int
    fail_count: int
    conditional_count: int
    compliance_rate: float = Field(description="pass_count / total_records × 100, 2 dp")
    average_compliance_score: float = Field(description="Mean of non-null scores, 2 dp")


class EbrDebugRow(BaseModel):
    id: uuid.UUID
    ebr_number: str
    batch_name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

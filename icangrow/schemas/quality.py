"""
Request/response models for the QMS record endpoints under /api/v1/qms:
deviations, CAPAs, SOPs, training records, environmental readings and the
general QMS record register.
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from icangrow.lifecycle import (
    CapaActionType,
    CapaStatus,
    DeviationStatus,
    EnvironmentalStatus,
    Priority,
    QmsRecordStatus,
    QmsRecordType,
    Severity,
    SopStatus,
    TrainingStatus,
)
from icangrow.schemas.common import RequestModel


# ── Deviations ────────────────────────────────────────────────────────────

class DeviationCreate(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    batch_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    severity: Severity = Severity.MEDIUM
    status: DeviationStatus = DeviationStatus.OPEN
    occurred_at: Optional[datetime] = None
    assignee: Optional[uuid.UUID] = None
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None
    auto_generated: bool = False


class DeviationUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    batch_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    severity: Optional[Severity] = None
    status: Optional[DeviationStatus] = None
    occurred_at: Optional[datetime] = None
    assignee: Optional[uuid.UUID] = None
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None


class DeviationResolve(RequestModel):
    resolved_at: Optional[datetime] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None


class DeviationResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    batch_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    severity: str
    status: str
    occurred_at: Optional[datetime] = None
    assignee: Optional[uuid.UUID] = None
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    preventive_action: Optional[str] = None
    resolved_at: Optional[datetime] = None
    auto_generated: bool
    reported_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ── CAPAs ─────────────────────────────────────────────────────────────────

class CapaCreate(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    deviation_id: Optional[uuid.UUID] = None
    action_type: CapaActionType = CapaActionType.CORRECTIVE
    assignee: Optional[uuid.UUID] = None
    due_date: Optional[date] = None
    priority: Priority = Priority.MEDIUM
    status: CapaStatus = CapaStatus.OPEN


class CapaUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    action_type: Optional[CapaActionType] = None
    assignee: Optional[uuid.UUID] = None
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    status: Optional[CapaStatus] = None
    effectiveness_review: Optional[str] = None
    verification_date: Optional[date] = None


class CapaComplete(RequestModel):
    completion_date: Optional[datetime] = None
    effectiveness_review: Optional[str] = None


class CapaResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    deviation_id: Optional[uuid.UUID] = None
    action_type: str
    assignee: Optional[uuid.UUID] = None
    due_date: Optional[date] = None
    priority: str
    status: str
    effectiveness_review: Optional[str] = None
    completion_date: Optional[datetime] = None
    verification_date: Optional[date] = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ── SOPs ──────────────────────────────────────────────────────────────────

class SopCreate(RequestModel):
    sop_number: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    content: Optional[str] = None
    version: str = Field(default="1.0", max_length=20)
    status: SopStatus = SopStatus.DRAFT
    effective_date: Optional[date] = None
    review_date: Optional[date] = None


class SopUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    content: Optional[str] = None
    version: Optional[str] = Field(default=None, max_length=20)
    status: Optional[SopStatus] = None
    effective_date: Optional[date] = None
    review_date: Optional[date] = None


class SopResponse(BaseModel):
    id: uuid.UUID
    sop_number: str
    title: str
    category: str
    description: Optional[str] = None
    content: Optional[str] = None
    version: str
    status: str
    effective_date: Optional[date] = None
    review_date: Optional[date] = None
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ── Training ──────────────────────────────────────────────────────────────

class TrainingCreate(RequestModel):
    user_id: uuid.UUID
    sop_id: Optional[uuid.UUID] = None
    training_type: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=200)
    trainer_id: Optional[uuid.UUID] = None
    status: TrainingStatus = TrainingStatus.SCHEDULED
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class TrainingUpdate(RequestModel):
    sop_id: Optional[uuid.UUID] = None
    training_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    trainer_id: Optional[uuid.UUID] = None
    status: Optional[TrainingStatus] = None
    expiry_date: Optional[date] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class TrainingComplete(RequestModel):
    completion_date: Optional[date] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    certificate_url: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None


class TrainingResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    sop_id: Optional[uuid.UUID] = None
    training_type: str
    title: str
    trainer_id: Optional[uuid.UUID] = None
    status: str
    completion_date: Optional[date] = None
    expiry_date: Optional[date] = None
    score: Optional[float] = None
    certificate_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ── Environmental monitoring ──────────────────────────────────────────────

class EnvironmentalReadingCreate(RequestModel):
    room_name: str = Field(min_length=1, max_length=100)
    batch_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = Field(default=None, ge=0, le=100)
    co2_level: Optional[float] = Field(default=None, ge=0)
    ph_level: Optional[float] = Field(default=None, ge=0, le=14)
    ec_level: Optional[float] = Field(default=None, ge=0)
    light_level: Optional[float] = Field(default=None, ge=0)
    target_range_min: Optional[float] = None
    target_range_max: Optional[float] = None
    status: EnvironmentalStatus = EnvironmentalStatus.NORMAL
    sensor_id: Optional[str] = Field(default=None, max_length=100)
    source: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None


class EnvironmentalReadingResponse(BaseModel):
    id: uuid.UUID
    room_name: str
    batch_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    co2_level: Optional[float] = None
    ph_level: Optional[float] = None
    ec_level: Optional[float] = None
    light_level: Optional[float] = None
    target_range_min: Optional[float] = None
    target_range_max: Optional[float] = None
    status: str
    sensor_id: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    linked_deviation_id: Optional[uuid.UUID] = None
    recorded_at: datetime
    recorded_by: uuid.UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EnvironmentalSummary(BaseModel):
    """Averages are rounded to 2 dp; None when no reading carries the metric."""

    average_temperature: Optional[float] = None
    average_humidity: Optional[float] = None
    average_co2: Optional[float] = None
    average_ph: Optional[float] = None
    total_readings: int
    alerts_count: int


# ── QMS record register ───────────────────────────────────────────────────

class QmsRecordCreate(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    record_type: QmsRecordType
    severity: Optional[Severity] = None
    status: QmsRecordStatus = QmsRecordStatus.OPEN
    batch_id: Optional[uuid.UUID] = None
    cycle_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    parent_record_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    due_date: Optional[date] = None
    data: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[str]] = None


class QmsRecordUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    record_type: Optional[QmsRecordType] = None
    severity: Optional[Severity] = None
    status: Optional[QmsRecordStatus] = None
    batch_id: Optional[uuid.UUID] = None
    cycle_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    due_date: Optional[date] = None
    completed_date: Optional[date] = None
    reviewed_by: Optional[uuid.UUID] = None
    approved_by: Optional[uuid.UUID] = None
    data: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[str]] = None


class QmsRecordResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    record_type: str
    reference_number: Optional[str] = None
    status: str
    severity: Optional[str] = None
    batch_id: Optional[uuid.UUID] = None
    cycle_id: Optional[uuid.UUID] = None
    stage_id: Optional[uuid.UUID] = None
    parent_record_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    reviewed_by: Optional[uuid.UUID] = None
    approved_by: Optional[uuid.UUID] = None
    due_date: Optional[date] = None
    completed_date: Optional[date] = None
    attachments: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    data: Optional[Dict[str, Any]] = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QmsMetrics(BaseModel):
    total_records: int
    open_records: int
    completed_records: int
    overdue_records: int = Field(description="Past due_date and not completed or closed")
    records_by_type: Dict[str, int]
    records_by_status: Dict[str, int]
    records_by_severity: Dict[str, int]
    recent_activity: List[QmsRecordResponse] = Field(description="Ten newest records")

"""Request/response models for /api/v1/audits and /api/v1/audit-logs."""

import uuid
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from icangrow.lifecycle import AuditStatus
from icangrow.schemas.common import RequestModel


# ── Audits ────────────────────────────────────────────────────────────────

class AuditCreate(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    type: str = Field(min_length=1, max_length=50)
    auditor: str = Field(min_length=1, max_length=100)
    scheduled_date: Optional[date] = None
    description: Optional[str] = None
    scope: Optional[str] = None
    objectives: Optional[str] = None
    criteria: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=100)
    documents: Optional[List[str]] = None
    batch_id: Optional[uuid.UUID] = None
    cycle_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class AuditUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    status: Optional[AuditStatus] = None
    auditor: Optional[str] = Field(default=None, min_length=1, max_length=100)
    scheduled_date: Optional[date] = None
    description: Optional[str] = None
    scope: Optional[str] = None
    objectives: Optional[str] = None
    criteria: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=100)
    findings_count: Optional[int] = Field(default=None, ge=0)
    open_findings: Optional[int] = Field(default=None, ge=0)
    documents: Optional[List[str]] = None
    notes: Optional[str] = None


class AuditComplete(RequestModel):
    completed_date: Optional[datetime] = None
    results: Optional[str] = None
    recommendations: Optional[str] = None


class AuditResponse(BaseModel):
    id: uuid.UUID
    audit_number: str
    title: str
    type: str
    status: str
    auditor: str
    scheduled_date: Optional[date] = None
    completed_date: Optional[datetime] = None
    description: Optional[str] = None
    scope: Optional[str] = None
    objectives: Optional[str] = None
    criteria: Optional[str] = None
    location: Optional[str] = None
    results: Optional[str] = None
    recommendations: Optional[str] = None
    findings_count: int
    open_findings: int
    documents: Optional[List[str]] = None
    batch_id: Optional[uuid.UUID] = None
    cycle_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ── Audit logs ────────────────────────────────────────────────────────────

class AuditLogCreate(RequestModel):
    action: str = Field(min_length=1, max_length=50)
    resource_type: str = Field(min_length=1, max_length=50)
    resource_id: Optional[str] = Field(default=None, max_length=64)
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    details: Optional[str] = Field(default=None, description="Stored as the log's reason")


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

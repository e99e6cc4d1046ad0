"""
iCanGrow API — QMS Models
===========================

Deviations, CAPAs, SOPs, training records, environmental readings, audits
and the general QMS record register.
Each is a flat record with a lifecycle status (see icangrow.lifecycle) and a
creator; most can point at a batch.
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from icangrow.database import Base
from icangrow.lifecycle import (
    AuditStatus,
    CapaActionType,
    CapaStatus,
    DeviationStatus,
    EnvironmentalStatus,
    Priority,
    QmsRecordStatus,
    Severity,
    SopStatus,
    TrainingStatus,
)
from icangrow.models.mixins import CreatedAt, Timestamps, UUIDPrimaryKey


class Deviation(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "deviations"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=True, index=True)
    stage_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("stages.id"), nullable=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=Severity.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=DeviationStatus.OPEN.value)
    occurred_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    assignee: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    root_cause: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    corrective_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    preventive_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reported_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class Capa(UUIDPrimaryKey, Timestamps, Base):
    """Corrective and Preventive Action, usually raised from a deviation."""

    __tablename__ = "capas"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deviation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("deviations.id"), nullable=True, index=True
    )
    action_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CapaActionType.CORRECTIVE.value
    )
    assignee: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CapaStatus.OPEN.value)
    effectiveness_review: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completion_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verification_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class Sop(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "sops"

    sop_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SopStatus.DRAFT.value)
    effective_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    review_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class TrainingRecord(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "training_records"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)
    sop_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("sops.id"), nullable=True)
    training_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    trainer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TrainingStatus.SCHEDULED.value)
    completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    certificate_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class EnvironmentalReading(UUIDPrimaryKey, CreatedAt, Base):
    """Sensor or manual reading for a grow room, optionally tied to a batch."""

    __tablename__ = "environmental_monitoring"

    room_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=True, index=True)
    stage_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("stages.id"), nullable=True)
    temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    co2_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ph_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ec_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    light_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_range_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_range_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EnvironmentalStatus.NORMAL.value
    )
    sensor_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    linked_deviation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("deviations.id"), nullable=True
    )
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    recorded_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class Audit(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "audits"

    audit_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AuditStatus.PLANNED.value)
    auditor: Mapped[str] = mapped_column(String(100), nullable=False)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scope: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    objectives: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    criteria: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    results: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recommendations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    findings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    open_findings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=True)
    cycle_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("growth_cycles.id"), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class QmsRecord(UUIDPrimaryKey, Timestamps, Base):
    """
    General QMS register entry: checklists, inspections and audit findings
    that have no dedicated table. `data` holds the type-specific payload.
    """

    __tablename__ = "qms_records"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    record_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    reference_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=QmsRecordStatus.OPEN.value)
    severity: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=True, index=True)
    cycle_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("growth_cycles.id"), nullable=True)
    stage_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("stages.id"), nullable=True)
    parent_record_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("qms_records.id"), nullable=True
    )
    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    completed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    attachments: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)

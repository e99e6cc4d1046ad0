"""
iCanGrow API — Electronic Batch Record Models
===============================================

What:  ORM models for `qms_ebr` and `ebr_review_checklist`.
Why:   The eBR is the QA sign-off for one batch. Its batch fields are a
       snapshot copied at creation (batch_name, strain, current_stage,
       start_date, total_plant_count), not a live reference: later edits to the
       batch must not rewrite what QA reviewed.

Disposition:
    pass_fail_status: pending → pass | fail | conditional (EBR_DISPOSITION)
    compliance_status: pending → approved | rejected
    approved_by / approved_at record whoever made the disposition, for both
    approval and rejection.

Index Design:
    - uq_qms_ebr_batch_id: one eBR per batch, so lookup-by-batch is unambiguous
    - idx_ebr_checklist_ebr_id: checklist is always read per record
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from icangrow.database import Base
from icangrow.lifecycle import ComplianceStatus, PassFailStatus
from icangrow.models.cultivation import Batch
from icangrow.models.mixins import Timestamps, UUIDPrimaryKey
from icangrow.models.profile import Profile


class EbrRecord(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "qms_ebr"

    ebr_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    batch_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=False)

    # ── Batch snapshot ────────────────────────────────────────────────────
    batch_name: Mapped[str] = mapped_column(String(100), nullable=False)
    strain: Mapped[str] = mapped_column(String(100), nullable=False)
    current_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_plant_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ── Compliance ────────────────────────────────────────────────────────
    compliance_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ComplianceStatus.PENDING.value
    )
    pass_fail_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PassFailStatus.PENDING.value
    )
    compliance_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="0-100")

    # ── Disposition ───────────────────────────────────────────────────────
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    requires_reprocessing: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False)

    # ── Review ────────────────────────────────────────────────────────────
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Completeness ──────────────────────────────────────────────────────
    packaging_complete: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False)
    stage_reviews_complete: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False)
    waste_recorded: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False)
    daily_logs_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    critical_deviations_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    environmental_alerts_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    failed_hygiene_checks_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    final_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)

    batch: Mapped[Optional[Batch]] = relationship(lazy="selectin")
    created_by_profile: Mapped[Optional[Profile]] = relationship(
        foreign_keys=[created_by], lazy="selectin"
    )
    approved_by_profile: Mapped[Optional[Profile]] = relationship(
        foreign_keys=[approved_by], lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("batch_id", name="uq_qms_ebr_batch_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EbrRecord(id={self.id}, number='{self.ebr_number}', "
            f"pass_fail='{self.pass_fail_status}')>"
        )


class EbrChecklistItem(UUIDPrimaryKey, Timestamps, Base):
    """One review step on an eBR. Updated in place, never deleted."""

    __tablename__ = "ebr_review_checklist"

    ebr_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("qms_ebr.id"), nullable=False)
    checklist_item: Mapped[str] = mapped_column(Text, nullable=False)
    item_category: Mapped[str] = mapped_column(String(30), nullable=False)
    is_compliant: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evidence_urls: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    reviewer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_ebr_checklist_ebr_id", "ebr_id"),
    )

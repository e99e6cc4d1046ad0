"""
iCanGrow API — Cultivation Models
===================================

What:  Strains, growth cycles, batches, the stage catalogue, and per-batch
       stage progress.

Relationships:
    GrowthCycle 1 ── * Batch 1 ── * BatchStage * ── 1 Stage

    GrowthCycle.strains holds a JSON list of {"strain_id", "is_primary"}
    entries; Batch.strain_id must reference one of them (checked by
    BatchService, not by a constraint).
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
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from icangrow.database import Base
from icangrow.lifecycle import BatchStageStatus, BatchStatus, CycleStatus, GrowthStage
from icangrow.models.mixins import Timestamps, UUIDPrimaryKey


class Strain(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "strains"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    genetics: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    flowering_time_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)


class GrowthCycle(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "growth_cycles"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    facility_location: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CycleStatus.PLANNING.value
    )
    strains: Mapped[List[dict]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment='[{"strain_id": "...", "is_primary": true}, ...]',
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)


class Batch(UUIDPrimaryKey, Timestamps, Base):
    """
    A production unit of plants within one growth cycle.

    current_stage ∈ GrowthStage; status ∈ BatchStatus. Both are validated by
    the request schemas and, for status, by BATCH_TRANSITIONS on update.
    """

    __tablename__ = "batches"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    strain: Mapped[str] = mapped_column(String(100), nullable=False)
    strain_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("strains.id"), nullable=True)
    cycle_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("growth_cycles.id"), nullable=False)
    room: Mapped[str] = mapped_column(String(100), nullable=False)
    plant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="0-100")
    current_stage: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GrowthStage.CLONING.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchStatus.ACTIVE.value
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    clone_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expected_harvest_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)

    __table_args__ = (
        Index("idx_batches_cycle_id", "cycle_id"),
    )

    def __repr__(self) -> str:
        return f"<Batch(id={self.id}, name='{self.name}', stage='{self.current_stage}')>"


class Stage(UUIDPrimaryKey, Timestamps, Base):
    """Catalogue entry for a cultivation/processing phase."""

    __tablename__ = "stages"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_duration_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    stage_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requirements: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class BatchStage(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "batch_stages"

    batch_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=False, index=True)
    stage_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("stages.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchStageStatus.PENDING.value
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    stage_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    stage: Mapped[Stage] = relationship(lazy="selectin")

"""
iCanGrow API — Production Record Models
=========================================

What:  ORM models for the per-batch production trail: `daily_logs`,
       `packaging_runs`, `finished_goods_inventory` and `waste_records`.
Why:   These are the rows QA looks at before signing off a batch. The eBR
       completeness fields (daily_logs_count, packaging_complete,
       waste_recorded) are counted from them.

Index Design:
    - every table: batch_id, since each screen and the eBR refresh read per batch
    - daily_logs.date: listings are newest-day first

`datetime` is imported as a module because DailyLog has a column named `date`.
"""

import uuid
import datetime as dt
from typing import List, Optional

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
from icangrow.models.mixins import Timestamps, UUIDPrimaryKey


class DailyLog(UUIDPrimaryKey, Timestamps, Base):
    """One grower's observations for a batch on one day."""

    __tablename__ = "daily_logs"

    batch_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    stage: Mapped[str] = mapped_column(String(20), nullable=False)
    stage_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("stages.id"), nullable=True)

    # ── Plant counts ──────────────────────────────────────────────────────
    plant_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    previous_plant_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    plant_variance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    plant_variance_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="0-100")

    # ── Conditions ────────────────────────────────────────────────────────
    temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="0-100")
    ph_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="0-14")
    co2_level: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # ── Notes ─────────────────────────────────────────────────────────────
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    actions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    actions_taken: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issues: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issues_raised: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    activity_types: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    photos: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    logged_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)

    def __repr__(self) -> str:
        return f"<DailyLog(batch_id={self.batch_id}, date={self.date}, stage='{self.stage}')>"


class PackagingRun(UUIDPrimaryKey, Timestamps, Base):
    """
    Pre-packaging QA check of a batch. A run with both inspections passed
    marks the batch's eBR as packaging_complete.
    """

    __tablename__ = "packaging_runs"

    batch_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=False, index=True)
    coa_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, comment="Certificate of analysis")
    moisture_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="0-100")
    visual_inspection_pass: Mapped[bool] = mapped_column(Boolean, nullable=False)
    packaging_integrity: Mapped[bool] = mapped_column(Boolean, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attachments: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class FinishedGood(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "finished_goods_inventory"

    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=True, index=True)
    coa_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    strain: Mapped[str] = mapped_column(String(100), nullable=False)
    unit_type: Mapped[str] = mapped_column(String(20), nullable=False, default="grams")

    quantity_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity_reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    price_per_gram: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cost_per_gram: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    production_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    qa_status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    quarantine_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    storage_location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    package_date: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expiry_date: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    thc_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cbd_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)


class WasteRecord(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "waste_records"

    batch_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=False, index=True)
    waste_type: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    disposal_method: Mapped[str] = mapped_column(String(100), nullable=False)
    disposal_date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photos: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)

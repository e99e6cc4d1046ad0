"""
iCanGrow API — Inventory Models
=================================

What:  Inventory lots, their stock levels, and the append-only movement ledger.

    InventoryLot 1 ── 1 StockLevel        (available / reserved quantities)
    InventoryLot 1 ── * StockMovement     (adjust, quarantine, release, dispatch)

Every change to StockLevel is paired with a StockMovement row written in the
same transaction.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from icangrow.database import Base
from icangrow.lifecycle import LotStatus
from icangrow.models.mixins import CreatedAt, Timestamps, UUIDPrimaryKey


class StockLevel(UUIDPrimaryKey, Base):
    __tablename__ = "stock_levels"

    lot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("inventory_lots.id"), nullable=False, unique=True
    )
    facility: Mapped[str] = mapped_column(String(100), nullable=False)
    available_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reserved_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class InventoryLot(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "inventory_lots"

    lot_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_type: Mapped[str] = mapped_column(String(50), nullable=False)
    strain: Mapped[str] = mapped_column(String(100), nullable=False)
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("batches.id"), nullable=True)
    facility: Mapped[str] = mapped_column(String(100), nullable=False)
    stage: Mapped[str] = mapped_column(String(20), nullable=False, default="packaging")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=LotStatus.AVAILABLE.value)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False, default="units")
    coa_approved: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)

    stock_level: Mapped[Optional[StockLevel]] = relationship(uselist=False, lazy="selectin")

    def __repr__(self) -> str:
        return f"<InventoryLot(lot_code='{self.lot_code}', status='{self.status}')>"


class StockMovement(UUIDPrimaryKey, CreatedAt, Base):
    __tablename__ = "stock_movements"

    lot_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("inventory_lots.id"), nullable=False, index=True)
    movement_type: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="adjust, quarantine, release, dispatch"
    )
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False, default="units")
    from_facility: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    to_facility: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    performed_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)

"""
iCanGrow API — Inventory Service
==================================

What:  Packaging-stage inventory lots: listing, stock adjustments,
       quarantine/release, the movement ledger and dashboard counts.
       Also the read-only batch lookups the inventory screens show next to
       a lot (batch info and its stage history).

Every stock change writes its StockMovement row in the same flush, so the
ledger and the stock level can never disagree after a commit.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.exceptions import NotFoundError
from icangrow.lifecycle import LOT_TRANSITIONS, LotStatus
from icangrow.models.cultivation import Batch, BatchStage
from icangrow.models.inventory import InventoryLot, StockLevel, StockMovement
from icangrow.services.base import RecordService, store_errors
from icangrow.services.cultivation_service import batch_service, batch_stage_service

logger = logging.getLogger(__name__)

PACKAGING_STAGE = "packaging"


class InventoryService(RecordService[InventoryLot]):
    model = InventoryLot
    resource = "Inventory lot"
    plural = "inventory lots"

    filters = {
        "facility": "facility",
        "product_type": "product_type",
        "status": "status",
    }
    search_columns = ("lot_code", "product_name", "strain")
    transitions = LOT_TRANSITIONS

    def base_query(self):
        return select(InventoryLot).where(InventoryLot.stage == PACKAGING_STAGE)

    async def get_lot(self, db: AsyncSession, lot_id: uuid.UUID) -> InventoryLot:
        return await self.get(db, lot_id)

    async def stock_movements(self, db: AsyncSession, lot_id: uuid.UUID) -> List[StockMovement]:
        """Movement ledger for one lot, newest first."""
        await self.get(db, lot_id)
        with store_errors("fetch stock movements"):
            result = await db.execute(
                select(StockMovement)
                .where(StockMovement.lot_id == lot_id)
                .order_by(StockMovement.created_at.desc(), StockMovement.id.asc())
            )
        return list(result.scalars().all())

    async def adjust_stock(
        self,
        db: AsyncSession,
        lot_id: uuid.UUID,
        quantity: float,
        reason: str,
        performed_by: uuid.UUID,
        unit_of_measure: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply a signed delta to the lot's available quantity, floored at 0.

        Raises:
            NotFoundError: unknown lot, or the lot has no stock level row
        """
        lot = await self.get(db, lot_id)
        with store_errors("fetch stock level"):
            level = (
                await db.execute(
                    select(StockLevel).where(StockLevel.lot_id == lot_id).with_for_update()
                )
            ).scalar_one_or_none()
        if level is None:
            raise NotFoundError(resource="Stock level", resource_id=str(lot_id))

        previous = level.available_quantity
        level.available_quantity = max(0, previous + quantity)
        db.add(
            StockMovement(
                lot_id=lot_id,
                movement_type="adjust",
                quantity=quantity,
                unit_of_measure=unit_of_measure or lot.unit_of_measure,
                reason=reason,
                performed_by=performed_by,
            )
        )
        with store_errors("adjust stock"):
            await db.flush()
        logger.info("Stock adjusted for lot %s: %s → %s", lot.lot_code, previous, level.available_quantity)
        return {
            "lot_id": lot_id,
            "previous_quantity": previous,
            "adjustment": quantity,
            "new_quantity": level.available_quantity,
        }

    async def toggle_quarantine(
        self,
        db: AsyncSession,
        lot_id: uuid.UUID,
        action: str,
        performed_by: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """`action` is "quarantine" (→ quarantine) or "release" (→ available)."""
        lot = await self.get(db, lot_id)
        old_status = lot.status
        target = LotStatus.QUARANTINE if action == "quarantine" else LotStatus.AVAILABLE
        self.transition(lot, target)
        db.add(
            StockMovement(
                lot_id=lot_id,
                movement_type=action,
                quantity=0,
                unit_of_measure="units",
                reason=reason or ("Placed in quarantine" if action == "quarantine" else "Released from quarantine"),
                performed_by=performed_by,
            )
        )
        with store_errors("update quarantine status"):
            await db.flush()
        logger.info("Lot %s: %s → %s", lot.lot_code, old_status, lot.status)
        return {"lot_id": lot_id, "old_status": old_status, "new_status": lot.status}

    async def stats(self, db: AsyncSession) -> Dict[str, int]:
        """
        total_lots      packaging-stage lots
        dispatch_ready  approved and CoA-approved
        quarantined     in quarantine
        expired         expiry_date before today
        """
        packaging = InventoryLot.stage == PACKAGING_STAGE

        async def count(*conditions) -> int:
            query = select(func.count(InventoryLot.id)).where(packaging, *conditions)
            return (await db.execute(query)).scalar_one()

        with store_errors("fetch inventory stats"):
            return {
                "total_lots": await count(),
                "dispatch_ready": await count(
                    InventoryLot.status == LotStatus.APPROVED.value,
                    InventoryLot.coa_approved.is_(True),
                ),
                "quarantined": await count(InventoryLot.status == LotStatus.QUARANTINE.value),
                "expired": await count(InventoryLot.expiry_date < date.today()),
            }

    # ── Batch lookups ─────────────────────────────────────────────────────

    async def batch_info(self, db: AsyncSession, batch_id: uuid.UUID) -> Batch:
        return await batch_service.get(db, batch_id)

    async def batch_stages(self, db: AsyncSession, batch_id: uuid.UUID) -> List[BatchStage]:
        await batch_service.get(db, batch_id)
        return await batch_stage_service.list_for_batch(db, batch_id)

    async def all_batches(self, db: AsyncSession) -> List[Batch]:
        with store_errors("fetch batches"):
            result = await db.execute(select(Batch).order_by(Batch.created_at.desc()))
        return list(result.scalars().all())


inventory_service = InventoryService()

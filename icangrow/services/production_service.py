"""
iCanGrow API — Production Record Services
===========================================

What:  Daily logs, packaging runs, finished goods and waste records, plus the
       QA batch review that signs a batch off through its eBR.
Who:   Called by routes/production.py; the inventory routes read recent daily
       logs through daily_log_service.

Batch references:
    Daily logs, packaging runs and waste records must name an existing
    batch. An unknown batch is a 400 "Batch not found" (the batch is part of
    the request body, not the path). Finished goods may stand without a batch.

Review Flow (POST /erp/review/{batch_id}):
    1. batch must exist                  → 404 "Batch not found"
    2. batch must have an eBR            → 400 "Batch record not found. ..."
    3. eBR completeness is recounted from the production trail
    4. disposition through EbrService:
           pass        → approve; batch becomes completed / packaging
           fail        → reject (rejection_reason, or review_notes, required)
           conditional → mark_conditional
    5. reviewed_by / reviewed_at / review_notes are stamped
"""

import logging
import uuid
from typing import Any, List, Mapping, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.exceptions import NotFoundError, ValidationError
from icangrow.lifecycle import BatchStatus, GrowthStage, PassFailStatus
from icangrow.models.ebr import EbrRecord
from icangrow.models.mixins import utcnow
from icangrow.models.production import DailyLog, FinishedGood, PackagingRun, WasteRecord
from icangrow.services.base import RecordService, store_errors
from icangrow.services.cultivation_service import batch_service
from icangrow.services.ebr_service import ebr_service

logger = logging.getLogger(__name__)

BATCH_RECORD_MISSING = (
    "Batch record not found. Please ensure the batch has been properly processed before review."
)


class BatchScopedService(RecordService):
    """A record service whose rows must point at an existing batch."""

    async def create(self, db, data, actor_id=None):
        if not await batch_service.exists(db, data.get("batch_id")):
            raise ValidationError("Batch not found", field="batch_id")
        return await super().create(db, data, actor_id)


# ── Daily logs ────────────────────────────────────────────────────────────

class DailyLogService(BatchScopedService):
    model = DailyLog
    resource = "Daily log"
    plural = "daily logs"

    creatable = frozenset({
        "batch_id", "date", "stage", "stage_id", "plant_count", "previous_plant_count",
        "plant_variance", "plant_variance_percentage", "temperature", "humidity", "ph_level",
        "co2_level", "observations", "actions", "actions_taken", "issues", "issues_raised",
        "activity_types", "photos", "notes",
    })
    updatable = creatable - {"batch_id"}
    filters = {"batch_id": "batch_id", "stage": "stage"}
    date_column = "date"
    order_by = (("date", True), ("created_at", True))
    creator_field = "logged_by"

    async def recent_for_batch(self, db: AsyncSession, batch_id: uuid.UUID, limit: int = 5) -> List[DailyLog]:
        result = await self.list(db, {"batch_id": batch_id}, 1, limit)
        return result.records


# ── Packaging runs ────────────────────────────────────────────────────────

class PackagingService(BatchScopedService):
    model = PackagingRun
    resource = "Packaging run"
    plural = "packaging runs"

    creatable = frozenset({
        "batch_id", "coa_id", "moisture_percentage", "visual_inspection_pass",
        "packaging_integrity", "status", "notes", "attachments",
    })
    filters = {"batch_id": "batch_id", "status": "status"}

    def defaults(self, values):
        values["status"] = values.get("status") or "pending"
        return values


# ── Finished goods ────────────────────────────────────────────────────────

class FinishedGoodsService(RecordService[FinishedGood]):
    model = FinishedGood
    resource = "Finished goods item"
    plural = "finished goods"

    creatable = frozenset({
        "batch_id", "coa_id", "product_name", "strain", "unit_type", "quantity_available",
        "quantity_reserved", "price_per_gram", "cost_per_gram", "production_cost", "total_cost",
        "qa_status", "quarantine_status", "storage_location", "package_date", "expiry_date",
        "thc_percentage", "cbd_percentage",
    })
    updatable = frozenset({
        "quantity_available", "quantity_reserved", "price_per_gram", "cost_per_gram",
        "production_cost", "total_cost", "qa_status", "quarantine_status", "storage_location",
        "package_date", "expiry_date", "thc_percentage", "cbd_percentage",
    })
    filters = {"qa_status": "qa_status", "batch_id": "batch_id"}

    def extra_filters(self, query: Select, filters: Mapping[str, Any]) -> Select:
        strain_name = filters.get("strain_name")
        if strain_name:
            query = query.where(FinishedGood.strain.icontains(strain_name, autoescape=True))
        storage_location = filters.get("storage_location")
        if storage_location:
            query = query.where(FinishedGood.storage_location.icontains(storage_location, autoescape=True))
        return query

    async def create(self, db, data, actor_id=None):
        batch_id = data.get("batch_id")
        if batch_id is not None and not await batch_service.exists(db, batch_id):
            raise ValidationError("Batch not found", field="batch_id")
        return await super().create(db, data, actor_id)


# ── Waste ─────────────────────────────────────────────────────────────────

class WasteService(BatchScopedService):
    model = WasteRecord
    resource = "Waste record"
    plural = "waste records"

    creatable = frozenset({
        "batch_id", "waste_type", "quantity", "unit", "reason", "disposal_method",
        "disposal_date", "notes", "photos",
    })
    filters = {
        "batch_id": "batch_id",
        "waste_type": "waste_type",
        "disposal_method": "disposal_method",
    }
    date_column = "disposal_date"
    order_by = (("disposal_date", True), ("created_at", True))


# ── Batch review ──────────────────────────────────────────────────────────

class BatchReviewService:
    """QA sign-off of a whole batch, looked up by batch rather than by eBR id."""

    async def get_batch_record(self, db: AsyncSession, batch_id: uuid.UUID) -> EbrRecord:
        record = await ebr_service.get_by_batch(db, batch_id)
        if record is None:
            raise NotFoundError(resource="Batch record", resource_id=str(batch_id))
        return record

    async def review(
        self,
        db: AsyncSession,
        batch_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        pass_fail_status: str,
        review_notes: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        requires_reprocessing: Optional[bool] = None,
    ) -> EbrRecord:
        """
        Raises:
            NotFoundError: unknown batch
            ValidationError: the batch has no eBR, or a fail without a reason
            InvalidTransitionError: the eBR's disposition cannot move there
        """
        batch = await batch_service.get(db, batch_id)
        record = await ebr_service.get_by_batch(db, batch_id)
        if record is None:
            raise ValidationError(BATCH_RECORD_MISSING, context={"batch_id": str(batch_id)})

        await ebr_service.refresh_completeness(db, record)

        if pass_fail_status == PassFailStatus.PASS.value:
            if batch.status != BatchStatus.COMPLETED.value:
                batch_service.check_transition(batch, BatchStatus.COMPLETED)
            record = await ebr_service.approve(db, record.id, reviewer_id, review_notes)
            batch.status = BatchStatus.COMPLETED.value
            batch.current_stage = GrowthStage.PACKAGING.value
        elif pass_fail_status == PassFailStatus.FAIL.value:
            reason = rejection_reason or review_notes
            if not reason:
                raise ValidationError(
                    "rejection_reason is required when a batch fails review", field="rejection_reason"
                )
            record = await ebr_service.reject(
                db, record.id, reviewer_id, reason, bool(requires_reprocessing)
            )
        else:
            record = await ebr_service.mark_conditional(db, record.id, reviewer_id, review_notes)

        record.reviewed_by = reviewer_id
        record.reviewed_at = utcnow()
        if review_notes is not None:
            record.review_notes = review_notes
        with store_errors("review batch"):
            await db.flush()
        logger.info("Batch %s reviewed by %s: %s", batch_id, reviewer_id, pass_fail_status)
        return await ebr_service.get(db, record.id)


daily_log_service = DailyLogService()
packaging_service = PackagingService()
finished_goods_service = FinishedGoodsService()
waste_service = WasteService()
batch_review_service = BatchReviewService()

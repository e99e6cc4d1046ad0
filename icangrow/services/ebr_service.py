"""
iCanGrow API — Electronic Batch Record Service
================================================

What:  The eBR lifecycle: creation from a batch snapshot, the review
       checklist, completeness counts from the production trail, QA
       disposition (approve / reject / conditional / reopen) and the
       compliance statistics shown on the QMS dashboard.
Who:   Called by routes/ebr.py and by the batch review in production_service;
       every disposition change is appended to the audit trail through
       audit_log_service.

Disposition Flow:
    ┌─────────┐  approve   ┌──────┐
    │ pending │──────────▶│ pass │──┐ approve again (idempotent, refreshes approved_at)
    │         │            └──────┘◀─┘
    │         │  reject    ┌──────┐
    │         │──────────▶│ fail │──┐ reject again (idempotent)
    └─────────┘            └──────┘◀─┘
         ▲                    │
         └──── reopen ────────┘   (admin / qa_manager, clears the disposition)

    pending → conditional (batch review) may still end in pass or fail.
    pass → fail and fail → pass raise InvalidTransitionError (409).

Statistics:
    compliance_rate          = pass_count / total_records × 100
    average_compliance_score = mean of non-null compliance_score
    Both are 0 on an empty table and rounded half-up to 2 decimals.
"""

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from icangrow.lifecycle import (
    EBR_DISPOSITION,
    BatchStageStatus,
    ComplianceStatus,
    EnvironmentalStatus,
    PassFailStatus,
    Severity,
)
from icangrow.models.cultivation import Batch, BatchStage
from icangrow.models.ebr import EbrChecklistItem, EbrRecord
from icangrow.models.mixins import utcnow
from icangrow.models.production import DailyLog, PackagingRun, WasteRecord
from icangrow.models.quality import Deviation, EnvironmentalReading
from icangrow.services.audit_service import audit_log_service
from icangrow.services.base import RecordService, reference_number, store_errors

logger = logging.getLogger(__name__)

CHECKLIST_UPDATABLE = frozenset({"is_compliant", "comments", "evidence_urls", "reviewed_at"})

_DISPOSITION_FIELDS = (
    "pass_fail_status",
    "compliance_status",
    "approved_by",
    "approved_at",
    "rejection_reason",
    "requires_reprocessing",
    "review_notes",
)


def _round2(value: Any) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _disposition(record: EbrRecord) -> Dict[str, Any]:
    return {field: getattr(record, field) for field in _DISPOSITION_FIELDS}


class EbrService(RecordService[EbrRecord]):
    """
    Responsibilities:
        - list/get/get_by_batch: read paths with batch and profile display fields
        - create_record: snapshot a batch into a new eBR (one per batch)
        - checklist: add/update items, read in creation order
        - completeness: recount daily logs, packaging, waste, deviations, alerts
        - approve/reject/mark_conditional/reopen: guarded by EBR_DISPOSITION
        - statistics: dashboard aggregates
    """

    model = EbrRecord
    resource = "eBR record"
    plural = "eBR records"

    filters = {
        "batch_id": "batch_id",
        "compliance_status": "compliance_status",
        "pass_fail_status": "pass_fail_status",
    }
    search_columns = ("ebr_number", "batch_name", "strain", "review_notes")
    date_column = "start_date"

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_by_batch(self, db: AsyncSession, batch_id: uuid.UUID) -> Optional[EbrRecord]:
        """The batch's eBR, or None (the route maps None to 404)."""
        with store_errors("fetch eBR record for batch"):
            result = await db.execute(select(EbrRecord).where(EbrRecord.batch_id == batch_id))
        return result.scalar_one_or_none()

    async def get_checklist(self, db: AsyncSession, ebr_id: uuid.UUID) -> List[EbrChecklistItem]:
        """Items oldest first. An unknown eBR simply has no items."""
        with store_errors("fetch eBR checklist"):
            result = await db.execute(
                select(EbrChecklistItem)
                .where(EbrChecklistItem.ebr_id == ebr_id)
                .order_by(EbrChecklistItem.created_at.asc(), EbrChecklistItem.id.asc())
            )
        return list(result.scalars().all())

    async def get_details(self, db: AsyncSession, ebr_id: uuid.UUID) -> Dict[str, Any]:
        record = await self.get(db, ebr_id)
        checklist = await self.get_checklist(db, ebr_id)
        return {"ebr_record": record, "checklist": checklist}

    async def statistics(self, db: AsyncSession) -> Dict[str, Any]:
        def count_status(status: PassFailStatus):
            return func.coalesce(
                func.sum(case((EbrRecord.pass_fail_status == status.value, 1), else_=0)), 0
            )

        query = select(
            func.count(EbrRecord.id),
            count_status(PassFailStatus.PASS),
            count_status(PassFailStatus.FAIL),
            count_status(PassFailStatus.CONDITIONAL),
            func.avg(EbrRecord.compliance_score),
        )
        with store_errors("fetch eBR statistics"):
            total, passed, failed, conditional, average = (await db.execute(query)).one()

        total = int(total or 0)
        passed = int(passed or 0)
        return {
            "total_records": total,
            "pass_count": passed,
            "fail_count": int(failed or 0),
            "conditional_count": int(conditional or 0),
            "compliance_rate": _round2(passed / total * 100) if total else 0.0,
            "average_compliance_score": _round2(average) if average is not None else 0.0,
        }

    async def completeness(self, db: AsyncSession, batch_id: uuid.UUID) -> Dict[str, Any]:
        """
        Completeness fields counted from the batch's production trail.

        packaging_complete      a packaging run passed both inspections
        stage_reviews_complete  the batch has stages and all are completed
        """

        async def count(model, *conditions) -> int:
            query = select(func.count(model.id)).where(model.batch_id == batch_id, *conditions)
            return int((await db.execute(query)).scalar_one() or 0)

        with store_errors("count eBR completeness"):
            daily_logs = await count(DailyLog)
            passed_packaging = await count(
                PackagingRun,
                PackagingRun.visual_inspection_pass.is_(True),
                PackagingRun.packaging_integrity.is_(True),
            )
            waste = await count(WasteRecord)
            critical = await count(Deviation, Deviation.severity == Severity.CRITICAL.value)
            alerts = await count(EnvironmentalReading, EnvironmentalReading.status == EnvironmentalStatus.ALERT.value)
            stages = await count(BatchStage)
            open_stages = await count(BatchStage, BatchStage.status != BatchStageStatus.COMPLETED.value)

        return {
            "daily_logs_count": daily_logs,
            "packaging_complete": passed_packaging > 0,
            "waste_recorded": waste > 0,
            "critical_deviations_count": critical,
            "environmental_alerts_count": alerts,
            "stage_reviews_complete": stages > 0 and open_stages == 0,
        }

    async def refresh_completeness(self, db: AsyncSession, record: EbrRecord) -> EbrRecord:
        for field, value in (await self.completeness(db, record.batch_id)).items():
            setattr(record, field, value)
        with store_errors("update eBR completeness"):
            await db.flush()
        return record

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_record(self, db: AsyncSession, batch_id: uuid.UUID, created_by: uuid.UUID) -> EbrRecord:
        """
        Raises:
            NotFoundError: "Batch not found" (nothing is inserted)
            ConflictError: the batch already has an eBR
        """
        with store_errors("fetch batch"):
            batch = (await db.execute(select(Batch).where(Batch.id == batch_id))).scalar_one_or_none()
        if batch is None:
            raise NotFoundError(resource="Batch", resource_id=str(batch_id))

        if await self.get_by_batch(db, batch_id) is not None:
            raise ConflictError(
                "An eBR record already exists for this batch",
                context={"batch_id": str(batch_id)},
            )

        counts = await self.completeness(db, batch.id)
        record = EbrRecord(
            ebr_number=reference_number("EBR"),
            batch_id=batch.id,
            batch_name=batch.name,
            strain=batch.strain,
            current_stage=batch.current_stage,
            start_date=batch.start_date or date.today(),
            total_plant_count=batch.plant_count,
            **counts,
            pass_fail_status=PassFailStatus.PENDING.value,
            compliance_status=ComplianceStatus.PENDING.value,
            created_by=created_by,
        )
        with store_errors("create eBR record"):
            db.add(record)
            await db.flush()
        logger.info("eBR %s created for batch %s", record.ebr_number, batch.id)
        return await self.get(db, record.id)

    async def add_checklist_item(
        self,
        db: AsyncSession,
        ebr_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        payload: Mapping[str, Any],
    ) -> EbrChecklistItem:
        if not await self.exists(db, ebr_id):
            raise NotFoundError(resource=self.resource, resource_id=str(ebr_id))

        item = EbrChecklistItem(
            ebr_id=ebr_id,
            reviewer_id=reviewer_id,
            checklist_item=payload["checklist_item"],
            item_category=payload["item_category"],
            is_compliant=payload.get("is_compliant"),
            comments=payload.get("comments"),
            evidence_urls=list(payload.get("evidence_urls") or []),
            reviewed_at=utcnow(),
        )
        with store_errors("add eBR checklist item"):
            db.add(item)
            await db.flush()
        return item

    async def update_checklist_item(
        self, db: AsyncSession, item_id: uuid.UUID, partial: Mapping[str, Any]
    ) -> EbrChecklistItem:
        with store_errors("fetch eBR checklist item"):
            item = (
                await db.execute(select(EbrChecklistItem).where(EbrChecklistItem.id == item_id))
            ).scalar_one_or_none()
        if item is None:
            raise NotFoundError(resource="Checklist item", resource_id=str(item_id))

        for field, value in partial.items():
            if field in CHECKLIST_UPDATABLE:
                setattr(item, field, value)
        with store_errors("update eBR checklist item"):
            await db.flush()
            await db.refresh(item)
        return item

    # ── Disposition ───────────────────────────────────────────────────────

    async def approve(
        self,
        db: AsyncSession,
        ebr_id: uuid.UUID,
        approver_id: uuid.UUID,
        approval_reason: Optional[str] = None,
    ) -> EbrRecord:
        record = await self.get(db, ebr_id, for_update=True)
        EBR_DISPOSITION.check(record.pass_fail_status, PassFailStatus.PASS)
        before = _disposition(record)

        record.approved_by = approver_id
        record.approved_at = utcnow()
        record.pass_fail_status = PassFailStatus.PASS.value
        record.compliance_status = ComplianceStatus.APPROVED.value
        record.review_notes = approval_reason

        with store_errors("approve eBR record"):
            await db.flush()
        await audit_log_service.record(
            db, approver_id, "approve", "ebr_record", record.id,
            old_values=before, new_values=_disposition(record), reason=approval_reason,
        )
        logger.info("eBR %s approved by %s", record.ebr_number, approver_id)
        return await self.get(db, ebr_id)

    async def reject(
        self,
        db: AsyncSession,
        ebr_id: uuid.UUID,
        rejector_id: uuid.UUID,
        rejection_reason: str,
        requires_reprocessing: bool = False,
    ) -> EbrRecord:
        record = await self.get(db, ebr_id, for_update=True)
        EBR_DISPOSITION.check(record.pass_fail_status, PassFailStatus.FAIL)
        before = _disposition(record)

        # Rejections share approved_by/approved_at with approvals
        record.approved_by = rejector_id
        record.approved_at = utcnow()
        record.pass_fail_status = PassFailStatus.FAIL.value
        record.compliance_status = ComplianceStatus.REJECTED.value
        record.rejection_reason = rejection_reason
        record.requires_reprocessing = requires_reprocessing
        record.review_notes = rejection_reason

        with store_errors("reject eBR record"):
            await db.flush()
        await audit_log_service.record(
            db, rejector_id, "reject", "ebr_record", record.id,
            old_values=before, new_values=_disposition(record), reason=rejection_reason,
        )
        logger.info("eBR %s rejected by %s", record.ebr_number, rejector_id)
        return await self.get(db, ebr_id)

    async def mark_conditional(
        self,
        db: AsyncSession,
        ebr_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> EbrRecord:
        """Conditional release: compliance stays pending until a final pass or fail."""
        record = await self.get(db, ebr_id, for_update=True)
        EBR_DISPOSITION.check(record.pass_fail_status, PassFailStatus.CONDITIONAL)
        before = _disposition(record)

        record.pass_fail_status = PassFailStatus.CONDITIONAL.value
        record.review_notes = notes

        with store_errors("conditionally approve eBR record"):
            await db.flush()
        await audit_log_service.record(
            db, reviewer_id, "conditional", "ebr_record", record.id,
            old_values=before, new_values=_disposition(record), reason=notes,
        )
        logger.info("eBR %s conditionally approved by %s", record.ebr_number, reviewer_id)
        return await self.get(db, ebr_id)

    async def reopen(self, db: AsyncSession, ebr_id: uuid.UUID, actor_id: uuid.UUID, reason: str) -> EbrRecord:
        """Return a disposed record to pending and clear its disposition fields."""
        record = await self.get(db, ebr_id, for_update=True)
        if record.pass_fail_status == PassFailStatus.PENDING.value:
            raise InvalidTransitionError(self.resource, record.pass_fail_status, PassFailStatus.PENDING.value)
        before = _disposition(record)

        record.pass_fail_status = PassFailStatus.PENDING.value
        record.compliance_status = ComplianceStatus.PENDING.value
        record.approved_by = None
        record.approved_at = None
        record.rejection_reason = None
        record.requires_reprocessing = False
        record.review_notes = reason

        with store_errors("reopen eBR record"):
            await db.flush()
        await audit_log_service.record(
            db, actor_id, "reopen", "ebr_record", record.id,
            old_values=before, new_values=_disposition(record), reason=reason,
        )
        logger.info("eBR %s reopened by %s", record.ebr_number, actor_id)
        return await self.get(db, ebr_id)


ebr_service = EbrService()

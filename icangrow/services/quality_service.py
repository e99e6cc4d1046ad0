"""
iCanGrow API — QMS Record Services
====================================

Deviations, CAPAs, SOPs, training records, environmental readings and the
general QMS record register.
Each is a RecordService plus the domain helpers its routes expose
(resolve, complete, approve, per-batch / per-user listings, summaries).
"""

import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.exceptions import ValidationError
from icangrow.lifecycle import (
    CAPA_TRANSITIONS,
    DEVIATION_TRANSITIONS,
    SOP_TRANSITIONS,
    TRAINING_TRANSITIONS,
    CapaStatus,
    DeviationStatus,
    EnvironmentalStatus,
    QmsRecordStatus,
    SopStatus,
    TrainingStatus,
)
from icangrow.models.mixins import utcnow
from icangrow.models.profile import Profile
from icangrow.models.quality import (
    Capa,
    Deviation,
    EnvironmentalReading,
    QmsRecord,
    Sop,
    TrainingRecord,
)
from icangrow.services.base import PageResult, RecordService, day_bounds, reference_number, store_errors

logger = logging.getLogger(__name__)


def _round2(value: Optional[float]) -> Optional[float]:
    return round(float(value), 2) if value is not None else None


# ── Deviations ────────────────────────────────────────────────────────────

class DeviationService(RecordService[Deviation]):
    model = Deviation
    resource = "Deviation"
    plural = "deviations"

    creatable = frozenset({
        "title", "description", "batch_id", "stage_id", "severity", "status", "occurred_at",
        "assignee", "root_cause", "corrective_action", "preventive_action", "auto_generated",
    })
    updatable = frozenset({
        "title", "description", "batch_id", "stage_id", "severity", "status", "occurred_at",
        "assignee", "root_cause", "corrective_action", "preventive_action",
    })
    filters = {
        "batch_id": "batch_id",
        "assignee": "assignee",
        "severity": "severity",
        "status": "status",
    }
    search_columns = ("title", "description", "corrective_action", "preventive_action")
    creator_field = "reported_by"
    transitions = DEVIATION_TRANSITIONS

    def defaults(self, values):
        values.setdefault("status", DeviationStatus.OPEN.value)
        values["occurred_at"] = values.get("occurred_at") or utcnow()
        return values

    async def resolve(
        self,
        db: AsyncSession,
        deviation_id: uuid.UUID,
        resolved_at: Optional[datetime] = None,
        corrective_action: Optional[str] = None,
        preventive_action: Optional[str] = None,
    ) -> Deviation:
        deviation = await self.get(db, deviation_id)
        self.transition(deviation, DeviationStatus.RESOLVED)
        deviation.resolved_at = resolved_at or utcnow()
        if corrective_action is not None:
            deviation.corrective_action = corrective_action
        if preventive_action is not None:
            deviation.preventive_action = preventive_action
        with store_errors("resolve deviation"):
            await db.flush()
        logger.info("Deviation %s resolved", deviation_id)
        return await self.get(db, deviation_id)

    async def by_batch(self, db: AsyncSession, batch_id: uuid.UUID, page: int = 1, limit: int = 50) -> PageResult:
        return await self.list(db, {"batch_id": batch_id}, page, limit)


# ── CAPAs ─────────────────────────────────────────────────────────────────

class CapaService(RecordService[Capa]):
    model = Capa
    resource = "CAPA"
    plural = "CAPAs"

    creatable = frozenset({
        "title", "description", "deviation_id", "action_type", "assignee",
        "due_date", "priority", "status",
    })
    updatable = frozenset({
        "title", "description", "action_type", "assignee", "due_date", "priority",
        "status", "effectiveness_review", "verification_date",
    })
    filters = {
        "deviation_id": "deviation_id",
        "assignee": "assignee",
        "action_type": "action_type",
        "priority": "priority",
        "status": "status",
    }
    search_columns = ("title", "description", "effectiveness_review")
    transitions = CAPA_TRANSITIONS

    async def create(self, db, data, actor_id=None):
        deviation_id = data.get("deviation_id")
        if deviation_id is not None and not await deviation_service.exists(db, deviation_id):
            raise ValidationError("Invalid deviation_id: deviation not found", field="deviation_id")
        return await super().create(db, data, actor_id)

    async def complete(
        self,
        db: AsyncSession,
        capa_id: uuid.UUID,
        completion_date: Optional[datetime] = None,
        effectiveness_review: Optional[str] = None,
    ) -> Capa:
        capa = await self.get(db, capa_id)
        self.transition(capa, CapaStatus.COMPLETED)
        capa.completion_date = completion_date or utcnow()
        if effectiveness_review is not None:
            capa.effectiveness_review = effectiveness_review
        with store_errors("complete CAPA"):
            await db.flush()
        logger.info("CAPA %s completed", capa_id)
        return await self.get(db, capa_id)

    async def by_deviation(
        self, db: AsyncSession, deviation_id: uuid.UUID, page: int = 1, limit: int = 50
    ) -> PageResult:
        return await self.list(db, {"deviation_id": deviation_id}, page, limit)


# ── SOPs ──────────────────────────────────────────────────────────────────

class SopService(RecordService[Sop]):
    model = Sop
    resource = "SOP"
    plural = "SOPs"

    creatable = frozenset({
        "sop_number", "title", "category", "description", "content", "version",
        "status", "effective_date", "review_date",
    })
    updatable = frozenset({
        "title", "category", "description", "content", "version", "status",
        "effective_date", "review_date",
    })
    filters = {"category": "category", "status": "status"}
    search_columns = ("title", "sop_number", "description", "content")
    transitions = SOP_TRANSITIONS

    async def approve(self, db: AsyncSession, sop_id: uuid.UUID, approver_id: uuid.UUID) -> Sop:
        sop = await self.get(db, sop_id)
        self.transition(sop, SopStatus.APPROVED)
        sop.approved_by = approver_id
        sop.approved_at = utcnow()
        with store_errors("approve SOP"):
            await db.flush()
        logger.info("SOP %s approved by %s", sop.sop_number, approver_id)
        return await self.get(db, sop_id)

    async def by_category(self, db: AsyncSession, category: str) -> List[Sop]:
        """Approved SOPs of one category, by title."""
        with store_errors("fetch SOPs by category"):
            result = await db.execute(
                select(Sop)
                .where(Sop.category == category, Sop.status == SopStatus.APPROVED.value)
                .order_by(Sop.title.asc())
            )
        return list(result.scalars().all())

    async def categories(self, db: AsyncSession) -> List[str]:
        with store_errors("fetch SOP categories"):
            result = await db.execute(select(Sop.category).distinct().order_by(Sop.category.asc()))
        return [category for category in result.scalars().all() if category]


# ── Training ──────────────────────────────────────────────────────────────

class TrainingService(RecordService[TrainingRecord]):
    model = TrainingRecord
    resource = "Training record"
    plural = "training records"

    creatable = frozenset({
        "user_id", "sop_id", "training_type", "title", "trainer_id", "status", "expiry_date", "notes",
    })
    updatable = frozenset({
        "sop_id", "training_type", "title", "trainer_id", "status", "expiry_date", "score", "notes",
    })
    filters = {
        "user_id": "user_id",
        "training_type": "training_type",
        "status": "status",
        "sop_id": "sop_id",
    }
    search_columns = ("title", "training_type", "notes")
    creator_field = None
    transitions = TRAINING_TRANSITIONS

    async def create(self, db, data, actor_id=None):
        with store_errors("check trainee"):
            trainee = (
                await db.execute(select(Profile.id).where(Profile.id == data["user_id"]))
            ).scalar_one_or_none()
        if trainee is None:
            raise ValidationError("Invalid user_id: user not found", field="user_id")
        sop_id = data.get("sop_id")
        if sop_id is not None and not await sop_service.exists(db, sop_id):
            raise ValidationError("Invalid sop_id: SOP not found", field="sop_id")
        return await super().create(db, data, actor_id)

    async def mark_completed(
        self,
        db: AsyncSession,
        training_id: uuid.UUID,
        completion_date: Optional[date] = None,
        score: Optional[float] = None,
        certificate_url: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TrainingRecord:
        record = await self.get(db, training_id)
        self.transition(record, TrainingStatus.COMPLETED)
        record.completion_date = completion_date or date.today()
        if score is not None:
            record.score = score
        if certificate_url is not None:
            record.certificate_url = certificate_url
        if notes is not None:
            record.notes = notes
        with store_errors("complete training record"):
            await db.flush()
        return await self.get(db, training_id)

    async def by_user(self, db: AsyncSession, user_id: uuid.UUID, page: int = 1, limit: int = 50) -> PageResult:
        return await self.list(db, {"user_id": user_id}, page, limit)


# ── Environmental monitoring ──────────────────────────────────────────────

class EnvironmentalService(RecordService[EnvironmentalReading]):
    model = EnvironmentalReading
    resource = "Environmental reading"
    plural = "environmental readings"

    creatable = frozenset({
        "room_name", "batch_id", "stage_id", "temperature", "humidity", "co2_level",
        "ph_level", "ec_level", "light_level", "target_range_min", "target_range_max",
        "status", "sensor_id", "source", "notes", "recorded_at",
    })
    filters = {"batch_id": "batch_id", "status": "status"}
    date_column = "recorded_at"
    order_by = (("recorded_at", True),)
    creator_field = "recorded_by"

    def extra_filters(self, query: Select, filters: Mapping[str, Any]) -> Select:
        room_name = filters.get("room_name")
        if room_name:
            query = query.where(EnvironmentalReading.room_name.icontains(room_name, autoescape=True))
        return query

    def defaults(self, values):
        values["recorded_at"] = values.get("recorded_at") or utcnow()
        values.setdefault("status", EnvironmentalStatus.NORMAL.value)
        return values

    async def by_batch(self, db: AsyncSession, batch_id: uuid.UUID, page: int = 1, limit: int = 50) -> PageResult:
        return await self.list(db, {"batch_id": batch_id}, page, limit)

    async def by_room(self, db: AsyncSession, room_name: str, page: int = 1, limit: int = 50) -> PageResult:
        return await self.list(db, {"room_name": room_name}, page, limit)

    async def summary(
        self,
        db: AsyncSession,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        room_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Average readings and alert count over a window (both bounds inclusive days)."""
        query = select(
            func.avg(EnvironmentalReading.temperature),
            func.avg(EnvironmentalReading.humidity),
            func.avg(EnvironmentalReading.co2_level),
            func.avg(EnvironmentalReading.ph_level),
            func.count(EnvironmentalReading.id),
            func.coalesce(
                func.sum(
                    case(
                        (
                            EnvironmentalReading.status.in_(
                                [EnvironmentalStatus.ALERT.value, EnvironmentalStatus.WARNING.value]
                            ),
                            1,
                        ),
                        else_=0,
                    )
                ),
                0,
            ),
        )
        if date_from is not None:
            query = query.where(EnvironmentalReading.recorded_at >= day_bounds(date_from))
        if date_to is not None:
            query = query.where(EnvironmentalReading.recorded_at < day_bounds(date_to, end=True))
        if room_name:
            query = query.where(EnvironmentalReading.room_name.icontains(room_name, autoescape=True))

        with store_errors("summarize environmental readings"):
            temperature, humidity, co2, ph, total, alerts = (await db.execute(query)).one()

        return {
            "average_temperature": _round2(temperature),
            "average_humidity": _round2(humidity),
            "average_co2": _round2(co2),
            "average_ph": _round2(ph),
            "total_readings": int(total or 0),
            "alerts_count": int(alerts or 0),
        }


# ── QMS record register ───────────────────────────────────────────────────

class QmsRecordService(RecordService[QmsRecord]):
    """
    Checklists, inspections and audit findings that have no table of their
    own. Status moves freely between QmsRecordStatus values; there is no
    transition table for the register.
    """

    model = QmsRecord
    resource = "QMS record"
    plural = "QMS records"

    creatable = frozenset({
        "title", "description", "record_type", "severity", "status", "batch_id", "cycle_id",
        "stage_id", "parent_record_id", "assigned_to", "due_date", "data", "tags", "attachments",
    })
    updatable = frozenset({
        "title", "description", "record_type", "severity", "status", "batch_id", "cycle_id",
        "stage_id", "assigned_to", "due_date", "completed_date", "reviewed_by", "approved_by",
        "data", "tags", "attachments",
    })
    filters = {
        "record_type": "record_type",
        "status": "status",
        "severity": "severity",
        "batch_id": "batch_id",
        "cycle_id": "cycle_id",
        "stage_id": "stage_id",
        "assigned_to": "assigned_to",
        "created_by": "created_by",
    }
    search_columns = ("title", "description", "reference_number")

    def defaults(self, values):
        values.setdefault("status", QmsRecordStatus.OPEN.value)
        values["reference_number"] = reference_number("QMS")
        return values

    async def by_batch(self, db: AsyncSession, batch_id: uuid.UUID) -> List[QmsRecord]:
        """Every record raised against a batch, newest first."""
        query = self.apply_order(select(QmsRecord).where(QmsRecord.batch_id == batch_id))
        with store_errors("fetch batch QMS records"):
            result = await db.execute(query)
        return list(result.scalars().all())

    async def metrics(self, db: AsyncSession, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Register totals for the QMS dashboard.

        A record is overdue when its due_date is before `today` and it is
        neither completed nor closed.
        """
        today = today or date.today()

        async def grouped(column) -> Dict[str, int]:
            result = await db.execute(select(column, func.count(QmsRecord.id)).group_by(column))
            return {value: count for value, count in result.all() if value is not None}

        overdue_query = select(func.count(QmsRecord.id)).where(
            QmsRecord.due_date < today,
            QmsRecord.status.not_in([QmsRecordStatus.COMPLETED.value, QmsRecordStatus.CLOSED.value]),
        )
        with store_errors("fetch QMS metrics"):
            by_status = await grouped(QmsRecord.status)
            by_type = await grouped(QmsRecord.record_type)
            by_severity = await grouped(QmsRecord.severity)
            overdue = (await db.execute(overdue_query)).scalar_one()
            recent = await self.list(db, {}, 1, 10)

        return {
            "total_records": sum(by_status.values()),
            "open_records": by_status.get(QmsRecordStatus.OPEN.value, 0),
            "completed_records": by_status.get(QmsRecordStatus.COMPLETED.value, 0),
            "overdue_records": int(overdue or 0),
            "records_by_type": by_type,
            "records_by_status": by_status,
            "records_by_severity": by_severity,
            "recent_activity": recent.records,
        }


deviation_service = DeviationService()
capa_service = CapaService()
sop_service = SopService()
training_service = TrainingService()
environmental_service = EnvironmentalService()
qms_record_service = QmsRecordService()

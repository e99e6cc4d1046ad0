"""
iCanGrow API — Cultivation Services
=====================================

Strains, growth cycles, batches, the stage catalogue and per-batch stage
progress.

Cross-entity rules:
    - A growth cycle lists its strains as [{"strain_id", "is_primary"}]; at
      least one entry is primary and every id must exist.
    - A batch's strain (given by name or id) must be one of its cycle's strains.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.exceptions import NotFoundError, ValidationError
from icangrow.lifecycle import (
    BATCH_STAGE_TRANSITIONS,
    BATCH_TRANSITIONS,
    CYCLE_TRANSITIONS,
    BatchStageStatus,
    BatchStatus,
    CycleStatus,
    GrowthStage,
)
from icangrow.models.cultivation import Batch, BatchStage, GrowthCycle, Stage, Strain
from icangrow.models.mixins import utcnow
from icangrow.services.base import RecordService, store_errors

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Strains
# ══════════════════════════════════════════════════════════════════════════


class StrainService(RecordService[Strain]):
    model = Strain
    resource = "Strain"
    plural = "strains"

    creatable = frozenset({"name", "genetics", "description", "flowering_time_days", "is_active"})
    updatable = creatable
    filters = {"is_active": "is_active"}
    search_columns = ("name", "genetics")
    order_by = (("name", False),)


# ══════════════════════════════════════════════════════════════════════════
# Growth Cycles
# ══════════════════════════════════════════════════════════════════════════


class GrowthCycleService(RecordService[GrowthCycle]):
    model = GrowthCycle
    resource = "Growth cycle"
    plural = "growth cycles"

    creatable = frozenset({"name", "facility_location", "start_date", "end_date", "status", "strains", "notes"})
    updatable = creatable
    filters = {"status": "status"}
    search_columns = ("name", "facility_location")
    date_column = "start_date"
    transitions = CYCLE_TRANSITIONS

    async def validate_strains(self, db: AsyncSession, strains: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Normalize a strain list for storage (string ids, boolean flags).

        Raises:
            ValidationError: no primary strain, or an unknown strain id
        """
        entries = [
            {"strain_id": str(entry["strain_id"]), "is_primary": bool(entry.get("is_primary"))}
            for entry in strains
        ]
        if not any(entry["is_primary"] for entry in entries):
            raise ValidationError("At least one strain must be marked as primary", field="strains")

        ids = {uuid.UUID(entry["strain_id"]) for entry in entries}
        with store_errors("validate strains"):
            found = (
                await db.execute(select(func.count(Strain.id)).where(Strain.id.in_(ids)))
            ).scalar_one()
        if found != len(ids):
            raise ValidationError("One or more strain IDs are invalid", field="strains")
        return entries

    async def create(self, db, data, actor_id=None):
        values = dict(data)
        values["strains"] = await self.validate_strains(db, values.get("strains") or [])
        values.setdefault("status", CycleStatus.PLANNING.value)
        return await super().create(db, values, actor_id)

    async def update(self, db, record_id, data):
        values = dict(data)
        if values.get("strains") is not None:
            values["strains"] = await self.validate_strains(db, values["strains"])
        return await super().update(db, record_id, values)


# ══════════════════════════════════════════════════════════════════════════
# Batches
# ══════════════════════════════════════════════════════════════════════════


class BatchService(RecordService[Batch]):
    model = Batch
    resource = "Batch"
    plural = "batches"

    creatable = frozenset({
        "name", "strain", "strain_id", "cycle_id", "room", "plant_count", "progress",
        "current_stage", "status", "start_date", "clone_date", "expected_harvest_date", "notes",
    })
    updatable = creatable
    filters = {
        "stage": "current_stage",
        "status": "status",
        "cycle_id": "cycle_id",
        "room": "room",
    }
    search_columns = ("name", "strain", "room")
    transitions = BATCH_TRANSITIONS

    def extra_filters(self, query: Select, filters: Mapping[str, Any]) -> Select:
        strain = filters.get("strain")
        if strain:
            query = query.where(Batch.strain.icontains(strain, autoescape=True))
        return query

    def defaults(self, values):
        values.setdefault("current_stage", GrowthStage.CLONING.value)
        values.setdefault("status", BatchStatus.ACTIVE.value)
        values.setdefault("progress", 0)
        return values

    async def ensure_strain_in_cycle(self, db: AsyncSession, cycle_id: uuid.UUID, strain: str) -> Strain:
        """
        Resolve `strain` (a name or an id) and check it is part of the cycle.

        Raises:
            ValidationError: unknown cycle, unknown strain, or strain not in cycle
        """
        with store_errors("validate batch strain"):
            cycle = (
                await db.execute(select(GrowthCycle).where(GrowthCycle.id == cycle_id))
            ).scalar_one_or_none()
            if cycle is None:
                raise ValidationError("Invalid cycle_id: growth cycle not found", field="cycle_id")

            resolved: Optional[Strain] = None
            try:
                strain_id = uuid.UUID(str(strain))
            except ValueError:
                strain_id = None
            if strain_id is not None:
                resolved = (await db.execute(select(Strain).where(Strain.id == strain_id))).scalar_one_or_none()
            if resolved is None:
                resolved = (
                    await db.execute(select(Strain).where(Strain.name == strain).limit(1))
                ).scalar_one_or_none()

        if resolved is None:
            raise ValidationError("Invalid strain: not found", field="strain")

        cycle_strain_ids = {str(entry.get("strain_id")) for entry in cycle.strains or []}
        if str(resolved.id) not in cycle_strain_ids:
            raise ValidationError(
                "The selected strain is not part of the specified growth cycle", field="strain"
            )
        return resolved

    async def create(self, db, data, actor_id=None):
        strain = await self.ensure_strain_in_cycle(db, data["cycle_id"], data["strain"])
        values = dict(data)
        values["strain"] = strain.name
        values["strain_id"] = strain.id
        return await super().create(db, values, actor_id)

    async def update(self, db, record_id, data):
        values = dict(data)
        if values.get("strain") is not None or values.get("cycle_id") is not None:
            current = await self.get(db, record_id)
            cycle_id = values.get("cycle_id") or current.cycle_id
            strain = await self.ensure_strain_in_cycle(db, cycle_id, values.get("strain") or current.strain)
            values["strain"] = strain.name
            values["strain_id"] = strain.id
        return await super().update(db, record_id, values)


# ══════════════════════════════════════════════════════════════════════════
# Stages
# ══════════════════════════════════════════════════════════════════════════


class StageService(RecordService[Stage]):
    model = Stage
    resource = "Stage"
    plural = "stages"

    creatable = frozenset({
        "name", "display_name", "description", "default_duration_days",
        "stage_order", "requirements", "is_active",
    })
    updatable = creatable
    filters = {"is_active": "is_active"}
    order_by = (("stage_order", False),)
    creator_field = None


class BatchStageService(RecordService[BatchStage]):
    model = BatchStage
    resource = "Batch stage"
    plural = "batch stages"

    updatable = frozenset({"status", "stage_weight", "notes"})
    creator_field = None
    transitions = BATCH_STAGE_TRANSITIONS

    async def list_for_batch(self, db: AsyncSession, batch_id: uuid.UUID) -> List[BatchStage]:
        with store_errors("fetch batch stages"):
            result = await db.execute(
                select(BatchStage)
                .where(BatchStage.batch_id == batch_id)
                .order_by(BatchStage.created_at.asc(), BatchStage.id.asc())
                .execution_options(populate_existing=True)
            )
        return list(result.scalars().all())

    async def bulk_create(
        self, db: AsyncSession, batch_id: uuid.UUID, stages: Iterable[Mapping[str, Any]]
    ) -> List[BatchStage]:
        if not await batch_service.exists(db, batch_id):
            raise NotFoundError(resource="Batch", resource_id=str(batch_id))

        entries = list(stages)
        stage_ids = {entry["stage_id"] for entry in entries}
        with store_errors("validate stages"):
            found = (
                await db.execute(select(func.count(Stage.id)).where(Stage.id.in_(stage_ids)))
            ).scalar_one()
        if found != len(stage_ids):
            raise ValidationError("One or more stage IDs are invalid", field="stages")

        records = [
            BatchStage(
                batch_id=batch_id,
                stage_id=entry["stage_id"],
                status=entry.get("status") or BatchStageStatus.PENDING.value,
                stage_weight=entry.get("stage_weight"),
                notes=entry.get("notes"),
            )
            for entry in entries
        ]
        with store_errors("create batch stages"):
            db.add_all(records)
            await db.flush()
        logger.info("Created %d stages for batch %s", len(records), batch_id)
        return await self.list_for_batch(db, batch_id)

    async def activate(self, db: AsyncSession, batch_stage_id: uuid.UUID) -> BatchStage:
        record = await self.get(db, batch_stage_id)
        self.transition(record, BatchStageStatus.ACTIVE)
        record.started_at = utcnow()
        with store_errors("activate batch stage"):
            await db.flush()
        return await self.get(db, batch_stage_id)

    async def complete(self, db: AsyncSession, batch_stage_id: uuid.UUID) -> BatchStage:
        record = await self.get(db, batch_stage_id)
        self.transition(record, BatchStageStatus.COMPLETED)
        record.completed_at = utcnow()
        with store_errors("complete batch stage"):
            await db.flush()
        return await self.get(db, batch_stage_id)


strain_service = StrainService()
growth_cycle_service = GrowthCycleService()
batch_service = BatchService()
stage_service = StageService()
batch_stage_service = BatchStageService()

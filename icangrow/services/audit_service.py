"""
iCanGrow API — Audits & Audit Trail
=====================================

AuditService     scheduled compliance audits (planned → in_progress → completed)
AuditLogService  append-only "who did what" trail; other services call
                 audit_log_service.record() inside their own transaction so the
                 log row commits or rolls back with the change it describes.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.lifecycle import AUDIT_TRANSITIONS, AuditStatus
from icangrow.models.audit_log import AuditLog
from icangrow.models.mixins import utcnow
from icangrow.models.quality import Audit
from icangrow.services.base import PageResult, RecordService, reference_number, store_errors

logger = logging.getLogger(__name__)


class AuditService(RecordService[Audit]):
    model = Audit
    resource = "Audit"
    plural = "audits"

    creatable = frozenset({
        "title", "type", "auditor", "scheduled_date", "description", "scope",
        "objectives", "criteria", "location", "documents", "batch_id", "cycle_id", "notes",
    })
    updatable = frozenset({
        "title", "type", "status", "auditor", "scheduled_date", "description", "scope",
        "objectives", "criteria", "location", "findings_count", "open_findings",
        "documents", "notes",
    })
    filters = {"status": "status", "type": "type", "auditor": "auditor"}
    search_columns = ("title", "audit_number", "auditor")
    date_column = "scheduled_date"
    order_by = (("scheduled_date", True), ("created_at", True))
    transitions = AUDIT_TRANSITIONS

    def defaults(self, values):
        values["audit_number"] = reference_number("AUD")
        values["status"] = AuditStatus.PLANNED.value
        return values

    async def complete(
        self,
        db: AsyncSession,
        audit_id: uuid.UUID,
        completed_date: Optional[datetime] = None,
        results: Optional[str] = None,
        recommendations: Optional[str] = None,
    ) -> Audit:
        audit = await self.get(db, audit_id)
        self.transition(audit, AuditStatus.COMPLETED)
        audit.completed_date = completed_date or utcnow()
        if results is not None:
            audit.results = results
        if recommendations is not None:
            audit.recommendations = recommendations
        with store_errors("complete audit"):
            await db.flush()
        logger.info("Audit %s completed", audit.audit_number)
        return await self.get(db, audit_id)


class AuditLogService(RecordService[AuditLog]):
    model = AuditLog
    resource = "Audit log"
    plural = "audit logs"

    creatable = frozenset({
        "action", "resource_type", "resource_id", "old_values", "new_values",
        "reason", "ip_address", "user_agent",
    })
    filters = {
        "user_id": "user_id",
        "action": "action",
        "resource_type": "resource_type",
        "resource_id": "resource_id",
    }
    date_column = "created_at"
    creator_field = "user_id"

    async def record(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        action: str,
        resource_type: str,
        resource_id: Any = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        reason: Optional[str] = None,
    ) -> AuditLog:
        """Append one trail row in the caller's transaction."""
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_values=jsonable_encoder(old_values) if old_values is not None else None,
            new_values=jsonable_encoder(new_values) if new_values is not None else None,
            reason=reason,
        )
        with store_errors("write audit log"):
            db.add(entry)
            await db.flush()
        logger.debug("Audit log: %s %s %s by %s", action, resource_type, resource_id, user_id)
        return entry

    async def by_resource(
        self, db: AsyncSession, resource_type: str, resource_id: str, page: int = 1, limit: int = 50
    ) -> PageResult:
        return await self.list(db, {"resource_type": resource_type, "resource_id": resource_id}, page, limit)

    async def by_user(self, db: AsyncSession, user_id: uuid.UUID, page: int = 1, limit: int = 50) -> PageResult:
        return await self.list(db, {"user_id": user_id}, page, limit)


audit_service = AuditService()
audit_log_service = AuditLogService()

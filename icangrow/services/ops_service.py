"""
Admin-only operational listings.

These used to be ad-hoc debug endpoints; they now sit behind the admin role
gate at /api/v1/ops and read through the privileged session like every other
record service.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.models.ebr import EbrRecord
from icangrow.services.base import store_errors

logger = logging.getLogger(__name__)


class OperationsService:
    async def list_ebr_records(self, db: AsyncSession, limit: int = 100) -> List[Row]:
        """id, ebr_number, batch_name and created_at of the newest eBR rows."""
        query = (
            select(EbrRecord.id, EbrRecord.ebr_number, EbrRecord.batch_name, EbrRecord.created_at)
            .order_by(EbrRecord.created_at.desc())
            .limit(limit)
        )
        with store_errors("list eBR records"):
            rows = (await db.execute(query)).all()
        logger.info("Ops listing returned %d eBR rows", len(rows))
        return list(rows)


ops_service = OperationsService()

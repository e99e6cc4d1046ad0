"""Admin-only operational listings under /api/v1/ops."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_privileged_session, require_roles
from icangrow.lifecycle import Role
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, ok
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope
from icangrow.schemas.ebr import EbrDebugRow
from icangrow.services.ops_service import ops_service

router = APIRouter(prefix=f"{API_PREFIX}/ops", tags=["Operations"], responses=ERROR_RESPONSES)


@router.get(
    "/ebr-records",
    response_model=Envelope[List[EbrDebugRow]],
    summary="Newest eBR rows (id, number, batch, created_at)",
)
async def list_ebr_records(
    limit: int = Query(default=100, ge=1, le=500),
    user: CurrentUser = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await ops_service.list_ebr_records(db, limit))

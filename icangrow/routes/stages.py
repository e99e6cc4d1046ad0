"""
iCanGrow API — Stage Routes
=============================

/api/v1/stages: the growth-stage catalogue (admin maintained) and the
per-batch stage progress (pending → active → completed).
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_privileged_session, require_roles
from icangrow.lifecycle import Role
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, QUALITY_ROLES, Pagination, ok, paged
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope, Page
from icangrow.schemas.cultivation import (
    BatchStageBulkCreate,
    BatchStageResponse,
    BatchStageUpdate,
    StageCreate,
    StageResponse,
    StageUpdate,
)
from icangrow.services.cultivation_service import batch_stage_service, stage_service

router = APIRouter(prefix=f"{API_PREFIX}/stages", tags=["Stages"], responses=ERROR_RESPONSES)

admin_only = require_roles(Role.ADMIN)
reviewer = require_roles(*QUALITY_ROLES)


@router.get("", response_model=Envelope[Page[StageResponse]], summary="List stages in stage order")
async def list_stages(
    is_active: Optional[bool] = Query(default=None),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await stage_service.list(db, {"is_active": is_active}, pagination.page, pagination.limit))


@router.post(
    "",
    response_model=Envelope[StageResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a stage",
)
async def create_stage(
    body: StageCreate,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await stage_service.create(db, body.model_dump()), "Stage created successfully")


# ── Batch stages ──────────────────────────────────────────────────────────


@router.get(
    "/batch/{batch_id}",
    response_model=Envelope[List[BatchStageResponse]],
    summary="Stages of a batch in creation order",
)
async def list_batch_stages(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await batch_stage_service.list_for_batch(db, batch_id))


@router.post(
    "/batch/{batch_id}",
    response_model=Envelope[List[BatchStageResponse]],
    status_code=status.HTTP_201_CREATED,
    summary="Attach stages to a batch",
)
async def create_batch_stages(
    batch_id: uuid.UUID,
    body: BatchStageBulkCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    stages = await batch_stage_service.bulk_create(db, batch_id, body.model_dump()["stages"])
    return ok(stages, "Batch stages created successfully")


@router.patch(
    "/batch-stages/{batch_stage_id}/activate",
    response_model=Envelope[BatchStageResponse],
    summary="Start a batch stage",
)
async def activate_batch_stage(
    batch_stage_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await batch_stage_service.activate(db, batch_stage_id), "Batch stage activated successfully")


@router.patch(
    "/batch-stages/{batch_stage_id}/complete",
    response_model=Envelope[BatchStageResponse],
    summary="Complete a batch stage",
)
async def complete_batch_stage(
    batch_stage_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await batch_stage_service.complete(db, batch_stage_id), "Batch stage completed successfully")


@router.put(
    "/batch-stages/{batch_stage_id}",
    response_model=Envelope[BatchStageResponse],
    summary="Update a batch stage",
)
async def update_batch_stage(
    batch_stage_id: uuid.UUID,
    body: BatchStageUpdate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await batch_stage_service.update(db, batch_stage_id, body.model_dump(exclude_unset=True))
    return ok(record, "Batch stage updated successfully")


# ── Catalogue entries ─────────────────────────────────────────────────────


@router.get("/{stage_id}", response_model=Envelope[StageResponse], summary="Get a stage")
async def get_stage(
    stage_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await stage_service.get(db, stage_id))


@router.put("/{stage_id}", response_model=Envelope[StageResponse], summary="Update a stage")
async def update_stage(
    stage_id: uuid.UUID,
    body: StageUpdate,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    stage = await stage_service.update(db, stage_id, body.model_dump(exclude_unset=True))
    return ok(stage, "Stage updated successfully")

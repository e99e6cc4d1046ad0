"""
iCanGrow API — Cultivation (ERP) Routes
=========================================

/api/v1/erp/strains, /api/v1/erp/growth_cycles, /api/v1/erp/batches.

Reads are open to any active user. Strains and cycles are maintained by
admin / cultivation_lead, batches by grower / admin; deletes are admin only.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_current_user, get_privileged_session, require_roles
from icangrow.lifecycle import BatchStatus, CycleStatus, GrowthStage, Role
from icangrow.routes.common import API_PREFIX, CULTIVATION_ROLES, ERROR_RESPONSES, Pagination, ok, paged
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope, Page
from icangrow.schemas.cultivation import (
    BatchCreate,
    BatchResponse,
    BatchUpdate,
    GrowthCycleCreate,
    GrowthCycleResponse,
    GrowthCycleUpdate,
    StrainCreate,
    StrainResponse,
    StrainUpdate,
)
from icangrow.services.cultivation_service import (
    batch_service,
    growth_cycle_service,
    strain_service,
)

router = APIRouter(prefix=f"{API_PREFIX}/erp", responses=ERROR_RESPONSES)

admin_only = require_roles(Role.ADMIN)
cultivation_lead = require_roles(*CULTIVATION_ROLES)
grower = require_roles(Role.GROWER, Role.ADMIN)


# ══════════════════════════════════════════════════════════════════════════
# Strains
# ══════════════════════════════════════════════════════════════════════════


@router.get("/strains", response_model=Envelope[Page[StrainResponse]], tags=["Strains"], summary="List strains")
async def list_strains(
    is_active: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    result = await strain_service.list(db, {"is_active": is_active, "q": q}, pagination.page, pagination.limit)
    return paged(result)


@router.get("/strains/{strain_id}", response_model=Envelope[StrainResponse], tags=["Strains"], summary="Get a strain")
async def get_strain(
    strain_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await strain_service.get(db, strain_id))


@router.post(
    "/strains",
    response_model=Envelope[StrainResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Strains"],
    summary="Create a strain",
)
async def create_strain(
    body: StrainCreate,
    user: CurrentUser = Depends(cultivation_lead),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await strain_service.create(db, body.model_dump(), user.id), "Strain created successfully")


@router.put("/strains/{strain_id}", response_model=Envelope[StrainResponse], tags=["Strains"], summary="Update a strain")
async def update_strain(
    strain_id: uuid.UUID,
    body: StrainUpdate,
    user: CurrentUser = Depends(cultivation_lead),
    db: AsyncSession = Depends(get_privileged_session),
):
    strain = await strain_service.update(db, strain_id, body.model_dump(exclude_unset=True))
    return ok(strain, "Strain updated successfully")


@router.delete("/strains/{strain_id}", response_model=Envelope[None], tags=["Strains"], summary="Delete a strain")
async def delete_strain(
    strain_id: uuid.UUID,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    await strain_service.delete(db, strain_id)
    return ok(message="Strain deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Growth Cycles
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/growth_cycles",
    response_model=Envelope[Page[GrowthCycleResponse]],
    tags=["Growth Cycles"],
    summary="List growth cycles",
)
async def list_growth_cycles(
    status_filter: Optional[CycleStatus] = Query(default=None, alias="status"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "status": status_filter.value if status_filter else None,
        "date_from": date_from,
        "date_to": date_to,
        "q": q,
    }
    return paged(await growth_cycle_service.list(db, filters, pagination.page, pagination.limit))


@router.get(
    "/growth_cycles/{cycle_id}",
    response_model=Envelope[GrowthCycleResponse],
    tags=["Growth Cycles"],
    summary="Get a growth cycle",
)
async def get_growth_cycle(
    cycle_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await growth_cycle_service.get(db, cycle_id))


@router.post(
    "/growth_cycles",
    response_model=Envelope[GrowthCycleResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Growth Cycles"],
    summary="Create a growth cycle",
)
async def create_growth_cycle(
    body: GrowthCycleCreate,
    user: CurrentUser = Depends(cultivation_lead),
    db: AsyncSession = Depends(get_privileged_session),
):
    cycle = await growth_cycle_service.create(db, body.model_dump(), user.id)
    return ok(cycle, "Growth cycle created successfully")


@router.put(
    "/growth_cycles/{cycle_id}",
    response_model=Envelope[GrowthCycleResponse],
    tags=["Growth Cycles"],
    summary="Update a growth cycle",
)
async def update_growth_cycle(
    cycle_id: uuid.UUID,
    body: GrowthCycleUpdate,
    user: CurrentUser = Depends(cultivation_lead),
    db: AsyncSession = Depends(get_privileged_session),
):
    cycle = await growth_cycle_service.update(db, cycle_id, body.model_dump(exclude_unset=True))
    return ok(cycle, "Growth cycle updated successfully")


@router.delete(
    "/growth_cycles/{cycle_id}",
    response_model=Envelope[None],
    tags=["Growth Cycles"],
    summary="Delete a growth cycle",
)
async def delete_growth_cycle(
    cycle_id: uuid.UUID,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    await growth_cycle_service.delete(db, cycle_id)
    return ok(message="Growth cycle deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Batches
# ══════════════════════════════════════════════════════════════════════════


@router.get("/batches", response_model=Envelope[Page[BatchResponse]], tags=["Batches"], summary="List batches")
async def list_batches(
    stage: Optional[GrowthStage] = Query(default=None),
    status_filter: Optional[BatchStatus] = Query(default=None, alias="status"),
    cycle_id: Optional[uuid.UUID] = Query(default=None),
    room: Optional[str] = Query(default=None, max_length=100),
    strain: Optional[str] = Query(default=None, max_length=100, description="Substring of the strain name"),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "stage": stage.value if stage else None,
        "status": status_filter.value if status_filter else None,
        "cycle_id": cycle_id,
        "room": room,
        "strain": strain,
        "q": q,
    }
    return paged(await batch_service.list(db, filters, pagination.page, pagination.limit))


@router.get("/batches/{batch_id}", response_model=Envelope[BatchResponse], tags=["Batches"], summary="Get a batch")
async def get_batch(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await batch_service.get(db, batch_id))


@router.post(
    "/batches",
    response_model=Envelope[BatchResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Batches"],
    summary="Create a batch within a growth cycle",
)
async def create_batch(
    body: BatchCreate,
    user: CurrentUser = Depends(grower),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await batch_service.create(db, body.model_dump(), user.id), "Batch created successfully")


@router.put("/batches/{batch_id}", response_model=Envelope[BatchResponse], tags=["Batches"], summary="Update a batch")
async def update_batch(
    batch_id: uuid.UUID,
    body: BatchUpdate,
    user: CurrentUser = Depends(grower),
    db: AsyncSession = Depends(get_privileged_session),
):
    batch = await batch_service.update(db, batch_id, body.model_dump(exclude_unset=True))
    return ok(batch, "Batch updated successfully")


@router.delete("/batches/{batch_id}", response_model=Envelope[None], tags=["Batches"], summary="Delete a batch")
async def delete_batch(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    await batch_service.delete(db, batch_id)
    return ok(message="Batch deleted successfully")

"""
iCanGrow API — Production Record Routes
=========================================

/api/v1/erp/daily_logs, /packaging, /finished_goods, /waste and /review.

Reads are open to any active profile. Writes are gated per record:
    daily logs, waste      grower, admin
    packaging runs         packaging_dispatch, qa_manager, admin
    finished goods         packaging_dispatch, admin
    batch review           admin, qa_manager
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_current_user, get_privileged_session, require_roles
from icangrow.lifecycle import GrowthStage, PassFailStatus, Role
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, QA_ROLES, Pagination, ok, paged
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope, Page
from icangrow.schemas.ebr import EbrRecordResponse
from icangrow.schemas.production import (
    BatchReviewRequest,
    DailyLogCreate,
    DailyLogResponse,
    DailyLogUpdate,
    FinishedGoodCreate,
    FinishedGoodResponse,
    FinishedGoodUpdate,
    PackagingRunCreate,
    PackagingRunResponse,
    WasteRecordCreate,
    WasteRecordResponse,
)
from icangrow.services.production_service import (
    batch_review_service,
    daily_log_service,
    finished_goods_service,
    packaging_service,
    waste_service,
)

router = APIRouter(prefix=f"{API_PREFIX}/erp", responses=ERROR_RESPONSES)

grower = require_roles(Role.GROWER, Role.ADMIN)
packer = require_roles(Role.PACKAGING_DISPATCH, Role.QA_MANAGER, Role.ADMIN)
warehouse = require_roles(Role.PACKAGING_DISPATCH, Role.ADMIN)
qa_manager = require_roles(*QA_ROLES)

REVIEW_MESSAGES = {
    PassFailStatus.PASS.value: "Batch approved and closed successfully",
    PassFailStatus.FAIL.value: "Batch rejected",
    PassFailStatus.CONDITIONAL.value: "Batch conditionally approved",
}


# ══════════════════════════════════════════════════════════════════════════
# Daily logs
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/daily_logs",
    response_model=Envelope[Page[DailyLogResponse]],
    tags=["Daily Logs"],
    summary="List daily logs, newest day first",
)
async def list_daily_logs(
    batch_id: Optional[uuid.UUID] = Query(default=None),
    stage: Optional[GrowthStage] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "batch_id": batch_id,
        "stage": stage.value if stage else None,
        "date_from": date_from,
        "date_to": date_to,
    }
    return paged(await daily_log_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/daily_logs",
    response_model=Envelope[DailyLogResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Daily Logs"],
    summary="Log a day of a batch",
)
async def create_daily_log(
    body: DailyLogCreate,
    user: CurrentUser = Depends(grower),
    db: AsyncSession = Depends(get_privileged_session),
):
    log = await daily_log_service.create(db, body.model_dump(), user.id)
    return ok(log, "Daily log created successfully")


@router.get(
    "/daily_logs/{log_id}",
    response_model=Envelope[DailyLogResponse],
    tags=["Daily Logs"],
    summary="Get a daily log",
)
async def get_daily_log(
    log_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await daily_log_service.get(db, log_id))


@router.put(
    "/daily_logs/{log_id}",
    response_model=Envelope[DailyLogResponse],
    tags=["Daily Logs"],
    summary="Update a daily log (its batch cannot change)",
)
async def update_daily_log(
    log_id: uuid.UUID,
    body: DailyLogUpdate,
    user: CurrentUser = Depends(grower),
    db: AsyncSession = Depends(get_privileged_session),
):
    log = await daily_log_service.update(db, log_id, body.model_dump(exclude_unset=True))
    return ok(log, "Daily log updated successfully")


# ══════════════════════════════════════════════════════════════════════════
# Packaging runs
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/packaging",
    response_model=Envelope[Page[PackagingRunResponse]],
    tags=["Packaging"],
    summary="List packaging runs",
)
async def list_packaging_runs(
    batch_id: Optional[uuid.UUID] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status", max_length=50),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {"batch_id": batch_id, "status": status_filter}
    return paged(await packaging_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/packaging",
    response_model=Envelope[PackagingRunResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Packaging"],
    summary="Record a packaging run",
)
async def create_packaging_run(
    body: PackagingRunCreate,
    user: CurrentUser = Depends(packer),
    db: AsyncSession = Depends(get_privileged_session),
):
    run = await packaging_service.create(db, body.model_dump(), user.id)
    return ok(run, "Packaging run created successfully")


@router.get(
    "/packaging/{run_id}",
    response_model=Envelope[PackagingRunResponse],
    tags=["Packaging"],
    summary="Get a packaging run",
)
async def get_packaging_run(
    run_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await packaging_service.get(db, run_id))


# ══════════════════════════════════════════════════════════════════════════
# Finished goods
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/finished_goods",
    response_model=Envelope[Page[FinishedGoodResponse]],
    tags=["Finished Goods"],
    summary="List finished goods",
)
async def list_finished_goods(
    strain_name: Optional[str] = Query(default=None, max_length=100, description="Substring of strain"),
    qa_status: Optional[str] = Query(default=None, max_length=50),
    batch_id: Optional[uuid.UUID] = Query(default=None),
    storage_location: Optional[str] = Query(default=None, max_length=100, description="Substring"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "strain_name": strain_name,
        "qa_status": qa_status,
        "batch_id": batch_id,
        "storage_location": storage_location,
    }
    return paged(await finished_goods_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/finished_goods",
    response_model=Envelope[FinishedGoodResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Finished Goods"],
    summary="Add a finished goods item",
)
async def create_finished_good(
    body: FinishedGoodCreate,
    user: CurrentUser = Depends(warehouse),
    db: AsyncSession = Depends(get_privileged_session),
):
    item = await finished_goods_service.create(db, body.model_dump(), user.id)
    return ok(item, "Finished goods item created successfully")


@router.get(
    "/finished_goods/{item_id}",
    response_model=Envelope[FinishedGoodResponse],
    tags=["Finished Goods"],
    summary="Get a finished goods item",
)
async def get_finished_good(
    item_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await finished_goods_service.get(db, item_id))


@router.put(
    "/finished_goods/{item_id}",
    response_model=Envelope[FinishedGoodResponse],
    tags=["Finished Goods"],
    summary="Update stock, pricing or QA status of a finished goods item",
)
async def update_finished_good(
    item_id: uuid.UUID,
    body: FinishedGoodUpdate,
    user: CurrentUser = Depends(warehouse),
    db: AsyncSession = Depends(get_privileged_session),
):
    item = await finished_goods_service.update(db, item_id, body.model_dump(exclude_unset=True))
    return ok(item, "Finished goods item updated successfully")


# ══════════════════════════════════════════════════════════════════════════
# Waste
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/waste",
    response_model=Envelope[Page[WasteRecordResponse]],
    tags=["Waste"],
    summary="List waste records, latest disposal first",
)
async def list_waste_records(
    batch_id: Optional[uuid.UUID] = Query(default=None),
    waste_type: Optional[str] = Query(default=None, max_length=100),
    disposal_method: Optional[str] = Query(default=None, max_length=100),
    date_from: Optional[date] = Query(default=None, description="disposal_date on or after"),
    date_to: Optional[date] = Query(default=None, description="disposal_date on or before"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "batch_id": batch_id,
        "waste_type": waste_type,
        "disposal_method": disposal_method,
        "date_from": date_from,
        "date_to": date_to,
    }
    return paged(await waste_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/waste",
    response_model=Envelope[WasteRecordResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Waste"],
    summary="Record disposed waste",
)
async def create_waste_record(
    body: WasteRecordCreate,
    user: CurrentUser = Depends(grower),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await waste_service.create(db, body.model_dump(), user.id)
    return ok(record, "Waste record created successfully")


@router.get(
    "/waste/{record_id}",
    response_model=Envelope[WasteRecordResponse],
    tags=["Waste"],
    summary="Get a waste record",
)
async def get_waste_record(
    record_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await waste_service.get(db, record_id))


# ══════════════════════════════════════════════════════════════════════════
# Batch review
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/review/{batch_id}",
    response_model=Envelope[EbrRecordResponse],
    tags=["Batch Review"],
    summary="The batch record (eBR) QA reviews",
)
async def get_batch_record(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await batch_review_service.get_batch_record(db, batch_id))


@router.post(
    "/review/{batch_id}",
    response_model=Envelope[EbrRecordResponse],
    tags=["Batch Review"],
    summary="QA sign-off of a batch; a pass closes it",
)
async def review_batch(
    batch_id: uuid.UUID,
    body: BatchReviewRequest,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await batch_review_service.review(
        db,
        batch_id,
        user.id,
        body.pass_fail_status,
        review_notes=body.review_notes,
        rejection_reason=body.rejection_reason,
        requires_reprocessing=body.requires_reprocessing,
    )
    return ok(record, REVIEW_MESSAGES[body.pass_fail_status])

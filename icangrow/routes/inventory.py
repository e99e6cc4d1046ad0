"""
iCanGrow API — Inventory Routes
=================================

/api/v1/inventory: packaging-stage lots, the stock movement ledger,
adjustments, quarantine and dashboard counts, plus the batch lookups
(details, stage history, recent daily logs) the inventory screens show
alongside a lot.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_current_user, get_privileged_session
from icangrow.lifecycle import LotStatus
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, Pagination, ok, paged
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope, Page
from icangrow.schemas.cultivation import BatchResponse, BatchStageResponse
from icangrow.schemas.inventory import (
    InventoryLotResponse,
    InventoryStats,
    QuarantineResult,
    QuarantineToggle,
    StockAdjust,
    StockAdjustResult,
    StockMovementResponse,
)
from icangrow.schemas.production import DailyLogResponse
from icangrow.services.inventory_service import inventory_service
from icangrow.services.production_service import daily_log_service

router = APIRouter(prefix=f"{API_PREFIX}/inventory", tags=["Inventory"], responses=ERROR_RESPONSES)


@router.get("/lots", response_model=Envelope[Page[InventoryLotResponse]], summary="List packaging-stage lots")
async def list_lots(
    facility: Optional[str] = Query(default=None, max_length=100),
    product_type: Optional[str] = Query(default=None, max_length=50),
    status_filter: Optional[LotStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200, description="Lot code, product or strain"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "facility": facility,
        "product_type": product_type,
        "status": status_filter.value if status_filter else None,
        "q": q,
    }
    return paged(await inventory_service.list(db, filters, pagination.page, pagination.limit))


@router.get("/lots/{lot_id}", response_model=Envelope[InventoryLotResponse], summary="Get a lot")
async def get_lot(
    lot_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await inventory_service.get_lot(db, lot_id))


@router.get(
    "/lots/{lot_id}/movements",
    response_model=Envelope[List[StockMovementResponse]],
    summary="Stock movement ledger of a lot, newest first",
)
async def list_stock_movements(
    lot_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await inventory_service.stock_movements(db, lot_id))


@router.post(
    "/lots/{lot_id}/adjust",
    response_model=Envelope[StockAdjustResult],
    summary="Apply a signed stock adjustment",
)
async def adjust_stock(
    lot_id: uuid.UUID,
    body: StockAdjust,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    result = await inventory_service.adjust_stock(
        db, lot_id, body.quantity, body.reason, user.id, body.unit_of_measure
    )
    return ok(result, "Stock adjusted successfully")


@router.patch(
    "/lots/{lot_id}/quarantine",
    response_model=Envelope[QuarantineResult],
    summary="Quarantine or release a lot",
)
async def toggle_quarantine(
    lot_id: uuid.UUID,
    body: QuarantineToggle,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    result = await inventory_service.toggle_quarantine(db, lot_id, body.action, user.id, body.reason)
    message = "Lot placed in quarantine" if body.action == "quarantine" else "Lot released from quarantine"
    return ok(result, message)


@router.get("/stats", response_model=Envelope[InventoryStats], summary="Inventory dashboard counts")
async def inventory_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await inventory_service.stats(db))


@router.get("/batches", response_model=Envelope[List[BatchResponse]], summary="All batches, newest first")
async def list_all_batches(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await inventory_service.all_batches(db))


@router.get("/batches/{batch_id}", response_model=Envelope[BatchResponse], summary="Batch behind a lot")
async def get_batch_info(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await inventory_service.batch_info(db, batch_id))


@router.get(
    "/batches/{batch_id}/stages",
    response_model=Envelope[List[BatchStageResponse]],
    summary="Stage history of a batch",
)
async def list_batch_stage_history(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await inventory_service.batch_stages(db, batch_id))


@router.get(
    "/batches/{batch_id}/daily-logs",
    response_model=Envelope[List[DailyLogResponse]],
    summary="Most recent daily logs of a batch",
)
async def list_batch_daily_logs(
    batch_id: uuid.UUID,
    limit: int = Query(default=5, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    logs = await daily_log_service.recent_for_batch(db, batch_id, limit)
    return ok(logs, "Daily logs retrieved successfully")

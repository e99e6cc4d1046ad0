"""
iCanGrow API — eBR Routes
===========================

What:  /api/v1/qms/ebr: electronic batch record listing, checklist review and
       the approve / reject / reopen disposition.
Who:   admin, qa_manager and cultivation_lead; reopen is admin / qa_manager.

Static paths (/statistics/overview, /batch/{id}, /checklist/{id}) are
declared before /{ebr_id} so they are not captured by it.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_privileged_session, require_roles
from icangrow.exceptions import NotFoundError
from icangrow.lifecycle import PassFailStatus
from icangrow.routes.common import (
    API_PREFIX,
    ERROR_RESPONSES,
    QA_ROLES,
    QUALITY_ROLES,
    Pagination,
    ok,
    paged,
)
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope, Page
from icangrow.schemas.ebr import (
    ApproveRequest,
    ChecklistItemCreate,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    EbrCreate,
    EbrDetails,
    EbrRecordResponse,
    EbrStatistics,
    RejectRequest,
    ReopenRequest,
)
from icangrow.services.ebr_service import ebr_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/qms/ebr", tags=["eBR"], responses=ERROR_RESPONSES)

reviewer = require_roles(*QUALITY_ROLES)


@router.get(
    "",
    response_model=Envelope[Page[EbrRecordResponse]],
    summary="List eBR records",
)
async def list_ebr_records(
    batch_id: Optional[uuid.UUID] = Query(default=None),
    compliance_status: Optional[str] = Query(default=None, max_length=50, description="e.g. approved"),
    pass_fail_status: Optional[PassFailStatus] = Query(default=None),
    date_from: Optional[date] = Query(default=None, description="start_date on or after"),
    date_to: Optional[date] = Query(default=None, description="start_date on or before"),
    q: Optional[str] = Query(default=None, max_length=200, description="Search number, batch, strain, notes"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    """Newest first. `q` is a case-insensitive substring match across several columns."""
    filters = {
        "batch_id": batch_id,
        "compliance_status": compliance_status,
        "pass_fail_status": pass_fail_status.value if pass_fail_status else None,
        "date_from": date_from,
        "date_to": date_to,
        "q": q,
    }
    result = await ebr_service.list(db, filters, pagination.page, pagination.limit)
    return paged(result)


@router.post(
    "",
    response_model=Envelope[EbrRecordResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an eBR record from a batch",
)
async def create_ebr_record(
    body: EbrCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await ebr_service.create_record(db, body.batch_id, user.id)
    return ok(record, "eBR record created successfully")


@router.get(
    "/statistics/overview",
    response_model=Envelope[EbrStatistics],
    summary="Pass/fail counts and compliance rates",
)
async def get_ebr_statistics(
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await ebr_service.statistics(db))


@router.get(
    "/batch/{batch_id}",
    response_model=Envelope[EbrRecordResponse],
    summary="Get the eBR record of a batch",
)
async def get_ebr_record_by_batch(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await ebr_service.get_by_batch(db, batch_id)
    if record is None:
        raise NotFoundError(
            resource="eBR record",
            resource_id=str(batch_id),
            message="No eBR record found for this batch",
        )
    return ok(record)


@router.put(
    "/checklist/{item_id}",
    response_model=Envelope[ChecklistItemResponse],
    summary="Update a checklist item",
)
async def update_checklist_item(
    item_id: uuid.UUID,
    body: ChecklistItemUpdate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    item = await ebr_service.update_checklist_item(db, item_id, body.model_dump(exclude_unset=True))
    return ok(item, "Checklist item updated successfully")


@router.get(
    "/{ebr_id}",
    response_model=Envelope[EbrRecordResponse],
    summary="Get an eBR record",
)
async def get_ebr_record(
    ebr_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await ebr_service.get(db, ebr_id))


@router.get(
    "/{ebr_id}/checklist",
    response_model=Envelope[List[ChecklistItemResponse]],
    summary="Checklist items in the order they were added",
)
async def get_ebr_checklist(
    ebr_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await ebr_service.get_checklist(db, ebr_id))


@router.post(
    "/{ebr_id}/checklist",
    response_model=Envelope[ChecklistItemResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a checklist item",
)
async def add_checklist_item(
    ebr_id: uuid.UUID,
    body: ChecklistItemCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    item = await ebr_service.add_checklist_item(db, ebr_id, user.id, body.model_dump())
    return ok(item, "Checklist item added successfully")


@router.get(
    "/{ebr_id}/details",
    response_model=Envelope[EbrDetails],
    summary="eBR record together with its checklist",
)
async def get_ebr_details(
    ebr_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await ebr_service.get_details(db, ebr_id))


@router.post(
    "/{ebr_id}/approve",
    response_model=Envelope[EbrRecordResponse],
    summary="Approve (pass) an eBR record",
)
async def approve_ebr_record(
    ebr_id: uuid.UUID,
    body: Optional[ApproveRequest] = None,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await ebr_service.approve(db, ebr_id, user.id, body.approval_reason if body else None)
    return ok(record, "eBR record approved successfully")


@router.post(
    "/{ebr_id}/reject",
    response_model=Envelope[EbrRecordResponse],
    summary="Reject (fail) an eBR record",
)
async def reject_ebr_record(
    ebr_id: uuid.UUID,
    body: RejectRequest,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await ebr_service.reject(
        db, ebr_id, user.id, body.rejection_reason, body.requires_reprocessing
    )
    return ok(record, "eBR record rejected successfully")


@router.post(
    "/{ebr_id}/reopen",
    response_model=Envelope[EbrRecordResponse],
    summary="Return a disposed eBR record to pending",
)
async def reopen_ebr_record(
    ebr_id: uuid.UUID,
    body: ReopenRequest,
    user: CurrentUser = Depends(require_roles(*QA_ROLES)),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await ebr_service.reopen(db, ebr_id, user.id, body.reason)
    return ok(record, "eBR record reopened successfully")

"""
iCanGrow API — Audit Routes
=============================

/api/v1/audits       scheduled compliance audits
/api/v1/audit-logs   the append-only change trail
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_privileged_session, require_roles
from icangrow.lifecycle import AuditStatus
from icangrow.middleware.logging import client_ip
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, QA_ROLES, QUALITY_ROLES, Pagination, ok, paged
from icangrow.schemas.audits import (
    AuditComplete,
    AuditCreate,
    AuditLogCreate,
    AuditLogResponse,
    AuditResponse,
    AuditUpdate,
)
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.common import Envelope, Page
from icangrow.services.audit_service import audit_log_service, audit_service

router = APIRouter(prefix=API_PREFIX, responses=ERROR_RESPONSES)

reviewer = require_roles(*QUALITY_ROLES)
qa_manager = require_roles(*QA_ROLES)


# ── Audits ────────────────────────────────────────────────────────────────


@router.get("/audits", response_model=Envelope[Page[AuditResponse]], tags=["Audits"], summary="List audits")
async def list_audits(
    status_filter: Optional[AuditStatus] = Query(default=None, alias="status"),
    type: Optional[str] = Query(default=None, max_length=50),
    auditor: Optional[str] = Query(default=None, max_length=100),
    date_from: Optional[date] = Query(default=None, description="Scheduled on or after"),
    date_to: Optional[date] = Query(default=None, description="Scheduled on or before"),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "status": status_filter.value if status_filter else None,
        "type": type,
        "auditor": auditor,
        "date_from": date_from,
        "date_to": date_to,
        "q": q,
    }
    return paged(await audit_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/audits",
    response_model=Envelope[AuditResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Audits"],
    summary="Schedule an audit",
)
async def create_audit(
    body: AuditCreate,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await audit_service.create(db, body.model_dump(), user.id), "Audit created successfully")


@router.get("/audits/{audit_id}", response_model=Envelope[AuditResponse], tags=["Audits"], summary="Get an audit")
async def get_audit(
    audit_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await audit_service.get(db, audit_id))


@router.put("/audits/{audit_id}", response_model=Envelope[AuditResponse], tags=["Audits"], summary="Update an audit")
async def update_audit(
    audit_id: uuid.UUID,
    body: AuditUpdate,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    audit = await audit_service.update(db, audit_id, body.model_dump(exclude_unset=True))
    return ok(audit, "Audit updated successfully")


@router.post(
    "/audits/{audit_id}/complete",
    response_model=Envelope[AuditResponse],
    tags=["Audits"],
    summary="Complete an audit",
)
async def complete_audit(
    audit_id: uuid.UUID,
    body: Optional[AuditComplete] = None,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    body = body or AuditComplete()
    audit = await audit_service.complete(
        db, audit_id, body.completed_date, body.results, body.recommendations
    )
    return ok(audit, "Audit completed successfully")


# ── Audit logs ────────────────────────────────────────────────────────────


@router.get(
    "/audit-logs",
    response_model=Envelope[Page[AuditLogResponse]],
    tags=["Audit Logs"],
    summary="List audit log entries, newest first",
)
async def list_audit_logs(
    user_id: Optional[uuid.UUID] = Query(default=None),
    action: Optional[str] = Query(default=None, max_length=50),
    resource_type: Optional[str] = Query(default=None, max_length=50),
    resource_id: Optional[str] = Query(default=None, max_length=64),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "user_id": user_id,
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "date_from": date_from,
        "date_to": date_to,
    }
    return paged(await audit_log_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/audit-logs",
    response_model=Envelope[AuditLogResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Audit Logs"],
    summary="Append an audit log entry",
)
async def create_audit_log(
    body: AuditLogCreate,
    request: Request,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    data = body.model_dump()
    data["reason"] = data.pop("details")
    data["ip_address"] = client_ip(request)
    data["user_agent"] = request.headers.get("user-agent")
    return ok(await audit_log_service.create(db, data, user.id), "Audit log created successfully")


@router.get(
    "/audit-logs/resource/{resource_type}/{resource_id}",
    response_model=Envelope[Page[AuditLogResponse]],
    tags=["Audit Logs"],
    summary="Trail of one record",
)
async def list_audit_logs_by_resource(
    resource_type: str,
    resource_id: str,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    result = await audit_log_service.by_resource(db, resource_type, resource_id, pagination.page, pagination.limit)
    return paged(result)


@router.get(
    "/audit-logs/user/{user_id}",
    response_model=Envelope[Page[AuditLogResponse]],
    tags=["Audit Logs"],
    summary="Trail of one user's actions",
)
async def list_audit_logs_by_user(
    user_id: uuid.UUID,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await audit_log_service.by_user(db, user_id, pagination.page, pagination.limit))

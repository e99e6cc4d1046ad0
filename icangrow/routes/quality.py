"""
iCanGrow API — QMS Record Routes
==================================

/api/v1/qms/deviations, /capas, /sops, /training, /environment, the generic
/records register and /metrics.

Quality records are open to admin, qa_manager and cultivation_lead; SOP
authoring and approval is admin / qa_manager; environmental readings are
also open to environmental_tech.
"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_privileged_session, require_roles
from icangrow.lifecycle import (
    CapaActionType,
    CapaStatus,
    DeviationStatus,
    EnvironmentalStatus,
    Priority,
    ProfileStatus,
    QmsRecordStatus,
    QmsRecordType,
    Role,
    Severity,
    SopStatus,
    TrainingStatus,
)
from icangrow.routes.common import (
    API_PREFIX,
    ERROR_RESPONSES,
    QA_ROLES,
    QUALITY_ROLES,
    Pagination,
    ok,
    paged,
)
from icangrow.schemas.auth import CurrentUser, UserResponse
from icangrow.schemas.common import Envelope, Page
from icangrow.schemas.quality import (
    CapaComplete,
    CapaCreate,
    CapaResponse,
    CapaUpdate,
    DeviationCreate,
    DeviationResolve,
    DeviationResponse,
    DeviationUpdate,
    EnvironmentalReadingCreate,
    EnvironmentalReadingResponse,
    EnvironmentalSummary,
    QmsMetrics,
    QmsRecordCreate,
    QmsRecordResponse,
    QmsRecordUpdate,
    SopCreate,
    SopResponse,
    SopUpdate,
    TrainingComplete,
    TrainingCreate,
    TrainingResponse,
    TrainingUpdate,
)
from icangrow.services.quality_service import (
    capa_service,
    deviation_service,
    environmental_service,
    qms_record_service,
    sop_service,
    training_service,
)
from icangrow.services.user_service import user_service

router = APIRouter(prefix=f"{API_PREFIX}/qms", responses=ERROR_RESPONSES)

reviewer = require_roles(*QUALITY_ROLES)
qa_manager = require_roles(*QA_ROLES)
environment_staff = require_roles(*QUALITY_ROLES, Role.ENVIRONMENTAL_TECH)


def _value(member) -> Optional[str]:
    return member.value if member is not None else None


# ══════════════════════════════════════════════════════════════════════════
# Deviations
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/deviations",
    response_model=Envelope[Page[DeviationResponse]],
    tags=["Deviations"],
    summary="List deviations",
)
async def list_deviations(
    batch_id: Optional[uuid.UUID] = Query(default=None),
    assignee: Optional[uuid.UUID] = Query(default=None),
    severity: Optional[Severity] = Query(default=None),
    status_filter: Optional[DeviationStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "batch_id": batch_id,
        "assignee": assignee,
        "severity": _value(severity),
        "status": _value(status_filter),
        "q": q,
    }
    return paged(await deviation_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/deviations",
    response_model=Envelope[DeviationResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Deviations"],
    summary="Report a deviation",
)
async def create_deviation(
    body: DeviationCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    deviation = await deviation_service.create(db, body.model_dump(), user.id)
    return ok(deviation, "Deviation created successfully")


@router.get(
    "/deviations/batch/{batch_id}",
    response_model=Envelope[Page[DeviationResponse]],
    tags=["Deviations"],
    summary="Deviations raised against a batch",
)
async def list_deviations_by_batch(
    batch_id: uuid.UUID,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await deviation_service.by_batch(db, batch_id, pagination.page, pagination.limit))


@router.get(
    "/deviations/{deviation_id}",
    response_model=Envelope[DeviationResponse],
    tags=["Deviations"],
    summary="Get a deviation",
)
async def get_deviation(
    deviation_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await deviation_service.get(db, deviation_id))


@router.put(
    "/deviations/{deviation_id}",
    response_model=Envelope[DeviationResponse],
    tags=["Deviations"],
    summary="Update a deviation",
)
async def update_deviation(
    deviation_id: uuid.UUID,
    body: DeviationUpdate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    deviation = await deviation_service.update(db, deviation_id, body.model_dump(exclude_unset=True))
    return ok(deviation, "Deviation updated successfully")


@router.post(
    "/deviations/{deviation_id}/resolve",
    response_model=Envelope[DeviationResponse],
    tags=["Deviations"],
    summary="Resolve a deviation",
)
async def resolve_deviation(
    deviation_id: uuid.UUID,
    body: DeviationResolve,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    deviation = await deviation_service.resolve(
        db, deviation_id, body.resolved_at, body.corrective_action, body.preventive_action
    )
    return ok(deviation, "Deviation resolved successfully")


# ══════════════════════════════════════════════════════════════════════════
# CAPAs
# ══════════════════════════════════════════════════════════════════════════


@router.get("/capas", response_model=Envelope[Page[CapaResponse]], tags=["CAPAs"], summary="List CAPAs")
async def list_capas(
    deviation_id: Optional[uuid.UUID] = Query(default=None),
    assignee: Optional[uuid.UUID] = Query(default=None),
    action_type: Optional[CapaActionType] = Query(default=None),
    priority: Optional[Priority] = Query(default=None),
    status_filter: Optional[CapaStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "deviation_id": deviation_id,
        "assignee": assignee,
        "action_type": _value(action_type),
        "priority": _value(priority),
        "status": _value(status_filter),
        "q": q,
    }
    return paged(await capa_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/capas",
    response_model=Envelope[CapaResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["CAPAs"],
    summary="Open a CAPA",
)
async def create_capa(
    body: CapaCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await capa_service.create(db, body.model_dump(), user.id), "CAPA created successfully")


@router.get(
    "/capas/deviation/{deviation_id}",
    response_model=Envelope[Page[CapaResponse]],
    tags=["CAPAs"],
    summary="CAPAs opened for a deviation",
)
async def list_capas_by_deviation(
    deviation_id: uuid.UUID,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await capa_service.by_deviation(db, deviation_id, pagination.page, pagination.limit))


@router.get("/capas/{capa_id}", response_model=Envelope[CapaResponse], tags=["CAPAs"], summary="Get a CAPA")
async def get_capa(
    capa_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await capa_service.get(db, capa_id))


@router.put("/capas/{capa_id}", response_model=Envelope[CapaResponse], tags=["CAPAs"], summary="Update a CAPA")
async def update_capa(
    capa_id: uuid.UUID,
    body: CapaUpdate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    capa = await capa_service.update(db, capa_id, body.model_dump(exclude_unset=True))
    return ok(capa, "CAPA updated successfully")


@router.post(
    "/capas/{capa_id}/complete",
    response_model=Envelope[CapaResponse],
    tags=["CAPAs"],
    summary="Complete a CAPA",
)
async def complete_capa(
    capa_id: uuid.UUID,
    body: CapaComplete,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    capa = await capa_service.complete(db, capa_id, body.completion_date, body.effectiveness_review)
    return ok(capa, "CAPA completed successfully")


# ══════════════════════════════════════════════════════════════════════════
# SOPs
# ══════════════════════════════════════════════════════════════════════════


@router.get("/sops", response_model=Envelope[Page[SopResponse]], tags=["SOPs"], summary="List SOPs")
async def list_sops(
    category: Optional[str] = Query(default=None, max_length=100),
    status_filter: Optional[SopStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {"category": category, "status": _value(status_filter), "q": q}
    return paged(await sop_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/sops",
    response_model=Envelope[SopResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["SOPs"],
    summary="Create an SOP",
)
async def create_sop(
    body: SopCreate,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await sop_service.create(db, body.model_dump(), user.id), "SOP created successfully")


@router.get(
    "/sops/categories/list",
    response_model=Envelope[List[str]],
    tags=["SOPs"],
    summary="Distinct SOP categories",
)
async def list_sop_categories(
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await sop_service.categories(db))


@router.get(
    "/sops/category/{category}",
    response_model=Envelope[List[SopResponse]],
    tags=["SOPs"],
    summary="Approved SOPs of a category",
)
async def list_sops_by_category(
    category: str,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await sop_service.by_category(db, category))


@router.get("/sops/{sop_id}", response_model=Envelope[SopResponse], tags=["SOPs"], summary="Get an SOP")
async def get_sop(
    sop_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await sop_service.get(db, sop_id))


@router.put("/sops/{sop_id}", response_model=Envelope[SopResponse], tags=["SOPs"], summary="Update an SOP")
async def update_sop(
    sop_id: uuid.UUID,
    body: SopUpdate,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await sop_service.update(db, sop_id, body.model_dump(exclude_unset=True)), "SOP updated successfully")


@router.post(
    "/sops/{sop_id}/approve",
    response_model=Envelope[SopResponse],
    tags=["SOPs"],
    summary="Approve an SOP",
)
async def approve_sop(
    sop_id: uuid.UUID,
    user: CurrentUser = Depends(qa_manager),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await sop_service.approve(db, sop_id, user.id), "SOP approved successfully")


# ══════════════════════════════════════════════════════════════════════════
# Training
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/training",
    response_model=Envelope[Page[TrainingResponse]],
    tags=["Training"],
    summary="List training records",
)
async def list_training_records(
    user_id: Optional[uuid.UUID] = Query(default=None),
    sop_id: Optional[uuid.UUID] = Query(default=None),
    training_type: Optional[str] = Query(default=None, max_length=50),
    status_filter: Optional[TrainingStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "user_id": user_id,
        "sop_id": sop_id,
        "training_type": training_type,
        "status": _value(status_filter),
        "q": q,
    }
    return paged(await training_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/training",
    response_model=Envelope[TrainingResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Training"],
    summary="Schedule a training record",
)
async def create_training_record(
    body: TrainingCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await training_service.create(db, body.model_dump())
    return ok(record, "Training record created successfully")


@router.get(
    "/training/users/list",
    response_model=Envelope[Page[UserResponse]],
    tags=["Training"],
    summary="Active users that can be assigned training",
)
async def list_trainees(
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {"status": ProfileStatus.ACTIVE.value}
    return paged(await user_service.list(db, filters, pagination.page, pagination.limit))


@router.get(
    "/training/sops/list",
    response_model=Envelope[Page[SopResponse]],
    tags=["Training"],
    summary="Approved SOPs that training can reference",
)
async def list_training_sops(
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {"status": SopStatus.APPROVED.value}
    return paged(await sop_service.list(db, filters, pagination.page, pagination.limit))


@router.get(
    "/training/user/{user_id}",
    response_model=Envelope[Page[TrainingResponse]],
    tags=["Training"],
    summary="Training records of a user",
)
async def list_training_by_user(
    user_id: uuid.UUID,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await training_service.by_user(db, user_id, pagination.page, pagination.limit))


@router.get(
    "/training/{training_id}",
    response_model=Envelope[TrainingResponse],
    tags=["Training"],
    summary="Get a training record",
)
async def get_training_record(
    training_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await training_service.get(db, training_id))


@router.put(
    "/training/{training_id}",
    response_model=Envelope[TrainingResponse],
    tags=["Training"],
    summary="Update a training record",
)
async def update_training_record(
    training_id: uuid.UUID,
    body: TrainingUpdate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await training_service.update(db, training_id, body.model_dump(exclude_unset=True))
    return ok(record, "Training record updated successfully")


@router.post(
    "/training/{training_id}/complete",
    response_model=Envelope[TrainingResponse],
    tags=["Training"],
    summary="Mark a training record completed",
)
async def complete_training_record(
    training_id: uuid.UUID,
    body: TrainingComplete,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await training_service.mark_completed(
        db, training_id, body.completion_date, body.score, body.certificate_url, body.notes
    )
    return ok(record, "Training marked as completed")


# ══════════════════════════════════════════════════════════════════════════
# Environmental monitoring
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/environment",
    response_model=Envelope[Page[EnvironmentalReadingResponse]],
    tags=["Environment"],
    summary="List environmental readings, newest first",
)
async def list_environmental_readings(
    batch_id: Optional[uuid.UUID] = Query(default=None),
    room_name: Optional[str] = Query(default=None, max_length=100),
    status_filter: Optional[EnvironmentalStatus] = Query(default=None, alias="status"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(environment_staff),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "batch_id": batch_id,
        "room_name": room_name,
        "status": _value(status_filter),
        "date_from": date_from,
        "date_to": date_to,
    }
    return paged(await environmental_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/environment",
    response_model=Envelope[EnvironmentalReadingResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Environment"],
    summary="Record an environmental reading",
)
async def create_environmental_reading(
    body: EnvironmentalReadingCreate,
    user: CurrentUser = Depends(environment_staff),
    db: AsyncSession = Depends(get_privileged_session),
):
    reading = await environmental_service.create(db, body.model_dump(), user.id)
    return ok(reading, "Environmental reading recorded successfully")


@router.get(
    "/environment/summary",
    response_model=Envelope[EnvironmentalSummary],
    tags=["Environment"],
    summary="Average readings and alert count over a date window",
)
async def environmental_summary(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    room_name: Optional[str] = Query(default=None, max_length=100),
    user: CurrentUser = Depends(environment_staff),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await environmental_service.summary(db, date_from, date_to, room_name))


@router.get(
    "/environment/batch/{batch_id}",
    response_model=Envelope[Page[EnvironmentalReadingResponse]],
    tags=["Environment"],
    summary="Readings linked to a batch",
)
async def list_environmental_by_batch(
    batch_id: uuid.UUID,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(environment_staff),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await environmental_service.by_batch(db, batch_id, pagination.page, pagination.limit))


@router.get(
    "/environment/room/{room_name}",
    response_model=Envelope[Page[EnvironmentalReadingResponse]],
    tags=["Environment"],
    summary="Readings for a room (substring match)",
)
async def list_environmental_by_room(
    room_name: str,
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(environment_staff),
    db: AsyncSession = Depends(get_privileged_session),
):
    return paged(await environmental_service.by_room(db, room_name, pagination.page, pagination.limit))


# ══════════════════════════════════════════════════════════════════════════
# QMS record register
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/records",
    response_model=Envelope[Page[QmsRecordResponse]],
    tags=["QMS Records"],
    summary="List QMS records, newest first",
)
async def list_qms_records(
    record_type: Optional[QmsRecordType] = Query(default=None),
    status_filter: Optional[QmsRecordStatus] = Query(default=None, alias="status"),
    severity: Optional[Severity] = Query(default=None),
    batch_id: Optional[uuid.UUID] = Query(default=None),
    cycle_id: Optional[uuid.UUID] = Query(default=None),
    stage_id: Optional[uuid.UUID] = Query(default=None),
    assigned_to: Optional[uuid.UUID] = Query(default=None),
    created_by: Optional[uuid.UUID] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200, description="Title, description or reference number"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "record_type": _value(record_type),
        "status": _value(status_filter),
        "severity": _value(severity),
        "batch_id": batch_id,
        "cycle_id": cycle_id,
        "stage_id": stage_id,
        "assigned_to": assigned_to,
        "created_by": created_by,
        "q": q,
    }
    return paged(await qms_record_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/records",
    response_model=Envelope[QmsRecordResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["QMS Records"],
    summary="Open a QMS record",
)
async def create_qms_record(
    body: QmsRecordCreate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await qms_record_service.create(db, body.model_dump(), user.id)
    return ok(record, "QMS record created successfully")


@router.get(
    "/records/batch/{batch_id}",
    response_model=Envelope[List[QmsRecordResponse]],
    tags=["QMS Records"],
    summary="QMS records raised against a batch",
)
async def list_qms_records_by_batch(
    batch_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await qms_record_service.by_batch(db, batch_id))


@router.get(
    "/records/{record_id}",
    response_model=Envelope[QmsRecordResponse],
    tags=["QMS Records"],
    summary="Get a QMS record",
)
async def get_qms_record(
    record_id: uuid.UUID,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await qms_record_service.get(db, record_id))


@router.put(
    "/records/{record_id}",
    response_model=Envelope[QmsRecordResponse],
    tags=["QMS Records"],
    summary="Update a QMS record",
)
async def update_qms_record(
    record_id: uuid.UUID,
    body: QmsRecordUpdate,
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    record = await qms_record_service.update(db, record_id, body.model_dump(exclude_unset=True))
    return ok(record, "QMS record updated successfully")


@router.get(
    "/metrics",
    response_model=Envelope[QmsMetrics],
    tags=["QMS Records"],
    summary="Register totals, overdue count and recent activity",
)
async def qms_metrics(
    user: CurrentUser = Depends(reviewer),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await qms_record_service.metrics(db))

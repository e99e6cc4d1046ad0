"""
iCanGrow API — User Management Routes
=======================================

/api/v1/users: listing and lookups for admin, qa_manager and cultivation_lead;
invitations and profile updates for admin only.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_privileged_session, require_roles
from icangrow.lifecycle import InvitationStatus, ProfileStatus, Role
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, QUALITY_ROLES, Pagination, ok, paged
from icangrow.schemas.auth import (
    CurrentUser,
    InvitationResponse,
    InviteUserRequest,
    UpdateUserRequest,
    UserResponse,
)
from icangrow.schemas.common import Envelope, Page
from icangrow.services.user_service import user_service

router = APIRouter(prefix=f"{API_PREFIX}/users", tags=["Users"], responses=ERROR_RESPONSES)

admin_only = require_roles(Role.ADMIN)


@router.get("", response_model=Envelope[Page[UserResponse]], summary="List users")
async def list_users(
    role: Optional[Role] = Query(default=None),
    status_filter: Optional[ProfileStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, max_length=200, description="Search name or email"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(require_roles(*QUALITY_ROLES)),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "role": role.value if role else None,
        "status": status_filter.value if status_filter else None,
        "q": q,
    }
    return paged(await user_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/invite",
    response_model=Envelope[InvitationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Invite a user by email",
)
async def invite_user(
    body: InviteUserRequest,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    invitation = await user_service.invite(db, body.email, body.role, user.id)
    return ok(invitation, "Invitation sent successfully")


@router.get("/invitations", response_model=Envelope[Page[InvitationResponse]], summary="List invitations")
async def list_invitations(
    status_filter: Optional[InvitationStatus] = Query(default=None, alias="status"),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    result = await user_service.list_invitations(
        db,
        status_filter.value if status_filter else None,
        pagination.page,
        pagination.limit,
    )
    return paged(result)


@router.get("/{user_id}", response_model=Envelope[UserResponse], summary="Get a user")
async def get_user(
    user_id: uuid.UUID,
    user: CurrentUser = Depends(require_roles(*QUALITY_ROLES)),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await user_service.get(db, user_id))


@router.put("/{user_id}", response_model=Envelope[UserResponse], summary="Update a user's profile, role or status")
async def update_user(
    user_id: uuid.UUID,
    body: UpdateUserRequest,
    user: CurrentUser = Depends(admin_only),
    db: AsyncSession = Depends(get_privileged_session),
):
    updated = await user_service.update(db, user_id, body.model_dump(exclude_unset=True))
    return ok(updated, "User updated successfully")

"""
Admin user management: profile listing/updates and invitations.

Invitations are single-use tokens valid for INVITATION_EXPIRY_DAYS. An email
can hold at most one unexpired invitation, and never one for an address that
already has a profile.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.config import settings
from icangrow.exceptions import ConflictError
from icangrow.lifecycle import InvitationStatus
from icangrow.models.mixins import utcnow
from icangrow.models.profile import Profile, UserInvitation
from icangrow.security import generate_invite_token
from icangrow.services.base import PageResult, RecordService, store_errors

logger = logging.getLogger(__name__)


class UserService(RecordService[Profile]):
    model = Profile
    resource = "User"
    plural = "users"

    updatable = frozenset({"full_name", "role", "status", "facility"})
    filters = {"role": "role", "status": "status"}
    search_columns = ("full_name", "email")
    creator_field = None

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[Profile]:
        with store_errors("fetch user"):
            result = await db.execute(select(Profile).where(func.lower(Profile.email) == email.lower()))
        return result.scalar_one_or_none()

    async def invite(
        self,
        db: AsyncSession,
        email: str,
        role: str,
        invited_by: uuid.UUID,
    ) -> UserInvitation:
        """
        Raises:
            ConflictError: the email already has a profile or an active invitation
        """
        email = email.lower()
        if await self.get_by_email(db, email) is not None:
            raise ConflictError("User with this email already exists")

        now = utcnow()
        with store_errors("check invitations"):
            active = (
                await db.execute(
                    select(UserInvitation.id).where(
                        UserInvitation.email == email,
                        UserInvitation.expires_at > now,
                        UserInvitation.status == InvitationStatus.PENDING.value,
                    )
                )
            ).first()
        if active is not None:
            raise ConflictError("Active invitation already exists for this email")

        invitation = UserInvitation(
            email=email,
            token=generate_invite_token(),
            role=role,
            status=InvitationStatus.PENDING.value,
            invited_by=invited_by,
            expires_at=now + timedelta(days=settings.invitation_expiry_days),
        )
        with store_errors("create invitation"):
            db.add(invitation)
            await db.flush()
        logger.info("Invitation %s created by %s", invitation.id, invited_by)
        return invitation

    async def list_invitations(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> PageResult:
        query = select(UserInvitation)
        if status and status != "all":
            query = query.where(UserInvitation.status == status)
        query = query.order_by(UserInvitation.created_at.desc(), UserInvitation.id.asc())
        with store_errors("fetch invitations"):
            return await self.paginate(db, query, page, limit)


user_service = UserService()

"""
iCanGrow API — Authentication Service
=======================================

What:  Account lifecycle: signup, email verification, login, token refresh,
       password reset/change and logout.
How:   Profiles hold the bcrypt hash and a token_version. Every token carries
       the version it was issued under ("ver"); bumping the version (logout,
       password change, password reset) revokes all outstanding tokens.

Action tokens (email verification, password reset) are delivered out of band.
In development they are also returned in the response body so the flow can be
driven without a mail server.
"""

import logging
import uuid
from typing import Any, Dict, Optional

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.config import settings
from icangrow.exceptions import AuthenticationError, ConflictError, ValidationError
from icangrow.lifecycle import ProfileStatus, Role
from icangrow.models.mixins import utcnow
from icangrow.models.profile import Profile
from icangrow.security import (
    TOKEN_EMAIL_VERIFICATION,
    TOKEN_PASSWORD_RESET,
    TOKEN_REFRESH,
    create_action_token,
    decode_token,
    generate_token_pair,
    hash_password,
    verify_password,
)
from icangrow.services.base import store_errors
from icangrow.services.user_service import user_service

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid or expired token"


class AuthService:
    """Module-level singleton; every method takes the request session first."""

    # ── Helpers ───────────────────────────────────────────────────────────

    def _echo(self, token: str) -> Optional[str]:
        return token if settings.is_development else None

    def _issue_tokens(self, profile: Profile) -> Dict[str, Any]:
        return generate_token_pair(str(profile.id), profile.email, profile.role, profile.token_version)

    async def _profile_from_token(self, db: AsyncSession, token: str, token_type: str) -> Profile:
        """
        Decode `token` and load its profile, checking the version claim.

        Raises:
            AuthenticationError: bad signature, expiry, wrong type, unknown
                profile or a stale version
        """
        try:
            payload = decode_token(token, expected_type=token_type)
            profile_id = uuid.UUID(payload["sub"])
        except (jwt.InvalidTokenError, ValueError):
            raise AuthenticationError(INVALID_TOKEN)

        with store_errors("fetch user"):
            profile = await db.get(Profile, profile_id)
        if profile is None or payload.get("ver") != profile.token_version:
            raise AuthenticationError(INVALID_TOKEN)
        return profile

    async def _revoke_tokens(self, db: AsyncSession, profile: Profile) -> None:
        profile.token_version += 1
        with store_errors("update user"):
            await db.flush()

    # ── Signup & verification ─────────────────────────────────────────────

    async def signup(self, db: AsyncSession, email: str, password: str, full_name: str) -> Dict[str, Any]:
        """
        Create a pending, unverified grower account.

        Raises:
            ConflictError: "User already registered"
        """
        email = email.lower()
        if await user_service.get_by_email(db, email) is not None:
            raise ConflictError("User already registered")

        profile = Profile(
            email=email,
            full_name=full_name,
            role=Role.GROWER.value,
            status=ProfileStatus.PENDING.value,
            email_verified=False,
            password_hash=hash_password(password),
            token_version=0,
        )
        with store_errors("create user"):
            db.add(profile)
            await db.flush()

        token = create_action_token(str(profile.id), TOKEN_EMAIL_VERIFICATION, profile.token_version)
        logger.info("User %s signed up; verification token issued", profile.id)
        return {"user": profile, "verification_token": self._echo(token)}

    async def verify_email(self, db: AsyncSession, token: str) -> Profile:
        profile = await self._profile_from_token(db, token, TOKEN_EMAIL_VERIFICATION)
        profile.email_verified = True
        with store_errors("verify email"):
            await db.flush()
        logger.info("Email verified for user %s", profile.id)
        return profile

    async def resend_verification(self, db: AsyncSession, email: str) -> Optional[str]:
        """Re-issue a verification token. Unknown or already verified emails are a silent no-op."""
        profile = await user_service.get_by_email(db, email)
        if profile is None or profile.email_verified:
            return None
        token = create_action_token(str(profile.id), TOKEN_EMAIL_VERIFICATION, profile.token_version)
        logger.info("Verification token re-issued for user %s", profile.id)
        return self._echo(token)

    # ── Sessions ──────────────────────────────────────────────────────────

    async def login(self, db: AsyncSession, email: str, password: str) -> Dict[str, Any]:
        """
        Raises:
            AuthenticationError: bad credentials, unverified email, or an
                account that is neither active nor pending
        """
        profile = await user_service.get_by_email(db, email)
        if profile is None or not verify_password(password, profile.password_hash):
            logger.warning("Failed login attempt")
            raise AuthenticationError("Invalid login credentials")
        if not profile.email_verified:
            raise AuthenticationError("Email not confirmed")
        if profile.status not in (ProfileStatus.ACTIVE.value, ProfileStatus.PENDING.value):
            raise AuthenticationError("Account is not active")

        if profile.status == ProfileStatus.PENDING.value:
            profile.status = ProfileStatus.ACTIVE.value
        profile.last_login_at = utcnow()
        with store_errors("update user"):
            await db.flush()

        logger.info("User %s logged in", profile.id)
        return {"user": profile, "tokens": self._issue_tokens(profile)}

    async def refresh(self, db: AsyncSession, refresh_token: str) -> Dict[str, Any]:
        profile = await self._profile_from_token(db, refresh_token, TOKEN_REFRESH)
        if profile.status != ProfileStatus.ACTIVE.value:
            raise AuthenticationError("Account is not active")
        return self._issue_tokens(profile)

    async def logout(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        profile = await user_service.get(db, user_id)
        await self._revoke_tokens(db, profile)
        logger.info("User %s logged out", user_id)

    async def me(self, db: AsyncSession, user_id: uuid.UUID) -> Profile:
        return await user_service.get(db, user_id)

    # ── Passwords ─────────────────────────────────────────────────────────

    async def forgot_password(self, db: AsyncSession, email: str) -> Optional[str]:
        """Issue a reset token. The caller answers the same way whether or not the account exists."""
        profile = await user_service.get_by_email(db, email)
        if profile is None:
            logger.info("Password reset requested for unknown email")
            return None
        token = create_action_token(str(profile.id), TOKEN_PASSWORD_RESET, profile.token_version)
        logger.info("Password reset token issued for user %s", profile.id)
        return self._echo(token)

    async def reset_password(self, db: AsyncSession, token: str, password: str) -> None:
        profile = await self._profile_from_token(db, token, TOKEN_PASSWORD_RESET)
        profile.password_hash = hash_password(password)
        await self._revoke_tokens(db, profile)
        logger.info("Password reset for user %s", profile.id)

    async def change_password(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Raises:
            ValidationError: the current password does not match
        """
        profile = await user_service.get(db, user_id)
        if not verify_password(current_password, profile.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")
        profile.password_hash = hash_password(new_password)
        await self._revoke_tokens(db, profile)
        logger.info("Password changed for user %s", user_id)


auth_service = AuthService()

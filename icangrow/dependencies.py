"""
iCanGrow API — Request Dependencies
=====================================

What:  Caller identity and access-tier dependencies for route handlers.

    get_current_user         Bearer access token → CurrentUser (active profile)
    require_roles(*roles)    get_current_user + role allow-list (403 otherwise)
    get_privileged_session   privileged-tier session, only after authentication

Every protected request re-reads the profile, so a suspended account or a
revoked token (token_version bump) is refused immediately, not at expiry.
"""

import logging
import uuid
from typing import AsyncGenerator, Callable

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.database import Gateway, get_gateway
from icangrow.exceptions import AuthenticationError, AuthorizationError
from icangrow.lifecycle import ProfileStatus, Role
from icangrow.models.profile import Profile
from icangrow.schemas.auth import CurrentUser
from icangrow.security import TOKEN_ACCESS, decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    gateway: Gateway = Depends(get_gateway),
) -> CurrentUser:
    """
    Raises:
        AuthenticationError: missing/invalid token, stale token version,
            unknown profile or an inactive account
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    try:
        payload = decode_token(credentials.credentials, expected_type=TOKEN_ACCESS)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.info("Rejected access token: %s", type(e).__name__)
        raise AuthenticationError("Invalid or expired token")

    async with gateway.session(actor_id=str(user_id)) as db:
        profile = await db.get(Profile, user_id)
        if profile is None:
            raise AuthenticationError("User profile not found")
        if payload.get("ver") != profile.token_version:
            raise AuthenticationError("Invalid or expired token")
        if profile.status != ProfileStatus.ACTIVE.value:
            raise AuthenticationError("Account is not active")
        return CurrentUser.model_validate(profile)


def require_roles(*roles: Role) -> Callable:
    """
    Usage:
        @router.post("/", dependencies=[Depends(require_roles(Role.ADMIN))])
        async def handler(user: CurrentUser = Depends(require_roles(Role.ADMIN))): ...
    """
    allowed = {getattr(role, "value", role) for role in roles}

    async def check_role(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning("User %s (%s) denied; requires one of %s", user.id, user.role, sorted(allowed))
            raise AuthorizationError("Insufficient permissions")
        return user

    return check_role


async def get_privileged_session(
    user: CurrentUser = Depends(get_current_user),
    gateway: Gateway = Depends(get_gateway),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Privileged-tier session for record services. The transaction commits when
    the handler returns and rolls back if it raises.
    """
    async with gateway.session(privileged=True) as session:
        yield session

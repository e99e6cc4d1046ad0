"""
Request/response models for /api/v1/auth and /api/v1/users.

Password policy: 8-128 characters with at least one lowercase letter, one
uppercase letter and one digit. Names: 2-100 letters and spaces.
"""

import re
import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from icangrow.lifecycle import InvitationStatus, ProfileStatus, Role
from icangrow.schemas.common import RequestModel

_NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")


def _check_password(value: str) -> str:
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    return value


def _check_full_name(value: Optional[str]) -> Optional[str]:
    if value is not None and not _NAME_PATTERN.match(value):
        raise ValueError("Full name can only contain letters and spaces")
    return value


Password = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(_check_password)]
FullName = Annotated[str, Field(min_length=2, max_length=100), AfterValidator(_check_full_name)]


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class SignupRequest(RequestModel):
    email: EmailStr
    password: Password
    full_name: FullName


class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(RequestModel):
    refresh_token: str = Field(min_length=1)


class TokenRequest(RequestModel):
    token: str = Field(min_length=1)


class EmailRequest(RequestModel):
    email: EmailStr


class ResetPasswordRequest(RequestModel):
    token: str = Field(min_length=1)
    password: Password


class ChangePasswordRequest(RequestModel):
    current_password: str = Field(min_length=1)
    new_password: Password


class InviteUserRequest(RequestModel):
    email: EmailStr
    role: Role


class UpdateUserRequest(RequestModel):
    full_name: Optional[FullName] = None
    role: Optional[Role] = None
    status: Optional[ProfileStatus] = None
    facility: Optional[str] = Field(default=None, max_length=100)


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class CurrentUser(BaseModel):
    """Identity resolved by dependencies.get_current_user for one request."""

    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None
    status: str
    facility: Optional[str] = None
    token_version: int = 0

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None
    status: str
    facility: Optional[str] = None
    email_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationResponse(BaseModel):
    id: uuid.UUID
    email: str
    token: str
    role: Optional[str] = None
    status: InvitationStatus
    invited_by: uuid.UUID
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class SessionResponse(BaseModel):
    user: UserResponse
    tokens: TokenPair


class SignupResponse(BaseModel):
    user: UserResponse
    # Only populated in development; elsewhere the link is delivered out of band
    verification_token: Optional[str] = None


class ActionTokenResponse(BaseModel):
    token: Optional[str] = None

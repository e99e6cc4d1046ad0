"""
iCanGrow API — Auth Routes
============================

What:  /api/v1/auth: signup, login, token refresh, email verification,
       password reset/change, logout and the current-user lookup.

Unauthenticated endpoints run on the restricted session tier; the rest go
through get_current_user first. forgot-password and resend-verification
answer the same way whether or not the email is registered.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.database import get_restricted_session
from icangrow.dependencies import get_current_user, get_privileged_session
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, ok
from icangrow.schemas.auth import (
    ActionTokenResponse,
    ChangePasswordRequest,
    CurrentUser,
    EmailRequest,
    LoginRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SessionResponse,
    SignupRequest,
    SignupResponse,
    TokenPair,
    TokenRequest,
    UserResponse,
)
from icangrow.schemas.common import Envelope
from icangrow.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/auth", tags=["Auth"], responses=ERROR_RESPONSES)


@router.post(
    "/signup",
    response_model=Envelope[SignupResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_restricted_session)):
    result = await auth_service.signup(db, body.email, body.password, body.full_name)
    return ok(result, "Account created. Please verify your email before logging in.")


@router.post("/login", response_model=Envelope[SessionResponse], summary="Log in with email and password")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_restricted_session)):
    return ok(await auth_service.login(db, body.email, body.password), "Login successful")


@router.post("/refresh", response_model=Envelope[TokenPair], summary="Exchange a refresh token")
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_restricted_session)):
    return ok(await auth_service.refresh(db, body.refresh_token), "Token refreshed successfully")


@router.post("/verify-email", response_model=Envelope[None], summary="Confirm an email address")
async def verify_email(body: TokenRequest, db: AsyncSession = Depends(get_restricted_session)):
    await auth_service.verify_email(db, body.token)
    return ok(message="Email verified successfully")


@router.post(
    "/resend-verification",
    response_model=Envelope[ActionTokenResponse],
    summary="Send a new verification email",
)
async def resend_verification(body: EmailRequest, db: AsyncSession = Depends(get_restricted_session)):
    token = await auth_service.resend_verification(db, body.email)
    return ok({"token": token}, "Verification email sent")


@router.post(
    "/forgot-password",
    response_model=Envelope[ActionTokenResponse],
    summary="Request a password reset",
)
async def forgot_password(body: EmailRequest, db: AsyncSession = Depends(get_restricted_session)):
    token = await auth_service.forgot_password(db, body.email)
    return ok({"token": token}, "Password reset email sent")


@router.post("/reset-password", response_model=Envelope[None], summary="Set a new password from a reset token")
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_restricted_session)):
    await auth_service.reset_password(db, body.token, body.password)
    return ok(message="Password reset successfully")


@router.post("/change-password", response_model=Envelope[None], summary="Change the current password")
async def change_password(
    body: ChangePasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    await auth_service.change_password(db, user.id, body.current_password, body.new_password)
    return ok(message="Password changed successfully")


@router.post("/logout", response_model=Envelope[None], summary="Revoke all tokens of the caller")
async def logout(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    await auth_service.logout(db, user.id)
    return ok(message="Logged out successfully")


@router.get("/me", response_model=Envelope[UserResponse], summary="Profile of the caller")
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await auth_service.me(db, user.id))

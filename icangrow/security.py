"""
iCanGrow API — Password Hashing & Token Service
=================================================

Passwords:  bcrypt (rounds from BCRYPT_ROUNDS, default 12)
Tokens:     PyJWT, HS256, issuer/audience pinned from settings

Token payload (access):
{
    "sub": <profile user_id>,
    "email": <email>,
    "role": <role>,
    "type": "access",
    "ver": <profile token_version>,
    "iss": "icangrow-api",
    "aud": "icangrow-client",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}

Refresh tokens are signed with JWT_REFRESH_SECRET so an access-secret leak
cannot mint long-lived sessions. Email verification and password reset links
are short-lived access-secret tokens with their own "type".

"ver" ties every token to Profile.token_version; logout and password changes
bump the version, which revokes everything issued before.
"""

import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from icangrow.config import settings

ALGORITHM = "HS256"

TOKEN_ACCESS = "access"
TOKEN_REFRESH = "refresh"
TOKEN_EMAIL_VERIFICATION = "email_verification"
TOKEN_PASSWORD_RESET = "password_reset"


# ═══════════════════════════════════════════════════════════════
# Passwords
# ═══════════════════════════════════════════════════════════════
def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


# ═══════════════════════════════════════════════════════════════
# Token Generation
# ═══════════════════════════════════════════════════════════════
def _secret_for(token_type: str) -> str:
    return settings.jwt_refresh_secret if token_type == TOKEN_REFRESH else settings.jwt_secret


def _encode(claims: dict, token_type: str, lifetime_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": token_type,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(seconds=lifetime_seconds),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=ALGORITHM)


def create_access_token(user_id: str, email: str, role: str | None, token_version: int) -> str:
    """Generate a short-lived access token."""
    return _encode(
        {"sub": user_id, "email": email, "role": role, "ver": token_version},
        TOKEN_ACCESS,
        settings.jwt_access_expires,
    )


def create_refresh_token(user_id: str, token_version: int) -> str:
    return _encode({"sub": user_id, "ver": token_version}, TOKEN_REFRESH, settings.jwt_refresh_expires)


def create_action_token(user_id: str, token_type: str, token_version: int) -> str:
    """Email verification / password reset token."""
    return _encode({"sub": user_id, "ver": token_version}, token_type, settings.jwt_action_expires)


def generate_token_pair(user_id: str, email: str, role: str | None, token_version: int) -> dict:
    return {
        "access_token": create_access_token(user_id, email, role, token_version),
        "refresh_token": create_refresh_token(user_id, token_version),
        "token_type": "Bearer",
        "expires_in": settings.jwt_access_expires,
    }


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_token(token: str, expected_type: str = TOKEN_ACCESS) -> dict:
    """
    Decode and verify a JWT.

    Raises jwt.InvalidTokenError (ExpiredSignatureError, InvalidAudienceError,
    wrong "type", ...) on failure; callers translate that into a 401.
    """
    payload = jwt.decode(
        token,
        _secret_for(expected_type),
        algorithms=[ALGORITHM],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "type"]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected {expected_type} token, got {payload.get('type')}")
    return payload


def generate_invite_token() -> str:
    """Random invitation token (64 hex chars)."""
    return uuid.uuid4().hex + uuid.uuid4().hex

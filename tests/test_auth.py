"""
iCanGrow API — Authentication & Authorization Tests
=====================================================

What:  Tests for /api/v1/auth, the bearer-token dependency and role gates.
Why:   Every other endpoint trusts get_current_user; a token that outlives a
       logout or a suspended account that still gets through would undo all
       of the role checks downstream.

What we test:
    ✅ signup → verify-email → login → me → refresh → logout
    ✅ Login refused before the email is verified
    ✅ Logout and password changes revoke outstanding tokens
    ✅ Duplicate signup is a 409; weak passwords are a 400 with field details
    ✅ Missing token → 401; wrong role → 403; suspended account → 401
"""

import pytest

from icangrow.lifecycle import ProfileStatus, Role
from icangrow.security import (
    TOKEN_EMAIL_VERIFICATION,
    TOKEN_PASSWORD_RESET,
    create_action_token,
    create_refresh_token,
    decode_token,
)

from conftest import TEST_PASSWORD, create_profile

AUTH_URL = "/api/v1/auth"

SIGNUP = {"email": "Sam.Grower@Example.com", "password": "Cultivate42", "full_name": "Sam Grower"}


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestSignupAndLogin:
    @pytest.mark.asyncio
    async def test_full_session_lifecycle(self, client):
        signup = await client.post(f"{AUTH_URL}/signup", json=SIGNUP)
        assert signup.status_code == 201
        user = signup.json()["data"]["user"]
        assert user["email"] == "sam.grower@example.com"
        assert user["role"] == "grower"
        assert user["status"] == "pending"
        assert user["email_verified"] is False
        # Action tokens are only echoed in development
        assert signup.json()["data"]["verification_token"] is None

        credentials = {"email": SIGNUP["email"].lower(), "password": SIGNUP["password"]}
        unverified = await client.post(f"{AUTH_URL}/login", json=credentials)
        assert unverified.status_code == 401
        assert unverified.json()["error"] == "Email not confirmed"

        token = create_action_token(user["id"], TOKEN_EMAIL_VERIFICATION, 0)
        verified = await client.post(f"{AUTH_URL}/verify-email", json={"token": token})
        assert verified.status_code == 200

        login = await client.post(f"{AUTH_URL}/login", json=credentials)
        assert login.status_code == 200
        session = login.json()["data"]
        assert session["user"]["status"] == "active"
        assert session["tokens"]["token_type"] == "Bearer"
        claims = decode_token(session["tokens"]["access_token"])
        assert claims["sub"] == user["id"]
        assert claims["role"] == "grower"

        me = await client.get(f"{AUTH_URL}/me", headers=bearer(session["tokens"]["access_token"]))
        assert me.json()["data"]["id"] == user["id"]

        refreshed = await client.post(
            f"{AUTH_URL}/refresh", json={"refresh_token": session["tokens"]["refresh_token"]}
        )
        assert refreshed.status_code == 200
        assert refreshed.json()["data"]["access_token"]

        logout = await client.post(f"{AUTH_URL}/logout", headers=bearer(session["tokens"]["access_token"]))
        assert logout.status_code == 200

        stale = await client.get(f"{AUTH_URL}/me", headers=bearer(session["tokens"]["access_token"]))
        assert stale.status_code == 401
        assert stale.json()["error"] == "Invalid or expired token"

        stale_refresh = await client.post(
            f"{AUTH_URL}/refresh", json={"refresh_token": session["tokens"]["refresh_token"]}
        )
        assert stale_refresh.status_code == 401

    @pytest.mark.asyncio
    async def test_duplicate_signup_conflicts(self, client):
        await client.post(f"{AUTH_URL}/signup", json=SIGNUP)
        response = await client.post(f"{AUTH_URL}/signup", json=SIGNUP)
        assert response.status_code == 409
        assert response.json()["error"] == "User already registered"

    @pytest.mark.asyncio
    async def test_weak_password_is_rejected(self, client):
        response = await client.post(f"{AUTH_URL}/signup", json={**SIGNUP, "password": "alllowercase1"})
        assert response.status_code == 400
        details = response.json()["details"]
        assert details[0]["field"] == "password"
        assert "uppercase" in details[0]["message"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, users):
        response = await client.post(
            f"{AUTH_URL}/login", json={"email": users["admin"].email, "password": "Wrong12345"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid login credentials"

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_access_token(self, client, users):
        refresh = create_refresh_token(str(users["admin"].id), 0)
        response = await client.get(f"{AUTH_URL}/me", headers=bearer(refresh))
        assert response.status_code == 401


class TestPasswords:
    @pytest.mark.asyncio
    async def test_reset_password_revokes_tokens(self, client, users, auth_headers):
        grower = users["grower"]
        old_headers = auth_headers(grower)

        forgot = await client.post(f"{AUTH_URL}/forgot-password", json={"email": grower.email})
        assert forgot.status_code == 200

        token = create_action_token(str(grower.id), TOKEN_PASSWORD_RESET, 0)
        reset = await client.post(f"{AUTH_URL}/reset-password", json={"token": token, "password": "NewHarvest9"})
        assert reset.status_code == 200

        assert (await client.get(f"{AUTH_URL}/me", headers=old_headers)).status_code == 401
        reused = await client.post(f"{AUTH_URL}/reset-password", json={"token": token, "password": "Another9x"})
        assert reused.status_code == 401

        login = await client.post(f"{AUTH_URL}/login", json={"email": grower.email, "password": "NewHarvest9"})
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_forgot_password_does_not_reveal_accounts(self, client):
        response = await client.post(f"{AUTH_URL}/forgot-password", json={"email": "nobody@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Password reset email sent"

    @pytest.mark.asyncio
    async def test_change_password_checks_current(self, client, users, auth_headers):
        response = await client.post(
            f"{AUTH_URL}/change-password",
            json={"current_password": "NotMine123", "new_password": "Better123"},
            headers=auth_headers(users["grower"]),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

        response = await client.post(
            f"{AUTH_URL}/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "Better123"},
            headers=auth_headers(users["grower"]),
        )
        assert response.status_code == 200


class TestAccessControl:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get(f"{AUTH_URL}/me")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Access token required",
            "details": None,
            "request_id": response.headers["X-Request-ID"],
        }

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(f"{AUTH_URL}/me", headers=bearer("not-a-jwt"))
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_role_gate(self, client, users, auth_headers):
        denied = await client.post(
            "/api/v1/users/invite",
            json={"email": "new.tech@example.com", "role": "environmental_tech"},
            headers=auth_headers(users["qa_manager"]),
        )
        assert denied.status_code == 403
        assert denied.json()["error"] == "Insufficient permissions"

        invited = await client.post(
            "/api/v1/users/invite",
            json={"email": "new.tech@example.com", "role": "environmental_tech"},
            headers=auth_headers(users["admin"]),
        )
        assert invited.status_code == 201
        assert invited.json()["data"]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_suspended_account_is_locked_out(self, client, gateway, auth_headers):
        suspended = await create_profile(
            gateway, Role.GROWER, email="suspended@icangrow.example.com", status=ProfileStatus.SUSPENDED
        )

        response = await client.get(f"{AUTH_URL}/me", headers=auth_headers(suspended))
        assert response.status_code == 401
        assert response.json()["error"] == "Account is not active"

        login = await client.post(
            f"{AUTH_URL}/login", json={"email": suspended.email, "password": TEST_PASSWORD}
        )
        assert login.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_suspension_takes_effect_immediately(self, client, users, auth_headers):
        grower = users["grower"]
        update = await client.put(
            f"/api/v1/users/{grower.id}",
            json={"status": "suspended"},
            headers=auth_headers(users["admin"]),
        )
        assert update.status_code == 200

        response = await client.get(f"{AUTH_URL}/me", headers=auth_headers(grower))
        assert response.status_code == 401

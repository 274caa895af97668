"""Integration tests for the authentication API."""

from unittest.mock import AsyncMock

import jwt
import pytest
from httpx import AsyncClient

from football_auth.core.errors import RevocationStoreUnavailableError
from football_auth.services.tokens import TokenKind
from tests.conftest import (
    TEST_JWT_SECRET,
    TEST_USER_EMAIL,
    TEST_USER_PASSWORD,
)

pytestmark = pytest.mark.asyncio


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestSessionLifecycle:
    """End-to-end register, login, logout and refresh."""

    async def test_register_login_logout_refresh_scenario(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/auth/register",
            json={"name": "Test User", "email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD},
        )
        assert response.status_code == 201
        body = response.json()
        access_token = body["tokens"]["access_token"]
        refresh_token = body["tokens"]["refresh_token"]
        claims = jwt.decode(access_token, TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["role"] == "user"
        assert claims["sub"] == body["user"]["id"]

        response = await async_client.post(
            "/api/auth/login", json={"email": TEST_USER_EMAIL, "password": "Wrongpass1"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

        response = await async_client.post("/api/auth/logout", headers=_bearer(access_token))
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}

        response = await async_client.get("/api/auth/me", headers=_bearer(access_token))
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has been revoked"

        response = await async_client.post(
            "/api/auth/refresh-token", json={"refresh_token": refresh_token}
        )
        assert response.status_code == 200
        new_access = response.json()["access_token"]

        response = await async_client.get("/api/auth/me", headers=_bearer(new_access))
        assert response.status_code == 200
        assert response.json()["email"] == TEST_USER_EMAIL


class TestRegister:
    async def test_register_returns_user_and_tokens(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/auth/register",
            json={"name": "  Test User ", "email": "New@X.com", "password": TEST_USER_PASSWORD},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["name"] == "Test User"
        assert body["user"]["email"] == "new@x.com"
        assert body["user"]["role"] == "user"
        assert body["user"]["is_verified"] is False
        assert "password_hash" not in body["user"]
        assert body["tokens"]["token_type"] == "bearer"
        assert body["tokens"]["expires_in"] == 15 * 60

    async def test_duplicate_email_conflicts(self, async_client: AsyncClient, registered_user):
        response = await async_client.post(
            "/api/auth/register",
            json={"name": "Someone", "email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD},
        )

        assert response.status_code == 409
        assert response.json() == {"detail": "Email already registered", "error": "conflict"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "ab", "email": "b@x.com", "password": "Abcdef12"},
            {"name": "Test User", "email": "not-an-email", "password": "Abcdef12"},
            {"name": "Test User", "email": "b@x.com", "password": "short1A"},
            {"name": "Test User", "email": "b@x.com", "password": "alllowercase1"},
            {"name": "Test User", "email": "b@x.com", "password": "NoDigitsHere"},
            {"name": "Test User", "email": "b@x.com"},
        ],
    )
    async def test_validation_errors(self, async_client: AsyncClient, payload):
        response = await async_client.post("/api/auth/register", json=payload)
        assert response.status_code == 422


class TestLogin:
    async def test_login_success(self, async_client: AsyncClient, registered_user):
        response = await async_client.post(
            "/api/auth/login", json={"email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == registered_user["user"]["id"]
        claims = jwt.decode(body["tokens"]["access_token"], TEST_JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == registered_user["user"]["id"]
        assert claims["type"] == "access"

    async def test_wrong_password_and_unknown_email_identical(
        self, async_client: AsyncClient, registered_user
    ):
        wrong_password = await async_client.post(
            "/api/auth/login", json={"email": TEST_USER_EMAIL, "password": "Wrongpass1"}
        )
        unknown_email = await async_client.post(
            "/api/auth/login", json={"email": "nobody@x.com", "password": TEST_USER_PASSWORD}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()

    async def test_login_sets_refresh_cookie(self, async_client: AsyncClient, registered_user):
        response = await async_client.post(
            "/api/auth/login", json={"email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD}
        )

        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"refreshToken={response.json()['tokens']['refresh_token']}")
        assert "HttpOnly" in cookie
        assert "SameSite=strict" in cookie
        assert "Path=/api/auth" in cookie

    async def test_any_password_hasher_can_be_plugged_in(
        self, async_client: AsyncClient, test_app
    ):
        from football_auth.api.dependencies import get_password_hasher

        class PrefixHasher:
            def hash(self, plaintext: str) -> str:
                return "plain$" + plaintext

            def compare(self, plaintext: str, digest: str) -> bool:
                return digest == "plain$" + plaintext

        test_app.dependency_overrides[get_password_hasher] = PrefixHasher
        credentials = {"email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD}

        response = await async_client.post(
            "/api/auth/register", json={"name": "Test User", **credentials}
        )
        assert response.status_code == 201
        response = await async_client.post("/api/auth/login", json=credentials)
        assert response.status_code == 200
        response = await async_client.post(
            "/api/auth/login", json={**credentials, "password": "Wrongpass1"}
        )
        assert response.status_code == 401


class TestRefresh:
    async def test_refresh_with_access_token_rejected(
        self, async_client: AsyncClient, registered_user
    ):
        response = await async_client.post(
            "/api/auth/refresh-token",
            json={"refresh_token": registered_user["tokens"]["access_token"]},
        )

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid token", "error": "invalid_token"}

    async def test_refresh_with_garbage_rejected(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/auth/refresh-token", json={"refresh_token": "invalid.token.here"}
        )
        assert response.status_code == 401

    async def test_refresh_from_cookie(self, async_client: AsyncClient, registered_user):
        async_client.cookies.clear()
        response = await async_client.post(
            "/api/auth/refresh-token",
            headers={"Cookie": f"refreshToken={registered_user['tokens']['refresh_token']}"},
        )

        assert response.status_code == 200
        assert response.json()["refresh_token"] != registered_user["tokens"]["refresh_token"]

    async def test_refresh_without_token(self, async_client: AsyncClient):
        async_client.cookies.clear()
        response = await async_client.post("/api/auth/refresh-token")

        assert response.status_code == 400
        assert response.json()["detail"] == "Refresh token is required"

    async def test_logout_can_revoke_refresh_token(
        self, async_client: AsyncClient, registered_user, user_headers
    ):
        refresh_token = registered_user["tokens"]["refresh_token"]
        response = await async_client.post(
            "/api/auth/logout", headers=user_headers, json={"refresh_token": refresh_token}
        )
        assert response.status_code == 200

        response = await async_client.post(
            "/api/auth/refresh-token", json={"refresh_token": refresh_token}
        )
        assert response.status_code == 401

    async def test_logout_clears_refresh_cookie(self, async_client: AsyncClient, user_headers):
        response = await async_client.post("/api/auth/logout", headers=user_headers)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith('refreshToken=""') or cookie.startswith("refreshToken=;")
        assert "Max-Age=0" in cookie


class TestGatekeeper:
    async def test_missing_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json() == {"detail": "Access token required", "error": "missing_token"}

    async def test_garbage_token_forbidden(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/me", headers=_bearer("invalid.token.here"))

        assert response.status_code == 403
        assert response.json()["error"] == "malformed_token"

    async def test_logged_out_token_rejected_when_padded(
        self, async_client: AsyncClient, registered_user, user_headers
    ):
        access_token = registered_user["tokens"]["access_token"]
        response = await async_client.post("/api/auth/logout", headers=user_headers)
        assert response.status_code == 200

        response = await async_client.get("/api/auth/me", headers=_bearer(access_token + "="))

        assert response.status_code == 403
        assert response.json()["error"] == "malformed_token"

    async def test_refresh_token_as_bearer_forbidden(
        self, async_client: AsyncClient, registered_user
    ):
        response = await async_client.get(
            "/api/auth/me", headers=_bearer(registered_user["tokens"]["refresh_token"])
        )
        assert response.status_code == 403

    async def test_expired_token(self, async_client: AsyncClient, registered_user):
        expired = jwt.encode(
            {
                "sub": registered_user["user"]["id"],
                "role": "user",
                "iat": 1_000_000_000,
                "exp": 1_000_000_900,
                "type": "access",
                "jti": "expired",
            },
            TEST_JWT_SECRET,
            algorithm="HS256",
        )

        response = await async_client.get("/api/auth/me", headers=_bearer(expired))

        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"

    async def test_store_outage_fails_closed(
        self, async_client: AsyncClient, test_app, user_headers
    ):
        store = AsyncMock()
        store.is_revoked.side_effect = RevocationStoreUnavailableError("connection refused")
        test_app.state.gatekeeper.revocations = store

        response = await async_client.get("/api/auth/me", headers=user_headers)

        assert response.status_code == 401
        assert response.json() == {
            "detail": "Authentication failed",
            "error": "authentication_failed",
        }

    async def test_public_routes_need_no_token(self, async_client: AsyncClient):
        assert (await async_client.get("/")).status_code == 200
        assert (await async_client.get("/health")).status_code == 200


class TestRoleGuards:
    async def test_admin_route_forbidden_for_user(self, async_client: AsyncClient, user_headers):
        response = await async_client.get("/api/auth/admin/users", headers=user_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied: Insufficient permissions"

    async def test_admin_lists_users(
        self, async_client: AsyncClient, admin_headers, registered_user
    ):
        response = await async_client.get("/api/auth/admin/users", headers=admin_headers)

        assert response.status_code == 200
        emails = {user["email"] for user in response.json()}
        assert emails == {"admin@x.com", TEST_USER_EMAIL}

    async def test_premium_content(self, async_client: AsyncClient, admin_headers, user_headers):
        response = await async_client.get("/api/auth/premium/content", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Premium content unlocked for admin members"

        response = await async_client.get("/api/auth/premium/content", headers=user_headers)
        assert response.status_code == 403

    async def test_token_without_role_is_rejected(self, async_client: AsyncClient, test_app):
        token = test_app.state.token_codec.issue("some-user", None, TokenKind.ACCESS)

        response = await async_client.get("/api/auth/premium/content", headers=_bearer(token))

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied: No role specified"

    async def test_deactivated_user_cannot_login_or_refresh(
        self, async_client: AsyncClient, admin_headers, registered_user
    ):
        user_id = registered_user["user"]["id"]

        response = await async_client.patch(
            f"/api/auth/admin/users/{user_id}/status",
            headers=admin_headers,
            json={"is_active": False},
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await async_client.post(
            "/api/auth/login", json={"email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD}
        )
        assert response.status_code == 401

        response = await async_client.post(
            "/api/auth/refresh-token",
            json={"refresh_token": registered_user["tokens"]["refresh_token"]},
        )
        assert response.status_code == 401

    async def test_status_for_unknown_user(self, async_client: AsyncClient, admin_headers):
        response = await async_client.patch(
            "/api/auth/admin/users/00000000-0000-0000-0000-000000000000/status",
            headers=admin_headers,
            json={"is_active": False},
        )
        assert response.status_code == 404


class TestErrorDocumentation:
    async def test_auth_routes_document_error_body(self, test_app):
        schema = test_app.openapi()

        assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {
            "detail",
            "error",
        }
        me = schema["paths"]["/api/auth/me"]["get"]["responses"]
        for status_code in ("401", "403"):
            assert me[status_code]["content"]["application/json"]["schema"] == {
                "$ref": "#/components/schemas/ErrorResponse"
            }
        register = schema["paths"]["/api/auth/register"]["post"]["responses"]
        assert "409" in register

"""
Tests for authentication and authorization.

Covers:
- Provider JWT creation and verification
- CSRF middleware
- Security headers middleware
- Role checks (authorize_org_role, require_org_manager)
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import jwt as pyjwt
import pytest
from fastapi import HTTPException

from app.core.auth import (
    CurrentUser,
    OrgAccess,
    authorize_org_role,
    create_jwt,
    decode_jwt,
    require_org_manager,
)
from app.core.middleware import CSRF_COOKIE, SECURITY_HEADERS, SESSION_COOKIE
from lumen_shared.schemas.common import Role


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token = create_jwt(uid, "user@example.com")
        payload = decode_jwt(token)
        assert payload["sub"] == str(uid)
        assert payload["email"] == "user@example.com"
        assert payload["aud"] == "authenticated"

    def test_expired_jwt_raises(self):
        token = create_jwt(uuid.uuid4(), None, expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_tampered_jwt_raises(self):
        token = create_jwt(uuid.uuid4(), None)
        other = create_jwt(uuid.uuid4(), None)
        header, _, signature = token.split(".")
        tampered = ".".join([header, other.split(".")[1], signature])
        with pytest.raises(pyjwt.InvalidSignatureError):
            decode_jwt(tampered)

    def test_wrong_audience_rejected(self):
        from app.core.config import get_settings

        settings = get_settings()
        token = pyjwt.encode(
            {"sub": str(uuid.uuid4()), "aud": "someone-else"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(pyjwt.InvalidAudienceError):
            decode_jwt(token)


class TestSessionCookie:
    async def test_cookie_authenticates_get(self, client, seed):
        user = await seed.profile("cookie@example.com", name="Cookie User")
        token = create_jwt(user.id, user.email)
        resp = await client.get("/api/v1/me", headers={"Cookie": f"{SESSION_COOKIE}={token}"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Cookie User"


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    async def test_headers_on_every_response(self, client):
        for path in ("/health", "/api/v1/orgs"):
            resp = await client.get(path)
            for header, value in SECURITY_HEADERS.items():
                assert resp.headers.get(header) == value


class TestCSRFMiddleware:
    """Cookie sessions need the double-submit token on writes; Bearer callers do not."""

    def _cookie(self, token: str, csrf: str | None = None) -> str:
        cookie = f"{SESSION_COOKIE}={token}"
        if csrf:
            cookie += f"; {CSRF_COOKIE}={csrf}"
        return cookie

    async def test_reads_skip_csrf(self, client, seed):
        user = await seed.profile("reader@example.com")
        resp = await client.get(
            "/api/v1/orgs", headers={"Cookie": self._cookie(create_jwt(user.id, user.email))}
        )
        assert resp.status_code == 200

    async def test_bearer_write_skips_csrf(self, client, seed, auth_headers):
        user = await seed.profile("writer@example.com")
        resp = await client.post(
            "/api/v1/orgs",
            json={"name": "Bearer Org", "slug": "bearer-org"},
            headers=auth_headers(user.id, user.email),
        )
        assert resp.status_code == 201

    async def test_cookie_write_without_token_rejected(self, client, seed):
        user = await seed.profile("writer@example.com")
        resp = await client.post(
            "/api/v1/orgs",
            json={"name": "Cookie Org", "slug": "cookie-org"},
            headers={"Cookie": self._cookie(create_jwt(user.id, user.email))},
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "CSRF_VALIDATION_FAILED"

    async def test_cookie_write_with_matching_token(self, client, seed):
        user = await seed.profile("writer@example.com")
        resp = await client.post(
            "/api/v1/orgs",
            json={"name": "Cookie Org", "slug": "cookie-org"},
            headers={
                "Cookie": self._cookie(create_jwt(user.id, user.email), csrf="abc"),
                "X-CSRF-Token": "abc",
            },
        )
        assert resp.status_code == 201

    async def test_cookie_write_with_mismatched_token(self, client, seed):
        user = await seed.profile("writer@example.com")
        resp = await client.post(
            "/api/v1/invitations/some-token/accept",
            headers={
                "Cookie": self._cookie(create_jwt(user.id, user.email), csrf="abc"),
                "X-CSRF-Token": "xyz",
            },
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Invalid or missing CSRF token."


# ---------------------------------------------------------------------------
# Unit Tests: Role checks
# ---------------------------------------------------------------------------

class TestAuthorizationMatrix:
    """Role dependencies fail closed: no membership or a lesser role is a 403."""

    def _access(self, role: str) -> OrgAccess:
        org = MagicMock()
        org.id = uuid.uuid4()
        membership = MagicMock()
        membership.role = role
        return OrgAccess(CurrentUser(uuid.uuid4(), "x@example.com"), org, membership)

    @pytest.mark.parametrize("role", ["owner", "admin"])
    async def test_manager_allows_owner_and_admin(self, role):
        access = self._access(role)
        assert await require_org_manager(access) is access

    @pytest.mark.parametrize("role", ["member", "viewer", "unknown"])
    async def test_manager_rejects_others(self, role):
        with pytest.raises(HTTPException) as exc_info:
            await require_org_manager(self._access(role))
        assert exc_info.value.status_code == 403

    async def test_authorize_rejects_non_member(self, seed, session):
        org = await seed.org()
        outsider = CurrentUser(uuid.uuid4(), "outsider@example.com")
        with pytest.raises(HTTPException) as exc_info:
            await authorize_org_role(session, org.id, outsider)
        assert exc_info.value.status_code == 403

    async def test_authorize_respects_allowed_set(self, seed, session):
        org = await seed.org()
        profile = await seed.profile("viewer@example.com")
        await seed.member(org, profile, "viewer")
        user = CurrentUser(profile.id, profile.email)

        membership = await authorize_org_role(session, org.id, user, [Role.VIEWER])
        assert membership.role == "viewer"

        with pytest.raises(HTTPException):
            await authorize_org_role(session, org.id, user)

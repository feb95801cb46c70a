"""
Tests for the invitation workflow.

Covers:
- Token shape and local fallback generation
- Invitation creation (URL, expiry, role validation, collisions)
- The acceptance chain: not found, expired, accepted, member, e-mail mismatch
- /invitations endpoints
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from sqlmodel import select

from app.core.auth import CurrentUser
from app.core.errors import (
    InvitationAlreadyAccepted,
    InvitationEmailMismatch,
    InvitationExpired,
    InvitationNotFound,
)
from app.models.base import as_utc
from app.models.organization_member import OrganizationMember
from app.services import invitations as invitation_service
from lumen_shared.schemas.common import Role


async def _members(session, organization_id, user_id):
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TestTokens:
    def test_token_is_64_hex_chars(self):
        token = invitation_service.generate_token(
            "a.very.long.address+tag@subdomain.example.com", uuid.uuid4()
        )
        assert len(token) == 64
        assert all(c in "0123456789abcdef" for c in token)

    def test_tokens_differ(self):
        org_id = uuid.uuid4()
        tokens = {invitation_service.generate_token("x@example.com", org_id) for _ in range(20)}
        assert len(tokens) == 20

    async def test_sqlite_falls_back_to_local_generation(self, session):
        token = await invitation_service.generate_invitation_token(
            session, "x@example.com", uuid.uuid4()
        )
        assert token.isalnum()
        assert len(token) <= 64


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateInvitation:
    async def test_sets_seven_day_expiry(self, seed, session):
        inviter = await seed.profile("owner@example.com")
        org = await seed.org()

        before = datetime.now(timezone.utc)
        invitation = await invitation_service.create_invitation(
            "new@example.com", Role.ADMIN, org.id, inviter.id, session
        )

        assert invitation.role == "admin"
        assert invitation.accepted_at is None
        expiry = as_utc(invitation.expires_at) - before
        assert timedelta(days=7) - timedelta(minutes=1) < expiry <= timedelta(days=7, minutes=1)

    async def test_owner_role_rejected(self, seed, session):
        inviter = await seed.profile("owner@example.com")
        org = await seed.org()
        with pytest.raises(HTTPException) as exc_info:
            await invitation_service.create_invitation(
                "new@example.com", Role.OWNER, org.id, inviter.id, session
            )
        assert exc_info.value.status_code == 400

    async def test_regenerates_on_collision(self, seed, session):
        inviter = await seed.profile("owner@example.com")
        org = await seed.org()
        await seed.invitation(org, "first@example.com", token="taken")

        with patch.object(invitation_service, "generate_token", side_effect=["taken", "fresh"]):
            invitation = await invitation_service.create_invitation(
                "second@example.com", Role.MEMBER, org.id, inviter.id, session
            )
        assert invitation.token == "fresh"

    def test_invitation_url(self):
        url = invitation_service.build_invitation_url("abc123")
        assert url.endswith("/invite/abc123")


# ---------------------------------------------------------------------------
# Acceptance
# ---------------------------------------------------------------------------

class TestAcceptInvitation:
    async def test_unknown_token(self, session):
        user = CurrentUser(uuid.uuid4(), "x@example.com")
        with pytest.raises(InvitationNotFound) as exc_info:
            await invitation_service.accept_invitation("nope", user, session)
        assert exc_info.value.status_code == 404

    async def test_expired(self, seed, session):
        profile = await seed.profile("new@example.com")
        org = await seed.org()
        inv = await seed.invitation(org, "new@example.com", expires_in=timedelta(seconds=-1))

        with pytest.raises(InvitationExpired) as exc_info:
            await invitation_service.accept_invitation(
                inv.token, CurrentUser(profile.id, profile.email), session
            )
        assert exc_info.value.status_code == 410

    async def test_expired_wins_over_already_accepted(self, seed, session):
        profile = await seed.profile("new@example.com")
        org = await seed.org()
        inv = await seed.invitation(
            org,
            "new@example.com",
            expires_in=timedelta(days=-1),
            accepted_at=datetime.now(timezone.utc) - timedelta(days=2),
        )
        with pytest.raises(InvitationExpired):
            await invitation_service.accept_invitation(
                inv.token, CurrentUser(profile.id, profile.email), session
            )

    async def test_already_accepted(self, seed, session):
        profile = await seed.profile("new@example.com")
        org = await seed.org()
        inv = await seed.invitation(
            org, "new@example.com", accepted_at=datetime.now(timezone.utc)
        )
        with pytest.raises(InvitationAlreadyAccepted) as exc_info:
            await invitation_service.accept_invitation(
                inv.token, CurrentUser(profile.id, profile.email), session
            )
        assert exc_info.value.status_code == 409

    async def test_already_member_is_idempotent(self, seed, session):
        profile = await seed.profile("new@example.com")
        org = await seed.org()
        await seed.member(org, profile, "viewer")
        inv = await seed.invitation(org, "someone-else@example.com")

        invitation, _, already_member = await invitation_service.accept_invitation(
            inv.token, CurrentUser(profile.id, profile.email), session
        )

        assert already_member is True
        assert invitation.accepted_at is None
        assert len(await _members(session, org.id, profile.id)) == 1

    async def test_email_mismatch(self, seed, session):
        profile = await seed.profile("other@example.com")
        org = await seed.org()
        inv = await seed.invitation(org, "new@example.com")

        with pytest.raises(InvitationEmailMismatch) as exc_info:
            await invitation_service.accept_invitation(
                inv.token, CurrentUser(profile.id, profile.email), session
            )
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == (
            "This invitation was sent to new@example.com, but you are logged in as other@example.com"
        )

    async def test_email_match_is_case_sensitive(self, seed, session):
        profile = await seed.profile("New@Example.com")
        org = await seed.org()
        inv = await seed.invitation(org, "new@example.com")
        with pytest.raises(InvitationEmailMismatch):
            await invitation_service.accept_invitation(
                inv.token, CurrentUser(profile.id, profile.email), session
            )

    async def test_success_creates_membership(self, seed, session):
        inviter = await seed.profile("owner@example.com")
        profile = await seed.profile("new@example.com")
        org = await seed.org(name="Acme")
        inv = await seed.invitation(org, "new@example.com", role="admin", invited_by=inviter.id)

        invitation, accepted_org, already_member = await invitation_service.accept_invitation(
            inv.token, CurrentUser(profile.id, profile.email), session
        )

        assert already_member is False
        assert accepted_org.name == "Acme"
        assert invitation.accepted_at is not None
        members = await _members(session, org.id, profile.id)
        assert len(members) == 1
        assert members[0].role == "admin"
        assert members[0].invited_by == inviter.id


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class TestInvitationEndpoints:
    async def _org_with(self, seed, role):
        user = await seed.profile(f"{role}@example.com")
        org = await seed.org(name="Acme")
        await seed.member(org, user, role)
        return user, org

    async def test_create_returns_url(self, client, seed, auth_headers):
        owner, org = await self._org_with(seed, "owner")

        resp = await client.post(
            f"/api/v1/orgs/{org.id}/invitations",
            json={"email": "new@example.com", "role": "viewer"},
            headers=auth_headers(owner.id, owner.email),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["invitation"]["email"] == "new@example.com"
        assert body["invitation"]["role"] == "viewer"
        assert body["invitation_url"].endswith(f"/invite/{body['token']}")

    async def test_reinviting_same_email_creates_new_invitation(self, client, seed, auth_headers):
        owner, org = await self._org_with(seed, "owner")
        headers = auth_headers(owner.id, owner.email)

        tokens = []
        for _ in range(2):
            resp = await client.post(
                f"/api/v1/orgs/{org.id}/invitations",
                json={"email": "bob@example.com"},
                headers=headers,
            )
            assert resp.status_code == 201
            tokens.append(resp.json()["token"])

        assert tokens[0] != tokens[1]

    async def test_member_cannot_create(self, client, seed, auth_headers):
        member, org = await self._org_with(seed, "member")
        resp = await client.post(
            f"/api/v1/orgs/{org.id}/invitations",
            json={"email": "new@example.com"},
            headers=auth_headers(member.id, member.email),
        )
        assert resp.status_code == 403

    async def test_generate_token(self, client, seed, auth_headers):
        admin, org = await self._org_with(seed, "admin")
        resp = await client.post(
            "/api/v1/invitations/generate-token",
            json={"email": "new@example.com", "organizationId": str(org.id), "role": "member"},
            headers=auth_headers(admin.id, admin.email),
        )
        assert resp.status_code == 200
        assert resp.json()["token"].isalnum()

    async def test_generate_token_requires_manager(self, client, seed, auth_headers):
        viewer, org = await self._org_with(seed, "viewer")
        resp = await client.post(
            "/api/v1/invitations/generate-token",
            json={"email": "new@example.com", "organizationId": str(org.id), "role": "member"},
            headers=auth_headers(viewer.id, viewer.email),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "You don't have permission to invite users"

    async def test_generate_token_missing_fields(self, client, seed, auth_headers):
        admin, org = await self._org_with(seed, "admin")
        resp = await client.post(
            "/api/v1/invitations/generate-token",
            json={"email": "new@example.com"},
            headers=auth_headers(admin.id, admin.email),
        )
        assert resp.status_code == 400

    async def test_accept_flow(self, client, seed, auth_headers):
        owner, org = await self._org_with(seed, "owner")
        created = await client.post(
            f"/api/v1/orgs/{org.id}/invitations",
            json={"email": "new@example.com", "role": "member"},
            headers=auth_headers(owner.id, owner.email),
        )
        token = created.json()["token"]
        invitee = await seed.profile("new@example.com")
        headers = auth_headers(invitee.id, invitee.email)

        resp = await client.post(f"/api/v1/invitations/{token}/accept", headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["already_member"] is False
        assert body["message"] == "Successfully joined Acme!"
        assert body["role"] == "member"

        again = await client.post(f"/api/v1/invitations/{token}/accept", headers=headers)
        assert again.status_code == 409

        membership = await client.get(f"/api/v1/orgs/{org.id}/membership", headers=headers)
        assert membership.json()["role"] == "member"

    async def test_accept_when_already_member(self, client, seed, auth_headers):
        member, org = await self._org_with(seed, "member")
        inv = await seed.invitation(org, member.email)

        resp = await client.post(
            f"/api/v1/invitations/{inv.token}/accept",
            headers=auth_headers(member.id, member.email),
        )
        assert resp.status_code == 200
        assert resp.json()["already_member"] is True
        assert resp.json()["message"] == "You are already a member of this organization"

    async def test_accept_unknown_token(self, client, auth_headers):
        resp = await client.post(
            "/api/v1/invitations/missing/accept",
            headers=auth_headers(uuid.uuid4(), "x@example.com"),
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Invalid or expired invitation link"

    async def test_accept_requires_login(self, client):
        resp = await client.post("/api/v1/invitations/whatever/accept")
        assert resp.status_code == 401

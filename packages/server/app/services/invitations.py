"""
Invitation service — token generation, invitation creation and acceptance.

No e-mail is sent; the caller surfaces the invitation URL to the inviter.
"""

from __future__ import annotations

import hashlib
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentUser, get_membership
from app.core.config import get_settings
from app.core.errors import (
    InvitationAlreadyAccepted,
    InvitationEmailMismatch,
    InvitationExpired,
    InvitationNotFound,
)
from app.models.base import as_utc
from app.models.invitation import Invitation
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from lumen_shared.schemas.common import ASSIGNABLE_ROLES, Role

log = structlog.get_logger()
settings = get_settings()

TOKEN_MAX_LENGTH = 64
TOKEN_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def generate_token(email: str, organization_id: uuid.UUID | str) -> str:
    """Opaque 64-character hex digest of the invitee, org, time and a random salt.

    Uniqueness is enforced by the ``invitations.token`` column, not here.
    """
    seed = f"{email}-{organization_id}-{int(time.time() * 1000)}-{secrets.token_hex(8)}"
    return hashlib.sha256(seed.encode()).hexdigest()[:TOKEN_MAX_LENGTH]


async def generate_invitation_token(
    session: AsyncSession, email: str, organization_id: uuid.UUID | str
) -> str:
    """Ask the database's ``generate_invitation_token()`` first, else generate locally."""
    if settings.invitation_token_rpc and session.get_bind().dialect.name == "postgresql":
        try:
            async with session.begin_nested():
                result = await session.execute(text("SELECT generate_invitation_token()"))
                token = result.scalar_one_or_none()
            if token:
                return str(token)[:TOKEN_MAX_LENGTH]
        except SQLAlchemyError as exc:
            log.warning("invitation.token_rpc_failed", error=str(exc))
    return generate_token(email, organization_id)


async def _token_exists(token: str, session: AsyncSession) -> bool:
    result = await session.execute(select(Invitation.id).where(Invitation.token == token))
    return result.first() is not None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def build_invitation_url(token: str) -> str:
    return f"{settings.public_url.rstrip('/')}/invite/{token}"


async def create_invitation(
    email: str,
    role: Role,
    organization_id: uuid.UUID,
    invited_by: uuid.UUID,
    session: AsyncSession,
) -> Invitation:
    """Persist a pending invitation valid for ``invitation_ttl_days``."""
    if role not in ASSIGNABLE_ROLES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid role: {role.value}. Must be one of: "
            + ", ".join(r.value for r in ASSIGNABLE_ROLES),
        )

    token = await generate_invitation_token(session, email, organization_id)
    for _ in range(TOKEN_ATTEMPTS):
        if not await _token_exists(token, session):
            break
        log.warning("invitation.token_collision", org_id=str(organization_id))
        token = generate_token(email, organization_id)

    invitation = Invitation(
        organization_id=organization_id,
        email=email,
        role=role.value,
        token=token,
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.invitation_ttl_days),
        accepted_at=None,
        invited_by=invited_by,
    )
    session.add(invitation)
    await session.flush()

    log.info(
        "invitation.created",
        invitation_id=str(invitation.id),
        org_id=str(organization_id),
        role=role.value,
        invited_by=str(invited_by),
    )
    return invitation


async def get_invitation_by_token(token: str, session: AsyncSession) -> Optional[Invitation]:
    result = await session.execute(select(Invitation).where(Invitation.token == token))
    return result.scalar_one_or_none()


async def accept_invitation(
    token: str,
    user: CurrentUser,
    session: AsyncSession,
) -> tuple[Invitation, Optional[Organization], bool]:
    """Run the acceptance chain. Returns (invitation, org, already_member).

    Checks short-circuit in order: not found, expired, already accepted,
    already a member (success, no writes), e-mail mismatch.
    """
    invitation = await get_invitation_by_token(token, session)
    if not invitation:
        raise InvitationNotFound()

    now = datetime.now(timezone.utc)
    if as_utc(invitation.expires_at) < now:
        raise InvitationExpired()

    if invitation.accepted_at is not None:
        raise InvitationAlreadyAccepted()

    result = await session.execute(
        select(Organization).where(Organization.id == invitation.organization_id)
    )
    org = result.scalar_one_or_none()

    existing = await get_membership(session, invitation.organization_id, user.user_id)
    if existing:
        log.info(
            "invitation.already_member",
            invitation_id=str(invitation.id),
            user_id=str(user.user_id),
        )
        return invitation, org, True

    # Exact, case-sensitive match.
    if invitation.email != user.email:
        raise InvitationEmailMismatch(invitation.email, user.email)

    membership = OrganizationMember(
        organization_id=invitation.organization_id,
        user_id=user.user_id,
        role=invitation.role,
        invited_by=invitation.invited_by,
    )
    session.add(membership)
    await session.flush()

    invitation.accepted_at = now
    session.add(invitation)
    await session.flush()

    log.info(
        "invitation.accepted",
        invitation_id=str(invitation.id),
        org_id=str(invitation.organization_id),
        user_id=str(user.user_id),
        role=invitation.role,
    )
    return invitation, org, False

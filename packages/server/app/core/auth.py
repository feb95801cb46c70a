"""
Authentication and Authorization for Lumen.

Authentication itself is delegated to the hosted auth provider; this module
only verifies the provider-issued JWT and resolves the caller's membership.

Supports:
- JWT verification from a Bearer header or the session cookie
- Org-scoped membership resolution
- Role-based authorization dependencies (fail-closed)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.middleware import SESSION_COOKIE
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from lumen_shared.schemas.common import MANAGER_ROLES, Role

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

PERMISSION_DENIED = "You don't have permission to perform this action for this organization"


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: Optional[str],
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a token shaped like the provider's. Used by local tooling and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=1)),
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options={"verify_aud": settings.jwt_audience is not None},
    )


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class CurrentUser:
    """The authenticated caller as described by the provider token."""

    def __init__(self, user_id: uuid.UUID, email: Optional[str]):
        self.user_id = user_id
        self.email = email


class OrgAccess:
    """Container for the caller + their membership in the path's org."""

    def __init__(self, user: CurrentUser, org: Organization, membership: OrganizationMember):
        self.user = user
        self.org = org
        self.membership = membership
        self.user_id = user.user_id
        self.org_id = org.id
        self.role = membership.role


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
) -> CurrentUser:
    """Main authentication dependency."""
    token = _extract_token(request, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    user = CurrentUser(user_id=user_id, email=payload.get("email"))
    request.state.user = user
    return user


async def get_membership(
    session: AsyncSession, organization_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[OrganizationMember]:
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def authorize_org_role(
    session: AsyncSession,
    organization_id: uuid.UUID,
    user: CurrentUser,
    allowed: Iterable[Role] = MANAGER_ROLES,
    detail: str = PERMISSION_DENIED,
) -> OrganizationMember:
    """Return the caller's membership or raise 403. Unknown roles never pass."""
    allowed_values = {r.value for r in allowed}
    membership = await get_membership(session, organization_id, user.user_id)
    if not membership or membership.role not in allowed_values:
        log.info(
            "auth.role_denied",
            user_id=str(user.user_id),
            org_id=str(organization_id),
            role=membership.role if membership else None,
        )
        raise HTTPException(status_code=403, detail=detail)
    return membership


# ---------------------------------------------------------------------------
# Authorization dependencies (org-scoped, organization_id in path)
# ---------------------------------------------------------------------------

async def require_org_member(
    organization_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OrgAccess:
    """Any member of the org. Non-members get 404 so org existence is not leaked."""
    membership = await get_membership(session, organization_id, user.user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="Organization not found")

    result = await session.execute(
        select(Organization).where(Organization.id == organization_id)
    )
    org = result.scalar_one_or_none()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return OrgAccess(user=user, org=org, membership=membership)


async def require_org_manager(
    access: OrgAccess = Depends(require_org_member),
) -> OrgAccess:
    """Requires owner or admin role."""
    if access.role not in {r.value for r in MANAGER_ROLES}:
        raise HTTPException(status_code=403, detail=PERMISSION_DENIED)
    return access

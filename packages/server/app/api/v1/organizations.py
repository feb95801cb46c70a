"""
Organization API endpoints.

GET    /api/v1/orgs                                        — Memberships of the caller, joined with orgs
POST   /api/v1/orgs                                        — Create a new org (caller becomes owner)
GET    /api/v1/orgs/{organization_id}/membership           — Caller's membership and role
GET    /api/v1/orgs/{organization_id}/members              — List members
PATCH  /api/v1/orgs/{organization_id}/members/{member_id}  — Change a member's role
DELETE /api/v1/orgs/{organization_id}/members/{member_id}  — Remove a member
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CurrentUser,
    OrgAccess,
    get_current_user,
    require_org_manager,
    require_org_member,
)
from app.core.database import get_session
from app.services import organizations as org_service
from lumen_shared.schemas.organizations import (
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdateRequest,
    MembershipListResponse,
    MembershipResponse,
    OrganizationResponse,
    OrgCreateRequest,
)

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Non-org-scoped routes
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=MembershipListResponse, tags=["Organizations"])
async def list_orgs(
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List the caller's memberships, each with its organization."""
    items = await org_service.list_user_memberships(user.user_id, session)
    return MembershipListResponse(data=[MembershipResponse(**item) for item in items])


@router_global.post("/orgs", response_model=OrganizationResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    org = await org_service.create_org(body, user.user_id, session)
    return OrganizationResponse.model_validate(org)


# ---------------------------------------------------------------------------
# Org-scoped routes (organization_id in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("/membership", response_model=MembershipResponse, tags=["Organizations"])
async def get_my_membership(
    access: OrgAccess = Depends(require_org_member),
    session: AsyncSession = Depends(get_session),
):
    """The caller's current membership; clients re-read their role from here."""
    item = await org_service.get_user_membership(access.org_id, access.user_id, session)
    return MembershipResponse(**item)


@router_scoped.get("/members", response_model=MemberListResponse, tags=["Members"])
async def list_members(
    access: OrgAccess = Depends(require_org_member),
    session: AsyncSession = Depends(get_session),
):
    items = await org_service.list_members(access.org_id, session)
    return MemberListResponse(data=[MemberResponse(**item) for item in items])


@router_scoped.patch("/members/{member_id}", response_model=MembershipResponse, tags=["Members"])
async def update_member_role(
    member_id: uuid.UUID,
    body: MemberRoleUpdateRequest,
    access: OrgAccess = Depends(require_org_manager),
    session: AsyncSession = Depends(get_session),
):
    """Change a member's role (owner or admin only)."""
    member = await org_service.update_member_role(access.org_id, member_id, body.role, session)
    return MembershipResponse.model_validate(member)


@router_scoped.delete("/members/{member_id}", status_code=204, tags=["Members"])
async def remove_member(
    member_id: uuid.UUID,
    access: OrgAccess = Depends(require_org_manager),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member (owner or admin only). Access is revoked immediately."""
    await org_service.remove_member(access.org_id, member_id, session)

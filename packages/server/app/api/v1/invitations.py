"""
Invitation API endpoints.

POST /api/v1/invitations/generate-token               — Mint a token without persisting an invitation
POST /api/v1/orgs/{organization_id}/invitations       — Create an invitation, returns its URL
POST /api/v1/invitations/{token}/accept               — Accept an invitation as the caller
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CurrentUser,
    OrgAccess,
    authorize_org_role,
    get_current_user,
    require_org_manager,
)
from app.core.database import get_session
from app.services import invitations as invitation_service
from lumen_shared.schemas.common import MANAGER_ROLES, Role
from lumen_shared.schemas.invitations import (
    GenerateTokenRequest,
    GenerateTokenResponse,
    InvitationAcceptResponse,
    InvitationCreateRequest,
    InvitationCreateResponse,
    InvitationResponse,
)

log = structlog.get_logger()

router_global = APIRouter()
router_scoped = APIRouter()


@router_global.post("/invitations/generate-token", response_model=GenerateTokenResponse, tags=["Invitations"])
async def generate_token(
    body: GenerateTokenRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Generate an invitation token (owner or admin only)."""
    if not body.email or not body.organization_id or not body.role:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        organization_id = uuid.UUID(body.organization_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid organizationId")

    await authorize_org_role(
        session,
        organization_id,
        user,
        MANAGER_ROLES,
        detail="You don't have permission to invite users",
    )
    token = await invitation_service.generate_invitation_token(
        session, body.email, organization_id
    )
    return GenerateTokenResponse(token=token)


@router_scoped.post("/invitations", response_model=InvitationCreateResponse, status_code=201, tags=["Invitations"])
async def create_invitation(
    body: InvitationCreateRequest,
    access: OrgAccess = Depends(require_org_manager),
    session: AsyncSession = Depends(get_session),
):
    """Create an invitation (owner or admin only). The link is returned, not e-mailed."""
    invitation = await invitation_service.create_invitation(
        body.email, body.role, access.org_id, access.user_id, session
    )
    return InvitationCreateResponse(
        invitation=InvitationResponse.model_validate(invitation),
        token=invitation.token,
        invitation_url=invitation_service.build_invitation_url(invitation.token),
    )


@router_global.post("/invitations/{token}/accept", response_model=InvitationAcceptResponse, tags=["Invitations"])
async def accept_invitation(
    token: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Accept the invitation identified by the token in the shared link."""
    invitation, org, already_member = await invitation_service.accept_invitation(
        token, user, session
    )
    org_name = org.name if org else None
    if already_member:
        message = "You are already a member of this organization"
    else:
        message = f"Successfully joined {org_name or 'the organization'}!"
    return InvitationAcceptResponse(
        organization_id=invitation.organization_id,
        organization_name=org_name,
        role=Role(invitation.role),
        already_member=already_member,
        message=message,
    )

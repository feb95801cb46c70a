"""
Organization service — memberships, org creation and member management.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.profile import Profile
from lumen_shared.schemas.common import ASSIGNABLE_ROLES, Role
from lumen_shared.schemas.organizations import OrgCreateRequest, OrganizationResponse

log = structlog.get_logger()


def _membership_dict(member: OrganizationMember, org: Optional[Organization] = None) -> dict:
    return {
        "id": member.id,
        "organization_id": member.organization_id,
        "user_id": member.user_id,
        "role": member.role,
        "invited_by": member.invited_by,
        "joined_at": member.joined_at,
        "created_at": member.created_at,
        "organization": OrganizationResponse.model_validate(org) if org else None,
    }


async def list_user_memberships(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """All memberships of a user, each joined with its organization."""
    result = await session.execute(
        select(OrganizationMember, Organization)
        .join(Organization, Organization.id == OrganizationMember.organization_id)
        .where(OrganizationMember.user_id == user_id)
        .order_by(OrganizationMember.created_at)
    )
    return [_membership_dict(member, org) for member, org in result.all()]


async def get_user_membership(
    organization_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> dict:
    """A single membership of the user; 404 when the user is not a member."""
    result = await session.execute(
        select(OrganizationMember, Organization)
        .join(Organization, Organization.id == OrganizationMember.organization_id)
        .where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    row = result.one_or_none()
    if not row:
        raise HTTPException(status_code=404, detail="Organization not found")
    member, org = row
    return _membership_dict(member, org)


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator its owner."""
    existing = await session.execute(
        select(Organization).where(Organization.slug == req.slug)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Org slug already taken")

    org = Organization(name=req.name, slug=req.slug, created_by=creator_id)
    session.add(org)
    await session.flush()

    membership = OrganizationMember(
        user_id=creator_id,
        organization_id=org.id,
        role=Role.OWNER.value,
    )
    session.add(membership)
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=req.slug, creator=str(creator_id))
    return org


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

async def list_members(
    organization_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """Members of an org, newest first, with whatever profile data exists."""
    result = await session.execute(
        select(OrganizationMember, Profile)
        .join(Profile, Profile.id == OrganizationMember.user_id, isouter=True)
        .where(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.created_at.desc())
    )
    return [
        {
            "id": member.id,
            "user_id": member.user_id,
            "role": member.role,
            "email": profile.email if profile else None,
            "name": profile.name if profile else None,
            "avatar_url": profile.avatar_url if profile else None,
            "invited_by": member.invited_by,
            "joined_at": member.joined_at,
        }
        for member, profile in result.all()
    ]


async def _get_member(
    organization_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> OrganizationMember:
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.id == member_id,
            OrganizationMember.organization_id == organization_id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found in this organization")
    return member


async def update_member_role(
    organization_id: uuid.UUID,
    member_id: uuid.UUID,
    role: Role,
    session: AsyncSession,
) -> OrganizationMember:
    """Change a member's role. The owner's role is fixed and cannot be granted."""
    if role not in ASSIGNABLE_ROLES:
        raise HTTPException(status_code=400, detail="The owner role cannot be assigned")

    member = await _get_member(organization_id, member_id, session)
    if member.role == Role.OWNER.value:
        raise HTTPException(status_code=409, detail="The owner's role cannot be changed")

    member.role = role.value
    session.add(member)
    await session.flush()
    log.info(
        "member.role_updated",
        member_id=str(member_id),
        org_id=str(organization_id),
        role=role.value,
    )
    return member


async def remove_member(
    organization_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> None:
    """Remove a member from the org. The owner cannot be removed."""
    member = await _get_member(organization_id, member_id, session)
    if member.role == Role.OWNER.value:
        raise HTTPException(status_code=409, detail="The owner cannot be removed")

    await session.delete(member)
    await session.flush()
    log.info("member.removed", member_id=str(member_id), org_id=str(organization_id))

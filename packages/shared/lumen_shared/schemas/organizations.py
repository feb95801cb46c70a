"""
Organization and membership schemas shared between server and client.

Covers: org create request, org payloads, membership payloads and the
member role update request.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    slug: str = Field(
        ...,
        min_length=2,
        max_length=50,
        pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$",
        description="URL-safe org identifier",
    )


class MemberRoleUpdateRequest(BaseModel):
    role: Role


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrganizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MembershipResponse(BaseModel):
    """A membership row, joined with its organization where requested."""

    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    invited_by: Optional[uuid.UUID] = None
    joined_at: datetime
    created_at: datetime
    organization: Optional[OrganizationResponse] = None

    model_config = {"from_attributes": True}


class MembershipListResponse(BaseModel):
    data: list[MembershipResponse]


class MemberResponse(BaseModel):
    """A member of an org with their profile details."""

    id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    invited_by: Optional[uuid.UUID] = None
    joined_at: datetime


class MemberListResponse(BaseModel):
    data: list[MemberResponse]

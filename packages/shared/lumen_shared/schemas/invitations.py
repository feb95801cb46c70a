"""Invitation schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .common import Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class InvitationCreateRequest(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER


class GenerateTokenRequest(BaseModel):
    """Body of POST /invitations/generate-token. Missing fields map to 400."""

    email: Optional[str] = None
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    role: Optional[str] = None

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class InvitationResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    email: str
    role: Role
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    invited_by: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvitationCreateResponse(BaseModel):
    """The invitation plus its shareable URL. No e-mail is sent."""

    invitation: InvitationResponse
    token: str
    invitation_url: str


class GenerateTokenResponse(BaseModel):
    token: str


class InvitationAcceptResponse(BaseModel):
    organization_id: uuid.UUID
    organization_name: Optional[str] = None
    role: Role
    already_member: bool = False
    message: str

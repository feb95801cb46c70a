"""
Current-user endpoint.

GET /api/v1/me — Identity from the session token plus profile details
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_session
from app.models.profile import Profile
from lumen_shared.schemas.users import CurrentUserResponse

router = APIRouter()


@router.get("/me", response_model=CurrentUserResponse, tags=["Users"])
async def get_me(
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(select(Profile).where(Profile.id == user.user_id))
    profile = result.scalar_one_or_none()
    return CurrentUserResponse(
        id=user.user_id,
        email=user.email or (profile.email if profile else None),
        name=profile.name if profile else None,
        avatar_url=profile.avatar_url if profile else None,
    )

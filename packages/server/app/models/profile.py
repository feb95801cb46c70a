"""Profile model (one row per auth-provider user, created by a provider trigger)."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Profile(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "profiles"

    email: Optional[str] = Field(default=None, index=True)
    name: Optional[str] = None
    avatar_url: Optional[str] = None

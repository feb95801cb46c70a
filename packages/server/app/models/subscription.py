"""Subscription model (RLS-scoped).

At most one ``active`` row per organization, enforced by a partial unique index.
"""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Subscription(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "subscriptions"
    __table_args__ = (
        sa.Index(
            "uq_subscriptions_one_active_per_org",
            "organization_id",
            unique=True,
            postgresql_where=sa.text("status = 'active'"),
            sqlite_where=sa.text("status = 'active'"),
        ),
    )

    user_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    plan: str = Field(nullable=False)  # free | pro | enterprise
    status: str = Field(nullable=False, default="active")  # active | canceled | past_due | trialing
    current_period_start: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    current_period_end: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))

"""
Subscription service — plan activation and subscription lookups.

Plan state is recorded only; no payment is processed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import InvalidPlanError
from app.models.subscription import Subscription
from lumen_shared.schemas.common import VALID_PLANS, SubscriptionStatus

log = structlog.get_logger()
settings = get_settings()


def validate_plan(plan: str) -> str:
    if plan not in VALID_PLANS:
        raise InvalidPlanError(plan, VALID_PLANS)
    return plan


def compute_period(now: datetime, days: int | None = None) -> tuple[datetime, datetime]:
    """Fixed-length billing period starting at ``now``, regardless of plan."""
    length = days if days is not None else settings.subscription_period_days
    return now, now + timedelta(days=length)


async def get_active_subscription(
    organization_id: uuid.UUID,
    session: AsyncSession,
    *,
    for_update: bool = False,
) -> Optional[Subscription]:
    """The org's active subscription, newest first if more than one slipped in."""
    stmt = (
        select(Subscription)
        .where(
            Subscription.organization_id == organization_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
        )
        .order_by(Subscription.created_at.desc())
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalars().first()


async def list_subscriptions(
    organization_id: uuid.UUID, session: AsyncSession
) -> list[Subscription]:
    result = await session.execute(
        select(Subscription)
        .where(Subscription.organization_id == organization_id)
        .order_by(Subscription.created_at.desc())
    )
    return list(result.scalars().all())


async def activate_plan(
    plan: str,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    session: AsyncSession,
) -> Subscription:
    """Make ``plan`` the org's single active subscription.

    Lookup, cancel and insert share the caller's transaction; the partial
    unique index on active rows rejects a concurrent second activation.
    """
    validate_plan(plan)

    current = await get_active_subscription(organization_id, session, for_update=True)

    if current and current.plan == plan:
        log.info(
            "subscription.unchanged",
            org_id=str(organization_id),
            subscription_id=str(current.id),
            plan=plan,
        )
        return current

    now = datetime.now(timezone.utc)

    if current:
        current.status = SubscriptionStatus.CANCELED.value
        current.updated_at = now
        session.add(current)
        # The cancel must reach the database before the new active row does.
        await session.flush()
        log.info(
            "subscription.canceled",
            org_id=str(organization_id),
            subscription_id=str(current.id),
            plan=current.plan,
        )

    period_start, period_end = compute_period(now)
    subscription = Subscription(
        user_id=user_id,
        organization_id=organization_id,
        plan=plan,
        status=SubscriptionStatus.ACTIVE.value,
        current_period_start=period_start,
        current_period_end=period_end,
    )
    session.add(subscription)
    await session.flush()

    log.info(
        "subscription.activated",
        org_id=str(organization_id),
        subscription_id=str(subscription.id),
        plan=plan,
        previous_plan=current.plan if current else None,
        user_id=str(user_id),
    )
    return subscription

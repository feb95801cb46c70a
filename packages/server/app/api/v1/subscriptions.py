"""
Subscription API endpoints.

GET  /api/v1/plans                                      — Plan catalog
POST /api/v1/subscriptions/activate                     — Activate a plan for an org
GET  /api/v1/orgs/{organization_id}/subscription        — Active subscription (or null)
GET  /api/v1/orgs/{organization_id}/subscriptions       — Subscription history, newest first
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CurrentUser,
    OrgAccess,
    authorize_org_role,
    get_current_user,
    require_org_member,
)
from app.core.database import get_session
from app.services import subscriptions as subscription_service
from lumen_shared.schemas.common import MANAGER_ROLES
from lumen_shared.schemas.subscriptions import (
    PLAN_CATALOG,
    ActivatePlanRequest,
    ActivatePlanResponse,
    ActiveSubscriptionResponse,
    PlanListResponse,
    SubscriptionListResponse,
    SubscriptionResponse,
)

log = structlog.get_logger()

router_global = APIRouter()
router_scoped = APIRouter()


@router_global.get("/plans", response_model=PlanListResponse, tags=["Billing"])
async def list_plans():
    """Available plans. Prices are informational; no payment is taken."""
    return PlanListResponse(data=PLAN_CATALOG)


@router_global.post("/subscriptions/activate", response_model=ActivatePlanResponse, tags=["Billing"])
async def activate_plan(
    body: ActivatePlanRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Activate a plan for an organization (owner or admin only)."""
    if not body.plan or not body.organization_id:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: plan and organizationId",
        )
    try:
        organization_id = uuid.UUID(body.organization_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid organizationId")

    subscription_service.validate_plan(body.plan)

    await authorize_org_role(
        session,
        organization_id,
        user,
        MANAGER_ROLES,
        detail="You don't have permission to manage subscriptions for this organization",
    )

    try:
        subscription = await subscription_service.activate_plan(
            body.plan, user.user_id, organization_id, session
        )
    except SQLAlchemyError as exc:
        log.error("subscription.activate_failed", org_id=str(organization_id), error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to activate plan")

    return ActivatePlanResponse(subscription=SubscriptionResponse.model_validate(subscription))


@router_scoped.get("/subscription", response_model=ActiveSubscriptionResponse, tags=["Billing"])
async def get_active_subscription(
    access: OrgAccess = Depends(require_org_member),
    session: AsyncSession = Depends(get_session),
):
    subscription = await subscription_service.get_active_subscription(access.org_id, session)
    return ActiveSubscriptionResponse(
        data=SubscriptionResponse.model_validate(subscription) if subscription else None
    )


@router_scoped.get("/subscriptions", response_model=SubscriptionListResponse, tags=["Billing"])
async def list_subscriptions(
    access: OrgAccess = Depends(require_org_member),
    session: AsyncSession = Depends(get_session),
):
    items = await subscription_service.list_subscriptions(access.org_id, session)
    return SubscriptionListResponse(
        data=[SubscriptionResponse.model_validate(s) for s in items]
    )

"""
Subscription and plan schemas.

Plan state is recorded only; no payment is taken for any plan.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Plan, SubscriptionStatus


class ActivatePlanRequest(BaseModel):
    """Body of POST /subscriptions/activate.

    Fields are optional here so that missing values are reported as 400
    by the endpoint rather than as a schema error.
    """

    plan: Optional[str] = None
    organization_id: Optional[str] = Field(default=None, alias="organizationId")

    model_config = {"populate_by_name": True}


class SubscriptionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    organization_id: uuid.UUID
    plan: Plan
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ActivatePlanResponse(BaseModel):
    success: bool = True
    subscription: SubscriptionResponse


class ActiveSubscriptionResponse(BaseModel):
    data: Optional[SubscriptionResponse] = None


class SubscriptionListResponse(BaseModel):
    data: list[SubscriptionResponse]


# ---------------------------------------------------------------------------
# Plan catalog
# ---------------------------------------------------------------------------

class PlanInfo(BaseModel):
    plan: Plan
    name: str
    description: str
    price: str  # USD
    period: str
    features: list[str]
    popular: bool = False


class PlanListResponse(BaseModel):
    data: list[PlanInfo]


PLAN_CATALOG: list[PlanInfo] = [
    PlanInfo(
        plan=Plan.FREE,
        name="Starter",
        description="For individual users and small teams",
        price="0",
        period="forever",
        features=[
            "Up to 3 users",
            "Basic reports",
            "5 integrations",
            "Email support",
            "Up to 10,000 events/month",
            "Basic analytics",
        ],
    ),
    PlanInfo(
        plan=Plan.PRO,
        name="Professional",
        description="For growing companies with advanced needs",
        price="29",
        period="per month",
        features=[
            "Up to 25 users",
            "Advanced reports",
            "Unlimited integrations",
            "Priority support",
            "Up to 100,000 events/month",
            "Advanced analytics",
            "Custom dashboards",
            "Data export",
        ],
        popular=True,
    ),
    PlanInfo(
        plan=Plan.ENTERPRISE,
        name="Enterprise",
        description="For large organizations with special requirements",
        price="99",
        period="per month",
        features=[
            "Unlimited users",
            "All Professional features",
            "Dedicated manager",
            "24/7 support",
            "Unlimited events",
            "AI forecasting",
            "Custom integrations",
            "SLA guarantee",
            "Personal training",
        ],
    ),
]


def get_plan_info(plan: str) -> Optional[PlanInfo]:
    for info in PLAN_CATALOG:
        if info.plan.value == plan:
            return info
    return None

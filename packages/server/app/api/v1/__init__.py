"""
API v1 Router

Org-scoped endpoints are prefixed with /orgs/{organization_id}.
"""

from fastapi import APIRouter
from . import invitations, organizations, subscriptions, users

router = APIRouter()

# Non-org-scoped routes
router.include_router(users.router)
router.include_router(organizations.router_global)
router.include_router(subscriptions.router_global)
router.include_router(invitations.router_global)

# Org-scoped routes
router.include_router(organizations.router_scoped, prefix="/orgs/{organization_id}")
router.include_router(subscriptions.router_scoped, prefix="/orgs/{organization_id}")
router.include_router(invitations.router_scoped, prefix="/orgs/{organization_id}")


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/me",
            "/orgs",
            "/plans",
            "/subscriptions/activate",
            "/invitations/{token}/accept",
            "/orgs/{organization_id}/membership",
            "/orgs/{organization_id}/members",
            "/orgs/{organization_id}/subscription",
            "/orgs/{organization_id}/invitations",
        ],
    }

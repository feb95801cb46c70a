"""
Shared fixtures for client tests.
"""

import uuid
from datetime import datetime, timezone

import pytest

from lumen_client.cache import OrganizationCacheStore
from lumen_client.state import ClientState
from lumen_shared.schemas.organizations import MembershipResponse, OrganizationResponse


def make_org(name: str) -> OrganizationResponse:
    now = datetime.now(timezone.utc)
    return OrganizationResponse(
        id=uuid.uuid4(),
        name=name,
        slug=name.lower().replace(" ", "-"),
        created_at=now,
        updated_at=now,
    )


def make_membership(org: OrganizationResponse, role: str, user_id: uuid.UUID | None = None) -> MembershipResponse:
    now = datetime.now(timezone.utc)
    return MembershipResponse(
        id=uuid.uuid4(),
        organization_id=org.id,
        user_id=user_id or uuid.uuid4(),
        role=role,
        joined_at=now,
        created_at=now,
        organization=org,
    )


@pytest.fixture
async def state(tmp_path):
    s = ClientState(str(tmp_path / "client.db"))
    await s.open()
    yield s
    await s.close()


@pytest.fixture
def cache(state):
    return OrganizationCacheStore(state)


@pytest.fixture
def org_factory():
    return make_org


@pytest.fixture
def membership_factory():
    return make_membership

"""
Shared fixtures for server tests.

Every test gets a fresh in-memory SQLite database. API tests run the real
app over httpx's ASGITransport with the session dependency pointed at it.
"""

import os

os.environ.setdefault("LUMEN_DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from app.core.auth import create_jwt
from app.core.database import get_session, init_db, make_engine, make_session_factory
from app.main import app
from app.models.invitation import Invitation
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.profile import Profile
from app.models.subscription import Subscription


@pytest.fixture
async def db_engine():
    engine = make_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def client(session_factory):
    async def _override_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _auth_headers(user_id: uuid.UUID, email: Optional[str]) -> dict:
    return {"Authorization": f"Bearer {create_jwt(user_id, email)}"}


@pytest.fixture
def auth_headers():
    """Build Bearer headers for a user, signed like the provider's tokens."""
    return _auth_headers


class Seeder:
    """Inserts rows through short-lived sessions so API calls see them."""

    def __init__(self, session_factory):
        self._factory = session_factory

    async def add(self, *rows):
        async with self._factory() as s:
            for row in rows:
                s.add(row)
            await s.commit()
        return rows[0] if len(rows) == 1 else rows

    async def profile(self, email: str, name: str = "Test User") -> Profile:
        return await self.add(Profile(email=email, name=name))

    async def org(self, name: str = "Org One", slug: Optional[str] = None) -> Organization:
        return await self.add(Organization(name=name, slug=slug or f"org-{uuid.uuid4().hex[:8]}"))

    async def member(self, org: Organization, profile: Profile, role: str) -> OrganizationMember:
        return await self.add(
            OrganizationMember(organization_id=org.id, user_id=profile.id, role=role)
        )

    async def subscription(
        self, org: Organization, profile: Profile, plan: str, status: str = "active"
    ) -> Subscription:
        now = datetime.now(timezone.utc)
        return await self.add(
            Subscription(
                user_id=profile.id,
                organization_id=org.id,
                plan=plan,
                status=status,
                current_period_start=now,
                current_period_end=now + timedelta(days=30),
            )
        )

    async def invitation(
        self,
        org: Organization,
        email: str,
        role: str = "member",
        token: Optional[str] = None,
        expires_in: timedelta = timedelta(days=7),
        accepted_at: Optional[datetime] = None,
        invited_by: Optional[uuid.UUID] = None,
    ) -> Invitation:
        return await self.add(
            Invitation(
                organization_id=org.id,
                email=email,
                role=role,
                token=token or uuid.uuid4().hex,
                expires_at=datetime.now(timezone.utc) + expires_in,
                accepted_at=accepted_at,
                invited_by=invited_by,
            )
        )


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)

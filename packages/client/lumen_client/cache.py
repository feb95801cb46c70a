"""
Organization and avatar caches on top of the client key/value store.

The organization cache is one JSON record, overwritten in full on every
save. Its keys stay camelCase so records written by older dashboard builds
still load. The selected organization is also kept under its own legacy
key, which is what reconciliation reads.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Callable, Optional, Sequence

import aiosqlite
import structlog
from pydantic import BaseModel, Field, ValidationError

from lumen_shared.schemas.common import Role
from lumen_shared.schemas.organizations import OrganizationResponse

from .state import ClientState

log = structlog.get_logger()

CACHE_KEY = "organization-cache"
SELECTED_ORG_KEY = "currentOrganizationId"
AVATAR_CACHE_KEY = "user_avatar_url"
AVATAR_CACHE_TIMESTAMP_KEY = "user_avatar_timestamp"
AVATAR_MAX_AGE_MS = 7 * 24 * 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class OrganizationCache(BaseModel):
    organizations: list[OrganizationResponse]
    current_organization_id: Optional[uuid.UUID] = Field(None, alias="currentOrganizationId")
    member_role: Optional[Role] = Field(None, alias="memberRole")
    cached_at: int = Field(0, alias="cachedAt")

    model_config = {"populate_by_name": True}


class OrganizationCacheStore:
    """
    Reads and writes the organization cache and the avatar cache.

    Every operation quietly does nothing (or returns None) when no store is
    configured or the store is not open.
    """

    def __init__(
        self,
        state: ClientState | None,
        clock: Callable[[], int] = _now_ms,
    ):
        self._state = state
        self._clock = clock

    @property
    def available(self) -> bool:
        return self._state is not None and self._state.is_open

    # --- Organization cache ---

    async def load(self) -> OrganizationCache | None:
        """Return the cached record, or None when absent or unreadable. Never raises."""
        if not self.available:
            return None
        try:
            raw = await self._state.get(CACHE_KEY)
        except aiosqlite.Error as exc:
            log.warning("org_cache.read_failed", error=str(exc))
            return None
        if not raw:
            return None
        try:
            return OrganizationCache.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            log.info("org_cache.discarded_malformed")
            return None

    async def save(
        self,
        organizations: Sequence[OrganizationResponse],
        current_organization_id: uuid.UUID | str | None,
        role: Role | str | None,
    ) -> None:
        if not self.available:
            return
        record = OrganizationCache(
            organizations=list(organizations),
            current_organization_id=current_organization_id,
            member_role=role,
            cached_at=self._clock(),
        )
        await self._state.set(CACHE_KEY, record.model_dump_json(by_alias=True))
        if current_organization_id is not None:
            await self._state.set(SELECTED_ORG_KEY, str(current_organization_id))

    async def selected_id(self) -> str | None:
        if not self.available:
            return None
        return await self._state.get(SELECTED_ORG_KEY)

    async def clear_selected_id(self) -> None:
        if not self.available:
            return
        await self._state.delete(SELECTED_ORG_KEY)

    # --- Avatar cache ---

    @staticmethod
    def _avatar_keys(user_id: str | None) -> tuple[str, str]:
        if user_id:
            return f"{AVATAR_CACHE_KEY}_{user_id}", f"{AVATAR_CACHE_TIMESTAMP_KEY}_{user_id}"
        return AVATAR_CACHE_KEY, AVATAR_CACHE_TIMESTAMP_KEY

    async def cache_avatar_url(self, url: str | None, user_id: str | None = None) -> None:
        if not self.available:
            return
        key, timestamp_key = self._avatar_keys(user_id)
        if url:
            await self._state.set(key, url)
            await self._state.set(timestamp_key, str(self._clock()))
        else:
            await self._state.delete(key, timestamp_key)

    async def get_cached_avatar_url(self, user_id: str | None = None) -> str | None:
        """Return the cached avatar URL if it is younger than seven days."""
        if not self.available:
            return None
        key, timestamp_key = self._avatar_keys(user_id)
        url = await self._state.get(key)
        timestamp = await self._state.get(timestamp_key)
        if not url or not timestamp:
            return None
        try:
            age = self._clock() - int(timestamp)
        except ValueError:
            age = AVATAR_MAX_AGE_MS
        if age < AVATAR_MAX_AGE_MS:
            return url
        await self._state.delete(key, timestamp_key)
        return None

    async def clear_cached_avatar_url(self, user_id: str | None = None) -> None:
        if not self.available:
            return
        await self._state.delete(*self._avatar_keys(user_id))

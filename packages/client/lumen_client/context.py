"""
Organization context for the dashboard.

Holds the caller's organizations, the selected organization and the caller's
role in it. State is published as immutable snapshots:

    UNINITIALIZED -> HYDRATED_FROM_CACHE (when a cache exists)
                  -> RECONCILING -> READY

Every reconcile is tagged with a generation number. A response that arrives
after a newer reconcile started, after a switch committed, or after close()
is discarded.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import aiosqlite
import httpx
import structlog

from lumen_shared.permissions import RoleFlags, role_flags
from lumen_shared.schemas.common import Role
from lumen_shared.schemas.organizations import MembershipResponse, OrganizationResponse

from .api import DashboardApiClient
from .cache import OrganizationCacheStore
from .notifications import LogNotifier, Notifier

log = structlog.get_logger()


class ContextPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATED_FROM_CACHE = "hydrated_from_cache"
    RECONCILING = "reconciling"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True)
class OrganizationState:
    phase: ContextPhase = ContextPhase.UNINITIALIZED
    organizations: tuple[OrganizationResponse, ...] = ()
    current_organization: Optional[OrganizationResponse] = None
    member_role: Optional[Role] = None
    is_loading: bool = True

    @property
    def flags(self) -> RoleFlags:
        return role_flags(self.member_role)

    @property
    def is_owner(self) -> bool:
        return self.flags.is_owner

    @property
    def is_admin(self) -> bool:
        return self.flags.is_admin

    @property
    def can_manage_users(self) -> bool:
        return self.flags.can_manage_users

    @property
    def can_manage_settings(self) -> bool:
        return self.flags.can_manage_settings

    def find(self, organization_id: uuid.UUID | str | None) -> Optional[OrganizationResponse]:
        if organization_id is None:
            return None
        for org in self.organizations:
            if str(org.id) == str(organization_id):
                return org
        return None


Subscriber = Callable[[OrganizationState], None]


class OrganizationContext:
    """Client-side owner of the current organization selection."""

    def __init__(
        self,
        api: DashboardApiClient,
        cache: OrganizationCacheStore,
        notifier: Notifier | None = None,
    ):
        self._api = api
        self._cache = cache
        self._notifier = notifier or LogNotifier()
        self._state = OrganizationState()
        self._subscribers: list[Subscriber] = []
        self._generation = 0
        self._closed = False

    @property
    def state(self) -> OrganizationState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a snapshot listener. Returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, **changes) -> None:
        if self._closed:
            return
        self._state = dataclasses.replace(self._state, **changes)
        for callback in list(self._subscribers):
            callback(self._state)

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    # --- Lifecycle ---

    async def hydrate(self) -> None:
        """Seed state from the local cache without touching the network."""
        cached = await self._cache.load()
        if cached and cached.organizations:
            saved_id = cached.current_organization_id or await self._cache.selected_id()
            organizations = tuple(cached.organizations)
            selected = None
            for org in organizations:
                if str(org.id) == str(saved_id):
                    selected = org
                    break
            self._publish(
                phase=ContextPhase.HYDRATED_FROM_CACHE,
                organizations=organizations,
                current_organization=selected or organizations[0],
                member_role=cached.member_role,
                is_loading=False,
            )
            log.debug("org_context.hydrated", organizations=len(organizations))
        else:
            self._publish(
                organizations=(),
                current_organization=None,
                member_role=None,
                is_loading=True,
            )

    async def start(self) -> None:
        """Publish the cached seed, then reconcile with the server."""
        await self.hydrate()
        await self.reconcile()

    async def close(self) -> None:
        """Stop publishing. Responses that arrive afterwards are ignored."""
        if self._closed:
            return
        self._state = dataclasses.replace(self._state, phase=ContextPhase.CLOSED)
        self._closed = True
        self._subscribers.clear()
        log.debug("org_context.closed")

    # --- Reconciliation ---

    async def reconcile(self) -> None:
        """Fetch the caller's memberships and settle the selection."""
        if self._closed:
            return
        self._generation += 1
        generation = self._generation
        self._publish(phase=ContextPhase.RECONCILING)

        try:
            user = await self._api.get_current_user()
            if user is None:
                if self._is_current(generation):
                    self._publish(phase=ContextPhase.READY, is_loading=False)
                return
            memberships = await self._api.list_memberships()
            saved_id = await self._cache.selected_id()
        except (httpx.HTTPError, aiosqlite.Error, ValueError) as exc:
            if not self._is_current(generation):
                return
            log.warning("org_context.reconcile_failed", error=str(exc))
            cached = await self._cache.load()
            if not self._is_current(generation):
                return
            if cached is None:
                self._notifier.error("Failed to load organizations")
            self._publish(phase=ContextPhase.READY, is_loading=False)
            return

        if not self._is_current(generation):
            log.info(
                "org_context.stale_response_discarded",
                generation=generation,
                current=self._generation,
                closed=self._closed,
            )
            return

        await self._apply_memberships(memberships, saved_id)

    async def _apply_memberships(
        self, memberships: list[MembershipResponse], saved_id: str | None
    ) -> None:
        joined = [(m.organization, m.role) for m in memberships if m.organization is not None]
        organizations = tuple(org for org, _ in joined)

        selected = None
        for org, role in joined:
            if str(org.id) == saved_id:
                selected = (org, role)
                break
        if selected is None and joined:
            selected = joined[0]

        if selected:
            org, role = selected
            self._publish(
                phase=ContextPhase.READY,
                organizations=organizations,
                current_organization=org,
                member_role=role,
                is_loading=False,
            )
            await self._cache.save(organizations, org.id, role)
        else:
            self._publish(
                phase=ContextPhase.READY,
                organizations=organizations,
                current_organization=None,
                member_role=None,
                is_loading=False,
            )
            await self._cache.clear_selected_id()
            await self._cache.save([], None, None)

        log.info(
            "org_context.reconciled",
            organizations=len(organizations),
            current=str(selected[0].id) if selected else None,
        )

    async def refresh_organizations(self) -> None:
        """Force a reload from the server."""
        self._publish(is_loading=True)
        await self.reconcile()

    # --- Selection ---

    async def switch_organization(self, organization_id: uuid.UUID | str) -> None:
        """Select another organization, re-reading the caller's role from the server."""
        org = self._state.find(organization_id)
        if org is None:
            self._notifier.error("Organization not found")
            return

        membership = await self._api.get_membership(org.id)
        if self._closed:
            return
        if membership is None:
            log.warning("org_context.switch_no_membership", organization_id=str(org.id))
            return

        # A committed switch supersedes any reconcile still in flight.
        self._generation += 1
        organizations = self._state.organizations
        self._publish(
            phase=ContextPhase.READY,
            current_organization=org,
            member_role=membership.role,
            is_loading=False,
        )
        await self._cache.save(organizations, org.id, membership.role)
        log.info("org_context.switched", organization_id=str(org.id), role=membership.role.value)
        self._notifier.success(f"Switched to {org.name}")

"""
Role → capability mapping.

Two views of the same role table:

- ``role_flags`` is strict: an unknown role (``None``) grants nothing.
- ``ui_capabilities`` / ``visible_nav_items`` fail open while the role is
  still unknown so navigation is not hidden during a transient loading state.
  They only decide what is *rendered*; server-side checks always fail closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .schemas.common import Role

RoleLike = Union[Role, str, None]


def _coerce(role: RoleLike) -> Optional[Role]:
    if role is None or isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


@dataclass(frozen=True)
class RoleFlags:
    is_owner: bool
    is_admin: bool
    can_manage_users: bool
    can_manage_settings: bool


def role_flags(role: RoleLike) -> RoleFlags:
    """Permission flags derived from a membership role."""
    r = _coerce(role)
    is_owner = r == Role.OWNER
    is_admin = r == Role.ADMIN or is_owner
    return RoleFlags(
        is_owner=is_owner,
        is_admin=is_admin,
        can_manage_users=is_admin,
        can_manage_settings=is_owner,
    )


@dataclass(frozen=True)
class UICapabilities:
    manage_users: bool
    manage_settings: bool
    manage_billing: bool


def ui_capabilities(role: RoleLike) -> UICapabilities:
    if role is None:
        return UICapabilities(manage_users=True, manage_settings=True, manage_billing=True)
    flags = role_flags(role)
    return UICapabilities(
        manage_users=flags.can_manage_users,
        manage_settings=flags.can_manage_settings,
        manage_billing=flags.is_admin,
    )


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

_ALL = (Role.OWNER, Role.ADMIN, Role.MEMBER, Role.VIEWER)


@dataclass(frozen=True)
class NavItem:
    href: str
    label: str
    roles: tuple[Role, ...]


NAV_ITEMS: list[NavItem] = [
    NavItem("/dashboard", "Dashboard", _ALL),
    NavItem("/users", "Users", (Role.OWNER, Role.ADMIN)),
    NavItem("/reports", "Reports", _ALL),
    NavItem("/activity", "Activity", _ALL),
    NavItem("/integrations", "Integrations", (Role.OWNER, Role.ADMIN)),
    NavItem("/billing", "Billing", (Role.OWNER, Role.ADMIN, Role.MEMBER)),
    NavItem("/notifications", "Notifications", _ALL),
    NavItem("/settings", "Settings", (Role.OWNER,)),
]


def can_view(item: NavItem, role: RoleLike) -> bool:
    if role is None:
        return True
    r = _coerce(role)
    return r is not None and r in item.roles


def visible_nav_items(role: RoleLike) -> list[NavItem]:
    """Navigation entries to render for ``role`` (everything while unknown)."""
    return [item for item in NAV_ITEMS if can_view(item, role)]

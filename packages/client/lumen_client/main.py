"""
Client entry point.

Loads configuration, configures logging, and runs one dashboard command
against the Lumen API.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import httpx
import structlog

from lumen_shared.permissions import visible_nav_items
from lumen_shared.schemas.subscriptions import get_plan_info

from .api import ApiError, DashboardApiClient
from .cache import OrganizationCacheStore
from .config import ClientConfig, load_config
from .context import OrganizationContext
from .notifications import RecordingNotifier
from .state import ClientState

log = structlog.get_logger()


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(level)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


class ClientSession:
    """Opens the store, the API client and the organization context together."""

    def __init__(self, config: ClientConfig):
        self.state = ClientState(config.state.db_path)
        self.cache = OrganizationCacheStore(self.state)
        self.api = DashboardApiClient(
            base_url=config.api.url,
            access_token=config.auth.access_token,
            verify_tls=config.api.verify_tls,
            request_timeout=config.api.request_timeout_seconds,
        )
        self.notifier = RecordingNotifier()
        self.context = OrganizationContext(self.api, self.cache, self.notifier)

    async def __aenter__(self) -> "ClientSession":
        await self.state.open()
        await self.api.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.context.close()
        await self.api.close()
        await self.state.close()

    async def current_org_id(self, explicit: str | None) -> str:
        if explicit:
            return explicit
        await self.context.start()
        org = self.context.state.current_organization
        if org is None:
            raise SystemExit("No organization selected. Pass --org or run `switch` first.")
        return str(org.id)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def cmd_orgs(session: ClientSession, args: argparse.Namespace) -> None:
    await session.context.start()
    state = session.context.state
    if not state.organizations:
        print("No organizations.")
    for org in state.organizations:
        marker = "*" if state.current_organization and org.id == state.current_organization.id else " "
        print(f"{marker} {org.id}  {org.name} ({org.slug})")
    if state.member_role:
        labels = ", ".join(item.label for item in visible_nav_items(state.member_role))
        print(f"Role: {state.member_role.value}  Sections: {labels}")


async def cmd_switch(session: ClientSession, args: argparse.Namespace) -> None:
    await session.context.start()
    await session.context.switch_organization(args.organization_id)


async def cmd_whoami(session: ClientSession, args: argparse.Namespace) -> None:
    user = await session.api.get_current_user()
    if user is None:
        raise SystemExit("Not signed in.")
    avatar = await session.cache.get_cached_avatar_url(str(user.id))
    if avatar is None and user.avatar_url:
        await session.cache.cache_avatar_url(user.avatar_url, str(user.id))
        avatar = user.avatar_url
    print(f"{user.name or '-'} <{user.email or '-'}>  id={user.id}")
    if avatar:
        print(f"Avatar: {avatar}")


async def cmd_plans(session: ClientSession, args: argparse.Namespace) -> None:
    for plan in await session.api.list_plans():
        popular = "  (popular)" if plan.popular else ""
        print(f"{plan.plan.value:<11} {plan.name:<13} ${plan.price} {plan.period}{popular}")


async def cmd_subscription(session: ClientSession, args: argparse.Namespace) -> None:
    org_id = await session.current_org_id(args.org)
    sub = await session.api.get_active_subscription(org_id)
    if sub is None:
        print("No active subscription.")
        return
    info = get_plan_info(sub.plan.value)
    name = info.name if info else sub.plan.value
    print(f"{name} ({sub.status.value}) until {sub.current_period_end:%Y-%m-%d}")


async def cmd_activate(session: ClientSession, args: argparse.Namespace) -> None:
    org_id = await session.current_org_id(args.org)
    sub = await session.api.activate_plan(args.plan, org_id)
    print(f"Activated {sub.plan.value} until {sub.current_period_end:%Y-%m-%d}")


async def cmd_invite(session: ClientSession, args: argparse.Namespace) -> None:
    org_id = await session.current_org_id(args.org)
    result = await session.api.create_invitation(org_id, args.email, args.role)
    print(result.invitation_url)


async def cmd_accept(session: ClientSession, args: argparse.Namespace) -> None:
    result = await session.api.accept_invitation(args.token)
    print(result.message)
    if not result.already_member:
        await session.context.start()
        await session.context.switch_organization(result.organization_id)


COMMANDS = {
    "orgs": cmd_orgs,
    "switch": cmd_switch,
    "whoami": cmd_whoami,
    "plans": cmd_plans,
    "subscription": cmd_subscription,
    "activate": cmd_activate,
    "invite": cmd_invite,
    "accept": cmd_accept,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lumen dashboard client")
    parser.add_argument(
        "-c", "--config",
        default="lumen-client.yaml",
        help="Path to configuration file (default: lumen-client.yaml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("orgs", help="List your organizations")
    p = sub.add_parser("switch", help="Select the current organization")
    p.add_argument("organization_id")
    sub.add_parser("whoami", help="Show the signed-in user")
    sub.add_parser("plans", help="List available plans")

    p = sub.add_parser("subscription", help="Show the active subscription")
    p.add_argument("--org", help="Organization id (default: current)")

    p = sub.add_parser("activate", help="Activate a plan")
    p.add_argument("plan", help="free, pro or enterprise")
    p.add_argument("--org", help="Organization id (default: current)")

    p = sub.add_parser("invite", help="Create an invitation link")
    p.add_argument("email")
    p.add_argument("--role", default="member", choices=["admin", "member", "viewer"])
    p.add_argument("--org", help="Organization id (default: current)")

    p = sub.add_parser("accept", help="Accept an invitation")
    p.add_argument("token")
    return parser


async def _run_command(config: ClientConfig, args: argparse.Namespace) -> int:
    async with ClientSession(config) as session:
        try:
            await COMMANDS[args.command](session, args)
        except ApiError as exc:
            print(f"Error: {exc.detail}", file=sys.stderr)
            return 1
        except httpx.HTTPError as exc:
            print(f"Error: could not reach the Lumen API ({exc})", file=sys.stderr)
            return 1
        for message in session.notifier.successes:
            print(message)
        for message in session.notifier.errors:
            print(f"Error: {message}", file=sys.stderr)
        return 1 if session.notifier.errors else 0


def run() -> None:
    """CLI entry point for the client."""
    args = build_parser().parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging.level, config.logging.format)
    log.debug("client.config_loaded", config_path=args.config, api=config.api.url)

    if not config.auth.access_token:
        print(f"Error: set {config.auth.access_token_env} to your access token", file=sys.stderr)
        sys.exit(1)

    try:
        code = asyncio.run(_run_command(config, args))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    run()

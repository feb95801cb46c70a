"""
HTTP client for the Lumen API.

Authenticates with the provider-issued access token as a Bearer header.
Non-2xx responses raise ApiError, an httpx.HTTPStatusError carrying the
server's `detail` message; callers that degrade on transport problems catch
httpx.HTTPError and get both.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx
import structlog

from lumen_shared.schemas.invitations import (
    GenerateTokenResponse,
    InvitationAcceptResponse,
    InvitationCreateResponse,
)
from lumen_shared.schemas.organizations import MembershipListResponse, MembershipResponse
from lumen_shared.schemas.subscriptions import (
    ActivatePlanResponse,
    ActiveSubscriptionResponse,
    PlanInfo,
    PlanListResponse,
    SubscriptionResponse,
)
from lumen_shared.schemas.users import CurrentUserResponse

log = structlog.get_logger()

API_PREFIX = "/api/v1"


class ApiError(httpx.HTTPStatusError):
    """A non-2xx response from the Lumen API."""

    def __init__(self, response: httpx.Response):
        self.detail = _detail(response)
        super().__init__(
            f"{response.status_code}: {self.detail}",
            request=response.request,
            response=response,
        )

    @property
    def status_code(self) -> int:
        return self.response.status_code


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        if "detail" in body:
            return str(body["detail"])
        if isinstance(body.get("error"), dict):
            return str(body["error"].get("message"))
    return str(body)


class DashboardApiClient:
    """Async client for the endpoints the dashboard uses."""

    def __init__(
        self,
        base_url: str,
        access_token: str | None,
        verify_tls: bool = True,
        request_timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._verify_tls = verify_tls
        self._timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}{API_PREFIX}",
            headers=headers,
            verify=self._verify_tls,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        assert self._client
        resp = await self._client.request(method, path, **kwargs)
        if resp.is_error:
            log.debug("api.error_response", method=method, path=path, status=resp.status_code)
            raise ApiError(resp)
        return resp

    # --- Identity ---

    async def get_current_user(self) -> CurrentUserResponse | None:
        """The signed-in user, or None when the session is missing or expired."""
        try:
            resp = await self._request("GET", "/me")
        except ApiError as exc:
            if exc.status_code == 401:
                return None
            raise
        return CurrentUserResponse.model_validate(resp.json())

    # --- Organizations ---

    async def list_memberships(self) -> list[MembershipResponse]:
        resp = await self._request("GET", "/orgs")
        return MembershipListResponse.model_validate(resp.json()).data

    async def get_membership(self, organization_id: uuid.UUID | str) -> MembershipResponse | None:
        """The caller's membership in one org, or None when they are not a member."""
        try:
            resp = await self._request("GET", f"/orgs/{organization_id}/membership")
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        return MembershipResponse.model_validate(resp.json())

    # --- Subscriptions ---

    async def list_plans(self) -> list[PlanInfo]:
        resp = await self._request("GET", "/plans")
        return PlanListResponse.model_validate(resp.json()).data

    async def get_active_subscription(
        self, organization_id: uuid.UUID | str
    ) -> SubscriptionResponse | None:
        resp = await self._request("GET", f"/orgs/{organization_id}/subscription")
        return ActiveSubscriptionResponse.model_validate(resp.json()).data

    async def activate_plan(self, plan: str, organization_id: uuid.UUID | str) -> SubscriptionResponse:
        resp = await self._request(
            "POST",
            "/subscriptions/activate",
            json={"plan": plan, "organizationId": str(organization_id)},
        )
        return ActivatePlanResponse.model_validate(resp.json()).subscription

    # --- Invitations ---

    async def create_invitation(
        self, organization_id: uuid.UUID | str, email: str, role: str = "member"
    ) -> InvitationCreateResponse:
        resp = await self._request(
            "POST",
            f"/orgs/{organization_id}/invitations",
            json={"email": email, "role": role},
        )
        return InvitationCreateResponse.model_validate(resp.json())

    async def generate_invitation_token(
        self, organization_id: uuid.UUID | str, email: str, role: str = "member"
    ) -> str:
        resp = await self._request(
            "POST",
            "/invitations/generate-token",
            json={"email": email, "organizationId": str(organization_id), "role": role},
        )
        return GenerateTokenResponse.model_validate(resp.json()).token

    async def accept_invitation(self, token: str) -> InvitationAcceptResponse:
        resp = await self._request("POST", f"/invitations/{token}/accept")
        return InvitationAcceptResponse.model_validate(resp.json())

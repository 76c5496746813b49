"""WeCom directory API client.

Responsibility:
- Own the access token and the shared ``httpx.AsyncClient``.
- Issue one GET per endpoint with the token as a query parameter.
- Decode bodies into the domain models.

Non-zero ``errcode`` values are *not* raised here: they decode like any other
payload and callers decide what to do with them. The only exception is the
token exchange, where a missing ``access_token`` (or an error code) is an
authentication error.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from adapters.http_client import build_async_client, build_proxy
from core.config import AppSettings
from core.domain.models import (
    AgentDetail,
    AgentListResponse,
    ApiResponse,
    DepartmentListResponse,
    DepartmentMembersResponse,
    TagListResponse,
    TagMembersResponse,
    TokenResponse,
)
from core.errors import (
    AuthenticationError,
    DecodeError,
    NotAuthenticatedError,
    TransportError,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=ApiResponse)


class DirectoryClient:
    """Token-gated client for the directory endpoints."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        base_url: str,
        token: str | None = None,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._token = token

    @classmethod
    def configure(
        cls,
        settings: AppSettings | None = None,
        *,
        proxy: str | None = None,
        proxy_user: str | None = None,
        proxy_password: str | None = None,
        user_agent: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DirectoryClient:
        """Build the client and its transport.

        Raises ``ConfigurationError`` when proxy settings are inconsistent.
        """

        settings = settings or AppSettings()
        http = build_async_client(
            settings,
            proxy=build_proxy(proxy, proxy_user, proxy_password),
            user_agent=user_agent,
            transport=transport,
        )
        if proxy:
            proxy_url = httpx.URL(proxy)
            logger.info("Sending requests through proxy %s://%s", proxy_url.scheme, proxy_url.host)
        return cls(http, base_url=settings.api_base_url, token=token)

    async def __aenter__(self) -> DirectoryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def set_token(self, token: str) -> None:
        self._token = token

    def _require_token(self) -> str:
        if self._token is None:
            raise NotAuthenticatedError("No access token installed, authenticate first")
        return self._token

    async def _get(
        self,
        endpoint: str,
        model: type[ResponseT],
        params: dict[str, Any],
    ) -> ResponseT:
        url = f"{self._base_url}/{endpoint}"
        try:
            resp = await self._http.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"GET {endpoint} failed: {exc!r}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodeError(
                f"GET {endpoint} returned a non-JSON body (HTTP {resp.status_code})"
            ) from exc

        try:
            result = model.model_validate(data)
        except ValidationError as exc:
            raise DecodeError(f"Failed to decode {model.__name__}: {exc}") from exc

        logger.debug("GET %s -> errcode=%s errmsg=%s", endpoint, result.code, result.msg)
        return result

    async def _authed_get(
        self,
        endpoint: str,
        model: type[ResponseT],
        **params: Any,
    ) -> ResponseT:
        token = self._require_token()
        return await self._get(endpoint, model, {"access_token": token, **params})

    async def authenticate(self, corp_id: str, corp_secret: str) -> TokenResponse:
        """Exchange corp id/secret for an access token and install it."""

        try:
            resp = await self._get(
                "gettoken",
                TokenResponse,
                {"corpid": corp_id, "corpsecret": corp_secret},
            )
        except (TransportError, DecodeError) as exc:
            raise AuthenticationError(f"Failed to get token: {exc}") from exc

        if not resp.is_success or resp.code not in (None, 0):
            raise AuthenticationError(
                f"Failed to get token: errcode={resp.code} errmsg={resp.msg}"
            )

        self.set_token(resp.access_token)  # type: ignore[arg-type]
        logger.debug("Token expires in %s seconds", resp.expires_in)
        return resp

    async def list_agents(self) -> AgentListResponse:
        """Basic info of every agent (app) visible to the secret."""

        return await self._authed_get("agent/list", AgentListResponse)

    async def get_agent_detail(self, agent_id: int) -> AgentDetail:
        return await self._authed_get("agent/get", AgentDetail, agentid=agent_id)

    async def list_departments(self) -> DepartmentListResponse:
        """Every department the token has access to, as a flat list."""

        return await self._authed_get("department/list", DepartmentListResponse)

    async def get_department_members(
        self,
        department_id: int,
        recursive: bool = False,
    ) -> DepartmentMembersResponse:
        return await self._authed_get(
            "user/list",
            DepartmentMembersResponse,
            department_id=department_id,
            fetch_child=1 if recursive else 0,
        )

    async def list_tags(self) -> TagListResponse:
        return await self._authed_get("tag/list", TagListResponse)

    async def get_tag_members(self, tag_id: int) -> TagMembersResponse:
        return await self._authed_get("tag/get", TagMembersResponse, tagid=tag_id)

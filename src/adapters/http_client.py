"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts, headers and proxy policy for every directory call.
- Eases testing: callers can pass a mocked transport.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings
from core.errors import ConfigurationError


def build_proxy(
    proxy: str | None,
    proxy_user: str | None = None,
    proxy_password: str | None = None,
) -> httpx.Proxy | None:
    """Validate proxy settings and build an ``httpx.Proxy``.

    Rules:
    - Username and password must be given together.
    - Credentials require a proxy URL; a proxy alone is fine.
    """

    has_user = bool(proxy_user)
    has_password = bool(proxy_password)
    if has_user != has_password:
        raise ConfigurationError("--proxy-user and --proxy-password must be supplied together")
    if not proxy:
        if has_user:
            raise ConfigurationError("Proxy credentials were given without --proxy")
        return None

    auth = (proxy_user, proxy_password) if has_user else None
    try:
        return httpx.Proxy(proxy, auth=auth)  # type: ignore[arg-type]
    except (ValueError, httpx.InvalidURL) as exc:
        raise ConfigurationError(f"Invalid proxy URL {proxy!r}: {exc}") from exc


def build_async_client(
    settings: AppSettings | None = None,
    *,
    proxy: httpx.Proxy | None = None,
    user_agent: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` for the directory API.

    Why a builder:
    - Centralizes timeouts/headers so every endpoint behaves the same.
    - Requests are sparse and bursty, so idle keep-alive pooling is disabled.
    """

    settings = settings or AppSettings()
    headers = {
        "User-Agent": user_agent or settings.user_agent,
        "Accept": "application/json",
    }
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        limits=httpx.Limits(max_keepalive_connections=0),
        headers=headers,
        proxy=proxy,
        transport=transport,
    )

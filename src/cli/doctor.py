"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client, build_proxy
from core.config import AppSettings, write_user_env_vars
from core.errors import ConfigurationError
from core.services.authenticator import resolve_credentials

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings, proxy: httpx.Proxy | None) -> tuple[bool, str]:
    # gettoken without parameters answers with an errcode body: enough to
    # prove the API host is reachable without spending a real token request.
    try:
        async with build_async_client(settings, proxy=proxy) as client:
            response = await client.get(f"{settings.api_base_url.rstrip('/')}/gettoken")
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="qywx-dumper Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Credentials
    try:
        credentials = resolve_credentials(settings.corp_id, settings.corp_secret, settings.access_token)
        detail = "pre-issued token" if credentials.uses_token else f"corp id {credentials.corp_id}"
        table.add_row("Credentials", "OK", detail)
    except ConfigurationError as exc:
        table.add_row("Credentials", "MISSING", f"{exc} (flags can still supply them)")

    # Proxy
    proxy: httpx.Proxy | None = None
    proxy_ok = True
    try:
        proxy = build_proxy(settings.proxy, settings.proxy_user, settings.proxy_password)
        table.add_row("Proxy", "OK", str(proxy.url.host) if proxy else "direct connection")
    except ConfigurationError as exc:
        proxy_ok = False
        table.add_row("Proxy", "FAIL", str(exc))

    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("Request delay", "OK", f"{settings.delay_ms} ms")

    # Connectivity (best-effort)
    if proxy_ok:
        ok_http, detail_http = asyncio.run(_check_http(settings, proxy))
        table.add_row("API connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)


@app.command()
def setup() -> None:
    """Interactive credential setup (stored in the user config .env)."""

    corp_id = typer.prompt("Corp ID").strip()
    corp_secret = typer.prompt("Corp secret", hide_input=True, confirmation_prompt=False).strip()

    if not corp_id or not corp_secret:
        raise typer.BadParameter("corp id and secret are required")

    env_path = write_user_env_vars(
        {
            "WX_CORP_ID": corp_id,
            "WX_CORP_SECRET": corp_secret,
        }
    )

    _console.print(f"[green]Saved credentials to:[/green] {env_path}")

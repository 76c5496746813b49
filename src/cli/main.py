"""Command line entry point (Typer)."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.directory_client import DirectoryClient
from adapters.json_exporter import JsonSink, prepare_output_dir
from cli import __version__
from cli.doctor import app as doctor_app
from cli.ui_components import build_failures_table, build_summary_table, print_banner
from core.config import AppSettings
from core.errors import AuthenticationError, ConfigurationError, SinkError
from core.logging_config import level_from_verbosity, setup_logging
from core.services.authenticator import Credentials, authenticate, resolve_credentials
from core.services.dispatcher import DumpOptions, DumpReport, dump_directory

logger = logging.getLogger(__name__)

app = typer.Typer(
    no_args_is_help=True,
    help="Dump a WeCom corporate directory (agents, departments, tags) to JSON files.",
)
app.add_typer(doctor_app, name="doctor")

_console = Console()


def _show_version(value: bool) -> None:
    if value:
        _console.print(f"qywx-dumper {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_show_version,
        is_eager=True,
        help="Print the version and exit.",
    ),
) -> None:
    """Dump a WeCom corporate directory (agents, departments, tags) to JSON files."""


def _pick_credentials(
    settings: AppSettings,
    corp_id: str | None,
    corp_secret: str | None,
    token: str | None,
) -> Credentials:
    # Each flag falls back to its WX_* setting. A complete form on the command
    # line hides the other form coming from the environment.
    env_token = settings.access_token
    env_id, env_secret = settings.corp_id, settings.corp_secret
    if corp_id is not None and corp_secret is not None:
        env_token = None
    if token is not None:
        env_id = env_secret = None
    return resolve_credentials(
        corp_id if corp_id is not None else env_id,
        corp_secret if corp_secret is not None else env_secret,
        token if token is not None else env_token,
    )


async def _execute(
    *,
    settings: AppSettings,
    credentials: Credentials,
    output: Path,
    overwrite: bool,
    options: DumpOptions,
    proxy: str | None,
    proxy_user: str | None,
    proxy_password: str | None,
    user_agent: str | None,
) -> DumpReport:
    client = DirectoryClient.configure(
        settings,
        proxy=proxy,
        proxy_user=proxy_user,
        proxy_password=proxy_password,
        user_agent=user_agent,
    )
    async with client:
        if output.exists() and overwrite:
            logger.warning("Overwriting '%s' according to --overwrite option...", output)
        sink = JsonSink(prepare_output_dir(output, overwrite=overwrite))
        await authenticate(client, credentials)
        return await dump_directory(client, sink, options)


@app.command()
def dump(
    output: Path = typer.Option(Path("output"), "--output", "-O", help="Output directory."),
    corp_id: str | None = typer.Option(
        None, "--corp-id", "-i", help="Corporation ID, every enterprise has one (env WX_CORP_ID)."
    ),
    corp_secret: str | None = typer.Option(
        None, "--corp-secret", "-s", help="Corporation secret, every app has one (env WX_CORP_SECRET)."
    ),
    token: str | None = typer.Option(
        None, "--token", "-t", help="Pre-issued access token instead of id/secret (env WX_ACCESS_TOKEN)."
    ),
    user_agent: str | None = typer.Option(None, "--user-agent", help="Custom User-Agent."),
    proxy: str | None = typer.Option(
        None, "--proxy", "-p", help="Send requests through a proxy (http, https, socks5)."
    ),
    proxy_user: str | None = typer.Option(None, "--proxy-user", "--user", help="Proxy username."),
    proxy_password: str | None = typer.Option(None, "--proxy-password", "--password", help="Proxy password."),
    overwrite: bool = typer.Option(False, "--overwrite", "-y", "--yes", help="Replace an existing output path."),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Fetch department members recursively."),
    delay: int | None = typer.Option(
        None, "--delay", "-d", min=0, help="Delay between batch requests, in ms (default 200)."
    ),
    agent_details: bool = typer.Option(
        False, "--agent-details", help="Also fetch the detail of every agent."
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="More logging (repeatable)."),
    quiet: int = typer.Option(0, "--quiet", "-q", count=True, help="Less logging (repeatable)."),
    no_banner: bool = typer.Option(False, "--no-banner", help="Do not print the banner."),
) -> None:
    """Authenticate, then dump agents, departments and tags concurrently."""

    setup_logging(level_from_verbosity(verbose, quiet))
    try:
        settings = AppSettings()
    except ValidationError as exc:
        logger.error("Invalid WX_* configuration: %s", exc)
        raise typer.Exit(code=1) from exc

    if not no_banner:
        print_banner(_console)

    try:
        credentials = _pick_credentials(settings, corp_id, corp_secret, token)
        report = asyncio.run(
            _execute(
                settings=settings,
                credentials=credentials,
                output=output,
                overwrite=overwrite,
                options=DumpOptions(
                    recursive=recursive,
                    delay_ms=settings.delay_ms if delay is None else delay,
                    agent_details=agent_details,
                ),
                proxy=proxy or settings.proxy,
                proxy_user=proxy_user or settings.proxy_user,
                proxy_password=proxy_password or settings.proxy_password,
                user_agent=user_agent,
            )
        )
    except ConfigurationError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc
    except SinkError as exc:
        logger.error("Failed to prepare the output directory: %s", exc)
        raise typer.Exit(code=1) from exc
    except AuthenticationError as exc:
        logger.error("Failed to login with the provided credentials: %s", exc)
        raise typer.Exit(code=1) from exc

    _console.print(build_summary_table(report))
    failures = build_failures_table(report)
    if failures is not None:
        _console.print(failures)


def run() -> None:
    app()


if __name__ == "__main__":
    run()

"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking them
  into the CLI.
- Lets adapters (HTTP transport, directory client) read config consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_API_BASE_URL = "https://qyapi.weixin.qq.com/cgi-bin"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 12_5) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/15.6 Safari/605.1.15"
)


def get_user_config_dir() -> Path:
    """Per-user config directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "qywx-dumper"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "qywx-dumper"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "qywx-dumper"
    return Path.home() / ".config" / "qywx-dumper"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Write or update variables in the user's global .env file."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# qywx-dumper user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    # The file holds the corp secret.
    if not sys.platform.startswith("win"):
        env_path.chmod(0o600)
    return env_path


class AppSettings(BaseSettings):
    """Application settings.

    Every value can come from the environment (``WX_*``), the project ``.env``
    or the per-user ``.env``. CLI flags override whatever is loaded here.
    """

    model_config = SettingsConfigDict(
        env_prefix="WX_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    corp_id: str | None = Field(
        default=None,
        description="Corporation ID, every enterprise has one.",
    )
    corp_secret: str | None = Field(
        default=None,
        description="Corporation secret, every app has one.",
    )
    access_token: str | None = Field(
        default=None,
        description="Pre-issued access token (skips the id/secret exchange).",
    )

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        min_length=8,
        description="Base URL of the directory API.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        description="User-Agent sent with every request.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )

    proxy: str | None = Field(
        default=None,
        description="Proxy URL (http, https or socks5).",
    )
    proxy_user: str | None = Field(default=None, description="Proxy username.")
    proxy_password: str | None = Field(default=None, description="Proxy password.")

    delay_ms: int = Field(
        default=200,
        ge=0,
        description="Delay between fan-out launches (milliseconds).",
    )

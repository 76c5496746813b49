"""Error taxonomy shared by adapters, services and the CLI."""

from __future__ import annotations

from pathlib import Path


class DumperError(Exception):
    """Base class for every error raised by this project."""


class ConfigurationError(DumperError):
    """Missing or conflicting credentials, proxy settings or output path."""


class AuthenticationError(DumperError):
    """The token endpoint was unreachable or returned no token."""


class NotAuthenticatedError(DumperError):
    """A directory call was issued before any token was installed."""


class TransportError(DumperError):
    """Network-level failure (connection, proxy, timeout)."""


class DecodeError(DumperError):
    """The response body is not JSON or does not match the expected shape."""


class SinkError(DumperError):
    """A payload could not be serialized or written to disk."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path

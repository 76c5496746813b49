"""Command line interface (Typer + Rich)."""

from importlib import metadata as _metadata


def get_version() -> str:
    """Return the installed package version."""
    try:
        return _metadata.version("qywx-dumper")
    except _metadata.PackageNotFoundError:  # pragma: no cover - running from a checkout
        return "0.0.0"


__version__ = get_version()

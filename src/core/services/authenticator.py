"""Credential resolution and token installation.

Runs before any directory call: configuration problems are reported without
touching the network, and a failed token exchange stops the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from adapters.directory_client import DirectoryClient
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Either a corp id/secret pair or a pre-issued token, never both."""

    corp_id: str | None = None
    corp_secret: str | None = None
    token: str | None = None

    @property
    def uses_token(self) -> bool:
        return self.token is not None

    def __repr__(self) -> str:
        form = "token" if self.uses_token else f"corp_id={self.corp_id!r}"
        return f"Credentials({form})"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_credentials(
    corp_id: str | None = None,
    corp_secret: str | None = None,
    token: str | None = None,
) -> Credentials:
    """Pick the credential form, failing fast on missing or mixed input."""

    corp_id, corp_secret, token = _clean(corp_id), _clean(corp_secret), _clean(token)

    if (corp_id is None) != (corp_secret is None):
        missing = "--corp-secret" if corp_secret is None else "--corp-id"
        raise ConfigurationError(f"Corp id and secret must be supplied together (missing {missing})")

    has_pair = corp_id is not None
    if has_pair and token is not None:
        raise ConfigurationError("Supply either corp id/secret or an access token, not both")
    if not has_pair and token is None:
        raise ConfigurationError(
            "No credentials: pass --corp-id and --corp-secret, or --token "
            "(env WX_CORP_ID / WX_CORP_SECRET / WX_ACCESS_TOKEN)"
        )

    if token is not None:
        return Credentials(token=token)
    return Credentials(corp_id=corp_id, corp_secret=corp_secret)


async def authenticate(client: DirectoryClient, credentials: Credentials) -> None:
    """Install a usable token into ``client``.

    A pre-issued token is installed as is; an invalid one only shows up when
    later calls fail. The id/secret exchange raises ``AuthenticationError``.
    """

    if credentials.uses_token:
        client.set_token(credentials.token)  # type: ignore[arg-type]
        logger.info("Using the supplied access token")
        return

    await client.authenticate(credentials.corp_id, credentials.corp_secret)  # type: ignore[arg-type]
    logger.info("Got access token for corp %s", credentials.corp_id)

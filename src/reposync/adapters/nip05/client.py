"""Resolve ``name@domain`` identifiers through NIP-05 documents."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from reposync.adapters.http_resilience import ResilientClient
from reposync.domain.identity import is_canonical_key

from .schema import Nip05Document

if TYPE_CHECKING:
    from collections.abc import Callable

    from reposync.config import ResilienceConfig
    from reposync.config.nip05 import Nip05Config

log = getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/nostr.json"


class Nip05ResolutionError(RuntimeError):
    """Raised when a NIP-05 document cannot be fetched or is malformed."""


def split_identifier(identifier: str) -> tuple[str, str]:
    """Split ``name@domain``; a bare domain means the ``_`` name."""

    value = identifier.strip()
    name, separator, domain = value.rpartition("@")
    if not separator:
        return "_", value.lower()
    if not domain or "/" in domain:
        raise Nip05ResolutionError(f"Not a NIP-05 identifier: {identifier!r}")
    return name or "_", domain.lower()


class Nip05Resolver:
    """Look up the hex key published for a NIP-05 identifier.

    Instances are callable so they satisfy the ``IdentityLookup`` port. Missing
    names resolve to ``None``; transport and payload failures raise
    :class:`Nip05ResolutionError`.
    """

    def __init__(
        self,
        *,
        config: Nip05Config,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def __call__(self, identifier: str) -> str | None:
        return asyncio.run(self.resolve(identifier))

    async def resolve(self, identifier: str) -> str | None:
        name, domain = split_identifier(identifier)
        async with self._client_factory(self._resilience) as client:
            document = await self._fetch_document(client, name=name, domain=domain)

        key = document.key_for(name)
        if key is None:
            log.info("No NIP-05 entry for %s@%s", name, domain)
            return None
        if not is_canonical_key(key):
            raise Nip05ResolutionError(f"NIP-05 entry for {identifier!r} is not a hex key")
        return key

    async def _fetch_document(
        self,
        client: ResilientClient,
        *,
        name: str,
        domain: str,
    ) -> Nip05Document:
        url = f"https://{domain}{WELL_KNOWN_PATH}"
        try:
            response = await client.get(url, params={"name": name})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise Nip05ResolutionError(f"Failed to fetch {url}: {exc}") from exc
        except ValueError as exc:
            raise Nip05ResolutionError(f"{url} did not return JSON") from exc

        if not isinstance(payload, dict):
            raise Nip05ResolutionError(f"Unexpected NIP-05 payload from {url}")
        try:
            return Nip05Document.model_validate(payload)
        except ValidationError as exc:
            raise Nip05ResolutionError(f"Malformed NIP-05 document from {url}") from exc

"""Owner identity classification, resolution and display encoding.

Three encodings of the same owner circulate between sources:

- the canonical 64-character hex public key,
- the bech32 ``npub1...`` form,
- a legacy 8-character hex prefix.

Hex and ``npub`` input resolve deterministically. The 8-character prefix is
ambiguous by construction and is resolved against a snapshot of known keys with
a first-match-wins search; colliding prefixes are not detected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from bech32 import bech32_decode, bech32_encode, convertbits

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import ActivityEvent, RepositoryRecord, Tombstone
    from .ports.transport import IdentityLookup

log = getLogger(__name__)

NPUB_HRP: Final[str] = "npub"
NPUB_PREFIX: Final[str] = "npub1"
SHORT_KEY_LENGTH: Final[int] = 8

_HEX_KEY = re.compile(r"^[0-9a-f]{64}$", re.IGNORECASE)
_SHORT_KEY = re.compile(r"^[0-9a-f]{8}$", re.IGNORECASE)
_NIP05 = re.compile(r"^[^@\s/]+@[^@\s/]+\.[^@\s/]+$")


class IdentityKind(StrEnum):
    HEX = "hex"
    NPUB = "npub"
    SHORT = "short"
    NIP05 = "nip05"
    UNKNOWN = "unknown"


class IdentityEncoding(StrEnum):
    """Encodings :func:`display_identity` can produce."""

    HEX = "hex"
    NPUB = "npub"
    SHORT = "short"


class ResolutionSource(StrEnum):
    DIRECT = "direct"
    DECODED = "decoded"
    RECORD_OWNER = "record_owner"
    ACTIVITY_LOG = "activity_log"
    LOOKUP = "lookup"
    UNRESOLVED = "unresolved"


class InvalidIdentityError(ValueError):
    """Raised when a canonical key is required but the value is not one."""


@dataclass(frozen=True, slots=True)
class IdentityIndex:
    """Snapshot of known canonical keys used to expand 8-character prefixes.

    ``owner_keys`` come from cached records and are searched first;
    ``activity_keys`` come from the activity log.
    """

    owner_keys: tuple[str, ...] = ()
    activity_keys: tuple[str, ...] = ()

    @classmethod
    def from_snapshot(
        cls,
        *,
        records: Iterable[RepositoryRecord] = (),
        activities: Iterable[ActivityEvent] = (),
    ) -> IdentityIndex:
        owner_keys = _ordered_unique(
            record.canonical_owner_key for record in records if record.canonical_owner_key
        )
        activity_keys = _ordered_unique(
            event.actor_key for event in activities if is_canonical_key(event.actor_key)
        )
        return cls(owner_keys=owner_keys, activity_keys=activity_keys)


EMPTY_INDEX: Final[IdentityIndex] = IdentityIndex()


@dataclass(frozen=True, slots=True)
class IdentityResolution:
    identifier: str
    kind: IdentityKind
    key: str | None
    source: ResolutionSource

    @property
    def resolved(self) -> bool:
        return self.key is not None

    @property
    def heuristic(self) -> bool:
        return self.source in {ResolutionSource.RECORD_OWNER, ResolutionSource.ACTIVITY_LOG}


def is_canonical_key(value: str | None) -> bool:
    return bool(value) and _HEX_KEY.fullmatch(value or "") is not None and value == value.lower()


def classify_identity(identifier: str) -> IdentityKind:
    value = identifier.strip()
    if _HEX_KEY.fullmatch(value):
        return IdentityKind.HEX
    if value.lower().startswith(NPUB_PREFIX):
        return IdentityKind.NPUB
    if _SHORT_KEY.fullmatch(value):
        return IdentityKind.SHORT
    if _NIP05.fullmatch(value):
        return IdentityKind.NIP05
    return IdentityKind.UNKNOWN


def decode_npub(value: str) -> str | None:
    """Decode an ``npub1...`` string to a hex key, or ``None`` if it is invalid."""

    hrp, data = bech32_decode(value.strip())
    if hrp != NPUB_HRP or data is None:
        return None
    decoded = convertbits(data, 5, 8, False)
    if decoded is None or len(decoded) != 32:
        return None
    return bytes(decoded).hex()


def encode_npub(key: str) -> str:
    if not is_canonical_key(key.lower()):
        raise InvalidIdentityError(f"Not a canonical key: {key!r}")
    data = convertbits(bytes.fromhex(key), 8, 5)
    if data is None:
        raise InvalidIdentityError(f"Could not convert key {key!r} to bech32 words")
    return bech32_encode(NPUB_HRP, data)


def resolve_identity(identifier: str, *, index: IdentityIndex = EMPTY_INDEX) -> IdentityResolution:
    """Resolve ``identifier`` to a canonical key using ``index`` for prefixes."""

    value = identifier.strip()
    kind = classify_identity(value)

    if kind is IdentityKind.HEX:
        return IdentityResolution(value, kind, value.lower(), ResolutionSource.DIRECT)

    if kind is IdentityKind.NPUB:
        key = decode_npub(value)
        if key is None:
            log.debug("Failed to decode npub identity %s", value)
            return IdentityResolution(value, kind, None, ResolutionSource.UNRESOLVED)
        return IdentityResolution(value, kind, key, ResolutionSource.DECODED)

    if kind is IdentityKind.SHORT:
        return _resolve_short(value, index=index)

    return IdentityResolution(value, kind, None, ResolutionSource.UNRESOLVED)


def resolve_key(identifier: str | None, *, index: IdentityIndex = EMPTY_INDEX) -> str | None:
    if not identifier:
        return None
    return resolve_identity(identifier, index=index).key


def resolve_with_lookup(
    identifier: str,
    *,
    lookup: IdentityLookup,
    index: IdentityIndex = EMPTY_INDEX,
) -> IdentityResolution:
    """Like :func:`resolve_identity`, asking ``lookup`` about NIP-05 identifiers."""

    resolution = resolve_identity(identifier, index=index)
    if resolution.resolved or resolution.kind is not IdentityKind.NIP05:
        return resolution
    key = lookup(resolution.identifier)
    if key is None or not is_canonical_key(key.lower()):
        return resolution
    return IdentityResolution(
        resolution.identifier, resolution.kind, key.lower(), ResolutionSource.LOOKUP
    )


def _resolve_short(value: str, *, index: IdentityIndex) -> IdentityResolution:
    prefix = value.lower()
    for source, candidates in (
        (ResolutionSource.RECORD_OWNER, index.owner_keys),
        (ResolutionSource.ACTIVITY_LOG, index.activity_keys),
    ):
        for candidate in candidates:
            if candidate == prefix or candidate.startswith(prefix):
                # First match wins; two owners sharing this prefix are not detected.
                log.warning(
                    "Resolved 8-character identity %s to %s via %s (prefix match, unverified)",
                    value,
                    candidate,
                    source.value,
                )
                return IdentityResolution(value, IdentityKind.SHORT, candidate, source)
    log.debug("8-character identity %s did not match any known key", value)
    return IdentityResolution(value, IdentityKind.SHORT, None, ResolutionSource.UNRESOLVED)


def display_identity(key: str, encoding: IdentityEncoding = IdentityEncoding.NPUB) -> str:
    """Encode a canonical key for display or external references."""

    canonical = key.strip().lower()
    if not is_canonical_key(canonical):
        raise InvalidIdentityError(f"Not a canonical key: {key!r}")
    if encoding is IdentityEncoding.NPUB:
        return encode_npub(canonical)
    if encoding is IdentityEncoding.SHORT:
        return canonical[:SHORT_KEY_LENGTH]
    return canonical


def identity_matches(
    identifier: str,
    *,
    key: str | None,
    raw: str | None = None,
    index: IdentityIndex = EMPTY_INDEX,
) -> bool:
    """Whether ``identifier`` names the owner ``key`` (or the raw string ``raw``).

    The raw comparison is case-insensitive and runs first, so unresolved
    identities still match themselves.
    """

    value = identifier.strip().lower()
    if raw is not None and value == raw.strip().lower():
        return True
    if key is None:
        return False
    return resolve_key(identifier, index=index) == key


def tombstone_key(tombstone: Tombstone, *, index: IdentityIndex = EMPTY_INDEX) -> str | None:
    return tombstone.owner_key or resolve_key(tombstone.owner_identity, index=index)


def _ordered_unique(values: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value.lower(), None)
    return tuple(seen)

from __future__ import annotations

import logging

import pytest

from reposync.domain.identity import (
    IdentityEncoding,
    IdentityIndex,
    IdentityKind,
    InvalidIdentityError,
    ResolutionSource,
    classify_identity,
    decode_npub,
    display_identity,
    encode_npub,
    identity_matches,
    resolve_identity,
    resolve_key,
    resolve_with_lookup,
)
from tests.helpers.repositories import ALICE, ALICE_NPUB, ALICE_SHORT, ALICE_TWIN, BOB


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        (ALICE, IdentityKind.HEX),
        (ALICE.upper(), IdentityKind.HEX),
        (ALICE_NPUB, IdentityKind.NPUB),
        (ALICE_SHORT, IdentityKind.SHORT),
        ("alice@example.com", IdentityKind.NIP05),
        ("example.com", IdentityKind.UNKNOWN),
        ("", IdentityKind.UNKNOWN),
    ],
)
def test_classify_identity(identifier: str, expected: IdentityKind) -> None:
    assert classify_identity(identifier) is expected


def test_npub_matches_reference_vector() -> None:
    assert decode_npub(ALICE_NPUB) == ALICE
    assert encode_npub(ALICE) == ALICE_NPUB


def test_decode_npub_rejects_bad_checksum() -> None:
    broken = ALICE_NPUB[:-1] + ("q" if ALICE_NPUB[-1] != "q" else "p")

    assert decode_npub(broken) is None


def test_hex_and_npub_resolve_deterministically() -> None:
    hex_resolution = resolve_identity(f"  {ALICE.upper()} ")
    npub_resolution = resolve_identity(ALICE_NPUB)

    assert hex_resolution.key == ALICE
    assert hex_resolution.source is ResolutionSource.DIRECT
    assert npub_resolution.key == ALICE
    assert npub_resolution.source is ResolutionSource.DECODED
    assert not npub_resolution.heuristic


def test_short_identity_prefers_record_owners_over_activity_log() -> None:
    index = IdentityIndex(owner_keys=(ALICE,), activity_keys=(ALICE_TWIN,))

    resolution = resolve_identity(ALICE_SHORT, index=index)

    assert resolution.key == ALICE
    assert resolution.source is ResolutionSource.RECORD_OWNER
    assert resolution.heuristic


def test_short_identity_falls_back_to_activity_log() -> None:
    index = IdentityIndex(owner_keys=(BOB,), activity_keys=(ALICE,))

    resolution = resolve_identity(ALICE_SHORT, index=index)

    assert resolution.key == ALICE
    assert resolution.source is ResolutionSource.ACTIVITY_LOG


def test_short_identity_without_match_is_unresolved() -> None:
    resolution = resolve_identity(ALICE_SHORT, index=IdentityIndex(owner_keys=(BOB,)))

    assert not resolution.resolved
    assert resolution.source is ResolutionSource.UNRESOLVED


def test_colliding_prefixes_resolve_to_first_match_with_warning(
    caplog: pytest.LogCaptureFixture,
) -> None:
    index = IdentityIndex(owner_keys=(ALICE_TWIN, ALICE))

    with caplog.at_level(logging.WARNING, logger="reposync.domain.identity"):
        key = resolve_key(ALICE_SHORT, index=index)

    assert key == ALICE_TWIN
    assert "prefix match" in caplog.text


def test_display_identity_encodings() -> None:
    assert display_identity(ALICE) == ALICE_NPUB
    assert display_identity(ALICE, IdentityEncoding.HEX) == ALICE
    assert display_identity(ALICE, IdentityEncoding.SHORT) == ALICE_SHORT


def test_display_identity_rejects_non_keys() -> None:
    with pytest.raises(InvalidIdentityError):
        display_identity("not-a-key")


def test_identity_matches_across_encodings() -> None:
    assert identity_matches(ALICE_NPUB, key=ALICE)
    assert identity_matches("someone@example.com", key=None, raw="SOMEONE@example.com")
    assert not identity_matches(BOB, key=ALICE)


def test_lookup_resolves_nip05_identifiers() -> None:
    calls: list[str] = []

    def lookup(identifier: str) -> str | None:
        calls.append(identifier)
        return ALICE.upper()

    resolution = resolve_with_lookup("alice@example.com", lookup=lookup)

    assert calls == ["alice@example.com"]
    assert resolution.key == ALICE
    assert resolution.source is ResolutionSource.LOOKUP


def test_lookup_is_not_consulted_for_structural_identities() -> None:
    def lookup(identifier: str) -> str | None:
        raise AssertionError(identifier)

    assert resolve_with_lookup(ALICE_NPUB, lookup=lookup).key == ALICE


def test_lookup_result_must_be_a_canonical_key() -> None:
    resolution = resolve_with_lookup("alice@example.com", lookup=lambda _identifier: "nope")

    assert not resolution.resolved

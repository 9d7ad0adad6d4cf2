"""NIP-05 identifier lookups."""

from __future__ import annotations

from .client import Nip05ResolutionError, Nip05Resolver, split_identifier
from .schema import Nip05Document

__all__ = ["Nip05Document", "Nip05ResolutionError", "Nip05Resolver", "split_identifier"]

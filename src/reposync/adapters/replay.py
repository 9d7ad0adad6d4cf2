"""Replay recorded events from a JSON Lines file."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .memory import InMemoryTransport

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)

DEFAULT_SOURCE: Final[str] = "replay"


class JsonlReplayTransport(InMemoryTransport):
    """Transport whose sources hold the events recorded in a ``.jsonl`` file.

    Each line is either a bare event object or ``{"source": ..., "event": {...}}``.
    Lines that are not JSON objects are skipped with a warning.
    """

    def __init__(self, path: Path, *, default_source: str = DEFAULT_SOURCE) -> None:
        super().__init__()
        self.path = path
        self.skipped_lines = 0
        self._load(default_source)

    def _load(self, default_source: str) -> None:
        with self.path.open(encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    payload = json.loads(stripped)
                except json.JSONDecodeError as exc:
                    log.warning("%s:%d: invalid JSON (%s)", self.path, line_number, exc.msg)
                    self.skipped_lines += 1
                    continue
                if not isinstance(payload, dict):
                    log.warning("%s:%d: expected a JSON object", self.path, line_number)
                    self.skipped_lines += 1
                    continue

                event = payload.get("event")
                if isinstance(event, dict):
                    source = str(payload.get("source") or default_source)
                else:
                    source, event = default_source, payload
                self.add(source, event)

        log.info(
            "Loaded %d events from %s across %d sources",
            sum(len(events) for events in self._events.values()),
            self.path,
            len(self._events),
        )

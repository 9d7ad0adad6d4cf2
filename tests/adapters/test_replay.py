from __future__ import annotations

import json
from typing import TYPE_CHECKING

from reposync.adapters.replay import JsonlReplayTransport
from tests.helpers.repositories import tagged_event

if TYPE_CHECKING:
    from pathlib import Path


def test_replay_groups_events_by_source(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    lines = [
        json.dumps({"source": "wss://one", "event": tagged_event(event_id="1")}),
        json.dumps(tagged_event(event_id="2")),
        "",
        "not json",
        json.dumps(["an", "array"]),
        json.dumps({"source": "wss://two", "event": tagged_event(event_id="3")}),
    ]
    path.write_text("\n".join(lines), encoding="utf-8")

    transport = JsonlReplayTransport(path)

    assert transport.sources == ("wss://one", "replay", "wss://two")
    assert transport.skipped_lines == 2


def test_replay_uses_the_default_source(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text(json.dumps(tagged_event()) + "\n", encoding="utf-8")

    transport = JsonlReplayTransport(path, default_source="archive")

    assert transport.sources == ("archive",)

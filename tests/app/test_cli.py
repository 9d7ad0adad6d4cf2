from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from reposync.adapters.sqlalchemy import shutdown
from reposync.config import SyncConfig
from reposync.domain.activity import ActivityCounts
from reposync.domain.model import ActivityType
from reposync.domain.sync import SyncPassResult
from reposync.ui import cli
from tests.helpers.repositories import ALICE, ALICE_NPUB, tagged_event

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def sql_adapter(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    monkeypatch.delenv("REPOSYNC_SOURCES", raising=False)
    monkeypatch.delenv("REPOSYNC_STORE_MAX_BYTES", raising=False)
    shutdown()
    try:
        yield
    finally:
        shutdown()


def test_ingest_passes_settle_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_ingest(path: Path, **kwargs: object) -> SyncPassResult:
        captured.update(kwargs, path=path)
        return SyncPassResult()

    monkeypatch.setattr(cli, "ingest_event_file", fake_ingest)

    cli.main(
        [
            "ingest",
            "--file",
            str(tmp_path / "events.jsonl"),
            "--timeout",
            "2.5",
            "--quorum",
            "1",
            "--source",
            "wss://one",
        ]
    )

    sync_config = captured["sync_config"]
    assert isinstance(sync_config, SyncConfig)
    assert captured["path"] == tmp_path / "events.jsonl"
    assert captured["sources"] == ["wss://one"]
    assert sync_config.settle_timeout_seconds == 2.5
    assert sync_config.settle_quorum == 1


def test_timeout_above_the_cap_exits_with_2(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--file", str(tmp_path / "events.jsonl"), "--timeout", "20"])

    assert excinfo.value.code == 2


def test_unknown_command_exits_with_2() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["rebuild"])

    assert excinfo.value.code == 2


def test_failures_exit_with_1(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_backfill(**_: object) -> object:
        raise RuntimeError("disk full")

    monkeypatch.setattr(cli, "run_backfill", fake_backfill)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["backfill"])

    assert excinfo.value.code == 1


def test_stats_prints_counts(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(
        cli,
        "activity_counts",
        lambda actor, **_: ActivityCounts(pushes=2, issues_opened=1, total=3),
    )

    cli.main(["stats", ALICE])

    assert capsys.readouterr().out.strip() == (
        "pushes=2 merged=0 issues=1 bounties=0 total=3"
    )


def test_top_by_activity_type(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_ranked(activity_type: ActivityType, **kwargs: object) -> list[tuple[str, int]]:
        captured.update(kwargs, activity_type=activity_type)
        return [(ALICE, 4)]

    monkeypatch.setattr(cli, "ranked_actors", fake_ranked)

    cli.main(["top", "--by", "merges", "--limit", "3"])

    assert captured == {"activity_type": ActivityType.PR_MERGED, "limit": 3}
    assert capsys.readouterr().out.strip() == f"{ALICE}\t4"


@pytest.mark.integration
@pytest.mark.usefixtures("sql_adapter")
def test_ingest_list_and_delete_end_to_end(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text(json.dumps(tagged_event()) + "\n", encoding="utf-8")

    cli.main(["ingest", "--file", str(path), "--timeout", "1"])
    assert "accepted=1" in capsys.readouterr().out

    cli.main(["list"])
    assert capsys.readouterr().out.strip() == f"{ALICE_NPUB}/demo\tDemo"

    cli.main(["delete", ALICE, "demo"])
    capsys.readouterr()
    cli.main(["list", "--include-hidden"])
    assert capsys.readouterr().out.strip() == f"{ALICE_NPUB}/demo\t[hidden: tombstoned]"


@pytest.mark.usefixtures("sql_adapter")
def test_resolve_offline(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["resolve", ALICE_NPUB, "--offline"])

    assert capsys.readouterr().out.strip() == f"{ALICE}\tnpub\tdecoded"

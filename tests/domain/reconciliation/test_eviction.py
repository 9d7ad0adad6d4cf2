from __future__ import annotations

from typing import TYPE_CHECKING

from reposync.domain.reconciliation import plan_eviction
from tests.helpers.repositories import ALICE, ALICE_NPUB, NOW, make_activity, make_record

if TYPE_CHECKING:
    from reposync.domain.model import RepositoryRecord

DAY = 86_400_000


def _records(count: int) -> list[RepositoryRecord]:
    return [make_record(repo=f"repo-{n}", ts=1000 * (n + 1)) for n in range(count)]


def test_evicts_at_most_the_configured_fraction() -> None:
    records = _records(25)

    plan = plan_eviction(
        records, activities=[], now=NOW, fraction=0.1, recent_window_ms=30 * DAY
    )

    assert [record.repo_name for record in plan.evicted] == ["repo-0", "repo-1"]
    assert len(plan.kept) == 23


def test_always_evicts_at_least_one_candidate() -> None:
    plan = plan_eviction(
        _records(3), activities=[], now=NOW, fraction=0.1, recent_window_ms=30 * DAY
    )

    assert len(plan.evicted) == 1


def test_protected_and_recently_active_records_are_kept() -> None:
    records = _records(3)
    activities = [
        make_activity(repo_ref=f"{ALICE}/repo-1", timestamp=NOW - DAY),
        make_activity(repo_ref=f"{ALICE_NPUB}/repo-2", timestamp=NOW - 90 * DAY),
    ]

    plan = plan_eviction(
        records,
        activities=activities,
        now=NOW,
        fraction=1.0,
        recent_window_ms=30 * DAY,
        protect=(ALICE, "repo-0"),
    )

    assert [record.repo_name for record in plan.evicted] == ["repo-2"]

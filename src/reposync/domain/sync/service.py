"""One reconciliation pass over a settling subscription."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .stream import SettlePolicy, SettleReason, SubscriptionStream

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reposync.domain.model import RepositoryDraft
    from reposync.domain.ports.transport import RawEvent, SourceTransport, SubscriptionFilter
    from reposync.domain.reconciliation import ReconciliationEngine

type NormalizeEvent = Callable[[RawEvent], RepositoryDraft | None]

log = getLogger(__name__)


@dataclass(slots=True)
class SyncPassResult:
    """Outcome of one subscription pass."""

    received: int = 0
    duplicates: int = 0
    skipped: int = 0
    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    settled_by: SettleReason | None = None
    sources_ended: tuple[str, ...] = field(default_factory=tuple)


async def sync_repositories(
    *,
    engine: ReconciliationEngine,
    transport: SourceTransport,
    sources: Sequence[str],
    filters: Sequence[SubscriptionFilter],
    normalize: NormalizeEvent,
    policy: SettlePolicy | None = None,
) -> SyncPassResult:
    """Subscribe, reconcile every announcement until the pass settles, then unsubscribe.

    A single failing event is logged and counted; it never aborts the pass.
    """

    result = SyncPassResult()
    seen_ids: set[str] = set()
    log.info("Starting sync pass over %d sources", len(sources))

    async with SubscriptionStream(transport, filters, sources, policy=policy) as stream:
        async for item in stream:
            result.received += 1
            event_id = item.event.get("id")
            if isinstance(event_id, str):
                if event_id in seen_ids:
                    result.duplicates += 1
                    continue
                seen_ids.add(event_id)

            try:
                draft = normalize(item.event)
                if draft is None:
                    result.skipped += 1
                    continue
                outcome = engine.reconcile(draft)
            except Exception:  # noqa: BLE001
                log.exception("Failed to reconcile event %s from %s", event_id, item.source_id)
                result.failed += 1
                continue

            if outcome.accepted:
                result.accepted += 1
            else:
                result.rejected += 1

        result.settled_by = stream.settled_by
        result.sources_ended = stream.ended_sources

    log.info(
        "Finished sync pass: received=%s, accepted=%s, rejected=%s, skipped=%s, "
        "duplicates=%s, failed=%s, settled_by=%s",
        result.received,
        result.accepted,
        result.rejected,
        result.skipped,
        result.duplicates,
        result.failed,
        result.settled_by,
    )
    return result

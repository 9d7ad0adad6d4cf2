# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from reposync.app import (
    activity_counts,
    activity_graph,
    delete_repository,
    ingest_event_file,
    leaderboards,
    list_hidden_repositories,
    list_repositories,
    ranked_actors,
    resolve_identifier,
    run_backfill,
)
from reposync.config import ConfigurationError, SyncConfig, configure_logging, get_sync_config
from reposync.domain.model import ActivityType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

RANKED_TYPES = {
    "merges": ActivityType.PR_MERGED,
    "bounties": ActivityType.BOUNTY_CLAIMED,
    "commits": ActivityType.COMMIT_CREATED,
}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile announced git repositories")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Reconcile events recorded in a JSONL file")
    ingest.add_argument("--file", type=Path, required=True, help="Path to the events file")
    ingest.add_argument(
        "--timeout",
        type=float,
        help="Settle timeout in seconds (defaults to config)",
    )
    ingest.add_argument(
        "--quorum",
        type=int,
        help="End-of-stream signals needed before settling (defaults to config)",
    )
    ingest.add_argument(
        "--source",
        action="append",
        dest="sources",
        default=[],
        help="Only subscribe to this source id (repeatable; defaults to REPOSYNC_SOURCES)",
    )

    listing = subparsers.add_parser("list", help="List visible repositories")
    listing.add_argument(
        "--include-hidden",
        action="store_true",
        help="Also list hidden records with the reason they are hidden",
    )

    delete = subparsers.add_parser("delete", help="Hide a repository locally")
    delete.add_argument("owner", help="Owner identity in any encoding")
    delete.add_argument("repo", help="Repository name")

    resolve = subparsers.add_parser("resolve", help="Resolve an owner identity")
    resolve.add_argument("identifier", help="Hex key, npub, 8-character prefix or name@domain")
    resolve.add_argument(
        "--offline",
        action="store_true",
        help="Do not query NIP-05 documents",
    )

    stats = subparsers.add_parser("stats", help="Show activity counters for an actor")
    stats.add_argument("actor", help="Actor identity in any encoding")
    stats.add_argument(
        "--refresh-file",
        type=Path,
        help="JSONL events used to corroborate the local counts",
    )
    stats.add_argument("--timeout", type=float, help="Settle timeout in seconds")
    stats.add_argument("--quorum", type=int, help="End-of-stream quorum")
    stats.add_argument(
        "--graph-days",
        type=int,
        help="Also print per-day activity for this many days",
    )

    top = subparsers.add_parser("top", help="Show repository and user leaderboards")
    top.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Entries per board (default: %(default)s)",
    )
    top.add_argument(
        "--by",
        choices=sorted(RANKED_TYPES),
        help="Rank actors by one activity type instead",
    )

    backfill = subparsers.add_parser("backfill", help="Derive activity entries from the cache")
    backfill.add_argument(
        "--force",
        action="store_true",
        help="Run even when the last backfill is recent",
    )

    return parser.parse_args(list(argv))


def _sync_config(args: argparse.Namespace) -> SyncConfig:
    base = get_sync_config()
    return SyncConfig(
        settle_quorum=args.quorum if args.quorum is not None else base.settle_quorum,
        settle_timeout_seconds=(
            args.timeout if args.timeout is not None else base.settle_timeout_seconds
        ),
    )


def _run_command(args: argparse.Namespace) -> None:
    match args.command:
        case "ingest":
            result = ingest_event_file(
                args.file, sync_config=_sync_config(args), sources=args.sources
            )
            print(
                f"received={result.received} accepted={result.accepted} "
                f"rejected={result.rejected} skipped={result.skipped} "
                f"duplicates={result.duplicates} failed={result.failed} "
                f"settled_by={result.settled_by}"
            )
        case "list":
            for record in list_repositories():
                print(f"{record.repo_ref}\t{record.display_name or record.repo_name}")
            if args.include_hidden:
                for record, reason in list_hidden_repositories():
                    print(f"{record.repo_ref}\t[hidden: {reason.value}]")
        case "delete":
            tombstone = delete_repository(args.owner, args.repo)
            print(f"Deleted {tombstone.owner_identity}/{tombstone.repo_name}")
        case "resolve":
            resolution = resolve_identifier(args.identifier, allow_lookup=not args.offline)
            if resolution.key is None:
                raise ValueError(f"Could not resolve {args.identifier!r}")
            print(f"{resolution.key}\t{resolution.kind.value}\t{resolution.source.value}")
        case "stats":
            counts = activity_counts(
                args.actor, refresh_file=args.refresh_file, sync_config=_sync_config(args)
            )
            print(
                f"pushes={counts.pushes} merged={counts.merged_changes} "
                f"issues={counts.issues_opened} bounties={counts.bounties_claimed} "
                f"total={counts.total}"
            )
            if args.graph_days:
                for day, count in activity_graph(args.actor, days=args.graph_days):
                    if count:
                        print(f"{day}\t{count}")
        case "top" if args.by:
            for actor, count in ranked_actors(RANKED_TYPES[args.by], limit=args.limit):
                print(f"{actor}\t{count}")
        case "top":
            repos, users = leaderboards(limit=args.limit)
            print("Repositories:")
            for entry in repos:
                print(f"  {entry.repo_ref}\t{entry.activity_count}")
            print("Users:")
            for entry in users:
                print(f"  {entry.actor_key}\t{entry.activity_count}")
        case "backfill":
            outcome = run_backfill(force=args.force)
            print(f"ran={outcome.ran} added={outcome.added}")
        case _:
            raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _run_command(parsed_args)
    except ConfigurationError as exc:
        log.error("Invalid configuration: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from nixtrack.app import (
    PackageStatus,
    attach_proposal,
    clear_proposal,
    ingest_observations,
    outdated_packages,
    package_status,
    set_update_log,
    sync_listing,
)
from nixtrack.config import ConfigurationError, configure_logging
from nixtrack.domain.errors import PackageNotFoundError, PendingUpdateError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_PENDING_CONFLICT = 3


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track package versions across sources")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    track = subparsers.add_parser("track", help="Register packages from a listing file")
    track.add_argument("listing", type=Path, help="JSON-lines file of package entries")

    ingest = subparsers.add_parser("ingest", help="Reconcile version observations")
    ingest.add_argument("observations", type=Path, help="JSON-lines file of observations")

    status = subparsers.add_parser("status", help="Show the stored state of a package")
    status.add_argument("package_id", type=str)

    outdated = subparsers.add_parser("outdated", help="List outdated packages")
    outdated.add_argument(
        "--eligible",
        action="store_true",
        help="Only list packages without a pending proposal",
    )

    attach = subparsers.add_parser("attach", help="Record a pending update proposal")
    attach.add_argument("package_id", type=str)
    attach.add_argument("proposal_id", type=str)
    attach.add_argument("owner", type=str, help="Owner of the proposal branch")
    attach.add_argument("branch", type=str, help="Name of the proposal branch")

    clear = subparsers.add_parser("clear", help="Clear a merged or closed proposal")
    clear.add_argument("package_id", type=str)
    clear.add_argument("proposal_id", type=str)

    update_log = subparsers.add_parser("log", help="Store the latest update attempt log")
    update_log.add_argument("package_id", type=str)
    update_log.add_argument("message", type=str, help="Log text; an empty string clears it")

    return parser.parse_args(list(argv))


def _format_status(status: PackageStatus) -> str:
    package = status.package
    lines = [f"{package.id} ({package.attr_path}) revision={package.revision}"]
    for source, state in sorted(package.sources.items()):
        lines.append(f"  {source:<22} {state.version:<16} {state.last_checked.isoformat()}")
    best = status.assessment.best_upstream
    if best is not None:
        lines.append(f"  best upstream: {best[1]} from {best[0]}")
    lines.append(f"  outdated: {'yes' if status.assessment.outdated else 'no'}")
    if package.pending is not None:
        pending = package.pending
        lines.append(
            f"  pending: {pending.proposal_id} ({pending.owner}/{pending.branch_name})"
        )
    lines.append(f"  eligible: {'yes' if status.eligible else 'no'}")
    if package.last_update_log:
        lines.append(f"  last log: {package.last_update_log}")
    return "\n".join(lines)


def _run(args: argparse.Namespace) -> None:
    if args.command == "track":
        synced = sync_listing(args.listing)
        log.info(
            "Listing synced: created=%s, refreshed=%s, unchanged=%s",
            synced.created,
            synced.refreshed,
            synced.unchanged,
        )
    elif args.command == "ingest":
        batch = ingest_observations(args.observations)
        for package_id in batch.became_outdated:
            print(f"became outdated: {package_id}")
    elif args.command == "status":
        print(_format_status(package_status(args.package_id)))
    elif args.command == "outdated":
        for entry in outdated_packages(eligible_only=args.eligible):
            packaged = entry.assessment.packaged_version
            upstream = entry.assessment.best_upstream_version
            print(f"{entry.package.id}\t{packaged}\t{upstream}")
    elif args.command == "attach":
        attach_proposal(args.package_id, args.proposal_id, args.owner, args.branch)
    elif args.command == "clear":
        clear_proposal(args.package_id, args.proposal_id)
    elif args.command == "log":
        set_update_log(args.package_id, args.message or None)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _run(parsed_args)
    except PendingUpdateError as exc:
        log.warning("%s", exc)
        sys.exit(EXIT_PENDING_CONFLICT)
    except (ValueError, ConfigurationError, PackageNotFoundError):
        log.exception("CLI validation error")
        sys.exit(EXIT_USAGE)
    except Exception:
        log.exception("Fatal error")
        sys.exit(EXIT_FATAL)


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

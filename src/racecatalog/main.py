#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from racecatalog.app import build_application_service
from racecatalog.common.logging import configure_logging
from racecatalog.domain.application.orchestrator import ApplyOptions
from racecatalog.domain.blocks import Block

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from racecatalog.domain.application.orchestrator import ProposalApplicationService


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply reviewed proposals to the race catalog")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    blocks = [str(block) for block in Block]

    apply_cmd = commands.add_parser("apply", help="Apply one proposal")
    apply_cmd.add_argument("proposal_id")
    apply_cmd.add_argument("--block", choices=blocks, help="Apply a single block only")
    apply_cmd.add_argument("--dry-run", action="store_true", help="Show what would be written")
    apply_cmd.add_argument("--force", action="store_true", help="Apply even if not approved")
    apply_cmd.add_argument("--connection", help="Catalog connection name")
    apply_cmd.add_argument("--user-email", help="Reviewer recorded as the author")

    blocks_cmd = commands.add_parser("apply-blocks", help="Apply blocks one by one")
    blocks_cmd.add_argument("proposal_id")
    blocks_cmd.add_argument("blocks", nargs="+", choices=blocks)
    blocks_cmd.add_argument("--force", action="store_true", help="Apply even if not approved")
    blocks_cmd.add_argument("--connection", help="Catalog connection name")
    blocks_cmd.add_argument("--user-email", help="Reviewer recorded as the author")

    return parser.parse_args(list(argv))


def _options(args: argparse.Namespace) -> ApplyOptions:
    block = getattr(args, "block", None)
    return ApplyOptions(
        force=args.force,
        block=Block(block) if block else None,
        dry_run=getattr(args, "dry_run", False),
        connection_id=args.connection,
        user_email=args.user_email,
    )


def _run(args: argparse.Namespace, service: ProposalApplicationService) -> bool:
    options = _options(args)
    if args.command == "apply-blocks":
        results = service.apply_blocks(args.proposal_id, args.blocks, options)
        print(json.dumps([result.to_payload() for result in results], indent=2))
        return all(result.success for result in results)
    result = service.apply_proposal(args.proposal_id, options)
    print(json.dumps(result.to_payload(), indent=2))
    return result.success


def main(
    argv: Sequence[str] | None = None,
    *,
    service: ProposalApplicationService | None = None,
) -> None:
    """Main application entry point."""
    try:
        args = _parse_args(argv if argv is not None else sys.argv[1:])
    except SystemExit as exc:
        sys.exit(2 if exc.code else 0)

    configure_logging(verbose=args.verbose)
    try:
        succeeded = _run(args, service or build_application_service())
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if not succeeded:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

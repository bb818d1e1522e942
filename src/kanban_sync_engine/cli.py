"""Command line interface for kanban-sync-engine.

Reports go to stdout (plain text or ``--json``); logs and errors go to
stderr.  Exit codes: 0 success, 1 any ``SyncError``, 130 interrupted.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from . import __version__
from .config import load_config, load_github_settings
from .config_schema import SyncConfig
from .errors import CLI_NAME, AggregateError, SyncError, error_to_json, format_error
from .logger import apply_config_logging, setup_logging
from .remote.client import GitHubClient
from .remote.protocol import IssueTracker
from .sync.bootstrap import BootstrapImporter
from .sync.conflicts import ACCEPT_CHOICES
from .sync.engine import SyncEngine
from .sync.models import SyncReport
from .sync.reporter import (
    format_conflict_list,
    format_dry_run_preview,
    format_status_report,
    format_sync_report,
    report_to_json,
    status_to_json,
)

logger = logging.getLogger(__name__)

TrackerFactory = Callable[[SyncConfig, argparse.Namespace], IssueTracker]

_EPILOG = f"""
Examples:
  # Compare TASKS.md with the repository
  {CLI_NAME} status

  # Bring remote status, labels and milestones into TASKS.md
  {CLI_NAME} pull

  # Preview, then publish local changes
  {CLI_NAME} push --dry-run
  {CLI_NAME} push

  # Resolve a content conflict
  {CLI_NAME} reconcile --list
  {CLI_NAME} reconcile T-004 --accept local

  # Import every open and closed issue as tasks
  {CLI_NAME} bootstrap --from remote --confirm

Config discovery: --config, then $KANBAN_SYNC_CONFIG, then
kanban-sync-engine.config.yml/.yaml/.json in the current directory.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=CLI_NAME,
        description="Synchronise a TASKS.md board with GitHub issues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_EPILOG,
    )
    parser.add_argument("--config", help="Path to the config file")
    parser.add_argument(
        "--tasks-file",
        help="Override the tasks file (relative to the current directory)",
    )
    parser.add_argument(
        "--token",
        help="GitHub token (takes precedence over GITHUB_TOKEN; "
        "visible in process list -- prefer the env var)",
    )
    parser.add_argument("--api-url", help="GitHub API root (GitHub Enterprise)")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also append logs to this file")
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{CLI_NAME} version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show divergence between board and remote")
    status.add_argument("--json", action="store_true", help="JSON output")

    pull = sub.add_parser("pull", help="Apply remote status and metadata locally")
    pull.add_argument("--dry-run", action="store_true", help="Do not write files")
    pull.add_argument("--json", action="store_true", help="JSON output")

    push = sub.add_parser("push", help="Create and update remote issues")
    push.add_argument("--dry-run", action="store_true", help="Do not write anything")
    push.add_argument(
        "--force",
        action="store_true",
        help="Skip baseline and conflict checks and overwrite issue bodies",
    )
    push.add_argument("--json", action="store_true", help="JSON output")

    bootstrap = sub.add_parser("bootstrap", help="One-time import in one direction")
    bootstrap.add_argument(
        "--from",
        dest="direction",
        choices=("local", "remote", "github"),
        required=True,
        help="Seed the remote from TASKS.md (local) or TASKS.md from issues (remote)",
    )
    bootstrap.add_argument("--dry-run", action="store_true", help="Preview only")
    bootstrap.add_argument(
        "--confirm",
        action="store_true",
        help="Required by bootstrap.requireConfirmFlag for a real run",
    )
    bootstrap.add_argument("--json", action="store_true", help="JSON output")

    reconcile = sub.add_parser(
        "reconcile", help="Generate or resolve a content conflict file"
    )
    reconcile.add_argument("task_id", nargs="?", help="Task id, e.g. T-004")
    reconcile.add_argument(
        "--accept",
        choices=ACCEPT_CHOICES,
        help="Resolve keeping the local detail or the remote body",
    )
    reconcile.add_argument(
        "--list", action="store_true", help="List pending conflict files"
    )
    reconcile.add_argument("--json", action="store_true", help="JSON output")

    return parser


def _default_tracker(config: SyncConfig, args: argparse.Namespace) -> IssueTracker:
    settings = load_github_settings(config, token=args.token, api_url=args.api_url)
    return GitHubClient(settings, config)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _print_report(report: SyncReport, as_json: bool) -> None:
    if as_json:
        _print_json(report_to_json(report))
    elif report.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_sync_report(report))


def _dispatch(engine: SyncEngine, args: argparse.Namespace) -> None:
    as_json = getattr(args, "json", False)

    if args.command == "status":
        report = engine.status()
        if as_json:
            _print_json(status_to_json(report))
        else:
            print(format_status_report(report))
    elif args.command == "pull":
        _print_report(engine.pull(dry_run=args.dry_run), as_json)
    elif args.command == "push":
        _print_report(engine.push(dry_run=args.dry_run, force=args.force), as_json)
    elif args.command == "bootstrap":
        report = BootstrapImporter(engine).run(
            args.direction, dry_run=args.dry_run, confirm=args.confirm
        )
        _print_report(report, as_json)
    elif args.command == "reconcile":
        if args.list:
            paths = engine.list_conflicts()
            if as_json:
                _print_json([str(p) for p in paths])
            else:
                print(format_conflict_list(paths))
            return
        result = engine.reconcile(args.task_id, accept=args.accept)
        if as_json:
            _print_json(result.model_dump())
        elif result.accepted is None:
            print(f"reconcile file generated: {result.artifact_path}")
        else:
            print(
                f"reconcile resolved for {result.task_id} using '{result.accepted}'."
            )
            print(f"Run {CLI_NAME} push to apply final state.")


def main(
    argv: Sequence[str] | None = None,
    tracker_factory: TrackerFactory | None = None,
    cwd: Path | None = None,
) -> int:
    """Run one command and return the process exit code.

    Args:
        argv: Arguments (defaults to ``sys.argv[1:]``).
        tracker_factory: Builds the issue tracker from the loaded config;
            defaults to a ``GitHubClient``.
        cwd: Directory used for config discovery (defaults to CWD).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "reconcile" and not args.list and not args.task_id:
        parser.error("reconcile requires a task id or --list")

    load_dotenv()
    setup_logging(
        debug=args.debug, log_file=args.log_file, debug_format=args.log_format
    )
    as_json = getattr(args, "json", False)

    try:
        config = load_config(args.config, args.tasks_file, cwd=cwd)
        apply_config_logging(
            config.logging.level,
            None if args.log_file else config.logging.file,
            debug=args.debug,
            debug_format=args.log_format,
        )
        tracker = (tracker_factory or _default_tracker)(config, args)
        _dispatch(SyncEngine.for_config(config, tracker), args)
    except AggregateError as exc:
        if as_json:
            data = error_to_json(exc)
            if exc.report is not None:
                data["report"] = report_to_json(exc.report)
            _print_json(data)
        elif exc.report is not None:
            print(format_sync_report(exc.report))
        print(format_error(exc), file=sys.stderr)
        return 1
    except SyncError as exc:
        if as_json:
            _print_json(error_to_json(exc))
        print(format_error(exc), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()

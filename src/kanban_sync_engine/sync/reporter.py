"""Report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_sync_report`` -- post-run summary of pull / push / bootstrap.
- ``format_dry_run_preview`` -- dry-run intent lines grouped by action.
- ``format_status_report`` -- divergence summary for ``status``.
- ``format_conflict_list`` -- pending reconcile files.
- ``report_to_json`` / ``status_to_json`` -- structured dicts for ``--json``.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING

from .models import SyncAction

if TYPE_CHECKING:
    from .models import StatusReport, SyncReport, TaskResult

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------

_SECTIONS = [
    (SyncAction.CREATE_REMOTE, "Created issues:"),
    (SyncAction.CREATE_LOCAL, "Imported tasks:"),
    (SyncAction.PUSH, "Pushed:"),
    (SyncAction.PULL, "Pulled:"),
    (SyncAction.REMOTE_MISSING, "Remote issue missing:"),
    (SyncAction.CONFLICT, "Conflicts:"),
    (SyncAction.STALE, "Outdated remotely:"),
    (SyncAction.NO_BASELINE, "Never pulled:"),
    (SyncAction.ERROR, "Errors:"),
]


def _result_line(result: TaskResult) -> str:
    line = f"  {result.task_id}"
    if result.issue_number is not None:
        line += f" (#{result.issue_number})"
    if result.message:
        line += f": {result.message}"
    return line


def _group(report: SyncReport) -> dict[SyncAction, list[TaskResult]]:
    groups: dict[SyncAction, list[TaskResult]] = defaultdict(list)
    for r in report.results:
        groups[r.action].append(r)
    return groups


def format_sync_report(report: SyncReport) -> str:
    """Format a complete run report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped tasks are summarised by count only.
    """
    lines: list[str] = []

    header = f"{report.operation} report"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Processed {len(report.results)} tasks: "
        f"{len(report.created_remote) + len(report.created_local)} created, "
        f"{len(report.pushed)} pushed, {len(report.pulled)} pulled, "
        f"{len(report.conflicts)} conflicts, {len(report.errors)} errors"
    )
    lines.append("")

    groups = _group(report)
    for action, title in _SECTIONS:
        if action not in groups:
            continue
        lines.append(title)
        lines.extend(_result_line(r) for r in groups[action])
        lines.append("")

    skipped = len(report.skipped)
    if skipped:
        lines.append(f"Skipped: {skipped} tasks")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Each task is shown as ``[ACTION] task-id: intent``.
    """
    lines = [
        "DRY RUN -- No changes will be made",
        f"Operation: {report.operation}",
        "",
    ]

    groups = _group(report)
    for action, _ in _SECTIONS:
        if action not in groups:
            continue
        label = action.value.upper().replace("_", " ")
        lines.append(f"[{label}]")
        lines.extend(_result_line(r) for r in groups[action])
        lines.append("")

    skip_count = len(groups.get(SyncAction.SKIP, []))
    if skip_count:
        lines.append(f"Skipped: {skip_count} tasks")
        lines.append("")

    if not any(a != SyncAction.SKIP for a in groups):
        lines.append("No changes needed.")
        lines.append("")

    lines.append(
        f"{report.operation} summary: "
        f"create={len(report.created_remote) + len(report.created_local)}, "
        f"update={len(report.pushed) + len(report.pulled)}"
    )
    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Status and conflicts
# ------------------------------------------------------------------


def format_status_report(report: StatusReport) -> str:
    lines = [
        f"Tasks file: {report.tasks_file}",
        f"Local tasks: {report.local_tasks}",
        f"Linked tasks: {report.linked_tasks}",
        f"Unlinked tasks: {report.unlinked_tasks}",
        f"Remote issues: {report.remote_issues}",
        f"Missing remote for linked: {len(report.missing_remote_for_linked)}",
        f"Remote-only issues: {len(report.remote_only_issues)}",
        f"Diverged statuses: {len(report.diverged_statuses)}",
    ]
    if report.invalid_external_ids:
        lines.append(
            f"Invalid external ids: {', '.join(report.invalid_external_ids)}"
        )
    for divergence in report.diverged_statuses:
        lines.append(
            f"  {divergence.id}: local={divergence.local} remote={divergence.remote}"
        )
    for task_id in report.missing_remote_for_linked:
        lines.append(f"  {task_id}: remote issue missing")

    pending = [
        t
        for t in report.tasks
        if t.content_state is not None and t.content_state.value != "clean"
    ]
    if pending:
        lines.append("Content:")
        for t in pending:
            lines.append(f"  {t.task_id} (#{t.issue_number}): {t.content_state.value}")
    return "\n".join(lines)


def format_conflict_list(paths: list[Path]) -> str:
    if not paths:
        return "No pending reconcile conflicts."
    lines = ["Pending reconcile conflicts:"]
    lines.extend(f"- {path}" for path in paths)
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a run report to a structured dict for JSON serialisation."""
    results_list = []
    for r in report.results:
        entry: dict = {
            "task_id": r.task_id,
            "action": r.action.value,
            "success": r.success,
        }
        if r.issue_number is not None:
            entry["issue_number"] = r.issue_number
        if r.message:
            entry["message"] = r.message
        results_list.append(entry)

    return {
        "operation": report.operation,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "summary": {
            "total": len(report.results),
            "created_remote": len(report.created_remote),
            "created_local": len(report.created_local),
            "pushed": len(report.pushed),
            "pulled": len(report.pulled),
            "skipped": len(report.skipped),
            "conflicts": len(report.conflicts),
            "errors": len(report.errors),
        },
        "results": results_list,
    }


def status_to_json(report: StatusReport) -> dict:
    return report.model_dump(mode="json")

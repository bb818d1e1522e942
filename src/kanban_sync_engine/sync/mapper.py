"""Field mapping between local tasks and remote issues.

Covers the external id format, label encoding of priority / workload / tags,
and the layout of the issue body generated from a task.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from ..board.models import PRIORITIES, WORKLOADS, Task
from ..config_schema import SyncConfig
from ..remote.models import RemoteIssue
from ..statuses import is_completion_status

EXTERNAL_ID_PREFIX = "github:issue:"
DETAIL_MARKER = "\n## Detail\n"

_EXTERNAL_ID_PATTERN = re.compile(r"^github:issue:(\d+)$")
_WORKLOAD_BY_LABEL = {w.lower(): w for w in WORKLOADS}


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_issue_number(external_id: str | None) -> int | None:
    """Return the issue number of ``github:issue:<n>``, else None."""
    if not external_id:
        return None
    match = _EXTERNAL_ID_PATTERN.match(external_id)
    return int(match.group(1)) if match else None


def format_external_id(number: int) -> str:
    return f"{EXTERNAL_ID_PREFIX}{number}"


def has_invalid_external_id(task: Task) -> bool:
    """True for a non-empty external id the engine cannot resolve."""
    return bool(task.external_id) and parse_issue_number(task.external_id) is None


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def labels_for_task(task: Task) -> list[str]:
    labels: list[str] = []
    if task.priority:
        labels.append(f"priority:{task.priority}")
    if task.workload:
        labels.append(f"workload:{task.workload.lower()}")
    for tag in task.tags or []:
        labels.append(f"tag:{tag}")
    return _unique(labels)


def apply_labels(task: Task, labels: list[str]) -> None:
    """Decode ``priority:`` / ``workload:`` / ``tag:`` labels onto *task*.

    Tags are replaced wholesale; priority and workload are only set when a
    valid label is present.
    """
    tags: list[str] = []
    for label in labels:
        if label.startswith("priority:"):
            value = label[len("priority:"):]
            if value in PRIORITIES:
                task.priority = value
                task.extra.pop("priority", None)
        elif label.startswith("workload:"):
            value = _WORKLOAD_BY_LABEL.get(label[len("workload:"):].lower())
            if value:
                task.workload = value
                task.extra.pop("workload", None)
        elif label.startswith("tag:"):
            tags.append(label[len("tag:"):])

    if tags or task.tags is not None:
        task.tags = _unique(tags)


def issue_state_for(task: Task, config: SyncConfig) -> str:
    return "closed" if is_completion_status(task.status, config) else "open"


def build_issue_body(
    task: Task, detail: str, detail_found: bool, today: str
) -> str:
    """Render the issue body for *task*.

    Args:
        task: The task being pushed.
        detail: Current detail text (``""`` when missing).
        detail_found: Whether the task's detail file exists.
        today: Date stamped in the header line.
    """
    lines = [f"Synced from TASKS.md on {today}.", "", "## Task Metadata"]
    lines.append(f"- id: {task.id}")
    lines.append(f"- status: {task.status}")
    if task.priority:
        lines.append(f"- priority: {task.priority}")
    if task.workload:
        lines.append(f"- workload: {task.workload}")
    if task.depends_on is not None:
        lines.append(f"- dependsOn: [{', '.join(task.depends_on)}]")
    if task.start:
        lines.append(f"- start: {task.start}")
    if task.due:
        lines.append(f"- due: {task.due}")
    lines.append(f"- completed: {task.completed or 'null'}")
    if task.detail:
        lines.append(f"- detail: {task.detail}")

    if not task.detail:
        return "\n".join(lines) + "\n"

    if not detail_found:
        lines.extend(["", "## Detail", f"Detail file not found at: {task.detail}"])
        return "\n".join(lines) + "\n"

    lines.extend(["", "## Detail", "", detail.strip() or "(empty detail file)"])
    return "\n".join(lines) + "\n"


def extract_remote_detail(body: str | None) -> str:
    """Return the part of an issue body after ``## Detail``, stripped.

    Bodies without the heading are returned whole.
    """
    if not body:
        return ""
    index = body.find(DETAIL_MARKER)
    if index == -1:
        return body
    return body[index + len(DETAIL_MARKER):].strip()


def closed_date(issue: RemoteIssue) -> str | None:
    return issue.closed_at[:10] if issue.closed_at else None

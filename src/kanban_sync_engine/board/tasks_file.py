"""Parse and serialize the TASKS.md board format.

Layout::

    # <board title>

    ## Components
    <opaque lines>

    ## Tasks

    ### <task title>

      - id: T-001
      - status: doing
      - tags: [api, sync]
      ...

    ## Notes
    <opaque lines>

Legacy boards that group tasks under per-status headings (``## Backlog``,
``## Doing``...) are accepted; the heading supplies the status of tasks that
lack a ``status`` key.  Lines that do not match the metadata pattern are
ignored so that hand edits never make the file unreadable.
"""

from __future__ import annotations

import logging
import re

from ..statuses import normalize_status
from .models import PRIORITIES, WORKLOADS, Task, TaskBoard, next_task_id

logger = logging.getLogger(__name__)

_META_PATTERN = re.compile(r"^\s{2}-\s+([A-Za-z][A-Za-z0-9]*):\s*(.*)$")

_LEGACY_SECTIONS = ("backlog", "doing", "review", "done", "paused")
_NOTES_HEADINGS = ("## Notes", "## Notas")

_LIST_FIELDS = {
    "tags": "tags",
    "touch": "touch",
    "dependsOn": "depends_on",
    "externalLinks": "external_links",
}
_TEXT_FIELDS = {
    "milestone": "milestone",
    "start": "start",
    "due": "due",
    "updated": "updated",
    "detail": "detail",
}
_NULLABLE_FIELDS = {
    "completed": "completed",
    "externalId": "external_id",
}


def parse_array(value: str) -> list[str]:
    """Parse ``[a, b]`` (brackets optional) into a list of non-empty items."""
    inner = value.strip()
    if inner.startswith("[") and inner.endswith("]"):
        inner = inner[1:-1]
    return [item.strip() for item in inner.split(",") if item.strip()]


def format_array(items: list[str]) -> str:
    return f"[{', '.join(items)}]"


def _trim_blank_lines(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def _apply_metadata(task: Task, key: str, value: str) -> None:
    """Set one ``key: value`` line on *task*, falling back to ``extra``."""
    if key == "id":
        task.id = value
    elif key == "status":
        task.status = normalize_status(value) or task.status
    elif key == "priority" and value in PRIORITIES:
        task.priority = value
    elif key == "workload" and value in WORKLOADS:
        task.workload = value
    elif key in _LIST_FIELDS:
        setattr(task, _LIST_FIELDS[key], parse_array(value))
    elif key in _TEXT_FIELDS:
        setattr(task, _TEXT_FIELDS[key], value or None)
    elif key in _NULLABLE_FIELDS:
        setattr(
            task,
            _NULLABLE_FIELDS[key],
            None if value in ("", "null") else value,
        )
    elif key == "defaultExpanded" and value.lower() in ("true", "false"):
        task.default_expanded = value.lower() == "true"
    else:
        task.extra[key] = value


def parse_tasks(text: str) -> TaskBoard:
    """Parse TASKS.md content into a ``TaskBoard``.

    Tasks without an ``id`` are given the next free ``T-NNN`` identifier.
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    title: str | None = None
    section: str | None = None
    legacy_status = "backlog"
    components: list[str] = []
    notes: list[str] = []
    tasks: list[Task] = []
    current: Task | None = None

    for line in lines:
        stripped = line.strip()

        if stripped == "## Components":
            section, current = "components", None
            continue
        if stripped == "## Tasks":
            section, current = "tasks", None
            continue
        if stripped in _NOTES_HEADINGS:
            section, current = "notes", None
            continue
        if stripped.startswith("## "):
            heading = stripped[3:].strip().lower()
            if heading in _LEGACY_SECTIONS:
                section, current = "tasks", None
                legacy_status = heading
                continue

        if section == "components":
            components.append(line)
            continue
        if section == "notes":
            notes.append(line)
            continue

        if stripped.startswith("# ") and title is None:
            title = stripped[2:].strip()
            continue

        if section != "tasks":
            continue

        if stripped.startswith("### "):
            current = Task(title=stripped[4:].strip(), status=legacy_status)
            tasks.append(current)
            continue

        if current is None:
            continue
        match = _META_PATTERN.match(line)
        if match is None:
            continue
        _apply_metadata(current, match.group(1), match.group(2).strip())

    for task in tasks:
        if not task.id:
            task.id = next_task_id(tasks)
            logger.info("Assigned id %s to task '%s'", task.id, task.title)

    return TaskBoard(
        title=title or "Tasks",
        components_section=_trim_blank_lines(components),
        tasks=tasks,
        notes_section=_trim_blank_lines(notes),
    )


def _task_lines(task: Task) -> list[str]:
    meta: list[tuple[str, str]] = [("id", task.id), ("status", task.status)]
    if task.priority:
        meta.append(("priority", task.priority))
    if task.workload:
        meta.append(("workload", task.workload))
    if task.tags is not None:
        meta.append(("tags", format_array(task.tags)))
    if task.touch is not None:
        meta.append(("touch", format_array(task.touch)))
    if task.depends_on is not None:
        meta.append(("dependsOn", format_array(task.depends_on)))
    if task.milestone:
        meta.append(("milestone", task.milestone))
    if task.start:
        meta.append(("start", task.start))
    if task.due:
        meta.append(("due", task.due))
    meta.append(("completed", task.completed or "null"))
    meta.append(("externalId", task.external_id or "null"))
    if task.external_links is not None:
        meta.append(("externalLinks", format_array(task.external_links)))
    if task.updated:
        meta.append(("updated", task.updated))
    if task.detail:
        meta.append(("detail", task.detail))
    if task.default_expanded is not None:
        meta.append(
            ("defaultExpanded", "true" if task.default_expanded else "false")
        )
    meta.extend(task.extra.items())

    out = [f"### {task.title}", ""]
    for key, value in meta:
        out.append(f"  - {key}: {value}" if value else f"  - {key}:")
    out.append("")
    return out


def serialize_tasks(board: TaskBoard) -> str:
    """Render *board* deterministically; unchanged boards are byte-identical."""
    out = [f"# {board.title}", ""]

    if board.components_section:
        out.extend(["## Components", ""])
        out.extend(board.components_section)
        out.append("")

    out.extend(["## Tasks", ""])
    for task in board.tasks:
        out.extend(_task_lines(task))

    out.extend(["## Notes", ""])
    out.extend(board.notes_section)

    return "\n".join(out).rstrip("\n") + "\n"

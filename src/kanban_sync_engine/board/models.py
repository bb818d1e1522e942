"""Pydantic models for the local task board.

- ``Task``: one entry of TASKS.md.  Mutable: pull, push and bootstrap
  update tasks in place and the board is saved once at the end of a run.
- ``TaskBoard``: ordered tasks plus the two pass-through sections.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

PRIORITIES = ("high", "medium", "low")
WORKLOADS = ("Easy", "Normal", "Hard", "Extreme")

_TASK_ID_PATTERN = re.compile(r"^T-(\d+)$")


class Task(BaseModel):
    """A single task.

    List-valued fields are ``None`` when the key is absent from the file,
    so that ``tags: []`` survives a round-trip while a missing key stays
    missing.  ``extra`` keeps unrecognised metadata keys (and recognised
    keys with invalid values) verbatim, in file order.
    """

    id: str = ""
    title: str
    status: str = "backlog"
    completed: str | None = None
    external_id: str | None = None
    priority: str | None = None
    workload: str | None = None
    tags: list[str] | None = None
    touch: list[str] | None = None
    depends_on: list[str] | None = None
    milestone: str | None = None
    start: str | None = None
    due: str | None = None
    external_links: list[str] | None = None
    updated: str | None = None
    detail: str | None = None
    default_expanded: bool | None = None
    extra: dict[str, str] = Field(default_factory=dict)


class TaskBoard(BaseModel):
    """Ordered task list plus the opaque components and notes sections."""

    title: str = "Tasks"
    components_section: list[str] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    notes_section: list[str] = Field(default_factory=list)

    def find(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


def next_task_id(tasks: list[Task]) -> str:
    """Return ``T-NNN`` one above the highest numbered id in *tasks*."""
    highest = 0
    for task in tasks:
        match = _TASK_ID_PATTERN.match(task.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"T-{highest + 1:03d}"

"""Conflict artifacts: human-resolvable BASE / LOCAL / REMOTE documents.

One file per conflicted task at
``<tasks dir>/.kanban-sync-engine/conflicts/<task-id>.reconcile.md``.  The
files are a side channel for the user, never authoritative state: resolving
one advances the task's baseline and deletes the file.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

from ..board.models import Task
from ..board.store import TaskStore
from ..errors import CLI_NAME
from ..file_handler import write_file
from ..remote.models import RemoteIssue
from .mapper import extract_remote_detail, utc_now_iso
from .merger import attempt_merge
from .models import BaselineEntry, ConflictInfo
from .state import STATE_DIR_NAME, BaselineStore

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".reconcile.md"
ACCEPT_CHOICES = ("local", "remote")

_BACKTICK_RUN = re.compile(r"`+")


def _fence(text: str) -> str:
    longest = max((len(run) for run in _BACKTICK_RUN.findall(text)), default=0)
    return "`" * max(3, longest + 1)


def _fenced_block(text: str) -> list[str]:
    if not text:
        text = "(empty)"
    elif text.endswith("\n"):
        text = text[:-1]
    fence = _fence(text)
    return [f"{fence}md", text, fence]


def build_conflict(
    task: Task,
    issue: RemoteIssue,
    baseline: BaselineEntry,
    local_detail: str,
) -> ConflictInfo:
    """Collect the three texts and merge the detail versions."""
    merged, has_markers = attempt_merge(
        baseline.local_detail_at_pull,
        local_detail,
        extract_remote_detail(issue.body),
    )
    return ConflictInfo(
        task_id=task.id,
        issue_number=issue.number,
        base_content=baseline.local_detail_at_pull,
        local_content=local_detail,
        remote_content=issue.body or "",
        merged_content=merged,
        has_markers=has_markers,
    )


def render_artifact(task: Task, issue: RemoteIssue, conflict: ConflictInfo) -> str:
    if conflict.has_markers:
        preview_note = (
            "Automatic merge of the BASE, LOCAL and REMOTE detail texts. "
            "Overlapping edits are marked with <<<<<<< LOCAL / >>>>>>> REMOTE."
        )
    else:
        preview_note = "The detail texts merge cleanly:"

    lines = [
        f"# Reconcile {task.id}",
        "",
        f"- task: {task.title}",
        f"- issue: #{issue.number}",
        f"- issueUrl: {issue.url}",
        f"- generatedAt: {utc_now_iso()}",
        "",
        "## BASE (at last pull)",
        "",
        *_fenced_block(conflict.base_content),
        "",
        "## LOCAL (current detail file)",
        "",
        *_fenced_block(conflict.local_content),
        "",
        "## REMOTE (current issue body)",
        "",
        *_fenced_block(conflict.remote_content),
        "",
        "## MERGE PREVIEW",
        "",
        preview_note,
        "",
        *_fenced_block(conflict.merged_content),
        "",
        "## Resolution",
        "",
        f"- Keep local version: {CLI_NAME} reconcile {task.id} --accept local",
        f"- Keep remote version: {CLI_NAME} reconcile {task.id} --accept remote",
        f"- Then run: {CLI_NAME} push",
        "",
    ]
    return "\n".join(lines)


class ConflictArtifactManager:
    """Write, list and resolve conflict artifacts for one tasks file.

    Args:
        conflicts_dir: Directory holding the artifacts.
        store: Local task store, used to rewrite detail files.
        baselines: Baseline store advanced on resolution.
    """

    def __init__(
        self,
        conflicts_dir: Path,
        store: TaskStore,
        baselines: BaselineStore,
    ) -> None:
        self.conflicts_dir = conflicts_dir
        self.store = store
        self.baselines = baselines

    @classmethod
    def for_tasks_file(
        cls, tasks_file: Path, store: TaskStore, baselines: BaselineStore
    ) -> ConflictArtifactManager:
        return cls(
            Path(tasks_file).parent / STATE_DIR_NAME / "conflicts",
            store,
            baselines,
        )

    def path_for(self, task_id: str) -> Path:
        return self.conflicts_dir / f"{task_id}{ARTIFACT_SUFFIX}"

    def write(
        self,
        task: Task,
        issue: RemoteIssue,
        baseline: BaselineEntry,
        local_detail: str,
    ) -> Path:
        """Write (or overwrite) the artifact for *task*; returns its path."""
        conflict = build_conflict(task, issue, baseline, local_detail)
        path = self.path_for(task.id)
        write_file(path, render_artifact(task, issue, conflict))
        logger.info("Wrote conflict file %s", path)
        return path

    def iter_artifacts(self) -> Iterator[Path]:
        """Yield pending artifact paths in sorted order."""
        if not self.conflicts_dir.is_dir():
            return
        yield from sorted(self.conflicts_dir.glob(f"*{ARTIFACT_SUFFIX}"))

    def delete(self, task_id: str) -> bool:
        """Remove the artifact for *task_id*; returns True if one existed."""
        path = self.path_for(task_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Removed conflict file %s", path)
        return True

    def resolve(
        self,
        task: Task,
        issue: RemoteIssue,
        baseline: BaselineEntry,
        accept: str,
    ) -> BaselineEntry:
        """Resolve a conflict in favour of *accept* (``local`` or ``remote``).

        With ``remote`` the detail section of the issue body replaces the
        local detail file.  Either way the baseline is advanced so that the
        remote side counts as unchanged and the local side is compared with
        the remote detail; the artifact is then removed.

        Returns:
            The new baseline entry.
        """
        if accept not in ACCEPT_CHOICES:
            raise ValueError(f"accept must be one of {ACCEPT_CHOICES}, got {accept!r}")

        remote_detail = extract_remote_detail(issue.body)
        if accept == "remote" and task.detail:
            path = self.store.write_detail(task, remote_detail)
            logger.info("Replaced %s with the remote detail", path)

        body = issue.body or ""
        entry = baseline.model_copy(
            update={
                "local_detail_at_pull": remote_detail,
                "local_detail_hash_at_pull": BaselineStore.content_hash(remote_detail),
                "remote_updated_at": issue.updated_at,
                "remote_body_at_pull": body,
                "remote_body_hash": BaselineStore.content_hash(body),
                "pulled_at": utc_now_iso(),
            }
        )

        entries = self.baselines.load()
        entries[entry.external_id] = entry
        self.baselines.save(entries)
        self.delete(task.id)
        return entry

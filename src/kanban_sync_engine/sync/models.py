"""Pydantic models for the reconciliation engine.

Defines the data contracts shared across the sync modules:

- ``StatusState`` / ``ContentState``: per-task classification, one enum per
  reconciliation pass.
- ``SyncAction``: what a pull/push/bootstrap did (or would do) to a task.
- ``BaselineEntry``: the last-agreed snapshot of one linked task.
- ``RemoteSnapshot``: the remote state read once at the start of a run.
- ``TaskResult`` / ``SyncReport``: outcome of a pull, push or bootstrap.
- ``StatusReport``: read-only divergence report.

All report models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..remote.models import BoardItemDates, BoardItemStatus, RemoteIssue


class StatusState(str, Enum):
    """Outcome of the status pass for one task."""

    UNLINKED = "unlinked"
    REMOTE_MISSING = "remote_missing"
    STATUS_SYNCED = "status_synced"
    STATUS_DIVERGED = "status_diverged"


class ContentState(str, Enum):
    """Outcome of the content pass for one linked task."""

    NO_BASELINE = "no_baseline"
    CONTENT_CONFLICT = "content_conflict"
    REMOTE_AHEAD = "remote_ahead"
    LOCAL_AHEAD = "local_ahead"
    CLEAN = "clean"


class SyncAction(str, Enum):
    """Per-task outcome recorded in a ``SyncReport``."""

    CREATE_REMOTE = "create_remote"
    CREATE_LOCAL = "create_local"
    PUSH = "push"
    PULL = "pull"
    SKIP = "skip"
    CONFLICT = "conflict"
    STALE = "stale"
    NO_BASELINE = "no_baseline"
    REMOTE_MISSING = "remote_missing"
    ERROR = "error"


class BaselineEntry(BaseModel):
    """Last-agreed state of a linked task, the three-way merge ancestor.

    Attributes:
        task_id: Local task id when the entry was written.
        external_id: ``github:issue:<n>`` key of the entry.
        issue_number: Remote issue number.
        remote_updated_at: Remote ``updated_at`` at baseline time.
        remote_body_hash: SHA-256 of the remote body at baseline time.
        remote_body_at_pull: Verbatim remote body at baseline time.
        local_detail_hash_at_pull: SHA-256 of the local detail at baseline time.
        local_detail_at_pull: Verbatim local detail at baseline time.
        pulled_at: ISO 8601 timestamp when the entry was written.
    """

    task_id: str
    external_id: str
    issue_number: int
    remote_updated_at: str
    remote_body_hash: str
    remote_body_at_pull: str
    local_detail_hash_at_pull: str
    local_detail_at_pull: str
    pulled_at: str

    model_config = {"frozen": True}


class RemoteSnapshot(BaseModel):
    """Remote state fetched once per run, indexed by issue number.

    ``issues`` is updated in place with the responses of this run's own
    writes so that later steps see the issue as written.
    """

    issues: dict[int, RemoteIssue] = Field(default_factory=dict)
    board_statuses: dict[int, BoardItemStatus] = Field(default_factory=dict)
    board_dates: dict[int, BoardItemDates] = Field(default_factory=dict)
    option_ids: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def board_item_id(self, issue_number: int) -> str | None:
        status = self.board_statuses.get(issue_number)
        if status is not None:
            return status.item_id
        dates = self.board_dates.get(issue_number)
        return dates.item_id if dates is not None else None


class ConflictInfo(BaseModel):
    """The three texts of a content conflict plus an automatic merge attempt.

    Attributes:
        task_id: Local task id.
        issue_number: Remote issue number.
        base_content: Local detail at the last baseline.
        local_content: Current local detail.
        remote_content: Current remote issue body.
        merged_content: Merge of base/local/remote detail.
        has_markers: Whether merged content contains conflict markers.
    """

    task_id: str
    issue_number: int
    base_content: str
    local_content: str
    remote_content: str
    merged_content: str
    has_markers: bool

    model_config = {"frozen": True}


class TaskResult(BaseModel):
    """Outcome for one task.

    Attributes:
        task_id: Local task id.
        action: What was done (or would be done in a dry run).
        issue_number: Linked issue number, when known.
        success: False for tasks that were skipped because of an error.
        message: Human-readable detail (intent line, skip reason, error).
    """

    task_id: str
    action: SyncAction
    issue_number: int | None = None
    success: bool = True
    message: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a pull, push or bootstrap run.

    Attributes:
        operation: ``pull``, ``push`` or ``bootstrap``.
        dry_run: Whether this was a dry-run (no changes applied).
        results: Per-task results in board order.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    operation: str
    dry_run: bool = False
    results: list[TaskResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_action(self, action: SyncAction) -> list[TaskResult]:
        return [r for r in self.results if r.action == action]

    @property
    def created_remote(self) -> list[TaskResult]:
        return self._with_action(SyncAction.CREATE_REMOTE)

    @property
    def created_local(self) -> list[TaskResult]:
        return self._with_action(SyncAction.CREATE_LOCAL)

    @property
    def pushed(self) -> list[TaskResult]:
        return self._with_action(SyncAction.PUSH)

    @property
    def pulled(self) -> list[TaskResult]:
        return self._with_action(SyncAction.PULL)

    @property
    def skipped(self) -> list[TaskResult]:
        return self._with_action(SyncAction.SKIP)

    @property
    def conflicts(self) -> list[TaskResult]:
        return self._with_action(SyncAction.CONFLICT)

    @property
    def errors(self) -> list[TaskResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        """Format a human-readable summary of the run.

        Returns:
            Multi-line summary string with counts by action.
        """
        lines = [
            f"{self.operation} report" + (" (dry run)" if self.dry_run else ""),
            f"  Created remote: {len(self.created_remote)}",
            f"  Created local:  {len(self.created_local)}",
            f"  Pushed:         {len(self.pushed)}",
            f"  Pulled:         {len(self.pulled)}",
            f"  Skipped:        {len(self.skipped)}",
            f"  Conflicts:      {len(self.conflicts)}",
            f"  Errors:         {len(self.errors)}",
            f"  Total:          {len(self.results)}",
        ]
        return "\n".join(lines)


class StatusDivergence(BaseModel):
    """A linked task whose local status differs from the remote-derived one."""

    id: str
    local: str
    remote: str

    model_config = {"frozen": True}


class TaskClassification(BaseModel):
    """Both pass outcomes for one task.

    ``content_state`` is None for tasks the content pass does not cover
    (unlinked and remote-missing tasks).
    """

    task_id: str
    issue_number: int | None = None
    status_state: StatusState
    content_state: ContentState | None = None
    local_status: str
    remote_status: str | None = None

    model_config = {"frozen": True}


class StatusReport(BaseModel):
    """Read-only comparison of the board against the remote snapshot."""

    tasks_file: str
    local_tasks: int
    linked_tasks: int
    unlinked_tasks: int
    remote_issues: int
    missing_remote_for_linked: list[str] = []
    remote_only_issues: list[int] = []
    diverged_statuses: list[StatusDivergence] = []
    invalid_external_ids: list[str] = []
    tasks: list[TaskClassification] = []

    model_config = {"frozen": True}


class ReconcileResult(BaseModel):
    """Outcome of ``reconcile``.

    ``accepted`` is None when only the artifact was (re)generated.
    """

    task_id: str
    artifact_path: str
    accepted: str | None = None

    model_config = {"frozen": True}

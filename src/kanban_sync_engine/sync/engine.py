"""Reconciliation engine: status, pull, push and reconcile.

The ``SyncEngine`` ties together the task store, the issue tracker, the
baseline store and the conflict artifact manager.  Every operation:

1. Loads the board and validates task statuses (before any remote I/O).
2. Takes one remote snapshot (issues, board statuses, board dates).
3. Classifies each task with the status pass and, for push, the content
   pass.
4. Applies the writes that are safe.
5. Saves the board and baselines once, at the end.

Status is remote-authoritative and never conflict-checked; only content
(issue body vs. detail file) goes through the baseline comparison.  Push
errors are per-task: one blocked task does not stop the others, and the
failures are raised together as ``AggregateError`` after everything else
has been written.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..board.models import Task, TaskBoard
from ..board.store import TaskStore
from ..board.tasks_file import serialize_tasks
from ..config_schema import SyncConfig
from ..errors import (
    AggregateError,
    ContentConflictError,
    NoBaselineError,
    NotFoundError,
    RemoteError,
    StaleError,
    SyncError,
    UnlinkedError,
)
from ..remote.models import RemoteIssue
from ..remote.protocol import IssueTracker
from ..statuses import (
    normalize_completion,
    normalize_status,
    normalize_status_map,
    validate_task_statuses,
)
from .conflicts import ConflictArtifactManager
from .content import classify_content
from .mapper import (
    apply_labels,
    build_issue_body,
    closed_date,
    format_external_id,
    has_invalid_external_id,
    issue_state_for,
    labels_for_task,
    parse_issue_number,
    today_iso,
    utc_now_iso,
)
from .models import (
    BaselineEntry,
    ContentState,
    ReconcileResult,
    RemoteSnapshot,
    StatusDivergence,
    StatusReport,
    StatusState,
    SyncAction,
    SyncReport,
    TaskClassification,
    TaskResult,
)
from .state import BaselineStore
from .status import StatusCheck, classify_status

logger = logging.getLogger(__name__)

REMOTE_ONLY_LIMIT = 50

PUSH_BLOCKED_HINT = (
    "Push blocked to avoid data loss. Run pull or reconcile conflict files, "
    "then push again. Use --force to override."
)
FORCE_PUSH_HINT = (
    "Conflicts detected even with force flow. "
    "Resolve local reconciliation files first."
)

_ACTION_FOR_ERROR: dict[type[SyncError], SyncAction] = {
    ContentConflictError: SyncAction.CONFLICT,
    StaleError: SyncAction.STALE,
    NoBaselineError: SyncAction.NO_BASELINE,
    NotFoundError: SyncAction.REMOTE_MISSING,
}


class SyncEngine:
    """Synchronise one task board with one issue tracker.

    Args:
        config: Validated sync configuration.
        tracker: Remote issue tracker.
        store: Local task store.
        baselines: Baseline sidecar store.
        conflicts: Conflict artifact manager.
    """

    def __init__(
        self,
        config: SyncConfig,
        tracker: IssueTracker,
        store: TaskStore,
        baselines: BaselineStore,
        conflicts: ConflictArtifactManager,
    ) -> None:
        self.config = config
        self.tracker = tracker
        self.store = store
        self.baselines = baselines
        self.conflicts = conflicts

    @classmethod
    def for_config(cls, config: SyncConfig, tracker: IssueTracker) -> SyncEngine:
        """Wire the file-backed stores next to ``config.tasks_file``."""
        tasks_file = Path(config.tasks_file)
        store = TaskStore(tasks_file)
        baselines = BaselineStore.for_tasks_file(tasks_file)
        conflicts = ConflictArtifactManager.for_tasks_file(
            tasks_file, store, baselines
        )
        return cls(config, tracker, store, baselines, conflicts)

    # ------------------------------------------------------------------
    # Snapshot and shared helpers
    # ------------------------------------------------------------------

    def load_board(self) -> TaskBoard:
        board = self.store.load_board()
        validate_task_statuses(board.tasks, self.config)
        return board

    def fetch_snapshot(self, include_options: bool = False) -> RemoteSnapshot:
        """Read the remote state used for the whole run.

        Args:
            include_options: Also fetch board status option ids (push only).
        """
        config = self.config
        issues = {issue.number: issue for issue in self.tracker.list_issues()}
        statuses = (
            {s.issue_number: s for s in self.tracker.list_board_statuses()}
            if config.board_enabled
            else {}
        )
        dates = (
            {d.issue_number: d for d in self.tracker.list_board_dates()}
            if config.date_fields_enabled
            else {}
        )
        options = (
            self.tracker.status_option_ids()
            if include_options and config.board_enabled
            else {}
        )
        logger.debug(
            "Remote snapshot: %d issues, %d board statuses, %d board dates",
            len(issues),
            len(statuses),
            len(dates),
        )
        return RemoteSnapshot(
            issues=issues,
            board_statuses=statuses,
            board_dates=dates,
            option_ids=options,
        )

    def _read_detail(self, task: Task) -> tuple[str, bool]:
        path = self.store.detail_path(task)
        found = path is not None and path.is_file()
        return self.store.read_detail(task), found

    def apply_remote(
        self,
        task: Task,
        check: StatusCheck,
        snapshot: RemoteSnapshot,
        today: str,
    ) -> list[str]:
        """Overwrite status, labels, milestone and dates from the remote side.

        Returns:
            Names of the task fields that changed (``updated`` excluded).
        """
        issue = check.issue
        if issue is None:
            raise ValueError(f"{task.id}: no remote issue to apply")
        before = task.model_dump()

        if check.state == StatusState.STATUS_DIVERGED and check.remote_status:
            logger.info(
                "%s: status %s -> %s", task.id, task.status, check.remote_status
            )
            task.status = check.remote_status

        apply_labels(task, issue.labels)
        if issue.milestone:
            task.milestone = issue.milestone

        dates = snapshot.board_dates.get(issue.number)
        if dates is not None:
            if dates.start:
                task.start = dates.start
            if dates.due:
                task.due = dates.due

        fallback = (dates.completed if dates else None) or closed_date(issue) or today
        normalize_completion(task, self.config, fallback)
        task.updated = today

        after = task.model_dump()
        return [
            key for key in before if key != "updated" and before[key] != after[key]
        ]

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------

    def status(self) -> StatusReport:
        """Compare the board with the remote snapshot without writing."""
        board = self.load_board()
        snapshot = self.fetch_snapshot()
        entries = self.baselines.load()

        classifications: list[TaskClassification] = []
        missing: list[str] = []
        diverged: list[StatusDivergence] = []
        invalid: list[str] = []
        linked_numbers: set[int] = set()

        for task in board.tasks:
            if has_invalid_external_id(task):
                invalid.append(task.id)
            check = classify_status(task, snapshot, self.config)
            number = parse_issue_number(task.external_id)
            content_state = None

            if check.state == StatusState.REMOTE_MISSING:
                missing.append(task.id)
            elif check.issue is not None:
                content_state = classify_content(
                    entries.get(task.external_id or ""),
                    check.issue,
                    self.store.read_detail(task),
                )
                if check.state == StatusState.STATUS_DIVERGED:
                    diverged.append(
                        StatusDivergence(
                            id=task.id,
                            local=task.status,
                            remote=check.remote_status or "",
                        )
                    )
            if number is not None:
                linked_numbers.add(number)

            classifications.append(
                TaskClassification(
                    task_id=task.id,
                    issue_number=number,
                    status_state=check.state,
                    content_state=content_state,
                    local_status=task.status,
                    remote_status=check.remote_status,
                )
            )

        linked = sum(
            1 for c in classifications if c.status_state != StatusState.UNLINKED
        )
        remote_only = [n for n in snapshot.issues if n not in linked_numbers]

        return StatusReport(
            tasks_file=str(self.store.tasks_file),
            local_tasks=len(board.tasks),
            linked_tasks=linked,
            unlinked_tasks=len(board.tasks) - linked,
            remote_issues=len(snapshot.issues),
            missing_remote_for_linked=missing,
            remote_only_issues=remote_only[:REMOTE_ONLY_LIMIT],
            diverged_statuses=diverged,
            invalid_external_ids=invalid,
            tasks=classifications,
        )

    # ------------------------------------------------------------------
    # pull
    # ------------------------------------------------------------------

    def pull(self, dry_run: bool = False) -> SyncReport:
        """Apply remote status and metadata to linked tasks; refresh baselines."""
        started_at = utc_now_iso()
        board = self.load_board()
        snapshot = self.fetch_snapshot()
        entries = self.baselines.load()
        today = today_iso()
        results: list[TaskResult] = []

        for task in board.tasks:
            check = classify_status(task, snapshot, self.config)
            number = parse_issue_number(task.external_id)

            if check.state == StatusState.UNLINKED:
                results.append(
                    TaskResult(
                        task_id=task.id,
                        action=SyncAction.SKIP,
                        message="not linked to an issue",
                    )
                )
                continue
            if check.issue is None:
                logger.warning("%s: issue #%s not found remotely", task.id, number)
                results.append(
                    TaskResult(
                        task_id=task.id,
                        action=SyncAction.REMOTE_MISSING,
                        issue_number=number,
                        message=f"issue #{number} not found",
                    )
                )
                continue

            changed = self.apply_remote(task, check, snapshot, today)
            entries[task.external_id or format_external_id(check.issue.number)] = (
                BaselineStore.make_entry(task, check.issue, self.store.read_detail(task))
            )
            results.append(
                TaskResult(
                    task_id=task.id,
                    action=SyncAction.PULL,
                    issue_number=number,
                    message=(
                        f"updated {', '.join(changed)}" if changed else "up to date"
                    ),
                )
            )

        if not dry_run:
            self.store.save_board(board)
            self.baselines.save(entries)

        return SyncReport(
            operation="pull",
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=utc_now_iso(),
        )

    # ------------------------------------------------------------------
    # push
    # ------------------------------------------------------------------

    def push(self, dry_run: bool = False, force: bool = False) -> SyncReport:
        """Write local tasks to the tracker.

        Blocked tasks (no baseline, stale, conflicted, remote missing) are
        skipped and collected; all other tasks are written.  The board and
        baselines are then saved once and, if anything was blocked,
        ``AggregateError`` is raised.

        Args:
            dry_run: Classify and report without writing anything.
            force: Skip baseline checks and always write the body.
        """
        started_at = utc_now_iso()
        board = self.load_board()
        snapshot = self.fetch_snapshot(include_options=True)
        entries = self.baselines.load()
        board_before = serialize_tasks(board)
        today = today_iso()

        results: list[TaskResult] = []
        errors: list[SyncError] = []
        entries_before = dict(entries)

        for task in board.tasks:
            try:
                result = self._push_task(
                    task, snapshot, entries, dry_run, force, today
                )
            except SyncError as exc:
                logger.warning("%s: %s", task.id, exc.message)
                errors.append(exc)
                results.append(
                    TaskResult(
                        task_id=task.id,
                        action=_ACTION_FOR_ERROR.get(type(exc), SyncAction.ERROR),
                        issue_number=parse_issue_number(task.external_id),
                        success=False,
                        message=exc.message,
                    )
                )
                continue
            results.append(result)

        if not dry_run:
            if serialize_tasks(board) != board_before:
                self.store.save_board(board)
            if entries != entries_before:
                self.baselines.save(entries)

        report = SyncReport(
            operation="push",
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=utc_now_iso(),
        )
        if errors:
            raise AggregateError(
                errors, FORCE_PUSH_HINT if force else PUSH_BLOCKED_HINT, report
            )
        return report

    def _push_task(
        self,
        task: Task,
        snapshot: RemoteSnapshot,
        entries: dict[str, BaselineEntry],
        dry_run: bool,
        force: bool,
        today: str,
    ) -> TaskResult:
        """Push one task; a fresh baseline lands in *entries* after each write."""
        number = parse_issue_number(task.external_id)
        if number is None:
            return self._create_remote(task, snapshot, entries, dry_run, today)

        issue = snapshot.issues.get(number)
        if issue is None:
            raise NotFoundError(
                f"Task {task.id} is linked to issue #{number}, which does not "
                f"exist in {self.config.owner}/{self.config.repo}.",
                f"Fix or clear the externalId of {task.id}, then push again.",
            )

        local_detail, detail_found = self._read_detail(task)
        write_body = True
        if not force:
            baseline = entries.get(task.external_id or "")
            state = classify_content(baseline, issue, local_detail)
            if baseline is None or state == ContentState.NO_BASELINE:
                raise NoBaselineError(
                    f"Task {task.id} has no local sync base. Run pull before push."
                )
            if state == ContentState.CONTENT_CONFLICT:
                path = (
                    None
                    if dry_run
                    else self.conflicts.write(task, issue, baseline, local_detail)
                )
                where = path or self.conflicts.path_for(task.id)
                raise ContentConflictError(
                    f"Task {task.id} has concurrent detail edits. Reconcile: {where}",
                    task.id,
                    path,
                )
            if state == ContentState.REMOTE_AHEAD:
                raise StaleError(
                    f"Task {task.id} is outdated remotely (issue #{number} "
                    "changed since the last pull). Run pull before push."
                )
            write_body = state == ContentState.LOCAL_AHEAD

        normalize_completion(task, self.config, today)
        task.updated = today

        if dry_run:
            intents = [f"update issue #{number} from task {task.id}"]
            if not write_body:
                intents.append(
                    f"skip body update for {task.id} "
                    "(detail unchanged since last pull)"
                )
            intents.extend(self._sync_board(task, issue, snapshot, dry_run=True))
            return TaskResult(
                task_id=task.id,
                action=SyncAction.PUSH,
                issue_number=number,
                message="; ".join(intents),
            )

        body = (
            build_issue_body(task, local_detail, detail_found, today)
            if write_body
            else None
        )
        updated = self.tracker.update_issue(
            number,
            title=task.title,
            body=body,
            state=issue_state_for(task, self.config),
            labels=labels_for_task(task),
        )
        snapshot.issues[number] = updated
        entry = BaselineStore.make_entry(task, updated, local_detail)
        entries[entry.external_id] = entry
        if force:
            self.conflicts.delete(task.id)
        self._sync_board(task, updated, snapshot, dry_run=False)

        return TaskResult(
            task_id=task.id,
            action=SyncAction.PUSH,
            issue_number=number,
            message="body updated" if write_body else "metadata only",
        )

    def _create_remote(
        self,
        task: Task,
        snapshot: RemoteSnapshot,
        entries: dict[str, BaselineEntry],
        dry_run: bool,
        today: str,
    ) -> TaskResult:
        if has_invalid_external_id(task):
            logger.warning(
                "%s: externalId '%s' is not a GitHub issue id; "
                "treating the task as unlinked",
                task.id,
                task.external_id,
            )
        if dry_run:
            return TaskResult(
                task_id=task.id,
                action=SyncAction.CREATE_REMOTE,
                message=f"create issue for {task.id} ({task.title})",
            )

        normalize_completion(task, self.config, today)
        task.updated = today
        local_detail, detail_found = self._read_detail(task)

        issue = self.tracker.create_issue(
            task.title,
            build_issue_body(task, local_detail, detail_found, today),
            labels_for_task(task),
            task.milestone,
        )
        task.external_id = format_external_id(issue.number)
        entries[task.external_id] = BaselineStore.make_entry(task, issue, local_detail)
        logger.info("%s: created issue #%d", task.id, issue.number)

        if issue_state_for(task, self.config) == "closed":
            issue = self.tracker.update_issue(issue.number, state="closed")
            entries[task.external_id] = BaselineStore.make_entry(
                task, issue, local_detail
            )
        snapshot.issues[issue.number] = issue
        self._sync_board(task, issue, snapshot, dry_run=False)

        return TaskResult(
            task_id=task.id,
            action=SyncAction.CREATE_REMOTE,
            issue_number=issue.number,
            message=f"created issue #{issue.number}",
        )

    def _sync_board(
        self,
        task: Task,
        issue: RemoteIssue,
        snapshot: RemoteSnapshot,
        dry_run: bool,
    ) -> list[str]:
        """Attach *issue* to the board and set its status and date fields.

        Returns:
            Intent lines (dry run only).
        """
        config = self.config
        if not (config.board_enabled or config.date_fields_enabled):
            return []

        remote_name = normalize_status_map(config.status_map).get(
            normalize_status(task.status), ""
        )
        option_id = snapshot.option_ids.get(remote_name)
        dates = [
            (field_id, value)
            for field_id, value in (
                (config.start_date_field_id, task.start),
                (config.due_date_field_id, task.due),
                (config.completed_date_field_id, task.completed),
            )
            if field_id and value
        ]

        if dry_run:
            intents = [f"ensure issue #{issue.number} is in project"]
            if config.board_enabled:
                if option_id:
                    intents.append(
                        f"set project status for issue #{issue.number} -> {remote_name}"
                    )
                else:
                    intents.append(
                        f"no matching project status option for '{remote_name}'"
                    )
            intents.extend(
                f"set project date {field_id} = {value}" for field_id, value in dates
            )
            return intents

        try:
            item_id = snapshot.board_item_id(issue.number)
            if item_id is None:
                if not issue.node_id:
                    raise RemoteError(
                        f"Issue #{issue.number} has no node id; "
                        "cannot add it to the project"
                    )
                item_id = self.tracker.add_to_board(issue.node_id)
                logger.info("Added issue #%d to the project board", issue.number)

            if config.board_enabled:
                if option_id:
                    self.tracker.set_board_status(item_id, option_id)
                else:
                    logger.warning(
                        "No project status option named '%s' for %s",
                        remote_name,
                        task.id,
                    )
            for field_id, value in dates:
                self.tracker.set_board_date(item_id, field_id, value)
        except RemoteError as exc:
            raise RemoteError(
                f"Issue #{issue.number} for {task.id} was written, but the "
                f"project board update failed: {exc.message}",
                "Fix the project settings or access, then push again.",
            ) from exc
        return []

    # ------------------------------------------------------------------
    # reconcile
    # ------------------------------------------------------------------

    def reconcile(self, task_id: str, accept: str | None = None) -> ReconcileResult:
        """Write the conflict artifact for *task_id*; resolve it if *accept*.

        Raises:
            NotFoundError: Unknown task or missing remote issue.
            UnlinkedError: The task has no usable external id.
            NoBaselineError: The task was never pulled.
        """
        board = self.store.load_board()
        task = board.find(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        if not task.external_id:
            raise UnlinkedError(f"Task {task_id} is not linked (externalId is null).")
        number = parse_issue_number(task.external_id)
        if number is None:
            raise UnlinkedError(
                f"Task {task_id} externalId '{task.external_id}' is not a "
                "GitHub issue id."
            )

        issue = next(
            (i for i in self.tracker.list_issues() if i.number == number), None
        )
        if issue is None:
            raise NotFoundError(f"Remote issue not found for {task_id} (#{number}).")

        baseline = self.baselines.load().get(task.external_id)
        if baseline is None:
            raise NoBaselineError(
                f"No sync baseline found for {task_id}. Run pull first."
            )

        local_detail = self.store.read_detail(task)
        path = self.conflicts.write(task, issue, baseline, local_detail)
        if accept is None:
            return ReconcileResult(task_id=task_id, artifact_path=str(path))

        self.conflicts.resolve(task, issue, baseline, accept)
        logger.info("Reconciled %s using '%s'", task_id, accept)
        return ReconcileResult(
            task_id=task_id, artifact_path=str(path), accepted=accept
        )

    def list_conflicts(self) -> list[Path]:
        return list(self.conflicts.iter_artifacts())

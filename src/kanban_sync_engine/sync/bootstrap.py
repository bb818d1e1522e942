"""One-time directional seeding of a board or a repository.

``remote`` (alias ``github``) imports every unlinked remote issue as a new
task and refreshes already-linked tasks with the pull rules.  ``local``
delegates to push, so the content-conflict rules apply unchanged.
"""

from __future__ import annotations

import logging

from ..board.models import Task, next_task_id
from ..errors import ConfirmationRequiredError
from ..remote.models import RemoteIssue
from ..statuses import allowed_statuses, first_completion_status, normalize_status
from .engine import SyncEngine
from .mapper import format_external_id, parse_issue_number, today_iso, utc_now_iso
from .models import RemoteSnapshot, StatusState, SyncAction, SyncReport, TaskResult
from .status import StatusCheck, classify_status, invert_status_map

logger = logging.getLogger(__name__)

DIRECTIONS = ("local", "remote", "github")


class BootstrapImporter:
    """Seed one side from the other.

    Args:
        engine: Engine providing the stores, tracker and pull rules.
    """

    def __init__(self, engine: SyncEngine) -> None:
        self.engine = engine
        self.config = engine.config

    def run(
        self, direction: str, dry_run: bool = False, confirm: bool = False
    ) -> SyncReport:
        """Bootstrap in *direction* (``local``, ``remote`` or ``github``).

        Raises:
            ConfirmationRequiredError: Policy requires ``confirm`` for a
                non-dry run.  Raised before anything is read or written.
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
        if (
            self.config.bootstrap.require_confirm_flag
            and not dry_run
            and not confirm
        ):
            raise ConfirmationRequiredError(
                "Bootstrap requires --confirm by config policy."
            )

        if direction == "local":
            return self._from_local(dry_run)
        return self._from_remote(dry_run)

    def _default_status(self) -> str:
        configured = normalize_status(
            self.config.bootstrap.default_status_for_imported_issues
        )
        if configured:
            return configured
        allowed = allowed_statuses(self.config)
        if "backlog" in allowed or not allowed:
            return "backlog"
        return allowed[0]

    def _import_status(self, issue: RemoteIssue, snapshot: RemoteSnapshot) -> str:
        board_status = snapshot.board_statuses.get(issue.number)
        if board_status is not None:
            mapped = invert_status_map(self.config).get(board_status.status_name)
            if mapped:
                return mapped
        if issue.is_closed:
            return first_completion_status(self.config) or self._default_status()
        return self._default_status()

    def _from_local(self, dry_run: bool) -> SyncReport:
        report = self.engine.push(dry_run=dry_run)
        if not dry_run and self.config.bootstrap.create_missing_detail_files:
            store = self.engine.store
            for task in store.load_board().tasks:
                store.ensure_detail_file(task)
        return report.model_copy(update={"operation": "bootstrap"})

    def _from_remote(self, dry_run: bool) -> SyncReport:
        started_at = utc_now_iso()
        engine = self.engine
        board = engine.load_board()
        snapshot = engine.fetch_snapshot()
        today = today_iso()
        results: list[TaskResult] = []

        linked: dict[int, Task] = {}
        for task in board.tasks:
            number = parse_issue_number(task.external_id)
            if number is not None:
                linked[number] = task

        for number in sorted(snapshot.issues):
            issue = snapshot.issues[number]
            task = linked.get(number)

            if task is not None:
                check = classify_status(task, snapshot, self.config)
                changed = engine.apply_remote(task, check, snapshot, today)
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
                continue

            new_id = next_task_id(board.tasks)
            task = Task(
                id=new_id,
                title=f"[{new_id}] {issue.title}",
                status=self._import_status(issue, snapshot),
                external_id=format_external_id(number),
                detail=f"./tasks/{new_id}.md",
            )
            engine.apply_remote(
                task,
                StatusCheck(StatusState.STATUS_SYNCED, issue, task.status),
                snapshot,
                today,
            )
            board.tasks.append(task)
            linked[number] = task
            logger.info("Imported issue #%d as %s", number, new_id)
            results.append(
                TaskResult(
                    task_id=new_id,
                    action=SyncAction.CREATE_LOCAL,
                    issue_number=number,
                    message=f"import issue #{number} as {new_id}",
                )
            )

        if not dry_run:
            if self.config.bootstrap.create_missing_detail_files:
                for task in board.tasks:
                    engine.store.ensure_detail_file(task)
            engine.store.save_board(board)

        return SyncReport(
            operation="bootstrap",
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=utc_now_iso(),
        )

"""Tests for BootstrapImporter (one-time seeding in either direction)."""

from __future__ import annotations

from pathlib import Path

import pytest

from kanban_sync_engine.board.store import STUB_DETAIL_TEMPLATE
from kanban_sync_engine.board.tasks_file import parse_tasks
from kanban_sync_engine.errors import ConfirmationRequiredError
from kanban_sync_engine.remote.models import BoardItemStatus
from kanban_sync_engine.sync.bootstrap import BootstrapImporter
from kanban_sync_engine.sync.models import SyncAction

EMPTY_BOARD = "# Tasks\n\n## Tasks\n\n## Notes\n"

LOCAL_BOARD = """\
# Tasks

## Tasks

### Seed task

  - id: T-001
  - status: backlog
  - completed: null
  - externalId: null
  - detail: ./tasks/T-001.md

## Notes
"""


def _board(tmp_path: Path):
    return parse_tasks((tmp_path / "TASKS.md").read_text(encoding="utf-8"))


class TestConfirmationPolicy:
    def test_requires_confirm(self, make_engine, tracker):
        engine = make_engine(EMPTY_BOARD, bootstrap={"requireConfirmFlag": True})

        with pytest.raises(ConfirmationRequiredError):
            BootstrapImporter(engine).run("remote")
        assert tracker.list_calls == 0

    def test_dry_run_needs_no_confirm(self, make_engine, tracker):
        tracker.add_issue(1, title="First")
        engine = make_engine(EMPTY_BOARD, bootstrap={"requireConfirmFlag": True})

        report = BootstrapImporter(engine).run("remote", dry_run=True)

        assert [r.action for r in report.results] == [SyncAction.CREATE_LOCAL]

    def test_unknown_direction(self, make_engine):
        engine = make_engine(EMPTY_BOARD)

        with pytest.raises(ValueError):
            BootstrapImporter(engine).run("sideways")


class TestFromRemote:
    def test_imports_open_and_closed_issues(self, make_engine, tracker, tmp_path):
        tracker.add_issue(1, title="First", labels=["priority:low"])
        tracker.add_issue(
            2, title="Second", state="closed", closed_at="2026-01-05T10:00:00Z"
        )
        engine = make_engine(EMPTY_BOARD)

        report = BootstrapImporter(engine).run("github", confirm=True)

        assert report.operation == "bootstrap"
        assert len(report.created_local) == 2
        board = _board(tmp_path)
        first, second = board.tasks
        assert first.id == "T-001"
        assert first.title == "[T-001] First"
        assert first.status == "backlog"
        assert first.priority == "low"
        assert first.external_id == "github:issue:1"
        assert first.detail == "./tasks/T-001.md"
        assert second.status == "done"
        assert second.completed == "2026-01-05"
        assert not (tmp_path / ".kanban-sync-engine" / "state.json").exists()

    def test_board_status_and_default_status(self, make_engine, tracker, tmp_path):
        tracker.add_issue(1, title="On board")
        tracker.add_issue(2, title="Off board")
        tracker.board_statuses = [
            BoardItemStatus(issue_number=1, item_id="ITEM_1", status_name="Review")
        ]
        engine = make_engine(
            EMPTY_BOARD,
            project_id="P_1",
            status_field_id="F_1",
            bootstrap={"defaultStatusForImportedIssues": "paused"},
        )

        BootstrapImporter(engine).run("remote")

        statuses = [t.status for t in _board(tmp_path).tasks]
        assert statuses == ["review", "paused"]

    def test_linked_tasks_are_refreshed_not_duplicated(
        self, make_engine, tracker, tmp_path
    ):
        tracker.add_issue(1, title="First")
        engine = make_engine(EMPTY_BOARD)
        importer = BootstrapImporter(engine)
        importer.run("remote")

        report = importer.run("remote")

        assert [r.action for r in report.results] == [SyncAction.PULL]
        assert len(_board(tmp_path).tasks) == 1

    def test_creates_stub_detail_files(self, make_engine, tracker, tmp_path):
        tracker.add_issue(1, title="First")
        engine = make_engine(
            EMPTY_BOARD, bootstrap={"createMissingDetailFiles": True}
        )

        BootstrapImporter(engine).run("remote")

        stub = (tmp_path / "tasks" / "T-001.md").read_text(encoding="utf-8")
        assert stub == STUB_DETAIL_TEMPLATE.format(id="T-001")

    def test_dry_run_leaves_board_untouched(self, make_engine, tracker, tmp_path):
        tracker.add_issue(1, title="First")
        engine = make_engine(EMPTY_BOARD)

        BootstrapImporter(engine).run("remote", dry_run=True)

        assert (tmp_path / "TASKS.md").read_text(encoding="utf-8") == EMPTY_BOARD


class TestFromLocal:
    def test_creates_issues(self, make_engine, tracker, tmp_path):
        engine = make_engine(LOCAL_BOARD)

        report = BootstrapImporter(engine).run("local")

        assert report.operation == "bootstrap"
        assert report.created_remote[0].issue_number == 1
        assert _board(tmp_path).find("T-001").external_id == "github:issue:1"

    def test_creates_stub_detail_files(self, make_engine, tracker, tmp_path):
        engine = make_engine(
            LOCAL_BOARD, bootstrap={"createMissingDetailFiles": True}
        )

        BootstrapImporter(engine).run("local")

        assert (tmp_path / "tasks" / "T-001.md").is_file()

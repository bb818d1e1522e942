"""Shared pytest fixtures for kanban-sync-engine tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from kanban_sync_engine.config_schema import SyncConfig, build_config
from kanban_sync_engine.remote.models import (
    BoardItemDates,
    BoardItemStatus,
    RemoteIssue,
)
from kanban_sync_engine.sync.engine import SyncEngine

STATUS_MAP = {
    "backlog": "Backlog",
    "doing": "In Progress",
    "review": "Review",
    "done": "Done",
    "paused": "Paused",
}


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live GitHub repository",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live GitHub repository"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeTracker:
    """In-memory ``IssueTracker``.

    ``body_writes`` counts create/update calls that carried a body, and every
    write (or simulated remote edit) advances ``updated_at``.
    """

    def __init__(self) -> None:
        self.issues: dict[int, RemoteIssue] = {}
        self.board_statuses: list[BoardItemStatus] = []
        self.board_dates: list[BoardItemDates] = []
        self.option_ids: dict[str, str] = {}
        self.body_writes = 0
        self.list_calls = 0
        self.updates: list[tuple[int, dict]] = []
        self.board_adds: list[str] = []
        self.status_sets: list[tuple[str, str]] = []
        self.date_sets: list[tuple[str, str, str]] = []
        self._clock = 0

    def _tick(self) -> str:
        self._clock += 1
        minutes, seconds = divmod(self._clock, 60)
        return f"2026-02-01T10:{minutes:02d}:{seconds:02d}Z"

    def add_issue(
        self,
        number: int,
        title: str = "Issue",
        body: str | None = "",
        state: str = "open",
        labels: list[str] | None = None,
        milestone: str | None = None,
        closed_at: str | None = None,
    ) -> RemoteIssue:
        issue = RemoteIssue(
            number=number,
            node_id=f"I_{number}",
            title=title,
            body=body,
            state=state,
            labels=labels or [],
            milestone=milestone,
            url=f"https://github.com/acme/widgets/issues/{number}",
            closed_at=closed_at,
            updated_at=self._tick(),
        )
        self.issues[number] = issue
        return issue

    def edit_issue(self, number: int, **changes) -> RemoteIssue:
        """Simulate an edit made by someone else on the remote side."""
        issue = self.issues[number].model_copy(
            update={**changes, "updated_at": self._tick()}
        )
        self.issues[number] = issue
        return issue

    # -- IssueTracker -----------------------------------------------------

    def list_issues(self) -> list[RemoteIssue]:
        self.list_calls += 1
        return list(self.issues.values())

    def create_issue(self, title, body, labels, milestone=None) -> RemoteIssue:
        self.body_writes += 1
        number = max(self.issues, default=0) + 1
        return self.add_issue(
            number, title=title, body=body, labels=list(labels), milestone=milestone
        )

    def update_issue(
        self, number, *, title=None, body=None, state=None, labels=None
    ) -> RemoteIssue:
        fields = {"title": title, "body": body, "state": state, "labels": labels}
        changes = {k: v for k, v in fields.items() if v is not None}
        self.updates.append((number, changes))
        if body is not None:
            self.body_writes += 1
        current = self.issues[number]
        if state == "closed" and not current.is_closed:
            changes["closed_at"] = "2026-02-01T12:00:00Z"
        elif state == "open":
            changes["closed_at"] = None
        return self.edit_issue(number, **changes)

    def list_board_statuses(self) -> list[BoardItemStatus]:
        return list(self.board_statuses)

    def list_board_dates(self) -> list[BoardItemDates]:
        return list(self.board_dates)

    def status_option_ids(self) -> dict[str, str]:
        return dict(self.option_ids)

    def add_to_board(self, node_id: str) -> str:
        self.board_adds.append(node_id)
        return f"ITEM_{node_id}"

    def set_board_status(self, item_id: str, option_id: str) -> None:
        self.status_sets.append((item_id, option_id))

    def set_board_date(self, item_id: str, field_id: str, date: str) -> None:
        self.date_sets.append((item_id, field_id, date))


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory building a valid ``SyncConfig`` rooted in ``tmp_path``."""

    def _make(**overrides) -> SyncConfig:
        raw = {
            "owner": "acme",
            "repo": "widgets",
            "tasks_file": str(tmp_path / "TASKS.md"),
            "status_map": dict(STATUS_MAP),
        }
        raw.update(overrides)
        return build_config(raw)

    return _make


@pytest.fixture
def config(make_config) -> SyncConfig:
    return make_config()


@pytest.fixture
def make_engine(tmp_path: Path, tracker: FakeTracker, make_config):
    """Factory writing TASKS.md (and detail files) and wiring an engine."""

    def _make(
        tasks_text: str,
        details: dict[str, str] | None = None,
        **overrides,
    ) -> SyncEngine:
        (tmp_path / "TASKS.md").write_text(tasks_text, encoding="utf-8")
        for rel_path, content in (details or {}).items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return SyncEngine.for_config(make_config(**overrides), tracker)

    return _make

"""Interface the sync engine needs from a remote issue tracker.

The engine only talks to this protocol; ``GitHubClient`` implements it over
HTTP and the test suite uses an in-memory fake.
"""

from __future__ import annotations

from typing import Protocol

from .models import BoardItemDates, BoardItemStatus, RemoteIssue


class IssueTracker(Protocol):
    """Issue and board operations.

    Board methods return empty results when no board is configured.
    ``update_issue`` treats every ``None`` argument as "leave unchanged".
    """

    def list_issues(self) -> list[RemoteIssue]: ...

    def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str],
        milestone: str | None = None,
    ) -> RemoteIssue: ...

    def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        state: str | None = None,
        labels: list[str] | None = None,
    ) -> RemoteIssue: ...

    def list_board_statuses(self) -> list[BoardItemStatus]: ...

    def list_board_dates(self) -> list[BoardItemDates]: ...

    def status_option_ids(self) -> dict[str, str]: ...

    def add_to_board(self, node_id: str) -> str: ...

    def set_board_status(self, item_id: str, option_id: str) -> None: ...

    def set_board_date(self, item_id: str, field_id: str, date: str) -> None: ...

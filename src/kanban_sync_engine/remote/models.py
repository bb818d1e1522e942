"""Frozen snapshots of remote tracker state.

One snapshot is taken per run; nothing here is mutated afterwards.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class RemoteIssue(BaseModel):
    """A GitHub issue as seen by the sync engine.

    Attributes:
        number: Issue number within the repository.
        node_id: GraphQL node id, needed to attach the issue to a board.
        title: Issue title.
        body: Issue body (None when the issue has no body).
        state: ``open`` or ``closed``.
        labels: Label names.
        milestone: Milestone title, if any.
        url: Browser URL of the issue.
        closed_at: ISO 8601 close timestamp.
        updated_at: ISO 8601 last-modified timestamp.
    """

    number: int
    node_id: str = ""
    title: str
    body: str | None = None
    state: str = "open"
    labels: list[str] = []
    milestone: str | None = None
    url: str = ""
    closed_at: str | None = None
    updated_at: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RemoteIssue:
        """Build from a REST ``issues`` payload."""
        milestone = data.get("milestone") or None
        return cls(
            number=data["number"],
            node_id=data.get("node_id") or "",
            title=data.get("title") or "",
            body=data.get("body"),
            state=data.get("state") or "open",
            labels=[
                label["name"] if isinstance(label, dict) else str(label)
                for label in data.get("labels") or []
            ],
            milestone=milestone.get("title") if milestone else None,
            url=data.get("html_url") or "",
            closed_at=data.get("closed_at"),
            updated_at=data.get("updated_at") or "",
        )

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"


class BoardItemStatus(BaseModel):
    """Status option currently set on a board item."""

    issue_number: int
    item_id: str
    status_name: str

    model_config = {"frozen": True}


class BoardItemDates(BaseModel):
    """Date field values of a board item."""

    issue_number: int
    item_id: str
    start: str | None = None
    due: str | None = None
    completed: str | None = None

    model_config = {"frozen": True}

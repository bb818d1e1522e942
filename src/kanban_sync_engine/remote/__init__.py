"""Remote issue tracker: snapshot models, protocol and GitHub client."""

from .client import GitHubClient
from .models import BoardItemDates, BoardItemStatus, RemoteIssue
from .protocol import IssueTracker

__all__ = [
    "BoardItemDates",
    "BoardItemStatus",
    "GitHubClient",
    "IssueTracker",
    "RemoteIssue",
]

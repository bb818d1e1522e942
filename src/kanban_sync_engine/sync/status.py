"""Status reconciliation pass.

Status is remote-authoritative: this pass only compares the local status
with the one derived from the remote snapshot and never looks at content.
Pull applies its verdicts unconditionally.
"""

from __future__ import annotations

from typing import NamedTuple

from ..board.models import Task
from ..config_schema import SyncConfig
from ..remote.models import RemoteIssue
from ..statuses import (
    first_completion_status,
    is_completion_status,
    normalize_status,
    normalize_status_map,
)
from .mapper import parse_issue_number
from .models import RemoteSnapshot, StatusState


class StatusCheck(NamedTuple):
    state: StatusState
    issue: RemoteIssue | None = None
    remote_status: str | None = None


def invert_status_map(config: SyncConfig) -> dict[str, str]:
    """Map remote board option name to local status."""
    inverse: dict[str, str] = {}
    for local_status, remote_name in normalize_status_map(config.status_map).items():
        inverse.setdefault(remote_name, local_status)
    return inverse


def remote_status_for(
    task: Task,
    issue: RemoteIssue,
    board_status_name: str | None,
    config: SyncConfig,
) -> str | None:
    """Derive the local status the remote side implies for *task*.

    Returns None when the board reports an option name that no local status
    maps to.
    """
    if board_status_name is not None:
        status_map = normalize_status_map(config.status_map)
        if status_map.get(normalize_status(task.status)) == board_status_name:
            return task.status
        return invert_status_map(config).get(board_status_name)

    if issue.is_closed:
        if is_completion_status(task.status, config):
            return task.status
        return first_completion_status(config) or task.status
    return task.status


def classify_status(
    task: Task, snapshot: RemoteSnapshot, config: SyncConfig
) -> StatusCheck:
    number = parse_issue_number(task.external_id)
    if number is None:
        return StatusCheck(StatusState.UNLINKED)

    issue = snapshot.issues.get(number)
    if issue is None:
        return StatusCheck(StatusState.REMOTE_MISSING)

    board_status = (
        snapshot.board_statuses.get(number) if config.board_enabled else None
    )
    remote_status = remote_status_for(
        task,
        issue,
        board_status.status_name if board_status else None,
        config,
    )
    if remote_status is None or remote_status == task.status:
        return StatusCheck(StatusState.STATUS_SYNCED, issue, remote_status)
    return StatusCheck(StatusState.STATUS_DIVERGED, issue, remote_status)

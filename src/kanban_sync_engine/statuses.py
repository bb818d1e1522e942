"""Local task status taxonomy.

Pure lookup and validation helpers over the configured status set: which
statuses are allowed, which of them mark a task as complete, and the
``completed``-date invariant (non-null iff the status is a completion status).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .config_schema import (
    DEFAULT_ALLOWED_STATUSES,
    DEFAULT_COMPLETION_STATUSES,
    SyncConfig,
)
from .errors import ConfigurationError

if TYPE_CHECKING:
    from .board.models import Task


def normalize_status(value: str | None) -> str:
    """Trim and lowercase *value*; ``None`` and blanks become ``""``."""
    return (value or "").strip().lower()


def _normalize_status_list(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    for value in values:
        normalized = normalize_status(value)
        if not normalized or normalized in out:
            continue
        out.append(normalized)
    return out


def allowed_statuses(config: SyncConfig) -> list[str]:
    """Return the normalized allowed statuses, falling back to defaults."""
    if config.allowed_statuses is None:
        return list(DEFAULT_ALLOWED_STATUSES)
    return _normalize_status_list(config.allowed_statuses)


def completion_statuses(config: SyncConfig) -> list[str]:
    """Return the normalized completion statuses, falling back to defaults."""
    if config.completion_statuses is None:
        return list(DEFAULT_COMPLETION_STATUSES)
    return _normalize_status_list(config.completion_statuses)


def first_completion_status(config: SyncConfig) -> str | None:
    """The status a closed issue maps to when no better signal exists."""
    completion = completion_statuses(config)
    return completion[0] if completion else None


def is_completion_status(status: str, config: SyncConfig) -> bool:
    return normalize_status(status) in completion_statuses(config)


def normalize_status_map(status_map: dict[str, str]) -> dict[str, str]:
    """Return *status_map* with normalized keys (blank keys dropped)."""
    normalized: dict[str, str] = {}
    for local_status, remote_status in status_map.items():
        key = normalize_status(local_status)
        if not key:
            continue
        normalized[key] = remote_status
    return normalized


def validate_status_config(config: SyncConfig) -> None:
    """Check the status invariants of *config*.

    Every violation is collected so the user can fix them in one pass.

    Raises:
        ConfigurationError: Naming every offending status.
    """
    allowed = allowed_statuses(config)
    completion = completion_statuses(config)
    status_map = normalize_status_map(config.status_map)
    allowed_set = set(allowed)

    errors: list[str] = []
    if not allowed:
        errors.append("allowedStatuses must include at least one status.")

    missing = [status for status in allowed if status not in status_map]
    if missing:
        errors.append(
            f"statusMap is missing allowed statuses: {', '.join(missing)}"
        )

    invalid_completion = [
        status for status in completion if status not in allowed_set
    ]
    if invalid_completion:
        errors.append(
            "completionStatuses must be a subset of allowedStatuses. "
            f"Invalid values: {', '.join(invalid_completion)}"
        )

    default_status = normalize_status(
        config.bootstrap.default_status_for_imported_issues
    )
    if default_status and default_status not in allowed_set:
        errors.append(
            "bootstrap.defaultStatusForImportedIssues is not in "
            f"allowedStatuses: {default_status}"
        )

    if errors:
        raise ConfigurationError(
            "Invalid status configuration:\n- " + "\n- ".join(errors)
        )


def validate_task_statuses(tasks: Iterable[Task], config: SyncConfig) -> None:
    """Fail if any task carries a status outside the allowed set.

    Raises:
        ConfigurationError: Listing each invalid value once.
    """
    allowed = allowed_statuses(config)
    invalid: list[str] = []
    for task in tasks:
        status = normalize_status(task.status)
        if status not in allowed and status not in invalid:
            invalid.append(status)

    if invalid:
        raise ConfigurationError(
            f"TASKS.md contains invalid statuses: {', '.join(invalid)}. "
            f"allowedStatuses: {', '.join(allowed)}",
            "Change the task statuses or add them to allowedStatuses "
            "and statusMap.",
        )


def normalize_completion(
    task: Task, config: SyncConfig, fallback_date: str
) -> None:
    """Enforce the completed-date invariant on *task* in place."""
    if is_completion_status(task.status, config):
        task.completed = task.completed or fallback_date
        return
    task.completed = None

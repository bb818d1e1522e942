"""Error taxonomy and user-facing error formatting.

Every error carries a ``kind`` (short category used in output) and a
``corrective_action`` naming the command the user should run next, so that
the CLI can print actionable messages without knowing the error details.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .sync.models import SyncReport

CLI_NAME = "kanban-sync-engine"


class SyncError(Exception):
    """Base class for all errors raised by the sync engine."""

    kind = "sync_error"
    default_action = "Check the configuration and retry."

    def __init__(
        self, message: str, corrective_action: str | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.corrective_action = corrective_action or self.default_action


class ConfigurationError(SyncError):
    """Invalid or missing configuration. Raised before any I/O."""

    kind = "configuration_error"
    default_action = "Fix the config file and run the command again."


class NotFoundError(SyncError):
    """A task, file, or remote issue could not be found."""

    kind = "not_found"
    default_action = f"Run '{CLI_NAME} status' to list linked tasks."


class UnlinkedError(SyncError):
    """Operation requires a task linked to a remote issue."""

    kind = "unlinked"
    default_action = f"Run '{CLI_NAME} push' to create and link the issue."


class NoBaselineError(SyncError):
    """A linked task has never been pulled, so remote changes are unknown."""

    kind = "no_baseline"
    default_action = f"Run '{CLI_NAME} pull' before push."


class ContentConflictError(SyncError):
    """Both the remote body and the local detail changed since the baseline."""

    kind = "content_conflict"

    def __init__(
        self,
        message: str,
        task_id: str,
        artifact_path: Path | None = None,
    ) -> None:
        super().__init__(
            message,
            f"Review the reconcile file, then run "
            f"'{CLI_NAME} reconcile {task_id} --accept local|remote'.",
        )
        self.task_id = task_id
        self.artifact_path = artifact_path


class StaleError(SyncError):
    """The remote changed but the local detail did not."""

    kind = "stale"
    default_action = f"Run '{CLI_NAME} pull' before push."


class ConfirmationRequiredError(SyncError):
    """Bootstrap policy requires an explicit --confirm flag."""

    kind = "confirmation_required"
    default_action = "Re-run with --confirm (or --dry-run to preview)."


class RemoteError(SyncError):
    """The issue tracker rejected a request or returned an error."""

    kind = "remote_error"
    default_action = (
        "Check GITHUB_TOKEN, repository access, and network connectivity."
    )


class AggregateError(SyncError):
    """Push finished but some tasks were skipped.

    Tasks without errors were written; ``errors`` holds one exception per
    skipped task and ``report`` the full run report.
    """

    kind = "push_incomplete"

    def __init__(
        self,
        errors: list[SyncError],
        hint: str,
        report: SyncReport | None = None,
    ) -> None:
        lines = [str(err) for err in errors]
        super().__init__("\n".join(lines), hint)
        self.errors = errors
        self.hint = hint
        self.report = report


def format_error(error: SyncError) -> str:
    """Render an error as ``Error (kind): message`` plus its action line."""
    return (
        f"Error ({error.kind}): {error.message}\n\n"
        f"Action: {error.corrective_action}"
    )


def error_to_json(error: SyncError) -> dict[str, Any]:
    """Structured representation of *error* for ``--json`` output."""
    data: dict[str, Any] = {
        "error": error.kind,
        "message": error.message,
        "action": error.corrective_action,
    }
    if isinstance(error, AggregateError):
        data["failures"] = [
            {"error": err.kind, "message": err.message}
            for err in error.errors
        ]
    return data

"""Reconciliation engine between TASKS.md and a remote issue tracker.

Architecture
------------
Each linked task keeps a **baseline**: the remote body and local detail as
they were at the last pull (or conflict-free push).  On every run both
sides are compared only with their own baseline hash, which yields the
content classification (clean / local-ahead / remote-ahead / conflict).
Status takes a separate, remote-authoritative path and is never
conflict-checked.

Modules:

- ``engine``     -- ``SyncEngine``: status, pull, push, reconcile.
- ``bootstrap``  -- ``BootstrapImporter``: one-time seeding either way.
- ``state``      -- ``BaselineStore``: load/save the JSON sidecar.
- ``status``     -- status pass.
- ``content``    -- content pass.
- ``conflicts``  -- ``ConflictArtifactManager``: reconcile files.
- ``mapper``     -- task <-> issue field mapping.
- ``merger``     -- three-way merge preview via ``merge3``.
- ``models``     -- enums, baseline entry and report models.
- ``reporter``   -- text and JSON reports.
"""

from .bootstrap import BootstrapImporter
from .conflicts import ConflictArtifactManager
from .engine import SyncEngine
from .models import (
    BaselineEntry,
    ContentState,
    StatusReport,
    StatusState,
    SyncAction,
    SyncReport,
    TaskResult,
)
from .reporter import (
    format_dry_run_preview,
    format_status_report,
    format_sync_report,
    report_to_json,
)
from .state import BaselineStore

__all__ = [
    "BaselineEntry",
    "BaselineStore",
    "BootstrapImporter",
    "ConflictArtifactManager",
    "ContentState",
    "StatusReport",
    "StatusState",
    "SyncAction",
    "SyncEngine",
    "SyncReport",
    "TaskResult",
    "format_dry_run_preview",
    "format_status_report",
    "format_sync_report",
    "report_to_json",
]

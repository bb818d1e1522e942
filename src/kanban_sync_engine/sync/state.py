"""Baseline persistence layer.

Manages the JSON sidecar ``<tasks dir>/.kanban-sync-engine/state.json`` that
holds one ``BaselineEntry`` per linked task, keyed by external id.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Raw content hashing** -- ``content_hash()`` is SHA-256 over the UTF-8
  bytes with no normalisation; hashes are only compared for equality.
* **Degraded, not fatal** -- a missing, unreadable or corrupt sidecar loads
  as an empty map, i.e. every linked task is treated as never pulled.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from ..board.models import Task
from ..file_handler import write_file
from ..remote.models import RemoteIssue
from .mapper import format_external_id, utc_now_iso
from .models import BaselineEntry

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".kanban-sync-engine"
STATE_FILE_NAME = "state.json"
STATE_VERSION = 1


class BaselineStore:
    """Load and save baselines for one tasks file.

    Args:
        state_dir: The ``.kanban-sync-engine`` directory next to the tasks
            file.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @classmethod
    def for_tasks_file(cls, tasks_file: Path) -> BaselineStore:
        return cls(Path(tasks_file).parent / STATE_DIR_NAME)

    @property
    def path(self) -> Path:
        return self._state_dir / STATE_FILE_NAME

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict[str, BaselineEntry]:
        """Load baselines from disk.

        Returns:
            Mapping of external id to entry.  Empty when the sidecar is
            absent or cannot be parsed; malformed entries are dropped.
        """
        path = self.path
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(
                "Ignoring unreadable baseline file %s: %s", path, exc
            )
            return {}

        raw_entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(raw_entries, dict):
            logger.warning("Ignoring baseline file %s without entries", path)
            return {}

        entries: dict[str, BaselineEntry] = {}
        for key, raw in raw_entries.items():
            try:
                entries[key] = BaselineEntry.model_validate(raw)
            except ValidationError:
                logger.warning("Dropping malformed baseline entry %s", key)
        return entries

    def save(self, entries: dict[str, BaselineEntry]) -> None:
        """Persist *entries* atomically, stamping ``generated_at``."""
        state = {
            "version": STATE_VERSION,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "entries": {
                key: entries[key].model_dump() for key in sorted(entries)
            },
        }
        write_file(self.path, json.dumps(state, indent=2) + "\n")
        logger.debug("Saved %d baselines to %s", len(entries), self.path)

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    @staticmethod
    def content_hash(content: str) -> str:
        """SHA-256 hex digest of the UTF-8 bytes of *content*."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @classmethod
    def make_entry(
        cls, task: Task, issue: RemoteIssue, detail: str
    ) -> BaselineEntry:
        """Build a fresh baseline from the current task, issue and detail."""
        body = issue.body or ""
        return BaselineEntry(
            task_id=task.id,
            external_id=task.external_id or format_external_id(issue.number),
            issue_number=issue.number,
            remote_updated_at=issue.updated_at,
            remote_body_hash=cls.content_hash(body),
            remote_body_at_pull=body,
            local_detail_hash_at_pull=cls.content_hash(detail),
            local_detail_at_pull=detail,
            pulled_at=utc_now_iso(),
        )

"""File-backed store for the task board and per-task detail documents."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import NotFoundError
from ..file_handler import read_text, write_file
from .models import Task, TaskBoard
from .tasks_file import parse_tasks, serialize_tasks

logger = logging.getLogger(__name__)

STUB_DETAIL_TEMPLATE = "# {id}\n\n  - steps:\n      - [ ] Define scope\n"


class TaskStore:
    """Reads and writes TASKS.md and the detail files it references.

    Detail paths in the board are relative to the directory holding the
    tasks file.

    Args:
        tasks_file: Path to TASKS.md.
    """

    def __init__(self, tasks_file: Path) -> None:
        self.tasks_file = Path(tasks_file)
        self.root = self.tasks_file.parent

    def load_board(self) -> TaskBoard:
        """Parse the tasks file.

        Raises:
            NotFoundError: If the tasks file does not exist.
        """
        if not self.tasks_file.is_file():
            raise NotFoundError(
                f"Tasks file not found: {self.tasks_file}",
                "Create the file or pass --tasks-file PATH.",
            )
        return parse_tasks(read_text(self.tasks_file))

    def save_board(self, board: TaskBoard) -> None:
        write_file(self.tasks_file, serialize_tasks(board))
        logger.debug("Saved %d tasks to %s", len(board.tasks), self.tasks_file)

    def detail_path(self, task: Task) -> Path | None:
        if not task.detail:
            return None
        return (self.root / task.detail).resolve()

    def read_detail(self, task: Task) -> str:
        """Return the detail text, or ``""`` when there is none on disk."""
        path = self.detail_path(task)
        if path is None or not path.is_file():
            return ""
        return read_text(path)

    def write_detail(self, task: Task, text: str) -> Path:
        path = self.detail_path(task)
        if path is None:
            path = self.root / "tasks" / f"{task.id}.md"
            task.detail = f"./tasks/{task.id}.md"
        write_file(path, text)
        return path

    def ensure_detail_file(self, task: Task) -> bool:
        """Create a stub detail document for *task* if it has none.

        Returns:
            True if a file was created.
        """
        path = self.detail_path(task)
        if path is None or path.exists():
            return False
        write_file(path, STUB_DETAIL_TEMPLATE.format(id=task.id))
        logger.info("Created detail file %s", path)
        return True

"""Local task board: TASKS.md models, parser/serializer and file store."""

from .models import Task, TaskBoard, next_task_id
from .store import TaskStore
from .tasks_file import parse_tasks, serialize_tasks

__all__ = [
    "Task",
    "TaskBoard",
    "TaskStore",
    "next_task_id",
    "parse_tasks",
    "serialize_tasks",
]

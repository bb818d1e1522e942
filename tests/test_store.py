"""Tests for TaskStore and the file_handler helpers it relies on."""

from __future__ import annotations

from pathlib import Path

import pytest

from kanban_sync_engine.board.models import Task, TaskBoard
from kanban_sync_engine.board.store import STUB_DETAIL_TEMPLATE, TaskStore
from kanban_sync_engine.errors import NotFoundError
from kanban_sync_engine.file_handler import read_file_with_encoding, write_file


class TestTaskStore:
    def test_missing_tasks_file(self, tmp_path: Path):
        store = TaskStore(tmp_path / "TASKS.md")
        with pytest.raises(NotFoundError):
            store.load_board()

    def test_save_then_load(self, tmp_path: Path):
        store = TaskStore(tmp_path / "TASKS.md")
        store.save_board(TaskBoard(tasks=[Task(id="T-001", title="A")]))

        board = store.load_board()

        assert [t.id for t in board.tasks] == ["T-001"]

    def test_detail_path_relative_to_tasks_file(self, tmp_path: Path):
        store = TaskStore(tmp_path / "TASKS.md")
        task = Task(id="T-001", title="A", detail="./tasks/T-001.md")

        assert store.detail_path(task) == (tmp_path / "tasks" / "T-001.md").resolve()
        assert store.detail_path(Task(id="T-002", title="B")) is None

    def test_read_missing_detail_is_empty(self, tmp_path: Path):
        store = TaskStore(tmp_path / "TASKS.md")
        task = Task(id="T-001", title="A", detail="./tasks/T-001.md")

        assert store.read_detail(task) == ""

    def test_write_detail_assigns_default_path(self, tmp_path: Path):
        store = TaskStore(tmp_path / "TASKS.md")
        task = Task(id="T-001", title="A")

        path = store.write_detail(task, "hello\n")

        assert task.detail == "./tasks/T-001.md"
        assert path.read_text(encoding="utf-8") == "hello\n"

    def test_ensure_detail_file_never_overwrites(self, tmp_path: Path):
        store = TaskStore(tmp_path / "TASKS.md")
        task = Task(id="T-001", title="A", detail="./tasks/T-001.md")

        assert store.ensure_detail_file(task) is True
        assert store.read_detail(task) == STUB_DETAIL_TEMPLATE.format(id="T-001")

        store.write_detail(task, "mine\n")
        assert store.ensure_detail_file(task) is False
        assert store.read_detail(task) == "mine\n"


class TestFileHandler:
    def test_write_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "file.md"

        written = write_file(target, "héllo")

        assert written == len("héllo".encode("utf-8"))
        assert target.read_text(encoding="utf-8") == "héllo"
        assert [p.name for p in target.parent.iterdir()] == ["file.md"]

    def test_read_utf8(self, tmp_path: Path):
        target = tmp_path / "file.md"
        target.write_bytes("naïve café".encode("utf-8"))

        assert read_file_with_encoding(target) == ("naïve café", "utf-8")

    def test_read_empty(self, tmp_path: Path):
        target = tmp_path / "file.md"
        target.write_bytes(b"")

        assert read_file_with_encoding(target) == ("", "utf-8")

    def test_read_non_utf8_does_not_raise(self, tmp_path: Path):
        target = tmp_path / "file.md"
        target.write_bytes(
            "Tâches à faire pour la première itération du projet.\n".encode("latin-1")
            * 5
        )

        content, encoding = read_file_with_encoding(target)

        assert isinstance(content, str)
        assert content
        assert encoding

"""Tests for extracted-task document persistence."""

import asyncio
import json
import os
from datetime import datetime, timezone

import pytest

from devtodo.extraction.store import ExtractedTaskStore
from devtodo.models.extracted import (
    DismissedState,
    ExtractedTask,
    ExtractedTaskDocument,
    ImportedState,
    TaskCategory,
)


def _task(task_id, title="Add dark mode toggle"):
    return ExtractedTask(
        id=task_id,
        title=title,
        category=TaskCategory.FEATURE,
        original_message="can you add a dark mode toggle",
        project="home/dev/app",
        session_id="s1",
        related_sessions=["s1"],
    )


def _document():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    return ExtractedTaskDocument(
        tasks=[_task("claude-aaaaaaaaaaaa")],
        task_state={
            "claude-bbbbbbbbbbbb": DismissedState(dismissed_at=now),
            "claude-cccccccccccc": ImportedState(imported_at=now, linked_task_id="task-1"),
        },
        last_updated=now,
    )


class TestDocumentModel:
    """Test the extracted-task document model."""

    def test_empty_document(self):
        document = ExtractedTaskDocument()
        assert document.tasks == []
        assert document.task_state == {}
        assert document.last_updated is None

    def test_state_is_discriminated_by_status(self):
        document = ExtractedTaskDocument.model_validate(
            {
                "tasks": [],
                "taskState": {
                    "a": {"status": "dismissed", "dismissedAt": "2026-01-01T12:00:00Z"},
                    "b": {"status": "imported", "importedAt": "2026-01-01T12:00:00Z", "linkedTaskId": "t"},
                },
            }
        )

        assert isinstance(document.task_state["a"], DismissedState)
        assert isinstance(document.task_state["b"], ImportedState)
        assert document.is_dismissed("a")
        assert not document.is_dismissed("b")
        assert not document.is_dismissed("missing")


class TestExtractedTaskStore:
    """Test ExtractedTaskStore functionality."""

    def test_load_missing_file(self, temp_dir):
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")
        assert store.load() == ExtractedTaskDocument()

    def test_save_and_load(self, temp_dir):
        """Test saving and loading the document."""
        store = ExtractedTaskStore(temp_dir / "data" / "extracted-tasks.json")
        document = _document()

        store.save(document)

        assert store.load() == document

    def test_file_uses_camel_case_keys(self, temp_dir):
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")
        store.save(_document())

        with open(store.path) as f:
            data = json.load(f)

        assert set(data) == {"tasks", "taskState", "lastUpdated"}
        assert data["tasks"][0]["originalMessage"] == "can you add a dark mode toggle"
        assert data["tasks"][0]["similarCount"] == 1
        assert data["taskState"]["claude-bbbbbbbbbbbb"]["status"] == "dismissed"

    def test_load_corrupted_file(self, temp_dir):
        """Test loading corrupted file returns an empty document."""
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")
        store.path.write_text("{ invalid json }")

        assert store.load() == ExtractedTaskDocument()

    def test_reader_sees_old_document_until_replace(self, temp_dir, monkeypatch):
        """Test a read during a save sees the complete previous document."""
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")
        old = _document()
        store.save(old)

        new = ExtractedTaskDocument(tasks=[_task("claude-dddddddddddd", "Fix login crash")])
        seen = []
        real_replace = os.replace

        def observing_replace(src, dst):
            seen.append(store.load())
            real_replace(src, dst)

        monkeypatch.setattr(os, "replace", observing_replace)
        store.save(new)

        assert seen == [old]
        assert store.load() == new

    def test_failed_save_leaves_old_file(self, temp_dir, monkeypatch):
        """Test a failed write leaves the old file and no temp files behind."""
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")
        old = _document()
        store.save(old)

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(OSError):
            store.save(ExtractedTaskDocument())

        assert store.load() == old
        assert list(temp_dir.glob(".extracted_*")) == []

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_serialized(self, temp_dir):
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")
        now = datetime.now(timezone.utc)

        def dismiss(task_id):
            def apply(document):
                document.task_state[task_id] = DismissedState(dismissed_at=now)

            return apply

        await asyncio.gather(*(store.update(dismiss(f"claude-{i:012d}")) for i in range(10)))

        document = await store.read()
        assert len(document.task_state) == 10

    @pytest.mark.asyncio
    async def test_update_returns_mutation_result(self, temp_dir):
        store = ExtractedTaskStore(temp_dir / "extracted-tasks.json")

        result = await store.update(lambda document: len(document.tasks))

        assert result == 0
        assert store.path.exists()

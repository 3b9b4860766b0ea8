"""Tests for the extracted task state tracker."""

from unittest.mock import MagicMock

import pytest

from devtodo.errors import InvalidRequestError
from devtodo.extraction.state import TaskStateTracker
from devtodo.models.extracted import (
    DismissedState,
    ExtractedTask,
    ExtractedTaskDocument,
    ImportedState,
)


def _seed(store, *task_ids):
    store.save(
        ExtractedTaskDocument(
            tasks=[
                ExtractedTask(
                    id=task_id,
                    title=f"Task {task_id}",
                    original_message="message",
                    project="home/dev/app",
                    session_id="s1",
                )
                for task_id in task_ids
            ]
        )
    )


@pytest.mark.asyncio
async def test_dismiss_removes_task_in_same_write(extracted_store):
    _seed(extracted_store, "claude-aaaaaaaaaaaa", "claude-bbbbbbbbbbbb")
    tracker = TaskStateTracker(extracted_store)

    state = await tracker.dismiss("claude-aaaaaaaaaaaa")

    document = extracted_store.load()
    assert isinstance(state, DismissedState)
    assert [t.id for t in document.tasks] == ["claude-bbbbbbbbbbbb"]
    assert document.is_dismissed("claude-aaaaaaaaaaaa")


@pytest.mark.asyncio
async def test_dismiss_unknown_task_is_recorded(extracted_store):
    """Test dismissing a task not in the current list still records state."""
    tracker = TaskStateTracker(extracted_store)

    await tracker.dismiss("claude-cccccccccccc")

    assert extracted_store.load().is_dismissed("claude-cccccccccccc")


@pytest.mark.asyncio
async def test_restore_clears_state_and_requests_extraction(extracted_store):
    request = MagicMock()
    tracker = TaskStateTracker(extracted_store, request_extraction=request)
    await tracker.dismiss("claude-aaaaaaaaaaaa")

    assert await tracker.restore("claude-aaaaaaaaaaaa") is True

    assert await tracker.get_state("claude-aaaaaaaaaaaa") is None
    request.assert_called_once_with()


@pytest.mark.asyncio
async def test_restore_without_state(extracted_store):
    request = MagicMock()
    tracker = TaskStateTracker(extracted_store, request_extraction=request)

    assert await tracker.restore("claude-aaaaaaaaaaaa") is False
    request.assert_called_once_with()


@pytest.mark.asyncio
async def test_mark_imported(extracted_store):
    _seed(extracted_store, "claude-aaaaaaaaaaaa")
    tracker = TaskStateTracker(extracted_store)

    await tracker.mark_imported("claude-aaaaaaaaaaaa", "task-123")

    state = await tracker.get_state("claude-aaaaaaaaaaaa")
    assert isinstance(state, ImportedState)
    assert state.linked_task_id == "task-123"
    # Imported tasks stay in the list until the next run replaces it
    assert [t.id for t in extracted_store.load().tasks] == ["claude-aaaaaaaaaaaa"]


@pytest.mark.asyncio
async def test_list_dismissed_excludes_imported(extracted_store):
    tracker = TaskStateTracker(extracted_store)
    await tracker.dismiss("claude-aaaaaaaaaaaa")
    await tracker.mark_imported("claude-bbbbbbbbbbbb", "task-1")

    entries = await tracker.list_dismissed()

    assert [e.id for e in entries] == ["claude-aaaaaaaaaaaa"]
    assert entries[0].dismissed_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("task_id", ["", "   ", None, 7])
async def test_invalid_ids_are_rejected(extracted_store, task_id):
    tracker = TaskStateTracker(extracted_store)

    with pytest.raises(InvalidRequestError):
        await tracker.dismiss(task_id)
    with pytest.raises(InvalidRequestError):
        await tracker.restore(task_id)

    assert not extracted_store.path.exists()

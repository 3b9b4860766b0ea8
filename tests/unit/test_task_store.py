"""Tests for the relational task store."""

from datetime import date, datetime, timedelta

import pytest
from pydantic import ValidationError

from devtodo.errors import InvalidRequestError, TaskNotFoundError
from devtodo.models.task import Priority, TaskCreate, TaskSource


def test_create_task_defaults(task_store):
    """Test a new task is pending, medium priority and manual."""
    task = task_store.create_task(TaskCreate(title="  Write release notes  "))

    assert task.id.startswith("task-")
    assert task.title == "Write release notes"
    assert task.completed is False
    assert task.priority == Priority.MEDIUM
    assert task.source == TaskSource.MANUAL
    assert task.created_at is not None
    assert task.completed_at is None
    assert task.auto_completed is False
    assert task.completed_by is None


def test_task_create_rejects_blank_title():
    with pytest.raises(ValidationError):
        TaskCreate(title="   ")


def test_get_task(task_store):
    created = task_store.create_task(TaskCreate(title="Add dark mode"))

    assert task_store.get_task(created.id) == created
    assert task_store.get_task("task-missing") is None


def test_list_tasks_newest_first(task_store, monkeypatch):
    base = datetime(2026, 1, 1, 12, 0, 0)
    times = iter([base, base + timedelta(minutes=1), base + timedelta(minutes=2)])
    monkeypatch.setattr("devtodo.storage.task_store.utcnow", lambda: next(times))

    first = task_store.create_task(TaskCreate(title="First"))
    second = task_store.create_task(TaskCreate(title="Second"))
    third = task_store.create_task(TaskCreate(title="Third"))

    assert [t.id for t in task_store.list_tasks()] == [third.id, second.id, first.id]


def test_list_tasks_filters(task_store):
    manual = task_store.create_task(TaskCreate(title="Manual task"))
    docker = task_store.create_task(TaskCreate(title="Restart db container", source=TaskSource.DOCKER))
    task_store.update_task(manual.id, {"completed": True})

    assert [t.id for t in task_store.list_tasks(source=TaskSource.DOCKER)] == [docker.id]
    assert [t.id for t in task_store.list_tasks(completed=True)] == [manual.id]
    assert [t.id for t in task_store.find_pending_tasks()] == [docker.id]


def test_update_task_accepts_camel_case_and_ignores_unknown(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    updated = task_store.update_task(
        task.id,
        {"notes": "from standup", "priority": "high", "dockerContainerId": "abc", "bogus": 1},
    )

    assert updated.notes == "from standup"
    assert updated.priority == Priority.HIGH
    # External references are fixed at creation
    assert updated.docker_container_id is None


def test_update_task_completion_sets_and_clears_completed_at(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    completed = task_store.update_task(task.id, {"completed": True})
    assert completed.completed is True
    assert completed.completed_at is not None

    reopened = task_store.update_task(task.id, {"completed": False})
    assert reopened.completed is False
    assert reopened.completed_at is None


def test_update_task_keeps_completed_at_when_already_completed(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))
    first = task_store.update_task(task.id, {"completed": True})

    again = task_store.update_task(task.id, {"completed": True})

    assert again.completed_at == first.completed_at


def test_update_task_ignores_commit_provenance(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    updated = task_store.update_task(
        task.id,
        {
            "completed": True,
            "autoCompleted": True,
            "completedBy": "git",
            "gitCommitHash": "abc1234",
            "git_commit_message": "Add dark mode",
            "completedAt": "2020-01-01T00:00:00",
        },
    )

    assert updated.completed is True
    assert updated.auto_completed is False
    assert updated.completed_by is None
    assert updated.git_commit_hash is None
    assert updated.git_commit_message is None
    assert updated.completed_at.year != 2020


def test_update_task_parses_due_date(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    updated = task_store.update_task(task.id, {"dueDate": "2026-03-01"})
    assert updated.due_date == date(2026, 3, 1)

    cleared = task_store.update_task(task.id, {"dueDate": None})
    assert cleared.due_date is None


def test_update_missing_task(task_store):
    with pytest.raises(TaskNotFoundError):
        task_store.update_task("task-missing", {"title": "x"})


@pytest.mark.parametrize(
    "fields",
    [{"title": "  "}, {"title": 42}, {"priority": "urgent"}, {"dueDate": "next week"}, {"due_date": "2026-13-01"}],
)
def test_update_task_rejects_invalid_values(task_store, fields):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    with pytest.raises(InvalidRequestError):
        task_store.update_task(task.id, fields)

    assert task_store.get_task(task.id) == task


def test_complete_if_pending_is_compare_and_set(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    assert task_store.complete_if_pending(task.id, {"completed_by": "git"}) is True
    assert task_store.complete_if_pending(task.id, {"completed_by": "other"}) is False

    stored = task_store.get_task(task.id)
    assert stored.completed is True
    assert stored.completed_by == "git"
    assert stored.completed_at is not None


def test_complete_if_pending_missing_task(task_store):
    assert task_store.complete_if_pending("task-missing", {}) is False


def test_delete_task(task_store):
    task = task_store.create_task(TaskCreate(title="Add dark mode"))

    assert task_store.delete_task(task.id) is True
    assert task_store.delete_task(task.id) is False
    assert task_store.get_task(task.id) is None


def test_upsert_repo_creates_then_advances(task_store):
    first = task_store.upsert_repo("devtodo")
    second = task_store.upsert_repo("devtodo")

    assert second.id == first.id
    assert second.first_seen_at == first.first_seen_at
    assert second.last_commit_at >= first.last_commit_at
    assert [r.name for r in task_store.list_repos()] == ["devtodo"]


def test_upsert_repo_never_moves_backwards(task_store, monkeypatch):
    later = datetime(2026, 6, 1, 12, 0, 0)
    monkeypatch.setattr("devtodo.storage.task_store.utcnow", lambda: later)
    task_store.upsert_repo("devtodo")

    monkeypatch.setattr("devtodo.storage.task_store.utcnow", lambda: later - timedelta(hours=1))
    repo = task_store.upsert_repo("devtodo")

    assert repo.last_commit_at == later


def test_delete_repo(task_store):
    task_store.upsert_repo("devtodo")

    assert task_store.delete_repo("devtodo") is True
    assert task_store.list_repos() == []

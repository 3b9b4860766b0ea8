"""Relational storage for tasks and tracked repositories."""

from devtodo.storage.database import Base, GitRepoRow, TaskRow, create_db_engine
from devtodo.storage.task_store import TaskStore, utcnow

__all__ = [
    "Base",
    "TaskRow",
    "GitRepoRow",
    "create_db_engine",
    "TaskStore",
    "utcnow",
]

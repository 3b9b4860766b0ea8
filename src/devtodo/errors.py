"""Exceptions raised by the DevTodo core."""

from typing import List, Optional


class DevTodoError(Exception):
    """Base exception for DevTodo errors"""
    pass


class InvalidRequestError(DevTodoError):
    """Raised when caller input is malformed. Nothing has been mutated."""
    pass


class TaskNotFoundError(DevTodoError):
    """Raised when a task id does not exist in the store"""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class RepoNotFoundError(DevTodoError):
    """Raised when a repository name is not tracked"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Repository not found: {name}")


class StorageError(DevTodoError):
    """Raised when the task store cannot complete an operation"""
    pass


class CommitProcessingError(DevTodoError):
    """Raised after a commit was applied to every match but some stamps failed.

    Attributes:
        completed_ids: Tasks that were stamped successfully
        failed_ids: Tasks whose stamp raised a storage error
    """

    def __init__(
        self,
        completed_ids: List[str],
        failed_ids: List[str],
        cause: Optional[Exception] = None,
    ):
        self.completed_ids = completed_ids
        self.failed_ids = failed_ids
        self.cause = cause
        super().__init__(
            f"Failed to complete {len(failed_ids)} of "
            f"{len(failed_ids) + len(completed_ids)} matching tasks: {', '.join(failed_ids)}"
        )


class TranscriptStoreUnavailableError(DevTodoError):
    """Raised when the Claude transcript directory cannot be read at all"""
    pass

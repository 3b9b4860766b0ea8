"""Dismissed/imported lifecycle for extracted tasks."""

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union

import structlog

from devtodo.errors import InvalidRequestError
from devtodo.extraction.store import ExtractedTaskStore
from devtodo.models.extracted import (
    DismissedEntry,
    DismissedState,
    ExtractedTaskDocument,
    ImportedState,
)

logger = structlog.get_logger(__name__)


def _validate_id(task_id: Any) -> str:
    if not isinstance(task_id, str) or not task_id.strip():
        raise InvalidRequestError("task id must be a non-empty string")
    return task_id


class TaskStateTracker:
    """Keyed state map that survives extraction runs.

    Because extracted task ids are derived from message content, a state
    entry keeps applying to the same message on every later run.
    """

    def __init__(
        self,
        store: ExtractedTaskStore,
        request_extraction: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Document store holding tasks and state
            request_extraction: Called after a restore to start a new
                extraction run without waiting for it
        """
        self.store = store
        self.request_extraction = request_extraction

    async def dismiss(self, task_id: str) -> DismissedState:
        """Dismiss a task and drop it from the current list in the same write.

        Args:
            task_id: Extracted task id

        Returns:
            The stored state
        """
        _validate_id(task_id)
        state = DismissedState(dismissed_at=datetime.now(timezone.utc))

        def apply(document: ExtractedTaskDocument) -> None:
            document.task_state[task_id] = state
            document.tasks = [t for t in document.tasks if t.id != task_id]

        await self.store.update(apply)
        logger.info("extracted_task_dismissed", task_id=task_id)
        return state

    async def restore(self, task_id: str) -> bool:
        """Forget any state for a task and ask for a new extraction run.

        The task only comes back if its message is still among the most
        recent candidates on that run.

        Args:
            task_id: Extracted task id

        Returns:
            True if a state entry was removed
        """
        _validate_id(task_id)

        def apply(document: ExtractedTaskDocument) -> bool:
            return document.task_state.pop(task_id, None) is not None

        removed = await self.store.update(apply)
        logger.info("extracted_task_restored", task_id=task_id, had_state=removed)

        if self.request_extraction is not None:
            self.request_extraction()
        return removed

    async def mark_imported(self, task_id: str, linked_task_id: Optional[str]) -> ImportedState:
        """Record that an extracted task became a real task.

        Args:
            task_id: Extracted task id
            linked_task_id: Id of the task created from it

        Returns:
            The stored state
        """
        _validate_id(task_id)
        state = ImportedState(
            imported_at=datetime.now(timezone.utc),
            linked_task_id=linked_task_id,
        )

        def apply(document: ExtractedTaskDocument) -> None:
            document.task_state[task_id] = state

        await self.store.update(apply)
        logger.info("extracted_task_imported", task_id=task_id, linked_task_id=linked_task_id)
        return state

    async def get_state(self, task_id: str) -> Optional[Union[DismissedState, ImportedState]]:
        document = await self.store.read()
        return document.task_state.get(task_id)

    async def list_dismissed(self) -> List[DismissedEntry]:
        """All dismissed tasks with their dismissal time."""
        document = await self.store.read()
        return [
            DismissedEntry(id=task_id, dismissed_at=state.dismissed_at)
            for task_id, state in document.task_state.items()
            if isinstance(state, DismissedState)
        ]

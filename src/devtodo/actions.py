"""Process-scoped buffers for container actions and watcher output."""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from devtodo.errors import InvalidRequestError

CONTAINER_ACTIONS = ("start", "stop", "restart", "pause", "unpause")


class ContainerAction(BaseModel):
    container_id: str
    action: str
    timestamp: datetime


class ContainerActionLog:
    """Latest action performed on each container.

    Owned by the service that performs container actions; created at
    startup and discarded with it.
    """

    def __init__(self) -> None:
        self._actions: Dict[str, ContainerAction] = {}

    def record(self, container_id: str, action: str) -> ContainerAction:
        """Remember an action, replacing any earlier one for the container.

        Raises:
            InvalidRequestError: If the action is not a known container action
        """
        if action not in CONTAINER_ACTIONS:
            raise InvalidRequestError(f"Invalid action: {action}")
        entry = ContainerAction(
            container_id=container_id,
            action=action,
            timestamp=datetime.now(timezone.utc),
        )
        self._actions[container_id] = entry
        return entry

    def get(self, container_id: str) -> Optional[ContainerAction]:
        return self._actions.get(container_id)

    def list(self) -> List[ContainerAction]:
        return list(self._actions.values())


class PendingActionsBuffer:
    """Actions collected between two reads; reading empties the buffer."""

    def __init__(self) -> None:
        self._pending: List[dict] = []

    def extend(self, actions: Iterable[dict]) -> None:
        self._pending.extend(actions)

    def peek(self) -> List[dict]:
        return list(self._pending)

    def drain(self) -> List[dict]:
        """Return everything collected so far and start over."""
        actions, self._pending = self._pending, []
        return actions

    def __len__(self) -> int:
        return len(self._pending)

"""Relational task store: task CRUD and git repository tracking."""

import secrets
import time
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import structlog
from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_snake
from sqlalchemy import Engine, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from devtodo.errors import InvalidRequestError, StorageError, TaskNotFoundError
from devtodo.models.task import GitRepo, Priority, Task, TaskCreate, TaskSource
from devtodo.storage.database import GitRepoRow, TaskRow, create_db_engine

logger = structlog.get_logger(__name__)

# Fields a caller's partial update may touch. Source and external references
# are fixed at creation; completion provenance is written only through
# complete_if_pending.
UPDATABLE_FIELDS = frozenset({"title", "completed", "priority", "due_date", "notes"})

PROVENANCE_FIELDS = frozenset(
    {
        "completed_at",
        "auto_completed",
        "completed_by",
        "git_commit_hash",
        "git_commit_repo",
        "git_commit_branch",
        "git_commit_message",
    }
)

_due_date_adapter = TypeAdapter(Optional[date])


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form SQLite round-trips)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _generate_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class TaskStore:
    """Keyed task records with filtering, partial updates and repo tracking.

    Every public method runs in its own transaction. SQLAlchemy failures are
    re-raised as StorageError.
    """

    def __init__(
        self,
        database_url: str = "sqlite:///./data/devtodo.db",
        engine: Optional[Engine] = None,
    ) -> None:
        """Initialize the task store.

        Args:
            database_url: SQLAlchemy URL, used when no engine is given
            engine: Optional pre-configured engine
        """
        self.engine = engine or create_db_engine(database_url)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("task_store_error", error=str(e))
            raise StorageError(f"Task store operation failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ============================================================================
    # Tasks
    # ============================================================================

    def create_task(self, data: TaskCreate) -> Task:
        """Create a task.

        Args:
            data: Validated creation fields

        Returns:
            The stored task
        """
        row = TaskRow(
            id=_generate_id("task"),
            title=data.title,
            completed=False,
            priority=Priority(data.priority).value,
            source=TaskSource(data.source).value,
            created_at=utcnow(),
            due_date=data.due_date,
            notes=data.notes,
            docker_container_id=data.docker_container_id,
            calendar_event_id=data.calendar_event_id,
            email_id=data.email_id,
            auto_completed=False,
        )
        with self._session() as session:
            session.add(row)
            session.flush()
            task = Task.model_validate(row)

        logger.debug("task_created", task_id=task.id, source=task.source.value)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            return Task.model_validate(row) if row else None

    def list_tasks(
        self,
        completed: Optional[bool] = None,
        source: Optional[TaskSource] = None,
    ) -> List[Task]:
        """List tasks, newest first.

        Args:
            completed: Only tasks with this completion state
            source: Only tasks from this source

        Returns:
            Matching tasks
        """
        stmt = select(TaskRow)
        if completed is not None:
            stmt = stmt.where(TaskRow.completed.is_(completed))
        if source is not None:
            stmt = stmt.where(TaskRow.source == TaskSource(source).value)
        stmt = stmt.order_by(TaskRow.created_at.desc())

        with self._session() as session:
            return [Task.model_validate(row) for row in session.scalars(stmt)]

    def find_pending_tasks(self) -> List[Task]:
        """All tasks with completed = false."""
        return self.list_tasks(completed=False)

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Task:
        """Apply a partial update.

        Keys may be snake_case or camelCase. Only title, completed, priority,
        due date and notes are applied; other keys (including commit
        provenance) are ignored, and an update with nothing applicable returns
        the task unchanged. Toggling ``completed`` sets or clears
        ``completed_at``.

        Args:
            task_id: Task to update
            fields: Field values to set

        Returns:
            The updated task

        Raises:
            TaskNotFoundError: If the task does not exist
            InvalidRequestError: If a field value is invalid
        """
        values = self._normalize_fields(fields, UPDATABLE_FIELDS)

        with self._session() as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                raise TaskNotFoundError(task_id)

            if "completed" in values:
                completed = bool(values["completed"])
                values["completed"] = completed
                if completed and not row.completed:
                    values["completed_at"] = utcnow()
                elif not completed and row.completed:
                    values["completed_at"] = None

            for key, value in values.items():
                setattr(row, key, value)

            session.flush()
            return Task.model_validate(row)

    def complete_if_pending(self, task_id: str, fields: Dict[str, Any]) -> bool:
        """Mark a task completed only if it is still pending.

        This is a compare-and-set: two writers completing the same task at
        once cannot both stamp it.

        Args:
            task_id: Task to complete
            fields: Extra fields to set alongside completed = true

        Returns:
            True if this call completed the task, False if it was already
            completed or does not exist
        """
        values = self._normalize_fields(fields, UPDATABLE_FIELDS | PROVENANCE_FIELDS)
        values["completed"] = True
        values.setdefault("completed_at", utcnow())

        stmt = (
            update(TaskRow)
            .where(TaskRow.id == task_id, TaskRow.completed.is_(False))
            .values(**values)
        )
        with self._session() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    def delete_task(self, task_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(TaskRow).where(TaskRow.id == task_id))
            return result.rowcount > 0

    def _normalize_fields(self, fields: Dict[str, Any], allowed: frozenset) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for key, value in fields.items():
            name = key if key in allowed else to_snake(key)
            if name not in allowed:
                continue
            values[name] = value

        if "title" in values:
            title = values["title"]
            if not isinstance(title, str) or not title.strip():
                raise InvalidRequestError("title must be a non-empty string")
            values["title"] = title.strip()
        if "priority" in values:
            try:
                values["priority"] = Priority(values["priority"]).value
            except ValueError as e:
                raise InvalidRequestError(f"Invalid priority: {values['priority']}") from e
        if "due_date" in values:
            try:
                values["due_date"] = _due_date_adapter.validate_python(values["due_date"] or None)
            except ValidationError as e:
                raise InvalidRequestError(f"Invalid due date: {values['due_date']}") from e
        return values

    # ============================================================================
    # Git repositories
    # ============================================================================

    def upsert_repo(self, name: str) -> GitRepo:
        """Record a commit event for a repository.

        Creates the repository on first sight; otherwise advances
        ``last_commit_at``, which never moves backwards.

        Args:
            name: Repository name

        Returns:
            The repository record
        """
        now = utcnow()
        with self._session() as session:
            row = session.scalars(select(GitRepoRow).where(GitRepoRow.name == name)).first()
            if row is None:
                row = GitRepoRow(
                    id=_generate_id("repo"),
                    name=name,
                    first_seen_at=now,
                    last_commit_at=now,
                )
                session.add(row)
                logger.info("git_repo_registered", repo=name)
            else:
                row.last_commit_at = max(row.last_commit_at, now)
            session.flush()
            return GitRepo.model_validate(row)

    def list_repos(self) -> List[GitRepo]:
        stmt = select(GitRepoRow).order_by(GitRepoRow.last_commit_at.desc())
        with self._session() as session:
            return [GitRepo.model_validate(row) for row in session.scalars(stmt)]

    def delete_repo(self, name: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(GitRepoRow).where(GitRepoRow.name == name))
            return result.rowcount > 0

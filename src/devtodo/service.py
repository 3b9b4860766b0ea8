"""Service facade: the operations exposed to the CLI and any API layer."""

import asyncio
from typing import Any, List, Mapping, Optional

import structlog
from pydantic import BaseModel, ValidationError

from devtodo.actions import ContainerAction, ContainerActionLog, PendingActionsBuffer
from devtodo.errors import InvalidRequestError, RepoNotFoundError, TaskNotFoundError
from devtodo.extraction.extractor import ChatTaskExtractor
from devtodo.extraction.state import TaskStateTracker
from devtodo.extraction.store import ExtractedTaskStore
from devtodo.extraction.todos import ClaudeTodoMatcher
from devtodo.extraction.transcripts import TranscriptStore
from devtodo.llm.base import BaseLLMProvider
from devtodo.llm.cache import LLMCache
from devtodo.llm.classifier import TaskClassifier
from devtodo.llm.openai_provider import OpenAIProvider
from devtodo.matching.commit_matcher import CommitMatcher
from devtodo.models.config import ExtractionConfig, Settings
from devtodo.models.conversation import ClaudeTodo, ConversationSession, HistoryEntry, SyncStatus
from devtodo.models.extracted import DismissedEntry, ExtractedTaskDocument, ExtractionReport
from devtodo.models.task import GitRepo, Priority, Task, TaskCreate, TaskSource
from devtodo.scheduler import Scheduler
from devtodo.storage.task_store import TaskStore

logger = structlog.get_logger(__name__)

EXTRACTION_JOB = "extract"
CLAUDE_ACTIONS_JOB = "claude-actions"

TASK_ACTIONS = ("dismiss", "restore", "import")


class CommitResult(BaseModel):
    matched: int
    tasks: List[str]


class TaskActionResult(BaseModel):
    success: bool = True
    id: str
    action: str
    linked_task_id: Optional[str] = None


class DevTodoService:
    """Wires the task store, commit matcher and extraction pipeline together."""

    def __init__(
        self,
        task_store: TaskStore,
        extracted_store: ExtractedTaskStore,
        extractor: ChatTaskExtractor,
        todo_matcher: ClaudeTodoMatcher,
        scheduler: Optional[Scheduler] = None,
        extraction_interval: float = 600.0,
        extraction_initial_delay: float = 5.0,
        actions_poll_interval: float = 60.0,
    ) -> None:
        """Initialize the service.

        Args:
            task_store: Persisted tasks and repos
            extracted_store: Extracted-task document store
            extractor: Chat task extractor
            todo_matcher: Claude todo matcher
            scheduler: Scheduler for background jobs
            extraction_interval: Seconds between timed extraction runs
            extraction_initial_delay: Seconds before the first timed run
            actions_poll_interval: Seconds between Claude todo polls
        """
        self.task_store = task_store
        self.extracted_store = extracted_store
        self.extractor = extractor
        self.todo_matcher = todo_matcher
        self.scheduler = scheduler or Scheduler()

        self.matcher = CommitMatcher(task_store)
        self.state = TaskStateTracker(extracted_store, request_extraction=self.trigger_extraction)
        self.container_actions = ContainerActionLog()
        self.pending_actions = PendingActionsBuffer()

        self.scheduler.register(
            EXTRACTION_JOB,
            self.extractor.extract,
            interval=extraction_interval,
            initial_delay=extraction_initial_delay,
        )
        self.scheduler.register(
            CLAUDE_ACTIONS_JOB,
            self.collect_claude_actions,
            interval=actions_poll_interval,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: Optional[BaseLLMProvider] = None,
        extraction_config: Optional[ExtractionConfig] = None,
    ) -> "DevTodoService":
        """Build a service from application settings.

        Args:
            settings: Application settings
            provider: LLM provider; defaults to the configured OpenAI-compatible endpoint
            extraction_config: Extraction tunables

        Returns:
            Configured DevTodoService
        """
        config = extraction_config or ExtractionConfig()
        llm_config = settings.llm_config()
        provider = provider or OpenAIProvider(
            api_key=llm_config.api_key,
            model=llm_config.model,
            base_url=llm_config.base_url,
            timeout=llm_config.timeout_seconds,
        )
        cache = LLMCache(settings.resolved_cache_dir()) if settings.enable_caching else None

        task_store = TaskStore(settings.resolved_database_url())
        extracted_store = ExtractedTaskStore(settings.extracted_tasks_path)
        transcripts = TranscriptStore(settings.claude_data_path)
        classifier = TaskClassifier(
            provider,
            config=llm_config,
            cache=cache,
            max_title_chars=config.max_title_chars,
        )
        extractor = ChatTaskExtractor(
            transcripts,
            classifier,
            extracted_store,
            config=config,
            concurrency=llm_config.concurrency,
        )
        todo_matcher = ClaudeTodoMatcher(transcripts.todos_path, extracted_store, config=config)

        return cls(
            task_store,
            extracted_store,
            extractor,
            todo_matcher,
            extraction_interval=settings.extraction_interval_seconds,
            extraction_initial_delay=settings.extraction_initial_delay,
            actions_poll_interval=settings.actions_poll_seconds,
        )

    # ============================================================================
    # Commits
    # ============================================================================

    def process_commit(self, payload: Mapping[str, Any]) -> CommitResult:
        """Apply a commit payload {message, repo?, branch?, hash?, author?}.

        Raises:
            InvalidRequestError: If the payload or its message is malformed
            StorageError: If the task store fails
            CommitProcessingError: If some matching tasks could not be stamped
        """
        if not isinstance(payload, Mapping):
            raise InvalidRequestError("commit payload must be an object")

        task_ids = self.matcher.complete_matching_tasks(
            payload.get("message"),
            repo=payload.get("repo") or None,
            branch=payload.get("branch") or None,
            hash=payload.get("hash") or None,
            author=payload.get("author") or None,
        )
        return CommitResult(matched=len(task_ids), tasks=task_ids)

    # ============================================================================
    # Tasks
    # ============================================================================

    def create_task(self, data: Mapping[str, Any]) -> Task:
        """Create a task from raw caller input.

        Raises:
            InvalidRequestError: If the title is missing or a field is invalid
        """
        try:
            payload = TaskCreate.model_validate(data)
        except ValidationError as e:
            raise InvalidRequestError(str(e)) from e
        return self.task_store.create_task(payload)

    def list_tasks(
        self,
        completed: Optional[bool] = None,
        source: Optional[TaskSource] = None,
    ) -> List[Task]:
        return self.task_store.list_tasks(completed=completed, source=source)

    def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        return self.task_store.update_task(task_id, dict(fields))

    def delete_task(self, task_id: str) -> None:
        if not self.task_store.delete_task(task_id):
            raise TaskNotFoundError(task_id)

    def list_repos(self) -> List[GitRepo]:
        return self.task_store.list_repos()

    def delete_repo(self, name: str) -> None:
        if not self.task_store.delete_repo(name):
            raise RepoNotFoundError(name)

    # ============================================================================
    # Extraction
    # ============================================================================

    def trigger_extraction(self) -> str:
        """Start an extraction run in the background and return at once."""
        self.scheduler.fire(EXTRACTION_JOB)
        return "Task extraction started"

    async def run_extraction(self) -> ExtractionReport:
        """Run extraction now and wait for it; errors propagate."""
        return await self.extractor.extract()

    async def extracted_tasks(self) -> ExtractedTaskDocument:
        return await self.extracted_store.read()

    async def apply_task_action(
        self,
        task_id: str,
        action: str,
        linked_task_id: Optional[str] = None,
    ) -> TaskActionResult:
        """Dismiss, restore or import an extracted task.

        Args:
            task_id: Extracted task id
            action: One of dismiss, restore, import
            linked_task_id: Task the extracted task was imported as (import only)

        Returns:
            TaskActionResult

        Raises:
            InvalidRequestError: For an unknown action or a missing linked id
        """
        if action not in TASK_ACTIONS:
            raise InvalidRequestError(f"Unknown action: {action}")

        if action == "dismiss":
            await self.state.dismiss(task_id)
        elif action == "restore":
            await self.state.restore(task_id)
        else:
            if not linked_task_id:
                raise InvalidRequestError("linked task id is required to import")
            await self.state.mark_imported(task_id, linked_task_id)

        return TaskActionResult(id=task_id, action=action, linked_task_id=linked_task_id)

    async def import_extracted_task(
        self,
        task_id: str,
        priority: Priority = Priority.MEDIUM,
    ) -> Task:
        """Create a real task from an extracted one and link the two.

        Raises:
            TaskNotFoundError: If the extracted task is not in the current list
        """
        document = await self.extracted_store.read()
        extracted = next((t for t in document.tasks if t.id == task_id), None)
        if extracted is None:
            raise TaskNotFoundError(task_id)

        task = self.task_store.create_task(
            TaskCreate(
                title=extracted.title,
                priority=priority,
                source=TaskSource.CLAUDE,
                notes=extracted.description or None,
            )
        )
        await self.state.mark_imported(task_id, task.id)
        return task

    async def list_dismissed(self) -> List[DismissedEntry]:
        return await self.state.list_dismissed()

    async def get_conversation(self, session_id: str) -> Optional[ConversationSession]:
        """Full transcript of a session, or None if no project has it.

        Raises:
            InvalidRequestError: If the session id is blank
        """
        if not session_id or not session_id.strip():
            raise InvalidRequestError("session id is required")
        return await asyncio.to_thread(self.extractor.transcripts.get_conversation, session_id)

    async def recent_conversations(self) -> List[ConversationSession]:
        """The most recently active sessions with their latest messages."""
        return await asyncio.to_thread(self.extractor.transcripts.recent_conversations)

    async def history(self) -> List[HistoryEntry]:
        return await asyncio.to_thread(self.extractor.transcripts.read_history)

    def llm_stats(self) -> dict:
        return self.extractor.classifier.get_stats()

    def clear_llm_cache(self) -> None:
        self.extractor.classifier.clear_cache()

    # ============================================================================
    # Claude todos
    # ============================================================================

    async def todos(self) -> List[ClaudeTodo]:
        return await asyncio.to_thread(self.todo_matcher.list_todos)

    async def sync_status(self) -> SyncStatus:
        return await asyncio.to_thread(self.todo_matcher.sync_status)

    # ============================================================================
    # Container and Claude actions
    # ============================================================================

    def record_container_action(self, container_id: str, action: str) -> ContainerAction:
        entry = self.container_actions.record(container_id, action)
        logger.info("container_action_recorded", container_id=container_id, action=action)
        return entry

    def import_container_action(
        self, container_id: str, container_name: str, action: str
    ) -> Optional[Task]:
        """Create a high-priority docker task for a container action.

        Returns:
            The new task, or None if an identical pending task already exists
        """
        title = f"{action} {container_name} container"
        pending = self.task_store.find_pending_tasks()
        if any(task.title == title for task in pending):
            return None
        return self.task_store.create_task(
            TaskCreate(
                title=title,
                priority=Priority.HIGH,
                source=TaskSource.DOCKER,
                docker_container_id=container_id,
            )
        )

    async def collect_claude_actions(self) -> int:
        """Queue open Claude todos that are not already queued."""
        queued = {a["text"] for a in self.pending_actions.peek()}
        open_todos = await asyncio.to_thread(self.todo_matcher.pending_actions)
        actions = [a for a in open_todos if a["text"] not in queued]
        self.pending_actions.extend(actions)
        return len(actions)

    def drain_pending_actions(self) -> List[dict]:
        return self.pending_actions.drain()

    # ============================================================================
    # Lifecycle
    # ============================================================================

    def start_background_jobs(self) -> None:
        """Start the timed jobs. Requires a running event loop."""
        self.scheduler.start(EXTRACTION_JOB)
        self.scheduler.start(CLAUDE_ACTIONS_JOB)

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()

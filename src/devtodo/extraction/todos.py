"""Matching Claude Code todo lists against extracted tasks."""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog

from devtodo.extraction.store import ExtractedTaskStore
from devtodo.matching.similarity import TODO_MATCH_RATIO, matches_todo
from devtodo.models.config import ExtractionConfig
from devtodo.models.conversation import ClaudeTodo, SyncStatus, TodoMatch
from devtodo.models.extracted import ExtractedTask

logger = structlog.get_logger(__name__)

ACTIVE_STATUSES = ("pending", "in_progress")


def session_id_from_filename(name: str) -> str:
    """Todo files are named <session>-agent-<agent>.json."""
    return Path(name).stem.split("-agent-")[0]


class ClaudeTodoMatcher:
    """Reads todo files written by Claude Code and links them to extracted tasks."""

    def __init__(
        self,
        todos_path: Path,
        store: ExtractedTaskStore,
        config: Optional[ExtractionConfig] = None,
        match_ratio: float = TODO_MATCH_RATIO,
    ) -> None:
        """Initialize the matcher.

        Args:
            todos_path: Directory of Claude todo JSON files
            store: Extracted-task store to match against
            config: Extraction tunables (recent-session window)
            match_ratio: Relative edit distance under which a todo matches
        """
        self.todos_path = Path(todos_path)
        self.store = store
        self.config = config or ExtractionConfig()
        self.match_ratio = match_ratio

    def _read_todo_files(self) -> List[Tuple[Path, datetime, List[Dict[str, Any]]]]:
        if not self.todos_path.is_dir():
            logger.debug("todos_path_missing", path=str(self.todos_path))
            return []

        files = []
        for path in sorted(self.todos_path.glob("*.json")):
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime)
                with open(path, "r", encoding="utf-8") as f:
                    todos = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.debug("todo_file_skipped", path=str(path), error=str(e))
                continue
            if isinstance(todos, list):
                entries = [t for t in todos if isinstance(t, dict) and isinstance(t.get("content"), str)]
                files.append((path, modified, entries))
        return files

    def find_match(self, todo_content: str, tasks: List[ExtractedTask]) -> Optional[ExtractedTask]:
        """First extracted task whose title is close to the todo text."""
        for task in tasks:
            if matches_todo(todo_content, task.title, self.match_ratio):
                return task
        return None

    def list_todos(self, now: Optional[datetime] = None) -> List[ClaudeTodo]:
        """All todos with their matched extracted task, newest file first.

        Args:
            now: Reference time for the recent-session flag

        Returns:
            List of ClaudeTodo
        """
        now = now or datetime.now()
        recent_window = timedelta(seconds=self.config.recent_session_seconds)
        tasks = self.store.load().tasks

        todos: List[ClaudeTodo] = []
        for path, modified, entries in self._read_todo_files():
            for entry in entries:
                match = self.find_match(entry["content"], tasks)
                todos.append(
                    ClaudeTodo(
                        content=entry["content"],
                        status=str(entry.get("status", "pending")),
                        session_id=session_id_from_filename(path.name),
                        file=path.name,
                        last_modified=modified,
                        is_recent_session=(now - modified) < recent_window,
                        matched_task_id=match.id if match else None,
                        matched_task_title=match.title if match else None,
                        matched_task_project=match.project if match else None,
                    )
                )

        todos.sort(key=lambda t: t.last_modified, reverse=True)
        return todos

    def sync_status(self) -> SyncStatus:
        """Which todos correspond to extracted tasks, and which are done in Claude."""
        tasks = self.store.load().tasks
        files = self._read_todo_files()

        total = 0
        matches: List[TodoMatch] = []
        for _, _, entries in files:
            total += len(entries)
            for entry in entries:
                match = self.find_match(entry["content"], tasks)
                if match is None:
                    continue
                status = str(entry.get("status", "pending"))
                matches.append(
                    TodoMatch(
                        todo_content=entry["content"],
                        todo_status=status,
                        task_id=match.id,
                        task_title=match.title,
                        should_sync=status == "completed",
                    )
                )

        return SyncStatus(
            total_claude_todos=total,
            total_extracted_tasks=len(tasks),
            matches=matches,
        )

    def pending_actions(self) -> List[Dict[str, str]]:
        """Todos still open in Claude, as plain action records."""
        actions = []
        for _, _, entries in self._read_todo_files():
            for entry in entries:
                status = entry.get("status")
                if status in ACTIVE_STATUSES:
                    actions.append({"text": entry["content"], "status": status, "source": "claude-todo"})
        return actions

"""Reading Claude conversation transcripts from disk.

Transcripts live under ``<claude data>/projects/<encoded project>/<session>.jsonl``,
one JSON entry per line.
"""

import json
from pathlib import Path
from typing import Any, Iterator, List, Optional

import structlog
from pydantic import ValidationError

from devtodo.errors import TranscriptStoreUnavailableError
from devtodo.models.conversation import (
    ChatMessage,
    ConversationSession,
    HistoryEntry,
    parse_timestamp,
)

logger = structlog.get_logger(__name__)

CHAT_TITLE_MIN_CHARS = 10
CHAT_TITLE_MAX_CHARS = 100
RECENT_CONVERSATIONS = 10
RECENT_MESSAGES = 20
ASSISTANT_PREVIEW_CHARS = 500
HISTORY_LIMIT = 100


def decode_project_name(dir_name: str) -> str:
    """Turn an encoded project directory name back into a path.

    "-home-user-app" becomes "home/user/app".
    """
    if dir_name.startswith("-"):
        dir_name = dir_name[1:]
    return dir_name.replace("-", "/")


def _assistant_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""


def parse_entry(entry: Any) -> Optional[ChatMessage]:
    """Convert one transcript entry into a message.

    Args:
        entry: Decoded JSON line

    Returns:
        The message, or None for entries that are not user/assistant turns
    """
    if not isinstance(entry, dict):
        return None
    message = entry.get("message")
    if not isinstance(message, dict) or not message.get("content"):
        return None

    content = message["content"]
    timestamp = entry.get("timestamp")

    if entry.get("type") == "user":
        if isinstance(content, str):
            return ChatMessage(role="user", content=content, timestamp=timestamp)
        return ChatMessage(
            role="user",
            content=json.dumps(content),
            timestamp=timestamp,
            is_text=False,
        )

    if entry.get("type") == "assistant":
        text = _assistant_text(content)
        if text:
            return ChatMessage(role="assistant", content=text, timestamp=timestamp)
    return None


def _preview(message: ChatMessage) -> ChatMessage:
    if message.role != "assistant" or len(message.content) <= ASSISTANT_PREVIEW_CHARS:
        return message
    return message.model_copy(update={"content": message.content[:ASSISTANT_PREVIEW_CHARS] + "..."})


def read_session(path: Path, project: str) -> ConversationSession:
    """Read a single transcript file.

    Lines that are not valid JSON, or whose fields have the wrong types, are
    skipped.

    Args:
        path: Path to the .jsonl file
        project: Decoded project name

    Returns:
        The session with its messages in file order

    Raises:
        OSError: If the file cannot be read
    """
    messages: List[ChatMessage] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                message = parse_entry(json.loads(line))
            except json.JSONDecodeError:
                continue
            except (ValidationError, TypeError) as e:
                logger.debug("transcript_line_skipped", path=str(path), error=str(e))
                continue
            if message is not None:
                messages.append(message)

    chat_title = None
    for message in messages:
        if message.role == "user" and message.is_text and len(message.content) > CHAT_TITLE_MIN_CHARS:
            chat_title = message.content[:CHAT_TITLE_MAX_CHARS]
            break

    return ConversationSession(
        session_id=path.stem,
        project=project,
        messages=messages,
        chat_title=chat_title,
        path=path,
    )


class TranscriptStore:
    """Read-only access to the Claude data directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the transcript store.

        Args:
            root: Claude data directory (contains projects/ and todos/)
        """
        self.root = Path(root)
        self.projects_path = self.root / "projects"
        self.todos_path = self.root / "todos"
        self.history_path = self.root / "history.jsonl"

    def _project_dirs(self) -> Iterator[Path]:
        if not self.projects_path.is_dir():
            raise TranscriptStoreUnavailableError(
                f"Claude projects path not accessible: {self.projects_path}"
            )
        try:
            entries = sorted(self.projects_path.iterdir())
        except OSError as e:
            raise TranscriptStoreUnavailableError(
                f"Cannot list Claude projects at {self.projects_path}: {e}"
            ) from e

        for entry in entries:
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            yield entry

    def list_sessions(self) -> List[ConversationSession]:
        """Read every session of every project.

        Unreadable files are skipped.

        Returns:
            Sessions, ordered by project then file name

        Raises:
            TranscriptStoreUnavailableError: If the projects directory is missing
        """
        sessions: List[ConversationSession] = []
        for project_dir in self._project_dirs():
            project = decode_project_name(project_dir.name)
            for path in sorted(project_dir.glob("*.jsonl")):
                try:
                    sessions.append(read_session(path, project))
                except (OSError, UnicodeDecodeError) as e:
                    logger.debug("transcript_skipped", path=str(path), error=str(e))
        return sessions

    def get_conversation(self, session_id: str) -> Optional[ConversationSession]:
        """Find a session by id across all projects.

        Args:
            session_id: Transcript file name without extension

        Returns:
            The full session, or None if no project has it
        """
        for project_dir in self._project_dirs():
            path = project_dir / f"{session_id}.jsonl"
            if path.is_file():
                return read_session(path, decode_project_name(project_dir.name))
        return None

    def recent_conversations(
        self,
        limit: int = RECENT_CONVERSATIONS,
        message_limit: int = RECENT_MESSAGES,
    ) -> List[ConversationSession]:
        """Newest sessions by last activity, each trimmed to its latest messages.

        Assistant replies are shortened to a preview. Sessions without
        messages are left out.

        Args:
            limit: Maximum number of sessions
            message_limit: Messages kept per session (the most recent)

        Returns:
            Sessions, most recently active first

        Raises:
            TranscriptStoreUnavailableError: If the projects directory is missing
        """
        sessions = [s for s in self.list_sessions() if s.messages]
        sessions.sort(key=lambda s: parse_timestamp(s.last_activity), reverse=True)

        recent: List[ConversationSession] = []
        for session in sessions[:limit]:
            messages = [
                _preview(message) for message in session.messages[-message_limit:]
            ]
            recent.append(session.model_copy(update={"messages": messages}))
        return recent

    def read_history(self, limit: int = HISTORY_LIMIT) -> List[HistoryEntry]:
        """Most recent entries of the prompt history, newest first.

        A missing history file yields an empty list; lines that cannot be
        parsed are skipped.
        """
        if not self.history_path.is_file():
            logger.debug("history_missing", path=str(self.history_path))
            return []

        entries: List[HistoryEntry] = []
        with open(self.history_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(HistoryEntry.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError):
                    continue

        entries.reverse()
        return entries[:limit]

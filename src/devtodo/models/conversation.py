"""Data models for Claude conversation transcripts and todo files."""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A single user or assistant message in a session."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[str] = None
    is_text: bool = Field(True, description="False when the user turn carried structured content")


class ConversationSession(BaseModel):
    """One transcript file: a session within a project."""

    session_id: str = Field(..., description="Transcript file name without extension")
    project: str = Field(..., description="Project path decoded from the directory name")
    messages: List[ChatMessage] = Field(default_factory=list)
    chat_title: Optional[str] = Field(None, description="First substantial user message, truncated")
    path: Optional[Path] = None

    @property
    def last_activity(self) -> Optional[str]:
        return self.messages[-1].timestamp if self.messages else None


class HistoryEntry(BaseModel):
    """A line of the Claude prompt history (history.jsonl)."""

    model_config = ConfigDict(extra="allow")

    display: Optional[str] = Field(None, description="The prompt as typed")
    project: Optional[str] = None
    timestamp: Optional[Union[int, float, str]] = None


class CandidateMessage(BaseModel):
    """A user message selected as a possible task."""

    content: str
    project: str
    timestamp: Optional[str] = None
    session_id: str
    message_index: int
    chat_title: Optional[str] = None
    conversation_path: Optional[str] = None

    @property
    def sort_key(self) -> datetime:
        return parse_timestamp(self.timestamp)


class ClaudeTodo(BaseModel):
    """An entry from a Claude Code todo file, with its match if any."""

    content: str
    status: str = "pending"
    session_id: str
    file: str
    last_modified: datetime
    is_recent_session: bool = False
    matched_task_id: Optional[str] = None
    matched_task_title: Optional[str] = None
    matched_task_project: Optional[str] = None


class TodoMatch(BaseModel):
    todo_content: str
    todo_status: str
    task_id: str
    task_title: str
    should_sync: bool


class SyncStatus(BaseModel):
    total_claude_todos: int
    total_extracted_tasks: int
    matches: List[TodoMatch] = Field(default_factory=list)

    @property
    def completed_in_claude(self) -> int:
        return sum(1 for m in self.matches if m.should_sync)


_EPOCH = datetime.min


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO-8601 transcript timestamp into a naive UTC datetime.

    Missing or unparseable timestamps sort as the oldest possible value.
    """
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed

"""Data models for tasks extracted from chat transcripts and their state."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TaskCategory(str, Enum):
    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    CONFIG = "config"
    DOCS = "docs"
    RESEARCH = "research"


DEFAULT_TOPIC = "General"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class TaskClassification(_CamelModel):
    """Structured task description produced by the classifier."""

    title: str
    description: str = ""
    context: str = ""
    category: TaskCategory = TaskCategory.RESEARCH
    topic: str = DEFAULT_TOPIC


class ExtractedTask(_CamelModel):
    """A task candidate derived from a user message in a chat transcript.

    The id is derived from the message content and project, so the same
    message maps to the same id on every extraction run.
    """

    id: str = Field(..., description="Deterministic id (claude-<12 hex>)")
    title: str
    description: str = ""
    context: str = ""
    category: TaskCategory = TaskCategory.RESEARCH
    topic: str = DEFAULT_TOPIC

    original_message: str = Field(..., description="Source message, truncated")
    project: str
    timestamp: Optional[str] = Field(None, description="Source message timestamp as recorded")
    session_id: str
    message_index: int = 0
    chat_title: Optional[str] = None
    conversation_path: Optional[str] = None

    similar_count: int = Field(1, description="Messages collapsed into this task")
    related_sessions: List[str] = Field(default_factory=list)


class DismissedState(_CamelModel):
    status: Literal["dismissed"] = "dismissed"
    dismissed_at: datetime


class ImportedState(_CamelModel):
    status: Literal["imported"] = "imported"
    imported_at: datetime
    linked_task_id: Optional[str] = None


TaskState = Annotated[Union[DismissedState, ImportedState], Field(discriminator="status")]


class ExtractedTaskDocument(_CamelModel):
    """Durable document holding the extracted task list and its state map.

    Tasks and state are always written together in a single replace.
    """

    tasks: List[ExtractedTask] = Field(default_factory=list)
    task_state: Dict[str, TaskState] = Field(default_factory=dict)
    last_updated: Optional[datetime] = None

    def is_dismissed(self, task_id: str) -> bool:
        return isinstance(self.task_state.get(task_id), DismissedState)


class DismissedEntry(_CamelModel):
    id: str
    dismissed_at: datetime


class ExtractionReport(BaseModel):
    """Summary of a single extraction run."""

    candidates: int = 0
    skipped_dismissed: int = 0
    classified: int = 0
    degraded: int = 0
    duplicates: int = 0
    tasks: int = 0
    saved_state: int = 0

"""Data models for tasks, extracted tasks and configuration."""

from devtodo.models.config import ExtractionConfig, LLMConfig, Settings
from devtodo.models.conversation import (
    CandidateMessage,
    ChatMessage,
    ClaudeTodo,
    ConversationSession,
    HistoryEntry,
    SyncStatus,
    TodoMatch,
)
from devtodo.models.extracted import (
    DismissedEntry,
    DismissedState,
    ExtractedTask,
    ExtractedTaskDocument,
    ExtractionReport,
    ImportedState,
    TaskCategory,
    TaskClassification,
    TaskState,
)
from devtodo.models.task import GitRepo, Priority, Task, TaskCreate, TaskSource

__all__ = [
    "Task",
    "TaskCreate",
    "GitRepo",
    "Priority",
    "TaskSource",
    "ExtractedTask",
    "ExtractedTaskDocument",
    "ExtractionReport",
    "TaskClassification",
    "TaskCategory",
    "TaskState",
    "DismissedState",
    "ImportedState",
    "DismissedEntry",
    "ChatMessage",
    "ConversationSession",
    "HistoryEntry",
    "CandidateMessage",
    "ClaudeTodo",
    "TodoMatch",
    "SyncStatus",
    "ExtractionConfig",
    "LLMConfig",
    "Settings",
]

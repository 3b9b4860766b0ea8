"""Data models for persisted tasks and tracked git repositories."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskSource(str, Enum):
    MANUAL = "manual"
    DOCKER = "docker"
    CLAUDE = "claude"
    CALENDAR = "calendar"
    GMAIL = "gmail"


class Task(BaseModel):
    """A user-facing to-do item as returned by the task store."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(..., description="Opaque task id, immutable")
    title: str = Field(..., description="Task title, matched against commit messages")
    completed: bool = Field(False, description="Whether the task is done")
    priority: Priority = Field(Priority.MEDIUM, description="Task priority")
    source: TaskSource = Field(TaskSource.MANUAL, description="Where the task came from")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    completed_at: Optional[datetime] = Field(None, description="Set when completed goes false -> true")
    due_date: Optional[date] = Field(None, description="Optional due date")
    notes: Optional[str] = Field(None, description="Free text notes")

    # External references, fixed at creation
    docker_container_id: Optional[str] = None
    calendar_event_id: Optional[str] = None
    email_id: Optional[str] = None

    # Auto-completion provenance (written only by the commit matcher)
    auto_completed: bool = False
    completed_by: Optional[str] = None
    git_commit_hash: Optional[str] = None
    git_commit_repo: Optional[str] = None
    git_commit_branch: Optional[str] = None
    git_commit_message: Optional[str] = None


class TaskCreate(BaseModel):
    """Fields accepted when creating a task."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    title: str
    priority: Priority = Priority.MEDIUM
    source: TaskSource = TaskSource.MANUAL
    due_date: Optional[date] = None
    notes: Optional[str] = None
    docker_container_id: Optional[str] = None
    calendar_event_id: Optional[str] = None
    email_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title is required and must be a non-empty string")
        return value


class GitRepo(BaseModel):
    """A repository that has reported at least one commit."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str
    name: str
    first_seen_at: datetime
    last_commit_at: datetime

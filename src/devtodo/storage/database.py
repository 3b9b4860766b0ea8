"""SQLAlchemy schema and engine setup for the task store."""

from datetime import date, datetime
from pathlib import Path
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Engine, String, Text, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all tables."""
    pass


class TaskRow(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    source: Mapped[str] = mapped_column(String(20), default="manual", nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    docker_container_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    calendar_event_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    email_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    # Git auto-completion
    auto_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_by: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    git_commit_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    git_commit_repo: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    git_commit_branch: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    git_commit_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class GitRepoRow(Base):
    __tablename__ = "git_repos"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_commit_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


def _enable_wal(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine and make sure the schema exists.

    SQLite files get their parent directory created and WAL journaling
    enabled so readers are not blocked by the writer.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Configured engine
    """
    url = make_url(database_url)
    is_sqlite_file = url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:")

    if is_sqlite_file:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(database_url)

    if is_sqlite_file:
        event.listen(engine, "connect", _enable_wal)

    Base.metadata.create_all(engine)
    return engine

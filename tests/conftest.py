"""Shared fixtures: temporary stores, transcript writers and a scripted LLM."""

import json
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

from devtodo.extraction.store import ExtractedTaskStore
from devtodo.llm.base import BaseLLMProvider
from devtodo.storage.task_store import TaskStore


class ScriptedProvider(BaseLLMProvider):
    """Provider that answers from a script instead of a model.

    Each call pops the next scripted response; when the script is empty the
    default is used. A response may be a string, an exception to raise, or a
    callable taking the prompt.
    """

    def __init__(self, responses: Optional[List[Any]] = None, default: Any = None) -> None:
        super().__init__(api_key=None, model="test-model")
        self.responses = list(responses or [])
        self.default = default
        self.prompts: List[str] = []

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 350,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response


def task_json(title: str, category: str = "feature", topic: str = "UI Components") -> str:
    return json.dumps(
        {
            "title": title,
            "description": "Requested in chat.",
            "context": "",
            "category": category,
            "topic": topic,
        }
    )


def user_entry(text: Any, timestamp: str) -> dict:
    return {"type": "user", "timestamp": timestamp, "message": {"role": "user", "content": text}}


def assistant_entry(text: str, timestamp: str) -> dict:
    return {
        "type": "assistant",
        "timestamp": timestamp,
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
    }


@pytest.fixture
def temp_dir():
    """Create temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def task_store(temp_dir):
    """TaskStore backed by a SQLite file."""
    store = TaskStore(f"sqlite:///{temp_dir / 'tasks.db'}")
    yield store
    store.engine.dispose()


@pytest.fixture
def extracted_store(temp_dir):
    return ExtractedTaskStore(temp_dir / "data" / "extracted-tasks.json")


@pytest.fixture
def claude_root(temp_dir):
    """Empty Claude data directory with projects/ and todos/."""
    root = temp_dir / "claude"
    (root / "projects").mkdir(parents=True)
    (root / "todos").mkdir(parents=True)
    return root


@pytest.fixture
def write_session(claude_root) -> Callable[..., Path]:
    """Write a transcript file: write_session(project_dir, session_id, entries)."""

    def _write(project_dir: str, session_id: str, entries: List[dict]) -> Path:
        path = claude_root / "projects" / project_dir / f"{session_id}.jsonl"
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for entry in entries:
                f.write(json.dumps(entry) + "\n")
        return path

    return _write


@pytest.fixture
def write_todos(claude_root) -> Callable[..., Path]:
    """Write a Claude todo file: write_todos(session_id, todos)."""

    def _write(session_id: str, todos: List[dict], agent: str = "main") -> Path:
        path = claude_root / "todos" / f"{session_id}-agent-{agent}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(todos, f)
        return path

    return _write


@pytest.fixture
def make_provider() -> Callable[..., ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def classification_json() -> Callable[..., str]:
    return task_json


@pytest.fixture
def user_message() -> Callable[..., dict]:
    return user_entry


@pytest.fixture
def assistant_message() -> Callable[..., dict]:
    return assistant_entry

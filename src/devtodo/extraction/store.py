"""Persistence for the extracted-task document.

The extracted task list and the task state map are stored together in one
JSON file and always replaced together, so a reader never sees tasks from
one run paired with state from another.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Callable, TypeVar

import structlog
from pydantic import ValidationError

from devtodo.models.extracted import ExtractedTaskDocument

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ExtractedTaskStore:
    """Atomic read/replace access to extracted-tasks.json.

    Readers take no lock: the file is only ever swapped in whole. Writers in
    this process serialize on an asyncio lock so read-modify-write cycles
    (extraction runs, dismiss, restore) never lose each other's changes.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document
        """
        self.path = Path(path)
        self.lock = asyncio.Lock()

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> ExtractedTaskDocument:
        """Read the current document.

        A missing file yields an empty document; so does a corrupted one,
        with a warning.

        Returns:
            ExtractedTaskDocument
        """
        if not self.path.exists():
            return ExtractedTaskDocument()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ExtractedTaskDocument.model_validate(data)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning("extracted_tasks_unreadable", path=str(self.path), error=str(e))
            return ExtractedTaskDocument()

    def save(self, document: ExtractedTaskDocument) -> None:
        """Replace the document on disk using an atomic write.

        Uses a temporary file and rename to ensure atomicity.

        Args:
            document: Document to write
        """
        self._ensure_dir()

        # Write to temporary file first
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".extracted_", suffix=".json.tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document.model_dump_json(by_alias=True, indent=2))

            # Atomic rename
            os.replace(temp_path, self.path)
        except Exception:
            # Clean up temp file on error
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    async def read(self) -> ExtractedTaskDocument:
        """Load the document without blocking the event loop."""
        return await asyncio.to_thread(self.load)

    async def update(self, mutate: Callable[[ExtractedTaskDocument], T]) -> T:
        """Apply a change to the latest document and write it back.

        The load, the mutation and the save run under the store lock.

        Args:
            mutate: Function that edits the document in place and may
                return a value

        Returns:
            Whatever ``mutate`` returned
        """
        async with self.lock:
            document = await asyncio.to_thread(self.load)
            result = mutate(document)
            await asyncio.to_thread(self.save, document)
            return result


"""Extraction of task candidates from Claude chat transcripts.

This module reads conversation transcripts, selects actionable user messages,
classifies them with an LLM and keeps a deduplicated task list whose
dismissed/imported state survives re-extraction.
"""

from devtodo.extraction.candidates import CandidateSelector, generate_task_id, is_actionable
from devtodo.extraction.extractor import ChatTaskExtractor
from devtodo.extraction.state import TaskStateTracker
from devtodo.extraction.store import ExtractedTaskStore
from devtodo.extraction.todos import ClaudeTodoMatcher
from devtodo.extraction.transcripts import TranscriptStore

__all__ = [
    "CandidateSelector",
    "generate_task_id",
    "is_actionable",
    "ChatTaskExtractor",
    "TaskStateTracker",
    "ExtractedTaskStore",
    "ClaudeTodoMatcher",
    "TranscriptStore",
]

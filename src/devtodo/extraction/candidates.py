"""Selection of chat messages that look like task requests."""

import hashlib
import re
from typing import Callable, Iterable, List, Optional

from devtodo.models.config import ExtractionConfig
from devtodo.models.conversation import CandidateMessage, ConversationSession

TASK_ID_PREFIX = "claude-"
TASK_ID_HEX_CHARS = 12

ACTIONABLE_PATTERN = re.compile(
    r"(add|create|fix|update|remove|change|make|build|implement|configure|setup|"
    r"can you|help|how|install|check|show|find|deploy|enable|write|refactor|improve|optimize)",
    re.IGNORECASE,
)

TRIVIAL_PATTERN = re.compile(r"^(yes|no|ok|ls|cd|pwd|y|n|\d+)$", re.IGNORECASE)

ActionablePredicate = Callable[[str], bool]


def is_actionable(text: str) -> bool:
    """Default heuristic: the message mentions an action verb or request."""
    return ACTIONABLE_PATTERN.search(text) is not None


def is_trivial(text: str) -> bool:
    """Bare acknowledgements, numbers and shell fragments."""
    return TRIVIAL_PATTERN.match(text.strip()) is not None


def generate_task_id(content: str, project: str, prefix_chars: int = 500) -> str:
    """Stable id for a message: the same content and project always hash the same.

    Args:
        content: Message text
        project: Project the message belongs to
        prefix_chars: Only this many leading characters are hashed

    Returns:
        Id of the form claude-<12 hex chars>
    """
    digest = hashlib.md5((content[:prefix_chars] + project).encode("utf-8")).hexdigest()
    return f"{TASK_ID_PREFIX}{digest[:TASK_ID_HEX_CHARS]}"


class CandidateSelector:
    """Picks the most recent actionable user messages across sessions."""

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        predicate: ActionablePredicate = is_actionable,
    ) -> None:
        """Initialize the selector.

        Args:
            config: Extraction tunables (window size, minimum length)
            predicate: Decides whether a message asks for something to be done
        """
        self.config = config or ExtractionConfig()
        self.predicate = predicate

    def accepts(self, text: str) -> bool:
        return (
            len(text) > self.config.min_message_length
            and self.predicate(text)
            and not is_trivial(text)
        )

    def session_candidates(self, session: ConversationSession) -> List[CandidateMessage]:
        """Candidates from a single session, in transcript order.

        ``message_index`` counts every user turn in the session, including
        ones that were not selected.
        """
        candidates: List[CandidateMessage] = []
        message_index = 0
        for message in session.messages:
            if message.role != "user":
                continue
            if message.is_text and self.accepts(message.content):
                candidates.append(
                    CandidateMessage(
                        content=message.content,
                        project=session.project,
                        timestamp=message.timestamp,
                        session_id=session.session_id,
                        message_index=message_index,
                        chat_title=session.chat_title,
                        conversation_path=str(session.path) if session.path else None,
                    )
                )
            message_index += 1
        return candidates

    def select(self, sessions: Iterable[ConversationSession]) -> List[CandidateMessage]:
        """Newest candidates across all sessions.

        Args:
            sessions: Sessions to scan

        Returns:
            At most ``max_candidates`` messages, newest first
        """
        candidates: List[CandidateMessage] = []
        for session in sessions:
            candidates.extend(self.session_candidates(session))

        candidates.sort(key=lambda c: c.sort_key, reverse=True)
        return candidates[: self.config.max_candidates]

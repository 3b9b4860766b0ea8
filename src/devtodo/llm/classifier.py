"""Classification of chat messages into structured tasks."""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import structlog

from devtodo.llm.base import BaseLLMProvider
from devtodo.llm.cache import LLMCache
from devtodo.llm.parsing import parse_json_safe
from devtodo.llm.prompts import PromptTemplates
from devtodo.models.config import LLMConfig
from devtodo.models.extracted import DEFAULT_TOPIC, TaskCategory, TaskClassification

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Classified:
    """The classifier returned a usable task."""

    task: TaskClassification


@dataclass(frozen=True)
class ParseFailure:
    """The classifier answered, but no task could be read from the answer."""

    raw: str


@dataclass(frozen=True)
class RequestFailure:
    """The classifier could not be reached, errored, or timed out."""

    error: str


ClassificationResult = Union[Classified, ParseFailure, RequestFailure]


def to_classification(
    parsed: Optional[Dict[str, Any]],
    max_title_chars: int = 150,
) -> Optional[TaskClassification]:
    """Build a classification from a parsed response.

    Unknown categories become research and a missing topic becomes General.

    Args:
        parsed: Parsed JSON object from the model
        max_title_chars: Titles are truncated to this length

    Returns:
        The classification, or None when the response has no title
    """
    if not parsed:
        return None
    title = parsed.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    category = parsed.get("category")
    try:
        category = TaskCategory(category)
    except ValueError:
        category = TaskCategory.RESEARCH

    topic = parsed.get("topic")
    return TaskClassification(
        title=title.strip()[:max_title_chars],
        description=str(parsed.get("description") or ""),
        context=str(parsed.get("context") or ""),
        category=category,
        topic=str(topic) if topic else DEFAULT_TOPIC,
    )


class TaskClassifier:
    """Calls the LLM with a fixed template and reads a task out of the answer.

    Each call returns a ClassificationResult; callers decide what to do with
    failures. Nothing is raised for provider errors or bad output.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        config: Optional[LLMConfig] = None,
        cache: Optional[LLMCache] = None,
        max_title_chars: int = 150,
    ) -> None:
        """Initialize the classifier.

        Args:
            provider: LLM provider for completions
            config: Token, temperature and timeout settings
            cache: Optional completion cache
            max_title_chars: Maximum title length kept from the model
        """
        self.provider = provider
        self.config = config or LLMConfig()
        self.cache = cache
        self.max_title_chars = max_title_chars

    async def classify(
        self,
        input_text: str,
        template_id: str = PromptTemplates.TASK_EXTRACTION,
    ) -> ClassificationResult:
        """Classify one message with a single attempt.

        Args:
            input_text: Message text sent as the user turn
            template_id: Prompt template to use as the system turn

        Returns:
            Classified, ParseFailure or RequestFailure
        """
        system_prompt = PromptTemplates.system_prompt(template_id)
        model = self.provider.model

        if self.cache is not None:
            cached = self.cache.get_completion(input_text, model, system_prompt)
            if cached:
                classification = to_classification(parse_json_safe(cached), self.max_title_chars)
                if classification is not None:
                    return Classified(classification)

        try:
            raw = await asyncio.wait_for(
                self.provider.complete(
                    input_text,
                    system_prompt=system_prompt,
                    max_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                ),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return RequestFailure(f"timed out after {self.config.timeout_seconds}s")
        except Exception as e:
            return RequestFailure(str(e))

        classification = to_classification(parse_json_safe(raw), self.max_title_chars)
        if classification is None:
            return ParseFailure(raw or "")

        if self.cache is not None:
            self.cache.set_completion(input_text, model, raw, system_prompt)
        return Classified(classification)

    async def classify_with_retry(
        self,
        input_text: str,
        max_attempts: int = 2,
        template_id: str = PromptTemplates.TASK_EXTRACTION,
    ) -> ClassificationResult:
        """Classify, retrying on any failure.

        Args:
            input_text: Message text
            max_attempts: Total attempts, including the first
            template_id: Prompt template id

        Returns:
            The first Classified result, or the last failure
        """
        result: ClassificationResult = RequestFailure("no attempts made")
        for attempt in range(1, max_attempts + 1):
            result = await self.classify(input_text, template_id)
            if isinstance(result, Classified):
                return result
            logger.warning(
                "classification_attempt_failed",
                attempt=attempt,
                kind=type(result).__name__,
                detail=result.error if isinstance(result, RequestFailure) else result.raw[:200],
            )
        return result

    def get_stats(self) -> dict:
        """Get classification statistics.

        Returns:
            Dictionary with cache stats and provider usage
        """
        stats = {}

        if self.cache is not None:
            stats["cache"] = self.cache.get_stats()

        if hasattr(self.provider, "get_usage_stats"):
            stats["provider"] = self.provider.get_usage_stats()

        return stats

    def clear_cache(self) -> None:
        """Clear the completion cache."""
        if self.cache is not None:
            self.cache.clear()

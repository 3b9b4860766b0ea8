"""Extraction of deduplicated task candidates from Claude chat transcripts."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import structlog

from devtodo.extraction.candidates import CandidateSelector, generate_task_id
from devtodo.extraction.store import ExtractedTaskStore
from devtodo.extraction.transcripts import TranscriptStore
from devtodo.llm.classifier import Classified, TaskClassifier
from devtodo.matching.similarity import DEDUP_RATIO, is_duplicate_title
from devtodo.models.config import ExtractionConfig
from devtodo.models.conversation import CandidateMessage
from devtodo.models.extracted import (
    ExtractedTask,
    ExtractedTaskDocument,
    ExtractionReport,
    TaskCategory,
    TaskClassification,
)

logger = structlog.get_logger(__name__)


class ChatTaskExtractor:
    """Turns recent chat messages into a deduplicated extracted-task list.

    A run reads every transcript, keeps the newest actionable user messages,
    skips the ones already dismissed, classifies the rest with the LLM and
    collapses near-identical titles. The resulting list replaces the stored
    one; the state map is left as it is.
    """

    def __init__(
        self,
        transcripts: TranscriptStore,
        classifier: TaskClassifier,
        store: ExtractedTaskStore,
        config: Optional[ExtractionConfig] = None,
        selector: Optional[CandidateSelector] = None,
        concurrency: int = 5,
        dedup_ratio: float = DEDUP_RATIO,
    ) -> None:
        """Initialize the extractor.

        Args:
            transcripts: Source of conversation sessions
            classifier: LLM classifier for candidate messages
            store: Extracted-task document store
            config: Extraction tunables
            selector: Candidate selection strategy
            concurrency: Classifications run concurrently per batch
            dedup_ratio: Relative edit distance under which titles collapse
        """
        self.transcripts = transcripts
        self.classifier = classifier
        self.store = store
        self.config = config or ExtractionConfig()
        self.selector = selector or CandidateSelector(self.config)
        self.concurrency = max(1, concurrency)
        self.dedup_ratio = dedup_ratio

    async def extract(self) -> ExtractionReport:
        """Run one extraction cycle and persist the result.

        Returns:
            Counts describing the run

        Raises:
            TranscriptStoreUnavailableError: If transcripts cannot be read at all
        """
        logger.info("extraction_started", root=str(self.transcripts.root))

        sessions = await asyncio.to_thread(self.transcripts.list_sessions)
        existing = await self.store.read()
        candidates = self.selector.select(sessions)
        report = ExtractionReport(candidates=len(candidates))

        pending: List[Tuple[str, CandidateMessage]] = []
        for candidate in candidates:
            task_id = generate_task_id(candidate.content, candidate.project, self.config.id_prefix_chars)
            if existing.is_dismissed(task_id):
                report.skipped_dismissed += 1
                continue
            pending.append((task_id, candidate))

        classifications = await self._classify_all([c for _, c in pending], report)
        tasks = self._deduplicate(pending, classifications, report)

        def apply(document: ExtractedTaskDocument) -> int:
            # Dismissals made while this run was classifying still win
            document.tasks = [t for t in tasks if not document.is_dismissed(t.id)]
            document.last_updated = datetime.now(timezone.utc)
            return len(document.task_state)

        report.saved_state = await self.store.update(apply)
        report.tasks = len(tasks)

        logger.info("extraction_finished", **report.model_dump())
        return report

    async def _classify_all(
        self,
        candidates: List[CandidateMessage],
        report: ExtractionReport,
    ) -> List[TaskClassification]:
        """Classify candidates in batches, keeping candidate order.

        Args:
            candidates: Messages to classify
            report: Updated with classified/degraded counts

        Returns:
            One classification per candidate
        """
        results: List[TaskClassification] = []

        # Process in batches to avoid overwhelming the endpoint
        for i in range(0, len(candidates), self.concurrency):
            batch = candidates[i : i + self.concurrency]
            outcomes = await asyncio.gather(
                *(self._classify_candidate(c) for c in batch),
                return_exceptions=True,
            )

            for candidate, outcome in zip(batch, outcomes):
                if isinstance(outcome, TaskClassification):
                    report.classified += 1
                    results.append(outcome)
                else:
                    if isinstance(outcome, BaseException):
                        logger.error(
                            "classification_crashed",
                            session_id=candidate.session_id,
                            error=str(outcome),
                        )
                    report.degraded += 1
                    results.append(self.fallback_classification(candidate))

        return results

    async def _classify_candidate(self, candidate: CandidateMessage) -> Optional[TaskClassification]:
        result = await self.classifier.classify_with_retry(
            candidate.content[: self.config.classifier_input_chars],
            max_attempts=self.config.max_attempts,
        )
        if isinstance(result, Classified):
            return result.task
        return None

    def fallback_classification(self, candidate: CandidateMessage) -> TaskClassification:
        """Degraded record used when classification fails.

        The title is the raw message flattened to one line and truncated.
        """
        return TaskClassification(
            title=candidate.content.replace("\n", " ")[: self.config.fallback_title_chars],
            description="",
            context="",
            category=TaskCategory.RESEARCH,
        )

    def _deduplicate(
        self,
        pending: List[Tuple[str, CandidateMessage]],
        classifications: List[TaskClassification],
        report: ExtractionReport,
    ) -> List[ExtractedTask]:
        """Collapse candidates with near-identical titles.

        Walks candidates in order; a duplicate bumps the accepted task's
        similar_count and adds its session to related_sessions.
        """
        accepted: List[ExtractedTask] = []

        for (task_id, candidate), classification in zip(pending, classifications):
            duplicate_of = self._find_duplicate(accepted, task_id, classification.title)
            if duplicate_of is not None:
                duplicate_of.similar_count += 1
                if candidate.session_id not in duplicate_of.related_sessions:
                    duplicate_of.related_sessions.append(candidate.session_id)
                report.duplicates += 1
                continue

            accepted.append(
                ExtractedTask(
                    id=task_id,
                    title=classification.title,
                    description=classification.description,
                    context=classification.context,
                    category=classification.category,
                    topic=classification.topic,
                    original_message=candidate.content[: self.config.original_message_chars],
                    project=candidate.project,
                    timestamp=candidate.timestamp,
                    session_id=candidate.session_id,
                    message_index=candidate.message_index,
                    chat_title=candidate.chat_title,
                    conversation_path=candidate.conversation_path,
                    similar_count=1,
                    related_sessions=[candidate.session_id],
                )
            )

        return accepted

    def _find_duplicate(
        self,
        accepted: List[ExtractedTask],
        task_id: str,
        title: str,
    ) -> Optional[ExtractedTask]:
        for task in accepted:
            # The same message repeated in a project hashes to the same id
            if task.id == task_id or is_duplicate_title(task.title, title, self.dedup_ratio):
                return task
        return None

"""Auto-completion of pending tasks from git commit messages."""

from typing import List, Optional

import structlog

from devtodo.errors import CommitProcessingError, InvalidRequestError, StorageError
from devtodo.matching.similarity import contains_title
from devtodo.storage.task_store import TaskStore, utcnow

logger = structlog.get_logger(__name__)

COMPLETED_BY_GIT = "git"


class CommitMatcher:
    """Completes pending tasks whose title appears in a commit message.

    Matching is a plain case-insensitive substring test. Every match is
    stamped with its own compare-and-set update, so a task is only ever
    stamped once even if the same commit is reported twice.
    """

    def __init__(self, store: TaskStore) -> None:
        """Initialize the matcher.

        Args:
            store: Task store to read pending tasks from and update
        """
        self.store = store

    def complete_matching_tasks(
        self,
        message: str,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
        hash: Optional[str] = None,
        author: Optional[str] = None,
    ) -> List[str]:
        """Complete every pending task whose title is in the commit message.

        Args:
            message: Commit message
            repo: Repository name; its tracking record is upserted when given
            branch: Branch the commit was made on
            hash: Commit hash
            author: Commit author (logged only)

        Returns:
            Ids of the tasks completed by this call, possibly empty

        Raises:
            InvalidRequestError: If message is missing or not a string
            StorageError: If pending tasks cannot be read
            CommitProcessingError: If some matches could not be stamped; raised
                after every match has been attempted
        """
        if not isinstance(message, str) or not message:
            raise InvalidRequestError("message is required")

        if repo:
            self.store.upsert_repo(repo)

        pending = self.store.find_pending_tasks()
        matches = [task for task in pending if contains_title(message, task.title)]

        completed_ids: List[str] = []
        failed_ids: List[str] = []
        last_error: Optional[StorageError] = None

        for task in matches:
            fields = {
                "completed_at": utcnow(),
                "auto_completed": True,
                "completed_by": COMPLETED_BY_GIT,
                "git_commit_hash": hash or None,
                "git_commit_repo": repo or None,
                "git_commit_branch": branch or None,
                "git_commit_message": message,
            }
            try:
                stamped = self.store.complete_if_pending(task.id, fields)
            except StorageError as e:
                logger.error("commit_stamp_failed", task_id=task.id, error=str(e))
                failed_ids.append(task.id)
                last_error = e
                continue

            if stamped:
                completed_ids.append(task.id)
            else:
                logger.debug("commit_stamp_skipped", task_id=task.id, reason="already completed")

        logger.info(
            "commit_processed",
            repo=repo,
            branch=branch,
            hash=hash,
            author=author,
            pending=len(pending),
            matched=len(completed_ids),
            failed=len(failed_ids),
        )

        if failed_ids:
            raise CommitProcessingError(completed_ids, failed_ids, cause=last_error)

        return completed_ids

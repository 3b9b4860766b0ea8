"""Text matching: edit distance and commit-driven task completion."""

from devtodo.matching.commit_matcher import CommitMatcher
from devtodo.matching.similarity import (
    DEDUP_RATIO,
    TODO_MATCH_RATIO,
    contains_title,
    distance,
    is_duplicate_title,
    matches_todo,
)

__all__ = [
    "CommitMatcher",
    "DEDUP_RATIO",
    "TODO_MATCH_RATIO",
    "contains_title",
    "distance",
    "is_duplicate_title",
    "matches_todo",
]

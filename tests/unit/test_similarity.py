"""Tests for edit distance and title matching."""

import pytest

from devtodo.matching.similarity import (
    contains_title,
    distance,
    is_duplicate_title,
    matches_todo,
)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
        ("", "abc", 3),
        ("abc", "", 3),
        ("", "", 0),
    ],
)
def test_distance(a, b, expected):
    """Test Levenshtein distance on known pairs."""
    assert distance(a, b) == expected


def test_distance_ignores_case():
    assert distance("Add Dark Mode", "add dark mode") == 0


def test_distance_is_symmetric():
    assert distance("refactor api", "refactor the api") == distance("refactor the api", "refactor api")


def test_near_identical_titles_are_duplicates():
    """Two edits against a 20 character title is under the 25% threshold."""
    assert is_duplicate_title("Add dark mode toggle", "Add a dark mode toggle")


def test_different_titles_are_not_duplicates():
    assert not is_duplicate_title("Add dark mode", "Fix login crash")


def test_duplicate_threshold_uses_shorter_title():
    # Distance 9, shorter title 20 chars: threshold is 5
    assert distance("Add dark mode toggle", "Add a dark mode toggle button") == 9
    assert not is_duplicate_title("Add dark mode toggle", "Add a dark mode toggle button")


def test_duplicate_threshold_is_strict():
    # 8 chars * 0.25 = 2; a distance of exactly 2 is not below it
    assert distance("abcdefgh", "abcdefXY") == 2
    assert not is_duplicate_title("abcdefgh", "abcdefXY")
    assert is_duplicate_title("abcdefgh", "abcdefgX")


def test_todo_matches_close_title():
    """Test todo matching at 30% of the todo length."""
    assert matches_todo("Fix login crash", "Fix the login crash")
    assert not matches_todo("Fix login crash", "Add dark mode toggle")


def test_contains_title_is_case_insensitive():
    assert contains_title("feat: ADD DARK MODE to settings", "Add dark mode")


def test_contains_title_requires_contiguous_text():
    assert not contains_title("the service is down", "deploy service")


def test_contains_title_has_no_word_boundaries():
    assert contains_title("redeploy services", "deploy service")

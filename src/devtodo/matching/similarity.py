"""Edit-distance text comparison used to decide whether two texts name the same task."""

# Two extracted titles are the same task when their distance is below this
# fraction of the shorter title.
DEDUP_RATIO = 0.25

# A Claude todo matches an extracted task when the distance is below this
# fraction of the todo text.
TODO_MATCH_RATIO = 0.3


def distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings, ignoring case.

    Insertions, deletions and substitutions all cost 1. When either string
    is empty the distance is the length of the longer one.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character edits
    """
    a = (a or "").casefold()
    b = (b or "").casefold()
    if not a or not b:
        return max(len(a), len(b))

    # Keep the shorter string in the inner loop
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    current[j - 1] + 1,
                    previous[j] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def is_duplicate_title(existing: str, candidate: str, ratio: float = DEDUP_RATIO) -> bool:
    """Whether two task titles should collapse into one task.

    Args:
        existing: Title already accepted
        candidate: New title
        ratio: Fraction of the shorter title length allowed as edits

    Returns:
        True if the titles are within the threshold
    """
    threshold = min(len(existing), len(candidate)) * ratio
    return distance(existing, candidate) < threshold


def matches_todo(todo: str, title: str, ratio: float = TODO_MATCH_RATIO) -> bool:
    """Whether a Claude todo refers to an extracted task title."""
    return distance(todo, title) < len(todo) * ratio


def contains_title(message: str, title: str) -> bool:
    """Case-insensitive substring containment of a task title in a message.

    No word boundaries: "deploy service" is found in "redeploy services".
    """
    return title.lower() in message.lower()

"""Tolerant JSON parsing for LLM responses."""

import json
import re
from typing import Any, Callable, Dict, List, Optional

_CODE_FENCE = re.compile(r"```(?:json)?\n?|\n?```")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_OBJECT = re.compile(r",\s*}")
_TRAILING_COMMA_ARRAY = re.compile(r",\s*]")
_UNQUOTED_KEY = re.compile(r"([{,]\s*)(\w+)(\s*:)")


def _direct(text: str) -> Any:
    return json.loads(text)


def _strip_code_fences(text: str) -> Any:
    return json.loads(_CODE_FENCE.sub("", text).strip())


def _embedded_object(text: str) -> Any:
    match = _OBJECT_SPAN.search(text)
    if match is None:
        return None
    return json.loads(match.group(0))


def _repaired_object(text: str) -> Any:
    fixed = _TRAILING_COMMA_OBJECT.sub("}", text)
    fixed = _TRAILING_COMMA_ARRAY.sub("]", fixed)
    fixed = _UNQUOTED_KEY.sub(r'\1"\2"\3', fixed)
    return _embedded_object(fixed)


# Tried in order; the first strategy yielding a JSON object wins.
STRATEGIES: List[Callable[[str], Any]] = [
    _direct,
    _strip_code_fences,
    _embedded_object,
    _repaired_object,
]


def parse_json_safe(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a JSON object out of free-form LLM output.

    Handles raw JSON, JSON in markdown code fences, JSON surrounded by prose,
    and JSON with trailing commas or unquoted keys.

    Args:
        text: Raw model output

    Returns:
        The parsed object, or None if no strategy produced one
    """
    if not text:
        return None

    for strategy in STRATEGIES:
        try:
            parsed = strategy(text)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None

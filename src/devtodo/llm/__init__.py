"""LLM integration for task classification."""

from devtodo.llm.base import BaseLLMProvider
from devtodo.llm.cache import LLMCache
from devtodo.llm.classifier import (
    Classified,
    ClassificationResult,
    ParseFailure,
    RequestFailure,
    TaskClassifier,
)
from devtodo.llm.openai_provider import OpenAIProvider
from devtodo.llm.parsing import parse_json_safe
from devtodo.llm.prompts import PromptTemplates

__all__ = [
    "BaseLLMProvider",
    "OpenAIProvider",
    "LLMCache",
    "PromptTemplates",
    "TaskClassifier",
    "ClassificationResult",
    "Classified",
    "ParseFailure",
    "RequestFailure",
    "parse_json_safe",
]

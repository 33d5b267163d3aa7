"""Thinking/reasoning extraction and filtering."""

from .extractors import (
    THINKING_EXTRACTORS,
    ModelResponseEnvelope,
    ThinkingExtractor,
    TokenUsage,
    get_extractor,
)
from .filter import filter_thinking_content, strip_thinking, strip_thinking_patterns

__all__ = [
    "THINKING_EXTRACTORS",
    "ModelResponseEnvelope",
    "ThinkingExtractor",
    "TokenUsage",
    "filter_thinking_content",
    "get_extractor",
    "strip_thinking",
    "strip_thinking_patterns",
]

"""Thinking-content filter.

Hidden model reasoning must never reach the caller. Explicit
``reasoning``/``thinking`` fields are dropped, and textual markers that
some models inline into their answer are stripped from the content.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .extractors import ModelResponseEnvelope, ThinkingExtractor, get_extractor

logger = logging.getLogger("vision-mcp")

# Below this length, content that came with explicit reasoning is treated
# as a thinking-only answer and dropped.
MIN_CONTENT_WITH_REASONING = 10

_TAGS = r"(?:thinking|think|reasoning)"

THINKING_PATTERNS: list[re.Pattern[str]] = [
    # Innermost tagged block first so nested blocks unwind over passes
    re.compile(rf"<({_TAGS})>(?:(?!<{_TAGS}>).)*?</\1>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<<analysis>>.*?<<analysis>>", re.IGNORECASE | re.DOTALL),
    re.compile(r"^[ \t]*(?:Reasoning|Thoughts|Analysis):.*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"```(?:thinking|reasoning)\b.*?```", re.IGNORECASE | re.DOTALL),
    re.compile(r"\[thinking\](?:(?!\[thinking\]).)*?\[/thinking\]", re.IGNORECASE | re.DOTALL),
]

# Unpaired markers, removed once every block pattern has stopped matching
_LEFTOVER_MARKERS = re.compile(rf"</?{_TAGS}>|<<analysis>>|\[/?thinking\]", re.IGNORECASE)

_EXCESS_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")


def strip_thinking_patterns(text: str) -> str:
    """Remove textual thinking markers, repeating until nothing matches."""
    if not text:
        return ""

    cleaned = text
    removed = 0
    changed = True
    while changed:
        changed = False
        for pattern in THINKING_PATTERNS:
            cleaned, count = pattern.subn("", cleaned)
            if count:
                removed += count
                changed = True

    cleaned, count = _LEFTOVER_MARKERS.subn("", cleaned)
    removed += count

    if removed:
        logger.debug(
            "Stripped %d thinking pattern(s), %d chars removed",
            removed,
            len(text) - len(cleaned),
        )
    return _EXCESS_BLANK_LINES.sub("\n\n", cleaned.strip())


def strip_thinking(envelope: ModelResponseEnvelope) -> str:
    """Return the envelope's content with all thinking removed.

    Explicit reasoning/thinking fields are only logged. If the stripped
    content is shorter than ``MIN_CONTENT_WITH_REASONING`` and such a field
    was present, the answer is empty rather than falling back to it.
    """
    has_reasoning = bool(envelope.reasoning or envelope.thinking)
    if has_reasoning:
        logger.debug(
            "Ignoring explicit reasoning (%d chars) / thinking (%d chars)",
            len(envelope.reasoning),
            len(envelope.thinking),
        )

    cleaned = strip_thinking_patterns(envelope.content)

    if has_reasoning and len(cleaned) < MIN_CONTENT_WITH_REASONING:
        logger.warning(
            "Model response appears to contain only thinking content "
            "(content=%d chars, reasoning=%d chars, thinking=%d chars)",
            len(envelope.content),
            len(envelope.reasoning),
            len(envelope.thinking),
        )
        return ""
    return cleaned


def filter_thinking_content(
    payload: Any, vendor: str, extractor: ThinkingExtractor | None = None
) -> str:
    """Extract content from a raw vendor payload and strip all thinking."""
    envelope = (extractor or get_extractor(vendor))(payload)
    return strip_thinking(envelope)

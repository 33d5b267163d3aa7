"""Per-vendor extraction of content, reasoning and usage from raw payloads."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("vision-mcp")


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    def to_dict(self) -> dict[str, int | None]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class ModelResponseEnvelope:
    """Vendor-specific extraction result. Never leaves the adapter layer."""

    content: str = ""
    reasoning: str = ""
    thinking: str = ""
    raw: Any = field(default=None, repr=False)
    usage: TokenUsage | None = None
    model: str | None = None


ThinkingExtractor = Callable[[Any], ModelResponseEnvelope]


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def _first(items: Any) -> Any:
    return items[0] if isinstance(items, list) and items else None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _openai_usage(payload: Any) -> TokenUsage | None:
    usage = _get(payload, "usage")
    if not isinstance(usage, dict):
        return None
    return TokenUsage(
        prompt_tokens=usage.get("prompt_tokens"),
        completion_tokens=usage.get("completion_tokens"),
        total_tokens=usage.get("total_tokens"),
    )


def extract_openai_thinking(payload: Any) -> ModelResponseEnvelope:
    """OpenAI-compatible chat completions (``choices[0].message``)."""
    message = _get(_first(_get(payload, "choices")), "message") or {}
    return ModelResponseEnvelope(
        content=_text(message.get("content")),
        reasoning=_text(message.get("reasoning"))
        or _text(message.get("reasoning_content")),
        raw=payload,
        usage=_openai_usage(payload),
        model=_get(payload, "model"),
    )


def extract_glm_thinking(payload: Any) -> ModelResponseEnvelope:
    """GLM returns its chain of thought in ``reasoning`` or ``thinking``."""
    message = _get(_first(_get(payload, "choices")), "message") or {}
    return ModelResponseEnvelope(
        content=_text(message.get("content")),
        reasoning=_text(message.get("reasoning"))
        or _text(message.get("reasoning_content")),
        thinking=_text(message.get("thinking")),
        raw=payload,
        usage=_openai_usage(payload),
        model=_get(payload, "model"),
    )


def extract_claude_thinking(payload: Any) -> ModelResponseEnvelope:
    """Anthropic Messages API: ``content`` is a list of typed blocks."""
    blocks = _get(payload, "content")
    blocks = blocks if isinstance(blocks, list) else []

    texts = [
        b["text"] for b in blocks
        if isinstance(b, dict) and b.get("type") == "text" and _text(b.get("text"))
    ]
    thoughts = [
        _text(b.get("thinking")) for b in blocks
        if isinstance(b, dict) and b.get("type") in ("thinking", "redacted_thinking")
    ]
    thinking = "\n\n".join(t for t in thoughts if t) or _text(_get(payload, "thinking"))
    if not thinking and any(
        isinstance(b, dict) and b.get("type") == "redacted_thinking" for b in blocks
    ):
        thinking = "[redacted]"

    usage = _get(payload, "usage")
    token_usage = None
    if isinstance(usage, dict):
        inp = usage.get("input_tokens")
        out = usage.get("output_tokens")
        token_usage = TokenUsage(inp, out, (inp or 0) + (out or 0))

    return ModelResponseEnvelope(
        content="\n\n".join(texts),
        thinking=thinking,
        raw=payload,
        usage=token_usage,
        model=_get(payload, "model"),
    )


def extract_gemini_thinking(payload: Any) -> ModelResponseEnvelope:
    """Gemini generateContent: official ``content.parts`` or proxy ``output.parts``."""
    candidate = _first(_get(payload, "candidates"))
    if candidate is None:
        logger.warning("No candidates in Gemini response")
        return ModelResponseEnvelope(raw=payload)

    parts = _get(_get(candidate, "content"), "parts") or _get(
        _get(candidate, "output"), "parts"
    )
    parts = parts if isinstance(parts, list) else []

    texts: list[str] = []
    thoughts: list[str] = []
    for part in parts:
        text = _text(_get(part, "text"))
        if not text:
            continue
        (thoughts if part.get("thought") is True else texts).append(text)

    meta = _get(payload, "usageMetadata") or _get(payload, "usage")
    usage = None
    if isinstance(meta, dict):
        prompt = meta.get("promptTokenCount") or meta.get("inputTokens")
        completion = meta.get("candidatesTokenCount") or meta.get("outputTokens")
        total = (
            meta.get("totalTokenCount")
            or meta.get("totalTokens")
            or (prompt or 0) + (completion or 0)
        )
        usage = TokenUsage(prompt, completion, total)

    return ModelResponseEnvelope(
        content="\n\n".join(texts),
        thinking="\n\n".join(thoughts),
        raw=payload,
        usage=usage,
        model=_get(payload, "modelVersion"),
    )


THINKING_EXTRACTORS: dict[str, ThinkingExtractor] = {
    "glm": extract_glm_thinking,
    "siliconflow": extract_openai_thinking,
    "modelscope": extract_openai_thinking,
    "openai": extract_openai_thinking,
    "claude": extract_claude_thinking,
    "gemini": extract_gemini_thinking,
}


def get_extractor(vendor: str) -> ThinkingExtractor:
    """Extractor for a vendor id; unknown ids use the OpenAI-compatible one."""
    extractor = THINKING_EXTRACTORS.get(vendor.lower())
    if extractor is None:
        logger.warning(
            "No thinking extractor for vendor %r, using OpenAI-compatible extraction",
            vendor,
        )
        return extract_openai_thinking
    return extractor

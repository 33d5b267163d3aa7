"""Vision adapter abstraction implemented by every vendor adapter."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..config import ModelConfig
from ..exceptions import ModelAPIError, VisionMCPError
from ..thinking import ThinkingExtractor, TokenUsage, get_extractor, strip_thinking
from .http import HttpTransport
from .resilience import RetryEngine

logger = logging.getLogger("vision-mcp")


@dataclass(frozen=True)
class VisionModelResponse:
    """Vendor-neutral result. ``content`` has already been thinking-filtered."""

    content: str
    usage: TokenUsage | None = None
    model: str | None = None


def _preview(payload: Any, limit: int = 500) -> str:
    try:
        text = json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        text = repr(payload)
    return text if len(text) <= limit else f"{text[:limit]}... (truncated)"


def _response_shape(payload: Any) -> dict[str, Any]:
    """Structural facts about a vendor payload. Never includes model text."""
    if not isinstance(payload, dict):
        return {"payloadType": type(payload).__name__}

    shape: dict[str, Any] = {"topLevelKeys": sorted(str(k) for k in payload)}

    choices = payload.get("choices")
    if isinstance(choices, list):
        shape["choiceCount"] = len(choices)
        reasons = [
            c["finish_reason"]
            for c in choices
            if isinstance(c, dict) and isinstance(c.get("finish_reason"), str)
        ]
        if reasons:
            shape["finishReasons"] = reasons

    blocks = payload.get("content")
    if isinstance(blocks, list):
        shape["blockTypes"] = [
            b["type"] for b in blocks if isinstance(b, dict) and isinstance(b.get("type"), str)
        ]
    if isinstance(payload.get("stop_reason"), str):
        shape["stopReason"] = payload["stop_reason"]

    candidates = payload.get("candidates")
    if isinstance(candidates, list):
        shape["candidateCount"] = len(candidates)
        reasons = [
            c["finishReason"]
            for c in candidates
            if isinstance(c, dict) and isinstance(c.get("finishReason"), str)
        ]
        if reasons:
            shape["finishReasons"] = reasons
    return shape


def parse_vendor_response(
    payload: Any,
    vendor: str,
    extractor: ThinkingExtractor,
    default_model: str | None = None,
) -> VisionModelResponse:
    """Map a raw vendor payload to a VisionModelResponse with thinking removed.

    Missing content is an upstream error. If the thinking filter itself
    fails, the unfiltered content is returned and a warning is logged.
    """
    try:
        envelope = extractor(payload)
    except Exception as e:
        logger.error("Failed to parse %s response: %s", vendor, e)
        logger.debug("Unparseable %s response: %s", vendor, _preview(payload))
        raise ModelAPIError(
            "Failed to parse model response",
            {"vendor": vendor, "responseShape": _response_shape(payload)},
            cause=e,
        )

    if not envelope.content:
        logger.debug("%s response without content: %s", vendor, _preview(payload))
        raise ModelAPIError(
            "Invalid response format: missing or invalid content",
            {"vendor": vendor, "responseShape": _response_shape(payload)},
        )

    try:
        content = strip_thinking(envelope)
    except Exception as e:
        logger.warning(
            "Failed to filter thinking content from %s response, returning raw content: %s",
            vendor,
            e,
        )
        content = envelope.content
    else:
        if len(content) < len(envelope.content):
            logger.debug(
                "Filtered thinking content from %s response: %d -> %d chars",
                vendor,
                len(envelope.content),
                len(content),
            )

    return VisionModelResponse(
        content=content,
        usage=envelope.usage,
        model=envelope.model or default_model,
    )


class VisionAdapter(ABC):
    """Abstract interface for vision-capable model vendors.

    Adapters hold no request-scoped state, so one instance serves all
    concurrent requests. Retry, transport and parsing are shared components;
    a vendor only supplies ``_attempt`` (one network round trip).
    """

    display_name = "Model"

    def __init__(
        self,
        config: ModelConfig,
        extractor: ThinkingExtractor | None = None,
        *,
        engine: RetryEngine | None = None,
        transport: HttpTransport | None = None,
    ):
        self._config = config
        self._extractor = extractor or get_extractor(config.vendor)
        self._engine = engine or RetryEngine(
            max_retries=config.max_retries, timeout_ms=config.timeout_ms
        )
        self._transport = transport or HttpTransport()

    @property
    def config(self) -> ModelConfig:
        return self._config

    @property
    def provider_name(self) -> str:
        return self._config.vendor

    @property
    def model_name(self) -> str:
        return self._config.name

    async def analyze(self, image: str, prompt: str) -> str:
        """Send an image + prompt and get the filtered text response."""
        response = await self.analyze_with_response(image, prompt)
        return response.content

    async def analyze_with_response(
        self, image: str, prompt: str
    ) -> VisionModelResponse:
        """Send an image + prompt and get content, usage and model id."""
        logger.info(
            "Analyzing image with %s (model=%s, image=%d chars)",
            self.display_name,
            self.model_name,
            len(image),
        )
        try:
            response = await self._engine.run(lambda: self._attempt(image, prompt))
        except VisionMCPError as e:
            logger.error("%s analysis failed: %s", self.display_name, e)
            raise

        logger.info(
            "%s analysis completed (%d chars)", self.display_name, len(response.content)
        )
        return response

    def _parse(self, payload: Any) -> VisionModelResponse:
        return parse_vendor_response(
            payload, self.provider_name, self._extractor, self.model_name
        )

    @abstractmethod
    async def _attempt(self, image: str, prompt: str) -> VisionModelResponse:
        """Exactly one network attempt: build, send, parse."""
        ...

    async def close(self) -> None:
        await self._transport.close()

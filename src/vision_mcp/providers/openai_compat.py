"""OpenAI-compatible vision adapter.

Covers: OpenAI (GPT-4o), SiliconFlow, ModelScope, Zhipu GLM, and any
service that implements the chat completions API with image_url parts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..config import ModelConfig
from ..thinking import ThinkingExtractor
from .base import VisionAdapter, VisionModelResponse
from .http import HttpTransport
from .resilience import RetryEngine

logger = logging.getLogger("vision-mcp")

DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.7


@dataclass(frozen=True)
class OpenAICompatOptions:
    """Per-vendor request tweaks. ``None`` omits the field from the body."""

    max_tokens: int | None = DEFAULT_MAX_TOKENS
    temperature: float | None = DEFAULT_TEMPERATURE
    image_detail: str | None = None


class OpenAICompatAdapter(VisionAdapter):
    display_name = "OpenAI-compatible"

    def __init__(
        self,
        config: ModelConfig,
        extractor: ThinkingExtractor | None = None,
        options: OpenAICompatOptions | None = None,
        *,
        display_name: str | None = None,
        engine: RetryEngine | None = None,
        transport: HttpTransport | None = None,
    ):
        super().__init__(config, extractor, engine=engine, transport=transport)
        self._options = options or OpenAICompatOptions()
        if display_name:
            self.display_name = display_name
        logger.info(
            "%s adapter initialized: model=%s, base_url=%s",
            self.display_name,
            config.name,
            config.base_url,
        )

    @property
    def endpoint(self) -> str:
        return f"{self._config.base_url}/chat/completions"

    def build_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def build_request(self, image: str, prompt: str) -> dict[str, Any]:
        image_url: dict[str, Any] = {"url": image}
        if self._options.image_detail:
            image_url["detail"] = self._options.image_detail

        body: dict[str, Any] = {
            "model": self._config.name,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": image_url},
                    ],
                }
            ],
            "stream": False,
        }
        if self._options.max_tokens is not None:
            body["max_tokens"] = self._options.max_tokens
        if self._options.temperature is not None:
            body["temperature"] = self._options.temperature
        if self._config.thinking_enabled:
            body["thinking"] = {"type": "enabled"}
        return body

    async def _attempt(self, image: str, prompt: str) -> VisionModelResponse:
        payload = await self._transport.post_json(
            self.endpoint,
            self.build_request(image, prompt),
            self.build_headers(),
            label=self.display_name,
        )
        return self._parse(payload)

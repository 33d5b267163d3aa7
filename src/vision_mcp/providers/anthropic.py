"""Anthropic (Claude) vision adapter, Messages API over plain HTTP."""

from __future__ import annotations

import logging
from typing import Any

from ..config import ModelConfig
from ..images import parse_data_url
from ..thinking import ThinkingExtractor
from .base import VisionAdapter, VisionModelResponse
from .http import HttpTransport
from .resilience import RetryEngine

logger = logging.getLogger("vision-mcp")

DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 2048


def build_image_block(image: str) -> dict[str, Any]:
    """URL images are passed by reference; data URLs become base64 blocks."""
    if image.startswith(("http://", "https://")):
        return {"type": "image", "source": {"type": "url", "url": image}}
    parsed = parse_data_url(image)
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": parsed.mime_type,
            "data": parsed.data,
        },
    }


class ClaudeAdapter(VisionAdapter):
    display_name = "Claude"

    def __init__(
        self,
        config: ModelConfig,
        extractor: ThinkingExtractor | None = None,
        *,
        engine: RetryEngine | None = None,
        transport: HttpTransport | None = None,
    ):
        super().__init__(config, extractor, engine=engine, transport=transport)
        base_url = config.base_url
        if base_url.endswith("/v1"):
            logger.warning(
                "Claude base URL should not end with /v1, stripping it: %s", base_url
            )
            base_url = base_url[: -len("/v1")]
        self._base_url = base_url
        self._api_version = config.api_version or DEFAULT_API_VERSION
        logger.info(
            "Claude adapter initialized: model=%s, base_url=%s, api_version=%s",
            config.name,
            self._base_url,
            self._api_version,
        )

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/v1/messages"

    def build_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._config.api_key,
            "anthropic-version": self._api_version,
        }

    def build_request(self, image: str, prompt: str) -> dict[str, Any]:
        return {
            "model": self._config.name,
            "max_tokens": DEFAULT_MAX_TOKENS,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        build_image_block(image),
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        }

    async def _attempt(self, image: str, prompt: str) -> VisionModelResponse:
        payload = await self._transport.post_json(
            self.endpoint,
            self.build_request(image, prompt),
            self.build_headers(),
            label=self.display_name,
        )
        return self._parse(payload)

"""Google Gemini vision adapter, generateContent over plain HTTP.

Gemini only accepts inline image bytes, so URL inputs are downloaded first.
Auth mode and image-part shape are configurable because proxies in front of
the official API differ on both.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

from ..config import ModelConfig
from ..exceptions import ModelAPIError, ModelConfigError
from ..images import parse_data_url
from ..thinking import ThinkingExtractor
from .base import VisionAdapter, VisionModelResponse
from .http import HttpTransport
from .resilience import RetryEngine

logger = logging.getLogger("vision-mcp")

DEFAULT_API_VERSION = "v1beta"
DEFAULT_MAX_OUTPUT_TOKENS = 2048
API_KEY_HEADER = "x-goog-api-key"

AUTH_MODES = ("bearer", "x-goog", "query")
IMAGE_PART_MODES = ("inline_data", "inline_bytes")


class GeminiAdapter(VisionAdapter):
    display_name = "Gemini"

    def __init__(
        self,
        config: ModelConfig,
        extractor: ThinkingExtractor | None = None,
        *,
        engine: RetryEngine | None = None,
        transport: HttpTransport | None = None,
    ):
        super().__init__(config, extractor, engine=engine, transport=transport)
        self._api_version = config.api_version or DEFAULT_API_VERSION
        self._auth_mode = (config.auth_mode or "x-goog").lower()
        self._image_part_mode = (config.image_part_mode or "inline_data").lower()

        if self._auth_mode not in AUTH_MODES:
            raise ModelConfigError(
                f"Invalid Gemini auth mode: {config.auth_mode}. "
                f"Supported: {', '.join(AUTH_MODES)}"
            )
        if self._image_part_mode not in IMAGE_PART_MODES:
            raise ModelConfigError(
                f"Invalid Gemini image part mode: {config.image_part_mode}. "
                f"Supported: {', '.join(IMAGE_PART_MODES)}"
            )

        logger.info(
            "Gemini adapter initialized: model=%s, base_url=%s, api_version=%s, "
            "auth=%s, image_part=%s",
            config.name,
            config.base_url,
            self._api_version,
            self._auth_mode,
            self._image_part_mode,
        )

    @property
    def endpoint(self) -> str:
        return (
            f"{self._config.base_url}/{self._api_version}"
            f"/models/{self._config.name}:generateContent"
        )

    def build_headers(self) -> dict[str, str]:
        if self._auth_mode == "bearer":
            return {"Authorization": f"Bearer {self._config.api_key}"}
        if self._auth_mode == "x-goog":
            return {API_KEY_HEADER: self._config.api_key}
        return {}

    def build_params(self) -> dict[str, str] | None:
        if self._auth_mode == "query":
            return {"key": self._config.api_key}
        return None

    async def build_image_part(self, image: str) -> dict[str, Any]:
        if image.startswith(("http://", "https://")):
            mime_type, raw = await self._transport.download_image(image)
            data = base64.b64encode(raw).decode("ascii")
        elif image.startswith("data:"):
            parsed = parse_data_url(image)
            mime_type, data = parsed.mime_type, parsed.data
        else:
            mime_type, data = "image/png", image

        if self._image_part_mode == "inline_bytes":
            return {"mime_type": mime_type, "inline_bytes": data}
        return {"inline_data": {"mime_type": mime_type, "data": data}}

    async def build_request(self, image: str, prompt: str) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [await self.build_image_part(image), {"text": prompt}],
                }
            ],
            "generationConfig": {"maxOutputTokens": DEFAULT_MAX_OUTPUT_TOKENS},
        }

    async def _attempt(self, image: str, prompt: str) -> VisionModelResponse:
        payload = await self._transport.post_json(
            self.endpoint,
            await self.build_request(image, prompt),
            self.build_headers(),
            params=self.build_params(),
            label=self.display_name,
        )

        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not candidates:
            feedback = payload.get("promptFeedback") if isinstance(payload, dict) else None
            block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            raise ModelAPIError(
                "No candidates in Gemini response"
                + (f" (blocked: {block_reason})" if block_reason else ""),
                {"vendor": self.provider_name, "blockReason": block_reason},
            )
        return self._parse(payload)

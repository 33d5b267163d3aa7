"""Analysis orchestrator: normalize image -> compose prompt -> call adapter."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .config import VisionMCPConfig, mask_api_key
from .images import normalize_image_input
from .prompts import build_prompt
from .providers.base import VisionAdapter
from .providers.registry import ProviderRegistry, build_default_registry

logger = logging.getLogger("vision-mcp")


class AnalyzeRequest(BaseModel):
    """Inbound analyze arguments. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    image: str = Field(min_length=1, description="Image URL, base64 data URL, or local file path")
    prompt: str = Field(min_length=1, description="Analysis prompt describing the task")
    output_format: Literal["text", "json"] = "text"
    template: str | None = None


@dataclass
class AnalysisResult:
    content: str
    format: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "format": self.format, "metadata": self.metadata}


class VisionAnalyzer:
    """Owns the model config and the single adapter built from it.

    Holds no per-request state, so concurrent ``analyze`` calls are safe.
    """

    def __init__(
        self,
        config: VisionMCPConfig,
        registry: ProviderRegistry | None = None,
        adapter: VisionAdapter | None = None,
    ):
        self._config = config
        self._registry = registry or build_default_registry()
        self._adapter = adapter or self._registry.create_adapter(config.model)
        logger.info(
            "Vision analyzer initialized: %s / %s",
            config.model.vendor,
            config.model.name,
        )

    @property
    def config(self) -> VisionMCPConfig:
        return self._config

    @property
    def adapter(self) -> VisionAdapter:
        return self._adapter

    async def analyze(self, request: AnalyzeRequest) -> AnalysisResult:
        start = time.monotonic()
        request_id = uuid.uuid4().hex[:8]
        model = self._config.model
        logger.info(
            "[%s] Vision analysis started (vendor=%s, image=%d chars, template=%s)",
            request_id,
            model.vendor,
            len(request.image),
            request.template or "auto",
        )

        try:
            image = await normalize_image_input(
                request.image, self._config.strict_url_validation
            )
            logger.debug(
                "[%s] Image normalized: %s, %s", request_id, image.kind.value, image.mime_type
            )

            prompt = build_prompt(request.template, request.prompt, request.output_format)
            logger.debug("[%s] Prompt built (%d chars)", request_id, len(prompt))

            response = await self._adapter.analyze_with_response(image.data, prompt)
        except Exception as e:
            logger.error(
                "[%s] Vision analysis failed after %dms: %s",
                request_id,
                int((time.monotonic() - start) * 1000),
                e,
            )
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = AnalysisResult(
            content=response.content,
            format=request.output_format,
            metadata={
                "modelType": model.vendor,
                "modelName": model.name,
                "imageFormat": image.mime_type,
                "processingTimeMs": elapsed_ms,
                "imageSize": image.size,
            },
        )
        logger.info(
            "[%s] Vision analysis completed in %dms (%d chars)",
            request_id,
            elapsed_ms,
            len(result.content),
        )
        return result

    def config_info(self) -> dict[str, Any]:
        """Current model settings with the API key masked."""
        model = self._config.model
        return {
            "type": model.vendor,
            "name": model.name,
            "baseUrl": model.base_url,
            "apiKey": mask_api_key(model.api_key),
            "timeout": model.timeout_ms,
            "maxRetries": model.max_retries,
            "strictUrlValidation": self._config.strict_url_validation,
        }

    async def close(self) -> None:
        await self._adapter.close()

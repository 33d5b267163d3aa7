"""Inbound tool handlers.

Protocol-agnostic: each handler returns a ToolResponse and never raises.
Failures are rendered through ``VisionMCPError.to_dict()``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from . import prompts
from .analyzer import AnalyzeRequest, VisionAnalyzer
from .exceptions import InvalidInputError, VisionMCPError, to_vision_error

logger = logging.getLogger("vision-mcp")


@dataclass
class ToolResponse:
    payload: Any
    is_error: bool = False

    def to_text(self) -> str:
        return json.dumps(self.payload, indent=2, ensure_ascii=False)


def _error_response(error: BaseException, context: str) -> ToolResponse:
    vision_error = to_vision_error(error, context)
    logger.error("%s failed: [%s] %s", context, vision_error.kind.value, vision_error.message)
    return ToolResponse(vision_error.to_dict(), is_error=True)


def _validation_error(e: ValidationError) -> VisionMCPError:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
    )
    return InvalidInputError(problems, cause=e)


async def analyze_image(
    analyzer: VisionAnalyzer,
    image: str,
    prompt: str,
    output_format: str = "text",
    template: str | None = None,
) -> ToolResponse:
    try:
        request = AnalyzeRequest(
            image=image, prompt=prompt, output_format=output_format, template=template
        )
    except ValidationError as e:
        return _error_response(_validation_error(e), "analyze_image")

    try:
        result = await analyzer.analyze(request)
    except Exception as e:
        return _error_response(e, "analyze_image")
    return ToolResponse(result.to_dict())


def list_templates() -> ToolResponse:
    return ToolResponse(prompts.list_templates())


def get_config(analyzer: VisionAnalyzer) -> ToolResponse:
    try:
        return ToolResponse(analyzer.config_info())
    except Exception as e:
        return _error_response(e, "get_config")

"""Custom exception hierarchy for vision-mcp.

All vision-mcp exceptions inherit from VisionMCPError and carry a kind,
a sanitized details dict and a timestamp, so they can be serialized and
returned to a client without leaking credentials:

    try:
        result = await analyzer.analyze(request)
    except ImageLoadError as e:
        print(f"Could not read the image: {e}")
    except VisionMCPError as e:
        print(json.dumps(e.to_dict()))
"""

from __future__ import annotations

import logging
import re
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger("vision-mcp")

MASK = "***"

# Query parameters that carry credentials. Only the value is replaced.
_CREDENTIAL_PARAM = re.compile(
    r"([?&](?:key|api_key|apikey|api-key|token|access_token)=)([^&\s'\"\\]+)",
    re.IGNORECASE,
)


class ErrorKind(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    MODEL_CONFIG_ERROR = "MODEL_CONFIG_ERROR"
    IMAGE_LOAD_ERROR = "IMAGE_LOAD_ERROR"
    MODEL_API_ERROR = "MODEL_API_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def sanitize_text(text: str) -> str:
    """Mask credential query-parameter values inside a string."""
    return _CREDENTIAL_PARAM.sub(lambda m: m.group(1) + MASK, text)


def sanitize_details(value: Any) -> Any:
    """Recursively mask credentials in strings nested in dicts and lists."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {k: sanitize_details(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_details(item) for item in value]
    return value


class VisionMCPError(Exception):
    """Base exception for all vision-mcp errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN_ERROR
    prefix: str = ""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.message = f"{self.prefix}{message}" if self.prefix else message
        super().__init__(self.message)
        self.details: dict[str, Any] = sanitize_details(dict(details or {}))
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serializable error envelope. Stack traces only appear at debug level."""
        details = dict(self.details)
        if not logger.isEnabledFor(logging.DEBUG):
            details.pop("stack", None)
        return {
            "error": {
                "message": sanitize_text(self.message),
                "kind": self.kind.value,
                "details": details,
                "timestamp": self.timestamp.isoformat(),
            }
        }


class InvalidInputError(VisionMCPError):
    """Raised when client input is malformed. Never retried."""

    kind = ErrorKind.INVALID_INPUT
    prefix = "Invalid input: "


class ModelConfigError(VisionMCPError):
    """Raised when startup configuration is missing or invalid."""

    kind = ErrorKind.MODEL_CONFIG_ERROR
    prefix = "Model configuration error: "


class ImageLoadError(VisionMCPError):
    """Raised when a local image cannot be read or decoded."""

    kind = ErrorKind.IMAGE_LOAD_ERROR
    prefix = "Failed to load image: "


class ModelAPIError(VisionMCPError):
    """Raised when the upstream vendor API fails."""

    kind = ErrorKind.MODEL_API_ERROR
    prefix = "Model API error: "

    @property
    def status(self) -> int | None:
        status = self.details.get("status")
        return status if isinstance(status, int) else None


class VisionTimeoutError(VisionMCPError):
    """Raised when the final attempt exceeds its deadline."""

    kind = ErrorKind.TIMEOUT_ERROR
    prefix = "Request timeout: "


def to_vision_error(error: BaseException, context: str = "") -> VisionMCPError:
    """Convert any exception into a VisionMCPError, keeping the original as cause."""
    if isinstance(error, VisionMCPError):
        return error

    details: dict[str, Any] = {"originalError": type(error).__name__}
    if logger.isEnabledFor(logging.DEBUG):
        details["stack"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    message = str(error) or "An unknown error occurred"
    if context:
        message = f"{context}: {message}"
    return VisionMCPError(message, details, cause=error)

"""Vision adapters: OpenAI-compatible, Anthropic Claude, Google Gemini."""

from .base import VisionAdapter, VisionModelResponse, parse_vendor_response
from .registry import (
    ProviderDefaults,
    ProviderDefinition,
    ProviderRegistry,
    build_default_registry,
)
from .resilience import RetryEngine

__all__ = [
    "ProviderDefaults",
    "ProviderDefinition",
    "ProviderRegistry",
    "RetryEngine",
    "VisionAdapter",
    "VisionModelResponse",
    "build_default_registry",
    "parse_vendor_response",
]

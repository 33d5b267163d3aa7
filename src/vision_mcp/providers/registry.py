"""Provider registry: vendor id -> defaults, key validator, extractor, factory."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..config import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_MS, ModelConfig
from ..exceptions import ModelConfigError
from ..thinking import ThinkingExtractor
from ..thinking.extractors import (
    extract_claude_thinking,
    extract_gemini_thinking,
    extract_glm_thinking,
    extract_openai_thinking,
)
from .anthropic import ClaudeAdapter
from .base import VisionAdapter
from .google import GeminiAdapter
from .openai_compat import OpenAICompatAdapter, OpenAICompatOptions

logger = logging.getLogger("vision-mcp")

AdapterFactory = Callable[[ModelConfig, ThinkingExtractor], VisionAdapter]
# Returns a warning message for a suspicious key, or None. Never rejects.
KeyValidator = Callable[[str], "str | None"]


@dataclass(frozen=True)
class ProviderDefaults:
    base_url: str
    model_name: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    api_version: str = ""


@dataclass(frozen=True)
class ProviderDefinition:
    vendor: str
    display_name: str
    defaults: ProviderDefaults
    adapter_factory: AdapterFactory
    thinking_extractor: ThinkingExtractor
    validate_api_key: KeyValidator | None = None
    enable_thinking: bool = False
    api_version_env: str | None = None


class ProviderRegistry:
    def __init__(self) -> None:
        self._providers: dict[str, ProviderDefinition] = {}

    def register(self, definition: ProviderDefinition) -> None:
        if definition.vendor in self._providers:
            raise ModelConfigError(
                f"Provider already registered: {definition.vendor}",
                {"vendor": definition.vendor},
            )
        self._providers[definition.vendor] = definition
        logger.debug("Registered provider: %s", definition.vendor)

    def get(self, vendor: str) -> ProviderDefinition | None:
        return self._providers.get(vendor)

    def has(self, vendor: str) -> bool:
        return vendor in self._providers

    def supported_vendors(self) -> list[str]:
        return list(self._providers)

    def definitions(self) -> list[ProviderDefinition]:
        return list(self._providers.values())

    def create_adapter(self, config: ModelConfig) -> VisionAdapter:
        """Build the adapter for ``config.vendor`` with its thinking extractor."""
        definition = self._providers.get(config.vendor)
        if definition is None:
            raise ModelConfigError(
                f"Unsupported model type: {config.vendor}. "
                f"Supported types: {', '.join(self._providers)}",
                {"vendor": config.vendor, "supportedTypes": self.supported_vendors()},
            )
        return definition.adapter_factory(config, definition.thinking_extractor)


def _prefix_validator(prefix: str, vendor_label: str) -> KeyValidator:
    def validate(api_key: str) -> str | None:
        if not api_key.startswith(prefix):
            return f"{vendor_label} API key usually starts with '{prefix}'"
        return None

    return validate


def _validate_glm_key(api_key: str) -> str | None:
    if "." not in api_key:
        return "GLM API key format looks unusual (expected '<id>.<secret>')"
    return None


def _validate_claude_key(api_key: str) -> str | None:
    if not api_key.startswith("sk-ant-"):
        return (
            "Claude API key usually starts with 'sk-ant-' "
            "(proxies may use a different format)"
        )
    return None


def _validate_gemini_key(api_key: str) -> str | None:
    if len(api_key) < 10:
        return "Gemini API key looks too short"
    return None


def _openai_compat_factory(
    display_name: str, options: OpenAICompatOptions | None = None
) -> AdapterFactory:
    def factory(config: ModelConfig, extractor: ThinkingExtractor) -> VisionAdapter:
        return OpenAICompatAdapter(
            config, extractor, options, display_name=display_name
        )

    return factory


def build_default_registry() -> ProviderRegistry:
    """Registry with the six built-in vendors."""
    registry = ProviderRegistry()

    registry.register(
        ProviderDefinition(
            vendor="glm",
            display_name="Zhipu GLM",
            defaults=ProviderDefaults(
                base_url="https://open.bigmodel.cn/api/paas/v4",
                model_name="glm-4.6v",
            ),
            adapter_factory=_openai_compat_factory(
                "GLM", OpenAICompatOptions(max_tokens=None, temperature=None)
            ),
            thinking_extractor=extract_glm_thinking,
            validate_api_key=_validate_glm_key,
            enable_thinking=True,
        )
    )
    registry.register(
        ProviderDefinition(
            vendor="siliconflow",
            display_name="SiliconFlow",
            defaults=ProviderDefaults(
                base_url="https://api.siliconflow.cn/v1",
                model_name="Qwen/Qwen2-VL-72B-Instruct",
            ),
            adapter_factory=_openai_compat_factory(
                "SiliconFlow", OpenAICompatOptions(image_detail="auto")
            ),
            thinking_extractor=extract_openai_thinking,
            validate_api_key=_prefix_validator("sk-", "SiliconFlow"),
        )
    )
    registry.register(
        ProviderDefinition(
            vendor="modelscope",
            display_name="ModelScope",
            defaults=ProviderDefaults(
                base_url="https://api-inference.modelscope.cn/v1",
                model_name="ZhipuAI/GLM-4.6V",
            ),
            adapter_factory=_openai_compat_factory("ModelScope"),
            thinking_extractor=extract_openai_thinking,
            validate_api_key=_prefix_validator("ms-", "ModelScope"),
        )
    )
    registry.register(
        ProviderDefinition(
            vendor="openai",
            display_name="OpenAI",
            defaults=ProviderDefaults(
                base_url="https://api.openai.com/v1",
                model_name="gpt-4o",
            ),
            adapter_factory=_openai_compat_factory("OpenAI"),
            thinking_extractor=extract_openai_thinking,
            validate_api_key=_prefix_validator("sk-", "OpenAI"),
        )
    )
    registry.register(
        ProviderDefinition(
            vendor="claude",
            display_name="Anthropic Claude",
            defaults=ProviderDefaults(
                base_url="https://api.anthropic.com",
                model_name="claude-3-5-sonnet-20241022",
                api_version="2023-06-01",
            ),
            adapter_factory=lambda config, extractor: ClaudeAdapter(config, extractor),
            thinking_extractor=extract_claude_thinking,
            validate_api_key=_validate_claude_key,
            api_version_env="VISION_CLAUDE_API_VERSION",
        )
    )
    registry.register(
        ProviderDefinition(
            vendor="gemini",
            display_name="Google Gemini",
            defaults=ProviderDefaults(
                base_url="https://generativelanguage.googleapis.com",
                model_name="gemini-2.0-flash-exp",
                api_version="v1beta",
            ),
            adapter_factory=lambda config, extractor: GeminiAdapter(config, extractor),
            thinking_extractor=extract_gemini_thinking,
            validate_api_key=_validate_gemini_key,
            api_version_env="VISION_GEMINI_API_VERSION",
        )
    )
    return registry

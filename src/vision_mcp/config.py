"""Configuration loading and validation.

Settings are resolved once at startup from a YAML file (with ``${ENV}``
interpolation), environment variables and the selected provider's
defaults, in that order of priority. The result is immutable.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ModelConfigError

if TYPE_CHECKING:
    from .providers.registry import ProviderRegistry


logger = logging.getLogger("vision-mcp")

DEFAULT_TIMEOUT_MS = 60000
DEFAULT_MAX_RETRIES = 2


class ModelConfig(BaseModel):
    """Resolved per-process model settings. Owned by the analyzer and its adapter."""

    model_config = ConfigDict(frozen=True)

    vendor: str
    name: str
    base_url: str
    api_key: str = Field(repr=False)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    thinking_enabled: bool = False
    api_version: str = ""
    auth_mode: str = ""  # Google-style only: "bearer" | "x-goog" | "query"
    image_part_mode: str = ""  # Google-style only: "inline_data" | "inline_bytes"

    @field_validator("name", "base_url", "api_key")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("timeout_ms")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Timeout must be a positive number")
        return value

    @field_validator("max_retries")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Max retries must be a non-negative number")
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class VisionMCPConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: ModelConfig
    strict_url_validation: bool = True
    log_level: str = "info"
    transport: str = "stdio"  # "stdio" | "streamable-http"
    host: str = "127.0.0.1"
    port: int = 8400


def mask_api_key(api_key: str) -> str:
    """Mask an API key for display, keeping at most 4 chars at each end."""
    if not api_key or len(api_key) <= 8:
        return "***"
    visible = min(4, len(api_key) // 4)
    hidden = max(1, len(api_key) - visible * 2)
    return f"{api_key[:visible]}{'*' * hidden}{api_key[-visible:]}"


def _interpolate_env_vars(text: str, environ: Mapping[str, str]) -> str:
    """Replace ${VAR_NAME} with environment variable values."""

    def replacer(match: re.Match) -> str:
        return environ.get(match.group(1), "")

    return re.sub(r"\$\{(\w+)\}", replacer, text)


def _parse_bool(value: Any, default: bool = True) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no", "off")


def _parse_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ModelConfigError(
            f"{field} must be an integer", {"field": field, "value": str(value)}
        )


def _raw_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect raw settings from VISION_* environment variables."""
    return {
        "model": {
            "type": environ.get("VISION_MODEL_TYPE", ""),
            "name": environ.get("VISION_MODEL_NAME", ""),
            "base_url": environ.get("VISION_API_BASE_URL", ""),
            "api_key": environ.get("VISION_API_KEY", ""),
            "timeout": environ.get("VISION_API_TIMEOUT", ""),
            "max_retries": environ.get("VISION_MAX_RETRIES", ""),
            "auth_mode": environ.get("VISION_GEMINI_AUTH_MODE", ""),
            "image_part_mode": environ.get("VISION_GEMINI_IMAGE_PART_MODE", ""),
        },
        "strict_url_validation": environ.get("VISION_STRICT_URL_VALIDATION", ""),
        "log_level": environ.get("LOG_LEVEL", ""),
        "transport": environ.get("VISION_MCP_TRANSPORT", ""),
        "host": environ.get("VISION_MCP_HOST", ""),
        "port": environ.get("VISION_MCP_PORT", ""),
    }


def _raw_from_yaml(path: Path, environ: Mapping[str, str]) -> dict[str, Any]:
    try:
        data = yaml.safe_load(_interpolate_env_vars(path.read_text(), environ))
    except yaml.YAMLError as e:
        raise ModelConfigError(
            f"Invalid YAML in {path}", {"path": str(path)}, cause=e
        )
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ModelConfigError("Config file must contain a mapping", {"path": str(path)})
    return data


def resolve_model_config(
    raw: Mapping[str, Any],
    registry: ProviderRegistry,
    environ: Mapping[str, str] | None = None,
) -> ModelConfig:
    """Merge raw model settings with the provider's defaults and validate them."""
    environ = os.environ if environ is None else environ
    vendor = str(raw.get("type") or raw.get("vendor") or "").strip()
    if not vendor:
        raise ModelConfigError("Missing VISION_MODEL_TYPE environment variable")

    provider = registry.get(vendor)
    if provider is None:
        supported = ", ".join(registry.supported_vendors())
        raise ModelConfigError(
            f"Unsupported model type: {vendor}. Supported types: {supported}",
            {"vendor": vendor, "supportedTypes": registry.supported_vendors()},
        )

    api_key = str(raw.get("api_key") or "")
    if not api_key:
        raise ModelConfigError("Missing VISION_API_KEY environment variable")

    if provider.validate_api_key:
        warning = provider.validate_api_key(api_key)
        if warning:
            logger.warning("%s (vendor=%s)", warning, vendor)

    defaults = provider.defaults
    timeout = _parse_int(raw.get("timeout"), "VISION_API_TIMEOUT")
    max_retries = _parse_int(raw.get("max_retries"), "VISION_MAX_RETRIES")
    api_version = str(raw.get("api_version") or "")
    if not api_version and provider.api_version_env:
        api_version = environ.get(provider.api_version_env, "")

    try:
        config = ModelConfig(
            vendor=vendor,
            name=str(raw.get("name") or defaults.model_name),
            base_url=str(raw.get("base_url") or defaults.base_url),
            api_key=api_key,
            timeout_ms=defaults.timeout_ms if timeout is None else timeout,
            max_retries=defaults.max_retries if max_retries is None else max_retries,
            thinking_enabled=provider.enable_thinking,
            api_version=api_version or defaults.api_version,
            auth_mode=str(raw.get("auth_mode") or ""),
            image_part_mode=str(raw.get("image_part_mode") or ""),
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ModelConfigError(problems, {"vendor": vendor}, cause=e)

    logger.info(
        "Model configuration loaded: %s / %s (%s, %s)",
        vendor,
        config.name,
        config.base_url,
        provider.display_name,
    )
    return config


def load_config(
    registry: ProviderRegistry,
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> VisionMCPConfig:
    """Load config from a YAML file or environment variables.

    Priority: config.yaml (with ${ENV} interpolation) > env vars > defaults.
    """
    environ = os.environ if environ is None else environ
    env_raw = _raw_from_env(environ)

    if path is not None:
        path = Path(path).expanduser()
        if not path.exists():
            raise ModelConfigError("Config file not found", {"path": str(path)})
        file_raw = _raw_from_yaml(path, environ)
        model_raw = {**env_raw["model"], **{
            k: v for k, v in (file_raw.get("model") or {}).items() if v not in (None, "")
        }}
        top_raw = {**env_raw, **{k: v for k, v in file_raw.items() if k != "model"}}
    else:
        model_raw = env_raw["model"]
        top_raw = env_raw

    model = resolve_model_config(model_raw, registry, environ)
    port = _parse_int(top_raw.get("port"), "VISION_MCP_PORT")

    return VisionMCPConfig(
        model=model,
        strict_url_validation=_parse_bool(top_raw.get("strict_url_validation")),
        log_level=str(top_raw.get("log_level") or "info"),
        transport=str(top_raw.get("transport") or "stdio"),
        host=str(top_raw.get("host") or "127.0.0.1"),
        port=8400 if port is None else port,
    )

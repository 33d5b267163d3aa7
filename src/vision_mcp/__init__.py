"""Vision MCP: one vision tool over many model vendors."""

__version__ = "1.0.0"

from .exceptions import (
    ErrorKind,
    ImageLoadError,
    InvalidInputError,
    ModelAPIError,
    ModelConfigError,
    VisionMCPError,
    VisionTimeoutError,
)

__all__ = [
    "__version__",
    "ErrorKind",
    "VisionMCPError",
    "InvalidInputError",
    "ModelConfigError",
    "ImageLoadError",
    "ModelAPIError",
    "VisionTimeoutError",
]

"""Image input normalization for URL, base64 data URL or local file path.

Every input is classified and turned into a canonical reference the
adapters can send: the URL itself, or a ``data:image/...;base64,`` URL.
Only four MIME types are accepted.
"""

from __future__ import annotations

import asyncio
import base64
import errno
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

from .exceptions import ImageLoadError, InvalidInputError, VisionMCPError

logger = logging.getLogger("vision-mcp")

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

EXT_TO_MIME_TYPE = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class ImageInputType(str, Enum):
    URL = "url"
    BASE64 = "base64"
    LOCAL = "local"


@dataclass(frozen=True)
class NormalizedImageInput:
    kind: ImageInputType
    original_input: str
    data: str  # URL or data URL
    mime_type: str

    @property
    def size(self) -> int:
        """Length of the encoded payload sent to the vendor."""
        return len(self.data)


@dataclass(frozen=True)
class ParsedDataUrl:
    mime_type: str
    data: str


def detect_input_type(raw: str) -> ImageInputType:
    if raw.startswith("data:image/") and ";base64," in raw:
        return ImageInputType.BASE64
    if raw.startswith("http://") or raw.startswith("https://"):
        return ImageInputType.URL
    return ImageInputType.LOCAL


def parse_data_url(data_url: str) -> ParsedDataUrl:
    """Split ``data:image/png;base64,....`` into its MIME type and payload.

    Extra parameters such as ``;charset=utf-8`` before ``;base64`` are allowed.
    """
    if not data_url.startswith("data:"):
        raise InvalidInputError('Invalid data URL: must start with "data:"')
    meta, sep, payload = data_url[5:].partition(",")
    if not sep:
        raise InvalidInputError("Invalid data URL: missing comma separator")
    if not payload:
        raise InvalidInputError("Invalid data URL: empty data part")

    params = meta.split(";")
    mime_type = params[0].lower()
    if not mime_type.startswith("image/"):
        raise InvalidInputError(f"Invalid MIME type in data URL: {mime_type}")
    if "base64" not in params[1:]:
        raise InvalidInputError("Invalid data URL: missing base64 encoding")
    return ParsedDataUrl(mime_type=mime_type, data=payload)


def mime_type_from_filename(filename: str) -> str:
    ext = Path(filename).suffix.lower()
    mime_type = EXT_TO_MIME_TYPE.get(ext)
    if mime_type is None:
        raise InvalidInputError(
            f"Unsupported file extension: {ext or '(none)'}. "
            f"Supported: {', '.join(EXT_TO_MIME_TYPE)}",
            {"filename": filename, "supportedExtensions": list(EXT_TO_MIME_TYPE)},
        )
    return mime_type


def _mime_type_from_url_path(url: str) -> str | None:
    path = urlparse(url).path.lower()
    for ext, mime_type in EXT_TO_MIME_TYPE.items():
        if path.endswith(ext):
            return mime_type
    return None


def is_image_url(url: str) -> bool:
    """True when the URL path ends in a supported image extension."""
    return _mime_type_from_url_path(url) is not None


def _normalize_base64(raw: str) -> NormalizedImageInput:
    prefix, _, payload = raw.partition(",")
    mime_type = prefix[5:].split(";")[0].lower()
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise InvalidInputError(
            f"Unsupported image MIME type: {mime_type}. "
            f"Supported: {', '.join(SUPPORTED_MIME_TYPES)}",
            {"mimeType": mime_type, "supportedTypes": list(SUPPORTED_MIME_TYPES)},
        )
    if not payload:
        raise InvalidInputError("No base64 data found in data URL")

    logger.debug("Base64 input validated: %s, %d chars", mime_type, len(payload))
    return NormalizedImageInput(ImageInputType.BASE64, raw, raw, mime_type)


def _normalize_url(raw: str, strict: bool) -> NormalizedImageInput:
    parsed = urlparse(raw)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError("Invalid URL format", {"url": raw})

    mime_type = _mime_type_from_url_path(raw)
    if mime_type is None:
        allowed = ", ".join(EXT_TO_MIME_TYPE)
        if strict:
            raise InvalidInputError(
                f"URL does not have a supported image extension (allowed: {allowed})",
                {"url": raw, "supportedExtensions": list(EXT_TO_MIME_TYPE)},
            )
        logger.warning(
            "URL does not appear to point to an image file: %s "
            "(set VISION_STRICT_URL_VALIDATION=true to reject such URLs)",
            raw,
        )
        mime_type = "image/*"

    return NormalizedImageInput(ImageInputType.URL, raw, raw, mime_type)


async def _normalize_local(raw: str) -> NormalizedImageInput:
    mime_type = mime_type_from_filename(raw)
    path = Path(raw).expanduser()

    try:
        data = await asyncio.to_thread(path.read_bytes)
    except FileNotFoundError as e:
        raise ImageLoadError("File not found", {"path": raw}, cause=e)
    except PermissionError as e:
        raise ImageLoadError("Permission denied reading file", {"path": raw}, cause=e)
    except IsADirectoryError as e:
        raise ImageLoadError("Path is a directory", {"path": raw}, cause=e)
    except OSError as e:
        reason = errno.errorcode.get(e.errno or 0, "")
        raise ImageLoadError(
            "Failed to read local file", {"path": raw, "reason": reason}, cause=e
        )

    if not data:
        raise ImageLoadError("File is empty", {"path": raw})

    encoded = base64.b64encode(data).decode("ascii")
    data_url = f"data:{mime_type};base64,{encoded}"
    logger.debug(
        "Local file %s converted to data URL (%d bytes, %s)", raw, len(data), mime_type
    )
    return NormalizedImageInput(ImageInputType.LOCAL, raw, data_url, mime_type)


async def normalize_image_input(
    raw: str, strict_url_validation: bool = True
) -> NormalizedImageInput:
    """Classify and canonicalize a raw image reference.

    Raises:
        InvalidInputError: malformed data URL, bad URL, unsupported type.
        ImageLoadError: local file missing, unreadable or empty.
    """
    if not raw or not raw.strip():
        raise InvalidInputError("Image input must not be empty")

    kind = detect_input_type(raw)
    logger.debug("Normalizing image input: %s, %d chars", kind.value, len(raw))

    try:
        if kind is ImageInputType.BASE64:
            return _normalize_base64(raw)
        if kind is ImageInputType.URL:
            return _normalize_url(raw, strict_url_validation)
        return await _normalize_local(raw)
    except VisionMCPError:
        raise
    except Exception as e:
        raise ImageLoadError(
            "Failed to normalize image input", {"type": kind.value}, cause=e
        )

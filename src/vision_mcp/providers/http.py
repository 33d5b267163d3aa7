"""Shared aiohttp transport: JSON POSTs, vendor error mapping, image download."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from ..exceptions import InvalidInputError, ModelAPIError
from ..images import SUPPORTED_MIME_TYPES

logger = logging.getLogger("vision-mcp")

MAX_ERROR_LENGTH = 500
MAX_DOWNLOAD_SIZE = 10 * 1024 * 1024  # 10 MiB
DOWNLOAD_TIMEOUT = 30.0  # seconds
_CHUNK_SIZE = 64 * 1024


def _truncate(text: str, limit: int = MAX_ERROR_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... (truncated, total length: {len(text)})"


def api_error_from_response(
    status: int,
    reason: str,
    headers: Mapping[str, str],
    body: str,
    endpoint: str,
    label: str,
) -> ModelAPIError:
    """Build a ModelAPIError from a non-2xx vendor response."""
    details: dict[str, Any] = {
        "status": status,
        "statusText": reason,
        "endpoint": endpoint,
        "errorDetails": _truncate(body),
    }
    request_id = headers.get("request-id") or headers.get("x-request-id")
    if request_id:
        details["requestId"] = request_id

    message = f"{label} API request failed: {status} {reason}".rstrip()
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        parsed = None
    error = parsed.get("error") if isinstance(parsed, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or message
        if error.get("code") is not None:
            details["errorCode"] = error.get("code")
        if error.get("type") or error.get("status"):
            details["guidance"] = error.get("type") or error.get("status")

    if status == 429:
        retry_after = headers.get("retry-after")
        details["retryAfter"] = retry_after
        details.setdefault("guidance", "Check your API quota or wait before retrying")
        hint = f"Retry after {retry_after}s. " if retry_after else ""
        message = (
            f"Rate limit exceeded (429). {hint}"
            "Please check your API quota or wait before retrying."
        )

    return ModelAPIError(message, details)


class HttpTransport:
    """One lazily created aiohttp session, shared by all requests of an adapter."""

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        headers: Mapping[str, str],
        *,
        params: Mapping[str, str] | None = None,
        label: str = "Model",
    ) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        session = self._get_session()
        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **headers,
        }
        async with session.post(
            url, json=body, headers=request_headers, params=params
        ) as resp:
            text = await resp.text()
            endpoint = str(resp.url)
            if resp.status >= 400:
                raise api_error_from_response(
                    resp.status, resp.reason or "", resp.headers, text, endpoint, label
                )
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                logger.error(
                    "Failed to parse %s response as JSON (%d chars)", label, len(text)
                )
                raise ModelAPIError(
                    "Invalid JSON response from successful request",
                    {
                        "status": resp.status,
                        "endpoint": endpoint,
                        "contentType": resp.headers.get("Content-Type"),
                        "bodyLength": len(text),
                        "bodyPreview": _truncate(text),
                        "parseError": str(e),
                    },
                    cause=e,
                )

    async def download_image(
        self,
        url: str,
        max_size: int = MAX_DOWNLOAD_SIZE,
        timeout: float = DOWNLOAD_TIMEOUT,
    ) -> tuple[str, bytes]:
        """Fetch an image for vendors that only accept inline bytes.

        Returns ``(mime_type, data)``. The size cap is checked against the
        Content-Length header and again while streaming the body.
        """
        session = self._get_session()
        logger.debug("Downloading image from %s", url)
        try:
            async with session.get(
                url, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as resp:
                if resp.status >= 400:
                    raise ModelAPIError(
                        f"Failed to download image: {resp.status} {resp.reason or ''}".rstrip(),
                        {"url": url, "status": resp.status},
                    )

                if resp.content_length is not None and resp.content_length > max_size:
                    raise InvalidInputError(
                        f"Image too large: {resp.content_length} bytes (max: {max_size})",
                        {"url": url, "size": resp.content_length, "maxSize": max_size},
                    )

                content_type = resp.headers.get("Content-Type") or "image/png"
                mime_type = content_type.split(";")[0].strip().lower()
                if mime_type not in SUPPORTED_MIME_TYPES:
                    raise InvalidInputError(
                        f"Unsupported image type: {mime_type}. "
                        f"Supported types: {', '.join(SUPPORTED_MIME_TYPES)}",
                        {
                            "url": url,
                            "mimeType": mime_type,
                            "supportedTypes": list(SUPPORTED_MIME_TYPES),
                        },
                    )

                data = bytearray()
                async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                    data.extend(chunk)
                    if len(data) > max_size:
                        raise InvalidInputError(
                            f"Downloaded image too large: more than {max_size} bytes",
                            {"url": url, "maxSize": max_size},
                        )
        except asyncio.TimeoutError as e:
            raise ModelAPIError(
                f"Image download timed out after {timeout:.0f}s",
                {"url": url, "timeoutSeconds": timeout},
                cause=e,
            )
        except aiohttp.ClientError as e:
            raise ModelAPIError(
                f"Failed to download image from URL: {url}",
                {"url": url, "error": str(e)},
                cause=e,
            )

        logger.debug("Image downloaded: %s, %d bytes", mime_type, len(data))
        return mime_type, bytes(data)

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session:
            await self._session.close()
            self._session = None

"""Tests for the shared aiohttp transport."""

from __future__ import annotations

import pytest

from conftest import Chunked
from vision_mcp.exceptions import InvalidInputError, ModelAPIError
from vision_mcp.providers.http import HttpTransport, api_error_from_response


class TestApiErrorFromResponse:
    def test_openai_style_error_body(self):
        body = '{"error": {"message": "Incorrect API key", "code": "invalid_api_key", "type": "auth"}}'
        err = api_error_from_response(401, "Unauthorized", {}, body, "http://h/x", "OpenAI")
        assert err.status == 401
        assert "Incorrect API key" in err.message
        assert err.details["errorCode"] == "invalid_api_key"
        assert err.details["guidance"] == "auth"

    def test_plain_body_truncated(self):
        err = api_error_from_response(502, "Bad Gateway", {}, "x" * 2000, "http://h", "Model")
        assert err.details["errorDetails"].startswith("x" * 500)
        assert "truncated" in err.details["errorDetails"]
        assert len(err.details["errorDetails"]) < 600
        assert "502 Bad Gateway" in err.message

    def test_rate_limit_retry_after(self):
        err = api_error_from_response(
            429, "Too Many Requests", {"retry-after": "30"}, "{}", "http://h", "Model"
        )
        assert "429" in err.message
        assert "Retry after 30s" in err.message
        assert err.details["retryAfter"] == "30"

    def test_request_id_captured(self):
        err = api_error_from_response(
            500, "Internal", {"request-id": "req_123"}, "", "http://h", "Claude"
        )
        assert err.details["requestId"] == "req_123"

    def test_endpoint_key_masked(self):
        err = api_error_from_response(
            500, "Internal", {}, "", "http://h/v1beta/models/m?key=SECRETKEY", "Gemini"
        )
        assert err.details["endpoint"] == "http://h/v1beta/models/m?key=***"


class TestPostJson:
    @pytest.mark.asyncio
    async def test_returns_json(self, stub_vendor):
        stub_vendor.queue({"ok": True})
        transport = HttpTransport()
        try:
            result = await transport.post_json(
                f"{stub_vendor.base_url}/chat", {"a": 1}, {"Authorization": "Bearer t"}
            )
        finally:
            await transport.close()
        assert result == {"ok": True}
        assert stub_vendor.last["json"] == {"a": 1}
        assert stub_vendor.last["headers"]["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_non_json_success_is_api_error(self, stub_vendor):
        stub_vendor.queue("<html>gateway</html>", headers={"Content-Type": "text/html"})
        transport = HttpTransport()
        try:
            with pytest.raises(ModelAPIError, match="Invalid JSON") as exc_info:
                await transport.post_json(f"{stub_vendor.base_url}/x", {}, {})
        finally:
            await transport.close()
        assert exc_info.value.details["bodyPreview"] == "<html>gateway</html>"

    @pytest.mark.asyncio
    async def test_http_error_status(self, stub_vendor):
        stub_vendor.queue({"error": {"message": "no such model"}}, status=404)
        transport = HttpTransport()
        try:
            with pytest.raises(ModelAPIError) as exc_info:
                await transport.post_json(f"{stub_vendor.base_url}/x", {}, {})
        finally:
            await transport.close()
        assert exc_info.value.status == 404
        assert "no such model" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_query_key_masked_in_error(self, stub_vendor):
        stub_vendor.queue("oops", status=500)
        transport = HttpTransport()
        try:
            with pytest.raises(ModelAPIError) as exc_info:
                await transport.post_json(
                    f"{stub_vendor.base_url}/x", {}, {}, params={"key": "SECRETKEY"}
                )
        finally:
            await transport.close()
        assert stub_vendor.last["query"] == {"key": "SECRETKEY"}
        assert "SECRETKEY" not in str(exc_info.value.to_dict())


class TestDownloadImage:
    @pytest.mark.asyncio
    async def test_download(self, stub_vendor):
        stub_vendor.queue(b"\x89PNG", headers={"Content-Type": "image/png"})
        transport = HttpTransport()
        try:
            mime, data = await transport.download_image(f"{stub_vendor.base_url}/a.png")
        finally:
            await transport.close()
        assert mime == "image/png"
        assert data == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_content_type_parameters_ignored(self, stub_vendor):
        stub_vendor.queue(b"jpg", headers={"Content-Type": "image/jpeg; charset=binary"})
        transport = HttpTransport()
        try:
            mime, _ = await transport.download_image(f"{stub_vendor.base_url}/a")
        finally:
            await transport.close()
        assert mime == "image/jpeg"

    @pytest.mark.asyncio
    async def test_unsupported_type(self, stub_vendor):
        stub_vendor.queue(b"GIF89a", headers={"Content-Type": "image/gif"})
        transport = HttpTransport()
        try:
            with pytest.raises(InvalidInputError, match="image/gif"):
                await transport.download_image(f"{stub_vendor.base_url}/a.gif")
        finally:
            await transport.close()

    @pytest.mark.asyncio
    async def test_too_large(self, stub_vendor):
        stub_vendor.queue(b"x" * 2048, headers={"Content-Type": "image/png"})
        transport = HttpTransport()
        try:
            with pytest.raises(InvalidInputError, match="too large"):
                await transport.download_image(f"{stub_vendor.base_url}/a.png", max_size=1024)
        finally:
            await transport.close()

    @pytest.mark.asyncio
    async def test_too_large_without_content_length(self, stub_vendor):
        stub_vendor.queue(Chunked([b"x" * 512] * 4), headers={"Content-Type": "image/png"})
        transport = HttpTransport()
        try:
            with pytest.raises(InvalidInputError, match="more than 1024 bytes"):
                await transport.download_image(f"{stub_vendor.base_url}/a.png", max_size=1024)
        finally:
            await transport.close()
        assert stub_vendor.last["path"] == "/a.png"

    @pytest.mark.asyncio
    async def test_chunked_body_within_limit(self, stub_vendor):
        stub_vendor.queue(Chunked([b"ab", b"cd"]), headers={"Content-Type": "image/webp"})
        transport = HttpTransport()
        try:
            mime, data = await transport.download_image(f"{stub_vendor.base_url}/a", max_size=1024)
        finally:
            await transport.close()
        assert mime == "image/webp"
        assert data == b"abcd"

    @pytest.mark.asyncio
    async def test_not_found_keeps_status(self, stub_vendor):
        stub_vendor.queue("missing", status=404)
        transport = HttpTransport()
        try:
            with pytest.raises(ModelAPIError) as exc_info:
                await transport.download_image(f"{stub_vendor.base_url}/a.png")
        finally:
            await transport.close()
        assert exc_info.value.status == 404

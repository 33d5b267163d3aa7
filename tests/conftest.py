"""Shared fixtures: a stub vendor HTTP server and config builders."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from vision_mcp.config import ModelConfig, VisionMCPConfig

PNG_DATA_URL = "data:image/png;base64,AAAA"


class Chunked(list):
    """Response body streamed with chunked encoding, so no Content-Length."""


class StubVendor:
    """Records every request and replays queued responses in order."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self._responses: list[tuple[int, Any, dict[str, str], float]] = []
        self.base_url = ""

    def queue(
        self,
        body: Any = None,
        status: int = 200,
        headers: dict[str, str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._responses.append((status, body, headers or {}, delay))

    @property
    def last(self) -> dict[str, Any]:
        return self.requests[-1]

    async def handle(self, request: web.Request) -> web.StreamResponse:
        raw = await request.read()
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            body = raw
        self.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "headers": request.headers.copy(),
                "json": body,
            }
        )

        if self._responses:
            status, payload, headers, delay = self._responses.pop(0)
        else:
            status, payload, headers, delay = 500, {"error": {"message": "no response queued"}}, {}, 0.0
        if delay:
            await asyncio.sleep(delay)
        if isinstance(payload, Chunked):
            resp = web.StreamResponse(status=status, headers=headers)
            resp.enable_chunked_encoding()
            await resp.prepare(request)
            for chunk in payload:
                await resp.write(chunk)
            await resp.write_eof()
            return resp
        if isinstance(payload, (dict, list)):
            return web.json_response(payload, status=status, headers=headers)
        if isinstance(payload, bytes):
            return web.Response(body=payload, status=status, headers=headers)
        return web.Response(text=payload or "", status=status, headers=headers)


@pytest_asyncio.fixture
async def stub_vendor():
    vendor = StubVendor()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", vendor.handle)
    server = TestServer(app)
    await server.start_server()
    vendor.base_url = f"http://{server.host}:{server.port}"
    try:
        yield vendor
    finally:
        await server.close()


def make_model_config(vendor: str = "openai", base_url: str = "http://127.0.0.1:1", **overrides) -> ModelConfig:
    values = {
        "vendor": vendor,
        "name": "test-model",
        "base_url": base_url,
        "api_key": "sk-test-key-1234567890",
        "timeout_ms": 5000,
        "max_retries": 0,
    }
    values.update(overrides)
    return ModelConfig(**values)


def make_config(model: ModelConfig | None = None, **overrides) -> VisionMCPConfig:
    return VisionMCPConfig(model=model or make_model_config(), **overrides)


async def no_sleep(seconds: float) -> None:
    return None

"""Tests for the inbound tool handlers."""

from __future__ import annotations

import json

import pytest

from conftest import PNG_DATA_URL, make_config, make_model_config
from vision_mcp import tools
from vision_mcp.analyzer import VisionAnalyzer
from vision_mcp.providers.base import VisionAdapter, VisionModelResponse


class ExplodingAdapter(VisionAdapter):
    async def _attempt(self, image, prompt):
        raise KeyError("unexpected")


class TestAnalyzeImageTool:
    @pytest.mark.asyncio
    async def test_success_envelope(self, stub_vendor):
        stub_vendor.queue({"choices": [{"message": {"content": "A dog on a beach"}}]})
        analyzer = VisionAnalyzer(make_config(make_model_config("openai", stub_vendor.base_url)))
        try:
            response = await tools.analyze_image(analyzer, PNG_DATA_URL, "describe")
        finally:
            await analyzer.close()
        assert response.is_error is False
        assert response.payload["content"] == "A dog on a beach"
        assert response.payload["format"] == "text"
        assert set(response.payload["metadata"]) == {
            "modelType", "modelName", "imageFormat", "processingTimeMs", "imageSize",
        }
        assert json.loads(response.to_text())["content"] == "A dog on a beach"

    @pytest.mark.asyncio
    async def test_invalid_format_is_error_envelope(self):
        analyzer = VisionAnalyzer(make_config())
        response = await tools.analyze_image(analyzer, PNG_DATA_URL, "p", output_format="yaml")
        assert response.is_error is True
        assert response.payload["error"]["kind"] == "INVALID_INPUT"
        assert "output_format" in response.payload["error"]["message"]

    @pytest.mark.asyncio
    async def test_vendor_error_is_error_envelope(self, stub_vendor):
        stub_vendor.queue({"error": {"message": "Invalid API key"}}, status=401)
        analyzer = VisionAnalyzer(make_config(make_model_config("openai", stub_vendor.base_url)))
        try:
            response = await tools.analyze_image(analyzer, PNG_DATA_URL, "p")
        finally:
            await analyzer.close()
        assert response.is_error is True
        error = response.payload["error"]
        assert error["kind"] == "MODEL_API_ERROR"
        assert error["details"]["status"] == 401
        assert "sk-test-key" not in response.to_text()

    @pytest.mark.asyncio
    async def test_reasoning_only_reply_not_echoed_in_error(self, stub_vendor):
        stub_vendor.queue(
            {
                "choices": [
                    {
                        "message": {"content": "", "reasoning_content": "hidden chain of thought"},
                        "finish_reason": "length",
                    }
                ]
            }
        )
        analyzer = VisionAnalyzer(make_config(make_model_config("glm", stub_vendor.base_url)))
        try:
            response = await tools.analyze_image(analyzer, PNG_DATA_URL, "describe")
        finally:
            await analyzer.close()
        assert response.is_error is True
        assert "hidden chain of thought" not in response.to_text()
        shape = response.payload["error"]["details"]["responseShape"]
        assert shape["choiceCount"] == 1
        assert shape["finishReasons"] == ["length"]

    @pytest.mark.asyncio
    async def test_claude_thinking_only_reply_not_echoed_in_error(self, stub_vendor):
        stub_vendor.queue(
            {
                "content": [{"type": "thinking", "thinking": "private claude thoughts"}],
                "stop_reason": "max_tokens",
            }
        )
        config = make_config(
            make_model_config("claude", stub_vendor.base_url, api_key="sk-ant-test-key-123")
        )
        analyzer = VisionAnalyzer(config)
        try:
            response = await tools.analyze_image(analyzer, PNG_DATA_URL, "describe")
        finally:
            await analyzer.close()
        assert response.is_error is True
        assert "private claude thoughts" not in response.to_text()
        shape = response.payload["error"]["details"]["responseShape"]
        assert shape["blockTypes"] == ["thinking"]
        assert shape["stopReason"] == "max_tokens"

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_raises(self):
        config = make_config()
        analyzer = VisionAnalyzer(config, adapter=ExplodingAdapter(config.model))
        response = await tools.analyze_image(analyzer, PNG_DATA_URL, "p")
        assert response.is_error is True
        assert response.payload["error"]["kind"] in ("MODEL_API_ERROR", "UNKNOWN_ERROR")

    @pytest.mark.asyncio
    async def test_image_load_error_envelope(self, tmp_path):
        analyzer = VisionAnalyzer(make_config())
        response = await tools.analyze_image(analyzer, str(tmp_path / "none.jpg"), "p")
        assert response.payload["error"]["kind"] == "IMAGE_LOAD_ERROR"


class TestOtherTools:
    def test_list_templates(self):
        response = tools.list_templates()
        assert response.is_error is False
        assert [t["id"] for t in response.payload][0] == "general-description"

    def test_get_config_masks_key(self):
        analyzer = VisionAnalyzer(make_config())
        response = tools.get_config(analyzer)
        assert response.payload["apiKey"] != "sk-test-key-1234567890"
        assert "sk-test-key-1234567890" not in response.to_text()
        assert response.payload["type"] == "openai"

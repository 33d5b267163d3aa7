"""Tests for the error taxonomy and credential sanitization."""

import logging

import pytest

from vision_mcp.exceptions import (
    ErrorKind,
    ImageLoadError,
    InvalidInputError,
    ModelAPIError,
    ModelConfigError,
    VisionMCPError,
    VisionTimeoutError,
    sanitize_details,
    sanitize_text,
    to_vision_error,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "cls,kind,prefix",
        [
            (InvalidInputError, ErrorKind.INVALID_INPUT, "Invalid input: "),
            (ModelConfigError, ErrorKind.MODEL_CONFIG_ERROR, "Model configuration error: "),
            (ImageLoadError, ErrorKind.IMAGE_LOAD_ERROR, "Failed to load image: "),
            (ModelAPIError, ErrorKind.MODEL_API_ERROR, "Model API error: "),
            (VisionTimeoutError, ErrorKind.TIMEOUT_ERROR, "Request timeout: "),
        ],
    )
    def test_kind_and_prefix(self, cls, kind, prefix):
        err = cls("boom")
        assert isinstance(err, VisionMCPError)
        assert err.kind is kind
        assert err.message == f"{prefix}boom"
        assert str(err) == err.message

    def test_base_is_unknown(self):
        assert VisionMCPError("x").kind is ErrorKind.UNKNOWN_ERROR

    def test_cause_is_chained(self):
        cause = ValueError("inner")
        err = ModelAPIError("outer", cause=cause)
        assert err.cause is cause
        assert err.__cause__ is cause

    def test_status_property(self):
        assert ModelAPIError("x", {"status": 401}).status == 401
        assert ModelAPIError("x").status is None

    def test_import_from_root(self):
        from vision_mcp import ModelAPIError as MAE
        from vision_mcp import VisionMCPError as VE

        assert issubclass(MAE, VE)


class TestSanitize:
    def test_api_key_query_param(self):
        assert sanitize_text("https://x/y?api_key=SECRET123") == "https://x/y?api_key=***"

    @pytest.mark.parametrize("param", ["key", "apikey", "api-key", "token", "access_token"])
    def test_all_credential_params(self, param):
        text = f"https://host/path?a=1&{param}=abc123&b=2"
        assert sanitize_text(text) == f"https://host/path?a=1&{param}=***&b=2"

    def test_non_credential_params_untouched(self):
        assert sanitize_text("https://x/y?page=2&monkey=1") == "https://x/y?page=2&monkey=1"

    def test_recurses_through_dicts_and_lists(self):
        details = {
            "endpoint": "https://g/v1?key=AIzaSECRET",
            "nested": {"urls": ["https://a?token=t0k", "plain"]},
            "status": 500,
        }
        clean = sanitize_details(details)
        assert clean["endpoint"] == "https://g/v1?key=***"
        assert clean["nested"]["urls"] == ["https://a?token=***", "plain"]
        assert clean["status"] == 500

    def test_error_details_are_sanitized_on_construction(self):
        err = ModelAPIError("failed", {"endpoint": "https://g?key=SECRET"})
        assert "SECRET" not in repr(err.details)

    def test_message_sanitized_in_dict(self):
        err = VisionMCPError("calling https://g?key=SECRET failed")
        assert "SECRET" not in err.to_dict()["error"]["message"]


class TestToDict:
    def test_shape(self):
        err = InvalidInputError("bad", {"field": "image"})
        body = err.to_dict()["error"]
        assert body["kind"] == "INVALID_INPUT"
        assert body["message"] == "Invalid input: bad"
        assert body["details"] == {"field": "image"}
        assert "timestamp" in body

    def test_stack_hidden_unless_debug(self):
        logger = logging.getLogger("vision-mcp")
        previous = logger.level
        try:
            logger.setLevel(logging.INFO)
            err = VisionMCPError("x", {"stack": "trace"})
            assert "stack" not in err.to_dict()["error"]["details"]
            logger.setLevel(logging.DEBUG)
            assert err.to_dict()["error"]["details"]["stack"] == "trace"
        finally:
            logger.setLevel(previous)


class TestToVisionError:
    def test_passthrough(self):
        err = ModelAPIError("x")
        assert to_vision_error(err) is err

    def test_wraps_foreign_exception(self):
        cause = RuntimeError("kaput")
        err = to_vision_error(cause, "analyze_image")
        assert err.kind is ErrorKind.UNKNOWN_ERROR
        assert err.message == "analyze_image: kaput"
        assert err.details["originalError"] == "RuntimeError"
        assert err.cause is cause

    def test_stack_only_at_debug(self):
        logger = logging.getLogger("vision-mcp")
        previous = logger.level
        try:
            logger.setLevel(logging.INFO)
            assert "stack" not in to_vision_error(RuntimeError("a")).details
            logger.setLevel(logging.DEBUG)
            assert "stack" in to_vision_error(RuntimeError("a")).details
        finally:
            logger.setLevel(previous)

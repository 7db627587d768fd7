"""Tests for structured logging module."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from calkit.core.logging import (
    _NOISE_LOGGERS,
    add_otel_context,
    add_request_context,
    configure_logging,
    get_request_context,
    reset_request_context,
    set_request_context,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


class TestRequestContext:
    def test_default_is_none(self):
        assert get_request_context() is None

    def test_set_and_reset(self):
        token = set_request_context("req-1")
        try:
            assert get_request_context() == "req-1"
        finally:
            reset_request_context(token)
        assert get_request_context() is None

    def test_processor_injects_request_id(self):
        token = set_request_context("req-2")
        try:
            result = add_request_context(None, "info", {"event": "test"})
        finally:
            reset_request_context(token)
        assert result["request_id"] == "req-2"

    def test_processor_handles_unset_context(self):
        result = add_request_context(None, "info", {"event": "test"})
        assert result["request_id"] is None


# ---------------------------------------------------------------------------
# add_otel_context processor
# ---------------------------------------------------------------------------


class TestAddOtelContext:
    def test_zeroed_ids_when_no_span(self):
        result = add_otel_context(None, "info", {"event": "test"})
        assert result["trace_id"] == "0" * 32
        assert result["span_id"] == "0" * 16

    def test_real_ids_when_span_active(self):
        from opentelemetry.sdk.trace import TracerProvider

        provider = TracerProvider()
        tracer = provider.get_tracer("test")
        with tracer.start_as_current_span("test-span"):
            result = add_otel_context(None, "info", {"event": "test"})
            assert result["trace_id"] != "0" * 32
            assert len(result["trace_id"]) == 32
            assert len(result["span_id"]) == 16
        provider.shutdown()


# ---------------------------------------------------------------------------
# configure_logging()
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_text_format_installs_console_renderer(self):
        configure_logging(fmt="text")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        formatter = root.handlers[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert any(
            isinstance(processor, structlog.dev.ConsoleRenderer)
            for processor in formatter.processors
        )

    def test_json_format_installs_json_renderer(self):
        configure_logging(fmt="json")
        formatter = logging.getLogger().handlers[0].formatter
        assert any(
            isinstance(processor, structlog.processors.JSONRenderer)
            for processor in formatter.processors
        )

    def test_reconfigure_does_not_stack_handlers(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_level_applied(self):
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_noise_loggers_quieted(self):
        configure_logging()
        for name in _NOISE_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_log_root_writes_json_files(self, tmp_path):
        configure_logging(level="INFO", fmt="text", log_root=tmp_path)
        logging.getLogger("calkit.test").info("layout computed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        app_log = tmp_path / "calkit.log"
        assert app_log.exists()
        assert (tmp_path / "uvicorn.log").exists()
        record = json.loads(app_log.read_text().strip().splitlines()[-1])
        assert record["event"] == "layout computed"
        assert record["logger"] == "calkit.test"
        assert record["level"] == "info"
        assert "trace_id" in record

    def test_server_log_receives_uvicorn_records_only(self, tmp_path):
        configure_logging(level="INFO", log_root=tmp_path)
        logging.getLogger("uvicorn.error").warning("server stopped")
        logging.getLogger("httpx").warning("request failed")
        for name in ("uvicorn.error", "httpx"):
            for handler in logging.getLogger(name).handlers:
                handler.flush()

        lines = (tmp_path / "uvicorn.log").read_text().strip().splitlines()
        events = [json.loads(line)["event"] for line in lines]
        assert events == ["server stopped"]

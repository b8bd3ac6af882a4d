"""Tests for structured logging."""

import json
import logging
import logging.handlers

from graveshift.logging_config import (
    CorrelationContext,
    JSONFormatter,
    StructuredFormatter,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)


def make_record(message="hello"):
    return logging.LogRecord("graveshift.test", logging.INFO, __file__, 10, message, None, None)


class TestCorrelation:
    def test_context_sets_and_resets(self):
        before = get_correlation_id()
        with CorrelationContext("req-1", asset_id="abc") as ctx:
            assert get_correlation_id() == "req-1"
            assert ctx.asset_id == "abc"
        assert get_correlation_id() == before

    def test_generated_id(self):
        with CorrelationContext():
            assert get_correlation_id()

    def test_set_returns_id(self):
        with CorrelationContext("outer"):
            assert set_correlation_id("inner") == "inner"
            assert get_correlation_id() == "inner"


class TestFormatters:
    def test_json_includes_context(self):
        with CorrelationContext("req-42", asset_id="deadbeef"):
            payload = json.loads(JSONFormatter(extra_fields={"service": "graveshift"}).format(make_record()))

        assert payload["message"] == "hello"
        assert payload["correlation_id"] == "req-42"
        assert payload["asset_id"] == "deadbeef"
        assert payload["service"] == "graveshift"
        assert payload["timestamp"].endswith("Z")

    def test_structured_plain_text(self):
        with CorrelationContext("req-12345678", asset_id="deadbeef"):
            line = StructuredFormatter(use_color=False).format(make_record())

        assert "[graveshift.test] hello" in line
        assert "correlation_id=req-1234" in line
        assert "asset_id=deadbeef" in line


class TestSetupLogging:
    def test_log_dir_adds_rotating_json_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="DEBUG", log_dir=tmp_path / "logs")
            logging.getLogger("graveshift.test").info("written to disk")
            for handler in root.handlers:
                handler.flush()

            file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(file_handlers) == 1
            lines = (tmp_path / "logs" / "graveshift.log").read_text().splitlines()
            assert json.loads(lines[-1])["message"] == "written to disk"
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_console_only_without_log_dir(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="WARNING")
            assert root.level == logging.WARNING
            assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

"""Tests for structured logging configuration."""

import json
import logging

from whatif.logging_config import (
    JsonFormatter,
    TextFormatter,
    correlation_id_ctx,
    get_logger,
    setup_logging,
)


def make_record(level=logging.INFO, msg="Test", fields=None, **kwargs):
    record = logging.LogRecord(
        name=kwargs.get("name", "test"),
        level=level,
        pathname=kwargs.get("pathname", ""),
        lineno=kwargs.get("lineno", 0),
        msg=msg,
        args=(),
        exc_info=kwargs.get("exc_info"),
    )
    if fields is not None:
        record.fields = fields
    return record


class TestJsonFormatter:
    def test_basic_keys(self):
        formatter = JsonFormatter(service_name="test-service")
        parsed = json.loads(formatter.format(make_record(name="whatif.test", msg="Hello")))

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "test-service"
        assert parsed["message"] == "Hello"
        assert parsed["logger"] == "whatif.test"
        assert "timestamp" in parsed
        assert "correlation_id" not in parsed

    def test_includes_correlation_id(self):
        token = correlation_id_ctx.set("req-42")
        try:
            parsed = json.loads(JsonFormatter().format(make_record()))
        finally:
            correlation_id_ctx.reset(token)
        assert parsed["correlation_id"] == "req-42"

    def test_merges_structured_fields(self):
        record = make_record(fields={"hadm_id": "ADM-1", "horizon": 24})
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["hadm_id"] == "ADM-1"
        assert parsed["horizon"] == 24

    def test_error_includes_location(self):
        record = make_record(level=logging.ERROR, pathname="/app/x.py", lineno=7)
        record.funcName = "run"
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["location"] == {"file": "/app/x.py", "line": 7, "function": "run"}

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            exc_info = sys.exc_info()
        parsed = json.loads(
            JsonFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info))
        )
        assert "ValueError" in parsed["exception"]


class TestTextFormatter:
    def test_basic_line(self):
        output = TextFormatter(service_name="svc").format(make_record(msg="Hello"))
        assert "svc" in output
        assert "INFO" in output
        assert "[-]" in output
        assert "Hello" in output

    def test_fields_as_key_value(self):
        token = correlation_id_ctx.set("abc-123")
        try:
            output = TextFormatter().format(make_record(fields={"dropped": 2}))
        finally:
            correlation_id_ctx.reset(token)
        assert "[abc-123]" in output
        assert output.endswith("dropped=2")


class TestStructuredLogger:
    def test_passes_fields_on_record(self, caplog):
        logger = get_logger("whatif.test")
        with caplog.at_level(logging.INFO):
            logger.info("Forecast generated", hadm_id="ADM-1")

        record = caplog.records[-1]
        assert record.getMessage() == "Forecast generated"
        assert record.fields == {"hadm_id": "ADM-1"}

    def test_warning_without_fields(self, caplog):
        with caplog.at_level(logging.WARNING):
            get_logger("whatif.test").warning("Plain warning")
        assert "Plain warning" in caplog.text
        assert not hasattr(caplog.records[-1], "fields")


class TestSetupLogging:
    def test_json(self):
        setup_logging(log_format="json", log_level="DEBUG", service_name="custom")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.handlers[0].formatter.service_name == "custom"

    def test_text(self):
        setup_logging(log_format="text", log_level="INFO")
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, TextFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

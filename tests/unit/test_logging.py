"""Unit tests for log formatting and the logging event sink."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from profilegate.events import LoggingEventSink, PipelineEvent, RecordingEventSink
from profilegate.logging_config import JsonFormatter, TraceFormatter, configure_logging, sanitize


def _record(message: str, level: int = logging.INFO, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="profilegate.trace",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSanitize:
    @pytest.mark.parametrize(
        "text",
        [
            "password=hunter2",
            'token: "abc.def.ghi"',
            "Authorization: Bearer-xyz",
            "secret = s3cr3t",
        ],
    )
    def test_redacts(self, text: str):
        assert "[REDACTED]" in sanitize(text)

    def test_leaves_plain_text(self):
        assert sanitize("using proxy socks5://10.0.0.1:1080") == "using proxy socks5://10.0.0.1:1080"


class TestJsonFormatter:
    def test_includes_pipeline_fields(self):
        output = JsonFormatter().format(
            _record(
                "environment check passed",
                stage="navigator",
                event="passed",
                pass_count=2,
                profile_id="prof-1",
            )
        )
        parsed = json.loads(output)

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "profilegate.trace"
        assert parsed["stage"] == "navigator"
        assert parsed["event"] == "passed"
        assert parsed["pass_count"] == 2
        assert parsed["profile_id"] == "prof-1"
        assert "timestamp" in parsed

    def test_error_reason_is_sanitized(self):
        output = JsonFormatter().format(
            _record("failed", level=logging.ERROR, error_reason="rejected password=hunter2")
        )
        parsed = json.loads(output)
        assert "hunter2" not in parsed["error_reason"]

    def test_absent_fields_are_omitted(self):
        parsed = json.loads(JsonFormatter().format(_record("plain")))
        assert "stage" not in parsed
        assert "destination" not in parsed

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed", level=logging.ERROR)
            record.exc_info = sys.exc_info()

        parsed = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestTraceFormatter:
    def test_stage_prefix(self):
        line = TraceFormatter().format(_record("connecting", stage="navigator"))
        assert "INFO" in line
        assert "[navigator] connecting" in line

    def test_without_stage(self):
        line = TraceFormatter().format(_record("hello"))
        assert "[" not in line
        assert line.endswith("hello")


class TestEventSinks:
    def test_logging_sink_attaches_extra(self, caplog: pytest.LogCaptureFixture):
        sink = LoggingEventSink()
        with caplog.at_level(logging.INFO, logger="profilegate.trace"):
            sink.emit(
                PipelineEvent(
                    stage="pipeline",
                    name="proxy_selected",
                    message="using proxy socks5://h:1",
                    detail={"proxy_used": "socks5://h:1"},
                )
            )

        record = caplog.records[-1]
        assert record.getMessage() == "using proxy socks5://h:1"
        assert record.stage == "pipeline"
        assert record.event == "proxy_selected"
        assert record.proxy_used == "socks5://h:1"

    def test_logging_sink_uses_event_level(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.INFO, logger="profilegate.trace"):
            LoggingEventSink().emit(PipelineEvent(stage="navigator", name="failed", level=logging.ERROR))
        assert caplog.records[-1].levelno == logging.ERROR
        assert caplog.records[-1].getMessage() == "failed"

    def test_recording_sink_filters_by_stage(self):
        sink = RecordingEventSink()
        sink.emit(PipelineEvent(stage="pipeline", name="signed_in"))
        sink.emit(PipelineEvent(stage="navigator", name="connecting"))
        assert sink.names() == ["signed_in", "connecting"]
        assert sink.names("navigator") == ["connecting"]


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_installs_single_handler(self):
        configure_logging("DEBUG", "json")
        configure_logging("DEBUG", "json")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_text_format(self):
        configure_logging("info", "text")
        assert isinstance(logging.getLogger().handlers[0].formatter, TraceFormatter)

"""Logging configuration.

Two output formats share the same record fields:

* ``json`` -- one JSON object per line with timestamp, level, logger,
  message and the pipeline fields attached via ``extra`` (stage, event,
  proxy_used, profile_id, pass_count, destination, error_reason);
* ``text`` -- a human-readable stage trace for interactive runs.

SECURITY: never logs passwords, password digests, or bearer tokens.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone


# Patterns that should be redacted from log output
_SENSITIVE_PATTERNS = re.compile(
    r"(password|passwd|token|secret|authorization|bearer)"
    r"[\s\"']*[=:]\s*[\"']?[^\s\"',}]+",
    re.IGNORECASE,
)

# Pipeline fields copied from the record when present
_PIPELINE_FIELDS = (
    "stage",
    "event",
    "proxy_used",
    "profile_id",
    "endpoint",
    "pass_count",
    "destination",
    "destination_source",
    "exit_code",
)


def sanitize(text: str) -> str:
    """Remove sensitive values from log text."""
    return _SENSITIVE_PATTERNS.sub("[REDACTED]", text)


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON with structured pipeline fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize(record.getMessage()),
        }

        for name in _PIPELINE_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)

        if hasattr(record, "error_reason"):
            entry["error_reason"] = sanitize(str(getattr(record, "error_reason")))

        # Exception info
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = sanitize(self.formatException(record.exc_info))

        return json.dumps(entry, default=str)


class TraceFormatter(logging.Formatter):
    """Human-readable single-line format, prefixed with the stage when known."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)-7s %(stage_prefix)s%(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        stage = getattr(record, "stage", None)
        record.stage_prefix = f"[{stage}] " if stage else ""
        return sanitize(super().format(record))


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure the root logger.

    Parameters
    ----------
    level:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    fmt:
        ``"json"`` or ``"text"``.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if fmt == "json" else TraceFormatter())
    root.addHandler(handler)

    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

"""Pipeline event emission.

Stages and the navigator state machine emit ``PipelineEvent`` objects to an
``EventSink``; they never format log lines themselves. ``LoggingEventSink``
renders events as log records carrying structured fields for the JSON
formatter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

logger = logging.getLogger("profilegate.trace")


@dataclass(frozen=True)
class PipelineEvent:
    """A single stage transition or notable occurrence."""

    stage: str
    name: str
    message: str = ""
    level: int = logging.INFO
    detail: dict[str, Any] = field(default_factory=dict)
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventSink(Protocol):
    def emit(self, event: PipelineEvent) -> None: ...


class LoggingEventSink:
    """Renders events through stdlib logging."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: PipelineEvent) -> None:
        extra = {"stage": event.stage, "event": event.name, **event.detail}
        self._log.log(event.level, event.message or event.name, extra=extra)


class RecordingEventSink:
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: list[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def names(self, stage: str | None = None) -> list[str]:
        return [e.name for e in self.events if stage is None or e.stage == stage]


"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any

from historian_reader.core.events.events import CorruptRecordEvent, TruncatedTailEvent


class LoggingEventSink:
    """Logs reader events using the standard logging module.

    Recoverable data problems are logged at WARNING, lifecycle events at DEBUG.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def on_event(self, event: Any) -> None:
        if isinstance(event, (CorruptRecordEvent, TruncatedTailEvent)):
            self._logger.warning(
                "%s at %s offset %d",
                type(event).__name__,
                event.source,
                event.offset,
                extra={"event": event},
            )
            return
        self._logger.debug("reader_event", extra={"event": event})

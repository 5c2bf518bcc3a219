"""
Reporting channel for split readers.

Readers emit the facts they observe (split opened or closed, corrupt record
skipped, truncated tail) synchronously and in order; every sink sees every
event in emission order. A bus with no sinks discards everything, which is
what a reader uses when the caller supplies no channel.
"""
from __future__ import annotations

import logging
from typing import Iterable, Protocol

from historian_reader.core.events.events import ReaderEvent

LOGGER = logging.getLogger(__name__)


class EventSink(Protocol):
    def on_event(self, event: ReaderEvent) -> None:
        """Consume one reader event."""


class EventBus:
    """Fans reader events out to sinks.

    Readers of different splits may share one bus from several threads; sinks
    that keep state across events must do their own locking.
    """

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: EventSink) -> None:
        if self._closed:
            raise RuntimeError("Cannot register a sink on a closed event bus")
        self._sinks.append(sink)

    def emit(self, event: ReaderEvent) -> None:
        if self._closed:
            # Sinks are closed; late events from readers are dropped.
            LOGGER.debug("Dropping event after close", extra={"event": type(event).__name__})
            return
        for sink in self._sinks:
            sink.on_event(event)

    def close(self) -> None:
        """Close every sink that has a ``close()``. Idempotent."""
        if self._closed:
            return
        self._closed = True

        for sink in self._sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()

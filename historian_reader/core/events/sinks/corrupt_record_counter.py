"""
Aggregating sink for recoverable record errors.
"""
from __future__ import annotations

from collections import Counter
from typing import Any

from historian_reader.core.events.events import CorruptRecordEvent, TruncatedTailEvent


class CorruptRecordCounter:
    """Counts corrupt records and truncated tails per source file."""

    def __init__(self) -> None:
        self.corrupt: list[CorruptRecordEvent] = []
        self.truncated: list[TruncatedTailEvent] = []

    def on_event(self, event: Any) -> None:
        if isinstance(event, CorruptRecordEvent):
            self.corrupt.append(event)
        elif isinstance(event, TruncatedTailEvent):
            self.truncated.append(event)

    @property
    def corrupt_count(self) -> int:
        return len(self.corrupt)

    def corrupt_by_source(self) -> dict[str, int]:
        return dict(Counter(event.source for event in self.corrupt))

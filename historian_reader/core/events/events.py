"""
Reader event models.

These events represent immutable facts observed while reading splits.
They are consumed by loggers, recorders, and aggregate counters.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(slots=True)
class SplitOpenedEvent:
    source: str
    split_start: int
    split_end: int

    format_version: int
    first_record_offset: int


@dataclass(slots=True)
class CorruptRecordEvent:
    source: str
    offset: int

    reason: str
    resume_offset: int


@dataclass(slots=True)
class TruncatedTailEvent:
    source: str
    offset: int

    available_bytes: int


@dataclass(slots=True)
class SplitClosedEvent:
    source: str
    split_start: int
    split_end: int

    records: int
    corrupt_records: int
    bytes_consumed: int
    exhausted: bool


ReaderEvent = Union[SplitOpenedEvent, CorruptRecordEvent, TruncatedTailEvent, SplitClosedEvent]

"""Shared fixtures for point-file semantic tests."""

from __future__ import annotations

from typing import Callable, Sequence

import pytest

from historian_reader.core.codec.point_file_encoder import make_header
from historian_reader.core.domain.types import FormatHeader, PointRecord, SplitRange
from historian_reader.core.events.event_bus import EventBus
from historian_reader.core.events.sinks.corrupt_record_counter import CorruptRecordCounter
from historian_reader.io.memory_byte_source import InMemoryByteSource
from historian_reader.reader.header_cache import HeaderCache
from historian_reader.reader.split_record_iterator import SplitRecordIterator

# 2009-03-02T13:20:00Z
BASE_TS_MS = 1_236_000_000_000

FREQ_TAG = "PPA:BUS1:FREQ"
VPHM_TAG = "PPA:BUS1:VPHM"


@pytest.fixture
def v1_header() -> FormatHeader:
    return make_header(1)


@pytest.fixture
def v2_header() -> FormatHeader:
    return make_header(
        2,
        value_scale=0.5,
        tag_dictionary={7: FREQ_TAG, 9: VPHM_TAG},
    )


@pytest.fixture
def make_records() -> Callable[..., list[PointRecord]]:
    """Deterministic records whose values survive float32 and 0.5 fixed-point encoding."""

    def _make(
        count: int,
        *,
        tags: Sequence[int | str] = (1, 2, 3),
        value_step: float = 0.5,
    ) -> list[PointRecord]:
        return [
            PointRecord(
                timestamp_millis=BASE_TS_MS + i * 33,
                tag_id=tags[i % len(tags)],
                quality_flags=i % 32,
                value=59.5 + (i % 8) * value_step,
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def read_splits() -> Callable[..., tuple[list[PointRecord], CorruptRecordCounter]]:
    """Read an in-memory file as consecutive splits cut at ``cuts``."""

    def _read(
        data: bytes,
        cuts: Sequence[int] = (),
        *,
        identity: str = "mem://ppa_archive1.d",
        header_cache: HeaderCache | None = None,
    ) -> tuple[list[PointRecord], CorruptRecordCounter]:
        counter = CorruptRecordCounter()
        bus = EventBus(sinks=[counter])
        cache = header_cache if header_cache is not None else HeaderCache()

        bounds = [0, *cuts, len(data)]
        records: list[PointRecord] = []
        for start, end in zip(bounds, bounds[1:]):
            split = SplitRange(path=identity, start=start, end=end)
            source = InMemoryByteSource(data, identity=identity)
            with SplitRecordIterator(
                split,
                source,
                header_cache=cache,
                event_bus=bus,
                read_chunk_bytes=64,
            ) as reader:
                records.extend(reader)

        return records, counter

    return _read

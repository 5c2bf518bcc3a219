"""
Semantic test: short reads inside the file.

Invariant:
A record that cannot be read in full although the file is long enough to
hold it is a corrupt record, not the end of the file. It is reported once,
skipped by its declared length, and every later record is still yielded.
"""

from __future__ import annotations

from historian_reader.core.codec.point_file_encoder import encode_point_file
from historian_reader.core.domain.types import SplitRange
from historian_reader.core.events.event_bus import EventBus
from historian_reader.core.events.sinks.corrupt_record_counter import CorruptRecordCounter
from historian_reader.io.memory_byte_source import InMemoryByteSource
from historian_reader.reader.split_record_iterator import SplitRecordIterator


class ShortReadSource:
    """Returns at most ``keep`` bytes of ``bad_offset`` for every read covering it."""

    def __init__(self, data: bytes, *, bad_offset: int, keep: int) -> None:
        self._inner = InMemoryByteSource(data, identity="mem://flaky.d")
        self._bad_offset = bad_offset
        self._keep = keep

    @property
    def identity(self) -> str:
        return self._inner.identity

    def size(self) -> int:
        return self._inner.size()

    def read_at(self, offset: int, length: int) -> bytes:
        if offset <= self._bad_offset < offset + length:
            length = min(length, self._bad_offset + self._keep - offset)
        return self._inner.read_at(offset, length)

    def close(self) -> None:
        self._inner.close()


def _read_all(data: bytes, *, bad_offset: int, keep: int):
    counter = CorruptRecordCounter()
    source = ShortReadSource(data, bad_offset=bad_offset, keep=keep)
    split = SplitRange(path=source.identity, start=0, end=len(data))

    with SplitRecordIterator(
        split,
        source,
        event_bus=EventBus(sinks=[counter]),
        read_chunk_bytes=64,
    ) as reader:
        records = list(reader)
        assert reader.corrupt_records == 1

    return records, counter


def test_short_read_of_variable_record(v2_header, make_records) -> None:
    records = make_records(8, tags=(11,))
    data = encode_point_file(v2_header, records)
    bad_offset = v2_header.header_size + 3 * 28

    got, counter = _read_all(data, bad_offset=bad_offset, keep=10)

    assert got == records[:3] + records[4:]
    assert counter.corrupt_count == 1
    assert counter.truncated == []
    event = counter.corrupt[0]
    assert event.source == "mem://flaky.d"
    assert event.offset == bad_offset
    assert event.resume_offset == bad_offset + 28
    assert event.reason == "Record needs 28 bytes, got 10"


def test_short_read_of_fixed_stride_record(v1_header, make_records) -> None:
    records = make_records(6)
    data = encode_point_file(v1_header, records)
    bad_offset = 8 + 2 * 16

    got, counter = _read_all(data, bad_offset=bad_offset, keep=10)

    assert got == records[:2] + records[3:]
    assert counter.corrupt_count == 1
    assert counter.truncated == []
    assert counter.corrupt[0].offset == bad_offset
    assert counter.corrupt[0].resume_offset == bad_offset + 16

"""
Semantic test: split end inside a record.

Invariant:
A split whose end falls inside a record still yields that record in full,
reading past the nominal end; the following split, starting at that same
end, does not yield it again.
"""

from __future__ import annotations

from historian_reader.core.codec.point_file_encoder import encode_point_file
from historian_reader.core.domain.types import SplitRange
from historian_reader.io.memory_byte_source import InMemoryByteSource
from historian_reader.reader.header_cache import HeaderCache
from historian_reader.reader.split_record_iterator import SplitRecordIterator


class _CountingSource(InMemoryByteSource):
    def __init__(self, data: bytes, *, identity: str) -> None:
        super().__init__(data, identity=identity)
        self.max_read_end = 0

    def read_at(self, offset: int, length: int) -> bytes:
        chunk = super().read_at(offset, length)
        self.max_read_end = max(self.max_read_end, offset + len(chunk))
        return chunk


def _read(split: SplitRange, source, cache: HeaderCache) -> list:
    with SplitRecordIterator(split, source, header_cache=cache, read_chunk_bytes=8) as reader:
        return list(reader)


def test_straddling_record_belongs_to_the_split_it_starts_in(v1_header, make_records) -> None:
    records = make_records(4)
    data = encode_point_file(v1_header, records)
    cache = HeaderCache()

    # Record 2 occupies [24, 40); cut it in half.
    first_source = _CountingSource(data, identity="mem://mid.d")
    first = _read(SplitRange(path="mem://mid.d", start=0, end=30), first_source, cache)
    second = _read(
        SplitRange(path="mem://mid.d", start=30, end=len(data)),
        InMemoryByteSource(data, identity="mem://mid.d"),
        cache,
    )

    assert first == records[:2]
    assert second == records[2:]
    assert first_source.max_read_end >= 40


def test_variable_length_straddling_record(v2_header, make_records) -> None:
    records = make_records(4, tags=(11,))
    data = encode_point_file(v2_header, records)
    cache = HeaderCache()
    header_size = v2_header.header_size

    # Float records are 28 bytes; end the first split 3 bytes into record 2.
    cut = header_size + 28 + 3
    first = _read(
        SplitRange(path="mem://mid2.d", start=0, end=cut),
        InMemoryByteSource(data, identity="mem://mid2.d"),
        cache,
    )
    second = _read(
        SplitRange(path="mem://mid2.d", start=cut, end=len(data)),
        InMemoryByteSource(data, identity="mem://mid2.d"),
        cache,
    )

    assert first == records[:2]
    assert second == records[2:]

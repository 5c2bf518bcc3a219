"""
Semantic test: split bounds are validated against the file.

Invariant:
A split starting at or past end of file, or ending past it, fails open()
with SplitOutOfRangeError; SplitRange itself rejects negative or inverted
bounds.
"""

from __future__ import annotations

import pytest

from historian_reader.core.codec.point_file_encoder import encode_point_file
from historian_reader.core.domain.errors import SplitOutOfRangeError
from historian_reader.core.domain.types import SplitRange
from historian_reader.io.memory_byte_source import InMemoryByteSource
from historian_reader.reader.split_record_iterator import SplitRecordIterator


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (56, 56),
        (60, 80),
        (40, 57),
    ],
)
def test_out_of_range_split_fails_open(v1_header, make_records, start, end) -> None:
    data = encode_point_file(v1_header, make_records(3))
    assert len(data) == 56

    source = InMemoryByteSource(data, identity="mem://small.d")
    reader = SplitRecordIterator(SplitRange(path="mem://small.d", start=start, end=end), source)

    with pytest.raises(SplitOutOfRangeError) as excinfo:
        reader.open()

    assert excinfo.value.offset == start
    assert source.closed


@pytest.mark.parametrize(("start", "end"), [(-1, 10), (10, 5)])
def test_split_range_rejects_invalid_bounds(start, end) -> None:
    with pytest.raises(ValueError):
        SplitRange(path="x.d", start=start, end=end)

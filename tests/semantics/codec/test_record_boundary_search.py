"""
Semantic test: record boundary search.

Invariant:
find_next_record_boundary returns the first true record boundary at or
after an arbitrary offset: exact stride arithmetic for fixed layouts, a
walk along the canonical boundary chain for variable layouts. Starting the
walk from any confirmed boundary gives the same answer as starting from the
header end.
"""

from __future__ import annotations

import pytest

from historian_reader.core.codec.point_file_codec import (
    find_next_record_boundary,
    next_record_offset,
    scan_for_record,
)
from historian_reader.core.codec.point_file_encoder import encode_header, encode_record
from historian_reader.core.domain.errors import TruncatedRecordError


def _mixed_v2_file(header, records) -> tuple[bytes, list[int]]:
    """Alternate fixed-point (24 bytes) and float (28 bytes) records."""
    parts = [encode_header(header)]
    offsets = []
    pos = header.header_size
    for index, record in enumerate(records):
        raw = encode_record(header, record, fixed_point=index % 2 == 0)
        offsets.append(pos)
        parts.append(raw)
        pos += len(raw)
    offsets.append(pos)
    return b"".join(parts), offsets


@pytest.mark.parametrize(
    ("approx", "expected"),
    [
        (0, 8),
        (5, 8),
        (8, 8),
        (9, 24),
        (24, 24),
        (32, 40),
        (40, 40),
        (41, 56),
    ],
)
def test_fixed_stride_rounds_up_relative_to_header(v1_header, approx, expected) -> None:
    assert find_next_record_boundary(v1_header, b"", approx) == expected


def test_variable_walk_lands_on_record_starts(v2_header, make_records) -> None:
    data, offsets = _mixed_v2_file(v2_header, make_records(5, tags=(11,)))

    for start, end in zip(offsets, offsets[1:]):
        assert find_next_record_boundary(v2_header, data, start) == start
        for approx in range(start + 1, end + 1):
            assert find_next_record_boundary(v2_header, data, approx) == end


def test_variable_walk_from_anchor_matches_walk_from_header(v2_header, make_records) -> None:
    data, offsets = _mixed_v2_file(v2_header, make_records(6, tags=(11,)))

    for anchor in offsets[:-1]:
        for approx in range(anchor, len(data)):
            assert find_next_record_boundary(
                v2_header, data, approx, anchor=anchor
            ) == find_next_record_boundary(v2_header, data, approx)


def test_anchor_outside_walk_range_is_rejected(v2_header, make_records) -> None:
    data, offsets = _mixed_v2_file(v2_header, make_records(3, tags=(11,)))

    with pytest.raises(ValueError):
        find_next_record_boundary(v2_header, data, offsets[1], anchor=offsets[2])

    with pytest.raises(ValueError):
        find_next_record_boundary(v2_header, data, offsets[2], anchor=1)


def test_walk_past_end_of_data_stops_at_last_boundary(v2_header, make_records) -> None:
    data, offsets = _mixed_v2_file(v2_header, make_records(3, tags=(11,)))

    assert find_next_record_boundary(v2_header, data, len(data) + 50) == offsets[-1]


def test_incomplete_length_prefix_during_walk_is_truncated(v2_header, make_records) -> None:
    data, offsets = _mixed_v2_file(v2_header, make_records(4, tags=(11,)))
    cut = data[: offsets[2] + 2]

    with pytest.raises(TruncatedRecordError) as excinfo:
        find_next_record_boundary(v2_header, cut, offsets[2] + 1)

    assert excinfo.value.offset == offsets[2]


def test_structurally_corrupt_record_is_skipped_by_resync(v2_header, make_records) -> None:
    data, offsets = _mixed_v2_file(v2_header, make_records(5, tags=(11,)))
    broken = bytearray(data)
    broken[offsets[2]] = 0x00
    broken = bytes(broken)

    assert next_record_offset(v2_header, broken, offsets[2]) == offsets[3]
    assert scan_for_record(v2_header, broken, offsets[2]) == offsets[3]
    assert find_next_record_boundary(v2_header, broken, offsets[2] + 1) == offsets[3]


def test_resync_scan_without_valid_record_returns_end_of_data(v2_header) -> None:
    data = encode_header(v2_header) + b"\xa5" * 40

    assert scan_for_record(v2_header, data, v2_header.header_size) == len(data)

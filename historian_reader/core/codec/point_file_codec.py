"""
Point-file codec.

Pure functions that interpret DatAware point-file bytes. ``data`` is anything
supporting ``len()`` and slicing that returns bytes: a ``bytes`` object for a
whole file or the paged :class:`~historian_reader.io.source_view.SourceView`
a split reader uses. Offsets are always absolute positions within ``data``.

Every split derives its first record by walking the same canonical boundary
chain (header end, then :func:`next_record_offset` repeatedly), so no two
splits can disagree about where a record starts.
"""

from __future__ import annotations

import math
from typing import Protocol

from historian_reader.core.codec.layout import (
    CHECKSUM,
    HEADER_PREFIX,
    SYNC_MARKER,
    V1_CHECKED_BYTES,
    V1_MILLIS_SHIFT,
    V1_QUALITY_MASK,
    V1_RECORD,
    V2_HEADER_FIELDS,
    V2_RECORD_BODY,
    V2_RECORD_LENGTHS,
    V2_RECORD_PREFIX,
    V2_TAG_ENTRY,
    V2_VALUE_FIXED,
    V2_VALUE_FLOAT64,
    VALUE_KIND_FLOAT64,
    VERSION_LAYOUTS,
    checksum,
)
from historian_reader.core.domain.errors import (
    CorruptRecordError,
    MalformedHeaderError,
    TruncatedRecordError,
    UnsupportedVersionError,
)
from historian_reader.core.domain.types import (
    HISTORIAN_EPOCH_MS,
    MAGIC,
    FormatHeader,
    PointRecord,
)

_SCAN_CHUNK_BYTES = 4096
_SYNC_BYTE = bytes([SYNC_MARKER])


class ByteBuffer(Protocol):
    def __len__(self) -> int:
        ...

    def __getitem__(self, index: slice) -> bytes:
        ...


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


def parse_header(data: ByteBuffer) -> FormatHeader:
    """
    Parse the file preamble starting at offset 0.

    Raises MalformedHeaderError on a bad magic signature or inconsistent
    layout fields, UnsupportedVersionError on an unknown version byte.
    """
    prefix = bytes(data[0:HEADER_PREFIX.size])
    if len(prefix) < HEADER_PREFIX.size:
        raise MalformedHeaderError(
            f"Header prefix needs {HEADER_PREFIX.size} bytes, got {len(prefix)}",
            offset=0,
        )

    magic, version, layout, stride = HEADER_PREFIX.unpack(prefix)

    if magic != MAGIC:
        raise MalformedHeaderError(f"Unrecognized magic signature {magic!r}", offset=0)

    expected = VERSION_LAYOUTS.get(version)
    if expected is None:
        raise UnsupportedVersionError(f"Unsupported format version {version}", offset=4)

    if (layout, stride) != expected:
        raise MalformedHeaderError(
            f"Version {version} requires layout/stride {expected}, "
            f"header declares {(layout, stride)}",
            offset=5,
        )

    if version == 1:
        return FormatHeader(
            version=version,
            layout=layout,
            record_stride=stride,
            header_size=HEADER_PREFIX.size,
        )

    return _parse_v2_header(data, version=version, layout=layout)


def _parse_v2_header(data: ByteBuffer, *, version: int, layout: int) -> FormatHeader:
    pos = HEADER_PREFIX.size

    raw = bytes(data[pos:pos + V2_HEADER_FIELDS.size])
    if len(raw) < V2_HEADER_FIELDS.size:
        raise MalformedHeaderError("Truncated version 2 header fields", offset=pos)

    header_size, value_scale, tag_count = V2_HEADER_FIELDS.unpack(raw)
    if not math.isfinite(value_scale) or value_scale <= 0:
        raise MalformedHeaderError(f"Invalid value scale {value_scale}", offset=pos + 4)
    pos += V2_HEADER_FIELDS.size

    tags: dict[int, str] = {}
    for _ in range(tag_count):
        entry = bytes(data[pos:pos + V2_TAG_ENTRY.size])
        if len(entry) < V2_TAG_ENTRY.size:
            raise MalformedHeaderError("Truncated tag dictionary entry", offset=pos)
        tag_id, name_length = V2_TAG_ENTRY.unpack(entry)
        pos += V2_TAG_ENTRY.size

        name_bytes = bytes(data[pos:pos + name_length])
        if len(name_bytes) < name_length:
            raise MalformedHeaderError("Truncated tag name", offset=pos)
        try:
            name = name_bytes.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedHeaderError("Tag name is not valid UTF-8", offset=pos) from exc
        if tag_id in tags:
            raise MalformedHeaderError(f"Duplicate tag id {tag_id}", offset=pos)
        tags[tag_id] = name
        pos += name_length

    if pos != header_size:
        raise MalformedHeaderError(
            f"Header size field {header_size} does not match parsed size {pos}",
            offset=HEADER_PREFIX.size,
        )

    return FormatHeader(
        version=version,
        layout=layout,
        record_stride=0,
        header_size=header_size,
        value_scale=value_scale,
        tag_dictionary=tags,
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def record_length(header: FormatHeader, data: ByteBuffer, offset: int = 0) -> int:
    """
    Return the byte length of the record starting at ``offset``.

    Fixed-stride layouts need no bytes at all. Variable layouts read the
    4-byte record prefix: TruncatedRecordError if it is incomplete,
    CorruptRecordError if its sync marker, kind or length is invalid.
    """
    if header.is_fixed_stride:
        return header.record_stride

    prefix = bytes(data[offset:offset + V2_RECORD_PREFIX.size])
    if len(prefix) < V2_RECORD_PREFIX.size:
        raise TruncatedRecordError(
            f"Length prefix needs {V2_RECORD_PREFIX.size} bytes, got {len(prefix)}",
            offset=offset,
        )

    sync, kind, length = V2_RECORD_PREFIX.unpack(prefix)
    if sync != SYNC_MARKER:
        raise CorruptRecordError(f"Missing sync marker (found 0x{sync:02x})", offset=offset)

    expected = V2_RECORD_LENGTHS.get(kind)
    if expected is None:
        raise CorruptRecordError(f"Unknown value kind {kind}", offset=offset)
    if length != expected:
        raise CorruptRecordError(
            f"Record length {length} does not match value kind {kind}",
            offset=offset,
        )
    return length


def decode_record(header: FormatHeader, data: ByteBuffer, offset: int = 0) -> PointRecord:
    """Decode exactly one record starting at ``offset``."""
    if header.version not in VERSION_LAYOUTS:
        raise UnsupportedVersionError(
            f"No decode path for format version {header.version}",
            offset=offset,
        )

    length = record_length(header, data, offset)
    raw = bytes(data[offset:offset + length])
    if len(raw) < length:
        raise TruncatedRecordError(
            f"Record needs {length} bytes, got {len(raw)}",
            offset=offset,
        )

    if header.version == 1:
        return _decode_v1(header, raw, offset)
    return _decode_v2(header, raw, offset)


def _decode_v1(header: FormatHeader, raw: bytes, offset: int) -> PointRecord:
    seconds, flags, tag_id, value, crc = V1_RECORD.unpack(raw)

    if checksum(raw[:V1_CHECKED_BYTES]) != crc:
        raise CorruptRecordError("Record checksum mismatch", offset=offset)

    millis = flags >> V1_MILLIS_SHIFT
    if millis > 999:
        raise CorruptRecordError(f"Millisecond field out of range ({millis})", offset=offset)

    return PointRecord(
        timestamp_millis=HISTORIAN_EPOCH_MS + seconds * 1000 + millis,
        tag_id=header.tag_name(tag_id),
        quality_flags=flags & V1_QUALITY_MASK,
        value=float(value),
    )


def _decode_v2(header: FormatHeader, raw: bytes, offset: int) -> PointRecord:
    (crc,) = CHECKSUM.unpack(raw[-CHECKSUM.size:])
    if checksum(raw[:-CHECKSUM.size]) != crc:
        raise CorruptRecordError("Record checksum mismatch", offset=offset)

    _sync, kind, _length = V2_RECORD_PREFIX.unpack_from(raw, 0)
    timestamp_millis, tag_id, quality = V2_RECORD_BODY.unpack_from(raw, V2_RECORD_PREFIX.size)

    value_offset = V2_RECORD_PREFIX.size + V2_RECORD_BODY.size
    if kind == VALUE_KIND_FLOAT64:
        (value,) = V2_VALUE_FLOAT64.unpack_from(raw, value_offset)
    else:
        (scaled,) = V2_VALUE_FIXED.unpack_from(raw, value_offset)
        value = scaled * header.value_scale

    return PointRecord(
        timestamp_millis=timestamp_millis,
        tag_id=header.tag_name(tag_id),
        quality_flags=quality,
        value=float(value),
    )


# ---------------------------------------------------------------------------
# Boundaries
# ---------------------------------------------------------------------------


def _round_up_to_stride(header: FormatHeader, offset: int) -> int:
    relative = offset - header.header_size
    if relative <= 0:
        return header.header_size
    stride = header.record_stride
    return header.header_size + -(-relative // stride) * stride


def scan_for_record(header: FormatHeader, data: ByteBuffer, start: int) -> int:
    """
    Return the first offset >= ``start`` holding a complete, valid record.

    Used to resynchronize after a structurally corrupt record. Returns
    ``len(data)`` when no valid record exists in the rest of the data.
    """
    if header.is_fixed_stride:
        return _round_up_to_stride(header, start)

    size = len(data)
    pos = max(start, header.header_size)

    while pos < size:
        chunk = bytes(data[pos:pos + _SCAN_CHUNK_BYTES])
        if not chunk:
            break

        index = chunk.find(_SYNC_BYTE)
        while index != -1:
            candidate = pos + index
            try:
                decode_record(header, data, candidate)
            except (CorruptRecordError, TruncatedRecordError):
                index = chunk.find(_SYNC_BYTE, index + 1)
                continue
            return candidate

        pos += len(chunk)

    return size


def next_record_offset(header: FormatHeader, data: ByteBuffer, offset: int) -> int:
    """
    Canonical successor of the boundary at ``offset``.

    A structurally valid record is skipped by its length even when its
    checksum fails; a structurally corrupt one falls back to a resync scan.
    """
    try:
        return offset + record_length(header, data, offset)
    except CorruptRecordError:
        return scan_for_record(header, data, offset + 1)


def find_next_record_boundary(
    header: FormatHeader,
    data: ByteBuffer,
    approx_offset: int,
    *,
    anchor: int | None = None,
) -> int:
    """
    Return the first record boundary at or after ``approx_offset``.

    Fixed-stride layouts use exact stride arithmetic relative to the header
    end. Variable layouts walk the boundary chain from ``anchor``, which must
    itself be a confirmed boundary (header end by default).

    The result may exceed ``len(data)`` when the final record is truncated.
    TruncatedRecordError propagates if a length prefix on the way is
    incomplete.
    """
    if approx_offset < 0:
        raise ValueError("approx_offset must be >= 0")

    if approx_offset <= header.header_size:
        return header.header_size

    if header.is_fixed_stride:
        return _round_up_to_stride(header, approx_offset)

    position = header.header_size if anchor is None else anchor
    if position < header.header_size or position > approx_offset:
        raise ValueError("anchor must lie between the header end and approx_offset")

    size = len(data)
    while position < approx_offset:
        if position >= size:
            break
        position = next_record_offset(header, data, position)

    return position

"""
Point-file encoder.

Writes headers and records in the layout the codec reads. Used to produce
fixtures and sample files; the reading path never depends on it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

from historian_reader.core.codec.layout import (
    CHECKSUM,
    HEADER_PREFIX,
    SYNC_MARKER,
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
    VALUE_KIND_FIXED,
    VALUE_KIND_FLOAT64,
    VERSION_LAYOUTS,
    checksum,
)
from historian_reader.core.domain.types import (
    HISTORIAN_EPOCH_MS,
    MAGIC,
    FormatHeader,
    PointRecord,
)

_UINT32_MAX = 0xFFFFFFFF
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def make_header(
    version: int,
    *,
    value_scale: float = 1.0,
    tag_dictionary: Mapping[int, str] | None = None,
) -> FormatHeader:
    """Build a FormatHeader with the layout fields implied by ``version``."""
    layout_stride = VERSION_LAYOUTS.get(version)
    if layout_stride is None:
        raise ValueError(f"Unsupported format version {version}")
    layout, stride = layout_stride

    tags = dict(tag_dictionary or {})
    if version == 1:
        if tags:
            raise ValueError("Version 1 files cannot embed a tag dictionary")
        header_size = HEADER_PREFIX.size
    else:
        header_size = HEADER_PREFIX.size + V2_HEADER_FIELDS.size + sum(
            V2_TAG_ENTRY.size + len(name.encode("utf-8")) for name in tags.values()
        )

    return FormatHeader(
        version=version,
        layout=layout,
        record_stride=stride,
        header_size=header_size,
        value_scale=value_scale,
        tag_dictionary=tags,
    )


def encode_header(header: FormatHeader) -> bytes:
    prefix = HEADER_PREFIX.pack(MAGIC, header.version, header.layout, header.record_stride)
    if header.version == 1:
        return prefix

    parts = [
        prefix,
        V2_HEADER_FIELDS.pack(header.header_size, header.value_scale, len(header.tag_dictionary)),
    ]
    for tag_id, name in header.tag_dictionary.items():
        name_bytes = name.encode("utf-8")
        if len(name_bytes) > 0xFF:
            raise ValueError(f"Tag name too long: {name!r}")
        parts.append(V2_TAG_ENTRY.pack(tag_id, len(name_bytes)))
        parts.append(name_bytes)

    encoded = b"".join(parts)
    if len(encoded) != header.header_size:
        raise ValueError(
            f"header_size {header.header_size} does not match encoded size {len(encoded)}"
        )
    return encoded


def encode_record(
    header: FormatHeader,
    record: PointRecord,
    *,
    fixed_point: bool = False,
) -> bytes:
    """
    Encode one record.

    Version 1 stores float32 values, so only float32-representable values
    survive a round trip exactly. ``fixed_point`` selects the scaled int32
    value kind of version 2.
    """
    tag_id = header.tag_index(record.tag_id)
    if not 0 <= tag_id <= _UINT32_MAX:
        raise ValueError(f"tag id {tag_id} does not fit in 32 bits")

    if header.version == 1:
        return _encode_v1(record, tag_id)
    if header.version == 2:
        return _encode_v2(header, record, tag_id, fixed_point=fixed_point)
    raise ValueError(f"Unsupported format version {header.version}")


def _encode_v1(record: PointRecord, tag_id: int) -> bytes:
    relative = record.timestamp_millis - HISTORIAN_EPOCH_MS
    if relative < 0:
        raise ValueError("Version 1 timestamps cannot precede 1995-01-01")
    seconds, millis = divmod(relative, 1000)
    if seconds > _UINT32_MAX:
        raise ValueError("Timestamp out of range for version 1")
    if not 0 <= record.quality_flags <= V1_QUALITY_MASK:
        raise ValueError(f"Version 1 quality flags must fit in 5 bits, got {record.quality_flags}")

    flags = (millis << V1_MILLIS_SHIFT) | record.quality_flags
    body = V1_RECORD.pack(seconds, flags, tag_id, record.value, 0)[:-CHECKSUM.size]
    return body + CHECKSUM.pack(checksum(body))


def _encode_v2(
    header: FormatHeader,
    record: PointRecord,
    tag_id: int,
    *,
    fixed_point: bool,
) -> bytes:
    if not 0 <= record.quality_flags <= 0xFFFF:
        raise ValueError(f"Quality flags must fit in 16 bits, got {record.quality_flags}")

    kind = VALUE_KIND_FIXED if fixed_point else VALUE_KIND_FLOAT64
    if fixed_point:
        scaled = round(record.value / header.value_scale)
        if not _INT32_MIN <= scaled <= _INT32_MAX:
            raise ValueError(f"Value {record.value} overflows fixed-point range")
        value_bytes = V2_VALUE_FIXED.pack(scaled)
    else:
        value_bytes = V2_VALUE_FLOAT64.pack(record.value)

    body = b"".join(
        [
            V2_RECORD_PREFIX.pack(SYNC_MARKER, kind, V2_RECORD_LENGTHS[kind]),
            V2_RECORD_BODY.pack(record.timestamp_millis, tag_id, record.quality_flags),
            value_bytes,
        ]
    )
    return body + CHECKSUM.pack(checksum(body))


def encode_point_file(
    header: FormatHeader,
    records: Iterable[PointRecord],
    *,
    fixed_point: bool = False,
) -> bytes:
    """Encode a complete file image."""
    parts = [encode_header(header)]
    parts.extend(encode_record(header, r, fixed_point=fixed_point) for r in records)
    return b"".join(parts)


def write_point_file(
    path: str | Path,
    header: FormatHeader,
    records: Iterable[PointRecord],
    *,
    fixed_point: bool = False,
) -> int:
    """Write a point file and return the number of bytes written."""
    payload = encode_point_file(header, records, fixed_point=fixed_point)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(payload)
    return len(payload)

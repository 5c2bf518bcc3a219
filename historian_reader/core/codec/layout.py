"""
On-disk layout of DatAware point files.

All multi-byte fields are little-endian. Shared by the decoder and the
encoder so both sides agree on every offset.
"""

from __future__ import annotations

import binascii
import struct

from historian_reader.core.domain.types import LAYOUT_FIXED, LAYOUT_VARIABLE

# magic, version, layout, record stride
HEADER_PREFIX = struct.Struct("<4sBBH")

# v2 only: header size, value scale, tag count
V2_HEADER_FIELDS = struct.Struct("<IdH")

# v2 only: tag id, name length (name bytes follow)
V2_TAG_ENTRY = struct.Struct("<IB")

# seconds since historian epoch, flags, tag id, float32 value, crc
V1_RECORD = struct.Struct("<IHIfH")
V1_CHECKED_BYTES = V1_RECORD.size - 2
V1_QUALITY_MASK = 0x1F
V1_MILLIS_SHIFT = 5

# sync marker, value kind, record length
V2_RECORD_PREFIX = struct.Struct("<BBH")
# epoch millis, tag id, quality flags
V2_RECORD_BODY = struct.Struct("<qIH")
V2_VALUE_FLOAT64 = struct.Struct("<d")
V2_VALUE_FIXED = struct.Struct("<i")
CHECKSUM = struct.Struct("<H")

SYNC_MARKER = 0xA5

VALUE_KIND_FLOAT64 = 0
VALUE_KIND_FIXED = 1

V2_RECORD_LENGTHS: dict[int, int] = {
    VALUE_KIND_FLOAT64: (
        V2_RECORD_PREFIX.size + V2_RECORD_BODY.size + V2_VALUE_FLOAT64.size + CHECKSUM.size
    ),
    VALUE_KIND_FIXED: (
        V2_RECORD_PREFIX.size + V2_RECORD_BODY.size + V2_VALUE_FIXED.size + CHECKSUM.size
    ),
}

# version -> (layout, record stride)
VERSION_LAYOUTS: dict[int, tuple[int, int]] = {
    1: (LAYOUT_FIXED, V1_RECORD.size),
    2: (LAYOUT_VARIABLE, 0),
}


def checksum(data: bytes) -> int:
    """CRC-16/CCITT with 0xFFFF seed."""
    return binascii.crc_hqx(data, 0xFFFF)

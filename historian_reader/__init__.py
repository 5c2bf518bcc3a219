"""Public API for the historian_reader package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Codec API
# ----------------------------------------------------------------------
from historian_reader.core.codec.point_file_codec import (
    decode_record,
    find_next_record_boundary,
    parse_header,
    record_length,
)
from historian_reader.core.codec.point_file_encoder import (
    encode_header,
    encode_point_file,
    encode_record,
    make_header,
    write_point_file,
)

# ----------------------------------------------------------------------
# Domain types and errors
# ----------------------------------------------------------------------
from historian_reader.core.domain.errors import (
    CorruptRecordError,
    EndOfSplitError,
    InvalidReaderStateError,
    MalformedHeaderError,
    PointFileError,
    SplitOutOfRangeError,
    TruncatedRecordError,
    UnsupportedVersionError,
)
from historian_reader.core.domain.types import FormatHeader, PointRecord, SplitRange

# ----------------------------------------------------------------------
# Reporting channel
# ----------------------------------------------------------------------
from historian_reader.core.events.event_bus import EventBus
from historian_reader.core.events.sinks.corrupt_record_counter import CorruptRecordCounter
from historian_reader.core.ports.byte_source import ByteSource

# ----------------------------------------------------------------------
# Byte sources
# ----------------------------------------------------------------------
from historian_reader.io.local_byte_source import LocalFileByteSource
from historian_reader.io.memory_byte_source import InMemoryByteSource

# ----------------------------------------------------------------------
# Reader API (framework integration)
# ----------------------------------------------------------------------
from historian_reader.reader.header_cache import HeaderCache
from historian_reader.reader.input_format import HistorianInputFormat
from historian_reader.reader.reader_config import ReaderConfig
from historian_reader.reader.split_planner import plan_splits
from historian_reader.reader.split_record_iterator import SplitRecordIterator

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Codec
    "parse_header",
    "record_length",
    "decode_record",
    "find_next_record_boundary",
    "make_header",
    "encode_header",
    "encode_record",
    "encode_point_file",
    "write_point_file",

    # Domain
    "PointRecord",
    "FormatHeader",
    "SplitRange",

    # Errors
    "PointFileError",
    "MalformedHeaderError",
    "UnsupportedVersionError",
    "TruncatedRecordError",
    "CorruptRecordError",
    "SplitOutOfRangeError",
    "EndOfSplitError",
    "InvalidReaderStateError",

    # Reporting
    "EventBus",
    "CorruptRecordCounter",

    # Sources
    "ByteSource",
    "LocalFileByteSource",
    "InMemoryByteSource",

    # Reader
    "HistorianInputFormat",
    "SplitRecordIterator",
    "HeaderCache",
    "ReaderConfig",
    "plan_splits",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("historian-reader")
except PackageNotFoundError:
    __version__ = "0.0.0"

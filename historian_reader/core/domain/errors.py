"""
Point-file error taxonomy.

Fatal errors (header, version, split range) abort the whole file or split.
Record-level errors are recovered by the split reader and reported through
the event bus.
"""
from __future__ import annotations


class PointFileError(Exception):
    """Base class for all point-file decode and read errors.

    ``source`` and ``offset`` are optional because the codec is stateless and
    only knows offsets relative to the data it was given; the reader fills in
    the file identity before the error reaches the caller.
    """

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        offset: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.offset = offset

    def __str__(self) -> str:
        context: list[str] = []
        if self.source is not None:
            context.append(f"source={self.source}")
        if self.offset is not None:
            context.append(f"offset={self.offset}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class MalformedHeaderError(PointFileError):
    """File preamble is missing, truncated, or structurally invalid."""


class UnsupportedVersionError(MalformedHeaderError):
    """Header declares a format version with no decode path."""


class TruncatedRecordError(PointFileError):
    """Not enough bytes are available to read a record or its length prefix."""


class CorruptRecordError(PointFileError):
    """Record failed checksum, sanity or structural validation."""


class SplitOutOfRangeError(PointFileError):
    """Split bounds do not fit the underlying file."""


class EndOfSplitError(PointFileError):
    """No more records belong to the split."""


class InvalidReaderStateError(PointFileError):
    """Reader operation called in a lifecycle state that does not allow it."""

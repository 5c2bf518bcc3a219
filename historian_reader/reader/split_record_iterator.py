"""
Split record iterator.

Turns one SplitRange into a lazy, forward-only sequence of PointRecords.

Ownership rule: a record belongs to the split in which it *starts*. The
reader begins at the first record boundary at or after ``split.start`` and
keeps decoding while the cursor is before ``split.end``, reading past
``end`` to finish a record that straddles it. The next split's boundary
search skips that record.

A reader is single-owner and not thread-safe; only the header cache is
shared between readers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from historian_reader.core.codec.layout import V2_RECORD_PREFIX
from historian_reader.core.codec.point_file_codec import (
    decode_record,
    find_next_record_boundary,
    next_record_offset,
    parse_header,
    record_length,
)
from historian_reader.core.domain.errors import (
    CorruptRecordError,
    EndOfSplitError,
    InvalidReaderStateError,
    PointFileError,
    SplitOutOfRangeError,
    TruncatedRecordError,
)
from historian_reader.core.domain.reader_state_machine import (
    CLOSED,
    EXHAUSTED,
    READY,
    UNOPENED,
    is_valid_transition,
)
from historian_reader.core.domain.types import FormatHeader, PointRecord, SplitRange
from historian_reader.core.events.event_bus import EventBus
from historian_reader.core.events.events import (
    CorruptRecordEvent,
    SplitClosedEvent,
    SplitOpenedEvent,
    TruncatedTailEvent,
)
from historian_reader.core.ports.byte_source import ByteSource
from historian_reader.io.source_view import SourceView
from historian_reader.reader.header_cache import HeaderCache

LOGGER = logging.getLogger(__name__)


@dataclass
class DecodeCursor:
    """Reader-private position state over the split."""

    start: int
    end: int
    offset: int
    view: SourceView

    @property
    def bytes_consumed(self) -> int:
        return min(max(self.offset, self.start), self.end) - self.start


class SplitRecordIterator:
    """Lazy PointRecord sequence over one split.

    Lifecycle: ``unopened -> ready -> exhausted``, with ``close()`` allowed
    from any state. Not restartable: open a new reader to re-read a split.
    """

    def __init__(
        self,
        split: SplitRange,
        source: ByteSource,
        *,
        header_cache: HeaderCache | None = None,
        event_bus: EventBus | None = None,
        read_chunk_bytes: int = 64 * 1024,
    ) -> None:
        self._split = split
        self._source = source
        self._cache = header_cache if header_cache is not None else HeaderCache()
        self._bus = event_bus if event_bus is not None else EventBus()
        self._read_chunk_bytes = read_chunk_bytes

        self._state = UNOPENED
        self._header: FormatHeader | None = None
        self._header_acquired = False
        self._cursor: DecodeCursor | None = None

        self.records_read = 0
        self.corrupt_records = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def split(self) -> SplitRange:
        return self._split

    @property
    def state(self) -> str:
        return self._state

    @property
    def header(self) -> FormatHeader | None:
        return self._header

    @property
    def split_size(self) -> int:
        return self._split.length

    @property
    def bytes_consumed(self) -> int:
        if self._state == EXHAUSTED:
            return self._split.length
        if self._cursor is None:
            return 0
        return self._cursor.bytes_consumed

    @property
    def progress(self) -> float:
        """Fraction of the split consumed, in [0.0, 1.0]."""
        if self._state == EXHAUSTED:
            return 1.0
        if self._split.length == 0:
            return 0.0
        return self.bytes_consumed / self._split.length

    def __repr__(self) -> str:
        return f"SplitRecordIterator({self._split}, state={self._state})"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> SplitRecordIterator:
        """Load the file header and position the cursor on the first record."""
        if self._state != UNOPENED:
            raise InvalidReaderStateError(
                f"Cannot open a reader in state {self._state}",
                source=self._source.identity,
            )

        identity = self._source.identity
        split = self._split

        try:
            file_length = self._source.size()
            if split.start >= file_length or split.end > file_length:
                raise SplitOutOfRangeError(
                    f"Split [{split.start}, {split.end}) does not fit file of {file_length} bytes",
                    offset=split.start,
                )

            view = SourceView(self._source, page_bytes=self._read_chunk_bytes)
            self._header = self._cache.acquire(identity, lambda: parse_header(view))
            self._header_acquired = True

            first = self._first_boundary(self._header, view)
        except Exception as exc:
            if isinstance(exc, PointFileError) and exc.source is None:
                exc.source = identity
            self._release()
            self._transition(CLOSED)
            LOGGER.error(
                "Failed to open split",
                extra={"split": str(split), "error": str(exc)},
            )
            raise

        self._cursor = DecodeCursor(
            start=split.start,
            end=split.end,
            offset=first,
            view=view,
        )
        self._transition(READY)

        self._bus.emit(
            SplitOpenedEvent(
                source=identity,
                split_start=split.start,
                split_end=split.end,
                format_version=self._header.version,
                first_record_offset=first,
            )
        )
        return self

    def close(self) -> None:
        """Release the byte source and the header reference. Idempotent."""
        if self._state == CLOSED:
            return

        exhausted = self._state == EXHAUSTED
        consumed = self.bytes_consumed
        self._release()
        self._transition(CLOSED)

        if self._cursor is not None:
            self._bus.emit(
                SplitClosedEvent(
                    source=self._source.identity,
                    split_start=self._split.start,
                    split_end=self._split.end,
                    records=self.records_read,
                    corrupt_records=self.corrupt_records,
                    bytes_consumed=consumed,
                    exhausted=exhausted,
                )
            )

    def __enter__(self) -> SplitRecordIterator:
        if self._state == UNOPENED:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_record(self) -> PointRecord:
        """
        Return the next record of the split.

        Raises EndOfSplitError once no record starting before ``split.end``
        remains. Corrupt records are reported on the event bus and skipped.
        """
        if self._state == EXHAUSTED:
            raise EndOfSplitError(
                "Split exhausted",
                source=self._source.identity,
                offset=self._split.end,
            )
        if self._state != READY:
            raise InvalidReaderStateError(
                f"Cannot read from a reader in state {self._state}",
                source=self._source.identity,
            )

        cursor = self._cursor
        header = self._header

        while cursor.offset < cursor.end:
            offset = cursor.offset
            try:
                record = decode_record(header, cursor.view, offset)
            except TruncatedRecordError as exc:
                if self._runs_past_eof(offset):
                    self._bus.emit(
                        TruncatedTailEvent(
                            source=self._source.identity,
                            offset=offset,
                            available_bytes=len(cursor.view) - offset,
                        )
                    )
                    self._advance(len(cursor.view), confirmed=False)
                    break
                # Short read inside the file.
                self._skip_corrupt(offset, exc)
                continue
            except CorruptRecordError as exc:
                self._skip_corrupt(offset, exc)
                continue

            self._advance(offset + record_length(header, cursor.view, offset))
            self.records_read += 1
            self._transition(READY)
            return record

        self._transition(EXHAUSTED)
        raise EndOfSplitError(
            "Split exhausted",
            source=self._source.identity,
            offset=self._split.end,
        )

    def __iter__(self) -> SplitRecordIterator:
        return self

    def __next__(self) -> PointRecord:
        try:
            return self.read_record()
        except EndOfSplitError:
            raise StopIteration from None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, next_state: str) -> None:
        if not is_valid_transition(self._state, next_state):
            raise InvalidReaderStateError(
                f"Invalid reader transition {self._state} -> {next_state}",
                source=self._source.identity,
            )
        self._state = next_state

    def _release(self) -> None:
        if self._header_acquired:
            self._cache.release(self._source.identity)
            self._header_acquired = False
        self._source.close()

    def _first_boundary(self, header: FormatHeader, view: SourceView) -> int:
        anchor = None
        if not header.is_fixed_stride:
            anchor = self._cache.nearest_anchor(self._source.identity, self._split.start)
            if anchor is not None and anchor < header.header_size:
                anchor = None

        try:
            return find_next_record_boundary(header, view, self._split.start, anchor=anchor)
        except TruncatedRecordError as exc:
            if exc.offset is not None and self._runs_past_eof(exc.offset, header, view):
                # The chain ends in an incomplete record; nothing starts in this split.
                return len(view)
            raise

    def _runs_past_eof(
        self,
        offset: int,
        header: FormatHeader | None = None,
        view: SourceView | None = None,
    ) -> bool:
        header = header if header is not None else self._header
        view = view if view is not None else self._cursor.view
        try:
            needed = record_length(header, view, offset)
        except TruncatedRecordError:
            needed = V2_RECORD_PREFIX.size
        except CorruptRecordError:
            return False
        return offset + needed > len(view)

    def _skip_corrupt(self, offset: int, exc: PointFileError) -> None:
        cursor = self._cursor
        confirmed = True
        try:
            resume = next_record_offset(self._header, cursor.view, offset)
        except TruncatedRecordError:
            resume = len(cursor.view)
            confirmed = False

        exc.source = self._source.identity
        self.corrupt_records += 1
        LOGGER.debug("Skipping corrupt record", extra={"error": str(exc)})
        self._bus.emit(
            CorruptRecordEvent(
                source=self._source.identity,
                offset=offset,
                reason=exc.message,
                resume_offset=resume,
            )
        )
        self._advance(resume, confirmed=confirmed)

    def _advance(self, new_offset: int, *, confirmed: bool = True) -> None:
        cursor = self._cursor
        old_offset = cursor.offset
        if old_offset < cursor.end <= new_offset and not self._header.is_fixed_stride:
            # The next split's walk can start from the last boundary before end.
            self._cache.add_anchor(self._source.identity, old_offset)
            if confirmed:
                self._cache.add_anchor(self._source.identity, new_offset)
        cursor.offset = new_offset

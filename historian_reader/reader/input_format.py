"""
Integration point for split-based batch frameworks.

A framework asks for the splits of a file, hands each split to a worker,
and the worker asks for a reader over its split. Split discovery is plain
byte arithmetic; all record alignment happens inside the reader.
"""

from __future__ import annotations

import logging
from typing import Iterator

from historian_reader.core.codec.point_file_codec import parse_header
from historian_reader.core.domain.errors import PointFileError
from historian_reader.core.domain.types import PointRecord, SplitRange
from historian_reader.core.events.event_bus import EventBus
from historian_reader.core.ports.byte_source import ByteSourceFactory
from historian_reader.io.local_byte_source import LocalFileByteSource
from historian_reader.io.source_view import SourceView
from historian_reader.reader.header_cache import HeaderCache
from historian_reader.reader.reader_config import ReaderConfig
from historian_reader.reader.split_planner import plan_splits
from historian_reader.reader.split_record_iterator import SplitRecordIterator

LOGGER = logging.getLogger(__name__)


class HistorianInputFormat:
    """Computes splits of DatAware point files and opens readers over them.

    One instance may serve many worker threads: the header cache is the only
    shared state and it is thread-safe. Readers themselves are single-owner.
    """

    def __init__(
        self,
        *,
        config: ReaderConfig | None = None,
        source_factory: ByteSourceFactory | None = None,
        header_cache: HeaderCache | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.config = config if config is not None else ReaderConfig()
        self._source_factory = source_factory if source_factory is not None else LocalFileByteSource
        self.header_cache = header_cache if header_cache is not None else HeaderCache()
        self._event_bus = event_bus

    def compute_splits(self, path: str) -> list[SplitRange]:
        """Cut ``path`` into consecutive byte ranges of at most ``max_split_bytes``."""
        source = self._source_factory(path)
        try:
            file_length = source.size()
        finally:
            source.close()

        return plan_splits(path, file_length, self.config.max_split_bytes)

    def open_reader_for_split(self, split: SplitRange) -> SplitRecordIterator:
        """Return an opened reader positioned on the split's first record."""
        LOGGER.info("Opening split %s", split, extra={"split": str(split)})

        reader = SplitRecordIterator(
            split,
            self._source_factory(split.path),
            header_cache=self.header_cache,
            event_bus=self._event_bus,
            read_chunk_bytes=self.config.read_chunk_bytes,
        )
        return reader.open()

    def iter_records(self, path: str) -> Iterator[PointRecord]:
        """
        Read every split of ``path`` in order.

        The file's header stays cached for the whole scan so each split's
        boundary walk can reuse the anchors left by the previous one.
        """
        splits = self.compute_splits(path)
        if not splits:
            return

        pin = self._source_factory(path)
        key = pin.identity
        try:
            self.header_cache.acquire(
                key,
                lambda: parse_header(SourceView(pin, page_bytes=self.config.read_chunk_bytes)),
            )
        except PointFileError as exc:
            if exc.source is None:
                exc.source = key
            raise
        finally:
            pin.close()

        try:
            for split in splits:
                with self.open_reader_for_split(split) as reader:
                    yield from reader
        finally:
            self.header_cache.release(key)

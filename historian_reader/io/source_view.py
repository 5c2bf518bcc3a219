"""
Paged read-ahead view over a ByteSource.

The codec only needs ``len()`` and slicing; this view provides both over a
source without loading the whole file, keeping one contiguous window of
recently read bytes.
"""
from __future__ import annotations

from historian_reader.core.ports.byte_source import ByteSource


class SourceView:
    def __init__(self, source: ByteSource, *, page_bytes: int = 64 * 1024) -> None:
        if page_bytes <= 0:
            raise ValueError("page_bytes must be > 0")
        self._source = source
        self._page_bytes = page_bytes
        self._size = source.size()
        self._window_start = 0
        self._window = b""

    def __len__(self) -> int:
        return self._size

    def __getitem__(self, index: slice) -> bytes:
        if not isinstance(index, slice) or index.step not in (None, 1):
            raise TypeError("SourceView supports contiguous slices only")

        start = 0 if index.start is None else max(index.start, 0)
        stop = self._size if index.stop is None else min(index.stop, self._size)
        if start >= stop:
            return b""

        window_end = self._window_start + len(self._window)
        if not (self._window_start <= start and stop <= window_end):
            self._fill(start, stop - start)
            window_end = self._window_start + len(self._window)

        # A short read leaves the window shorter than requested.
        stop = min(stop, window_end)
        return self._window[start - self._window_start:stop - self._window_start]

    def _fill(self, start: int, needed: int) -> None:
        self._window_start = start
        self._window = self._source.read_at(start, max(needed, self._page_bytes))

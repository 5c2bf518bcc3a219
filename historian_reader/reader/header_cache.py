"""
Per-file header cache.

Split readers opened on the same file share one parsed FormatHeader. The
header is loaded once on first access, even when several readers open
different splits of the file concurrently, and dropped when the last reader
of that file releases it.

The cache also keeps confirmed record boundaries ("anchors") per file so a
variable-length boundary walk can start from the closest known boundary
instead of the header end.
"""

from __future__ import annotations

import bisect
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from historian_reader.core.domain.types import FormatHeader

LOGGER = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    header: FormatHeader | None = None
    refs: int = 0
    anchors: list[int] = field(default_factory=list)


class HeaderCache:
    """Reference-counted, compute-once cache of parsed headers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, _CacheEntry] = {}

    def acquire(self, key: str, loader: Callable[[], FormatHeader]) -> FormatHeader:
        """
        Return the header for ``key``, calling ``loader`` if it is not cached.

        Every successful acquire must be paired with :meth:`release`. A
        failing loader leaves no reference behind and its error propagates.
        """
        with self._lock:
            entry = self._entries.setdefault(key, _CacheEntry())
            entry.refs += 1

        try:
            with entry.lock:
                if entry.header is None:
                    entry.header = loader()
                    LOGGER.debug(
                        "Header loaded",
                        extra={"source": key, "version": entry.header.version},
                    )
                return entry.header
        except BaseException:
            self._drop_ref(key, entry)
            raise

    def release(self, key: str) -> None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is not None:
            self._drop_ref(key, entry)

    def _drop_ref(self, key: str, entry: _CacheEntry) -> None:
        with self._lock:
            entry.refs -= 1
            if entry.refs <= 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
        return entry is not None and entry.header is not None

    # ------------------------------------------------------------------
    # Boundary anchors
    # ------------------------------------------------------------------

    def add_anchor(self, key: str, offset: int) -> None:
        """Record ``offset`` as a confirmed record boundary of ``key``."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return
        with entry.lock:
            index = bisect.bisect_left(entry.anchors, offset)
            if index == len(entry.anchors) or entry.anchors[index] != offset:
                entry.anchors.insert(index, offset)

    def nearest_anchor(self, key: str, offset: int) -> int | None:
        """Return the largest confirmed boundary <= ``offset``, if any."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        with entry.lock:
            index = bisect.bisect_right(entry.anchors, offset)
            if index == 0:
                return None
            return entry.anchors[index - 1]

"""Byte source protocol for split readers.

This module defines the storage-facing boundary used by the split reader.
Concrete implementations adapt local files, in-memory buffers or object
storage to this protocol.
"""

from __future__ import annotations

from typing import Callable, Protocol


class ByteSource(Protocol):
    """Random-access, read-only view of one file.

    Reads may block on storage I/O and storage failures raise ``OSError``.
    A source is owned by exactly one reader and is not required to be
    thread-safe.
    """

    @property
    def identity(self) -> str:
        """Stable file identity (path or object key) used for caching and diagnostics."""

    def size(self) -> int:
        """Return the total file length in bytes."""

    def read_at(self, offset: int, length: int) -> bytes:
        """Return up to ``length`` bytes starting at ``offset``.

        Fewer bytes are returned only at end of file or on a short read.
        """

    def close(self) -> None:
        """Release underlying resources. Must be idempotent."""


ByteSourceFactory = Callable[[str], ByteSource]

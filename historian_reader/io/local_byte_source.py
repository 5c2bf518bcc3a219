from __future__ import annotations

import os
from pathlib import Path


class LocalFileByteSource:
    """ByteSource backed by a file on the local filesystem."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._fh = self._path.open("rb")
        self._size = os.fstat(self._fh.fileno()).st_size
        self._closed = False

    @property
    def identity(self) -> str:
        return str(self._path)

    def size(self) -> int:
        return self._size

    def read_at(self, offset: int, length: int) -> bytes:
        if self._closed:
            raise ValueError(f"read from closed source {self._path}")
        if offset >= self._size or length <= 0:
            return b""
        self._fh.seek(offset)
        return self._fh.read(length)

    def close(self) -> None:
        if self._closed:
            return
        self._fh.close()
        self._closed = True

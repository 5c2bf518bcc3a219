from __future__ import annotations


class InMemoryByteSource:
    """ByteSource over a bytes buffer (fixtures, already-fetched objects)."""

    def __init__(self, data: bytes, *, identity: str = "<memory>") -> None:
        self._data = bytes(data)
        self._identity = identity
        self.closed = False

    @property
    def identity(self) -> str:
        return self._identity

    def size(self) -> int:
        return len(self._data)

    def read_at(self, offset: int, length: int) -> bytes:
        if self.closed:
            raise ValueError(f"read from closed source {self._identity}")
        if length <= 0:
            return b""
        return self._data[offset:offset + length]

    def close(self) -> None:
        self.closed = True

"""Split reader configuration model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReaderConfig(BaseModel):
    """Split sizing and read-ahead settings.

    ``read_chunk_bytes`` is the page size of each reader's lookahead buffer,
    ``max_split_bytes`` the nominal split length handed out by
    :func:`~historian_reader.reader.split_planner.plan_splits`.
    """

    max_split_bytes: int = Field(default=64 * 1024 * 1024, gt=0)
    read_chunk_bytes: int = Field(default=64 * 1024, ge=64)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, reader_obj: dict[str, Any]) -> ReaderConfig:
        """Create a ReaderConfig instance from a JSON-compatible object."""
        return cls.model_validate(reader_obj)

    @model_validator(mode="after")
    def validate_consistency(self) -> ReaderConfig:
        """Read-ahead pages larger than a split only waste I/O."""
        if self.read_chunk_bytes > self.max_split_bytes:
            raise ValueError("read_chunk_bytes must not exceed max_split_bytes")
        return self

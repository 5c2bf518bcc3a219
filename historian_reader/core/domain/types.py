"""Core point-file data models.

These types describe decoded measurements, per-file format metadata and the
byte ranges handed out to split readers. They are immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# ---------------------------------------------------------------------------
# Format constants
# ---------------------------------------------------------------------------

MAGIC = b"DATW"

LAYOUT_FIXED = 0
LAYOUT_VARIABLE = 1

# Historian archive time base: 1995-01-01T00:00:00Z in unix epoch millis.
HISTORIAN_EPOCH_MS = 788_918_400_000


# ---------------------------------------------------------------------------
# Decoded records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PointRecord:
    """One timestamped, tagged measurement sample."""

    timestamp_millis: int
    tag_id: int | str
    quality_flags: int
    value: float


# ---------------------------------------------------------------------------
# Per-file metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormatHeader:
    """
    Parsed file preamble.

    Shared read-only between every split reader opened on the same file.
    ``record_stride`` is 0 for variable-length layouts.
    """

    version: int
    layout: int
    record_stride: int
    header_size: int
    value_scale: float = 1.0
    tag_dictionary: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "tag_dictionary",
            MappingProxyType(dict(self.tag_dictionary)),
        )

    @property
    def is_fixed_stride(self) -> bool:
        return self.layout == LAYOUT_FIXED

    def tag_name(self, tag_id: int) -> int | str:
        """Resolve a raw tag id through the embedded dictionary, if any."""
        return self.tag_dictionary.get(tag_id, tag_id)

    def tag_index(self, tag: int | str) -> int:
        """Inverse of :meth:`tag_name`."""
        if isinstance(tag, int):
            return tag
        for tag_id, name in self.tag_dictionary.items():
            if name == tag:
                return tag_id
        raise ValueError(f"Tag {tag!r} is not in the header tag dictionary")


# ---------------------------------------------------------------------------
# Splits
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SplitRange:
    """
    Half-open byte interval ``[start, end)`` over one file.

    Bounds against the actual file length are checked when a reader is
    opened, since the splitter and the reader may see the file at different
    times.
    """

    path: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("start must be >= 0")
        if self.end < self.start:
            raise ValueError("end must be >= start")

    @property
    def length(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{self.path}:{self.start}+{self.length}"

"""
File split planning.

This module contains utilities for cutting a file into consecutive
byte-size-constrained splits. Cuts ignore record boundaries: readers
realign at open time.
"""

from __future__ import annotations

from historian_reader.core.domain.types import SplitRange


def plan_splits(
    path: str,
    file_length: int,
    max_split_bytes: int,
) -> list[SplitRange]:
    """
    Split ``[0, file_length)`` into ordered ranges of at most
    ``max_split_bytes`` each.
    """

    if file_length < 0:
        raise ValueError("file_length must be >= 0")

    if max_split_bytes <= 0:
        raise ValueError("max_split_bytes must be > 0")

    splits: list[SplitRange] = []
    start = 0

    while start < file_length:
        end = min(start + max_split_bytes, file_length)
        splits.append(SplitRange(path=path, start=start, end=end))
        start = end

    return splits

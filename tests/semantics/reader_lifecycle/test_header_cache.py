"""
Semantic test: per-file header cache.

Invariant:
Concurrent first access to one file's header runs the loader exactly once
and every caller gets the same object. The entry, and any boundary anchors
it holds, is dropped when the last reference is released. A failing loader
leaves nothing behind.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from historian_reader.core.codec.point_file_encoder import make_header
from historian_reader.reader.header_cache import HeaderCache


def test_concurrent_first_access_loads_once() -> None:
    cache = HeaderCache()
    barrier = threading.Barrier(8)
    calls = []

    def loader():
        calls.append(1)
        time.sleep(0.05)
        return make_header(1)

    def worker(_: int):
        barrier.wait()
        return cache.acquire("file.d", loader)

    with ThreadPoolExecutor(max_workers=8) as pool:
        headers = list(pool.map(worker, range(8)))

    assert len(calls) == 1
    assert all(h is headers[0] for h in headers)
    assert "file.d" in cache

    for _ in range(7):
        cache.release("file.d")
    assert "file.d" in cache

    cache.release("file.d")
    assert "file.d" not in cache


def test_failing_loader_leaves_no_entry() -> None:
    cache = HeaderCache()

    def broken():
        raise ValueError("unreadable")

    with pytest.raises(ValueError):
        cache.acquire("file.d", broken)
    assert "file.d" not in cache

    header = cache.acquire("file.d", lambda: make_header(2))
    assert header.version == 2


def test_separate_files_have_separate_entries() -> None:
    cache = HeaderCache()

    a = cache.acquire("a.d", lambda: make_header(1))
    b = cache.acquire("b.d", lambda: make_header(2))

    assert a.version == 1
    assert b.version == 2

    cache.release("a.d")
    assert "a.d" not in cache
    assert "b.d" in cache


def test_anchor_lookup_and_teardown() -> None:
    cache = HeaderCache()
    cache.acquire("file.d", lambda: make_header(2))

    cache.add_anchor("file.d", 100)
    cache.add_anchor("file.d", 50)
    cache.add_anchor("file.d", 100)

    assert cache.nearest_anchor("file.d", 40) is None
    assert cache.nearest_anchor("file.d", 50) == 50
    assert cache.nearest_anchor("file.d", 75) == 50
    assert cache.nearest_anchor("file.d", 500) == 100

    cache.release("file.d")
    assert cache.nearest_anchor("file.d", 500) is None

    # Anchors for files nobody holds are ignored.
    cache.add_anchor("file.d", 10)
    assert cache.nearest_anchor("file.d", 500) is None

# tests/test_content_cache.py

import threading
import time

import pytest

from distkit.core.content_cache import ContentCache
from distkit.core.workers import run_bounded

def test_first_load_is_a_miss_then_hits():
    cache = ContentCache()

    assert cache.get_or_load("k", lambda: b"data") == (b"data", False)
    assert cache.get_or_load("k", lambda: b"other") == (b"data", True)
    assert (cache.hits, cache.misses) == (1, 1)
    assert "k" in cache and len(cache) == 1

def test_loader_runs_once_per_key_under_concurrency():
    cache = ContentCache()
    calls = []
    lock = threading.Lock()

    def loader() -> bytes:
        with lock:
            calls.append(1)
        time.sleep(0.05)
        return b"shared"

    results = run_bounded(range(16), lambda _: cache.get_or_load("same", loader), max_workers=8)

    assert len(calls) == 1
    assert all(content == b"shared" for content, _ in results)
    assert sum(1 for _, from_cache in results if not from_cache) == 1

def test_failed_load_lets_next_caller_retry():
    cache = ContentCache()

    def failing() -> bytes:
        raise OSError("boom")

    with pytest.raises(OSError):
        cache.get_or_load("k", failing)

    assert cache.get_or_load("k", lambda: b"ok") == (b"ok", False)

def test_oversized_entries_are_not_stored():
    cache = ContentCache(max_entry_bytes=4)

    cache.get_or_load("big", lambda: b"0123456789")

    assert "big" not in cache
    assert cache.get("big") is None

def test_clear_empties_cache():
    cache = ContentCache()
    cache.get_or_load("k", lambda: b"v")
    cache.clear()
    assert len(cache) == 0

# --------------------------------------------------------------------------- #
# Worker pool
# --------------------------------------------------------------------------- #
def test_run_bounded_keeps_input_order():
    assert run_bounded([3, 1, 2], lambda x: x * 10, max_workers=3) == [30, 10, 20]

def test_run_bounded_finishes_all_units_then_raises():
    done = []

    def worker(x):
        if x == 0:
            raise ValueError("first")
        time.sleep(0.01)
        done.append(x)
        return x

    with pytest.raises(ValueError):
        run_bounded(range(6), worker, max_workers=2)

    assert sorted(done) == [1, 2, 3, 4, 5]

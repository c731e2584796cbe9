# distkit/core/content_cache.py

"""
Checksum-keyed content cache shared by the copy workers of one apply phase.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional, Tuple

class ContentCache:
    """
    Map of checksum to file bytes.

    Reads are concurrent. For any key, only the first worker that asks for it
    runs the loader; the others wait for that load and then read the stored
    bytes. If the owning load fails, the next waiter loads it itself.
    """

    def __init__(self, max_entry_bytes: Optional[int] = None):
        self.max_entry_bytes = max_entry_bytes
        self._data: Dict[str, bytes] = {}
        self._pending: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def get_or_load(self, key: str, loader: Callable[[], bytes]) -> Tuple[bytes, bool]:
        """
        Return ``(content, from_cache)`` for ``key``.

        ``loader`` is called at most once per key across all threads unless a
        previous call raised.
        """
        while True:
            with self._lock:
                if key in self._data:
                    self.hits += 1
                    return self._data[key], True
                pending = self._pending.get(key)
                if pending is None:
                    pending = threading.Event()
                    self._pending[key] = pending
                    break
            pending.wait()

        try:
            content = loader()
            with self._lock:
                self.misses += 1
                if self.max_entry_bytes is None or len(content) <= self.max_entry_bytes:
                    self._data[key] = content
            return content, False
        finally:
            with self._lock:
                self._pending.pop(key, None)
            pending.set()

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

"""Read-through cache of mapped segments keyed by fingerprint.

Entries are derived data: everything in here can be recomputed from the
taxonomy mapping, so the cache is never consulted as the source of truth.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class SegmentCache(Generic[T]):
    """Fingerprint-keyed cache with an optional LRU bound.

    ``max_entries=0`` disables eviction.
    """

    def __init__(self, max_entries: int = 1024) -> None:
        self.max_entries = max_entries
        self._entries: "OrderedDict[int, T]" = OrderedDict()
        self._lock = threading.Lock()

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, fingerprint: int) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is not None:
                self._entries.move_to_end(fingerprint)
            return entry

    def put(self, fingerprint: int, entry: T) -> None:
        with self._lock:
            self._entries[fingerprint] = entry
            self._entries.move_to_end(fingerprint)
            if self.max_entries > 0:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["SegmentCache"]

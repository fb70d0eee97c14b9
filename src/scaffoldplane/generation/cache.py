"""Bounded LRU cache of completed generations.

Keyed by the exact (model, prompt) pair. No TTL: entries are valid for the
lifetime of the owning client. Owned by a GenerationClient instance and
injected through its constructor, never module state.
"""

from __future__ import annotations

import threading
from collections import OrderedDict

from scaffoldplane.config.constants import DEFAULT_CACHE_CAPACITY

CacheKey = tuple[str, str]


class GenerationCache:
    """Thread-safe LRU cache for generation text.

    ``get`` hits refresh recency. ``set`` beyond capacity evicts the least
    recently used entry.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._entries: OrderedDict[CacheKey, str] = OrderedDict()
        self._lock = threading.Lock()
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, model: str, prompt: str) -> str | None:
        key = (model, prompt)
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, model: str, prompt: str, text: str) -> None:
        key = (model, prompt)
        with self._lock:
            self._entries[key] = text
            self._entries.move_to_end(key)
            while len(self._entries) > self._capacity:
                self._entries.popitem(last=False)

    def keys(self) -> list[CacheKey]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        # Membership test does not touch recency
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

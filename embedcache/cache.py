"""Bounded, thread-safe in-memory cache of text embeddings."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict

import numpy as np

from embedcache.errors import DimensionMismatch
from embedcache.vector_math import as_vector

logger = logging.getLogger(__name__)

POLICIES = ("fifo", "lru")


class EmbeddingCache:
    """Map exact text to its embedding, bounded by ``capacity``.

    The default ``fifo`` policy evicts the oldest-inserted entry once the
    cache is full; lookups do not refresh an entry. ``lru`` makes hits and
    overwrites move the entry to the back of the eviction queue.

    A capacity of 0 disables caching: inserts are dropped.
    """

    def __init__(self, capacity: int = 10_000, dimension: int | None = None, policy: str = "fifo"):
        if capacity < 0:
            raise ValueError(f"Cache capacity must be >= 0, got {capacity}")
        if policy not in POLICIES:
            raise ValueError(f"Unknown eviction policy: {policy}")
        self.capacity = capacity
        self.dimension = dimension
        self.policy = policy
        self._entries: OrderedDict[str, np.ndarray] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, text: str) -> np.ndarray | None:
        """Return a copy of the cached vector for ``text``, or None."""
        with self._lock:
            vec = self._entries.get(text)
            if vec is None:
                return None
            if self.policy == "lru":
                self._entries.move_to_end(text)
            return vec.copy()

    def insert(self, text: str, vector) -> None:
        """Insert or overwrite the vector for ``text``."""
        if self.capacity == 0:
            return
        vec = as_vector(vector).copy()
        if self.dimension is not None and vec.shape[0] != self.dimension:
            raise DimensionMismatch(
                f"Cache holds {self.dimension}-d vectors, got {vec.shape[0]}-d for {text[:60]!r}"
            )
        vec.setflags(write=False)

        with self._lock:
            self._entries[text] = vec
            if self.policy == "lru":
                self._entries.move_to_end(text)
            if len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %r", evicted[:60])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Cached texts, next-to-evict first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, text: str) -> bool:
        with self._lock:
            return text in self._entries

"""Tests for the bounded embedding cache."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from embedcache.cache import EmbeddingCache
from embedcache.errors import DimensionMismatch


def _vec(x: float, dim: int = 3) -> np.ndarray:
    return np.full(dim, x, dtype=np.float32)


def test_fifo_evicts_oldest_inserted():
    """capacity=2, insert a, b, c leaves {b, c}."""
    cache = EmbeddingCache(capacity=2)
    cache.insert("a", _vec(1))
    cache.insert("b", _vec(2))
    cache.insert("c", _vec(3))

    assert len(cache) == 2
    assert "a" not in cache
    assert cache.keys() == ["b", "c"]


def test_fifo_lookup_does_not_refresh():
    """A hit does not protect an entry from FIFO eviction."""
    cache = EmbeddingCache(capacity=2)
    cache.insert("a", _vec(1))
    cache.insert("b", _vec(2))
    assert cache.get("a") is not None
    cache.insert("c", _vec(3))

    assert cache.get("a") is None
    assert cache.get("b") is not None


def test_overwrite_keeps_insertion_position():
    """Re-inserting a key updates its value but not its eviction order."""
    cache = EmbeddingCache(capacity=2)
    cache.insert("a", _vec(1))
    cache.insert("b", _vec(2))
    cache.insert("a", _vec(9))
    assert cache.get("a")[0] == 9.0

    cache.insert("c", _vec(3))
    assert "a" not in cache
    assert cache.keys() == ["b", "c"]


def test_lru_policy_refreshes_on_hit():
    cache = EmbeddingCache(capacity=2, policy="lru")
    cache.insert("a", _vec(1))
    cache.insert("b", _vec(2))
    cache.get("a")
    cache.insert("c", _vec(3))

    assert "a" in cache
    assert "b" not in cache


def test_zero_capacity_disables_caching():
    cache = EmbeddingCache(capacity=0)
    cache.insert("a", _vec(1))
    assert len(cache) == 0
    assert cache.get("a") is None


def test_invalid_arguments():
    with pytest.raises(ValueError):
        EmbeddingCache(capacity=-1)
    with pytest.raises(ValueError):
        EmbeddingCache(capacity=1, policy="random")


def test_get_returns_independent_copy():
    """Mutating a returned vector does not touch the cached one."""
    cache = EmbeddingCache(capacity=2)
    original = _vec(1)
    cache.insert("a", original)
    original[0] = 42.0

    first = cache.get("a")
    first[1] = 99.0
    second = cache.get("a")

    assert second.tolist() == [1.0, 1.0, 1.0]


def test_dimension_is_enforced():
    cache = EmbeddingCache(capacity=2, dimension=3)
    with pytest.raises(DimensionMismatch, match="bad"):
        cache.insert("bad", _vec(1, dim=4))


def test_clear_keeps_capacity():
    cache = EmbeddingCache(capacity=3)
    for key in "abc":
        cache.insert(key, _vec(1))
    cache.clear()
    assert len(cache) == 0
    assert cache.capacity == 3


def test_concurrent_inserts_respect_capacity():
    """Parallel writers never push the cache past its bound."""
    cache = EmbeddingCache(capacity=50, dimension=3)
    errors = []

    def writer(offset: int):
        try:
            for i in range(200):
                key = f"text-{(offset * 200 + i) % 300}"
                cache.insert(key, _vec(i))
                cache.get(key)
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(cache) == 50

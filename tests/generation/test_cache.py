"""Tests for generation/cache.py module.

Covers:
- get/set round trip keyed by (model, prompt)
- LRU eviction at capacity
- Recency refresh on get
- Concurrent get/set from several threads
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from scaffoldplane.generation.cache import GenerationCache


class TestGenerationCacheBasics:
    """Tests for lookup and storage."""

    def test_miss_returns_none(self) -> None:
        """Unknown keys return None."""
        cache = GenerationCache()
        assert cache.get("m", "p") is None

    def test_set_then_get(self) -> None:
        """A stored value is returned for the same key."""
        cache = GenerationCache()
        cache.set("m", "p", "text")
        assert cache.get("m", "p") == "text"

    def test_key_includes_model(self) -> None:
        """Same prompt under another model is a different entry."""
        cache = GenerationCache()
        cache.set("a", "p", "from a")
        assert cache.get("b", "p") is None

    def test_empty_text_is_a_hit(self) -> None:
        """An empty completed generation is still cached."""
        cache = GenerationCache()
        cache.set("m", "p", "")
        assert cache.get("m", "p") == ""

    def test_set_overwrites(self) -> None:
        """Setting an existing key replaces its value without growing."""
        cache = GenerationCache()
        cache.set("m", "p", "one")
        cache.set("m", "p", "two")
        assert cache.get("m", "p") == "two"
        assert len(cache) == 1

    def test_default_capacity(self) -> None:
        """Default capacity is 20."""
        assert GenerationCache().capacity == 20

    def test_rejects_zero_capacity(self) -> None:
        """Capacity must be at least 1."""
        with pytest.raises(ValueError):
            GenerationCache(0)

    def test_clear(self) -> None:
        """clear() empties the cache."""
        cache = GenerationCache()
        cache.set("m", "p", "text")
        cache.clear()
        assert len(cache) == 0


class TestGenerationCacheEviction:
    """Tests for LRU behavior."""

    def test_evicts_least_recently_used(self) -> None:
        """Inserting beyond capacity drops the oldest entry."""
        cache = GenerationCache(capacity=2)
        cache.set("m", "p1", "1")
        cache.set("m", "p2", "2")
        cache.set("m", "p3", "3")

        assert cache.get("m", "p1") is None
        assert cache.get("m", "p2") == "2"
        assert cache.get("m", "p3") == "3"

    def test_get_refreshes_recency(self) -> None:
        """A hit moves the entry to most recently used."""
        cache = GenerationCache(capacity=2)
        cache.set("m", "p1", "1")
        cache.set("m", "p2", "2")

        assert cache.get("m", "p1") == "1"
        cache.set("m", "p3", "3")

        assert cache.get("m", "p1") == "1"
        assert cache.get("m", "p2") is None

    def test_never_exceeds_capacity(self) -> None:
        """Size stays at capacity after many inserts."""
        cache = GenerationCache(capacity=20)
        for i in range(50):
            cache.set("m", f"p{i}", str(i))

        assert len(cache) == 20
        assert cache.keys()[0] == ("m", "p30")
        assert cache.keys()[-1] == ("m", "p49")

    def test_contains_does_not_refresh(self) -> None:
        """Membership test leaves recency order unchanged."""
        cache = GenerationCache(capacity=2)
        cache.set("m", "p1", "1")
        cache.set("m", "p2", "2")

        assert ("m", "p1") in cache
        cache.set("m", "p3", "3")

        assert ("m", "p1") not in cache


class TestGenerationCacheConcurrency:
    """Tests for get/set from many threads at once."""

    def test_parallel_writers_keep_lru_order(self) -> None:
        """Concurrent writers leave exactly the most recent entries of each writer."""
        cache = GenerationCache(capacity=50)
        writers, per_writer = 8, 200
        barrier = threading.Barrier(writers)

        def write(worker: int) -> None:
            model = f"m{worker}"
            barrier.wait()
            for i in range(per_writer):
                cache.set(model, f"p{i}", f"{model}:{i}")
                cache.get(model, f"p{i}")

        with ThreadPoolExecutor(max_workers=writers) as pool:
            for future in [pool.submit(write, w) for w in range(writers)]:
                future.result()

        keys = cache.keys()
        assert len(keys) == len(set(keys)) == 50
        for model, prompt in keys:
            assert cache.get(model, prompt) == f"{model}:{prompt[1:]}"

        for worker in range(writers):
            survivors = sorted(int(p[1:]) for m, p in keys if m == f"m{worker}")
            assert survivors == list(range(per_writer - len(survivors), per_writer))

    def test_parallel_readers_and_writers_share_keys(self) -> None:
        """Overlapping keys never push the cache past capacity or lose values."""
        cache = GenerationCache(capacity=10)
        errors: list[BaseException] = []

        def churn(worker: int) -> None:
            try:
                for i in range(500):
                    key = f"p{(i + worker) % 15}"
                    cache.set("m", key, key)
                    value = cache.get("m", key)
                    assert value in (None, key)
                    assert len(cache) <= 10
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=churn, args=(w,)) for w in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) == 10
        assert all(cache.get(m, p) == p for m, p in cache.keys())

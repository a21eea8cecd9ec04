"""Unit tests for TTL Cache module."""
import threading

from esta_risk.cache import TTLCache, generate_score_cache_key, tenant_from_cache_key
from factories import FixedClock


class TestCacheKey:
    """Test cache key generation."""

    def test_generate_score_cache_key(self):
        """Test score cache key generation."""
        key = generate_score_cache_key("acme", "2.0.0")
        assert key == "tenant:acme:score:2.0.0"

    def test_generate_score_cache_key_default_version(self):
        """Test score cache key with default model version."""
        key = generate_score_cache_key("acme")
        assert key == "tenant:acme:score:1.0.0"

    def test_tenant_from_cache_key(self):
        assert tenant_from_cache_key("tenant:acme:score:1.0.0") == "acme"
        assert tenant_from_cache_key("tenant:acme:eu:score:1.0.0") == "acme:eu"
        assert tenant_from_cache_key("features:acme") is None


class TestTTLCache:
    """Test TTL Cache functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FixedClock()
        self.cache = TTLCache(ttl_seconds=60, clock=self.clock)
        self.test_score = {"overall_score": 42.5, "risk_level": "medium"}

    def test_cache_set_and_get(self):
        """Test basic set and get operations."""
        key = generate_score_cache_key("acme")
        self.cache.set(key, self.test_score)

        assert self.cache.get(key) == self.test_score

    def test_cache_miss_nonexistent_key(self):
        """Test that getting a non-existent key returns None."""
        assert self.cache.get("nonexistent:key") is None

    def test_cache_expiry_after_ttl(self):
        """Test that cache entries expire after TTL."""
        key = generate_score_cache_key("acme")
        self.cache.set(key, self.test_score)

        self.clock.advance(seconds=60)
        assert self.cache.get(key) is not None

        self.clock.advance(seconds=1)
        assert self.cache.get(key) is None
        assert self.cache.size() == 0

    def test_get_with_timestamp(self):
        key = generate_score_cache_key("acme")
        self.cache.set(key, self.test_score)

        value, stored_at = self.cache.get_with_timestamp(key)
        assert value == self.test_score
        assert stored_at == self.clock.now

    def test_cache_manual_clear(self):
        """Test manual cache invalidation."""
        key = generate_score_cache_key("acme")
        self.cache.set(key, self.test_score)

        self.cache.clear(key)

        assert self.cache.get(key) is None

    def test_cache_clear_tenant(self):
        """Test clearing all entries for a tenant across model versions."""
        self.cache.set(generate_score_cache_key("acme", "1.0.0"), self.test_score)
        self.cache.set(generate_score_cache_key("acme", "2.0.0"), self.test_score)

        removed = self.cache.clear_tenant("acme")

        assert removed == 2
        assert self.cache.size() == 0

    def test_cache_clear_tenant_does_not_affect_other_tenants(self):
        """Clearing one tenant leaves similarly-named tenants alone."""
        self.cache.set(generate_score_cache_key("acme"), {"overall_score": 10})
        self.cache.set(generate_score_cache_key("acme-west"), {"overall_score": 60})

        self.cache.clear_tenant("acme")

        assert self.cache.get(generate_score_cache_key("acme")) is None
        assert self.cache.get(generate_score_cache_key("acme-west")) == {"overall_score": 60}

    def test_cache_clear_tenant_with_colon_in_id(self):
        """A tenant id that extends another with a colon is a different tenant."""
        self.cache.set(generate_score_cache_key("acme:eu"), {"overall_score": 60})
        self.cache.set(generate_score_cache_key("acme"), {"overall_score": 10})

        removed = self.cache.clear_tenant("acme")

        assert removed == 1
        assert self.cache.get(generate_score_cache_key("acme:eu")) == {"overall_score": 60}

    def test_cache_clear_all(self):
        """Test clearing entire cache."""
        self.cache.set(generate_score_cache_key("a"), self.test_score)
        self.cache.set(generate_score_cache_key("b"), self.test_score)
        assert self.cache.size() == 2

        self.cache.clear_all()

        assert self.cache.size() == 0

    def test_cache_stats(self):
        """Test cache statistics."""
        self.cache.set(generate_score_cache_key("a"), self.test_score)

        stats = self.cache.stats()
        assert stats == {"size": 1, "max_size": 1000, "ttl_seconds": 60}

    def test_cache_prune_preserves_valid_entries(self):
        """Test that pruning only removes expired entries."""
        self.cache.set("tenant:old:score:1.0.0", self.test_score)
        self.clock.advance(seconds=40)
        self.cache.set("tenant:new:score:1.0.0", self.test_score)
        self.clock.advance(seconds=30)

        assert self.cache.prune_expired() == 1
        assert self.cache.get("tenant:new:score:1.0.0") == self.test_score

    def test_cache_overwrite(self):
        """Test that setting same key overwrites value."""
        key = generate_score_cache_key("acme")
        self.cache.set(key, {"overall_score": 10})
        self.cache.set(key, {"overall_score": 20})

        assert self.cache.get(key) == {"overall_score": 20}
        assert self.cache.size() == 1


class TestTTLCacheEviction:

    def setup_method(self):
        self.clock = FixedClock()
        self.cache = TTLCache(ttl_seconds=60, max_size=2, clock=self.clock)

    def test_oldest_entry_evicted_when_full(self):
        self.cache.set("tenant:a:score:1", 1)
        self.cache.set("tenant:b:score:1", 2)
        self.cache.set("tenant:c:score:1", 3)

        assert self.cache.size() == 2
        assert self.cache.get("tenant:a:score:1") is None
        assert self.cache.get("tenant:c:score:1") == 3

    def test_expired_entries_evicted_first(self):
        self.cache.set("tenant:a:score:1", 1)
        self.clock.advance(seconds=30)
        self.cache.set("tenant:b:score:1", 2)
        self.clock.advance(seconds=40)  # a expired, b still fresh
        self.cache.set("tenant:c:score:1", 3)

        assert self.cache.get("tenant:b:score:1") == 2
        assert self.cache.get("tenant:c:score:1") == 3

    def test_zero_size_cache_does_not_fail(self):
        cache = TTLCache(max_size=0, clock=self.clock)
        cache.set("tenant:a:score:1", 1)
        assert cache.size() == 1


class TestKeyLock:

    def test_serializes_compound_updates(self):
        cache = TTLCache()
        key = "tenant:acme:score:1.0.0"
        cache.set(key, 0)

        def increment():
            for _ in range(200):
                with cache.key_lock(key):
                    cache.set(key, cache.get(key) + 1)

        threads = [threading.Thread(target=increment) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.get(key) == 800

    def test_locks_released_after_use(self):
        cache = TTLCache()
        for tenant in ("a", "b", "c"):
            with cache.key_lock(generate_score_cache_key(tenant)):
                assert len(cache._key_locks) == 1

        assert cache._key_locks == {}

    def test_lock_kept_while_another_thread_waits(self):
        cache = TTLCache()
        key = generate_score_cache_key("acme")
        entered = threading.Event()
        order = []

        def waiter():
            entered.set()
            with cache.key_lock(key):
                order.append("waiter")

        with cache.key_lock(key):
            thread = threading.Thread(target=waiter)
            thread.start()
            entered.wait()
            # Give the waiter time to block on the held lock
            thread.join(timeout=0.1)
            order.append("holder")

        thread.join()
        assert order == ["holder", "waiter"]
        assert cache._key_locks == {}

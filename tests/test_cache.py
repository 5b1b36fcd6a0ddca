"""
Unit tests for the bounded, time-expiring thumbnail cache.
"""
import unittest

from mediacache.cache import ThumbnailCache


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestThumbnailCache(unittest.TestCase):
    """Test eviction and expiry policy."""

    def setUp(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.cache = ThumbnailCache(max_size=3, ttl=100.0, clock=self.clock)

    def _fill(self, keys):
        for key in keys:
            self.cache.put(key, f"data-{key}".encode())
            self.clock.advance(1)

    def test_get_returns_stored_bytes(self):
        self.cache.put("a", b"abc")
        self.assertEqual(self.cache.get("a"), b"abc")

    def test_missing_key_returns_none(self):
        self.assertIsNone(self.cache.get("nope"))

    def test_overflow_evicts_earliest_insert(self):
        """Inserting max_size + 1 keys keeps max_size and drops the first."""
        self._fill(["a", "b", "c", "d"])
        self.assertEqual(len(self.cache), 3)
        self.assertNotIn("a", self.cache)
        for key in ("b", "c", "d"):
            self.assertIsNotNone(self.cache.get(key))

    def test_eviction_tie_goes_to_first_inserted(self):
        """Same timestamp for every entry: insertion order decides."""
        for key in ("a", "b", "c"):
            self.cache.put(key, b"x")
        self.cache.put("d", b"x")
        self.assertNotIn("a", self.cache)
        self.assertIn("b", self.cache)

    def test_overwrite_at_capacity_does_not_evict(self):
        self._fill(["a", "b", "c"])
        self.cache.put("b", b"new")
        self.assertEqual(len(self.cache), 3)
        self.assertEqual(self.cache.get("b"), b"new")
        self.assertIn("a", self.cache)

    def test_overwrite_refreshes_timestamp(self):
        self._fill(["a", "b", "c"])
        self.cache.put("a", b"again")
        self.cache.put("d", b"x")
        # b is now the oldest
        self.assertIn("a", self.cache)
        self.assertNotIn("b", self.cache)

    def test_entry_alive_just_before_expiry(self):
        self.cache.put("a", b"abc")
        self.clock.advance(100.0 - 0.001)
        self.assertEqual(self.cache.get("a"), b"abc")

    def test_entry_gone_just_after_expiry(self):
        self.cache.put("a", b"abc")
        self.clock.advance(100.0 + 0.001)
        self.assertIsNone(self.cache.get("a"))

    def test_entry_gone_exactly_at_expiry(self):
        self.cache.put("a", b"abc")
        self.clock.advance(100.0)
        self.assertIsNone(self.cache.get("a"))

    def test_stale_entry_purged_on_lookup(self):
        self.cache.put("a", b"abc")
        self.clock.advance(500)
        self.assertIn("a", self.cache)  # lazy expiry: still stored
        self.cache.get("a")
        self.assertNotIn("a", self.cache)
        self.assertEqual(len(self.cache), 0)

    def test_clear(self):
        self._fill(["a", "b"])
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)
        self.assertIsNone(self.cache.get("a"))

    def test_integer_keys(self):
        cache = ThumbnailCache(max_size=2, clock=self.clock)
        cache.put(1, b"one")
        self.clock.advance(1)
        cache.put(2, b"two")
        self.clock.advance(1)
        cache.put(3, b"three")
        self.assertIsNone(cache.get(1))
        self.assertEqual(cache.get(3), b"three")

    def test_default_policy(self):
        cache = ThumbnailCache()
        self.assertEqual(cache.max_size, 1000)
        self.assertEqual(cache.ttl, 24 * 3600)

    def test_stats(self):
        self._fill(["a"])
        self.assertEqual(self.cache.stats(), {"size": 1, "max_size": 3, "ttl": 100.0})

    def test_rejects_zero_capacity(self):
        with self.assertRaises(ValueError):
            ThumbnailCache(max_size=0)


if __name__ == '__main__':
    unittest.main()

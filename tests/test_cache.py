"""Tests for the TTL cache."""

import unittest
import sys
from pathlib import Path

# Add src to path so we can import seqtransit
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seqtransit.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache(unittest.TestCase):
    """Test expiry, stale reads and eviction."""

    def setUp(self):
        self.clock = FakeClock()
        self.cache = TTLCache(ttl=30, max_size=2, clock=self.clock)

    def test_fresh_then_expired(self):
        self.cache.set("a", 1)
        self.clock.now += 29
        self.assertEqual(self.cache.get("a"), 1)
        self.clock.now += 1
        self.assertIsNone(self.cache.get("a"))
        self.assertEqual(self.cache.get_stale("a"), 1)

    def test_oldest_evicted_when_full(self):
        self.cache.set("a", 1)
        self.clock.now += 1
        self.cache.set("b", 2)
        self.clock.now += 1
        self.cache.set("c", 3)
        self.assertIsNone(self.cache.get_stale("a"))
        self.assertEqual(len(self.cache), 2)

    def test_expired_entry_survives_other_writes(self):
        self.cache.set("a", 1)
        self.clock.now += 60
        self.cache.set("b", 2)
        self.assertIsNone(self.cache.get("a"))
        self.assertEqual(self.cache.get_stale("a"), 1)

    def test_full_cache_drops_expired_entry_first(self):
        self.cache.set("a", 1)
        self.clock.now += 60
        self.cache.set("b", 2)
        self.cache.set("c", 3)
        self.assertIsNone(self.cache.get_stale("a"))
        self.assertEqual(self.cache.get("b"), 2)

    def test_stats_and_clear(self):
        self.cache.set("a", 1)
        self.clock.now += 40
        stats = self.cache.stats()
        self.assertEqual(stats["size"], 1)
        self.assertTrue(stats["entries"][0]["stale"])
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)


if __name__ == "__main__":
    unittest.main()

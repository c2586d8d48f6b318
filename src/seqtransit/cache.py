"""Small in-memory TTL cache for query responses and real-time feeds."""

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class TTLCache:
    """Key/value store whose entries expire after a fixed number of seconds."""

    def __init__(self, ttl: float = 30, max_size: int = 100, clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            ttl: Seconds an entry stays fresh.
            max_size: Entry limit; the oldest entry is dropped when full.
            clock: Time source in seconds (injected in tests).
        """
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}  # key -> (value, stored_at)

    def get(self, key: str) -> Optional[Any]:
        """Return a fresh value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self.is_stale(stored_at):
            return None
        logger.debug(f"Cache hit for {key}")
        return value

    def get_stale(self, key: str) -> Optional[Any]:
        """Return a value regardless of age (fallback when a refresh fails)."""
        entry = self._entries.get(key)
        return entry[0] if entry else None

    def set(self, key: str, value: Any) -> None:
        """
        Store a value. Expired entries are kept for get_stale(); the oldest
        entry is dropped only when the cache is full.
        """
        if key not in self._entries and len(self._entries) >= self.max_size:
            oldest_key = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest_key]
            logger.debug(f"Evicted oldest cache entry {oldest_key}")

        self._entries[key] = (value, self._clock())

    def is_stale(self, stored_at: float) -> bool:
        return self._clock() - stored_at >= self.ttl

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        return {
            "size": len(self._entries),
            "entries": [
                {"key": key, "age": int(now - stored_at), "stale": now - stored_at >= self.ttl}
                for key, (_, stored_at) in self._entries.items()
            ],
        }

    def __len__(self) -> int:
        return len(self._entries)

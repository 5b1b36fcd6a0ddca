"""
In-memory thumbnail cache.
Bounded by entry count, entries expire a fixed time after insertion.
"""
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar
import time

K = TypeVar("K", bound=Hashable)


class ThumbnailCache(Generic[K]):
    """
    Key -> thumbnail bytes with lazy expiry.

    Stale entries are only dropped when looked up. When full, inserting a new
    key evicts the entry with the oldest insertion time (first inserted wins
    ties, since dicts keep insertion order).
    """

    def __init__(self, max_size: int = 1000, ttl: float = 24 * 3600,
                 clock: Callable[[], float] = time.time):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._data: Dict[K, bytes] = {}
        self._timestamps: Dict[K, float] = {}

    def get(self, key: K) -> Optional[bytes]:
        """
        Get thumbnail from cache if available and not expired.

        Returns:
            Thumbnail bytes if cached and valid, None otherwise
        """
        inserted = self._timestamps.get(key)
        if inserted is not None and self._clock() - inserted < self.ttl:
            return self._data.get(key)

        # Expired or missing, purge whatever is left
        self._data.pop(key, None)
        self._timestamps.pop(key, None)
        return None

    def put(self, key: K, data: bytes):
        """Cache thumbnail data, evicting the oldest entry when full."""
        if key not in self._data and len(self._data) >= self.max_size:
            oldest = min(self._timestamps.items(), key=lambda x: x[1])[0]
            self._data.pop(oldest, None)
            self._timestamps.pop(oldest, None)

        # Re-insert so overwritten keys move to the end of the tie order
        self._data.pop(key, None)
        self._timestamps.pop(key, None)
        self._data[key] = data
        self._timestamps[key] = self._clock()

    def clear(self):
        """Clear all cached thumbnails."""
        self._data.clear()
        self._timestamps.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key) -> bool:
        return key in self._data

    def stats(self) -> dict:
        """Get cache statistics."""
        return {
            "size": len(self._data),
            "max_size": self.max_size,
            "ttl": self.ttl,
        }

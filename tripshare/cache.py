"""Thread-safe in-memory cache with optional TTL."""

import threading
import time
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """
    Thread-safe in-memory cache.

    Entries set with `ttl_seconds=None` never expire. Expiry uses a
    monotonic clock so wall-clock jumps don't matter.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._cache: dict[Hashable, tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store value, expiring after ttl_seconds (never if None)."""
        expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
        with self._lock:
            self._cache[key] = (value, expires_at)

    def get(self, key: Hashable) -> Optional[Any]:
        """Retrieve value if present and not expired."""
        with self._lock:
            if key not in self._cache:
                return None
            value, expires_at = self._cache[key]
            if expires_at is None or self._clock() < expires_at:
                return value
            del self._cache[key]
            return None

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns count removed."""
        with self._lock:
            now = self._clock()
            expired = [
                k for k, (_, expires_at) in self._cache.items()
                if expires_at is not None and now >= expires_at
            ]
            for key in expired:
                del self._cache[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

# autospa/core/cache.py
"""
In-process TTL cache owned by the application instance.

Created once in create_app() and handed to routes through a dependency, so
there is no hidden module-level state and tests can drive expiry with a fake
clock. Storage and expiry are cachetools.TTLCache; cachetools is not
thread-safe, hence the lock.
"""
import logging
import threading
import time
from typing import Any, Callable, Hashable, Optional

import cachetools

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Key/value cache whose entries expire ttl_seconds after being set"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic, maxsize: int = 256):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl_seconds = ttl_seconds
        self._entries = cachetools.TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            logger.debug(f"Cache MISS: {key}")
            return default
        logger.debug(f"Cache HIT: {key}")
        return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
        logger.debug(f"Cache SET: {key} (TTL: {self.ttl_seconds}s)")

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value, calling loader() on a miss or expiry."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        # loader runs outside the lock; a concurrent miss may load twice
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or everything when key is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)

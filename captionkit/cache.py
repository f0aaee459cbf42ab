"""
Injectable clock and TTL cache.

The resolver receives these explicitly instead of consulting process-wide
state, so tests can control time and callers can share or isolate caches.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class Clock:
    """Monotonic clock. Subclass or replace ``now`` in tests."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class TTLCache:
    """
    Thread-safe key/value cache whose entries expire ``ttl`` seconds after
    they were stored.
    """

    def __init__(self, ttl: float, clock: Optional[Clock] = None):
        if ttl < 0:
            raise ValueError("ttl cannot be negative")
        self.ttl = ttl
        self.clock = clock or Clock()
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if self.clock.now() - stored_at >= self.ttl:
                del self._entries[key]
                return default
            return value

    def put(self, key: Hashable, value: Any) -> None:
        """Store ``value``; expired entries for other keys are dropped too."""
        with self._lock:
            now = self.clock.now()
            expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (now, value)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_set(self, key: Hashable, factory: Callable[[], Any], cache_if: Callable[[Any], bool] = lambda _: True) -> Any:
        """Return the cached value or compute, optionally store, and return it."""
        sentinel = object()
        value = self.get(key, sentinel)
        if value is not sentinel:
            logger.debug(f"Cache hit for {key!r}")
            return value
        value = factory()
        if cache_if(value):
            self.put(key, value)
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from weather_service.core.abstractions import WeatherResult


def normalize_location(location: str) -> str:
    """Cache key rule: surrounding whitespace stripped, case folded."""

    return location.strip().casefold()


class ResultCache:
    """Thread-safe location -> result store owned by the weather engine.

    Entries never expire and the store is unbounded unless ``ttl`` or
    ``max_entries`` is given. With ``max_entries`` the least recently used
    entry is evicted first.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
        time_func: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl if ttl else None
        self._max_entries = max_entries
        self._time_func = time_func
        self._storage: "OrderedDict[str, Tuple[Optional[float], WeatherResult]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[WeatherResult]:
        with self._lock:
            item = self._storage.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at is not None and expires_at < self._time_func():
                self._storage.pop(key, None)
                return None
            self._storage.move_to_end(key)
            return value

    def set(self, key: str, value: WeatherResult) -> None:
        expires_at = self._time_func() + self._ttl if self._ttl else None
        with self._lock:
            self._storage[key] = (expires_at, value.as_fresh())
            self._storage.move_to_end(key)
            if self._max_entries is not None:
                while len(self._storage) > self._max_entries:
                    self._storage.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._storage)


__all__ = ["ResultCache", "normalize_location"]

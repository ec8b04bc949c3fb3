from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Hashable, Tuple, TypeVar

T = TypeVar("T")


class TTLCache:
    """Small process-local cache for read models.

    Entries expire ``ttl_seconds`` after they were computed; there is no push
    invalidation. A ttl of 0 disables caching entirely.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, object]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        if not self.enabled:
            return compute()

        now = self._clock()
        with self._lock:
            hit = self._entries.get(key)
            if hit and hit[0] > now:
                return hit[1]  # type: ignore[return-value]

        value = compute()
        with self._lock:
            self._entries[key] = (self._clock() + self._ttl, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

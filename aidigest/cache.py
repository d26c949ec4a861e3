"""In-process key/value cache with a fixed time-to-live.

Expiry is lazy: an entry past its deadline is evicted the next time it is
looked up. There is no capacity bound and no background sweep, which is fine
for the handful of keys the pipeline uses (one per source, one per summary,
one for the whole feed).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL = 10 * 60.0


@dataclass
class CacheEntry:
    value: Any
    expiry: float


class ExpiringCache:
    """Maps string keys to values that expire ``ttl`` seconds after ``set``."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for *key*, or *default* if absent or expired.

        An expired entry is deleted on access, so later lookups stay absent.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default
        if self._clock() >= entry.expiry:
            self._entries.pop(key, None)
            logger.debug("Cache entry %r expired", key)
            return default
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, expiry=self._clock() + self.ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._entries.values() if now < entry.expiry)

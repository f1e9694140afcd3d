"""In-memory TTL cache shared by the rate and weather services.

Entries are never evicted in the background; staleness is checked when an
entry is read.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

DEFAULT_TTL = 600.0


@dataclass
class CachedValue(Generic[T]):
    value: T
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_stale(self, now: float, ttl: float = DEFAULT_TTL) -> bool:
        return self.age(now) > ttl


class TTLCache(Generic[T]):
    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CachedValue[T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Return the value for ``key`` only while it is fresh."""
        entry = self._entries.get(key)
        if entry is None or entry.is_stale(self._clock(), self.ttl):
            return None
        return entry.value

    def peek(self, key: str) -> Optional[CachedValue[T]]:
        return self._entries.get(key)

    def put(self, key: str, value: T) -> CachedValue[T]:
        entry = CachedValue(value=value, fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def is_stale(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.is_stale(self._clock(), self.ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

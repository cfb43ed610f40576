from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import threading
import time
from typing import Any, Callable, Hashable

from ..core.config import settings


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    invalidations: int = 0


class TicketListCache:
    """Read-through TTL cache for ticket list queries.

    Only the list endpoint reads it. Commands call :meth:`invalidate` after
    they commit and never read from it.
    """

    def __init__(self, ttl_seconds: int, max_entries: int, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self._generation = 0
        self.stats = CacheStats()

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                self._entries.move_to_end(key)
                self.stats.hits += 1
                return entry[1]
            self.stats.misses += 1
            generation = self._generation

        value = loader()
        if self.ttl_seconds <= 0:
            return value

        with self._lock:
            # 로드 중에 무효화되었으면 저장하지 않는다
            if generation != self._generation:
                return value
            self._entries[key] = (now + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return value

    def invalidate(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1
            self.stats.invalidations += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


ticket_list_cache = TicketListCache(
    ttl_seconds=settings.ticket_list_cache_ttl_seconds,
    max_entries=settings.ticket_list_cache_max_entries,
)

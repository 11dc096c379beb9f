"""In-memory verdict cache keyed by content digest."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from vtwatch.engines.scanner.models import ScanResult

CACHE_TTL = 24 * 60 * 60.0  # seconds


@dataclass(frozen=True)
class CacheEntry:
    result: ScanResult
    inserted_at: float


class ResultCache:
    """Digest → :class:`ScanResult` map with a fixed expiration window.

    Lives for the lifetime of the process only. Expired entries are never
    served: the lookup that finds one drops it.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, digest: str) -> ScanResult | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(digest)
            if entry is None:
                return None
            if now - entry.inserted_at >= self.ttl:
                del self._entries[digest]
                return None
            return entry.result

    def store(self, digest: str, result: ScanResult) -> None:
        entry = CacheEntry(result=result, inserted_at=self._clock())
        with self._lock:
            self._entries[digest] = entry

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [d for d, e in self._entries.items() if now - e.inserted_at >= self.ttl]
            for digest in stale:
                del self._entries[digest]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

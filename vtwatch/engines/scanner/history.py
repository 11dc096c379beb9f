"""Bounded, insertion-ordered record of completed scans."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from datetime import datetime

from vtwatch.engines.scanner.models import ScanResult

DEFAULT_LIMIT = 1000


class ScanHistory:
    """FIFO list of :class:`ScanResult`; the oldest entry goes when full."""

    def __init__(self, limit: int = DEFAULT_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self._entries: deque[ScanResult] = deque(maxlen=limit)
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    def append(self, result: ScanResult) -> ScanResult | None:
        """Add *result*; return the evicted entry, if any."""
        with self._lock:
            evicted = None
            if len(self._entries) == self._entries.maxlen:
                evicted = self._entries[0]
            self._entries.append(result)
            return evicted

    def extend(self, results: Iterable[ScanResult]) -> None:
        with self._lock:
            self._entries.extend(results)

    def set_limit(self, limit: int) -> None:
        """Resize, keeping the newest entries when shrinking."""
        if limit < 1:
            raise ValueError("limit must be >= 1")
        with self._lock:
            if limit != self._entries.maxlen:
                self._entries = deque(self._entries, maxlen=limit)

    def entries(self) -> list[ScanResult]:
        with self._lock:
            return list(self._entries)

    def latest_for(self, path: str) -> ScanResult | None:
        """Most recent scan of *path* by scan date."""
        with self._lock:
            matching = [r for r in self._entries if r.file_path == path]
        if not matching:
            return None
        return max(matching, key=lambda r: r.scan_date)

    def last_scanned(self) -> dict[str, datetime]:
        """Map each path to the date of its most recent scan."""
        latest: dict[str, datetime] = {}
        with self._lock:
            for result in self._entries:
                seen = latest.get(result.file_path)
                if seen is None or result.scan_date > seen:
                    latest[result.file_path] = result.scan_date
        return latest

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

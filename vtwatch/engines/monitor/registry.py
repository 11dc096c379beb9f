"""Tracked-file registry: the candidate-path source for background rescans."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import structlog

from vtwatch.engines.monitor.filters import FileFilter

log = structlog.get_logger("vtwatch.engine.monitor")


class TrackedFileSource(Protocol):
    def tracked_paths(self) -> list[str]: ...


class TrackedFileRegistry:
    """Insertion-ordered set of paths eligible for rescanning."""

    def __init__(self, paths: Iterable[str | Path] = (), *, file_filter: FileFilter | None = None) -> None:
        self._filter = file_filter
        self._paths: dict[str, None] = {}
        self._lock = threading.Lock()
        for path in paths:
            self.add(path)

    def add(self, path: str | Path) -> bool:
        """Track *path*; False if the filter rejects it or it is already tracked."""
        key = str(path)
        if self._filter is not None and not self._filter.accepts(key):
            log.debug("monitor.rejected", path=key)
            return False
        with self._lock:
            if key in self._paths:
                return False
            self._paths[key] = None
        return True

    def discard(self, path: str | Path) -> bool:
        key = str(path)
        with self._lock:
            if key not in self._paths:
                return False
            del self._paths[key]
            return True

    def add_directory(self, directory: str | Path, *, recursive: bool = False) -> int:
        """Track every accepted regular file in *directory*; return how many were added."""
        root = Path(directory)
        if not root.is_dir():
            raise NotADirectoryError(str(root))
        candidates = root.rglob("*") if recursive else root.iterdir()
        added = 0
        for entry in sorted(candidates):
            if entry.is_file() and self.add(entry):
                added += 1
        log.info("monitor.directory_added", directory=str(root), added=added)
        return added

    def tracked_paths(self) -> list[str]:
        with self._lock:
            return list(self._paths)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return str(path) in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

"""Decide which files are worth tracking for scans."""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path

from vtwatch.core.config import ScanConfig


@dataclass
class FileFilter:
    """Extension allow-list, size bounds, excluded roots and ignore globs.

    An empty ``extensions`` list accepts every extension.
    """

    extensions: list[str] = field(default_factory=list)
    min_size: int = 0
    max_size: int | None = None
    excluded_paths: list[str] = field(default_factory=list)
    ignored_patterns: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: ScanConfig) -> FileFilter:
        return cls(
            extensions=list(config.file_extensions),
            min_size=config.min_file_size,
            max_size=config.max_file_size or None,
            excluded_paths=list(config.excluded_paths),
            ignored_patterns=list(config.ignored_patterns),
        )

    def accepts(self, path: str | Path) -> bool:
        p = Path(path)
        posix = p.as_posix()

        for excluded in self.excluded_paths:
            if p.is_relative_to(excluded):
                return False

        for pattern in self.ignored_patterns:
            if fnmatch.fnmatch(posix, pattern):
                return False

        if self.extensions:
            ext = p.suffix.lower().lstrip(".")
            if not ext or ext not in self.extensions:
                return False

        # Size is only checked for files that exist right now
        try:
            size = os.stat(p).st_size
        except OSError:
            return True
        if size < self.min_size:
            return False
        if self.max_size is not None and size > self.max_size:
            return False
        return True

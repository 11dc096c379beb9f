"""Monitor engine: file filtering and the tracked-file registry."""

from vtwatch.engines.monitor.filters import FileFilter
from vtwatch.engines.monitor.registry import TrackedFileRegistry, TrackedFileSource

__all__ = ["FileFilter", "TrackedFileRegistry", "TrackedFileSource"]

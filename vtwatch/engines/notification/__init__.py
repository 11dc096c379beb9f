"""Notification engine: scan events delivered through pluggable sinks."""

from vtwatch.engines.notification.sink import (
    CallbackSink,
    LogSink,
    NullSink,
    ScanEvent,
    ScanEventSink,
)

__all__ = [
    "CallbackSink",
    "LogSink",
    "NullSink",
    "ScanEvent",
    "ScanEventSink",
]

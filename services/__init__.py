"""
Services layer for the print relay console.

This module contains the stateful services:
- ScanMonitor: Polling state machine for the network discovery job
- SnapshotStore: Persisted scan checkpoint (memory or JSON file)

Thread Model:
    Main Thread (Flask / terminal monitor)
    └── ScanMonitor thread (fixed-interval status polling, one per monitor)
"""

from .scan_monitor import (
    LoggingScanPresenter,
    MonitorState,
    PollTicket,
    ScanMonitor,
    ScanPresenter,
)
from .snapshot_store import (
    SNAPSHOT_KEY,
    JsonFileSnapshotStore,
    MemorySnapshotStore,
    SnapshotStore,
)

__all__ = [
    "ScanMonitor",
    "MonitorState",
    "PollTicket",
    "ScanPresenter",
    "LoggingScanPresenter",
    "SnapshotStore",
    "MemorySnapshotStore",
    "JsonFileSnapshotStore",
    "SNAPSHOT_KEY",
]

"""
Data models for the print relay console.

This module contains immutable dataclasses for:
- PrinterDescriptor: One printer selected for installation
- ConnectionAttempt: One entry in an installer's fallback chain
- InstallScript: A synthesized installer artifact
- ScanJobSnapshot: Authoritative state of the network discovery job
- PersistedSnapshot: Client-side checkpoint of a scan, bounded by staleness

All dataclasses are frozen so they can be handed between the polling
thread and callers without locks.
"""

from .printer import (
    PrinterDescriptor,
    ConnectionAttempt,
    InstallScript,
    ProtocolKind,
    TargetOS,
)
from .scan import ScanJobSnapshot, PersistedSnapshot, ScanPhase

__all__ = [
    # Installer models
    "PrinterDescriptor",
    "ConnectionAttempt",
    "InstallScript",
    "ProtocolKind",
    "TargetOS",
    # Scan models
    "ScanJobSnapshot",
    "PersistedSnapshot",
    "ScanPhase",
]

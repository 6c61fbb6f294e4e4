"""
Network scan data models.

ScanJobSnapshot is the authoritative state reported by the discovery job.
PersistedSnapshot is the client-held checkpoint that lets a monitor resume
after navigation, bounded by a staleness window.

Both are frozen dataclasses; a new snapshot replaces the old one on every poll.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from core.exceptions import SnapshotFormatError

# Persisted snapshots older than this are never trusted
STALENESS_WINDOW_SECONDS = 300.0


class ScanPhase(Enum):
    """
    Phase of the discovery job, computed once per fetched snapshot.

    Lifecycle:
        NOT_STARTED -> IN_PROGRESS -> (COMPLETED | CANCELLED)
    """

    NOT_STARTED = "not_started"
    """No job has run: not scanning and progress is zero."""

    IN_PROGRESS = "in_progress"

    COMPLETED = "completed"
    """Progress reached 100, or the job stopped after making progress."""

    CANCELLED = "cancelled"
    """The job was cancelled and is no longer scanning."""

    @property
    def is_terminal(self) -> bool:
        return self in (ScanPhase.COMPLETED, ScanPhase.CANCELLED)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class ScanJobSnapshot:
    """Server-authoritative state of the network discovery job."""

    scanning: bool
    cancelled: bool = False
    progress: int = 0
    """Percent complete, clamped to 0-100."""

    current_network: str = ""
    """Label of the network being scanned (may be empty while starting)."""

    found_printers: int = 0

    @property
    def phase(self) -> ScanPhase:
        """
        Classify the snapshot.

        Cancellation is checked before completion: a cancelled job that made
        progress also matches the completion condition.
        """
        if not self.scanning and self.progress == 0 and not self.cancelled:
            return ScanPhase.NOT_STARTED
        if self.cancelled and not self.scanning:
            return ScanPhase.CANCELLED
        if self.progress >= 100 or (not self.scanning and self.progress > 0):
            return ScanPhase.COMPLETED
        return ScanPhase.IN_PROGRESS

    @property
    def network_label(self) -> str:
        return self.current_network or "Starting..."

    def with_progress(self, progress: int) -> "ScanJobSnapshot":
        """Return a copy with a different progress value."""
        return ScanJobSnapshot(
            scanning=self.scanning,
            cancelled=self.cancelled,
            progress=progress,
            current_network=self.current_network,
            found_printers=self.found_printers,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the status endpoint's camelCase form."""
        return {
            "scanning": self.scanning,
            "cancelled": self.cancelled,
            "progress": self.progress,
            "currentNetwork": self.current_network,
            "foundPrinters": self.found_printers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanJobSnapshot":
        """
        Create from a status endpoint response.

        Missing fields take neutral defaults; progress is clamped to 0-100.
        """
        progress = max(0, min(100, _as_int(data.get("progress"))))
        return cls(
            scanning=bool(data.get("scanning", False)),
            cancelled=bool(data.get("cancelled", False)),
            progress=progress,
            current_network=str(data.get("currentNetwork") or ""),
            found_printers=max(0, _as_int(data.get("foundPrinters"))),
        )


@dataclass(frozen=True)
class PersistedSnapshot:
    """
    A client-held checkpoint of a ScanJobSnapshot.

    Used only to decide whether to resume polling; never displayed as live
    progress once a fresh status has been fetched.
    """

    snapshot: ScanJobSnapshot
    captured_at: float
    """Capture time in seconds since the epoch."""

    is_minimized: bool = True

    @classmethod
    def capture(cls, snapshot: ScanJobSnapshot, now: Optional[float] = None) -> "PersistedSnapshot":
        return cls(snapshot=snapshot, captured_at=time.time() if now is None else now)

    def age_seconds(self, now: Optional[float] = None) -> float:
        """How old this checkpoint is in seconds."""
        current = time.time() if now is None else now
        return current - self.captured_at

    def is_stale(self, now: Optional[float] = None, window_seconds: float = STALENESS_WINDOW_SECONDS) -> bool:
        """
        Whether this checkpoint is outside the staleness window.

        A checkpoint dated in the future or with a non-finite timestamp cannot
        be aged and counts as stale.
        """
        age = self.age_seconds(now)
        if not math.isfinite(age) or age < 0:
            return True
        return age >= window_seconds

    @property
    def claims_active(self) -> bool:
        """Whether the checkpoint says a minimized scan was running."""
        return self.is_minimized and self.snapshot.scanning

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as the single wholesale record stored under the snapshot key."""
        record = {"isMinimized": self.is_minimized}
        record.update(self.snapshot.to_dict())
        record["timestamp"] = int(self.captured_at * 1000)
        return record

    @classmethod
    def from_dict(cls, data: Any) -> "PersistedSnapshot":
        """
        Decode a stored record.

        A record without a timestamp is treated as captured at the epoch and
        is therefore always stale.

        Raises:
            SnapshotFormatError: If the record is not a JSON object
        """
        if not isinstance(data, dict):
            raise SnapshotFormatError(f"expected an object, got {type(data).__name__}")

        try:
            timestamp_ms = float(data.get("timestamp") or 0)
        except (TypeError, ValueError):
            raise SnapshotFormatError(f"invalid timestamp {data.get('timestamp')!r}")

        return cls(
            snapshot=ScanJobSnapshot.from_dict(data),
            captured_at=timestamp_ms / 1000.0,
            is_minimized=bool(data.get("isMinimized", False)),
        )

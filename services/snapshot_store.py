"""
Persisted scan snapshot storage.

A key-value store scoped to one operator session. The monitor writes one
record under SNAPSHOT_KEY on every in-progress reconciliation and clears it
when the job reaches a terminal state. Records are written wholesale, never
patched.

Two implementations:
    MemorySnapshotStore   - process-local, used by the web app and tests
    JsonFileSnapshotStore - a JSON file, so a re-run of the terminal monitor
                            resumes where the previous one left off

Concurrent monitors writing the same store are not coordinated; the last
write wins.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from core.exceptions import SnapshotFormatError
from models.scan import PersistedSnapshot
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

SNAPSHOT_KEY = "scanMinimizedState"


class SnapshotStore:
    """
    Base class for persisted snapshot storage.

    Subclasses implement the raw record access; decoding and discarding of
    unreadable records happens here.
    """

    def load(self) -> Optional[PersistedSnapshot]:
        """
        Read the stored snapshot.

        An unreadable record is cleared and treated as absent.

        Returns:
            PersistedSnapshot if one is stored, None otherwise
        """
        record = self._read()
        if record is None:
            return None

        try:
            return PersistedSnapshot.from_dict(record)
        except SnapshotFormatError as e:
            logger.warning(f"Discarding persisted scan snapshot: {e}")
            self.clear()
            return None

    def save(self, snapshot: PersistedSnapshot) -> None:
        """Overwrite the stored snapshot."""
        self._write(snapshot.to_dict())

    def clear(self) -> None:
        raise NotImplementedError

    def _read(self) -> Optional[Any]:
        raise NotImplementedError

    def _write(self, record: Dict[str, Any]) -> None:
        raise NotImplementedError


class MemorySnapshotStore(SnapshotStore):
    """Thread-safe in-process store."""

    def __init__(self):
        self._records: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def clear(self) -> None:
        with self._lock:
            self._records.pop(SNAPSHOT_KEY, None)

    def _read(self) -> Optional[Any]:
        with self._lock:
            return self._records.get(SNAPSHOT_KEY)

    def _write(self, record: Dict[str, Any]) -> None:
        with self._lock:
            self._records[SNAPSHOT_KEY] = record


class JsonFileSnapshotStore(SnapshotStore):
    """
    Store backed by a JSON document on disk.

    The file holds an object keyed like browser session storage, so other
    keys written by other tools are preserved.

    Attributes:
        path: Location of the JSON document
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def clear(self) -> None:
        with self._lock:
            document = self._load_document()
            if SNAPSHOT_KEY in document:
                del document[SNAPSHOT_KEY]
                self._save_document(document)

    def _read(self) -> Optional[Any]:
        with self._lock:
            return self._load_document().get(SNAPSHOT_KEY)

    def _write(self, record: Dict[str, Any]) -> None:
        with self._lock:
            document = self._load_document()
            document[SNAPSHOT_KEY] = record
            self._save_document(document)

    def _load_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Snapshot file {self.path} is unreadable, starting empty: {e}")
            return {}
        if not isinstance(document, dict):
            logger.warning(f"Snapshot file {self.path} does not hold an object, starting empty")
            return {}
        return document

    def _save_document(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

"""
Unit tests for persisted snapshot stores.
"""

import json

import pytest

from models.scan import PersistedSnapshot, ScanJobSnapshot
from services.snapshot_store import SNAPSHOT_KEY, JsonFileSnapshotStore, MemorySnapshotStore


# Fixtures

@pytest.fixture
def persisted():
    return PersistedSnapshot.capture(
        ScanJobSnapshot(scanning=True, progress=40, current_network="10.0.0.0/24", found_printers=1),
        now=1000.0,
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    """Both store implementations."""
    if request.param == "memory":
        return MemorySnapshotStore()
    return JsonFileSnapshotStore(tmp_path / "state" / "snapshot.json")


class TestSnapshotStore:
    """Behavior shared by every store."""

    def test_empty_store_loads_none(self, store):
        assert store.load() is None

    def test_save_and_load(self, store, persisted):
        store.save(persisted)

        assert store.load() == persisted

    def test_save_overwrites(self, store, persisted):
        store.save(persisted)
        newer = PersistedSnapshot.capture(persisted.snapshot.with_progress(70), now=1010.0)
        store.save(newer)

        assert store.load() == newer

    def test_clear(self, store, persisted):
        store.save(persisted)
        store.clear()

        assert store.load() is None

    def test_clear_when_empty(self, store):
        store.clear()

        assert store.load() is None


class TestCorruptRecords:
    """Test that unreadable records are discarded."""

    def test_memory_store_discards_non_object(self):
        store = MemorySnapshotStore()
        store._write([1, 2, 3])

        assert store.load() is None
        assert store._read() is None

    def test_file_store_discards_non_object_record(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({SNAPSHOT_KEY: "garbage", "other": 1}), encoding="utf-8")
        store = JsonFileSnapshotStore(path)

        assert store.load() is None
        assert json.loads(path.read_text(encoding="utf-8")) == {"other": 1}

    def test_file_store_ignores_invalid_json(self, tmp_path, persisted):
        path = tmp_path / "snapshot.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileSnapshotStore(path)

        assert store.load() is None
        store.save(persisted)
        assert store.load() == persisted

    def test_file_store_keeps_other_keys(self, tmp_path, persisted):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
        store = JsonFileSnapshotStore(path)

        store.save(persisted)

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["theme"] == "dark"
        assert document[SNAPSHOT_KEY]["timestamp"] == 1000000

"""
Tests for the durable player catalog snapshot.
"""

import json

from conftest import FakeClock, SAMPLE_CATALOG
from sleeper_mcp.models import CacheMetadata
from sleeper_mcp.snapshot_store import DurableSnapshotStore

DAY = 24 * 60 * 60


def make_store(tmp_path, clock, ttl=DAY):
    return DurableSnapshotStore(directory=tmp_path / "cache", ttl_seconds=ttl, clock=clock)


class TestSaveAndLoad:

    def test_save_writes_both_files(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)

        assert store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))

        meta = json.loads(store.meta_path.read_text())
        assert meta == {
            "lastUpdated": int(clock() * 1000),
            "playerCount": len(SAMPLE_CATALOG),
            "version": "1.0.0",
        }
        assert json.loads(store.players_path.read_text()) == SAMPLE_CATALOG
        assert not list(store.directory.glob("*.tmp"))

    def test_load_fresh_snapshot(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)
        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))
        clock.advance(DAY - 1)

        players, meta = store.load()

        assert players == SAMPLE_CATALOG
        assert meta.player_count == len(SAMPLE_CATALOG)

    def test_expired_snapshot_is_ignored(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)
        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))
        clock.advance(DAY)

        assert store.load() is None

    def test_missing_files(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)
        assert store.load() is None

        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))
        store.meta_path.unlink()
        assert store.load() is None

    def test_count_mismatch_is_ignored(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)
        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG) + 1, clock()))

        assert store.load() is None

    def test_corrupt_files_are_ignored(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)
        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))

        store.players_path.write_text("{not json")
        assert store.load() is None

        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))
        store.meta_path.write_text(json.dumps({"lastUpdated": "soon", "playerCount": 1}))
        assert store.load() is None

        store.meta_path.write_text(json.dumps([1, 2, 3]))
        assert store.load() is None

    def test_save_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "cache"
        blocker.write_text("a file where the directory should be")
        store = DurableSnapshotStore(directory=blocker)

        assert store.save({}, CacheMetadata(0, 0, "1.0.0")) is False

    def test_unserializable_payload_returns_false(self, tmp_path):
        store = make_store(tmp_path, FakeClock())
        assert store.save({"1": {"bad": object()}}, CacheMetadata(0, 1, "1.0.0")) is False


class TestClear:

    def test_clear_removes_both_files(self, tmp_path):
        clock = FakeClock()
        store = make_store(tmp_path, clock)
        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))

        assert store.clear() is True
        assert not store.players_path.exists()
        assert not store.meta_path.exists()

    def test_clear_with_nothing_on_disk(self, tmp_path):
        assert make_store(tmp_path, FakeClock()).clear() is True

import json

import dill
import pytest

from childbrain import (
    Agent, AgentPersistence, FileSnapshotStore, InMemorySnapshotStore, PersistenceError,
    SnapshotStore,
)


class BrokenStore(SnapshotStore):
    """Fails every write, like a full or unmounted disk."""

    def put(self, key, blob):
        raise PersistenceError("disk full")

    def get(self, key):
        raise PersistenceError("disk unreadable")

    def keys(self):
        return ["survival"]

    def delete(self, key):
        raise PersistenceError("disk full")


class FlakyStore(InMemorySnapshotStore):
    """Refuses writes to one key, like a disk filling up mid-save."""

    def __init__(self):
        super().__init__()
        self.refuse = None

    def put(self, key, blob):
        if key == self.refuse:
            raise PersistenceError(f"no space left for {key}")
        super().put(key, blob)


def trained(agent):
    agent.process_stimulus("touch", "hold", 0.8)
    agent.learn_from_outcome("touch:hold", True, 20)
    agent.record_pattern("cry", "food")
    return agent


# =============================================================================
# STORES
# =============================================================================

def test_in_memory_store():
    store = InMemorySnapshotStore()
    store.put("b", b"2")
    store.put("a", b"1")
    assert store.keys() == ["a", "b"]
    assert store.get("a") == b"1"
    store.delete("a")
    assert store.get("a") is None


def test_file_store_rotates_backups(tmp_path):
    store = FileSnapshotStore(str(tmp_path), max_backups=2)
    for i in range(4):
        store.put("survival", str(i).encode())

    assert store.get("survival") == b"3"
    backups = store.backups("survival")
    assert [p.read_bytes() for p in backups] == [b"2", b"1"]

    meta = json.loads((tmp_path / "survival.meta.json").read_text())
    assert meta["key"] == "survival"
    assert meta["file_size_bytes"] == 1


def test_file_store_delete_and_missing(tmp_path):
    store = FileSnapshotStore(str(tmp_path))
    assert store.get("nothing") is None
    store.put("memory", b"x")
    store.put("memory", b"y")
    assert store.keys() == ["memory"]

    store.delete("memory")
    assert store.keys() == []
    assert store.backups("memory") == []


# =============================================================================
# AGENT SNAPSHOTS
# =============================================================================

def test_snapshot_round_trip(agent, clock, rng):
    persistence = AgentPersistence(InMemorySnapshotStore())
    assert persistence.save_snapshot(trained(agent))
    assert set(persistence.store.keys()) == {"survival", "memory", "patterns", "evolution", "meta"}
    assert dill.loads(persistence.store.get("survival"))["pleasure_memory"] == {"touch:hold": 20}

    fresh = Agent(clock=clock, rng=rng)
    assert persistence.load_snapshot(fresh) is not None
    assert fresh.core.pleasure_memory == {"touch:hold": 20}
    assert fresh.predict_outcome("cry") == "food"
    assert fresh.get_status() == agent.get_status()


def test_unchanged_state_is_not_rewritten(agent):
    persistence = AgentPersistence(InMemorySnapshotStore())
    assert persistence.save_snapshot(agent)
    assert persistence.save_snapshot(agent)
    assert persistence.save_count == 1

    agent.process_stimulus("touch", "hold", 0.8)
    assert persistence.save_snapshot(agent)
    assert persistence.save_count == 2


def test_failures_are_contained(agent):
    persistence = AgentPersistence(BrokenStore())
    assert persistence.save_snapshot(agent) is False
    assert persistence.load_snapshot(agent) is None
    # The agent keeps running un-persisted
    assert agent.process_stimulus("touch", "hold", 0.8).stimulus_key == "touch:hold"


def test_corrupt_blob_is_ignored(agent):
    store = InMemorySnapshotStore()
    store.put("survival", b"not a pickle")
    persistence = AgentPersistence(store)
    assert persistence.load_snapshot(agent) is None
    assert agent.get_current_state().is_alive


def test_empty_store_loads_nothing(agent):
    assert AgentPersistence(InMemorySnapshotStore()).load_snapshot(agent) is None


def test_auto_save_thread(agent):
    persistence = AgentPersistence(InMemorySnapshotStore(), auto_save_interval=0.01)
    saved = []
    persistence.start_auto_save(agent, callback=saved.append)
    try:
        for _ in range(200):
            if saved:
                break
            persistence._stop_auto_save.wait(0.01)
    finally:
        persistence.stop_auto_save()

    assert saved == [1]
    assert "survival" in persistence.store.keys()


def test_file_store_requires_writable_directory(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(PersistenceError):
        FileSnapshotStore(str(blocker / "sub"))


def test_interrupted_save_is_not_loaded_as_a_mix(agent, clock, rng):
    store = FlakyStore()
    persistence = AgentPersistence(store)
    assert persistence.save_snapshot(trained(agent))

    agent.learn_from_outcome("touch:hold", False, 50)
    agent.record_father_bond(90)
    store.refuse = "evolution"
    assert persistence.save_snapshot(agent) is False

    fresh = Agent(clock=clock, rng=rng)
    assert AgentPersistence(store).load_snapshot(fresh) is None
    assert fresh.core.pain_memory == {}

    store.refuse = None
    assert persistence.save_snapshot(agent)
    restored = Agent(clock=clock, rng=rng)
    assert AgentPersistence(store).load_snapshot(restored) is not None
    assert "touch:hold" in restored.core.pain_memory
    assert restored.ledger.traits == agent.ledger.traits


def test_snapshot_without_metadata_is_ignored(agent):
    store = InMemorySnapshotStore()
    persistence = AgentPersistence(store)
    assert persistence.save_snapshot(agent)
    store.delete("meta")
    assert persistence.load_snapshot(agent) is None

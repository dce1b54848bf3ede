"""
Agent Persistence Module

Snapshot storage for the four agent components using dill.
Auto-save functionality with configurable intervals.

Failures never propagate out of AgentPersistence: they are logged and the
agent keeps running un-persisted.
"""

import hashlib
import json
import logging
import os
import pickle
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

import dill

from .errors import PersistenceError

if TYPE_CHECKING:
    from .agent import Agent

logger = logging.getLogger(__name__)

COMPONENT_KEYS = ('survival', 'memory', 'patterns', 'evolution')
META_KEY = 'meta'


# =============================================================================
# STORES
# =============================================================================

class SnapshotStore(ABC):
    """Key -> blob storage boundary."""

    @abstractmethod
    def put(self, key: str, blob: bytes) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, blob: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(blob)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._blobs.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._blobs)

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)


class FileSnapshotStore(SnapshotStore):
    """
    One ``<key>.snapshot`` file per key.

    Features:
    - Backup rotation (``.backup1`` is the newest)
    - ``.meta.json`` sidecar for inspection without unpickling
    """

    SUFFIX = '.snapshot'

    def __init__(self, directory: str, max_backups: int = 5):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"cannot create save directory {directory}: {e}") from e
        self.max_backups = max_backups

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}{self.SUFFIX}"

    def put(self, key: str, blob: bytes) -> None:
        path = self._path(key)
        try:
            if path.exists() and self.max_backups > 0:
                self._rotate_backups(path)
            tmp = path.with_suffix('.tmp')
            with open(tmp, 'wb') as f:
                f.write(blob)
            os.replace(tmp, path)

            with open(path.with_suffix('.meta.json'), 'w') as f:
                json.dump({
                    'key': key,
                    'saved_at': datetime.now().isoformat(),
                    'file_size_bytes': len(blob),
                }, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"cannot write {path}: {e}") from e

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"cannot read {path}: {e}") from e

    def keys(self) -> List[str]:
        return sorted(p.stem for p in self.directory.glob(f"*{self.SUFFIX}"))

    def delete(self, key: str) -> None:
        path = self._path(key)
        for candidate in [path, path.with_suffix('.meta.json')] + self.backups(key):
            try:
                candidate.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise PersistenceError(f"cannot delete {candidate}: {e}") from e

    def backups(self, key: str) -> List[Path]:
        path = self._path(key)
        return [
            path.with_suffix(f'.backup{i}')
            for i in range(1, self.max_backups + 1)
            if path.with_suffix(f'.backup{i}').exists()
        ]

    def _rotate_backups(self, path: Path) -> None:
        oldest = path.with_suffix(f'.backup{self.max_backups}')
        if oldest.exists():
            oldest.unlink()
        for i in range(self.max_backups - 1, 0, -1):
            old_backup = path.with_suffix(f'.backup{i}')
            if old_backup.exists():
                old_backup.rename(path.with_suffix(f'.backup{i + 1}'))
        path.rename(path.with_suffix('.backup1'))


# =============================================================================
# AGENT PERSISTENCE
# =============================================================================

class AgentPersistence:
    """
    Saves and restores an Agent through a SnapshotStore.

    Features:
    - One dill blob per component plus a metadata blob, written last,
      carrying a digest of the component blobs
    - Incremental saves (skipped if the state hash is unchanged)
    - Auto-save thread at a configurable interval
    """

    VERSION = "1.0"

    def __init__(self, store: SnapshotStore, auto_save_interval: float = 300.0):
        self.store = store
        self.auto_save_interval = auto_save_interval

        self._last_save_hash: Optional[str] = None
        self._save_count: int = 0

        self._auto_save_thread: Optional[threading.Thread] = None
        self._stop_auto_save = threading.Event()
        self._agent_ref: Optional['Agent'] = None
        self._on_save_callback: Optional[Callable[[int], None]] = None

    @property
    def save_count(self) -> int:
        return self._save_count

    @staticmethod
    def compute_state_hash(state: Dict[str, Any]) -> str:
        return hashlib.md5(json.dumps(state, sort_keys=True, default=str).encode()).hexdigest()

    @staticmethod
    def compute_blob_digest(blobs: Dict[str, Optional[bytes]]) -> str:
        digest = hashlib.md5()
        for key in COMPONENT_KEYS:
            digest.update(key.encode())
            digest.update(blobs.get(key) or b'')
        return digest.hexdigest()

    def save_snapshot(self, agent: 'Agent') -> bool:
        """
        Persist every component of ``agent``.

        Returns True when the store holds the current state (including
        when the save was skipped as unchanged), False on failure.
        """
        try:
            state = agent.to_state()
            state_hash = self.compute_state_hash(state)
            if state_hash == self._last_save_hash:
                logger.debug("Snapshot unchanged, save skipped")
                return True

            blobs = {
                key: dill.dumps(state[key], protocol=dill.HIGHEST_PROTOCOL)
                for key in COMPONENT_KEYS
            }
            meta_blob = dill.dumps({
                'version': self.VERSION,
                'saved_at': datetime.now().isoformat(),
                'save_count': self._save_count + 1,
                'tick_count': state.get('tick_count', 0),
                'state_hash': state_hash,
                'blob_digest': self.compute_blob_digest(blobs),
            })
            for key in COMPONENT_KEYS:
                self.store.put(key, blobs[key])
            self.store.put(META_KEY, meta_blob)
        except (PersistenceError, OSError, pickle.PicklingError, TypeError) as e:
            logger.warning("Snapshot save failed: %s", e)
            return False

        self._last_save_hash = state_hash
        self._save_count += 1
        logger.info("Snapshot saved (#%d)", self._save_count)

        if self._on_save_callback:
            try:
                self._on_save_callback(self._save_count)
            except Exception as e:
                logger.warning("Save callback failed: %s", e)
        return True

    def load_snapshot(self, agent: 'Agent') -> Optional[Dict[str, Any]]:
        """Restore ``agent`` from the store; None if nothing usable was found."""
        try:
            available = set(self.store.keys())
            if not any(key in available for key in COMPONENT_KEYS):
                return None

            meta_blob = self.store.get(META_KEY)
            if meta_blob is None:
                logger.warning("Snapshot has no metadata, ignored")
                return None
            meta = dill.loads(meta_blob)

            blobs = {key: self.store.get(key) for key in COMPONENT_KEYS}
            if self.compute_blob_digest(blobs) != meta.get('blob_digest'):
                logger.warning("Snapshot is incomplete or mixed (saved at %s), ignored",
                               meta.get('saved_at', 'unknown'))
                return None

            state: Dict[str, Any] = {
                key: dill.loads(blob) for key, blob in blobs.items() if blob is not None
            }
        except (PersistenceError, OSError, pickle.UnpicklingError, EOFError, ValueError,
                AttributeError, ImportError) as e:
            logger.warning("Snapshot load failed: %s", e)
            return None

        state['tick_count'] = meta.get('tick_count', 0)
        try:
            agent.restore_state(state)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Snapshot could not be applied: %s", e)
            return None

        self._last_save_hash = self.compute_state_hash(agent.to_state())
        logger.info("Snapshot loaded (saved at %s)", meta.get('saved_at', 'unknown'))
        return state

    # =========================================================================
    # AUTO-SAVE
    # =========================================================================

    def start_auto_save(self, agent: 'Agent', callback: Optional[Callable[[int], None]] = None) -> None:
        if self._auto_save_thread is not None:
            return
        self._agent_ref = agent
        self._on_save_callback = callback
        self._stop_auto_save.clear()

        self._auto_save_thread = threading.Thread(
            target=self._auto_save_loop,
            name="childbrain-autosave",
            daemon=True,
        )
        self._auto_save_thread.start()

    def stop_auto_save(self) -> None:
        self._stop_auto_save.set()
        if self._auto_save_thread:
            self._auto_save_thread.join(timeout=5.0)
            self._auto_save_thread = None

    def _auto_save_loop(self) -> None:
        while not self._stop_auto_save.is_set():
            self._stop_auto_save.wait(timeout=self.auto_save_interval)
            if self._stop_auto_save.is_set():
                break
            if self._agent_ref is not None:
                self.save_snapshot(self._agent_ref)

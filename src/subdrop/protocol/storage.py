"""
subdrop/protocol/storage.py

Persistence for the engine's state tables.

The engine's state is persisted as four logical tables, each stored as a
JSON document under its own key, plus a metadata record:
- scores       sender -> cumulative score
- sent         sender -> [recipients already dropped to]
- leaderboard  ordered list of senders (membership set is rebuilt on load)
- config       batch_size and owner

Two backends hold the documents:
1. MemoryBackend - volatile (tests, ephemeral nodes)
2. FileBackend   - one JSON file per table in a state directory
"""

import json
import re
import time
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from abc import ABC, abstractmethod

from ..config import DEFAULT_STATE_DIR

if TYPE_CHECKING:
    from .distribution import DistributionEngine

logger = logging.getLogger("subdrop.protocol.storage")


# ============================================================================
# CONSTANTS
# ============================================================================

STATE_KEY_PREFIX = "subdrop:state:"
STATE_TABLES = ("scores", "sent", "leaderboard", "config")
STATE_META_KEY = f"{STATE_KEY_PREFIX}meta"
STATE_FORMAT_VERSION = 1

INDEX_FILE = "index.json"


# ============================================================================
# STORAGE BACKENDS
# ============================================================================

class StorageBackend(ABC):
    """Key -> document store for the state tables."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get a document, or None if the key was never written."""
        pass

    @abstractmethod
    async def put(self, key: str, value: bytes) -> bool:
        """Replace a document. Returns False if the write failed."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a document. Returns False if the key was absent."""
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> List[str]:
        """Keys starting with `prefix`, sorted."""
        pass


class MemoryBackend(StorageBackend):
    """Dict-backed store."""

    def __init__(self):
        self._documents: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._documents.get(key)

    async def put(self, key: str, value: bytes) -> bool:
        self._documents[key] = bytes(value)
        return True

    async def delete(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self._documents if key.startswith(prefix))


class FileBackend(StorageBackend):
    """
    One file per key in a state directory.

    Layout:
        <storage_dir>/index.json                 key -> file name
        <storage_dir>/subdrop.state.scores.json  one document per table

    Documents and the index are written to a temporary file and renamed
    into place, so a crash mid-save never leaves a half-written table.
    """

    def __init__(self, storage_dir: Path = None):
        self.storage_dir = Path(storage_dir or DEFAULT_STATE_DIR)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._index_path = self.storage_dir / INDEX_FILE
        self._index: Dict[str, str] = self._read_index()

    @staticmethod
    def file_name(key: str) -> str:
        """File name for a key ('subdrop:state:scores' -> 'subdrop.state.scores.json')."""
        return re.sub(r"[^A-Za-z0-9_.-]", ".", key) + ".json"

    async def get(self, key: str) -> Optional[bytes]:
        name = self._index.get(key)
        if name is None:
            return None
        try:
            return (self.storage_dir / name).read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {key} from {name}: {e}")
            return None

    async def put(self, key: str, value: bytes) -> bool:
        name = self.file_name(key)
        try:
            self._replace(self.storage_dir / name, value)
            if self._index.get(key) != name:
                self._index[key] = name
                self._write_index()
        except OSError as e:
            logger.error(f"Failed to write {key}: {e}")
            return False
        return True

    async def delete(self, key: str) -> bool:
        name = self._index.pop(key, None)
        if name is None:
            return False
        try:
            (self.storage_dir / name).unlink(missing_ok=True)
            self._write_index()
        except OSError as e:
            logger.error(f"Failed to delete {key}: {e}")
            return False
        return True

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self._index if key.startswith(prefix))

    def _read_index(self) -> Dict[str, str]:
        if not self._index_path.exists():
            return {}
        try:
            return json.loads(self._index_path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state index {self._index_path}: {e}")
            return {}

    def _write_index(self) -> None:
        self._replace(self._index_path, json.dumps(self._index, sort_keys=True).encode())

    @staticmethod
    def _replace(path: Path, data: bytes) -> None:
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)


# ============================================================================
# STATE STORE
# ============================================================================

class StateStoreError(Exception):
    """Raised when persisted state cannot be written or read back."""
    pass


class SubdropStateStore:
    """
    Saves and restores a DistributionEngine's state tables.

    Usage:
        store = SubdropStateStore(FileBackend(Path("/var/lib/subdrop")))
        await store.load(engine)      # False if nothing was saved yet
        ...
        await store.save(engine)
    """

    def __init__(self, backend: Optional[StorageBackend] = None):
        self.backend = backend or MemoryBackend()
        self._last_saved = 0.0

    @staticmethod
    def table_key(table: str) -> str:
        return f"{STATE_KEY_PREFIX}{table}"

    async def save(self, engine: "DistributionEngine") -> None:
        """
        Write all four tables, then the metadata record.

        Raises:
            StateStoreError: A backend write failed
        """
        tables = engine.export_state()

        for table in STATE_TABLES:
            data = json.dumps(tables[table], sort_keys=True).encode()
            if not await self.backend.put(self.table_key(table), data):
                raise StateStoreError(f"Failed to write table {table}")

        meta = {
            "version": STATE_FORMAT_VERSION,
            "saved_at": time.time(),
            "tables": list(STATE_TABLES),
        }
        if not await self.backend.put(STATE_META_KEY, json.dumps(meta).encode()):
            raise StateStoreError("Failed to write state metadata")

        self._last_saved = meta["saved_at"]
        logger.debug(f"State saved ({len(tables['leaderboard'])} leaderboard entries)")

    async def load(self, engine: "DistributionEngine") -> bool:
        """
        Restore tables into the engine.

        Returns:
            False if no state has been saved yet

        Raises:
            StateStoreError: Metadata exists but a table is missing or unreadable
        """
        raw_meta = await self.backend.get(STATE_META_KEY)
        if raw_meta is None:
            logger.info("No saved state found")
            return False

        meta = json.loads(raw_meta.decode())
        if meta.get("version") != STATE_FORMAT_VERSION:
            raise StateStoreError(f"Unsupported state format version: {meta.get('version')}")

        tables: Dict[str, Any] = {}
        for table in STATE_TABLES:
            raw = await self.backend.get(self.table_key(table))
            if raw is None:
                raise StateStoreError(f"Missing table {table}")
            try:
                tables[table] = json.loads(raw.decode())
            except ValueError as e:
                raise StateStoreError(f"Corrupt table {table}: {e}") from e

        engine.import_state(tables)
        logger.info(f"State loaded (saved at {meta.get('saved_at')})")
        return True

    async def clear(self) -> int:
        """Delete all persisted tables. Returns the number of keys removed."""
        removed = 0
        for key in await self.backend.list_keys(STATE_KEY_PREFIX):
            if await self.backend.delete(key):
                removed += 1
        return removed

    def get_stats(self) -> dict:
        return {
            "backend": type(self.backend).__name__,
            "last_saved": self._last_saved,
        }

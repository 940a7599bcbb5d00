"""JSON-file key-value store for notes, debts, todos and preferences.

Works like browser ``localStorage``: string keys map to string values, and
collections are stored as whole JSON arrays under a single key.
"""
import json
import threading
from pathlib import Path
from typing import Dict, List, Optional

from config import STORAGE, get_logger
from config.exceptions import StorageError

logger = get_logger(__name__)


class LocalStore:
    """Handles persistence of string key/value pairs to a JSON file.

    Every mutation rewrites the whole file. There is no locking across
    processes; two writers racing on the same file will lose updates.
    """

    DEFAULT_DATA_DIR = Path.home() / STORAGE.DATA_DIR_NAME
    DEFAULT_DATA_FILE = STORAGE.LOCAL_STORE_FILE

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir else self.DEFAULT_DATA_DIR
        self.data_file = self.data_dir / self.DEFAULT_DATA_FILE
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}
        self._ensure_data_dir()
        self._load()
        logger.info(f"LocalStore initialized at {self.data_file}")

    def _ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _load(self) -> None:
        """Load data from JSON file."""
        if not self.data_file.exists():
            self._data = {}
            logger.debug("No existing local store file, starting fresh")
            return

        try:
            with open(self.data_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load local store file: {e}")
            self._data = {}
            return

        if not isinstance(data, dict):
            logger.warning(f"Local store file holds {type(data).__name__}, expected an object")
            self._data = {}
            return

        # Values are always strings, as in localStorage
        self._data = {
            str(key): value if isinstance(value, str) else json.dumps(value)
            for key, value in data.items()
        }
        logger.debug(f"Loaded {len(self._data)} keys")

    def _save(self) -> None:
        """Write all keys to disk."""
        try:
            # Atomic write: write to temp file then rename
            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.data_file)
        except OSError as e:
            logger.error(f"Error saving local store: {e}")
            raise StorageError(f"Failed to save local store: {e}", {"path": str(self.data_file)})

    def get_item(self, key: str) -> Optional[str]:
        """Get the value stored under ``key``, or None."""
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        with self._lock:
            self._data[key] = str(value)
            self._save()

    def remove_item(self, key: str) -> bool:
        """Remove ``key``.

        Returns:
            True if the key existed
        """
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            self._save()
            return True

    def keys(self) -> List[str]:
        """Get all keys currently stored."""
        return list(self._data.keys())

    def keys_with_prefix(self, prefix: str) -> List[str]:
        """Get all keys that start with ``prefix``."""
        return [key for key in self._data if key.startswith(prefix)]

    def clear(self) -> None:
        """Remove every key."""
        with self._lock:
            self._data = {}
            self._save()

    def reload(self) -> None:
        """Re-read the file, dropping in-memory state."""
        with self._lock:
            self._load()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def get_data_file_path(self) -> str:
        """Get the path to the data file."""
        return str(self.data_file)

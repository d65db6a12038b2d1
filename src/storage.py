# storage.py
# Key-value persistence port and its adapters.

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import json
import logging
import math
import os

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String-to-string store the profile store and sessions persist through."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class InMemoryStore(KeyValueStore):
    """Process-lifetime store for tests and throwaway games."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Store values must be str, got {type(value).__name__}")
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(InMemoryStore):
    """
    Keeps every key in a single JSON object on disk.

    The file is read once on construction and rewritten after each change through a
    temporary file, so a crash mid-write leaves the previous version intact.
    """

    def __init__(self, path) -> None:
        self.path = Path(path)
        super().__init__(self._read_file())

    def _read_file(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Could not read store %s: %s", self.path, exc)
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Store %s is not valid JSON; starting empty", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store %s does not hold an object; starting empty", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        tmp_path.write_text(json.dumps(self.data, sort_keys=True), encoding='utf-8')
        os.replace(tmp_path, self.path)

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self._flush()

    def remove(self, key: str) -> None:
        super().remove(key)
        self._flush()


# --- Best-effort helpers used at the persistence boundary ---

def safe_write(store: KeyValueStore, key: str, value) -> bool:
    """
    Serializes `value` to JSON (strings are stored as-is) and writes it.
    Failures are logged and swallowed; the caller's in-memory state stays authoritative.
    Returns:
        bool: True if the write went through.
    """
    try:
        payload = value if isinstance(value, str) else json.dumps(value)
        store.set(key, payload)
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to persist %s: %s", key, exc)
        return False
    return True

def safe_remove(store: KeyValueStore, key: str) -> bool:
    try:
        store.remove(key)
    except OSError as exc:
        logger.warning("Failed to remove %s: %s", key, exc)
        return False
    return True

def read_json(store: KeyValueStore, key: str, default=None):
    """Reads and decodes a JSON record, returning `default` when missing or corrupt."""
    try:
        raw = store.get(key)
    except OSError as exc:
        logger.warning("Failed to read %s: %s", key, exc)
        return default
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding corrupt record %s", key)
        return default

def read_int(store: KeyValueStore, key: str, default: int = 0) -> int:
    value = read_json(store, key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    # json.loads accepts NaN, Infinity and overflowing literals such as 1e400.
    if isinstance(value, float) and not math.isfinite(value):
        return default
    if value < 0:
        return default
    return int(value)

def create_store(path: Optional[str]) -> KeyValueStore:
    """Picks the adapter for a configured path; an empty path means in-memory."""
    if not path:
        return InMemoryStore()
    return JsonFileStore(path)

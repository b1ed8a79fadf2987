"""
Local key/value storage.

Two scopes of client state exist:
- durable state survives restarts (tokens, cached user, cached addresses)
- session state lives only as long as the process (pending registration)

MemoryStore backs session state and tests. JsonFileStore backs durable
state with a single JSON document on disk.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class IKeyValueStore(Protocol):
    """
    Interface for a JSON-value key/value store.

    Values must be JSON-serializable (dicts, lists, strings, numbers).
    """

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""
        ...

    def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        ...

    def keys(self) -> list[str]:
        ...


class MemoryStore:
    """Process-local store. Contents vanish with the process."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """
    Durable store persisted as one JSON object in a file.

    The whole document is rewritten on every change. Writes go to a
    sibling temp file first and are then moved into place, so a crash
    never leaves a truncated document behind.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._data: dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning(f"Discarding unreadable storage file {self._path}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Discarding malformed storage file {self._path}")
            return {}
        return data

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def keys(self) -> list[str]:
        return list(self._data)

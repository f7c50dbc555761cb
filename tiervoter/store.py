"""Durable key-value storage for voting state.

The voting core only needs ``get``/``set``/``remove`` on named string keys.
Values are JSON text. Two backends are provided:

- ``MemoryStore`` keeps everything in a dict (tests, throwaway sessions)
- ``JsonFileStore`` keeps every key in a single JSON document on disk

Readers go through ``read_value``, which falls back to a default when a
stored value is missing or cannot be parsed.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, TypeVar

from pydantic import TypeAdapter, ValidationError

from tiervoter.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class StoreKeys:
    """Key names used in the durable store."""
    CHARACTERS = "characters-data"
    MATCH_HISTORY = "match-history"
    MATCH_QUEUE = "match-queue"
    CURRENT_PAIR = "current-match-pair"
    NEXT_PAIR = "next-match-pair"
    TIER_CONFIG = "tier-config"


class KeyValueStore(Protocol):
    """Protocol for synchronous string key-value stores."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value under key, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete key. Removing an absent key is a no-op."""
        ...


class MemoryStore:
    """In-process store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Store that persists all keys into one JSON file.

    The file is read once on construction and replaced on every change.
    A missing file starts an empty store; an unreadable one is logged and
    treated as empty so the session can start over.
    """

    def __init__(self, path: Path | str):
        """Initialize the file store.

        Args:
            path: Location of the JSON document (parent dirs are created)
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.data: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("store_file_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(payload, dict):
            log.warning("store_file_unreadable", path=str(self.path), error="not an object")
            return {}
        return {str(k): v for k, v in payload.items() if isinstance(v, str)}

    def _write(self) -> None:
        # The previous document stays in place until the new one is complete
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            os.unlink(tmp_name)
            raise

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self._write()

    def remove(self, key: str) -> None:
        if self.data.pop(key, None) is not None:
            self._write()


def read_value(store: KeyValueStore, key: str, adapter: TypeAdapter[T], default: T) -> T:
    """Read and validate a stored value.

    Args:
        store: Store to read from
        key: Key to read
        adapter: Pydantic adapter describing the expected shape
        default: Returned when the key is absent or malformed

    Returns:
        The validated value, or ``default``
    """
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        log.warning("store_value_invalid", key=key, error=str(e))
        return default


def write_value(store: KeyValueStore, key: str, adapter: TypeAdapter[Any], value: Any) -> None:
    """Serialize value with adapter and store it under key."""
    store.set(key, adapter.dump_json(value).decode("utf-8"))

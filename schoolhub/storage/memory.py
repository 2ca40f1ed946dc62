from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from schoolhub.logging import get_logger
from schoolhub.storage.errors import StoreError
from schoolhub.storage.kv import Key, has_prefix


class MemoryStore:
    """In-process key-value store, optionally mirrored to a JSON state file."""

    def __init__(self, state_dir: Optional[str] = None) -> None:
        self.logger = get_logger(__name__)
        self.entries: Dict[Key, Any] = {}
        # RLock for all data operations to ensure thread safety
        self._data_lock = threading.RLock()
        self.state_dir = Path(state_dir) if state_dir else None
        if self.state_dir is not None and self._load_state():
            self.logger.info(
                "memory_store_state_loaded",
                path=str(self._state_path()),
                entries=len(self.entries),
            )

    def _state_path(self) -> Path:
        assert self.state_dir is not None
        state_dir = self.state_dir / "state"
        state_dir.mkdir(parents=True, exist_ok=True)
        return state_dir / "kv_store.json"

    def get(self, key: Key) -> Any | None:
        with self._data_lock:
            value = self.entries.get(tuple(key))
            # Hand out copies so callers cannot mutate stored state in place
            return copy.deepcopy(value)

    def set(self, key: Key, value: Any) -> None:
        with self._data_lock:
            entries = dict(self.entries)
            entries[tuple(key)] = copy.deepcopy(value)
            # Swap in only once the state file has the change
            self._persist_state(entries)
            self.entries = entries

    def delete(self, key: Key) -> None:
        with self._data_lock:
            if tuple(key) not in self.entries:
                return
            entries = dict(self.entries)
            del entries[tuple(key)]
            self._persist_state(entries)
            self.entries = entries

    def list(self, prefix: Key) -> Iterator[tuple[Key, Any]]:
        with self._data_lock:
            matched = [
                (key, copy.deepcopy(value))
                for key, value in self.entries.items()
                if has_prefix(key, tuple(prefix))
            ]
        matched.sort(key=lambda item: item[0])
        return iter(matched)

    def verify_connection(self) -> None:
        return None

    def close(self) -> None:
        return None

    def _persist_state(self, entries: Dict[Key, Any]) -> None:
        if self.state_dir is None:
            return
        state = {
            "entries": [{"key": list(key), "value": value} for key, value in entries.items()]
        }
        path = self._state_path()
        tmp_path = path.with_suffix(".tmp")
        try:
            tmp_path.write_text(json.dumps(state))
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            self.logger.error("memory_store_persist_failed", path=str(path), error=str(exc))
            raise StoreError("failed to persist key-value state") from exc

    def _load_state(self) -> bool:
        path = self._state_path()
        # Use try-except instead of exists() to avoid TOCTOU race condition
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as exc:
            raise StoreError("failed to load key-value state", {"path": str(path)}) from exc
        self.entries = {
            tuple(entry["key"]): entry["value"] for entry in data.get("entries", [])
        }
        return True


__all__ = ["MemoryStore"]

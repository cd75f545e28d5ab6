"""Local persisted key/value storage for tokens and the cached auth store.

Two implementations: an in-memory one (tests, ephemeral processes) and a JSON
file (survives restarts, the server-side counterpart of browser storage).
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from api.utils.debug import print__token_debug

TOKEN_KEY = "token"
SESSION_KEY = "session"
STORE_KEY = "auth_store"


class TokenStorage:
    """Interface: ``get``/``set``/``remove`` of JSON-serialisable values."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryTokenStorage(TokenStorage):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileTokenStorage(TokenStorage):
    """All keys live in one JSON document, rewritten atomically on change."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            print__token_debug(f"Unreadable token file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

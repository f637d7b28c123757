from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from learnboard.auth import Token

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


class KeyValueStore(Protocol):
    def set(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> Optional[str]: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """String values kept in a single JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Session file %s is unreadable; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp, self.path)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class TokenStore:
    """Keeps the session token under a fixed key, JSON-encoded."""

    def __init__(self, store: KeyValueStore, key: str = TOKEN_KEY):
        self.store = store
        self.key = key

    def save(self, token: Token) -> None:
        self.store.set(self.key, json.dumps(token))

    def load(self) -> Optional[Any]:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Stored session token is corrupt; discarding it")
            self.store.remove(self.key)
            return None

    def clear(self) -> None:
        self.store.remove(self.key)

    @property
    def active(self) -> bool:
        return self.load() is not None

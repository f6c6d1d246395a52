"""Key/value backends for client-local state.

The local equivalent of browser local storage: string values under string
keys. Backends raise ``StorageUnavailableError`` for any I/O or decoding
problem; callers decide whether that is fatal.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path


class StorageUnavailableError(Exception):
    """The backing store could not be read or written."""


class SessionStorage(ABC):
    @abstractmethod
    def get_item(self, key: str) -> str | None: ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove_item(self, key: str) -> None: ...


class MemoryStorage(SessionStorage):
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage(SessionStorage):
    """All items in one JSON object on disk, rewritten atomically."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self, discard_corrupt: bool = False) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {self._path}: {e}") from e

        try:
            items = json.loads(text)
        except ValueError as e:
            if discard_corrupt:
                return {}
            raise StorageUnavailableError(f"Corrupt storage file {self._path}") from e
        if not isinstance(items, dict):
            if discard_corrupt:
                return {}
            raise StorageUnavailableError(f"Corrupt storage file {self._path}")
        return items

    def _dump(self, items: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        except OSError as e:
            raise StorageUnavailableError(f"Cannot write {self._path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise StorageUnavailableError(f"Cannot write {self._path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._load(discard_corrupt=True)
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load(discard_corrupt=True)
        if items.pop(key, None) is not None:
            self._dump(items)

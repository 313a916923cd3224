"""
Key-value storage adapters for client-side chat history.

The chat history store only needs string get/set/remove by key.  Browsers
provide this as local storage; outside a browser the same contract is met by
an in-memory dict or a JSON document on disk.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Abstract base class for string key-value storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string for *key*, or None if absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key*; a missing key is not an error."""


class MemoryKeyValueStorage(KeyValueStorage):
    """Process-local storage, lost on exit."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class LocalFileKeyValueStorage(KeyValueStorage):
    """
    File-backed storage.

    All keys live in one JSON object on disk.  Writes go to a temporary file
    in the same directory and are renamed over the original so a crash never
    leaves a half-written document.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.chat_history_path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Chat history file %s is corrupt; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.replace(tmp_path, self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)

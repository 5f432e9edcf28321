"""Durable string key/value storage backed by a JSON file."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    A persistent key/value record of strings.

    Every write is flushed to disk immediately, so state survives restarts.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        """
        Initialize the storage.

        Args:
            path: Path of the JSON file. Defaults to ~/.stationery_hub_storage.json
        """
        if path is None:
            path = str(Path.home() / ".stationery_hub_storage.json")
        self.path = path
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        """Load stored items from file if it exists."""
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            # Corrupted file, start fresh
            logger.warning(f"Could not load storage from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed storage file {self.path}")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)
        os.chmod(self.path, 0o600)

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

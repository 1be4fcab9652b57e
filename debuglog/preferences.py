"""Persistent key-value preferences, stored as a small JSON document."""

import json
import logging
import os
import threading

from debuglog.errors import FileIOError

logger = logging.getLogger(__name__)

LOGGING_ENABLED_KEY = "debugLogging"


class PreferenceStore:
    def __init__(self, path: str):
        self._path = path
        self._lock = threading.Lock()
        self._data: dict = {}
        self._load()

    @property
    def path(self) -> str:
        return self._path

    def _load(self):
        if not os.path.exists(self._path):
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load preferences %s: %s", self._path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            logger.warning("Preferences %s is not a JSON object, ignoring it", self._path)

    def reload(self):
        with self._lock:
            self._data = {}
            self._load()

    def save(self):
        """Atomic write: write to tmp file then replace. Raises FileIOError."""
        tmp_path = self._path + ".tmp"
        try:
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as cleanup_error:
                    logger.warning("Could not remove %s: %s", tmp_path, cleanup_error)
            raise FileIOError(f"Cannot save preferences to {self._path}: {e}") from e

    def get_bool(self, key: str, default: bool = False) -> bool:
        with self._lock:
            value = self._data.get(key, default)
        return value if isinstance(value, bool) else default

    def set_bool(self, key: str, value: bool):
        with self._lock:
            self._data[key] = bool(value)
            self.save()

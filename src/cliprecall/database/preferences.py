import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from cliprecall.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

HISTORY_LIMIT = "historyLimit"
KEYBOARD_SHORTCUT = "keyboardShortcut"
WINDOW_FOLLOWS_CURSOR = "windowFollowsCursor"
NOTIFICATIONS_ENABLED = "notificationsEnabled"
CLIPBOARD_HISTORY = "clipboardHistory"
SHOW_STARTUP_MESSAGE = "showStartupMessage"


class PreferenceStore(ABC):
    """Durable key-value storage for settings and the serialized history.

    Values are JSON-compatible. Backends raise ``PersistenceFailure`` when the
    underlying storage cannot be read or written.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def setdefault(self, key: str, value: Any) -> Any:
        if not self.has(key):
            self.set(key, value)
            return value
        return self.get(key, value)

    def close(self) -> None:
        pass


class JsonPreferenceStore(PreferenceStore):
    """All preferences in a single JSON document, rewritten atomically."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data

        data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                with self.path.open("r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    data = loaded
                else:
                    logger.warning("Ignoring preferences file %s: not an object", self.path)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load preferences from %s: %s", self.path, e)
        self._data = data
        return data

    def _flush(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"could not write {self.path}", e) from e

    def get(self, key: str, default: Any = None) -> Any:
        data = self._load()
        if key not in data:
            return default
        return copy.deepcopy(data[key])

    def set(self, key: str, value: Any) -> None:
        data = dict(self._load())
        data[key] = copy.deepcopy(value)
        self._flush(data)
        self._data = data

    def has(self, key: str) -> bool:
        return key in self._load()

    def clear(self) -> None:
        self._flush({})
        self._data = {}

"""
Settings persistence for RISA.

Layout on disk:
  data/settings.json   flat {key: value} map, written atomically

Holds the feature toggle, the remote API key and the one persisted core value,
the "onboarding finished" flag. Subscribers receive a SettingsChange after every
write that changed a value; callbacks run outside the store lock.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("RISA.Settings")

KEY_ENABLED = "ai_assistant_gesture"
KEY_API_KEY = "ai_assistant_gemini_key"
KEY_ONBOARDING_DONE = "ai_assistant_onboarding_finished"


@dataclass(frozen=True)
class SettingsChange:
    key: str
    value: Any


class SettingsStore(ABC):
    """System settings store consumed by the state machine."""

    @abstractmethod
    def get_bool(self, key: str, default: bool = False) -> bool:
        pass

    @abstractmethod
    def get_string(self, key: str, default: str = "") -> str:
        pass

    @abstractmethod
    def put_bool(self, key: str, value: bool) -> None:
        pass

    @abstractmethod
    def put_string(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def subscribe(self, callback: Callable[[SettingsChange], None]) -> None:
        pass


class JsonSettingsStore(SettingsStore):
    """Thread-safe store persisted to a JSON file (memory-only when path is None)."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = self._load()
        self._subscribers: List[Callable[[SettingsChange], None]] = []

    def _load(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings root is not an object")
            return data
        except Exception as e:
            logger.warning(f"[Settings] Unreadable {self.path}: {e}; starting empty")
            return {}

    def _save_locked(self) -> None:
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._values, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise

    def get_bool(self, key: str, default: bool = False) -> bool:
        with self._lock:
            value = self._values.get(key, default)
        return bool(value)

    def get_string(self, key: str, default: str = "") -> str:
        with self._lock:
            value = self._values.get(key, default)
        return "" if value is None else str(value)

    def put_bool(self, key: str, value: bool) -> None:
        self._put(key, bool(value))

    def put_string(self, key: str, value: str) -> None:
        self._put(key, "" if value is None else str(value))

    def _put(self, key: str, value: Any) -> None:
        with self._lock:
            changed = self._values.get(key) != value
            self._values[key] = value
            if changed:
                self._save_locked()
            subscribers = list(self._subscribers)
        if not changed:
            return
        change = SettingsChange(key=key, value=value)
        for callback in subscribers:
            callback(change)

    def subscribe(self, callback: Callable[[SettingsChange], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)

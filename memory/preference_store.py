"""Preference profile persistence keyed by user id."""
from __future__ import annotations

import hashlib
import json
import threading
from pathlib import Path
from typing import Any, Dict

from models.garment import PreferenceProfile


class PreferenceStore:
    """Interface for loading and saving a user's :class:`PreferenceProfile`."""

    def load(self, user_id: str) -> PreferenceProfile:
        raise NotImplementedError

    def save(self, user_id: str, profile: PreferenceProfile) -> None:
        raise NotImplementedError


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self) -> None:
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, user_id: str) -> PreferenceProfile:
        with self._lock:
            raw = self._profiles.get(user_id)
        return PreferenceProfile.from_dict(raw) if raw else PreferenceProfile()

    def save(self, user_id: str, profile: PreferenceProfile) -> None:
        with self._lock:
            self._profiles[user_id] = profile.to_dict()


class JSONPreferenceStore(PreferenceStore):
    """One JSON file per user under ``base_dir``."""

    def __init__(self, base_dir: str = "data/preferences") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, user_id: str) -> Path:
        safe_id = "".join(char if char.isalnum() or char in "-_" else "_" for char in user_id)
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:12]
        return self.base_dir / f"{safe_id}-{digest}.json"

    def load(self, user_id: str) -> PreferenceProfile:
        path = self._path(user_id)
        if not path.exists():
            return PreferenceProfile()
        return PreferenceProfile.from_dict(json.loads(path.read_text()))

    def save(self, user_id: str, profile: PreferenceProfile) -> None:
        with self._lock:
            self._path(user_id).write_text(json.dumps(profile.to_dict(), indent=2))


__all__ = ["PreferenceStore", "InMemoryPreferenceStore", "JSONPreferenceStore"]

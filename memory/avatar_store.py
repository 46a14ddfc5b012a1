"""Avatar image store: current image, original photo and mutation count per avatar."""
from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class AvatarRecord:
    """Persisted avatar state."""

    image_url: str
    original_url: str
    mutation_count: int = 0
    updated_at: float = field(default_factory=lambda: time.time())


class AvatarStore:
    """Key/value interface for avatar records."""

    def get(self, avatar_id: str) -> Optional[AvatarRecord]:
        raise NotImplementedError

    def set(self, avatar_id: str, record: AvatarRecord) -> None:
        raise NotImplementedError


class InMemoryAvatarStore(AvatarStore):
    def __init__(self) -> None:
        self._records: Dict[str, AvatarRecord] = {}
        self._lock = threading.Lock()

    def get(self, avatar_id: str) -> Optional[AvatarRecord]:
        with self._lock:
            record = self._records.get(avatar_id)
            return AvatarRecord(**asdict(record)) if record else None

    def set(self, avatar_id: str, record: AvatarRecord) -> None:
        with self._lock:
            self._records[avatar_id] = AvatarRecord(**asdict(record))


class JSONAvatarStore(AvatarStore):
    """JSON-file-backed AvatarStore suitable for local runs."""

    def __init__(self, path: str = "data/avatars.json") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text())

    def _save(self, payload: Dict[str, Any]) -> None:
        self.path.write_text(json.dumps(payload, indent=2))

    def get(self, avatar_id: str) -> Optional[AvatarRecord]:
        with self._lock:
            raw = self._load().get(avatar_id)
        return AvatarRecord(**raw) if raw else None

    def set(self, avatar_id: str, record: AvatarRecord) -> None:
        with self._lock:
            payload = self._load()
            payload[avatar_id] = asdict(record)
            self._save(payload)


__all__ = ["AvatarRecord", "AvatarStore", "InMemoryAvatarStore", "JSONAvatarStore"]

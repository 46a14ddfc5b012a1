"""TTL cache for outfit suggestion sets keyed by a weather/archetype signature."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from models.garment import OutfitSuggestion

TEMPERATURE_BUCKET_F = 5
DEFAULT_TTL_SECONDS = 30 * 60


def temperature_bucket(temperature: float) -> int:
    """Lower bound of the 5°F band containing ``temperature``."""

    return int(temperature // TEMPERATURE_BUCKET_F) * TEMPERATURE_BUCKET_F


def signature(temperature: float, condition: str, archetypes: Iterable[str]) -> str:
    """Stable key: archetype order and letter case never change it."""

    canonical = {
        "temperature_bucket": temperature_bucket(temperature),
        "condition": (condition or "").strip().lower(),
        "archetypes": sorted(archetype.strip().lower() for archetype in archetypes),
    }
    encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass
class SuggestionCacheEntry:
    suggestions: List[OutfitSuggestion]
    stored_at: float = field(default_factory=time.time)


class SuggestionCache:
    """In-process cache with lazy expiry on lookup."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, SuggestionCacheEntry] = {}
        self._guard = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            return self._key_locks.setdefault(key, threading.Lock())

    def lookup(self, key: str) -> Optional[List[OutfitSuggestion]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.stored_at >= self.ttl_seconds:
            with self._lock_for(key):
                current = self._entries.get(key)
                if current is entry:
                    del self._entries[key]
            return None
        return list(entry.suggestions)

    def store(self, key: str, suggestions: List[OutfitSuggestion]) -> None:
        with self._lock_for(key):
            self._entries[key] = SuggestionCacheEntry(suggestions=list(suggestions), stored_at=self.clock())

    def get_or_compute(self, key: str, compute: Callable[[], List[OutfitSuggestion]]) -> List[OutfitSuggestion]:
        """Return the cached set or compute and store it, one computation per key at a time."""

        cached = self.lookup(key)
        if cached is not None:
            return cached
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is not None and self.clock() - entry.stored_at < self.ttl_seconds:
                return list(entry.suggestions)
            suggestions = list(compute())
            self._entries[key] = SuggestionCacheEntry(suggestions=suggestions, stored_at=self.clock())
            return list(suggestions)

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "TEMPERATURE_BUCKET_F",
    "DEFAULT_TTL_SECONDS",
    "SuggestionCacheEntry",
    "SuggestionCache",
    "signature",
    "temperature_bucket",
]

"""Advisory budget on composite-on-composite try-on edits per avatar."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from memory.avatar_store import AvatarRecord, AvatarStore, InMemoryAvatarStore
from models.errors import ValidationError
from models.garment import AvatarMutationState
from studio_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)
DEFAULT_MAX_CHANGES = 5


class MutationBudgetTracker:
    """Counts applied composites per avatar and restores the original on reset.

    The budget never blocks an edit. Once ``changes_applied`` reaches
    ``max_changes`` the status carries a reset warning for the UI.
    """

    def __init__(self, avatar_store: AvatarStore | None = None, max_changes: int = DEFAULT_MAX_CHANGES) -> None:
        self.avatar_store = avatar_store or InMemoryAvatarStore()
        self.max_changes = max_changes
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}

    def register_avatar(self, avatar_id: str, original_url: str) -> AvatarRecord:
        if not avatar_id or not original_url:
            raise ValidationError("An avatar id and image are required.")
        with self._lock:
            existing = self.avatar_store.get(avatar_id)
            if existing is not None:
                self._counts[avatar_id] = existing.mutation_count
                return existing
            record = AvatarRecord(image_url=original_url, original_url=original_url, mutation_count=0)
            self.avatar_store.set(avatar_id, record)
            self._counts[avatar_id] = 0
        log_event(LOGGER, logging.INFO, "avatar_registered", avatar_id=avatar_id)
        return record

    def current_image(self, avatar_id: str) -> Optional[str]:
        record = self.avatar_store.get(avatar_id)
        return record.image_url if record else None

    def _count(self, avatar_id: str) -> int:
        if avatar_id not in self._counts:
            record = self.avatar_store.get(avatar_id)
            self._counts[avatar_id] = record.mutation_count if record else 0
        return self._counts[avatar_id]

    def record_change(self, avatar_id: str, new_image_url: str | None = None) -> AvatarMutationState:
        """Count one applied composite and persist the new current image."""

        with self._lock:
            count = self._count(avatar_id) + 1
            self._counts[avatar_id] = count
            record = self.avatar_store.get(avatar_id)
            if record is not None:
                record.mutation_count = count
                if new_image_url:
                    record.image_url = new_image_url
                self.avatar_store.set(avatar_id, record)
            state = AvatarMutationState(changes_applied=count, max_changes=self.max_changes)
        log_event(
            LOGGER,
            logging.WARNING if state.needs_reset_warning else logging.INFO,
            "avatar_change_recorded",
            avatar_id=avatar_id,
            changes_applied=state.changes_applied,
            needs_reset_warning=state.needs_reset_warning,
        )
        return state

    def reset(self, avatar_id: str) -> AvatarMutationState:
        """Zero the counter and point the avatar back at its original photo."""

        with self._lock:
            self._counts[avatar_id] = 0
            record = self.avatar_store.get(avatar_id)
            if record is not None:
                record.image_url = record.original_url
                record.mutation_count = 0
                self.avatar_store.set(avatar_id, record)
        log_event(LOGGER, logging.INFO, "avatar_reset", avatar_id=avatar_id)
        return self.status(avatar_id)

    def status(self, avatar_id: str) -> AvatarMutationState:
        with self._lock:
            return AvatarMutationState(changes_applied=self._count(avatar_id), max_changes=self.max_changes)

    def status_message(self, avatar_id: str) -> str:
        state = self.status(avatar_id)
        if state.needs_reset_warning:
            return (
                f"Your avatar has been changed {state.changes_applied} times. "
                "Reset to your original photo for the best try-on quality."
            )
        remaining = state.max_changes - state.changes_applied
        noun = "change" if remaining == 1 else "changes"
        return f"{remaining} {noun} remaining before a reset is recommended."


__all__ = ["MutationBudgetTracker", "DEFAULT_MAX_CHANGES"]

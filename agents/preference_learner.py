"""Learns prompt-term preferences from the variations a user picks."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from logic.prompt_composer import MAX_TERM_WEIGHT, MIN_TERM_WEIGHT, UNSEEN_TERM_WEIGHT, parse_weighted_terms
from memory.preference_store import InMemoryPreferenceStore, PreferenceStore
from models.garment import PreferenceProfile, SelectionRecord, split_negative
from studio_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

MAX_SELECTIONS = 50
MIN_PLAIN_TERM_LENGTH = 4
PLAIN_TERM_PROMOTION_COUNT = 2


def _plain_terms(positive_prompt: str) -> List[str]:
    terms: List[str] = []
    for raw in positive_prompt.split(","):
        term = raw.strip().lower()
        if len(term) < MIN_PLAIN_TERM_LENGTH or term.startswith("("):
            continue
        if term not in terms:
            terms.append(term)
    return terms


def _positive_section(prompt_text: str) -> str:
    positive, _ = split_negative(prompt_text)
    return positive


class PreferenceLearner:
    """Updates a :class:`PreferenceProfile` on explicit variation selections only.

    Weighted ``(term:weight)`` occurrences are averaged over the retained
    selections and clamped to ``[0.5, 2.0]``. A plain comma-separated term is
    promoted at the default weight once it has appeared in two selections.
    """

    def __init__(
        self,
        store: PreferenceStore | None = None,
        clock: Callable[[], float] = time.time,
        max_selections: int = MAX_SELECTIONS,
    ) -> None:
        self.store = store or InMemoryPreferenceStore()
        self.clock = clock
        self.max_selections = max_selections
        self._guard = threading.Lock()
        self._user_locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._guard:
            return self._user_locks.setdefault(user_id, threading.Lock())

    def profile(self, user_id: str = "default") -> PreferenceProfile:
        return self.store.load(user_id)

    def record_selection(
        self,
        variation_label: str,
        prompt_text: str,
        outfit_style: str,
        user_id: str = "default",
    ) -> PreferenceProfile:
        label = variation_label.strip().lower()
        with self._lock_for(user_id):
            profile = self.store.load(user_id)
            profile.selections.append(
                SelectionRecord(
                    variation_label=label,
                    prompt_used=prompt_text,
                    outfit_style=outfit_style,
                    timestamp=self.clock(),
                )
            )
            profile.selections = profile.selections[-self.max_selections :]
            profile.variation_preference_counts[label] = profile.variation_preference_counts.get(label, 0) + 1
            self._learn_terms(profile, prompt_text)
            self.store.save(user_id, profile)

        log_event(
            LOGGER,
            logging.INFO,
            "variation_selected",
            variation=label,
            total_selections=len(profile.selections),
            learned_terms=len(profile.preferred_term_weights),
        )
        return profile

    def _learn_terms(self, profile: PreferenceProfile, prompt_text: str) -> None:
        positive = _positive_section(prompt_text)
        current_weighted = {term for term, _ in parse_weighted_terms(positive)}

        observed: Dict[str, List[float]] = {}
        for record in profile.selections:
            for term, weight in parse_weighted_terms(_positive_section(record.prompt_used)):
                if term in current_weighted:
                    observed.setdefault(term, []).append(weight)
        for term, weights in observed.items():
            mean = sum(weights) / len(weights)
            profile.preferred_term_weights[term] = round(max(MIN_TERM_WEIGHT, min(MAX_TERM_WEIGHT, mean)), 2)

        past_prompts = [_positive_section(record.prompt_used).lower() for record in profile.selections]
        for term in _plain_terms(positive):
            if term in profile.preferred_term_weights:
                continue
            seen = sum(1 for prompt in past_prompts if term in prompt)
            if seen >= PLAIN_TERM_PROMOTION_COUNT:
                profile.preferred_term_weights[term] = UNSEEN_TERM_WEIGHT

    def favorite_variation(self, user_id: str = "default") -> Optional[str]:
        counts = self.profile(user_id).variation_preference_counts
        if not counts:
            return None
        return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[0][0]

    def preferred_terms(self, user_id: str = "default", limit: int = 10) -> List[Tuple[str, float]]:
        weights = self.profile(user_id).preferred_term_weights
        return sorted(weights.items(), key=lambda item: (-item[1], item[0]))[:limit]


__all__ = ["PreferenceLearner", "MAX_SELECTIONS"]

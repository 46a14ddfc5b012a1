"""Garment orchestrator: owns workflow sessions and the shared stores and clients."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from agents.mutation_budget import MutationBudgetTracker
from agents.preference_learner import PreferenceLearner
from agents.workflow import ProgressObserver, WorkflowStateMachine
from logic.garment_validator import GarmentValidator
from logic.prompt_composer import VARIATION_LABELS, PromptComposer
from logic.suggestion_engine import StyleProfile, SuggestionEngine
from logic.validation import (
    parse_outfit_request,
    parse_style_profile,
    parse_variation_choice,
    parse_weather,
)
from memory.suggestion_cache import SuggestionCache, signature
from models.errors import GarmentStudioError, UnknownSessionError
from models.garment import (
    GarmentAsset,
    OutfitSuggestion,
    PreferenceProfile,
    WeatherSnapshot,
    WorkflowSession,
)
from studio_app.logging_config import get_logger, log_event, operation_context
from tools.image_generation import GarmentImageClient
from tools.tryon import TryOnClient

LOGGER = get_logger(__name__)

DEFAULT_VARIATION_COUNT = 3


class GarmentOrchestrator:
    """Programmatic entry point used by the HTTP adapter and local runs.

    All collaborators are injected so tests can run against fake providers
    and in-memory stores.
    """

    def __init__(
        self,
        composer: PromptComposer,
        image_client: GarmentImageClient,
        validator: GarmentValidator,
        tryon_client: TryOnClient,
        budget: MutationBudgetTracker,
        learner: PreferenceLearner,
        suggestion_cache: SuggestionCache,
        suggestion_engine: SuggestionEngine | None = None,
        observers: Optional[List[ProgressObserver]] = None,
    ) -> None:
        self.composer = composer
        self.image_client = image_client
        self.validator = validator
        self.budget = budget
        self.learner = learner
        self.suggestion_cache = suggestion_cache
        self.suggestion_engine = suggestion_engine or SuggestionEngine()
        self.workflow = WorkflowStateMachine(
            composer=composer,
            image_client=image_client,
            validator=validator,
            tryon_client=tryon_client,
            budget=budget,
            observers=observers,
        )
        self._sessions: Dict[str, WorkflowSession] = {}
        self._session_users: Dict[str, str] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def start_session(
        self,
        avatar_id: str | None = None,
        avatar_image: str | None = None,
        user_id: str = "default",
    ) -> WorkflowSession:
        if avatar_id and avatar_image:
            self.budget.register_avatar(avatar_id, avatar_image)
        session = WorkflowSession(session_id=uuid4().hex, avatar_id=avatar_id)
        with self._lock:
            self._sessions[session.session_id] = session
            self._session_users[session.session_id] = user_id
        log_event(LOGGER, logging.INFO, "workflow_session_started", session_id=session.session_id)
        return session

    def get_session(self, session_id: str) -> WorkflowSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(f"Unknown workflow session {session_id}")
        return session

    def session_user(self, session_id: str) -> str:
        with self._lock:
            user_id = self._session_users.get(session_id)
        if user_id is None:
            raise UnknownSessionError(f"Unknown workflow session {session_id}")
        return user_id

    def resolve_user(self, user_id: str = "default", session_id: str | None = None) -> str:
        """An open session's user wins over the explicit ``user_id``."""

        return self.session_user(session_id) if session_id else user_id

    def end_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
            self._session_users.pop(session_id, None)

    def submit(
        self,
        session_id: str,
        description: str,
        style: str = "casual",
        weather: Dict[str, Any] | None = None,
        time_of_day: str | None = None,
        season: str | None = None,
    ) -> WorkflowSession:
        session = self.get_session(session_id)
        payload = {
            "description": description,
            "style": style,
            "weather": weather,
            "time_of_day": time_of_day,
            "season": season,
        }
        with operation_context("workflow.submit", session_id=session_id):
            return self.workflow.submit(session, payload)

    def accept(self, session_id: str) -> WorkflowSession:
        with operation_context("workflow.accept", session_id=session_id):
            return self.workflow.accept(self.get_session(session_id))

    def decline(self, session_id: str) -> WorkflowSession:
        return self.workflow.decline(self.get_session(session_id))

    def retry(self, session_id: str) -> WorkflowSession:
        with operation_context("workflow.retry", session_id=session_id):
            return self.workflow.retry(self.get_session(session_id))

    def cancel(self, session_id: str) -> bool:
        return self.workflow.cancel(self.get_session(session_id))

    def start_new(self, session_id: str) -> WorkflowSession:
        return self.workflow.start_new(self.get_session(session_id))

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------
    def suggest_outfits(
        self,
        weather: WeatherSnapshot | Dict[str, Any],
        style_profile: StyleProfile | Dict[str, Any] | None = None,
        season: str | None = None,
        time_of_day: str | None = None,
    ) -> List[OutfitSuggestion]:
        if not isinstance(weather, WeatherSnapshot):
            weather = parse_weather(weather)
        if style_profile is None:
            style_profile = StyleProfile()
        elif not isinstance(style_profile, StyleProfile):
            style_profile = StyleProfile(**parse_style_profile(style_profile).model_dump())

        key = signature(weather.temperature, weather.condition, style_profile.archetypes)
        cached = self.suggestion_cache.lookup(key)
        if cached is not None:
            log_event(LOGGER, logging.INFO, "suggestion_cache_hit", cache_key=key[:12])
            return cached
        return self.suggestion_cache.get_or_compute(
            key,
            lambda: self.suggestion_engine.suggest(weather, style_profile, season=season, time_of_day=time_of_day),
        )

    # ------------------------------------------------------------------
    # Variations and preference learning
    # ------------------------------------------------------------------
    def generate_variations(
        self,
        request: Dict[str, Any],
        labels: Sequence[str] | None = None,
        user_id: str = "default",
        limit: int = DEFAULT_VARIATION_COUNT,
        session_id: str | None = None,
    ) -> List[Dict[str, Any]]:
        """Generate and validate up to ``limit`` prompt variations side by side.

        A failed variation is reported with its error instead of aborting the
        whole batch.
        """

        outfit_request = parse_outfit_request(request)
        user_id = self.resolve_user(user_id, session_id)
        profile = self.learner.profile(user_id)
        chosen = list(labels or VARIATION_LABELS)[:limit]
        prompts = self.composer.compose_variations(outfit_request, profile, chosen)

        results: List[Dict[str, Any]] = []
        with operation_context("variations.generate", count=len(prompts)):
            for prompt in prompts:
                entry: Dict[str, Any] = {
                    "variation": prompt.variation,
                    "seed": prompt.seed,
                    "prompt": prompt.to_wire(),
                    "image_url": None,
                    "validation": None,
                    "error": None,
                }
                try:
                    image_ref = self.image_client.generate(prompt)
                except GarmentStudioError as exc:
                    entry["error"] = exc.user_message
                    log_event(
                        LOGGER,
                        logging.WARNING,
                        "variation_failed",
                        variation=prompt.variation,
                        error_type=type(exc).__name__,
                    )
                else:
                    asset = GarmentAsset(image_ref=image_ref, prompt=prompt)
                    entry["image_url"] = image_ref
                    entry["validation"] = self.validator.validate(asset, prompt.subject).to_dict()
                results.append(entry)
        return results

    def record_variation_choice(
        self,
        variation_label: str,
        prompt_used: str,
        outfit_style: str,
        user_id: str = "default",
        session_id: str | None = None,
    ) -> PreferenceProfile:
        user_id = self.resolve_user(user_id, session_id)
        choice = parse_variation_choice(
            {"variation_label": variation_label, "prompt_used": prompt_used, "outfit_style": outfit_style}
        )
        return self.learner.record_selection(
            choice.variation_label, choice.prompt_used, choice.outfit_style, user_id=user_id
        )

    def preferences(self, user_id: str = "default") -> Dict[str, Any]:
        profile = self.learner.profile(user_id)
        return {
            "favorite_variation": self.learner.favorite_variation(user_id),
            "preferred_terms": self.learner.preferred_terms(user_id),
            "profile": profile.to_dict(),
        }

    # ------------------------------------------------------------------
    # Avatar budget
    # ------------------------------------------------------------------
    def register_avatar(self, avatar_id: str, image_url: str) -> Dict[str, Any]:
        self.budget.register_avatar(avatar_id, image_url)
        return self.avatar_status(avatar_id)

    def avatar_status(self, avatar_id: str) -> Dict[str, Any]:
        status = self.budget.status(avatar_id).to_dict()
        status["message"] = self.budget.status_message(avatar_id)
        status["image_url"] = self.budget.current_image(avatar_id)
        return status

    def reset_avatar(self, avatar_id: str) -> Dict[str, Any]:
        self.budget.reset(avatar_id)
        return self.avatar_status(avatar_id)


__all__ = ["GarmentOrchestrator", "DEFAULT_VARIATION_COUNT"]

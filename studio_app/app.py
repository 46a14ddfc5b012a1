"""Garment Studio app bootstrap."""

from __future__ import annotations

import logging
import time
from typing import Callable

from agents.mutation_budget import MutationBudgetTracker
from agents.orchestrator import GarmentOrchestrator
from agents.preference_learner import PreferenceLearner
from logic.garment_validator import GarmentValidator
from logic.prompt_composer import PromptComposer
from memory.avatar_store import AvatarStore, InMemoryAvatarStore, JSONAvatarStore
from memory.preference_store import InMemoryPreferenceStore, JSONPreferenceStore, PreferenceStore
from memory.suggestion_cache import SuggestionCache
from studio_app.config import StudioConfig
from studio_app.logging_config import configure_logging, get_logger, log_event
from tools.image_generation import (
    FalImageProvider,
    GarmentImageClient,
    ImageGenerationProvider,
    MockImageProvider,
)
from tools.tryon import FashnTryOnProvider, MockTryOnProvider, TryOnClient, TryOnProvider

LOGGER = get_logger(__name__)


class GarmentStudioApp:
    """Wires together the clients, stores and the orchestrator from config."""

    def __init__(
        self,
        config: StudioConfig | None = None,
        image_provider: ImageGenerationProvider | None = None,
        tryon_provider: TryOnProvider | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or StudioConfig.from_env()
        configure_logging()

        self.image_provider = image_provider or self._build_image_provider()
        self.tryon_provider = tryon_provider or self._build_tryon_provider()
        self.avatar_store = self._build_avatar_store()
        self.preference_store = self._build_preference_store()

        self.image_client = GarmentImageClient(
            self.image_provider,
            max_attempts=self.config.retry_attempts,
            backoff_base_seconds=self.config.backoff_base_seconds,
            sleep=sleep,
            max_backoff_seconds=self.config.max_backoff_seconds,
        )
        self.tryon_client = TryOnClient(
            self.tryon_provider,
            max_attempts=self.config.tryon_retry_attempts,
            backoff_base_seconds=self.config.backoff_base_seconds,
            sleep=sleep,
            max_backoff_seconds=self.config.max_backoff_seconds,
        )
        self.orchestrator = GarmentOrchestrator(
            composer=PromptComposer(),
            image_client=self.image_client,
            validator=GarmentValidator(),
            tryon_client=self.tryon_client,
            budget=MutationBudgetTracker(self.avatar_store, max_changes=self.config.max_avatar_changes),
            learner=PreferenceLearner(self.preference_store),
            suggestion_cache=SuggestionCache(ttl_seconds=self.config.suggestion_ttl_seconds),
        )

    def _build_image_provider(self) -> ImageGenerationProvider:
        if not self.config.image_api_key:
            log_event(LOGGER, logging.WARNING, "image_provider_mocked", reason="missing_api_key")
            return MockImageProvider()
        return FalImageProvider(
            api_key=self.config.image_api_key,
            endpoint=self.config.image_endpoint,
            timeout_seconds=self.config.image_timeout_seconds,
        )

    def _build_tryon_provider(self) -> TryOnProvider:
        if not self.config.tryon_api_key:
            log_event(LOGGER, logging.WARNING, "tryon_provider_mocked", reason="missing_api_key")
            return MockTryOnProvider()
        return FashnTryOnProvider(
            endpoint=self.config.tryon_endpoint,
            api_key=self.config.tryon_api_key,
            timeout_seconds=self.config.tryon_timeout_seconds,
        )

    def _build_avatar_store(self) -> AvatarStore:
        if self.config.avatar_store_path:
            return JSONAvatarStore(self.config.avatar_store_path)
        return InMemoryAvatarStore()

    def _build_preference_store(self) -> PreferenceStore:
        if self.config.preference_store_path:
            return JSONPreferenceStore(self.config.preference_store_path)
        return InMemoryPreferenceStore()


__all__ = ["GarmentStudioApp"]

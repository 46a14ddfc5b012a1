"""Virtual try-on providers and the client that degrades to garment-only results."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import requests

from logic.category_detection import CategoryClassifier, KeywordCategoryClassifier
from models.errors import AuthError, GarmentStudioError, MalformedResponse, ServiceUnavailable, TryOnRejected
from models.garment import Composited, Failed, FallbackGarmentOnly, TryOnResult
from models.taxonomy import PROVIDER_CATEGORY_NAMES, validate_tryon_category
from studio_app.logging_config import get_logger, log_event
from tools.image_generation import classify_http_error
from tools.observability import instrument_tool

LOGGER = get_logger(__name__)


class TryOnProvider(ABC):
    """Abstract virtual try-on service."""

    @abstractmethod
    def apply(self, avatar_image: str, garment_image: str, category: str) -> str:
        """Return the composited image URL or raise a studio error."""


class FashnTryOnProvider(TryOnProvider):
    """HTTP try-on provider speaking ``{avatarImage, garmentImage, category}``."""

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @instrument_tool("virtual_tryon")
    def apply(self, avatar_image: str, garment_image: str, category: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = {
            "avatarImage": avatar_image,
            "garmentImage": garment_image,
            "category": PROVIDER_CATEGORY_NAMES[validate_tryon_category(category)],
        }
        try:
            response = self.session.post(self.endpoint, json=body, headers=headers, timeout=self.timeout_seconds)
        except requests.Timeout as exc:
            raise ServiceUnavailable("Virtual try-on timed out.", detail=str(exc)) from exc
        except requests.RequestException as exc:
            raise ServiceUnavailable(detail=f"virtual try-on unreachable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise classify_http_error(response, "virtual try-on")

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponse(detail="try-on response body is not JSON") from exc

        if not isinstance(payload, dict) or not payload.get("success"):
            reason = payload.get("error") if isinstance(payload, dict) else None
            raise TryOnRejected(detail=reason or "try-on reported failure")
        image_url = payload.get("imageUrl")
        if not image_url:
            raise MalformedResponse(detail="try-on succeeded without imageUrl")
        return image_url


class MockTryOnProvider(TryOnProvider):
    """Offline provider. ``fail_with`` makes every call raise that error."""

    def __init__(self, fail_with: GarmentStudioError | None = None) -> None:
        self.fail_with = fail_with
        self.calls: list[tuple[str, str, str]] = []

    def apply(self, avatar_image: str, garment_image: str, category: str) -> str:
        self.calls.append((avatar_image, garment_image, category))
        if self.fail_with is not None:
            raise self.fail_with
        return f"https://tryon.example.test/composites/{len(self.calls)}-{category}.png"


class TryOnClient:
    """Applies a garment to an avatar and always answers with a :class:`TryOnResult`.

    Timeouts and 5xx responses are retried ``max_attempts`` times in total and
    then degrade to :class:`FallbackGarmentOnly`, as does any other service
    error. Authentication failures yield :class:`Failed` because showing the
    garment alone would hide a problem the user has to fix. When
    ``should_continue`` turns false between attempts the client stops waiting
    and answers with a retryable :class:`Failed`.
    """

    def __init__(
        self,
        provider: TryOnProvider,
        classifier: Optional[CategoryClassifier] = None,
        max_attempts: int = 2,
        backoff_base_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        max_backoff_seconds: float = 30.0,
    ) -> None:
        self.provider = provider
        self.classifier = classifier or KeywordCategoryClassifier()
        self.max_attempts = max(1, max_attempts)
        self.backoff_base_seconds = backoff_base_seconds
        self.max_backoff_seconds = max(0.0, max_backoff_seconds)
        self.sleep = sleep

    def apply(
        self,
        avatar_image: str,
        garment_image: str,
        description: str,
        category: str | None = None,
        should_continue: Callable[[], bool] | None = None,
    ) -> TryOnResult:
        category = category or self.classifier.classify(description)
        attempt = 0
        while True:
            attempt += 1
            try:
                image_url = self.provider.apply(avatar_image, garment_image, category)
            except AuthError as exc:
                log_event(LOGGER, logging.ERROR, "tryon_auth_failed", category=category)
                return Failed(reason=exc.user_message, retryable=False)
            except ServiceUnavailable as exc:
                if attempt >= self.max_attempts:
                    return self._fallback(garment_image, exc, category)
                if should_continue is not None and not should_continue():
                    return self._abandoned(category, attempt)
                delay = min(self.backoff_base_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "tryon_retry",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay_seconds=delay,
                )
                self.sleep(delay)
                if should_continue is not None and not should_continue():
                    return self._abandoned(category, attempt)
                continue
            except GarmentStudioError as exc:
                return self._fallback(garment_image, exc, category)

            log_event(LOGGER, logging.INFO, "tryon_composited", category=category, attempts=attempt)
            return Composited(image_url=image_url)

    def _abandoned(self, category: str, attempt: int) -> Failed:
        log_event(LOGGER, logging.INFO, "tryon_abandoned", category=category, attempt=attempt)
        return Failed(reason="Cancelled", retryable=True)

    def _fallback(self, garment_image: str, exc: GarmentStudioError, category: str) -> FallbackGarmentOnly:
        log_event(
            LOGGER,
            logging.WARNING,
            "tryon_fallback_applied",
            category=category,
            error_type=type(exc).__name__,
        )
        return FallbackGarmentOnly(garment_url=garment_image, reason=exc.user_message)


__all__ = ["TryOnProvider", "FashnTryOnProvider", "MockTryOnProvider", "TryOnClient"]

"""Garment image generation providers and the retrying client the workflow uses."""

from __future__ import annotations

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import requests

from models.errors import (
    AuthError,
    BadRequest,
    GarmentStudioError,
    MalformedResponse,
    RateLimited,
    ServiceUnavailable,
)
from models.garment import GarmentPrompt
from studio_app.logging_config import get_logger, log_event
from tools.observability import instrument_tool

LOGGER = get_logger(__name__)

IMAGE_SIZE = {"width": 1024, "height": 1024}
DEFAULT_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted, pixelated, bad anatomy, deformed, ugly, bad proportions, "
    "duplicate, watermark, signature, text, jpeg artifacts, cropped"
)
MAX_ERROR_BODY_CHARS = 500


def build_request_body(prompt: GarmentPrompt) -> Dict[str, Any]:
    return {
        "prompt": prompt.main_prompt,
        "negative_prompt": prompt.negative_prompt or DEFAULT_NEGATIVE_PROMPT,
        "image_size": dict(IMAGE_SIZE),
        "num_inference_steps": prompt.steps,
        "guidance_scale": prompt.guidance_scale,
        "num_images": 1,
        "seed": prompt.seed,
        "enable_safety_checker": False,
    }


def extract_image_url(payload: Any) -> Optional[str]:
    """Find the image reference in any of the response shapes the service uses."""

    if not isinstance(payload, dict):
        return None
    images = payload.get("images")
    if isinstance(images, list) and images and isinstance(images[0], dict) and images[0].get("url"):
        return images[0]["url"]
    image = payload.get("image")
    if isinstance(image, dict) and image.get("url"):
        return image["url"]
    if isinstance(image, str) and image:
        return image
    data = payload.get("data")
    if isinstance(data, dict):
        return extract_image_url({"images": data.get("images")})
    return None


def _retry_after_seconds(response: requests.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After") if response.headers else None
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except (TypeError, ValueError):
        return None


def classify_http_error(response: requests.Response, service: str) -> GarmentStudioError:
    """Map a non-2xx response onto the studio error taxonomy."""

    status = response.status_code
    body = (response.text or "")[:MAX_ERROR_BODY_CHARS]
    detail = f"{service} HTTP {status}: {body}"
    if status in (401, 403):
        return AuthError(detail=detail)
    if status == 429:
        return RateLimited(detail=detail, retry_after=_retry_after_seconds(response))
    if status >= 500:
        return ServiceUnavailable(detail=detail)
    return BadRequest(f"{service} request failed (HTTP {status}): {body}", detail=detail)


class ImageGenerationProvider(ABC):
    """Abstract garment image generator."""

    @abstractmethod
    def generate(self, prompt: GarmentPrompt) -> str:
        """Return an image reference (URL or ``data:`` URI) for the prompt."""


class FalImageProvider(ImageGenerationProvider):
    """HTTP text-to-image provider authenticated with ``Authorization: Key <key>``."""

    def __init__(
        self,
        api_key: str | None,
        endpoint: str,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @instrument_tool("generate_garment_image")
    def generate(self, prompt: GarmentPrompt) -> str:
        if not self.api_key:
            raise AuthError("Image generation API key is not configured.")

        headers = {"Authorization": f"Key {self.api_key}", "Content-Type": "application/json"}
        try:
            response = self.session.post(
                self.endpoint,
                json=build_request_body(prompt),
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise ServiceUnavailable("Image generation timed out.", detail=str(exc)) from exc
        except requests.RequestException as exc:
            raise ServiceUnavailable(detail=f"image generation unreachable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise classify_http_error(response, "image generation")

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponse(detail="response body is not JSON") from exc

        image_url = extract_image_url(payload)
        if not image_url:
            keys = sorted(payload) if isinstance(payload, dict) else type(payload).__name__
            raise MalformedResponse(detail=f"unexpected payload keys: {keys}")
        return image_url


class MockImageProvider(ImageGenerationProvider):
    """Offline deterministic provider for tests and local runs."""

    def __init__(self, base_url: str = "https://images.example.test/garments") -> None:
        self.base_url = base_url.rstrip("/")
        self.calls: list[GarmentPrompt] = []

    def generate(self, prompt: GarmentPrompt) -> str:
        self.calls.append(prompt)
        digest = hashlib.sha256(prompt.main_prompt.encode("utf-8")).hexdigest()[:12]
        LOGGER.info("Returning mock garment image", extra={"seed": prompt.seed, "variation": prompt.variation})
        return f"{self.base_url}/{prompt.seed}-{digest}.png"


class GarmentImageClient:
    """Generates a garment image with bounded retries for retryable failures.

    Rate limits wait for ``Retry-After`` when the service sends one, otherwise
    exponential backoff from ``backoff_base_seconds``. Every wait is capped at
    ``max_backoff_seconds``. Non-retryable errors propagate on the first
    attempt, and a ``should_continue`` callable that turns false stops the
    loop before the next wait with the last error.
    """

    def __init__(
        self,
        provider: ImageGenerationProvider,
        max_attempts: int = 3,
        backoff_base_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        max_backoff_seconds: float = 30.0,
    ) -> None:
        self.provider = provider
        self.max_attempts = max(1, max_attempts)
        self.backoff_base_seconds = backoff_base_seconds
        self.max_backoff_seconds = max(0.0, max_backoff_seconds)
        self.sleep = sleep

    def _delay(self, attempt: int, exc: GarmentStudioError) -> float:
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is None:
            retry_after = self.backoff_base_seconds * (2 ** (attempt - 1))
        return min(retry_after, self.max_backoff_seconds)

    @staticmethod
    def _stopped(should_continue: Callable[[], bool] | None, attempt: int) -> bool:
        if should_continue is None or should_continue():
            return False
        log_event(LOGGER, logging.INFO, "image_generation_abandoned", attempt=attempt)
        return True

    def generate(
        self,
        prompt: GarmentPrompt | str,
        seed: int | None = None,
        should_continue: Callable[[], bool] | None = None,
    ) -> str:
        if isinstance(prompt, str):
            prompt = GarmentPrompt.from_wire(prompt, seed=seed or 0)
        attempt = 0
        while True:
            attempt += 1
            try:
                return self.provider.generate(prompt)
            except GarmentStudioError as exc:
                if not exc.retryable or attempt >= self.max_attempts:
                    raise
                if self._stopped(should_continue, attempt):
                    raise
                delay = self._delay(attempt, exc)
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "image_generation_retry",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay_seconds=delay,
                    error_type=type(exc).__name__,
                )
                self.sleep(delay)
                if self._stopped(should_continue, attempt):
                    raise


__all__ = [
    "IMAGE_SIZE",
    "ImageGenerationProvider",
    "FalImageProvider",
    "MockImageProvider",
    "GarmentImageClient",
    "build_request_body",
    "extract_image_url",
    "classify_http_error",
]

"""Configuration loading, app wiring and structured log output."""

import io
import json
import logging
from pathlib import Path

import pytest

from memory.avatar_store import JSONAvatarStore
from memory.preference_store import JSONPreferenceStore
from studio_app.app import GarmentStudioApp
from studio_app.config import DEFAULT_IMAGE_ENDPOINT, StudioConfig
from studio_app.logging_config import JsonFormatter, correlation_context, log_event, operation_context, redact_for_log
from tools.image_generation import FalImageProvider, MockImageProvider
from tools.tryon import FashnTryOnProvider, MockTryOnProvider

ENV_KEYS = [
    "APP_ENV",
    "APP_CONFIG_PATH",
    "STUDIO_CONFIG_DIR",
    "FAL_API_KEY",
    "FASHN_API_KEY",
    "RETRY_ATTEMPTS",
    "MAX_AVATAR_CHANGES",
    "IMAGE_ENDPOINT",
    "MAX_BACKOFF_SECONDS",
]


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults_without_environment(clean_env: pytest.MonkeyPatch) -> None:
    config = StudioConfig.from_env()

    assert config.image_endpoint == DEFAULT_IMAGE_ENDPOINT
    assert config.image_api_key is None
    assert config.retry_attempts == 3
    assert config.max_avatar_changes == 5
    assert config.suggestion_ttl_seconds == 1800


def test_environment_overrides_yaml(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_dir = tmp_path / "environments"
    config_dir.mkdir()
    (config_dir / "staging.yaml").write_text(
        "# staging\nretry_attempts: 2\nmax_avatar_changes: 7\nimage_endpoint: \"https://fal.example.test/run\"\n"
    )
    clean_env.setenv("APP_ENV", "staging")
    clean_env.setenv("STUDIO_CONFIG_DIR", str(config_dir))
    clean_env.setenv("RETRY_ATTEMPTS", "4")
    clean_env.setenv("FAL_API_KEY", "fal-secret")

    config = StudioConfig.from_env()

    assert config.environment == "staging"
    assert config.retry_attempts == 4
    assert config.max_avatar_changes == 7
    assert config.image_endpoint == "https://fal.example.test/run"
    assert config.image_api_key == "fal-secret"


def test_app_uses_mock_providers_without_keys() -> None:
    studio = GarmentStudioApp(config=StudioConfig())

    assert isinstance(studio.image_provider, MockImageProvider)
    assert isinstance(studio.tryon_provider, MockTryOnProvider)


def test_app_builds_http_providers_and_json_stores(tmp_path: Path) -> None:
    config = StudioConfig(
        image_api_key="fal-secret",
        tryon_api_key="fashn-secret",
        avatar_store_path=str(tmp_path / "avatars.json"),
        preference_store_path=str(tmp_path / "preferences"),
        max_avatar_changes=3,
    )

    studio = GarmentStudioApp(config=config)

    assert isinstance(studio.image_provider, FalImageProvider)
    assert isinstance(studio.tryon_provider, FashnTryOnProvider)
    assert isinstance(studio.avatar_store, JSONAvatarStore)
    assert isinstance(studio.preference_store, JSONPreferenceStore)
    assert studio.orchestrator.budget.max_changes == 3


def _capture(logger_name: str) -> tuple:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logger = logging.getLogger(logger_name)
    logger.handlers = [handler]
    logger.propagate = False
    logger.setLevel(logging.INFO)
    return logger, stream


def test_log_event_emits_redacted_json() -> None:
    logger, stream = _capture("tests.structured")

    with correlation_context("corr-123"):
        log_event(
            logger,
            logging.INFO,
            "avatar_registered",
            user_id="ana",
            garment_image="https://images.example.test/a.png",
            changes_applied=2,
        )

    payload = json.loads(stream.getvalue().strip())
    assert payload["event"] == "avatar_registered"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "corr-123"
    assert payload["user_id"] == "[redacted]"
    assert payload["garment_image"] == "[redacted-url]"
    assert payload["changes_applied"] == 2


def test_redaction_masks_inline_images_and_emails() -> None:
    scrubbed = redact_for_log({"note": "mail ana@example.com", "ref": "data:image/png;base64,AAAA", "nested": [{"api_key": "k"}]})

    assert scrubbed["note"] == "mail [redacted-email]"
    assert scrubbed["ref"].startswith("[redacted-data-uri")
    assert scrubbed["nested"] == [{"api_key": "[redacted]"}]


def test_operation_context_tags_records_with_the_session() -> None:
    logger, stream = _capture("tests.session_scoped")

    with operation_context("workflow.submit", session_id="sess-9", correlation_id="corr-9"):
        log_event(logger, logging.INFO, "image_generation_retry", attempt=1)
    log_event(logger, logging.INFO, "outside_session")

    inside, outside = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert inside["session_id"] == "sess-9"
    assert inside["correlation_id"] == "corr-9"
    assert inside["service"] == "garment-studio"
    assert inside["attempt"] == 1
    assert "session_id" not in outside


def test_max_backoff_is_configurable(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("MAX_BACKOFF_SECONDS", "12")

    config = StudioConfig.from_env()
    studio = GarmentStudioApp(config=config)

    assert config.max_backoff_seconds == 12.0
    assert studio.image_client.max_backoff_seconds == 12.0
    assert studio.tryon_client.max_backoff_seconds == 12.0

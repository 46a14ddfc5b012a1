"""Configuration helpers for the Garment Studio orchestrator."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_IMAGE_ENDPOINT = "https://fal.run/fal-ai/flux/dev"
DEFAULT_TRYON_ENDPOINT = "https://api.fashn.ai/v1/run"


@dataclass
class StudioConfig:
    """Configuration values for the orchestrator and its external clients.

    Secrets are expected from the environment. Everything else may also come
    from a small key/value file so local and deployed runs share one shape.
    """

    image_endpoint: str = DEFAULT_IMAGE_ENDPOINT
    image_api_key: Optional[str] = None
    tryon_endpoint: str = DEFAULT_TRYON_ENDPOINT
    tryon_api_key: Optional[str] = None
    image_timeout_seconds: float = 60.0
    tryon_timeout_seconds: float = 60.0
    retry_attempts: int = 3
    tryon_retry_attempts: int = 2
    backoff_base_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    max_avatar_changes: int = 5
    suggestion_ttl_seconds: float = 30 * 60
    preference_store_path: Optional[str] = None
    avatar_store_path: Optional[str] = None
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is overridden by environment variables so API keys can be
        injected by the runtime.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("STUDIO_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        def get_float(key: str, default: float) -> float:
            raw = get_value(key)
            return float(raw) if raw not in (None, "") else default

        def get_int(key: str, default: int) -> int:
            raw = get_value(key)
            return int(raw) if raw not in (None, "") else default

        return cls(
            image_endpoint=str(get_value("image_endpoint", DEFAULT_IMAGE_ENDPOINT) or DEFAULT_IMAGE_ENDPOINT),
            image_api_key=get_value("fal_api_key"),
            tryon_endpoint=str(get_value("tryon_endpoint", DEFAULT_TRYON_ENDPOINT) or DEFAULT_TRYON_ENDPOINT),
            tryon_api_key=get_value("fashn_api_key"),
            image_timeout_seconds=get_float("image_timeout_seconds", 60.0),
            tryon_timeout_seconds=get_float("tryon_timeout_seconds", 60.0),
            retry_attempts=get_int("retry_attempts", 3),
            tryon_retry_attempts=get_int("tryon_retry_attempts", 2),
            backoff_base_seconds=get_float("backoff_base_seconds", 1.0),
            max_backoff_seconds=get_float("max_backoff_seconds", 30.0),
            max_avatar_changes=get_int("max_avatar_changes", 5),
            suggestion_ttl_seconds=get_float("suggestion_ttl_seconds", 30 * 60),
            preference_store_path=get_value("preference_store_path"),
            avatar_store_path=get_value("avatar_store_path"),
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config

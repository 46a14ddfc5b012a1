"""Data model for garment requests, prompts, assets and try-on results."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from models.taxonomy import SEASONS, TIMES_OF_DAY, validate_style

NEGATIVE_DELIMITER = " --neg "
SEED_MODULUS = 2147483647


@dataclass(frozen=True)
class WeatherSnapshot:
    """Weather at request time. Temperatures are Fahrenheit."""

    temperature: float
    condition: str = "clear"
    wind_speed: float = 0.0
    humidity: float = 0.0


@dataclass(frozen=True)
class OutfitRequest:
    """What the user asked for. Immutable once submitted to a workflow."""

    description: str
    style: str = "casual"
    weather: Optional[WeatherSnapshot] = None
    time_of_day: Optional[str] = None
    season: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "style", validate_style(self.style))
        if self.time_of_day is not None and self.time_of_day not in TIMES_OF_DAY:
            raise ValueError(f"Unsupported time of day '{self.time_of_day}'. Allowed: {TIMES_OF_DAY}")
        if self.season is not None and self.season not in SEASONS:
            raise ValueError(f"Unsupported season '{self.season}'. Allowed: {SEASONS}")


@dataclass(frozen=True)
class GarmentPrompt:
    """Structured prompt. The ``--neg`` string form only exists at the wire boundary."""

    main_prompt: str
    negative_prompt: str
    seed: int
    weighted_terms: Tuple[Tuple[str, float], ...] = ()
    # User-derived description without the fixed technical block; what the validator scores.
    subject: str = ""
    variation: str = "enhanced"
    steps: int = 40
    guidance_scale: float = 9.0

    def __post_init__(self) -> None:
        if not 0 <= self.seed < SEED_MODULUS:
            raise ValueError(f"seed must be in [0, {SEED_MODULUS}), got {self.seed}")

    def to_wire(self) -> str:
        if not self.negative_prompt:
            return self.main_prompt
        return f"{self.main_prompt}{NEGATIVE_DELIMITER}{self.negative_prompt}"

    @classmethod
    def from_wire(cls, text: str, seed: int, variation: str = "enhanced") -> "GarmentPrompt":
        main, negative = split_negative(text)
        return cls(main_prompt=main, negative_prompt=negative, seed=seed, variation=variation)


def split_negative(text: str) -> Tuple[str, str]:
    """Split a wire prompt on the negative delimiter, exactly once."""

    main, _, negative = text.partition(NEGATIVE_DELIMITER)
    return main.strip(), negative.strip()


@dataclass
class ValidationResult:
    score: int
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.score >= 70 and len(self.issues) <= 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "is_valid": self.is_valid,
        }


@dataclass
class GarmentAsset:
    """A generated garment-only image plus the prompt and validation behind it."""

    image_ref: str
    prompt: GarmentPrompt
    validation: Optional[ValidationResult] = None
    created_at: float = field(default_factory=time.time)

    @property
    def is_inline(self) -> bool:
        return self.image_ref.startswith("data:")


@dataclass(frozen=True)
class TryOnResult:
    """Base of the try-on result variants. Use the subclasses."""

    @property
    def success(self) -> bool:
        return False

    @property
    def fallback_mode(self) -> bool:
        return False

    @property
    def final_image_url(self) -> Optional[str]:
        return None

    @property
    def error(self) -> Optional[str]:
        return None

    @property
    def kind(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "success": self.success,
            "final_image_url": self.final_image_url,
            "fallback_mode": self.fallback_mode,
            "error": self.error,
        }


@dataclass(frozen=True)
class Composited(TryOnResult):
    """The try-on service composited the garment onto the avatar."""

    image_url: str

    @property
    def success(self) -> bool:
        return True

    @property
    def final_image_url(self) -> Optional[str]:
        return self.image_url

    @property
    def kind(self) -> str:
        return "composited"


@dataclass(frozen=True)
class FallbackGarmentOnly(TryOnResult):
    """Degraded result: the garment image stands in for a composite."""

    garment_url: str
    reason: str

    @property
    def success(self) -> bool:
        return True

    @property
    def fallback_mode(self) -> bool:
        return True

    @property
    def final_image_url(self) -> Optional[str]:
        return self.garment_url

    @property
    def error(self) -> Optional[str]:
        return self.reason

    @property
    def kind(self) -> str:
        return "fallback_garment_only"


@dataclass(frozen=True)
class Failed(TryOnResult):
    reason: str
    retryable: bool = False

    @property
    def error(self) -> Optional[str]:
        return self.reason

    @property
    def kind(self) -> str:
        return "failed"


class WorkflowStep(str, Enum):
    INPUT = "input"
    GENERATING = "generating"
    PREVIEW = "preview"
    APPLYING = "applying"
    COMPLETE = "complete"


@dataclass
class WorkflowSession:
    """Mutable state owned by one in-flight user request."""

    session_id: str
    avatar_id: Optional[str] = None
    step: WorkflowStep = WorkflowStep.INPUT
    request: Optional[OutfitRequest] = None
    prompt: Optional[GarmentPrompt] = None
    asset: Optional[GarmentAsset] = None
    tryon_result: Optional[TryOnResult] = None
    last_error: Optional[str] = None
    last_error_retryable: bool = False
    progress: int = 0
    status_message: str = "Ready to start"
    history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def prompt_text(self) -> str:
        return self.request.description if self.request else ""

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view for API responses and logs."""

        return {
            "session_id": self.session_id,
            "avatar_id": self.avatar_id,
            "step": self.step.value,
            "prompt_text": self.prompt_text,
            "style": self.request.style if self.request else None,
            "seed": self.prompt.seed if self.prompt else None,
            "garment_image": self.asset.image_ref if self.asset else None,
            "validation": self.asset.validation.to_dict() if self.asset and self.asset.validation else None,
            "tryon_result": self.tryon_result.to_dict() if self.tryon_result else None,
            "last_error": self.last_error,
            "last_error_retryable": self.last_error_retryable,
            "progress": self.progress,
            "status_message": self.status_message,
        }


@dataclass
class AvatarMutationState:
    changes_applied: int = 0
    max_changes: int = 5

    @property
    def needs_reset_warning(self) -> bool:
        return self.changes_applied >= self.max_changes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes_applied": self.changes_applied,
            "max_changes": self.max_changes,
            "needs_reset_warning": self.needs_reset_warning,
        }


@dataclass
class OutfitSuggestion:
    """A rule-based outfit idea derived from weather, season and style archetypes."""

    suggestion_id: int
    name: str
    description: str
    pieces: List[str]
    colors: List[str]
    style: str
    occasion: str
    temperature_range: Tuple[float, float]
    weather_appropriate: bool = False
    style_match: int = 70

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestion_id": self.suggestion_id,
            "name": self.name,
            "description": self.description,
            "pieces": list(self.pieces),
            "colors": list(self.colors),
            "style": self.style,
            "occasion": self.occasion,
            "temperature_range": {"min": self.temperature_range[0], "max": self.temperature_range[1]},
            "weather_appropriate": self.weather_appropriate,
            "style_match": self.style_match,
        }


@dataclass
class SelectionRecord:
    variation_label: str
    prompt_used: str
    outfit_style: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class PreferenceProfile:
    """Accumulated variation picks. Changed only by explicit user selections."""

    selections: List[SelectionRecord] = field(default_factory=list)
    variation_preference_counts: Dict[str, int] = field(default_factory=dict)
    preferred_term_weights: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selections": [record.__dict__ for record in self.selections],
            "variation_preference_counts": dict(self.variation_preference_counts),
            "preferred_term_weights": dict(self.preferred_term_weights),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PreferenceProfile":
        return cls(
            selections=[SelectionRecord(**record) for record in payload.get("selections", [])],
            variation_preference_counts={
                str(label): int(count) for label, count in payload.get("variation_preference_counts", {}).items()
            },
            preferred_term_weights={
                str(term): float(weight) for term, weight in payload.get("preferred_term_weights", {}).items()
            },
        )


__all__ = [
    "NEGATIVE_DELIMITER",
    "SEED_MODULUS",
    "WeatherSnapshot",
    "OutfitRequest",
    "GarmentPrompt",
    "split_negative",
    "ValidationResult",
    "GarmentAsset",
    "TryOnResult",
    "Composited",
    "FallbackGarmentOnly",
    "Failed",
    "WorkflowStep",
    "WorkflowSession",
    "AvatarMutationState",
    "OutfitSuggestion",
    "SelectionRecord",
    "PreferenceProfile",
]

"""Pydantic schemas and helpers for validating orchestrator and API inputs."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from models.errors import ValidationError
from models.garment import OutfitRequest, WeatherSnapshot
from models.taxonomy import STYLES

ModelT = TypeVar("ModelT", bound=BaseModel)


class WeatherModel(BaseModel):
    """Weather snapshot supplied alongside a garment request (Fahrenheit)."""

    temperature: float = Field(ge=-60, le=140)
    condition: str = "clear"
    wind_speed: float = Field(default=0.0, ge=0)
    humidity: float = Field(default=0.0, ge=0, le=100)

    def to_snapshot(self) -> WeatherSnapshot:
        return WeatherSnapshot(
            temperature=self.temperature,
            condition=self.condition.strip().lower() or "clear",
            wind_speed=self.wind_speed,
            humidity=self.humidity,
        )


class OutfitRequestModel(BaseModel):
    """Input contract for a garment request."""

    description: str
    style: str = "casual"
    weather: Optional[WeatherModel] = None
    time_of_day: Optional[Literal["morning", "afternoon", "evening", "night"]] = None
    season: Optional[Literal["spring", "summer", "fall", "winter"]] = None

    @field_validator("description")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("description must not be empty")
        return value.strip()

    @field_validator("style")
    @classmethod
    def _known_style(cls, value: str) -> str:
        key = value.strip().lower()
        if key not in STYLES:
            raise ValueError(f"style must be one of {STYLES}")
        return key

    def to_request(self) -> OutfitRequest:
        return OutfitRequest(
            description=self.description,
            style=self.style,
            weather=self.weather.to_snapshot() if self.weather else None,
            time_of_day=self.time_of_day,
            season=self.season,
        )


class StyleProfileModel(BaseModel):
    """Style hints used to rank outfit suggestions."""

    archetypes: List[str] = []
    favorite_colors: List[str] = []
    preferred_styles: List[str] = []


class SuggestionRequestModel(BaseModel):
    weather: WeatherModel
    style_profile: StyleProfileModel = Field(default_factory=StyleProfileModel)
    season: Optional[Literal["spring", "summer", "fall", "winter"]] = None
    time_of_day: Optional[Literal["morning", "afternoon", "evening", "night"]] = None


class VariationChoiceModel(BaseModel):
    """A user's pick among generated variations."""

    variation_label: str = Field(min_length=1)
    prompt_used: str = Field(min_length=1)
    outfit_style: str = Field(min_length=1)

    @field_validator("variation_label")
    @classmethod
    def _normalise_label(cls, value: str) -> str:
        return value.strip().lower()


def validation_errors(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    """Reduce pydantic errors to JSON-safe ``{loc, msg}`` entries."""

    return [{"loc": list(error.get("loc", ())), "msg": error.get("msg", "")} for error in exc.errors()]


def parse_outfit_request(payload: Dict[str, Any] | OutfitRequest) -> OutfitRequest:
    """Validate a raw payload into an :class:`OutfitRequest`.

    Raises :class:`models.errors.ValidationError` carrying the first problem as
    the user-facing message.
    """

    if isinstance(payload, OutfitRequest):
        if not payload.description.strip():
            raise ValidationError()
        return payload
    try:
        return OutfitRequestModel.model_validate(payload).to_request()
    except PydanticValidationError as exc:
        errors = validation_errors(exc)
        if any(error["loc"] == ["description"] for error in errors):
            raise ValidationError(detail=str(errors)) from exc
        raise ValidationError(errors[0]["msg"], detail=str(errors)) from exc


def _parse(model: Type[ModelT], payload: Dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        errors = validation_errors(exc)
        first = errors[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"{location}: {first['msg']}" if location else first["msg"]
        raise ValidationError(message, detail=str(errors)) from exc


def parse_variation_choice(payload: Dict[str, Any]) -> VariationChoiceModel:
    return _parse(VariationChoiceModel, payload)


def parse_weather(payload: Dict[str, Any]) -> WeatherSnapshot:
    return _parse(WeatherModel, payload).to_snapshot()


def parse_style_profile(payload: Dict[str, Any]) -> StyleProfileModel:
    return _parse(StyleProfileModel, payload)


__all__ = [
    "WeatherModel",
    "OutfitRequestModel",
    "StyleProfileModel",
    "SuggestionRequestModel",
    "VariationChoiceModel",
    "validation_errors",
    "parse_outfit_request",
    "parse_variation_choice",
    "parse_weather",
    "parse_style_profile",
]

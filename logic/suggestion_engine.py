"""Rule-based outfit suggestions from weather, season, time of day and style archetypes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from logic.weather_context import layering_for, season_for_month, time_of_day_for_hour, weather_factors
from models.garment import OutfitSuggestion, WeatherSnapshot
from models.taxonomy import SEASON_FACTORS, TIME_OF_DAY_FACTORS

MAX_SUGGESTIONS = 3
MAX_PRIMARY_PIECES = 6
BASE_STYLE_MATCH = 70


@dataclass
class StyleProfile:
    archetypes: List[str] = field(default_factory=list)
    favorite_colors: List[str] = field(default_factory=list)
    preferred_styles: List[str] = field(default_factory=list)


@dataclass
class _Outfit:
    name: str
    description: str
    pieces: List[str]
    colors: List[str]
    style: str
    occasion: str
    temperature_range: tuple


SEASONAL_VARIATIONS: Dict[str, Dict[str, Any]] = {
    "spring": {
        "name": "Spring Fresh",
        "pieces": ["Floral top", "Light cardigan", "Ankle pants", "Low heels"],
        "style": "Fresh and feminine",
    },
    "summer": {
        "name": "Summer Vibes",
        "pieces": ["Sundress", "Denim jacket", "Wedge sandals", "Sun hat"],
        "style": "Breezy and fun",
    },
    "fall": {
        "name": "Autumn Layers",
        "pieces": ["Plaid shirt", "Vest", "Dark jeans", "Ankle boots"],
        "style": "Layered and cozy",
    },
    "winter": {
        "name": "Winter Chic",
        "pieces": ["Turtleneck", "Wool coat", "Scarf", "Knee-high boots"],
        "style": "Sophisticated and warm",
    },
}

ARCHETYPE_OUTFITS: Dict[str, _Outfit] = {
    "minimalist": _Outfit(
        name="Clean Minimal",
        description="Simple, elegant, timeless",
        pieces=["White button-down", "Black trousers", "White sneakers"],
        colors=["White", "Black", "Gray"],
        style="Minimalist",
        occasion="Professional casual",
        temperature_range=(60, 80),
    ),
    "edgy": _Outfit(
        name="Urban Edge",
        description="Bold and confident street style",
        pieces=["Leather jacket", "Black jeans", "Combat boots", "Graphic tee"],
        colors=["Black", "Dark gray", "Red"],
        style="Edgy",
        occasion="Night out",
        temperature_range=(50, 70),
    ),
    "romantic": _Outfit(
        name="Soft Romance",
        description="Feminine and dreamy",
        pieces=["Floral dress", "Cardigan", "Ballet flats", "Delicate jewelry"],
        colors=["Pink", "Cream", "Soft blue"],
        style="Romantic",
        occasion="Date night",
        temperature_range=(65, 80),
    ),
}


def _primary_outfit(weather: WeatherSnapshot, season: str, time_of_day: str) -> _Outfit:
    temp = weather.temperature
    time_factors = TIME_OF_DAY_FACTORS[time_of_day]
    layers = layering_for(season, temp)

    if temp > 80:
        pieces = ["Lightweight top", "Breathable shorts/skirt", "Comfortable sandals"]
        name = f"{season} {time_factors['energy']} Look"
        description = f"Perfect for hot {season} {time_of_day}, staying cool and stylish"
    elif temp > 65:
        pieces = ["Cotton shirt", "Comfortable pants", "Versatile shoes"]
        if layers == "medium":
            pieces.append("Light jacket")
        name = f"{season} {time_factors['style']}"
        description = f"Ideal for mild {season} weather during {time_of_day}"
    elif temp > 45:
        pieces = ["Warm sweater", "Jeans/warm pants", "Boots"]
        if layers == "heavy":
            pieces.append("Warm coat")
        name = f"Cozy {season} Layers"
        description = f"Warm and comfortable for cool {season} {time_of_day}"
    else:
        pieces = ["Thermal layer", "Wool sweater", "Insulated jacket", "Warm pants", "Winter boots"]
        name = f"{season} Warmth"
        description = f"Essential warmth for cold {season} conditions"

    factors = weather_factors(weather)
    pieces = pieces + factors["protection"] + factors["accessories"]
    return _Outfit(
        name=name,
        description=description,
        pieces=pieces[:MAX_PRIMARY_PIECES],
        colors=list(SEASON_FACTORS[season]["colors"][:3]),
        style=time_factors["style"],
        occasion=time_factors["occasion"],
        temperature_range=(temp - 10, temp + 10),
    )


def _seasonal_variation(weather: WeatherSnapshot, season: str, time_of_day: str) -> _Outfit:
    variation = SEASONAL_VARIATIONS.get(season, SEASONAL_VARIATIONS["spring"])
    return _Outfit(
        name=variation["name"],
        description=f"Seasonal {season} style perfect for {time_of_day}",
        pieces=list(variation["pieces"]),
        colors=list(SEASON_FACTORS[season]["colors"][1:4]),
        style=variation["style"],
        occasion="Social gathering" if time_of_day == "evening" else "Daily activities",
        temperature_range=(weather.temperature - 8, weather.temperature + 8),
    )


def _temperature_band_outfit(weather: WeatherSnapshot) -> _Outfit:
    if weather.temperature > 75:
        return _Outfit(
            name="Summer Breeze",
            description="Light and breathable for hot weather",
            pieces=["Linen shirt", "Cotton shorts", "Canvas sneakers", "Sun hat"],
            colors=["White", "Light blue", "Beige"],
            style="Casual",
            occasion="Daily wear",
            temperature_range=(75, 100),
        )
    if weather.temperature > 60:
        return _Outfit(
            name="Perfect Balance",
            description="Comfortable layers for mild weather",
            pieces=["Cotton t-shirt", "Light cardigan", "Jeans", "Sneakers"],
            colors=["Navy", "Gray", "White"],
            style="Smart casual",
            occasion="Everyday",
            temperature_range=(60, 75),
        )
    return _Outfit(
        name="Cozy Layers",
        description="Warm and stylish for cooler weather",
        pieces=["Wool sweater", "Dark jeans", "Ankle boots", "Scarf"],
        colors=["Burgundy", "Black", "Cream"],
        style="Cozy chic",
        occasion="Cool weather outings",
        temperature_range=(30, 60),
    )


def is_weather_appropriate(temperature_range: Sequence[float], weather: WeatherSnapshot) -> bool:
    low, high = temperature_range
    return low <= weather.temperature <= high


def style_match(style: str, colors: Sequence[str], profile: StyleProfile) -> int:
    """70 base, +20 archetype, +5 per favourite colour, +10 preferred style, capped at 100."""

    score = BASE_STYLE_MATCH
    lowered_style = style.lower()
    if any(archetype.lower() in lowered_style for archetype in profile.archetypes):
        score += 20
    favorites = [color.lower() for color in profile.favorite_colors]
    score += 5 * sum(1 for color in colors if any(color.lower() in fav for fav in favorites))
    if any(preferred.lower() in lowered_style for preferred in profile.preferred_styles):
        score += 10
    return min(score, 100)


class SuggestionEngine:
    """Builds up to three outfit suggestions in a stable order.

    Order is primary outfit, archetype outfits, seasonal variation, then the
    temperature-band outfit, so a profile's archetypes are not crowded out.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, limit: int = MAX_SUGGESTIONS) -> None:
        self.clock = clock or datetime.now
        self.limit = limit

    def suggest(
        self,
        weather: WeatherSnapshot,
        profile: StyleProfile | None = None,
        season: str | None = None,
        time_of_day: str | None = None,
    ) -> List[OutfitSuggestion]:
        profile = profile or StyleProfile()
        now = self.clock()
        season = season or season_for_month(now.month)
        time_of_day = time_of_day or time_of_day_for_hour(now.hour)

        outfits = [_primary_outfit(weather, season, time_of_day)]
        wanted = {archetype.lower() for archetype in profile.archetypes}
        outfits.extend(outfit for key, outfit in ARCHETYPE_OUTFITS.items() if key in wanted)
        outfits.append(_seasonal_variation(weather, season, time_of_day))
        outfits.append(_temperature_band_outfit(weather))

        return [
            OutfitSuggestion(
                suggestion_id=index,
                name=outfit.name,
                description=outfit.description,
                pieces=list(outfit.pieces),
                colors=list(outfit.colors),
                style=outfit.style,
                occasion=outfit.occasion,
                temperature_range=tuple(outfit.temperature_range),
                weather_appropriate=is_weather_appropriate(outfit.temperature_range, weather),
                style_match=style_match(outfit.style, outfit.colors, profile),
            )
            for index, outfit in enumerate(outfits[: self.limit], start=1)
        ]


__all__ = [
    "StyleProfile",
    "SuggestionEngine",
    "SEASONAL_VARIATIONS",
    "ARCHETYPE_OUTFITS",
    "is_weather_appropriate",
    "style_match",
]

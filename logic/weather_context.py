"""Deterministic weather, season and time-of-day context for garment prompts."""

from __future__ import annotations

from typing import Dict, List, Optional

from models.garment import OutfitRequest, WeatherSnapshot
from models.taxonomy import SEASON_FACTORS, TIME_OF_DAY_FACTORS


def season_for_month(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"


def time_of_day_for_hour(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def layering_for(season: str, temperature: float) -> str:
    if season == "spring":
        return "light" if temperature > 65 else "medium"
    if season == "summer":
        return "minimal"
    if season == "fall":
        return "medium" if temperature > 60 else "heavy"
    return "heavy"


def fabric_weight_term(temperature: float) -> str:
    if temperature > 80:
        return "lightweight breathable fabric"
    if temperature > 65:
        return "mid-weight fabric"
    if temperature > 45:
        return "warm layering fabric"
    return "insulated cold-weather fabric"


def weather_factors(weather: WeatherSnapshot) -> Dict[str, List[str]]:
    """Protection, accessories and fabric considerations implied by the weather."""

    factors: Dict[str, List[str]] = {"protection": [], "accessories": [], "considerations": []}
    condition = weather.condition.lower()

    if condition in {"rain", "rainy", "storm", "stormy"}:
        factors["protection"].extend(["Waterproof jacket", "Umbrella"])
        factors["accessories"].extend(["Rain boots", "Water-resistant bag"])
        factors["considerations"].extend(["Quick-dry fabrics", "Covered footwear"])

    if condition in {"sunny", "clear"} and weather.temperature > 70:
        factors["protection"].extend(["Sun hat", "Sunglasses"])
        factors["accessories"].append("UV-protective clothing")
        factors["considerations"].extend(["Light colors", "Breathable fabrics"])

    if weather.wind_speed > 10:
        factors["considerations"].extend(["Secure accessories", "Layered clothing", "Wind-resistant materials"])

    if weather.humidity > 70:
        factors["considerations"].extend(["Moisture-wicking fabrics", "Loose fit", "Natural materials"])

    return factors


def context_terms(request: OutfitRequest) -> List[str]:
    """Prompt modifiers for whichever of weather, season and time of day were supplied."""

    terms: List[str] = []
    season: Optional[str] = request.season
    if season:
        fabrics = SEASON_FACTORS[season]["fabrics"][:2]
        terms.append(f"{season} collection")
        terms.append(f"{' or '.join(fabric.lower() for fabric in fabrics)} fabric")

    weather = request.weather
    if weather is not None:
        terms.append(fabric_weight_term(weather.temperature))
        if season:
            terms.append(f"{layering_for(season, weather.temperature)} layering")
        for consideration in weather_factors(weather)["considerations"][:3]:
            terms.append(consideration.lower())

    if request.time_of_day:
        terms.append(TIME_OF_DAY_FACTORS[request.time_of_day]["lighting"])

    deduped: List[str] = []
    for term in terms:
        if term not in deduped:
            deduped.append(term)
    return deduped


__all__ = [
    "season_for_month",
    "time_of_day_for_hour",
    "layering_for",
    "fabric_weight_term",
    "weather_factors",
    "context_terms",
]

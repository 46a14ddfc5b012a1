from datetime import datetime

from logic.suggestion_engine import StyleProfile, SuggestionEngine, is_weather_appropriate, style_match
from models.garment import WeatherSnapshot

WINTER_EVENING = datetime(2024, 1, 15, 19)


def _engine() -> SuggestionEngine:
    return SuggestionEngine(clock=lambda: WINTER_EVENING)


def test_cold_evening_defaults_to_winter_context() -> None:
    suggestions = _engine().suggest(WeatherSnapshot(temperature=30))

    primary = suggestions[0]
    assert primary.suggestion_id == 1
    assert primary.name == "winter Warmth"
    assert primary.temperature_range == (20, 40)
    assert primary.weather_appropriate
    assert primary.style == "Sophisticated and stylish"
    assert [s.name for s in suggestions] == ["winter Warmth", "Winter Chic", "Cozy Layers"]


def test_archetype_outfits_come_before_seasonal_ideas() -> None:
    profile = StyleProfile(archetypes=["Edgy"], favorite_colors=["black"])
    suggestions = _engine().suggest(WeatherSnapshot(temperature=30), profile)

    assert [s.name for s in suggestions] == ["winter Warmth", "Urban Edge", "Winter Chic"]
    edge = suggestions[1]
    assert edge.style_match == 95
    assert not edge.weather_appropriate
    assert [s.suggestion_id for s in suggestions] == [1, 2, 3]


def test_rain_adds_protection_to_primary_outfit() -> None:
    suggestions = _engine().suggest(
        WeatherSnapshot(temperature=70, condition="rain"), season="spring", time_of_day="morning"
    )

    primary = suggestions[0]
    assert primary.name == "spring Fresh and energetic"
    assert primary.pieces == [
        "Cotton shirt",
        "Comfortable pants",
        "Versatile shoes",
        "Waterproof jacket",
        "Umbrella",
        "Rain boots",
    ]
    assert suggestions[1].name == "Spring Fresh"
    assert suggestions[2].name == "Perfect Balance"


def test_hot_weather_gets_summer_breeze() -> None:
    suggestions = _engine().suggest(WeatherSnapshot(temperature=90), season="summer", time_of_day="afternoon")

    assert suggestions[0].name == "summer relaxed Look"
    assert suggestions[-1].name == "Summer Breeze"
    assert suggestions[-1].weather_appropriate


def test_style_match_scoring_caps_at_100() -> None:
    profile = StyleProfile(
        archetypes=["minimal"], favorite_colors=["white", "black", "gray"], preferred_styles=["minimalist"]
    )
    assert style_match("Minimalist", ["White", "Black", "Gray"], profile) == 100
    assert style_match("Casual", ["Red"], StyleProfile()) == 70


def test_weather_appropriate_is_inclusive() -> None:
    weather = WeatherSnapshot(temperature=60)
    assert is_weather_appropriate((60, 75), weather)
    assert is_weather_appropriate((30, 60), weather)
    assert not is_weather_appropriate((61, 75), weather)

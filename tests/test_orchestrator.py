"""Orchestrator-level features: sessions, cached suggestions, variations and preferences."""

import pytest

from fakes import ScriptedImageProvider, build_orchestrator
from logic.prompt_composer import VARIATION_LABELS
from models.errors import RateLimited, UnknownSessionError, ValidationError
from models.garment import WeatherSnapshot


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_unknown_and_ended_sessions_raise() -> None:
    orchestrator = build_orchestrator()
    with pytest.raises(UnknownSessionError):
        orchestrator.get_session("missing")

    session = orchestrator.start_session()
    orchestrator.end_session(session.session_id)
    with pytest.raises(UnknownSessionError):
        orchestrator.submit(session.session_id, "red silk blouse")


def test_suggestions_are_cached_by_weather_signature() -> None:
    clock = FakeClock()
    orchestrator = build_orchestrator(clock=clock)
    calls = []
    original = orchestrator.suggestion_engine.suggest

    def counting(*args, **kwargs):
        calls.append(1)
        return original(*args, **kwargs)

    orchestrator.suggestion_engine.suggest = counting

    first = orchestrator.suggest_outfits({"temperature": 72, "condition": "Sunny"}, {"archetypes": ["edgy"]}, "summer")
    second = orchestrator.suggest_outfits(WeatherSnapshot(temperature=74, condition="sunny"), {"archetypes": ["EDGY"]})
    assert calls == [1]
    assert [s.name for s in first] == [s.name for s in second]

    clock.now += 1801
    orchestrator.suggest_outfits(WeatherSnapshot(temperature=74, condition="sunny"), {"archetypes": ["edgy"]})
    assert calls == [1, 1]


def test_suggestions_reject_invalid_weather() -> None:
    orchestrator = build_orchestrator()
    with pytest.raises(ValidationError):
        orchestrator.suggest_outfits({"temperature": 500})
    with pytest.raises(ValidationError):
        orchestrator.suggest_outfits({"temperature": 70}, {"archetypes": "edgy"})


def test_variations_use_distinct_seeds_and_report_failures_per_item() -> None:
    images = ScriptedImageProvider(errors=[RateLimited()])
    orchestrator = build_orchestrator(image_provider=images, image_attempts=1)

    results = orchestrator.generate_variations({"description": "red silk blouse", "style": "formal"})

    assert [r["variation"] for r in results] == VARIATION_LABELS[:3]
    assert len({r["seed"] for r in results}) == 3
    assert results[0]["error"] == RateLimited().user_message
    assert results[0]["image_url"] is None
    assert results[1]["image_url"] == images.image_ref
    assert results[1]["validation"]["is_valid"]
    assert " --neg " in results[1]["prompt"]


def test_variations_validate_the_request() -> None:
    orchestrator = build_orchestrator()
    with pytest.raises(ValidationError):
        orchestrator.generate_variations({"description": ""})
    with pytest.raises(ValidationError):
        orchestrator.generate_variations({"description": "red top", "style": "gothic"})


def test_choices_feed_the_preference_variation() -> None:
    orchestrator = build_orchestrator()
    chosen = orchestrator.generate_variations(
        {"description": "red silk blouse", "style": "formal"}, labels=["minimalist"]
    )[0]

    orchestrator.record_variation_choice("Minimalist", chosen["prompt"], "formal", user_id="u1")
    prefs = orchestrator.preferences("u1")

    assert prefs["favorite_variation"] == "minimalist"
    assert dict(prefs["preferred_terms"])["minimal"] == 1.3
    assert orchestrator.preferences("u2")["favorite_variation"] is None

    prompts = orchestrator.generate_variations(
        {"description": "red silk blouse", "style": "formal"}, labels=["preference"], user_id="u1"
    )
    assert "(minimal:1.3)" in prompts[0]["prompt"]
    assert "(clean:1.2)" in prompts[0]["prompt"]


def test_session_user_owns_choices_made_in_that_session() -> None:
    orchestrator = build_orchestrator()
    session = orchestrator.start_session(user_id="ana")
    chosen = orchestrator.generate_variations(
        {"description": "red silk blouse", "style": "formal"}, labels=["minimalist"], session_id=session.session_id
    )[0]

    orchestrator.record_variation_choice("minimalist", chosen["prompt"], "formal", session_id=session.session_id)

    assert orchestrator.session_user(session.session_id) == "ana"
    assert orchestrator.preferences("ana")["favorite_variation"] == "minimalist"
    assert orchestrator.preferences("default")["favorite_variation"] is None

    orchestrator.end_session(session.session_id)
    with pytest.raises(UnknownSessionError):
        orchestrator.session_user(session.session_id)


def test_variation_choice_requires_all_fields() -> None:
    orchestrator = build_orchestrator()
    with pytest.raises(ValidationError):
        orchestrator.record_variation_choice("minimalist", "", "formal")


def test_avatar_endpoints_report_budget_status() -> None:
    orchestrator = build_orchestrator()

    status = orchestrator.register_avatar("a1", "https://avatars.example.test/a1.png")

    assert status["changes_applied"] == 0
    assert status["message"] == "5 changes remaining before a reset is recommended."
    assert orchestrator.reset_avatar("a1")["image_url"] == "https://avatars.example.test/a1.png"

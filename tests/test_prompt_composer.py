"""Prompt composition, seeds and the ``--neg`` wire format."""

import pytest

from logic.prompt_composer import (
    GARMENT_ONLY_TERMS,
    VARIATION_LABELS,
    PromptComposer,
    base_seed,
    extract_colors,
    extract_pieces,
    java_string_hash,
    parse_weighted_terms,
    variation_seed,
)
from models.garment import SEED_MODULUS, GarmentPrompt, OutfitRequest, PreferenceProfile, WeatherSnapshot, split_negative


def test_java_string_hash_matches_reference_values() -> None:
    assert java_string_hash("") == 0
    assert java_string_hash("hello") == 99162322
    assert java_string_hash("Aa") == java_string_hash("BB") == 2112
    assert java_string_hash("polygenelubricants") == -(2**31)


def test_base_seed_is_non_negative_and_bounded() -> None:
    seed = base_seed("formal", ["Blouse"], ["Red"])
    assert 0 <= seed < SEED_MODULUS
    assert seed == abs(java_string_hash("formal-Blouse-Red")) % SEED_MODULUS


def test_seed_depends_only_on_style_pieces_and_colors() -> None:
    composer = PromptComposer()
    first = composer.compose(OutfitRequest("red silk blouse", style="formal"))
    reworded = composer.compose(OutfitRequest("a blouse, red please", style="formal"))
    other_color = composer.compose(OutfitRequest("blue silk blouse", style="formal"))
    other_style = composer.compose(OutfitRequest("red silk blouse", style="casual"))

    assert first.seed == reworded.seed
    assert first.seed != other_color.seed
    assert first.seed != other_style.seed
    assert composer.compose(OutfitRequest("red silk blouse", style="formal")).seed == first.seed


def test_variation_seed_formula_wraps_modulus() -> None:
    assert variation_seed(0, "minimalist") == 1079000
    assert variation_seed(SEED_MODULUS - 1, "a") == 96999


def test_keyword_extraction_limits_and_fallbacks() -> None:
    assert extract_pieces("shirt, jeans, boots, hat, scarf, belt and bag") == ["Shirt", "Jeans", "Boots", "Hat", "Scarf"]
    assert extract_colors("red, blue, green and black") == ["Black", "Blue", "Red"]
    assert extract_pieces("something nice") == ["Stylish top", "Coordinated bottom", "Matching accessories"]
    assert extract_colors("something nice") == ["Black", "White", "Navy"]


def test_composed_prompt_is_garment_only_and_keeps_user_text() -> None:
    prompt = PromptComposer().compose(OutfitRequest("red silk blouse", style="formal"))

    assert prompt.main_prompt.startswith("red silk blouse, Blouse in Red colors, formal style")
    for term in GARMENT_ONLY_TERMS:
        assert term in prompt.main_prompt
    assert "(formal style:1.2)" in prompt.main_prompt
    assert prompt.subject == "red silk blouse, formal style"
    assert prompt.negative_prompt
    assert prompt.steps == 40 and prompt.guidance_scale == 9.0


def test_context_terms_follow_weather_season_and_time_of_day() -> None:
    request = OutfitRequest(
        "wool coat",
        style="minimalist",
        weather=WeatherSnapshot(temperature=30, condition="snow", wind_speed=15),
        time_of_day="evening",
        season="winter",
    )
    text = PromptComposer().compose(request).main_prompt

    assert "winter collection" in text
    assert "insulated cold-weather fabric" in text
    assert "heavy layering" in text
    assert "wind-resistant materials" in text
    assert "warm evening light" in text


def test_wire_format_splits_on_first_delimiter_only() -> None:
    prompt = GarmentPrompt(main_prompt="linen shirt", negative_prompt="blurry", seed=7)
    wire = prompt.to_wire()
    assert wire == "linen shirt --neg blurry"
    assert GarmentPrompt.from_wire(wire, seed=7) == GarmentPrompt("linen shirt", "blurry", 7)

    assert split_negative("a --neg b --neg c") == ("a", "b --neg c")
    assert split_negative("no negatives here") == ("no negatives here", "")


def test_seed_outside_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        GarmentPrompt(main_prompt="x", negative_prompt="", seed=SEED_MODULUS)


def test_variations_have_distinct_seeds_and_parameters() -> None:
    composer = PromptComposer()
    request = OutfitRequest("navy wool coat", style="vintage")
    prompts = composer.compose_variations(request)

    assert [prompt.variation for prompt in prompts] == VARIATION_LABELS
    base = composer.seed_for(request)
    assert [prompt.seed for prompt in prompts] == [variation_seed(base, label) for label in VARIATION_LABELS]
    assert len({prompt.seed for prompt in prompts}) == len(prompts)
    assert {prompt.steps for prompt in prompts} == {35, 40, 42, 45}
    assert composer.compose(request).seed == base


def test_preference_variation_multiplies_learned_weights() -> None:
    profile = PreferenceProfile(preferred_term_weights={"photorealistic": 1.5})
    prompt = PromptComposer().compose(OutfitRequest("black dress", style="formal"), profile, "preference")
    weights = dict(prompt.weighted_terms)

    assert weights["photorealistic"] == 1.8
    assert weights["high quality"] == 1.43
    assert weights["detailed"] == 1.1
    assert "(photorealistic:1.8)" in prompt.main_prompt


def test_preference_weights_are_clamped() -> None:
    profile = PreferenceProfile(preferred_term_weights={"high quality": 2.0, "velvet": 0.1})
    weights = dict(PromptComposer().compose(OutfitRequest("red top"), profile, "preference").weighted_terms)

    assert weights["high quality"] == 2.0
    assert weights["velvet"] == 0.5


def test_parse_weighted_terms() -> None:
    assert parse_weighted_terms("a, (clean lines:1.2), b, (bold:2)") == [("clean lines", 1.2), ("bold", 2.0)]
    assert parse_weighted_terms("") == []

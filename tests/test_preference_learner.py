"""Preference learning from explicit variation picks."""

from pathlib import Path

from agents.preference_learner import PreferenceLearner
from memory.preference_store import JSONPreferenceStore

FIRST = "red top, (clean lines:1.2), minimal look --neg (blurry:1.5)"
SECOND = "blue top, (clean lines:1.6), minimal look"


def test_weighted_terms_average_over_selections() -> None:
    learner = PreferenceLearner(clock=lambda: 1.0)

    learner.record_selection("minimalist", FIRST, "minimalist")
    profile = learner.record_selection("minimalist", SECOND, "minimalist")

    assert profile.preferred_term_weights["clean lines"] == 1.4
    assert "blurry" not in profile.preferred_term_weights


def test_plain_terms_are_promoted_after_two_appearances() -> None:
    learner = PreferenceLearner()

    profile = learner.record_selection("minimalist", FIRST, "minimalist")
    assert "minimal look" not in profile.preferred_term_weights

    profile = learner.record_selection("artistic", SECOND, "minimalist")
    assert profile.preferred_term_weights["minimal look"] == 1.1
    assert "blue top" not in profile.preferred_term_weights


def test_learned_weights_are_clamped() -> None:
    learner = PreferenceLearner()

    profile = learner.record_selection("artistic", "coat, (bold:3.0), (soft:0.1)", "edgy")

    assert profile.preferred_term_weights["bold"] == 2.0
    assert profile.preferred_term_weights["soft"] == 0.5


def test_selection_history_is_capped_but_counts_keep_growing() -> None:
    learner = PreferenceLearner(max_selections=3)

    for index in range(5):
        profile = learner.record_selection("Commercial", f"prompt {index}", "casual")

    assert len(profile.selections) == 3
    assert profile.selections[0].prompt_used == "prompt 2"
    assert profile.variation_preference_counts == {"commercial": 5}


def test_favorite_variation_and_preferred_terms() -> None:
    learner = PreferenceLearner()
    assert learner.favorite_variation() is None

    learner.record_selection("minimalist", FIRST, "minimalist")
    learner.record_selection("artistic", SECOND, "minimalist")
    assert learner.favorite_variation() == "artistic"

    learner.record_selection("minimalist", SECOND, "minimalist")
    assert learner.favorite_variation() == "minimalist"
    assert learner.preferred_terms()[0][0] == "clean lines"


def test_profiles_are_per_user_and_persisted(tmp_path: Path) -> None:
    learner = PreferenceLearner(JSONPreferenceStore(str(tmp_path)))
    learner.record_selection("artistic", FIRST, "edgy", user_id="ana@example.com")

    reloaded = PreferenceLearner(JSONPreferenceStore(str(tmp_path)))

    assert reloaded.profile("ana@example.com").variation_preference_counts == {"artistic": 1}
    assert reloaded.profile("someone-else").selections == []
    assert [path.name.split("-")[0] for path in tmp_path.glob("*.json")] == ["ana_example_com"]


def test_similar_user_ids_do_not_share_a_file(tmp_path: Path) -> None:
    store = JSONPreferenceStore(str(tmp_path))
    learner = PreferenceLearner(store)
    learner.record_selection("artistic", FIRST, "edgy", user_id="ana.b")

    assert learner.profile("ana_b").selections == []
    assert PreferenceLearner(store).profile("ana.b").variation_preference_counts == {"artistic": 1}
    assert len(list(tmp_path.glob("*.json"))) == 1

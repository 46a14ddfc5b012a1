import threading

from memory.suggestion_cache import SuggestionCache, signature, temperature_bucket
from models.garment import OutfitSuggestion


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _suggestion(name: str = "Cozy Layers") -> OutfitSuggestion:
    return OutfitSuggestion(
        suggestion_id=1,
        name=name,
        description="Warm",
        pieces=["Wool sweater"],
        colors=["Black"],
        style="Cozy chic",
        occasion="Everyday",
        temperature_range=(30, 60),
    )


def test_temperature_bucket_floors_to_five_degrees() -> None:
    assert temperature_bucket(72.9) == 70
    assert temperature_bucket(75) == 75
    assert temperature_bucket(-3) == -5


def test_signature_ignores_archetype_order_and_case() -> None:
    assert signature(72, "Sunny", ["Edgy", "minimalist"]) == signature(71, "sunny ", ["Minimalist", "edgy"])
    assert signature(72, "sunny", ["edgy"]) != signature(76, "sunny", ["edgy"])
    assert signature(72, "sunny", ["edgy"]) != signature(72, "rain", ["edgy"])


def test_entries_expire_at_the_ttl() -> None:
    clock = FakeClock()
    cache = SuggestionCache(ttl_seconds=1800, clock=clock)
    cache.store("key", [_suggestion()])

    clock.now += 1799
    assert cache.lookup("key")[0].name == "Cozy Layers"

    clock.now += 1
    assert cache.lookup("key") is None
    assert len(cache) == 0


def test_get_or_compute_recomputes_at_the_ttl() -> None:
    clock = FakeClock()
    cache = SuggestionCache(ttl_seconds=1800, clock=clock)
    calls = []

    def compute():
        calls.append(1)
        return [_suggestion()]

    cache.get_or_compute("key", compute)
    clock.now += 1800
    cache.get_or_compute("key", compute)

    assert calls == [1, 1]


def test_get_or_compute_runs_once_per_key() -> None:
    cache = SuggestionCache(clock=FakeClock())
    calls = []

    def compute():
        calls.append(1)
        return [_suggestion()]

    first = cache.get_or_compute("key", compute)
    second = cache.get_or_compute("key", compute)

    assert calls == [1]
    assert first[0].name == second[0].name


def test_concurrent_misses_share_one_computation() -> None:
    cache = SuggestionCache()
    calls = []
    gate = threading.Event()

    def compute():
        calls.append(1)
        gate.wait(timeout=1)
        return [_suggestion()]

    threads = [threading.Thread(target=cache.get_or_compute, args=("key", compute)) for _ in range(4)]
    for thread in threads:
        thread.start()
    gate.set()
    for thread in threads:
        thread.join()

    assert calls == [1]


def test_clear_drops_everything() -> None:
    cache = SuggestionCache()
    cache.store("a", [_suggestion()])
    cache.store("b", [_suggestion("Perfect Balance")])

    cache.clear()

    assert len(cache) == 0

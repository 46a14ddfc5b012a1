"""Rule-based garment prompt composition with deterministic seeds.

A request is reduced to garment pieces, colours and a style tag. Those three
attributes alone determine the seed, so the same outfit reproduces the same
generation regardless of how the user phrased it. Each variation layers a
distinct term set and its own derived seed on top of the same garment-only
base prompt.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from logic.weather_context import context_terms
from models.garment import SEED_MODULUS, GarmentPrompt, OutfitRequest, PreferenceProfile
from models.taxonomy import (
    COLOR_KEYWORDS,
    FALLBACK_COLORS,
    FALLBACK_PIECES,
    GARMENT_PIECES,
    MAX_COLORS,
    MAX_PIECES,
    STYLE_MODIFIERS,
    STYLE_WEIGHTED_TERMS,
    find_keywords,
)

WEIGHTED_TERM_PATTERN = re.compile(r"\(([^:()]+):(\d+(?:\.\d+)?)\)")

# Downstream try-on only accepts garment-only reference images.
GARMENT_ONLY_TERMS = [
    "photorealistic",
    "product photography",
    "isolated garment",
    "clean white background",
    "studio lighting",
    "full garment view",
    "complete clothing item",
    "no cropping",
    "clothing only",
    "no person",
    "no model",
    "no mannequin",
    "no human",
]

QUALITY_DESCRIPTORS = [
    "8k quality",
    "ultra detailed",
    "high resolution",
    "sharp focus",
    "detailed fabric textures",
]

DEFAULT_PREFERENCE_TERMS = ["photorealistic", "high quality", "detailed"]
UNSEEN_TERM_WEIGHT = 1.1
MIN_TERM_WEIGHT = 0.5
MAX_TERM_WEIGHT = 2.0


@dataclass(frozen=True)
class VariationProfile:
    """Term set and generation parameters for one prompt variation."""

    label: str
    terms: Tuple[str, ...]
    weighted_terms: Tuple[Tuple[str, float], ...]
    negatives: Tuple[str, ...]
    steps: int
    guidance_scale: float


VARIATIONS: Dict[str, VariationProfile] = {
    "enhanced": VariationProfile(
        label="enhanced",
        terms=tuple(QUALITY_DESCRIPTORS) + (
            "fabric texture visible",
            "realistic material properties",
            "accurate color reproduction",
        ),
        weighted_terms=(
            ("high quality", 1.3),
            ("photorealistic", 1.2),
            ("detailed fabric", 1.1),
            ("professional photography", 1.1),
        ),
        negatives=(
            "blurry", "low quality", "pixelated", "distorted",
            "artificial looking", "plastic appearance", "oversaturated", "watermark",
        ),
        steps=40,
        guidance_scale=9.0,
    ),
    "minimalist": VariationProfile(
        label="minimalist",
        terms=("clean composition", "minimal background", "professional product shot", "high contrast", "simple lighting"),
        weighted_terms=(("clean", 1.2), ("minimal", 1.3), ("professional", 1.1)),
        negatives=("cluttered", "busy background", "complex", "overdone", "excessive detail"),
        steps=35,
        guidance_scale=8.5,
    ),
    "artistic": VariationProfile(
        label="artistic",
        terms=(
            "artistic photography", "creative composition", "dramatic lighting",
            "fashion editorial style", "magazine quality", "moody atmosphere", "dynamic shadows",
        ),
        weighted_terms=(("artistic", 1.3), ("creative", 1.2), ("editorial", 1.2)),
        negatives=("plain", "boring", "flat lighting", "generic"),
        steps=45,
        guidance_scale=10.0,
    ),
    "commercial": VariationProfile(
        label="commercial",
        terms=(
            "e-commerce photography", "product catalog style", "white background",
            "studio lighting", "commercial grade", "even lighting", "shadow-free",
        ),
        weighted_terms=(("product photography", 1.4), ("e-commerce", 1.3), ("catalog style", 1.2)),
        negatives=("artistic shadows", "mood lighting", "creative angles", "editorial style"),
        steps=42,
        guidance_scale=11.0,
    ),
    "preference": VariationProfile(
        label="preference",
        terms=(),
        weighted_terms=(),
        negatives=("blurry", "low quality", "distorted", "pixelated", "bad anatomy", "deformed"),
        steps=40,
        guidance_scale=9.5,
    ),
}
VARIATION_LABELS = list(VARIATIONS)


def java_string_hash(value: str) -> int:
    """32-bit signed rolling hash (``h = 31 * h + c``), stable across processes."""

    result = 0
    for char in value:
        result = (result * 31 + ord(char)) & 0xFFFFFFFF
    if result >= 2**31:
        result -= 2**32
    return result


def base_seed(style: str, pieces: Sequence[str], colors: Sequence[str]) -> int:
    seed_string = f"{style}-{'-'.join(pieces)}-{'-'.join(colors)}"
    return abs(java_string_hash(seed_string)) % SEED_MODULUS


def variation_seed(seed: int, label: str) -> int:
    variation_hash = sum(ord(char) for char in label)
    return (seed + variation_hash * 1000) % SEED_MODULUS


def format_weight(weight: float) -> str:
    return f"{round(weight, 2):g}"


def format_weighted(term: str, weight: float) -> str:
    return f"({term}:{format_weight(weight)})"


def parse_weighted_terms(text: str) -> List[Tuple[str, float]]:
    """Extract ``(term:weight)`` pairs in order of appearance."""

    return [(match.group(1).strip(), float(match.group(2))) for match in WEIGHTED_TERM_PATTERN.finditer(text or "")]


def _title(words: Iterable[str]) -> List[str]:
    return [word[:1].upper() + word[1:] for word in words]


def extract_pieces(text: str) -> List[str]:
    pieces = _title(find_keywords(text, GARMENT_PIECES))
    return pieces[:MAX_PIECES] if pieces else list(FALLBACK_PIECES)


def extract_colors(text: str) -> List[str]:
    colors = _title(find_keywords(text, COLOR_KEYWORDS))
    return colors[:MAX_COLORS] if colors else list(FALLBACK_COLORS)


def _clamp_weight(weight: float) -> float:
    return max(MIN_TERM_WEIGHT, min(MAX_TERM_WEIGHT, weight))


class PromptComposer:
    """Builds :class:`GarmentPrompt` values from an :class:`OutfitRequest`."""

    def __init__(self, extra_garment_terms: Sequence[str] | None = None) -> None:
        self.garment_terms = list(GARMENT_ONLY_TERMS) + list(extra_garment_terms or [])

    def attributes(self, request: OutfitRequest) -> Tuple[List[str], List[str]]:
        return extract_pieces(request.description), extract_colors(request.description)

    def seed_for(self, request: OutfitRequest) -> int:
        pieces, colors = self.attributes(request)
        return base_seed(request.style, pieces, colors)

    def subject(self, request: OutfitRequest) -> str:
        return f"{request.description.strip()}, {request.style} style"

    def base_prompt(self, request: OutfitRequest) -> str:
        """Garment-only base shared by every variation."""

        pieces, colors = self.attributes(request)
        lead = (
            f"{request.description.strip()}, {', '.join(pieces)} in {' and '.join(colors)} colors, "
            f"{request.style} style, {STYLE_MODIFIERS[request.style]}"
        )
        parts = [lead, *context_terms(request), *self.garment_terms]
        return ", ".join(parts)

    def compose(
        self,
        request: OutfitRequest,
        profile: PreferenceProfile | None = None,
        variation: str = "enhanced",
        label_seeded: bool | None = None,
    ) -> GarmentPrompt:
        """Compose one variation.

        The single-garment workflow uses the base seed for ``enhanced``. When
        several variations are offered side by side every one of them, including
        ``enhanced``, gets a label-derived seed so they stay visually distinct.
        """

        if variation not in VARIATIONS:
            raise ValueError(f"Unknown variation '{variation}'. Allowed: {VARIATION_LABELS}")
        variant = VARIATIONS[variation]
        seed = self.seed_for(request)
        if label_seeded is None:
            label_seeded = variation != "enhanced"
        if label_seeded:
            seed = variation_seed(seed, variation)

        weighted = self._weighted_terms(request, variant, profile)
        main_prompt = ", ".join(
            [self.base_prompt(request), *variant.terms, *(format_weighted(term, weight) for term, weight in weighted)]
        )
        return GarmentPrompt(
            main_prompt=main_prompt,
            negative_prompt=", ".join(variant.negatives),
            seed=seed,
            weighted_terms=tuple(weighted),
            subject=self.subject(request),
            variation=variation,
            steps=variant.steps,
            guidance_scale=variant.guidance_scale,
        )

    def compose_variations(
        self,
        request: OutfitRequest,
        profile: PreferenceProfile | None = None,
        labels: Sequence[str] | None = None,
    ) -> List[GarmentPrompt]:
        return [
            self.compose(request, profile, label, label_seeded=True) for label in (labels or VARIATION_LABELS)
        ]

    def _weighted_terms(
        self,
        request: OutfitRequest,
        variant: VariationProfile,
        profile: Optional[PreferenceProfile],
    ) -> List[Tuple[str, float]]:
        style_terms = [(f"{request.style} style", 1.2)]
        if variant.label == "enhanced":
            return style_terms + list(variant.weighted_terms) + list(STYLE_WEIGHTED_TERMS[request.style])
        if variant.label != "preference":
            return list(variant.weighted_terms)

        learned = profile.preferred_term_weights if profile else {}
        base = style_terms + list(VARIATIONS["enhanced"].weighted_terms)
        known = {term for term, _ in base}
        extra = [term for term in learned if term not in known] or [
            term for term in DEFAULT_PREFERENCE_TERMS if term not in known
        ]
        base += [(term, 1.0) for term in extra]
        return [
            (term, round(_clamp_weight(weight * learned.get(term, UNSEEN_TERM_WEIGHT)), 2))
            for term, weight in base
        ]


__all__ = [
    "GARMENT_ONLY_TERMS",
    "VARIATIONS",
    "VARIATION_LABELS",
    "VariationProfile",
    "PromptComposer",
    "base_seed",
    "variation_seed",
    "java_string_hash",
    "extract_pieces",
    "extract_colors",
    "format_weighted",
    "parse_weighted_terms",
]

"""Canonical vocabularies for garment prompts, styles and try-on categories.

Keyword extraction, category detection and garment validation all read from
these tables so the heuristics stay consistent with each other.
"""

import re
from typing import Dict, Iterable, List

STYLES = ["casual", "formal", "trendy", "vintage", "minimalist", "edgy"]
SEASONS = ["spring", "summer", "fall", "winter"]
TIMES_OF_DAY = ["morning", "afternoon", "evening", "night"]

GARMENT_PIECES: List[str] = [
    "shirt", "blouse", "top", "sweater", "cardigan", "jacket", "coat", "hoodie",
    "pants", "jeans", "trousers", "chinos", "skirt", "dress", "shorts", "jumpsuit",
    "shoes", "boots", "sneakers", "heels", "sandals",
    "hat", "scarf", "belt", "bag", "jewelry",
]
FALLBACK_PIECES = ["Stylish top", "Coordinated bottom", "Matching accessories"]
MAX_PIECES = 5

COLOR_KEYWORDS: List[str] = [
    "black", "white", "blue", "red", "green", "yellow", "purple", "pink",
    "gray", "grey", "brown", "beige", "navy", "khaki", "orange", "gold",
    "silver", "burgundy", "maroon", "teal", "olive", "coral", "mint",
]
FALLBACK_COLORS = ["Black", "White", "Navy"]
MAX_COLORS = 3

# Terms the validator accepts as evidence the prompt names a garment type.
GARMENT_TYPE_TERMS = ["shirt", "pants", "dress", "jacket", "top", "bottom", "outfit"]
COMPLETENESS_TERMS = ["full", "complete", "entire", "whole"]

# Checked in this order: one-piece descriptions often also contain top words.
TRYON_CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "one-pieces": ["dress", "gown", "jumpsuit", "romper", "overall", "swimsuit", "bodysuit", "playsuit"],
    "tops": [
        "shirt", "sweatshirt", "top", "blouse", "tee", "tank", "jacket", "sweater",
        "hoodie", "cardigan", "blazer", "coat", "vest", "polo",
    ],
    "bottoms": ["pants", "trouser", "jeans", "chino", "short", "skirt", "leggings", "joggers"],
}
TRYON_CATEGORIES = ["tops", "bottoms", "one-pieces", "auto"]
PROVIDER_CATEGORY_NAMES = {
    "tops": "upper_body",
    "bottoms": "lower_body",
    "one-pieces": "dress",
    "auto": "auto",
}

STYLE_MODIFIERS: Dict[str, str] = {
    "casual": "casual, comfortable, everyday wear, relaxed fit",
    "formal": "formal, elegant, professional, business attire, sophisticated",
    "trendy": "trendy, fashionable, contemporary, modern, stylish",
    "vintage": "vintage, retro, classic, timeless, traditional",
    "minimalist": "minimalist, clean lines, simple, understated, modern",
    "edgy": "edgy, bold, alternative, unique, statement piece",
}

STYLE_WEIGHTED_TERMS: Dict[str, List[tuple]] = {
    "casual": [("comfortable fit", 1.1), ("relaxed wear", 1.1), ("everyday clothing", 1.1)],
    "formal": [("tailored fit", 1.2), ("business attire", 1.2), ("sophisticated", 1.1), ("professional", 1.2)],
    "trendy": [("fashion forward", 1.2), ("contemporary design", 1.1), ("modern style", 1.2), ("latest fashion", 1.1)],
    "vintage": [("retro style", 1.2), ("classic design", 1.1), ("timeless fashion", 1.1), ("heritage inspired", 1.1)],
    "minimalist": [("clean lines", 1.2), ("simple design", 1.1), ("understated elegance", 1.1), ("minimal aesthetic", 1.2)],
    "edgy": [("bold design", 1.2), ("alternative fashion", 1.1), ("unconventional style", 1.1), ("statement pieces", 1.2)],
}

SEASON_FACTORS: Dict[str, Dict[str, List[str]]] = {
    "spring": {
        "colors": ["Pastel pink", "Light green", "Soft yellow", "Lavender", "Cream"],
        "fabrics": ["Cotton", "Light wool", "Linen blend"],
    },
    "summer": {
        "colors": ["White", "Light blue", "Coral", "Mint", "Bright yellow"],
        "fabrics": ["Linen", "Cotton", "Chiffon", "Silk"],
    },
    "fall": {
        "colors": ["Burgundy", "Mustard", "Forest green", "Brown", "Orange"],
        "fabrics": ["Wool", "Cashmere", "Flannel", "Tweed"],
    },
    "winter": {
        "colors": ["Navy", "Black", "Gray", "Deep red", "Emerald"],
        "fabrics": ["Wool", "Cashmere", "Fleece", "Down"],
    },
}

TIME_OF_DAY_FACTORS: Dict[str, Dict[str, str]] = {
    "morning": {"style": "Fresh and energetic", "occasion": "Work or casual", "lighting": "soft morning light", "energy": "active"},
    "afternoon": {"style": "Comfortable and versatile", "occasion": "Casual or business casual", "lighting": "bright daylight", "energy": "relaxed"},
    "evening": {"style": "Sophisticated and stylish", "occasion": "Dinner or social", "lighting": "warm evening light", "energy": "refined"},
    "night": {"style": "Comfortable and cozy", "occasion": "Relaxation or intimate", "lighting": "low ambient light", "energy": "calm"},
}


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace("_", "-")


def validate_style(value: str) -> str:
    """Validate and normalise a style tag.

    Raises a :class:`ValueError` if the style is not part of the canonical list.
    """

    key = _normalize_key(value)
    if key not in STYLES:
        raise ValueError(f"Unsupported style '{value}'. Allowed: {STYLES}")
    return key


def validate_tryon_category(value: str) -> str:
    key = _normalize_key(value)
    if key not in TRYON_CATEGORIES:
        raise ValueError(f"Unsupported try-on category '{value}'. Allowed: {TRYON_CATEGORIES}")
    return key


def keyword_pattern(keyword: str, allow_plural: bool = True) -> "re.Pattern[str]":
    """Word-bounded, case-insensitive pattern for a vocabulary keyword."""

    suffix = r"(?:e?s)?\b" if allow_plural else r"\b"
    return re.compile(rf"\b{re.escape(keyword)}{suffix}", re.IGNORECASE)


def find_keywords(text: str, vocabulary: Iterable[str]) -> List[str]:
    """Return vocabulary entries that occur in ``text``, in vocabulary order."""

    return [word for word in vocabulary if keyword_pattern(word).search(text or "")]


__all__ = [
    "STYLES",
    "SEASONS",
    "TIMES_OF_DAY",
    "GARMENT_PIECES",
    "FALLBACK_PIECES",
    "COLOR_KEYWORDS",
    "FALLBACK_COLORS",
    "GARMENT_TYPE_TERMS",
    "COMPLETENESS_TERMS",
    "TRYON_CATEGORY_KEYWORDS",
    "TRYON_CATEGORIES",
    "PROVIDER_CATEGORY_NAMES",
    "STYLE_MODIFIERS",
    "STYLE_WEIGHTED_TERMS",
    "SEASON_FACTORS",
    "TIME_OF_DAY_FACTORS",
    "validate_style",
    "validate_tryon_category",
    "keyword_pattern",
    "find_keywords",
]

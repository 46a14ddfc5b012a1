"""Try-on garment category classification."""

from __future__ import annotations

from typing import Protocol

from models.taxonomy import TRYON_CATEGORY_KEYWORDS, keyword_pattern


class CategoryClassifier(Protocol):
    def classify(self, text: str) -> str:
        """Return one of ``tops``, ``bottoms``, ``one-pieces`` or ``auto``."""


class KeywordCategoryClassifier:
    """Whole-word keyword lookup; one-pieces win over tops, tops over bottoms."""

    def __init__(self) -> None:
        self._patterns = {
            category: [keyword_pattern(keyword) for keyword in keywords]
            for category, keywords in TRYON_CATEGORY_KEYWORDS.items()
        }

    def classify(self, text: str) -> str:
        for category, patterns in self._patterns.items():
            if any(pattern.search(text or "") for pattern in patterns):
                return category
        return "auto"


__all__ = ["CategoryClassifier", "KeywordCategoryClassifier"]

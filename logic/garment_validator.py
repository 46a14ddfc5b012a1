"""Heuristic try-on suitability scoring for generated garment images.

The checks are intentionally cheap: they inspect the image reference and the
prompt that produced it, never the pixels. A result is always returned; the
workflow decides what to do with a low score.
"""

from __future__ import annotations

import logging
from typing import Any, List

from models.garment import GarmentAsset, ValidationResult
from models.taxonomy import COMPLETENESS_TERMS, GARMENT_TYPE_TERMS
from studio_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

INVALID_REF_PENALTY = 50
UNKNOWN_SCHEME_PENALTY = 30
NO_GARMENT_TERM_PENALTY = 15
NO_COMPLETENESS_TERM_PENALTY = 10
SMALL_IMAGE_PENALTY = 25
LARGE_IMAGE_PENALTY = 5

MIN_INLINE_KB = 100
MAX_INLINE_KB = 5000


def estimated_inline_kb(image_ref: str) -> float:
    """Decoded size estimate of a base64 ``data:`` URI in KB."""

    return len(image_ref) * 0.75 / 1024


def _recommendation_for(score: int) -> str:
    if score >= 90:
        return "Image appears optimal for virtual try-on"
    if score >= 70:
        return "Image should work for virtual try-on but may benefit from optimization"
    if score >= 50:
        return "Image quality concerns - consider regenerating with improved settings"
    return "Poor image quality detected - recommend complete regeneration"


class GarmentValidator:
    """Scores a garment image reference against the prompt that produced it."""

    def validate(self, image: GarmentAsset | Any, prompt_text: str | None = None) -> ValidationResult:
        if isinstance(image, GarmentAsset):
            image_ref: Any = image.image_ref
            text = prompt_text if prompt_text is not None else (image.prompt.subject or image.prompt.main_prompt)
        else:
            image_ref = image
            text = prompt_text or ""

        issues: List[str] = []
        recommendations: List[str] = []
        score = 100

        if not image_ref or not isinstance(image_ref, str):
            issues.append("Invalid image URL format")
            score -= INVALID_REF_PENALTY
            return self._finish(score, issues, recommendations, tiered=False)

        if not image_ref.startswith("http") and not image_ref.startswith("data:"):
            issues.append("Image URL format not recognized")
            recommendations.append("Ensure image generation produces valid URLs")
            score -= UNKNOWN_SCHEME_PENALTY

        lowered = text.lower()
        if not any(term in lowered for term in GARMENT_TYPE_TERMS):
            issues.append("Prompt may not specify clear garment types")
            recommendations.append("Include specific clothing types in prompt (shirt, pants, dress, etc.)")
            score -= NO_GARMENT_TERM_PENALTY

        if not any(term in lowered for term in COMPLETENESS_TERMS):
            issues.append("Prompt may not emphasize complete garment visibility")
            recommendations.append('Add terms like "full garment view" or "complete clothing item"')
            score -= NO_COMPLETENESS_TERM_PENALTY

        if image_ref.startswith("data:image/"):
            size_kb = estimated_inline_kb(image_ref)
            if size_kb < MIN_INLINE_KB:
                issues.append("Generated image appears too small for detailed garment analysis")
                recommendations.append("Increase image generation resolution or quality settings")
                score -= SMALL_IMAGE_PENALTY
            elif size_kb > MAX_INLINE_KB:
                issues.append("Generated image may be too large for optimal try-on processing")
                recommendations.append("Consider compressing the image for faster try-on processing")
                score -= LARGE_IMAGE_PENALTY

        return self._finish(score, issues, recommendations)

    def _finish(
        self,
        score: int,
        issues: List[str],
        recommendations: List[str],
        tiered: bool = True,
    ) -> ValidationResult:
        if tiered:
            recommendations.append(_recommendation_for(score))
        result = ValidationResult(score=max(0, min(100, score)), issues=issues, recommendations=recommendations)
        log_event(
            LOGGER,
            logging.INFO,
            "garment_validated",
            score=result.score,
            issue_count=len(result.issues),
            is_valid=result.is_valid,
        )
        return result


__all__ = ["GarmentValidator", "estimated_inline_kb"]

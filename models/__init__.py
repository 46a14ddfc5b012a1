"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.garment import GarmentPrompt, OutfitRequest, WeatherSnapshot

__all__ = ["GarmentPrompt", "OutfitRequest", "WeatherSnapshot"]

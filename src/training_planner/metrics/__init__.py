"""Physiological calculations: heart rate zones and training paces."""

from .zones import (
    HRZone,
    HRZones,
    max_heart_rate,
    heart_rate_zones,
    heart_rate_zones_from_max,
    target_heart_rate_for_workout,
)
from .paces import (
    Pace,
    TrainingPaces,
    estimated_vo2max,
    training_paces,
)

__all__ = [
    # HR Zones
    "HRZone",
    "HRZones",
    "max_heart_rate",
    "heart_rate_zones",
    "heart_rate_zones_from_max",
    "target_heart_rate_for_workout",
    # Paces
    "Pace",
    "TrainingPaces",
    "estimated_vo2max",
    "training_paces",
]

"""
Training pace calculations (Daniels' oxygen-cost model).

Paces are derived from an estimated VO2max: each named pace is run at a
fixed fraction of VO2max, and the velocity that costs that much oxygen is
found by inverting Daniels' oxygen-cost equation:

    VO2 = -4.60 + 0.182258 * v + 0.000104 * v^2   (v in m/min)

VO2max itself can be estimated from a Cooper 12-minute test distance.
"""

import math
from dataclasses import dataclass
from typing import Dict

from ..exceptions import InvalidInputError


# Fraction of VO2max sustained at each training pace.
PACE_INTENSITIES: Dict[str, float] = {
    "threshold": 0.85,
    "marathon": 0.75,
    "interval": 0.95,
    "recovery": 0.65,
}


@dataclass
class Pace:
    """A running pace in minutes and seconds per kilometer."""

    minutes: int
    seconds: int

    @property
    def total_seconds(self) -> int:
        return self.minutes * 60 + self.seconds

    @property
    def formatted(self) -> str:
        """Format as M:SS/km."""
        return f"{self.minutes}:{self.seconds:02d}/km"

    def to_dict(self) -> dict:
        return {"minutes": self.minutes, "seconds": self.seconds}


@dataclass
class TrainingPaces:
    """The four named training paces."""

    threshold: Pace
    marathon: Pace
    interval: Pace
    recovery: Pace

    def to_dict(self) -> dict:
        return {
            "threshold": self.threshold.to_dict(),
            "marathon": self.marathon.to_dict(),
            "interval": self.interval.to_dict(),
            "recovery": self.recovery.to_dict(),
        }


def estimated_vo2max(cooper_distance_m: float) -> float:
    """
    Estimate VO2max from a Cooper test (distance covered in 12 minutes).

    Args:
        cooper_distance_m: Distance in meters

    Returns:
        Estimated VO2max in ml/kg/min

    Raises:
        InvalidInputError: If the distance yields a non-positive VO2max
    """
    if cooper_distance_m is None:
        raise InvalidInputError("Cooper test distance is required", field="cooper_distance_m")
    vo2max = (cooper_distance_m - 504.9) / 44.73
    if vo2max <= 0:
        raise InvalidInputError(
            "Cooper test distance is too short to estimate VO2max",
            field="cooper_distance_m",
            value=cooper_distance_m,
        )
    return vo2max


def _vo2_to_velocity(target_vo2: float) -> float:
    """
    Solve Daniels' oxygen-cost equation for velocity.

    Args:
        target_vo2: Oxygen consumption to sustain (ml/kg/min)

    Returns:
        Velocity in meters per minute
    """
    # 0.000104 * v^2 + 0.182258 * v + (-4.60 - target_vo2) = 0
    a = 0.000104
    b = 0.182258
    c = -4.60 - target_vo2

    # Positive root
    discriminant = b ** 2 - 4 * a * c
    return (-b + math.sqrt(discriminant)) / (2 * a)


def _pace_from_velocity(velocity_m_per_min: float) -> Pace:
    # pace = 1000 / velocity * 60 = 60000 / velocity
    total = round(60000.0 / velocity_m_per_min)
    return Pace(minutes=total // 60, seconds=total % 60)


def training_paces(vo2max: float) -> TrainingPaces:
    """
    Calculate the four training paces for a VO2max.

    Args:
        vo2max: VO2max in ml/kg/min

    Returns:
        TrainingPaces rounded to whole seconds per kilometer

    Raises:
        InvalidInputError: If vo2max is not positive
    """
    if vo2max is None or vo2max <= 0:
        raise InvalidInputError("VO2max must be positive", field="vo2max", value=vo2max)

    paces = {
        name: _pace_from_velocity(_vo2_to_velocity(vo2max * fraction))
        for name, fraction in PACE_INTENSITIES.items()
    }
    return TrainingPaces(**paces)

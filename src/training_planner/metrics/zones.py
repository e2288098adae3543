"""Heart rate zone calculations."""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..exceptions import InvalidInputError


# Heart-rate-reserve fractions bounding zones 1..5.
ZONE_FRACTIONS: Tuple[float, ...] = (0.50, 0.60, 0.70, 0.80, 0.90, 1.00)

ZONE_NAMES: Tuple[str, ...] = (
    "Recovery",
    "Aerobic",
    "Tempo",
    "Threshold",
    "VO2max",
)

MIN_AGE = 10
MAX_AGE = 100


@dataclass
class HRZone:
    """A single heart rate zone."""

    number: int
    name: str
    min: int
    max: int

    @property
    def label(self) -> str:
        return f"Zone {self.number}"

    def to_dict(self) -> dict:
        return {"name": self.name, "min": self.min, "max": self.max}


@dataclass
class HRZones:
    """Five heart rate training zones, boundaries non-decreasing."""

    zones: List[HRZone] = field(default_factory=list)
    method: str = "karvonen"

    def zone(self, number: int) -> HRZone:
        """Return zone by 1-based number."""
        return self.zones[number - 1]

    @property
    def max_hr(self) -> int:
        return self.zones[-1].max

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {f"zone{z.number}": z.to_dict() for z in self.zones}

    def get_zone_ranges(self) -> List[Tuple[int, int, int, str]]:
        """Get all zones as list of (zone_num, min_hr, max_hr, name)."""
        return [(z.number, z.min, z.max, z.name) for z in self.zones]


def _build_zones(boundaries: List[int], method: str) -> HRZones:
    """
    Turn six boundary values into five contiguous zones.

    Zone n+1 starts one beat above zone n's max unless rounding has
    collapsed the range, in which case it starts at its own max.
    """
    zones: List[HRZone] = []
    for i in range(5):
        upper = boundaries[i + 1]
        if i == 0:
            lower = boundaries[0]
        else:
            lower = min(zones[-1].max + 1, upper)
        zones.append(HRZone(number=i + 1, name=ZONE_NAMES[i], min=lower, max=upper))
    return HRZones(zones=zones, method=method)


def max_heart_rate(age: int) -> int:
    """
    Estimate maximum heart rate from age using Tanaka formula.

    Tanaka formula: 208 - (0.7 * age)
    More accurate than the older 220 - age formula.

    Args:
        age: Age in years (10-100)

    Returns:
        Estimated maximum heart rate

    Raises:
        InvalidInputError: If age is outside 10-100
    """
    if age is None or not MIN_AGE <= age <= MAX_AGE:
        raise InvalidInputError(
            f"Age must be between {MIN_AGE} and {MAX_AGE} years",
            field="age",
            value=age,
        )
    return round(208 - 0.7 * age)


def heart_rate_zones(max_hr: int, resting_hr: int) -> HRZones:
    """
    Calculate HR zones using Karvonen (Heart Rate Reserve) method.

    Zone boundaries (% of HRR, added to resting HR):
    - Zone 1: 50-60% - Recovery
    - Zone 2: 60-70% - Aerobic
    - Zone 3: 70-80% - Tempo
    - Zone 4: 80-90% - Threshold
    - Zone 5: 90-100% - VO2max

    Args:
        max_hr: Maximum heart rate
        resting_hr: Resting heart rate

    Returns:
        HRZones with zone5.max == max_hr

    Raises:
        InvalidInputError: If max_hr is not above resting_hr
    """
    if max_hr is None or resting_hr is None or max_hr <= resting_hr:
        raise InvalidInputError(
            "Maximum heart rate must be greater than resting heart rate",
            field="max_hr",
            value=max_hr,
            details={"resting_hr": resting_hr},
        )

    hr_reserve = max_hr - resting_hr
    boundaries = [round(resting_hr + hr_reserve * pct) for pct in ZONE_FRACTIONS]
    boundaries[-1] = max_hr
    return _build_zones(boundaries, method="karvonen")


def heart_rate_zones_from_max(max_hr: int) -> HRZones:
    """
    Calculate HR zones based on maximum heart rate only.

    This is a simpler method when resting HR is unknown.
    Less personalized but still useful.
    """
    if max_hr is None or max_hr <= 0:
        raise InvalidInputError(
            "Maximum heart rate must be positive", field="max_hr", value=max_hr
        )
    boundaries = [round(max_hr * pct) for pct in ZONE_FRACTIONS]
    boundaries[-1] = max_hr
    return _build_zones(boundaries, method="max_hr")


# Workout type -> (lowest zone, highest zone)
WORKOUT_ZONE_SPANS: Dict[str, Tuple[int, int]] = {
    "recovery": (1, 1),
    "easy": (2, 2),
    "long": (2, 3),
    "tempo": (3, 4),
    "threshold": (3, 4),
    "intervals": (4, 5),
    "interval": (4, 5),
    "fartlek": (2, 4),
    "hills": (3, 5),
}


def _workout_key(workout_type: str) -> str:
    key = (workout_type or "").strip().lower().replace("-", "_")
    for suffix in ("_run", "_running"):
        if key.endswith(suffix):
            key = key[: -len(suffix)]
    return key


def target_heart_rate_for_workout(zones: HRZones, workout_type: str) -> Dict[str, object]:
    """
    Map a workout type to a target heart rate range.

    Args:
        zones: Calculated HR zones
        workout_type: Workout type such as "easy_run", "tempo" or "intervals"

    Returns:
        Dict with min, max and zone label. Rest days get a zero range;
        unknown types fall back to zones 2-3.
    """
    key = _workout_key(workout_type)
    if key == "rest":
        return {"min": 0, "max": 0, "zone": "Rest"}

    low, high = WORKOUT_ZONE_SPANS.get(key, (2, 3))
    label = f"Zone {low}" if low == high else f"Zone {low}-{high}"
    return {
        "min": zones.zone(low).min,
        "max": zones.zone(high).max,
        "zone": label,
    }

"""
Structural validation and repair of parsed training plans.

The repairer accepts whatever the response parser recovered and returns a
plan satisfying every structural invariant of the wire schema. It never
fails for data-quality reasons: missing or malformed fields are
synthesized from the named defaults in ``planning.defaults``. Only a
non-object input raises, because that indicates a programming error
upstream.

Synthesis depends only on position, the reference start date and the
clock, so repairing the same input twice gives the same result, and
repairing a repaired plan changes nothing.
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import InvalidPlanShapeError
from ..metrics.zones import HRZones
from ..models.profile import Weekday
from .defaults import (
    DEFAULT_AUTHOR,
    DEFAULT_DURATION_WEEKS,
    DEFAULT_PLAN_ID_PREFIX,
    DEFAULT_WORKOUT_DESCRIPTION,
    DEFAULT_WORKOUT_DISTANCE_KM,
    DEFAULT_WORKOUT_DURATION_MIN,
    DEFAULT_WORKOUT_TYPE,
    MAX_DURATION_WEEKS,
    MIN_DURATION_WEEKS,
    default_corrective_exercises,
    default_metadata,
    default_pain_monitoring,
    default_week_workouts,
    default_workout,
    heart_rate_for,
    phase_focus,
)

logger = logging.getLogger(__name__)

_METADATA_TEXT_FIELDS = ("discipline", "target_group", "target_goal", "level_hint", "description", "author")
_METADATA_INT_FIELDS = ("days_per_week", "duration_weeks")


# ============================================================================
# Coercion helpers
# ============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value: Any) -> Optional[float]:
    """Return value as a finite number, parsing numeric strings; None if impossible."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def _to_positive_int(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None or number < 1 or int(number) != number:
        return None
    return int(number)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _to_iso_date(value: Any) -> Optional[str]:
    """Normalise a date or ISO date(-time) string to YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and len(value.strip()) >= 10:
        candidate = value.strip()[:10]
        try:
            return date.fromisoformat(candidate).isoformat()
        except ValueError:
            return None
    return None


def _named_items(items: Any, extra_keys: tuple) -> List[Dict[str, Any]]:
    """Keep exercise entries that have a name; bare strings become names."""
    if not isinstance(items, list):
        return []
    result = []
    for item in items:
        if isinstance(item, str) and item.strip():
            result.append({"name": item.strip()})
        elif isinstance(item, dict) and _non_empty_str(item.get("name")):
            for key in extra_keys:
                if key in item and not (_to_number(item[key]) is not None or isinstance(item[key], str) or item[key] is None):
                    item[key] = None
            result.append(item)
    return result


class PlanRepairer:
    """
    Repairs parsed plans in place.

    Args:
        start_date: Reference date for synthesized day dates (default: today)
        clock: Callable returning the current datetime, used for ids and
            the default start date
        hr_zones: Runner's zones, used for synthesized target heart rates
        author: Author recorded in synthesized metadata
    """

    def __init__(
        self,
        start_date: Optional[date] = None,
        clock: Optional[Callable[[], datetime]] = None,
        hr_zones: Optional[HRZones] = None,
        author: str = DEFAULT_AUTHOR,
    ):
        self.clock = clock or datetime.now
        self.start_date = start_date or self.clock().date()
        self.hr_zones = hr_zones
        self.author = author
        self._fixes: List[str] = []

    def repair(self, plan: Any, expected_weeks: Optional[int] = None) -> Dict[str, Any]:
        """
        Repair a parsed plan so that it satisfies the wire schema.

        Args:
            plan: Parsed plan object (mutated in place)
            expected_weeks: Required number of weeks, if known

        Returns:
            The same dictionary, repaired

        Raises:
            InvalidPlanShapeError: If plan is not a dictionary
        """
        if not isinstance(plan, dict):
            raise InvalidPlanShapeError(received_type=type(plan).__name__)

        self._fixes = []
        expected = _to_positive_int(expected_weeks)
        if expected is not None:
            expected = min(expected, MAX_DURATION_WEEKS)

        self._repair_id(plan)
        metadata = self._repair_metadata(plan)

        weeks = plan.get("plan_weeks")
        if not isinstance(weeks, list) or not weeks:
            count = expected or metadata.get("duration_weeks") or DEFAULT_DURATION_WEEKS
            count = max(MIN_DURATION_WEEKS, min(count, MAX_DURATION_WEEKS))
            self._fix(f"plan_weeks missing, synthesized {count} weeks")
            weeks = [{} for _ in range(count)]

        if expected is not None and len(weeks) != expected:
            self._fix(f"week count {len(weeks)} reconciled to {expected}")
            if len(weeks) > expected:
                weeks = weeks[:expected]
            else:
                weeks = weeks + [{} for _ in range(expected - len(weeks))]

        total = len(weeks)
        plan["plan_weeks"] = [self._repair_week(week, i, total) for i, week in enumerate(weeks)]
        metadata["duration_weeks"] = total

        self._repair_plan_blocks(plan)

        if self._fixes:
            logger.info(f"Repaired plan {plan['id']}: {len(self._fixes)} fixes")
            for fix in self._fixes:
                logger.debug(f"  - {fix}")
        return plan

    def _fix(self, message: str) -> None:
        self._fixes.append(message)

    # ------------------------------------------------------------------
    # Plan level
    # ------------------------------------------------------------------

    def _repair_id(self, plan: Dict[str, Any]) -> None:
        plan_id = plan.get("id")
        if _non_empty_str(plan_id):
            return
        if _is_number(plan_id):
            plan["id"] = str(plan_id)
            return
        timestamp_ms = int(self.clock().timestamp() * 1000)
        plan["id"] = f"{DEFAULT_PLAN_ID_PREFIX}{timestamp_ms}"
        self._fix("id missing")

    def _repair_metadata(self, plan: Dict[str, Any]) -> Dict[str, Any]:
        defaults = default_metadata(self.author)
        metadata = plan.get("metadata")
        if not isinstance(metadata, dict):
            self._fix("metadata missing")
            plan["metadata"] = defaults
            return defaults

        for key in _METADATA_TEXT_FIELDS:
            value = metadata.get(key)
            if _non_empty_str(value):
                continue
            if value is not None and not isinstance(value, (dict, list, str)):
                metadata[key] = str(value)
            else:
                metadata[key] = defaults[key]
                self._fix(f"metadata.{key} missing")

        for key in _METADATA_INT_FIELDS:
            value = _to_positive_int(metadata.get(key))
            if value is None:
                metadata[key] = defaults[key]
                self._fix(f"metadata.{key} invalid")
            else:
                metadata[key] = min(value, MAX_DURATION_WEEKS) if key == "duration_weeks" else value
        return metadata

    def _repair_plan_blocks(self, plan: Dict[str, Any]) -> None:
        corrective = plan.get("corrective_exercises")
        if not isinstance(corrective, dict):
            plan["corrective_exercises"] = default_corrective_exercises()
        else:
            if not _non_empty_str(corrective.get("frequency")):
                corrective["frequency"] = "daily"
            corrective["list"] = _named_items(
                corrective.get("list"), ("sets", "reps", "duration", "description")
            )

        pain = plan.get("pain_monitoring")
        if not isinstance(pain, dict):
            plan["pain_monitoring"] = default_pain_monitoring()
        else:
            if not _non_empty_str(pain.get("scale")):
                pain["scale"] = default_pain_monitoring()["scale"]
            rules = pain.get("rules")
            if isinstance(rules, str):
                rules = [rules]
            if isinstance(rules, list):
                rules = [str(rule) for rule in rules if rule is not None and str(rule).strip()]
            if not isinstance(rules, list) or not rules:
                rules = default_pain_monitoring()["rules"]
            pain["rules"] = rules

        notes = plan.get("notes")
        if isinstance(notes, str):
            plan["notes"] = [notes] if notes.strip() else []
        elif isinstance(notes, list):
            plan["notes"] = [n if isinstance(n, str) else str(n) for n in notes if n is not None]
        else:
            plan["notes"] = []

    # ------------------------------------------------------------------
    # Weeks and days
    # ------------------------------------------------------------------

    def _repair_week(self, week: Any, index: int, total: int) -> Dict[str, Any]:
        if not isinstance(week, dict):
            self._fix(f"week {index + 1} invalid")
            week = {}

        # Weeks are numbered by position, 1-based and consecutive.
        week["week_num"] = index + 1

        if not _non_empty_str(week.get("focus")):
            week["focus"] = phase_focus(index, total)

        days = week.get("days")
        if not isinstance(days, list) or not days:
            self._fix(f"week {index + 1} days synthesized")
            week["days"] = [
                self._repair_day({"day_name": day.value, "workout": workout}, i, index)
                for i, (day, workout) in enumerate(default_week_workouts(self.hr_zones))
            ]
        else:
            week["days"] = [self._repair_day(day, i, index) for i, day in enumerate(days)]
        return week

    def _repair_day(self, day: Any, index: int, week_index: int) -> Dict[str, Any]:
        if not isinstance(day, dict):
            day = {}

        weekday = Weekday.parse(day.get("day_name"))
        if weekday is None:
            weekday = Weekday.from_index(index)
        day["day_name"] = weekday.value

        iso_date = _to_iso_date(day.get("date"))
        if iso_date is None:
            iso_date = self.date_for(week_index, weekday).isoformat()
        day["date"] = iso_date

        day["workout"] = self._repair_workout(day.get("workout"))
        return day

    def date_for(self, week_index: int, weekday: Weekday) -> date:
        """Date of a weekday in the given 0-based week, counted from the start date."""
        offset = (weekday.index - self.start_date.weekday()) % 7
        return self.start_date + timedelta(days=7 * week_index + offset)

    def _repair_workout(self, workout: Any) -> Dict[str, Any]:
        if isinstance(workout, str) and workout.strip():
            result = default_workout(self.hr_zones)
            result["description"] = workout.strip()
            return result
        if not isinstance(workout, dict):
            return default_workout(self.hr_zones)

        if not _non_empty_str(workout.get("type")):
            workout["type"] = DEFAULT_WORKOUT_TYPE
        if not _non_empty_str(workout.get("description")):
            workout["description"] = DEFAULT_WORKOUT_DESCRIPTION

        # Distance is nullable; only a missing key gets the default.
        if "distance" not in workout:
            workout["distance"] = DEFAULT_WORKOUT_DISTANCE_KM
        else:
            workout["distance"] = _to_number(workout["distance"])

        duration = _to_number(workout.get("duration"))
        workout["duration"] = duration if duration is not None else DEFAULT_WORKOUT_DURATION_MIN

        workout.setdefault("target_pace", None)
        workout["target_heart_rate"] = self._repair_heart_rate(
            workout.get("target_heart_rate"), workout["type"]
        )
        workout["support_exercises"] = _named_items(
            workout.get("support_exercises"), ("sets", "reps", "duration")
        )
        return workout

    def _repair_heart_rate(self, target: Any, workout_type: str) -> Dict[str, Any]:
        computed = heart_rate_for(workout_type, self.hr_zones)
        if not isinstance(target, dict):
            return computed
        for key in ("min", "max"):
            value = _to_number(target.get(key))
            target[key] = value if value is not None else computed[key]
        if not _non_empty_str(target.get("zone")):
            target["zone"] = computed["zone"]
        return target


def repair_plan(
    plan: Any,
    expected_weeks: Optional[int] = None,
    start_date: Optional[date] = None,
    clock: Optional[Callable[[], datetime]] = None,
    hr_zones: Optional[HRZones] = None,
    author: str = DEFAULT_AUTHOR,
) -> Dict[str, Any]:
    """Repair a parsed plan in place. See PlanRepairer.repair."""
    repairer = PlanRepairer(start_date=start_date, clock=clock, hr_zones=hr_zones, author=author)
    return repairer.repair(plan, expected_weeks=expected_weeks)

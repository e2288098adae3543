"""
Named defaults shared by plan synthesis, repair and duration resolution.

Every magic number the pipeline falls back on lives here so tests can
assert against the same constants the implementation uses.
"""

import copy
from typing import Any, Dict, List, Optional, Tuple

from ..metrics.zones import HRZones, target_heart_rate_for_workout
from ..models.profile import Weekday


# ============================================================================
# Plan shape
# ============================================================================

DEFAULT_DURATION_WEEKS = 8
START_RUNNING_DURATION_WEEKS = 6
MIN_DURATION_WEEKS = 1
MAX_DURATION_WEEKS = 52
DEFAULT_DAYS_PER_WEEK = 3

DEFAULT_DISCIPLINE = "running"
DEFAULT_TARGET_GROUP = "recreational runners"
DEFAULT_TARGET_GOAL = "general fitness"
DEFAULT_LEVEL_HINT = "beginner"
DEFAULT_DESCRIPTION = "Running training plan"
DEFAULT_AUTHOR = "Training Planner"

DEFAULT_PLAN_ID_PREFIX = "generated-plan-"
DEFAULT_PLAN_MARKER = "running-plan-default-"
DEFAULT_PLAN_DESCRIPTION = (
    "Default plan: a safe generic running plan used because the generated "
    "plan could not be read"
)

# Three-phase periodization, by position in the plan.
PHASE_LABELS: Tuple[str, str, str] = (
    "base-building",
    "endurance development",
    "intensification",
)

# Plan length in weeks keyed by goal or target distance. Target distance
# wins when both are known.
GOAL_DURATION_WEEKS: Dict[str, int] = {
    "start_running": START_RUNNING_DURATION_WEEKS,
    "general_fitness": 8,
    "run_5k": 8,
    "5k": 8,
    "run_10k": 10,
    "10k": 10,
    "half_marathon": 12,
    "marathon": 16,
    "ultra_marathon": 20,
    "speed_improvement": 8,
    "endurance_improvement": 10,
}


# ============================================================================
# Workouts
# ============================================================================

DEFAULT_WORKOUT_TYPE = "easy_run"
DEFAULT_WORKOUT_DESCRIPTION = "Easy run at a conversational pace"
DEFAULT_WORKOUT_DISTANCE_KM = 5.0
DEFAULT_WORKOUT_DURATION_MIN = 30
DEFAULT_ZONE2_HEART_RATE: Dict[str, Any] = {"min": 120, "max": 140, "zone": "Zone 2"}

# Mon/Wed/Fri days used when a week has none.
DEFAULT_WEEK_DAYS: List[Tuple[Weekday, Dict[str, Any]]] = [
    (
        Weekday.MONDAY,
        {
            "type": "easy_run",
            "description": DEFAULT_WORKOUT_DESCRIPTION,
            "distance": 5.0,
            "duration": 30,
        },
    ),
    (
        Weekday.WEDNESDAY,
        {
            "type": "tempo",
            "description": "Warm-up, steady tempo block at comfortably hard effort, cool-down",
            "distance": 6.0,
            "duration": 40,
        },
    ),
    (
        Weekday.FRIDAY,
        {
            "type": "long_run",
            "description": "Long run at an easy, even pace",
            "distance": 8.0,
            "duration": 50,
        },
    ),
]


# ============================================================================
# Plan-level blocks
# ============================================================================

DEFAULT_CORRECTIVE_EXERCISES: Dict[str, Any] = {"frequency": "daily", "list": []}

DEFAULT_PAIN_MONITORING: Dict[str, Any] = {
    "scale": "0-10",
    "rules": [
        "Stop the workout if pain rises above 5/10",
        "See a doctor if pain persists",
    ],
}

DEFAULT_NOTES: List[str] = []


def phase_focus(week_index: int, total_weeks: int) -> str:
    """Focus label for a 0-based week position in a plan of total_weeks."""
    total = max(total_weeks, 1)
    phase = min(len(PHASE_LABELS) - 1, (week_index * len(PHASE_LABELS)) // total)
    return PHASE_LABELS[phase]


def heart_rate_for(workout_type: str, hr_zones: Optional[HRZones] = None) -> Dict[str, Any]:
    """Target heart rate for a workout type, or the generic zone 2 range."""
    if hr_zones is None:
        return dict(DEFAULT_ZONE2_HEART_RATE)
    return target_heart_rate_for_workout(hr_zones, workout_type)


def default_workout(hr_zones: Optional[HRZones] = None) -> Dict[str, Any]:
    """Easy-run workout used for missing or invalid workouts."""
    return {
        "type": DEFAULT_WORKOUT_TYPE,
        "description": DEFAULT_WORKOUT_DESCRIPTION,
        "distance": DEFAULT_WORKOUT_DISTANCE_KM,
        "duration": DEFAULT_WORKOUT_DURATION_MIN,
        "target_pace": None,
        "target_heart_rate": heart_rate_for(DEFAULT_WORKOUT_TYPE, hr_zones),
        "support_exercises": [],
    }


def default_week_workouts(hr_zones: Optional[HRZones] = None) -> List[Tuple[Weekday, Dict[str, Any]]]:
    """Fresh copies of the three default days with heart rates filled in."""
    result = []
    for day, template in DEFAULT_WEEK_DAYS:
        workout = copy.deepcopy(template)
        workout["target_pace"] = None
        workout["target_heart_rate"] = heart_rate_for(workout["type"], hr_zones)
        workout["support_exercises"] = []
        result.append((day, workout))
    return result


def default_metadata(author: str = DEFAULT_AUTHOR) -> Dict[str, Any]:
    return {
        "discipline": DEFAULT_DISCIPLINE,
        "target_group": DEFAULT_TARGET_GROUP,
        "target_goal": DEFAULT_TARGET_GOAL,
        "level_hint": DEFAULT_LEVEL_HINT,
        "days_per_week": DEFAULT_DAYS_PER_WEEK,
        "duration_weeks": DEFAULT_DURATION_WEEKS,
        "description": DEFAULT_DESCRIPTION,
        "author": author,
    }


def default_corrective_exercises() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_CORRECTIVE_EXERCISES)


def default_pain_monitoring() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_PAIN_MONITORING)

"""Example plan skeletons shown to the model as structure-only references."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _skeleton(week_focus: str, days: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "id": "example-plan-id",
        "metadata": {
            "discipline": "running",
            "target_group": "...",
            "target_goal": "...",
            "level_hint": "...",
            "days_per_week": len(days),
            "duration_weeks": 1,
            "description": "...",
            "author": "...",
        },
        "plan_weeks": [{"week_num": 1, "focus": week_focus, "days": days}],
        "corrective_exercises": {
            "frequency": "daily",
            "list": [{"name": "...", "sets": 3, "reps": 12, "duration": None, "description": "..."}],
        },
        "pain_monitoring": {"scale": "0-10", "rules": ["..."]},
        "notes": ["..."],
    }


def _day(day_name: str, workout_type: str, distance: Optional[float], duration: int, zone: str) -> Dict[str, Any]:
    return {
        "day_name": day_name,
        "date": "YYYY-MM-DD",
        "workout": {
            "type": workout_type,
            "description": "...",
            "distance": distance,
            "duration": duration,
            "target_pace": {"minutes": 6, "seconds": 0},
            "target_heart_rate": {"min": 0, "max": 0, "zone": zone},
            "support_exercises": [{"name": "...", "sets": 2, "reps": 10, "duration": None}],
        },
    }


@dataclass
class PlanTemplate:
    """
    A structure-only example plan and the profiles it suits.

    A criterion left as None matches any value.
    """

    name: str
    skeleton: Dict[str, Any]
    level: Optional[str] = None
    goal: Optional[str] = None
    days_per_week: Optional[int] = None
    injury: Optional[bool] = None

    def matches(self, level: str, goal: str, days_per_week: int, has_injuries: bool) -> bool:
        return (
            (self.level is None or self.level == level)
            and (self.goal is None or self.goal == goal)
            and (self.days_per_week is None or self.days_per_week == days_per_week)
            and (self.injury is None or self.injury == has_injuries)
        )


GENERIC_TEMPLATE = PlanTemplate(
    name="generic",
    skeleton=_skeleton(
        "base-building",
        [
            _day("poniedziałek", "easy_run", 5.0, 30, "Zone 2"),
            _day("środa", "tempo", 6.0, 40, "Zone 3-4"),
            _day("piątek", "long_run", 8.0, 50, "Zone 2-3"),
        ],
    ),
)

BUILTIN_TEMPLATES: List[PlanTemplate] = [
    PlanTemplate(
        name="beginner-start-running",
        level="beginner",
        goal="start_running",
        skeleton=_skeleton(
            "run-walk introduction",
            [
                _day("poniedziałek", "run_walk", None, 25, "Zone 1-2"),
                _day("czwartek", "run_walk", None, 25, "Zone 1-2"),
                _day("sobota", "easy_run", 3.0, 25, "Zone 2"),
            ],
        ),
    ),
    PlanTemplate(
        name="injury-aware",
        injury=True,
        skeleton=_skeleton(
            "return to running",
            [
                _day("wtorek", "recovery", 3.0, 25, "Zone 1"),
                _day("czwartek", "easy_run", 4.0, 30, "Zone 2"),
                _day("sobota", "cross_training", None, 40, "Zone 2"),
            ],
        ),
    ),
    PlanTemplate(
        name="intermediate-10k-4-days",
        level="intermediate",
        goal="run_10k",
        days_per_week=4,
        skeleton=_skeleton(
            "lactate threshold",
            [
                _day("wtorek", "intervals", 7.0, 45, "Zone 4-5"),
                _day("czwartek", "easy_run", 6.0, 35, "Zone 2"),
                _day("sobota", "tempo", 8.0, 45, "Zone 3-4"),
                _day("niedziela", "long_run", 12.0, 70, "Zone 2-3"),
            ],
        ),
    ),
    PlanTemplate(
        name="marathon",
        goal="marathon",
        skeleton=_skeleton(
            "endurance development",
            [
                _day("wtorek", "tempo", 10.0, 55, "Zone 3-4"),
                _day("czwartek", "easy_run", 8.0, 45, "Zone 2"),
                _day("niedziela", "long_run", 24.0, 150, "Zone 2-3"),
            ],
        ),
    ),
]


@dataclass
class ExamplePlanSelector:
    """
    Selects a structure-only example plan for a profile.

    The first template matching level, goal, day count and injury status
    wins; otherwise the generic default is used when allowed, else None.
    """

    templates: List[PlanTemplate] = field(default_factory=lambda: list(BUILTIN_TEMPLATES))
    default: Optional[PlanTemplate] = field(default_factory=lambda: GENERIC_TEMPLATE)

    def select(
        self,
        level: str,
        goal: str,
        days_per_week: int,
        has_injuries: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Return a deep copy of the best skeleton, or None."""
        for template in self.templates:
            if template.matches(level, goal, days_per_week, has_injuries):
                return copy.deepcopy(template.skeleton)
        if self.default is not None:
            return copy.deepcopy(self.default.skeleton)
        return None

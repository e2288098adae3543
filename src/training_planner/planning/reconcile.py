"""
Training-day reconciliation.

The model frequently ignores the runner's chosen weekdays. Reconciliation
rewrites each week's day names positionally from the runner's ordered
training days, keeping every other workout field as generated. Weeks with
more days than the runner trains are truncated to the first N; weeks with
fewer keep their length. metadata.days_per_week is set to the number of
training days. Day dates are left as generated, so after renaming a date
may fall on a different weekday than its day_name.
"""

import copy
import logging
from typing import Any, List, Optional, Sequence, Union

from ..models.plans import TrainingPlan
from ..models.profile import Weekday

logger = logging.getLogger(__name__)


def _day_label(day: Any) -> str:
    weekday = Weekday.parse(day)
    if weekday is not None:
        return weekday.value
    return str(day).strip()


def _reconcile_weeks(weeks: Any, labels: List[str]) -> int:
    """Rewrite day names in place, returning how many days changed."""
    if not isinstance(weeks, list):
        return 0

    changed = 0
    for week in weeks:
        if not isinstance(week, dict) or not isinstance(week.get("days"), list):
            continue
        days = week["days"]
        if len(days) > len(labels):
            changed += len(days) - len(labels)
            del days[len(labels):]
        for day, label in zip(days, labels):
            if isinstance(day, dict) and day.get("day_name") != label:
                day["day_name"] = label
                changed += 1
    return changed


def _reconcile_metadata(plan: dict, labels: List[str]) -> int:
    metadata = plan.get("metadata")
    if not isinstance(metadata, dict) or metadata.get("days_per_week") == len(labels):
        return 0
    metadata["days_per_week"] = len(labels)
    return 1


def reconcile_training_days(
    plan: Union[dict, TrainingPlan, Any],
    training_days: Optional[Sequence[Union[Weekday, str]]],
) -> Union[dict, TrainingPlan, Any]:
    """
    Force a plan's schedule onto the runner's training days.

    Args:
        plan: Plan dictionary or TrainingPlan model (not modified)
        training_days: Ordered training weekdays; None or empty is a no-op

    Returns:
        A corrected copy of the same type. Anything that is not a plan is
        returned unchanged.
    """
    if not training_days:
        return plan

    labels = [_day_label(day) for day in training_days]

    if isinstance(plan, TrainingPlan):
        data = plan.model_dump()
        changed = _reconcile_weeks(data.get("plan_weeks"), labels)
        changed += _reconcile_metadata(data, labels)
        result: Any = TrainingPlan.model_validate(data)
    elif isinstance(plan, dict):
        result = copy.deepcopy(plan)
        changed = _reconcile_weeks(result.get("plan_weeks"), labels)
        changed += _reconcile_metadata(result, labels)
    else:
        return plan

    if changed:
        logger.info(f"Reconciled plan to {', '.join(labels)} ({changed} changes)")
    return result

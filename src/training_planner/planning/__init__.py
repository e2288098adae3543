"""Plan repair, training-day reconciliation and shared defaults.

The generator is imported from ``training_planner.planning.generator``;
it depends on the LLM layer, which itself uses these defaults.
"""

from .defaults import (
    DEFAULT_DURATION_WEEKS,
    DEFAULT_PLAN_DESCRIPTION,
    DEFAULT_PLAN_MARKER,
    GOAL_DURATION_WEEKS,
    MAX_DURATION_WEEKS,
    PHASE_LABELS,
)
from .reconcile import reconcile_training_days
from .repair import PlanRepairer, repair_plan

__all__ = [
    "DEFAULT_DURATION_WEEKS",
    "DEFAULT_PLAN_DESCRIPTION",
    "DEFAULT_PLAN_MARKER",
    "GOAL_DURATION_WEEKS",
    "MAX_DURATION_WEEKS",
    "PHASE_LABELS",
    "reconcile_training_days",
    "PlanRepairer",
    "repair_plan",
]

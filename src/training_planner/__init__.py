"""Running training plan generation with LLM output repair."""

__version__ = "0.1.0"

from .exceptions import AIGenerationFailure, TrainingPlannerError
from .models import TrainingPlan, UserProfile, Weekday
from .planning.generator import (
    PlanGenerator,
    generate_plan,
    generate_plan_sync,
    repair_stored_plan,
)
from .planning.reconcile import reconcile_training_days

__all__ = [
    "AIGenerationFailure",
    "TrainingPlannerError",
    "TrainingPlan",
    "UserProfile",
    "Weekday",
    "PlanGenerator",
    "generate_plan",
    "generate_plan_sync",
    "repair_stored_plan",
    "reconcile_training_days",
]

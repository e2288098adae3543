"""Data models for the training planner."""

from .profile import UserProfile, Weekday, parse_weekdays
from .plans import (
    CorrectiveExercise,
    CorrectiveExercises,
    PainMonitoring,
    PlanDay,
    PlanMetadata,
    PlanWeek,
    SupportExercise,
    TargetHeartRate,
    TrainingPlan,
    Workout,
)

__all__ = [
    # Profile
    "UserProfile",
    "Weekday",
    "parse_weekdays",
    # Plan schema
    "TrainingPlan",
    "PlanMetadata",
    "PlanWeek",
    "PlanDay",
    "Workout",
    "TargetHeartRate",
    "SupportExercise",
    "CorrectiveExercise",
    "CorrectiveExercises",
    "PainMonitoring",
]

"""Training plan wire schema.

Field names are fixed by the plan JSON format shared with consumers.
Unknown keys emitted by the model are preserved on every level.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _PlanModel(BaseModel):
    model_config = ConfigDict(extra="allow")


# ============================================================================
# Workouts
# ============================================================================

class TargetHeartRate(_PlanModel):
    """Target heart rate range for a workout."""

    min: Optional[float] = None
    max: Optional[float] = None
    zone: Optional[str] = None


class SupportExercise(_PlanModel):
    """A strength or mobility exercise attached to a workout."""

    name: str
    sets: Optional[Union[int, float, str]] = None
    reps: Optional[Union[int, float, str]] = None
    duration: Optional[Union[int, float, str]] = None


class Workout(_PlanModel):
    """A single workout."""

    type: str
    description: str
    distance: Optional[float] = Field(default=None, description="Distance in km")
    duration: Optional[float] = Field(default=None, description="Duration in minutes")
    target_pace: Optional[Any] = None
    target_heart_rate: TargetHeartRate = Field(default_factory=TargetHeartRate)
    support_exercises: List[SupportExercise] = Field(default_factory=list)


class PlanDay(_PlanModel):
    """A training day within a week."""

    day_name: str
    date: str
    workout: Workout


class PlanWeek(_PlanModel):
    """A training week."""

    week_num: int
    focus: str
    days: List[PlanDay] = Field(default_factory=list)


# ============================================================================
# Plan-level blocks
# ============================================================================

class PlanMetadata(_PlanModel):
    """Descriptive plan metadata."""

    discipline: str = "running"
    target_group: str = ""
    target_goal: str = ""
    level_hint: str = ""
    days_per_week: int = 3
    duration_weeks: int = 8
    description: str = ""
    author: str = ""


class CorrectiveExercise(_PlanModel):
    """A corrective or injury-prevention exercise."""

    name: str
    sets: Optional[Union[int, float, str]] = None
    reps: Optional[Union[int, float, str]] = None
    duration: Optional[Union[int, float, str]] = None
    description: Optional[str] = None


class CorrectiveExercises(_PlanModel):
    frequency: str = "daily"
    list: List[CorrectiveExercise] = Field(default_factory=list)


class PainMonitoring(_PlanModel):
    scale: str = "0-10"
    rules: List[str] = Field(default_factory=list)


class TrainingPlan(_PlanModel):
    """A complete multi-week training plan."""

    id: str
    metadata: PlanMetadata
    plan_weeks: List[PlanWeek]
    corrective_exercises: CorrectiveExercises = Field(default_factory=CorrectiveExercises)
    pain_monitoring: PainMonitoring = Field(default_factory=PainMonitoring)
    notes: List[str] = Field(default_factory=list)

    @property
    def week_count(self) -> int:
        return len(self.plan_weeks)

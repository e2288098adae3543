"""Build the plan generation prompt from a runner profile."""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional, Tuple

from ..exceptions import InvalidInputError
from ..knowledge.base import KnowledgeBase
from ..knowledge.templates import ExamplePlanSelector
from ..metrics.paces import TrainingPaces, estimated_vo2max, training_paces
from ..metrics.zones import (
    HRZones,
    heart_rate_zones,
    heart_rate_zones_from_max,
    max_heart_rate,
)
from ..models.profile import UserProfile, Weekday
from ..planning.defaults import (
    DEFAULT_DURATION_WEEKS,
    GOAL_DURATION_WEEKS,
    MAX_DURATION_WEEKS,
    MIN_DURATION_WEEKS,
)
from .prompts import (
    EXAMPLE_SECTION,
    GOAL_LABELS,
    LEVEL_LABELS,
    PACE_SECTION,
    PLAN_GENERATION_PROMPT,
    PLAN_OUTPUT_SCHEMA,
)

logger = logging.getLogger(__name__)

_DISTANCE_ALIASES = {
    "5k": "5k",
    "5km": "5k",
    "run_5k": "5k",
    "10k": "10k",
    "10km": "10k",
    "run_10k": "10k",
    "half": "half_marathon",
    "half_marathon": "half_marathon",
    "halfmarathon": "half_marathon",
    "21k": "half_marathon",
    "marathon": "marathon",
    "42k": "marathon",
    "ultra": "ultra_marathon",
    "ultra_marathon": "ultra_marathon",
}


@dataclass
class DurationResolution:
    """Resolved plan length and effective start date."""

    weeks: int
    start_date: date
    source: str
    notes: List[str] = field(default_factory=list)


@dataclass
class PlanPrompt:
    """The assembled prompt and the values resolved while building it."""

    text: str
    duration_weeks: int
    start_date: date
    hr_zones: Optional[HRZones] = None
    paces: Optional[TrainingPaces] = None
    notes: List[str] = field(default_factory=list)


# ============================================================================
# Resolution helpers
# ============================================================================

def parse_optional_date(value: Any) -> Optional[date]:
    """Parse a date or ISO date string; None for anything unreadable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _normalize_key(value: Optional[str]) -> str:
    return (value or "").strip().lower().replace("-", "_").replace(" ", "_")


def distance_key(profile: UserProfile) -> Optional[str]:
    """Knowledge-base distance key for the profile's target distance or goal."""
    for candidate in (profile.target_distance, profile.main_goal):
        key = _DISTANCE_ALIASES.get(_normalize_key(candidate))
        if key:
            return key
    return None


def resolve_plan_duration(profile: UserProfile, today: Optional[date] = None) -> DurationResolution:
    """
    Resolve how many weeks the plan should cover.

    A race date after the effective start date decides the length:
    ceil((race - start + 1 day) / 7) weeks, at least one. The effective
    start is the given start date unless it lies in the past. Without a
    usable race date the profile's duration hint is used, then the goal
    table. Malformed dates are reported in ``notes``, never raised.
    """
    today = today or date.today()
    notes: List[str] = []

    start = parse_optional_date(profile.start_date)
    if profile.start_date and start is None:
        notes.append(f"Start date '{profile.start_date}' could not be read; the plan starts on {today.isoformat()}.")
    effective_start = start if start is not None and start >= today else today

    race = parse_optional_date(profile.race_date)
    if profile.race_date and race is None:
        notes.append(f"Race date '{profile.race_date}' could not be read and was ignored.")
    elif race is not None and race <= effective_start:
        notes.append(f"Race date {race.isoformat()} is not after the start date and was ignored.")
        race = None

    if race is not None:
        weeks = max(MIN_DURATION_WEEKS, math.ceil(((race - effective_start).days + 1) / 7))
        if weeks > MAX_DURATION_WEEKS:
            notes.append(f"Race is {weeks} weeks away; the plan covers the first {MAX_DURATION_WEEKS} weeks.")
            weeks = MAX_DURATION_WEEKS
        return DurationResolution(weeks, effective_start, "race_date", notes)

    try:
        hint = int(profile.plan_duration_weeks)
    except (TypeError, ValueError):
        hint = None
    if hint is not None and MIN_DURATION_WEEKS <= hint <= MAX_DURATION_WEEKS:
        return DurationResolution(hint, effective_start, "duration_hint", notes)

    for key in (_DISTANCE_ALIASES.get(_normalize_key(profile.target_distance)), _normalize_key(profile.main_goal)):
        if key and key in GOAL_DURATION_WEEKS:
            return DurationResolution(GOAL_DURATION_WEEKS[key], effective_start, "goal_table", notes)

    return DurationResolution(DEFAULT_DURATION_WEEKS, effective_start, "default", notes)


def resolve_heart_rate_zones(profile: UserProfile) -> Tuple[Optional[HRZones], List[str]]:
    """Karvonen zones when resting HR is known, percentage-of-max otherwise."""
    notes: List[str] = []
    try:
        max_hr = profile.max_heart_rate or max_heart_rate(profile.age)
    except InvalidInputError as e:
        notes.append(f"Heart rate zones unavailable: {e.message}.")
        return None, notes

    if profile.resting_heart_rate:
        try:
            return heart_rate_zones(max_hr, profile.resting_heart_rate), notes
        except InvalidInputError as e:
            notes.append(f"Resting heart rate ignored: {e.message}.")

    try:
        return heart_rate_zones_from_max(max_hr), notes
    except InvalidInputError as e:
        notes.append(f"Heart rate zones unavailable: {e.message}.")
        return None, notes


def resolve_training_paces(profile: UserProfile) -> Tuple[Optional[float], Optional[TrainingPaces], List[str]]:
    """Paces from a known VO2max or a Cooper test result, if either is given."""
    notes: List[str] = []
    try:
        if profile.vo2max:
            vo2max = float(profile.vo2max)
        elif profile.cooper_test_distance:
            vo2max = estimated_vo2max(profile.cooper_test_distance)
        else:
            return None, None, notes
        return vo2max, training_paces(vo2max), notes
    except InvalidInputError as e:
        notes.append(f"Training paces unavailable: {e.message}.")
        return None, None, notes


# ============================================================================
# Section builders
# ============================================================================

def _profile_summary(profile: UserProfile) -> str:
    parts = []
    if profile.name:
        parts.append(f"  Name: {profile.name}")
    parts.append(f"  Age: {profile.age}")
    parts.append(f"  Level: {LEVEL_LABELS.get(profile.experience_level, profile.experience_level)}")

    goal = GOAL_LABELS.get(profile.main_goal, profile.main_goal)
    if profile.main_goal == "other" and profile.custom_goal:
        goal = profile.custom_goal
    parts.append(f"  Main goal: {goal}")
    if profile.target_distance:
        parts.append(f"  Target distance: {profile.target_distance}")
    parts.append(f"  Current weekly distance: {profile.weekly_distance_km or 0:g} km")
    parts.append(f"  Training days per week: {profile.training_days_per_week}")
    if profile.training_days:
        parts.append(f"  Training days: {', '.join(d.value for d in profile.training_days)}")
    return "\n".join(parts)


def _health_summary(profile: UserProfile) -> str:
    parts = []
    if profile.has_injuries or profile.injuries:
        injuries = ", ".join(profile.injuries) if profile.injuries else "not specified"
        parts.append(f"  Injury history: {injuries}")
    if profile.current_pain:
        parts.append(f"  Current pain: {profile.current_pain}")
    conditions = [c for c in profile.medical_conditions if c and c != "none"]
    if conditions:
        parts.append(f"  Medical conditions: {', '.join(conditions)}")
    if not parts:
        parts.append("  No injuries or health limitations reported.")
    return "\n".join(parts)


def _duration_summary(resolution: DurationResolution, notes: List[str]) -> str:
    parts = [
        f"  {resolution.weeks} weeks starting {resolution.start_date.isoformat()}"
        f" (from {resolution.source.replace('_', ' ')})"
    ]
    for note in notes:
        parts.append(f"  Note: {note}")
    return "\n".join(parts)


def _zones_table(zones: Optional[HRZones]) -> str:
    if zones is None:
        return "  Not available; use perceived effort (easy, moderate, hard)."
    return "\n".join(
        f"  Zone {num} ({name}): {low}-{high} bpm" for num, low, high, name in zones.get_zone_ranges()
    )


def _paces_table(paces: TrainingPaces) -> str:
    return "\n".join(
        f"  {name.title()}: {pace.formatted}"
        for name, pace in (
            ("recovery", paces.recovery),
            ("marathon", paces.marathon),
            ("threshold", paces.threshold),
            ("interval", paces.interval),
        )
    )


def _knowledge_excerpt(profile: UserProfile, knowledge: KnowledgeBase) -> str:
    parts = []
    key = distance_key(profile)
    if key:
        base = f"distances.{key}"
        parts.append(f"Distance focus: {knowledge.lookup(base + '.focus')}")
        parts.append(f"Key training types: {knowledge.lookup(base + '.key_training_types')}")
        parts.append(f"Emphasis for this level: {knowledge.lookup(f'{base}.emphasis.{profile.experience_level}')}")
        parts.append(f"Tapering: {knowledge.lookup(base + '.tapering')}")

    parts.append("Principles:")
    parts.append(knowledge.lookup("principles"))
    parts.append("Phases:")
    parts.append(knowledge.lookup("phases"))

    if profile.has_injuries or profile.injuries or profile.current_pain:
        parts.append("Injury prevention:")
        parts.append(knowledge.lookup("injury_prevention.strength_training"))
        parts.append(knowledge.lookup("injury_prevention.mobility"))
        for injury in profile.injuries:
            parts.append(f"{injury}: {knowledge.lookup('injury_prevention.common_injuries.' + _normalize_key(str(injury)))}")
        parts.append("Corrective exercise catalogue:")
        parts.append(knowledge.lookup("corrective_exercises.general"))
        injury_text = " ".join(str(i) for i in profile.injuries).lower()
        for area in ("knee", "ankle"):
            if area in injury_text:
                parts.append(f"{area.title()}:")
                parts.append(knowledge.lookup(f"corrective_exercises.{area}"))

    parts.append("Nutrition:")
    parts.append(knowledge.lookup("nutrition"))
    parts.append("Hydration:")
    parts.append(knowledge.lookup("hydration"))
    return "\n".join(parts)


def _constraints(profile: UserProfile, resolution: DurationResolution) -> str:
    canonical = ", ".join(d.value for d in Weekday)
    parts = []
    if profile.training_days:
        days = ", ".join(d.value for d in profile.training_days)
        parts.append(
            f"1. Every week has exactly {len(profile.training_days)} days, on these days and in this order: {days}."
        )
    else:
        parts.append(f"1. Every week has exactly {profile.training_days_per_week} training days.")
    parts.append(
        f"2. plan_weeks contains exactly {resolution.weeks} weeks numbered 1 to {resolution.weeks}; "
        f"metadata.duration_weeks is {resolution.weeks}."
    )
    parts.append(f"3. day_name is one of: {canonical}. Use full names, never abbreviations.")
    parts.append(f"4. Dates use YYYY-MM-DD, starting from {resolution.start_date.isoformat()}.")
    parts.append("5. target_heart_rate values come from the heart rate zone table.")
    if profile.has_injuries or profile.injuries or profile.current_pain:
        parts.append("6. Avoid loading injured areas and include corrective exercises.")
    return "\n".join(parts)


def build_plan_prompt(
    profile: UserProfile,
    knowledge: Optional[KnowledgeBase] = None,
    template_selector: Optional[ExamplePlanSelector] = None,
    today: Optional[date] = None,
) -> PlanPrompt:
    """
    Build the plan generation prompt.

    Args:
        profile: Runner profile
        knowledge: Knowledge base (defaults to the built-in content)
        template_selector: Example plan selector; None omits the example
        today: Current date, injectable for tests

    Returns:
        PlanPrompt with the prompt text and resolved duration, zones and paces
    """
    knowledge = knowledge or KnowledgeBase()

    resolution = resolve_plan_duration(profile, today)
    zones, zone_notes = resolve_heart_rate_zones(profile)
    vo2max, paces, pace_notes = resolve_training_paces(profile)
    notes = resolution.notes + zone_notes + pace_notes

    pace_section = ""
    if paces is not None and vo2max is not None:
        pace_section = PACE_SECTION.format(vo2max=vo2max, paces=_paces_table(paces))

    example_section = ""
    if template_selector is not None:
        example = template_selector.select(
            profile.experience_level,
            profile.main_goal,
            profile.training_days_per_week,
            profile.has_injuries,
        )
        if example is not None:
            example_section = EXAMPLE_SECTION.format(
                example_plan=json.dumps(example, indent=2, ensure_ascii=False)
            )

    text = PLAN_GENERATION_PROMPT.format(
        profile_summary=_profile_summary(profile),
        health_summary=_health_summary(profile),
        duration_summary=_duration_summary(resolution, notes),
        zone_method="heart rate reserve" if zones is not None and zones.method == "karvonen" else "% of max HR",
        hr_zones=_zones_table(zones),
        pace_section=pace_section,
        example_section=example_section,
        knowledge=_knowledge_excerpt(profile, knowledge),
        output_schema=PLAN_OUTPUT_SCHEMA,
        constraints=_constraints(profile, resolution),
    )

    if notes:
        logger.info(f"Prompt built with {len(notes)} informational notes")
    return PlanPrompt(
        text=text,
        duration_weeks=resolution.weeks,
        start_date=resolution.start_date,
        hr_zones=zones,
        paces=paces,
        notes=notes,
    )

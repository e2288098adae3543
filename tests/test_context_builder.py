"""Tests for prompt assembly and plan duration resolution."""

from datetime import date

import pytest

from training_planner.knowledge.base import KnowledgeBase
from training_planner.knowledge.templates import ExamplePlanSelector
from training_planner.llm.context_builder import (
    build_plan_prompt,
    distance_key,
    parse_optional_date,
    resolve_heart_rate_zones,
    resolve_plan_duration,
    resolve_training_paces,
)
from training_planner.models.profile import UserProfile
from training_planner.planning.defaults import (
    DEFAULT_DURATION_WEEKS,
    GOAL_DURATION_WEEKS,
    MAX_DURATION_WEEKS,
    START_RUNNING_DURATION_WEEKS,
)

# Monday
TODAY = date(2026, 1, 5)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def profile():
    """A 10k runner training three days a week."""
    return UserProfile(
        age=30,
        experience_level="intermediate",
        main_goal="run_10k",
        weekly_distance_km=25,
        training_days=["wtorek", "czwartek", "sobota"],
        resting_heart_rate=60,
    )


# ============================================================================
# Duration resolution
# ============================================================================

class TestResolvePlanDuration:
    """Tests for plan length resolution."""

    def test_race_date_decides_length(self):
        profile = UserProfile(age=30, race_date="2026-03-01")
        result = resolve_plan_duration(profile, today=TODAY)
        # 55 days until the race, +1 day, over 7 -> 8 weeks
        assert result.weeks == 8
        assert result.source == "race_date"
        assert result.start_date == TODAY

    def test_race_tomorrow_is_one_week(self):
        profile = UserProfile(age=30, race_date="2026-01-06")
        assert resolve_plan_duration(profile, today=TODAY).weeks == 1

    def test_future_start_date_is_used(self):
        profile = UserProfile(age=30, start_date="2026-01-12", race_date="2026-02-08")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.start_date == date(2026, 1, 12)
        assert result.weeks == 4

    def test_past_start_date_falls_back_to_today(self):
        profile = UserProfile(age=30, start_date="2025-12-01")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.start_date == TODAY

    def test_race_before_start_is_ignored(self):
        profile = UserProfile(age=30, main_goal="marathon", race_date="2025-12-24")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.weeks == GOAL_DURATION_WEEKS["marathon"]
        assert result.source == "goal_table"
        assert any("not after the start date" in note for note in result.notes)

    def test_malformed_race_date_becomes_note(self):
        profile = UserProfile(age=30, race_date="sometime in May")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.weeks == DEFAULT_DURATION_WEEKS
        assert any("could not be read" in note for note in result.notes)

    def test_malformed_start_date_becomes_note(self):
        profile = UserProfile(age=30, start_date="31/02/2026")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.start_date == TODAY
        assert len(result.notes) == 1

    def test_distant_race_is_capped(self):
        profile = UserProfile(age=30, race_date="2028-01-05")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.weeks == MAX_DURATION_WEEKS
        assert result.notes

    def test_goal_table(self):
        profile = UserProfile(age=30, main_goal="half_marathon")
        assert resolve_plan_duration(profile, today=TODAY).weeks == 12

    def test_start_running_goal(self):
        profile = UserProfile(age=30, main_goal="start_running")
        assert resolve_plan_duration(profile, today=TODAY).weeks == START_RUNNING_DURATION_WEEKS

    def test_target_distance_wins_over_goal(self):
        profile = UserProfile(age=30, main_goal="general_fitness", target_distance="Half")
        assert resolve_plan_duration(profile, today=TODAY).weeks == GOAL_DURATION_WEEKS["half_marathon"]

    def test_unknown_goal_defaults(self):
        profile = UserProfile(age=30, main_goal="other")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.weeks == DEFAULT_DURATION_WEEKS
        assert result.source == "default"

    def test_duration_hint(self):
        profile = UserProfile(age=30, main_goal="marathon", plan_duration_weeks="10")
        result = resolve_plan_duration(profile, today=TODAY)
        assert result.weeks == 10
        assert result.source == "duration_hint"

    def test_out_of_range_hint_is_ignored(self):
        profile = UserProfile(age=30, main_goal="marathon", plan_duration_weeks=80)
        assert resolve_plan_duration(profile, today=TODAY).weeks == GOAL_DURATION_WEEKS["marathon"]


class TestParseOptionalDate:
    def test_iso_datetime_string(self):
        assert parse_optional_date("2026-02-03T10:00:00Z") == date(2026, 2, 3)

    def test_date_passthrough(self):
        assert parse_optional_date(date(2026, 2, 3)) == date(2026, 2, 3)

    @pytest.mark.parametrize("value", ["", "garbage", None, 20260203])
    def test_unreadable(self, value):
        assert parse_optional_date(value) is None


# ============================================================================
# Zones and paces
# ============================================================================

class TestResolvePhysiology:
    """Tests for zone and pace resolution from a profile."""

    def test_karvonen_with_resting_hr(self, profile):
        zones, notes = resolve_heart_rate_zones(profile)
        assert zones.method == "karvonen"
        assert zones.max_hr == 187
        assert notes == []

    def test_known_max_hr_is_used(self):
        zones, _ = resolve_heart_rate_zones(UserProfile(age=30, max_heart_rate=195))
        assert zones.method == "max_hr"
        assert zones.max_hr == 195

    def test_resting_above_max_falls_back(self):
        zones, notes = resolve_heart_rate_zones(UserProfile(age=30, max_heart_rate=150, resting_heart_rate=160))
        assert zones.method == "max_hr"
        assert len(notes) == 1

    def test_invalid_age_without_max_hr(self):
        zones, notes = resolve_heart_rate_zones(UserProfile(age=5))
        assert zones is None
        assert notes

    def test_paces_from_cooper_test(self):
        vo2max, paces, notes = resolve_training_paces(UserProfile(age=30, cooper_test_distance=2600))
        assert vo2max == pytest.approx(46.84, abs=0.01)
        assert paces is not None
        assert notes == []

    def test_no_paces_without_data(self):
        assert resolve_training_paces(UserProfile(age=30)) == (None, None, [])

    def test_short_cooper_distance_becomes_note(self):
        vo2max, paces, notes = resolve_training_paces(UserProfile(age=30, cooper_test_distance=400))
        assert paces is None
        assert len(notes) == 1


class TestDistanceKey:
    @pytest.mark.parametrize(
        "target,goal,expected",
        [
            ("10km", "general_fitness", "10k"),
            (None, "run_5k", "5k"),
            ("Half-Marathon", "other", "half_marathon"),
            (None, "speed_improvement", None),
        ],
    )
    def test_aliases(self, target, goal, expected):
        assert distance_key(UserProfile(age=30, target_distance=target, main_goal=goal)) == expected


# ============================================================================
# Prompt assembly
# ============================================================================

class TestBuildPlanPrompt:
    """Tests for the assembled prompt."""

    def test_resolved_values(self, profile):
        prompt = build_plan_prompt(profile, today=TODAY)
        assert prompt.duration_weeks == 10
        assert prompt.start_date == TODAY
        assert prompt.hr_zones is not None
        assert prompt.paces is None

    def test_contains_training_day_constraint(self, profile):
        prompt = build_plan_prompt(profile, today=TODAY)
        assert "exactly 3 days, on these days and in this order: wtorek, czwartek, sobota" in prompt.text
        assert "exactly 10 weeks" in prompt.text
        assert "starting from 2026-01-05" in prompt.text

    def test_contains_zone_table(self, profile):
        prompt = build_plan_prompt(profile, today=TODAY)
        assert "HEART RATE ZONES (heart rate reserve)" in prompt.text
        assert "Zone 5 (VO2max)" in prompt.text

    def test_contains_output_schema(self, profile):
        prompt = build_plan_prompt(profile, today=TODAY)
        assert '"plan_weeks": [' in prompt.text
        assert "OUTPUT SCHEMA" in prompt.text

    def test_distance_knowledge_included(self, profile):
        prompt = build_plan_prompt(profile, today=TODAY)
        assert "Distance focus: speed endurance, lactate threshold, aerobic capacity" in prompt.text

    def test_missing_knowledge_degrades_to_placeholder(self, profile):
        prompt = build_plan_prompt(profile, knowledge=KnowledgeBase({}), today=TODAY)
        assert "[no guidance available for principles]" in prompt.text

    def test_pace_section_only_with_paces(self, profile):
        assert "TRAINING PACES" not in build_plan_prompt(profile, today=TODAY).text
        profile.cooper_test_distance = 2600
        assert "TRAINING PACES (VO2max 46.8)" in build_plan_prompt(profile, today=TODAY).text

    def test_example_section_with_selector(self, profile):
        prompt = build_plan_prompt(profile, template_selector=ExamplePlanSelector(), today=TODAY)
        assert "EXAMPLE PLAN (STRUCTURE ONLY, DO NOT COPY CONTENT):" in prompt.text

    def test_example_omitted_without_template(self, profile):
        selector = ExamplePlanSelector(templates=[], default=None)
        prompt = build_plan_prompt(profile, template_selector=selector, today=TODAY)
        assert "EXAMPLE PLAN" not in prompt.text

    def test_malformed_dates_annotated(self, profile):
        profile.race_date = "soon"
        prompt = build_plan_prompt(profile, today=TODAY)
        assert "Note: Race date 'soon' could not be read" in prompt.text

    def test_injuries_add_prevention_guidance(self, profile):
        profile.has_injuries = True
        profile.injuries = ["runners knee"]
        prompt = build_plan_prompt(profile, today=TODAY)
        assert "Injury history: runners knee" in prompt.text
        assert "Strengthen quadriceps" in prompt.text
        assert "Wall sit" in prompt.text
        assert "include corrective exercises" in prompt.text

    def test_no_training_days_uses_day_count(self):
        profile = UserProfile(age=30, days_per_week=4)
        prompt = build_plan_prompt(profile, today=TODAY)
        assert "Every week has exactly 4 training days." in prompt.text

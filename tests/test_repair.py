"""Tests for structural plan repair."""

import copy
import math
from datetime import date, datetime

import pytest

from training_planner.exceptions import ErrorCode, InvalidPlanShapeError
from training_planner.metrics.zones import heart_rate_zones
from training_planner.models.plans import TrainingPlan
from training_planner.planning.defaults import (
    DEFAULT_DURATION_WEEKS,
    DEFAULT_PAIN_MONITORING,
    DEFAULT_PLAN_ID_PREFIX,
    DEFAULT_WORKOUT_DESCRIPTION,
    DEFAULT_WORKOUT_DISTANCE_KM,
    DEFAULT_WORKOUT_DURATION_MIN,
    DEFAULT_ZONE2_HEART_RATE,
    MAX_DURATION_WEEKS,
    PHASE_LABELS,
)
from training_planner.llm.response_parser import parse_plan_response
from training_planner.planning.repair import PlanRepairer, repair_plan


# ============================================================================
# Fixtures
# ============================================================================

def fixed_clock():
    return datetime(2026, 1, 5, 8, 0, 0)


@pytest.fixture
def repairer():
    """Repairer anchored on Monday 2026-01-05."""
    return PlanRepairer(start_date=date(2026, 1, 5), clock=fixed_clock)


@pytest.fixture
def messy_plan():
    """A plan with the usual model mistakes."""
    return {
        "id": 12345,
        "metadata": {"days_per_week": "4", "duration_weeks": "abc", "author": None},
        "plan_weeks": [
            {
                "focus": "",
                "days": [
                    {"day_name": "Wed", "date": "2026-01-07T10:00:00Z", "workout": {"type": "tempo"}},
                    {"day_name": "someday", "workout": "Easy 5k jog"},
                    "not a day",
                ],
            },
            {"week_num": "2", "days": "none"},
            None,
        ],
        "pain_monitoring": {"rules": [None, "  ", "Stop if sharp pain"]},
        "notes": "Hydrate well",
    }


class TestRepairerRejectsNonObjects:
    @pytest.mark.parametrize("plan", [None, [], "plan", 42])
    def test_non_dict_raises(self, repairer, plan):
        with pytest.raises(InvalidPlanShapeError) as exc_info:
            repairer.repair(plan)
        assert exc_info.value.code == ErrorCode.INVALID_PLAN_SHAPE
        assert exc_info.value.details["received_type"] == type(plan).__name__


class TestEmptyPlan:
    """Synthesis from an empty object."""

    @pytest.fixture
    def plan(self, repairer):
        return repairer.repair({})

    def test_id_synthesized(self, plan):
        expected_ms = int(fixed_clock().timestamp() * 1000)
        assert plan["id"] == f"{DEFAULT_PLAN_ID_PREFIX}{expected_ms}"

    def test_default_week_count(self, plan):
        assert len(plan["plan_weeks"]) == DEFAULT_DURATION_WEEKS
        assert [w["week_num"] for w in plan["plan_weeks"]] == list(range(1, 9))
        assert plan["metadata"]["duration_weeks"] == DEFAULT_DURATION_WEEKS

    def test_phase_focus_by_position(self, plan):
        focuses = [w["focus"] for w in plan["plan_weeks"]]
        assert focuses == [PHASE_LABELS[0]] * 3 + [PHASE_LABELS[1]] * 3 + [PHASE_LABELS[2]] * 2

    def test_default_days_and_dates(self, plan):
        week1, week2 = plan["plan_weeks"][0], plan["plan_weeks"][1]
        assert [d["day_name"] for d in week1["days"]] == ["poniedziałek", "środa", "piątek"]
        assert [d["workout"]["type"] for d in week1["days"]] == ["easy_run", "tempo", "long_run"]
        assert [d["date"] for d in week1["days"]] == ["2026-01-05", "2026-01-07", "2026-01-09"]
        assert [d["date"] for d in week2["days"]] == ["2026-01-12", "2026-01-14", "2026-01-16"]

    def test_plan_blocks(self, plan):
        assert plan["corrective_exercises"] == {"frequency": "daily", "list": []}
        assert plan["pain_monitoring"] == DEFAULT_PAIN_MONITORING
        assert plan["notes"] == []

    def test_validates_against_schema(self, plan):
        model = TrainingPlan.model_validate(plan)
        assert model.week_count == DEFAULT_DURATION_WEEKS


class TestMessyPlan:
    """Field-level backfilling."""

    @pytest.fixture
    def plan(self, repairer, messy_plan):
        return repairer.repair(messy_plan)

    def test_numeric_id_stringified(self, plan):
        assert plan["id"] == "12345"

    def test_metadata_coerced(self, plan):
        metadata = plan["metadata"]
        assert metadata["days_per_week"] == 4
        assert metadata["duration_weeks"] == 3
        assert metadata["author"] == "Training Planner"
        assert metadata["discipline"] == "running"

    def test_week_numbers(self, plan):
        assert [w["week_num"] for w in plan["plan_weeks"]] == [1, 2, 3]

    def test_day_names_normalized(self, plan):
        days = plan["plan_weeks"][0]["days"]
        assert [d["day_name"] for d in days] == ["środa", "wtorek", "środa"]

    def test_dates(self, plan):
        days = plan["plan_weeks"][0]["days"]
        assert days[0]["date"] == "2026-01-07"
        # Unknown name at position 1 becomes Tuesday of week 1
        assert days[1]["date"] == "2026-01-06"

    def test_partial_workout_backfilled(self, plan):
        workout = plan["plan_weeks"][0]["days"][0]["workout"]
        assert workout["type"] == "tempo"
        assert workout["description"] == DEFAULT_WORKOUT_DESCRIPTION
        assert workout["distance"] == DEFAULT_WORKOUT_DISTANCE_KM
        assert workout["duration"] == DEFAULT_WORKOUT_DURATION_MIN
        assert workout["target_pace"] is None
        assert workout["target_heart_rate"] == DEFAULT_ZONE2_HEART_RATE
        assert workout["support_exercises"] == []

    def test_string_workout_kept_as_description(self, plan):
        workout = plan["plan_weeks"][0]["days"][1]["workout"]
        assert workout["type"] == "easy_run"
        assert workout["description"] == "Easy 5k jog"

    def test_invalid_days_synthesized(self, plan):
        assert len(plan["plan_weeks"][1]["days"]) == 3
        assert len(plan["plan_weeks"][2]["days"]) == 3

    def test_pain_rules_filtered(self, plan):
        assert plan["pain_monitoring"] == {"rules": ["Stop if sharp pain"], "scale": "0-10"}

    def test_notes_string_to_list(self, plan):
        assert plan["notes"] == ["Hydrate well"]

    def test_validates_against_schema(self, plan):
        TrainingPlan.model_validate(plan)


class TestWeekCountReconciliation:
    """Padding and truncation to the expected duration."""

    def test_four_weeks_padded_to_eight(self, repairer):
        four_weeks = repairer.repair({"id": "p"}, expected_weeks=4)
        original_weeks = copy.deepcopy(four_weeks["plan_weeks"])

        plan = repairer.repair(four_weeks, expected_weeks=8)

        assert len(plan["plan_weeks"]) == 8
        assert plan["plan_weeks"][:4] == original_weeks
        assert [w["week_num"] for w in plan["plan_weeks"][4:]] == [5, 6, 7, 8]
        assert plan["metadata"]["duration_weeks"] == 8

    def test_padded_weeks_continue_the_calendar(self, repairer):
        plan = repairer.repair({"plan_weeks": [{"week_num": 1}]}, expected_weeks=2)
        assert plan["plan_weeks"][1]["days"][0]["date"] == "2026-01-12"

    def test_extra_weeks_truncated(self, repairer):
        weeks = [{"week_num": i, "focus": f"week {i}"} for i in range(1, 11)]
        plan = repairer.repair({"plan_weeks": weeks}, expected_weeks=8)
        assert [w["focus"] for w in plan["plan_weeks"]] == [f"week {i}" for i in range(1, 9)]

    def test_expected_weeks_capped(self, repairer):
        plan = repairer.repair({}, expected_weeks=60)
        assert len(plan["plan_weeks"]) == MAX_DURATION_WEEKS

    def test_missing_weeks_use_expected_count(self, repairer):
        plan = repairer.repair({"metadata": {"duration_weeks": 4}}, expected_weeks=6)
        assert len(plan["plan_weeks"]) == 6

    def test_padding_renumbers_weeks(self, repairer):
        weeks = [{"week_num": n, "days": []} for n in (2, 3, 4, 5)]
        plan = repairer.repair({"plan_weeks": weeks}, expected_weeks=5)
        assert [w["week_num"] for w in plan["plan_weeks"]] == [1, 2, 3, 4, 5]

    def test_week_numbers_follow_position(self, repairer):
        weeks = [{"week_num": 3, "focus": "c"}, {"week_num": 1, "focus": "a"}, {"week_num": 1, "focus": "b"}]
        plan = repairer.repair({"plan_weeks": weeks})
        assert [w["week_num"] for w in plan["plan_weeks"]] == [1, 2, 3]
        assert [w["focus"] for w in plan["plan_weeks"]] == ["c", "a", "b"]


class TestNonFiniteNumbers:
    """NaN, Infinity and overflowing literals fall back to defaults."""

    def test_infinite_week_num(self, repairer):
        parsed = parse_plan_response('{"plan_weeks": [{"week_num": Infinity, "days": []}]}')
        plan = repairer.repair(parsed, expected_weeks=2)
        assert [w["week_num"] for w in plan["plan_weeks"]] == [1, 2]

    def test_nan_duration_weeks(self, repairer):
        parsed = parse_plan_response('{"metadata": {"duration_weeks": NaN, "days_per_week": -Infinity}}')
        plan = repairer.repair(parsed)
        assert plan["metadata"]["duration_weeks"] == DEFAULT_DURATION_WEEKS
        assert plan["metadata"]["days_per_week"] == 3
        assert len(plan["plan_weeks"]) == DEFAULT_DURATION_WEEKS

    def test_overflowing_workout_numbers(self, repairer):
        parsed = parse_plan_response(
            '{"plan_weeks": [{"days": [{"day_name": "wtorek", "workout": {'
            '"type": "tempo", "distance": 1e400, "duration": "inf",'
            '"target_heart_rate": {"min": NaN, "max": 1e400, "zone": "Zone 3"},'
            '"support_exercises": [{"name": "Plank", "sets": NaN}]}}]}]}'
        )
        plan = repairer.repair(parsed, expected_weeks=1)

        workout = plan["plan_weeks"][0]["days"][0]["workout"]
        assert workout["distance"] is None
        assert workout["duration"] == DEFAULT_WORKOUT_DURATION_MIN
        assert math.isfinite(workout["target_heart_rate"]["min"])
        assert math.isfinite(workout["target_heart_rate"]["max"])
        assert workout["support_exercises"][0]["sets"] is None
        TrainingPlan.model_validate(plan)

    @pytest.mark.parametrize("value", ["nan", "inf", "-Infinity"])
    def test_non_finite_strings(self, repairer, value):
        plan = repairer.repair({"metadata": {"duration_weeks": value}, "plan_weeks": [{"week_num": value}]})
        assert plan["metadata"]["duration_weeks"] == 1
        assert plan["plan_weeks"][0]["week_num"] == 1


class TestWorkoutRepair:
    """Workout-level details."""

    def test_explicit_null_distance_preserved(self, repairer):
        plan = repairer.repair(
            {"plan_weeks": [{"days": [{"day_name": "pon", "workout": {"type": "rest", "distance": None}}]}]}
        )
        assert plan["plan_weeks"][0]["days"][0]["workout"]["distance"] is None

    def test_numeric_strings_coerced(self, repairer):
        workout = {"type": "easy_run", "distance": "7,5", "duration": "45"}
        plan = repairer.repair({"plan_weeks": [{"days": [{"workout": workout}]}]})
        repaired = plan["plan_weeks"][0]["days"][0]["workout"]
        assert repaired["distance"] == 7.5
        assert repaired["duration"] == 45

    def test_heart_rate_from_zones(self):
        zones = heart_rate_zones(190, 60)
        repairer = PlanRepairer(start_date=date(2026, 1, 5), clock=fixed_clock, hr_zones=zones)
        plan = repairer.repair({"plan_weeks": [{"days": [{"workout": {"type": "tempo"}}]}]})
        target = plan["plan_weeks"][0]["days"][0]["workout"]["target_heart_rate"]
        assert target == {"min": 152, "max": 177, "zone": "Zone 3-4"}

    def test_partial_heart_rate_backfilled(self):
        zones = heart_rate_zones(190, 60)
        repairer = PlanRepairer(start_date=date(2026, 1, 5), clock=fixed_clock, hr_zones=zones)
        workout = {"type": "easy_run", "target_heart_rate": {"min": "135", "zone": ""}}
        plan = repairer.repair({"plan_weeks": [{"days": [{"workout": workout}]}]})
        target = plan["plan_weeks"][0]["days"][0]["workout"]["target_heart_rate"]
        assert target == {"min": 135, "max": 151, "zone": "Zone 2"}

    def test_support_exercises_filtered(self, repairer):
        workout = {
            "type": "easy_run",
            "support_exercises": ["plank", {"name": "squat", "sets": [3]}, {"reps": 2}],
        }
        plan = repairer.repair({"plan_weeks": [{"days": [{"workout": workout}]}]})
        exercises = plan["plan_weeks"][0]["days"][0]["workout"]["support_exercises"]
        assert exercises == [{"name": "plank"}, {"name": "squat", "sets": None}]

    def test_unknown_fields_preserved(self, repairer):
        workout = {"type": "fartlek", "terrain": "trail"}
        plan = repairer.repair({"plan_weeks": [{"days": [{"workout": workout, "mood": "good"}]}]})
        day = plan["plan_weeks"][0]["days"][0]
        assert day["mood"] == "good"
        assert day["workout"]["terrain"] == "trail"


class TestIdempotence:
    def test_repairing_twice_changes_nothing(self, repairer, messy_plan):
        once = repairer.repair(messy_plan, expected_weeks=5)
        snapshot = copy.deepcopy(once)
        twice = repairer.repair(once, expected_weeks=5)
        assert twice == snapshot

    def test_same_input_same_output(self, messy_plan):
        first = repair_plan(copy.deepcopy(messy_plan), start_date=date(2026, 1, 5), clock=fixed_clock)
        second = repair_plan(copy.deepcopy(messy_plan), start_date=date(2026, 1, 5), clock=fixed_clock)
        assert first == second

    def test_mutates_in_place(self, repairer):
        plan = {"id": "p"}
        assert repairer.repair(plan) is plan
        assert "plan_weeks" in plan


class TestRepairPlanFunction:
    def test_author_used_in_metadata(self):
        plan = repair_plan({}, clock=fixed_clock, author="Coach Kim")
        assert plan["metadata"]["author"] == "Coach Kim"

    def test_default_start_date_from_clock(self):
        plan = repair_plan({}, clock=fixed_clock)
        assert plan["plan_weeks"][0]["days"][0]["date"] == "2026-01-05"

"""Tests for the plan generation pipeline."""

import copy
import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from training_planner import generate_plan, generate_plan_sync, repair_stored_plan
from training_planner.config import Settings
from training_planner.exceptions import AIGenerationFailure, InvalidPlanShapeError
from training_planner.llm.providers import reset_generation_client
from training_planner.models.plans import TrainingPlan
from training_planner.models.profile import UserProfile
from training_planner.planning.defaults import DEFAULT_PLAN_DESCRIPTION, DEFAULT_PLAN_MARKER
from training_planner.planning.generator import PlanGenerator, default_plan_seed


# ============================================================================
# Fixtures
# ============================================================================

def fixed_clock():
    return datetime(2026, 1, 5, 8, 0, 0)


def make_client(return_value=None, side_effect=None):
    client = MagicMock()
    client.generate = AsyncMock(return_value=return_value, side_effect=side_effect)
    return client


@pytest.fixture
def profile():
    return UserProfile(
        age=30,
        experience_level="intermediate",
        main_goal="run_10k",
        weekly_distance_km=20,
        training_days=["wtorek", "czwartek", "sobota"],
        resting_heart_rate=60,
    )


@pytest.fixture
def model_plan():
    """A two-week plan that ignores the runner's days."""
    days = [
        {
            "day_name": name,
            "date": "2026-01-05",
            "workout": {
                "type": "easy_run",
                "description": "Easy run",
                "distance": 6,
                "duration": 40,
                "target_heart_rate": {"min": 130, "max": 145, "zone": "Zone 2"},
            },
        }
        for name in ("monday", "wednesday", "friday")
    ]
    return {
        "id": "plan-10k",
        "metadata": {"discipline": "running", "target_goal": "10k", "duration_weeks": 2},
        "plan_weeks": [
            {"week_num": 1, "focus": "base", "days": copy.deepcopy(days)},
            {"week_num": 2, "focus": "base", "days": copy.deepcopy(days)},
        ],
    }


@pytest.fixture
def settings():
    return Settings(plan_author="Coach Test")


# ============================================================================
# Generation
# ============================================================================

class TestGeneratePlan:
    """Tests for PlanGenerator.generate_plan."""

    @pytest.mark.asyncio
    async def test_generated_plan_is_repaired_and_reconciled(self, profile, model_plan, settings):
        client = make_client(return_value="```json\n" + json.dumps(model_plan) + "\n```")
        generator = PlanGenerator(client=client, clock=fixed_clock, settings=settings)

        plan = await generator.generate_plan(profile)

        assert isinstance(plan, TrainingPlan)
        assert plan.id == "plan-10k"
        assert plan.week_count == 10
        assert plan.metadata.duration_weeks == 10
        for week in plan.plan_weeks:
            assert [d.day_name for d in week.days] == ["wtorek", "czwartek", "sobota"]
        assert [w.week_num for w in plan.plan_weeks] == list(range(1, 11))
        assert plan.plan_weeks[0].days[0].workout.distance == 6

    @pytest.mark.asyncio
    async def test_prompt_sent_to_client(self, profile, model_plan, settings):
        client = make_client(return_value=json.dumps(model_plan))
        generator = PlanGenerator(client=client, clock=fixed_clock, settings=settings)

        await generator.generate_plan(profile)

        prompt_text = client.generate.await_args.args[0]
        assert "wtorek" in prompt_text
        assert "sobota" in prompt_text
        assert "10" in prompt_text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["null", "", "   ", "I cannot help with that."])
    async def test_unusable_response_yields_default_plan(self, profile, raw, settings):
        generator = PlanGenerator(client=make_client(return_value=raw), clock=fixed_clock, settings=settings)

        plan = await generator.generate_plan(profile)

        assert plan.id.startswith(DEFAULT_PLAN_MARKER)
        assert plan.metadata.description == DEFAULT_PLAN_DESCRIPTION
        assert plan.metadata.author == "Coach Test"
        assert plan.week_count == 10
        for week in plan.plan_weeks:
            assert [d.day_name for d in week.days] == ["wtorek", "czwartek", "sobota"]

    @pytest.mark.asyncio
    async def test_generation_failure_propagates(self, profile, settings):
        client = make_client(side_effect=AIGenerationFailure(upstream_status=503, attempts=6))
        generator = PlanGenerator(client=client, clock=fixed_clock, settings=settings)

        with pytest.raises(AIGenerationFailure) as exc_info:
            await generator.generate_plan(profile)
        assert exc_info.value.upstream_status == 503

    @pytest.mark.asyncio
    async def test_accepts_profile_dict(self, model_plan, settings):
        client = make_client(return_value=json.dumps(model_plan))
        generator = PlanGenerator(client=client, clock=fixed_clock, settings=settings)

        plan = await generator.generate_plan(
            {"age": 40, "mainGoal": "run_5k", "trainingDays": ["pon", "śr"], "planDurationWeeks": 3}
        )

        assert plan.week_count == 3
        assert [d.day_name for d in plan.plan_weeks[0].days] == ["poniedziałek", "środa"]

    @pytest.mark.asyncio
    async def test_module_function(self, profile, model_plan, settings):
        client = make_client(return_value=json.dumps(model_plan))

        plan = await generate_plan(profile, client=client, clock=fixed_clock, settings=settings)

        assert plan.week_count == 10

    def test_sync_wrapper(self, profile, model_plan):
        client = make_client(return_value=json.dumps(model_plan))

        with patch("training_planner.planning.generator.get_settings", return_value=Settings()):
            plan = generate_plan_sync(profile, client=client)

        assert isinstance(plan, TrainingPlan)
        assert plan.week_count == 10

    @pytest.mark.asyncio
    async def test_missing_provider_configuration_is_generation_failure(self, profile):
        settings = Settings(gemini_api_key="", openai_api_key="")
        generator = PlanGenerator(clock=fixed_clock, settings=settings)

        reset_generation_client()
        try:
            with patch("training_planner.llm.providers.get_settings", return_value=settings):
                with pytest.raises(AIGenerationFailure) as exc_info:
                    await generator.generate_plan(profile)
        finally:
            reset_generation_client()

        assert exc_info.value.upstream_status == 500
        assert exc_info.value.attempts == 0
        assert exc_info.value.details["cause"] == "LLM_SERVICE_UNAVAILABLE"

    def test_client_created_lazily(self, settings):
        generator = PlanGenerator(settings=settings)
        sentinel = MagicMock()
        with patch("training_planner.planning.generator.get_generation_client", return_value=sentinel) as factory:
            assert generator.client is sentinel
            assert generator.client is sentinel
        factory.assert_called_once()


# ============================================================================
# Stored plan repair
# ============================================================================

class TestRepairStoredPlan:
    """Tests for repairing plans without a network call."""

    def test_repairs_without_client(self, model_plan, settings):
        client = make_client()
        generator = PlanGenerator(client=client, clock=fixed_clock, settings=settings)

        result = generator.repair_stored_plan(model_plan, training_days=["sob"], expected_weeks=4)

        client.generate.assert_not_awaited()
        assert len(result["plan_weeks"]) == 4
        for week in result["plan_weeks"]:
            assert [d["day_name"] for d in week["days"]] == ["sobota"]

    def test_input_not_mutated(self, model_plan, settings):
        original = copy.deepcopy(model_plan)
        generator = PlanGenerator(client=make_client(), clock=fixed_clock, settings=settings)

        generator.repair_stored_plan(model_plan, training_days=["sob"], expected_weeks=4)

        assert model_plan == original

    def test_without_days_keeps_schedule(self, model_plan, settings):
        generator = PlanGenerator(client=make_client(), clock=fixed_clock, settings=settings)

        result = generator.repair_stored_plan(model_plan)

        assert len(result["plan_weeks"]) == 2
        assert [d["day_name"] for d in result["plan_weeks"][0]["days"]] == ["poniedziałek", "środa", "piątek"]

    def test_non_object_rejected(self, settings):
        generator = PlanGenerator(client=make_client(), clock=fixed_clock, settings=settings)
        with pytest.raises(InvalidPlanShapeError):
            generator.repair_stored_plan(["not", "a", "plan"])

    def test_module_function(self, model_plan):
        with patch("training_planner.planning.generator.get_settings", return_value=Settings()):
            result = repair_stored_plan(model_plan, training_days=["wt", "pt"], clock=fixed_clock)

        assert [d["day_name"] for d in result["plan_weeks"][1]["days"]] == ["wtorek", "piątek"]


class TestDefaultPlanSeed:
    def test_seed_shape(self):
        seed = default_plan_seed(fixed_clock, author="Someone")
        assert seed["id"].startswith(DEFAULT_PLAN_MARKER)
        assert seed["metadata"]["description"] == DEFAULT_PLAN_DESCRIPTION
        assert seed["metadata"]["author"] == "Someone"
        assert "plan_weeks" not in seed

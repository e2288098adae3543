"""
Plan generation pipeline.

Flow: prompt assembly -> generation client -> response parser -> plan
repairer -> training-day reconciler. The only failure a caller can see
from ``generate_plan`` is AIGenerationFailure; every data-quality problem
in the model output is repaired locally, and a response that carries no
usable plan at all is replaced by the canonical default plan.
"""

import asyncio
import concurrent.futures
import copy
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Sequence, Union

from ..config import Settings, get_settings
from ..exceptions import AIGenerationFailure, LLMError, ResponseParseError
from ..knowledge.base import KnowledgeBase
from ..knowledge.templates import ExamplePlanSelector
from ..llm.context_builder import PlanPrompt, build_plan_prompt
from ..llm.providers import GenerationClient, get_generation_client
from ..llm.response_parser import parse_plan_response
from ..metrics.zones import HRZones
from ..models.plans import TrainingPlan
from ..models.profile import UserProfile, Weekday
from .defaults import DEFAULT_PLAN_DESCRIPTION, DEFAULT_PLAN_MARKER, default_metadata
from .reconcile import reconcile_training_days
from .repair import PlanRepairer

logger = logging.getLogger(__name__)


def default_plan_seed(clock: Callable[[], datetime] = datetime.now, author: Optional[str] = None) -> Dict[str, Any]:
    """
    Seed of the canonical default plan.

    Only id and metadata are set; the repairer synthesizes the weeks, so
    the default plan follows exactly the same rules as any repaired plan.
    """
    metadata = default_metadata(author) if author else default_metadata()
    metadata["description"] = DEFAULT_PLAN_DESCRIPTION
    timestamp_ms = int(clock().timestamp() * 1000)
    return {"id": f"{DEFAULT_PLAN_MARKER}{timestamp_ms}", "metadata": metadata}


class PlanGenerator:
    """
    Generates training plans for runner profiles.

    Args:
        client: Generation client (defaults to the configured singleton,
            created on first use)
        knowledge: Knowledge base for the prompt
        template_selector: Example plan selector for the prompt
        clock: Callable returning the current datetime
        settings: Application settings
    """

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        knowledge: Optional[KnowledgeBase] = None,
        template_selector: Optional[ExamplePlanSelector] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self._client = client
        self.knowledge = knowledge or KnowledgeBase()
        self.template_selector = template_selector or ExamplePlanSelector()
        self.clock = clock or datetime.now
        self.settings = settings or get_settings()

    @property
    def client(self) -> GenerationClient:
        if self._client is None:
            self._client = get_generation_client()
        return self._client

    def build_prompt(self, profile: UserProfile) -> PlanPrompt:
        return build_plan_prompt(
            profile,
            knowledge=self.knowledge,
            template_selector=self.template_selector,
            today=self.clock().date(),
        )

    async def generate_plan(self, profile: Union[UserProfile, Dict[str, Any]]) -> TrainingPlan:
        """
        Generate a structurally valid plan for a profile.

        Args:
            profile: Runner profile (or its dictionary form)

        Returns:
            TrainingPlan with exactly the resolved number of weeks and the
            runner's training days

        Raises:
            AIGenerationFailure: If no provider is configured or every
                provider is exhausted
        """
        if isinstance(profile, dict):
            profile = UserProfile.from_dict(profile)

        prompt = self.build_prompt(profile)
        logger.info(
            f"Generating {prompt.duration_weeks}-week plan "
            f"({profile.experience_level}, {profile.main_goal}, "
            f"{profile.training_days_per_week} days/week)"
        )

        try:
            client = self.client
        except LLMError as e:
            logger.error(f"No generation client available: {e.message}")
            raise AIGenerationFailure(
                upstream_status=e.upstream_status,
                attempts=0,
                details={"cause": e.code.value},
            ) from e

        raw_text = await client.generate(prompt.text)

        try:
            parsed: Any = parse_plan_response(raw_text)
        except ResponseParseError as e:
            logger.warning(f"No usable plan in model response ({e.code.value}); using default plan")
            parsed = default_plan_seed(self.clock, self.settings.plan_author)

        plan = self._repair_and_reconcile(
            parsed,
            training_days=profile.training_days,
            expected_weeks=prompt.duration_weeks,
            start_date=prompt.start_date,
            hr_zones=prompt.hr_zones,
        )
        return TrainingPlan.model_validate(plan)

    def repair_stored_plan(
        self,
        plan: Any,
        training_days: Optional[Sequence[Union[Weekday, str]]] = None,
        expected_weeks: Optional[int] = None,
        start_date: Optional[date] = None,
        hr_zones: Optional[HRZones] = None,
    ) -> Dict[str, Any]:
        """
        Repair and reconcile an already obtained plan without a network call.

        The input is not modified.

        Raises:
            InvalidPlanShapeError: If plan is not a dictionary
        """
        return self._repair_and_reconcile(
            copy.deepcopy(plan),
            training_days=training_days,
            expected_weeks=expected_weeks,
            start_date=start_date,
            hr_zones=hr_zones,
        )

    def _repair_and_reconcile(
        self,
        plan: Any,
        training_days: Optional[Sequence[Union[Weekday, str]]],
        expected_weeks: Optional[int],
        start_date: Optional[date],
        hr_zones: Optional[HRZones],
    ) -> Dict[str, Any]:
        repairer = PlanRepairer(
            start_date=start_date,
            clock=self.clock,
            hr_zones=hr_zones,
            author=self.settings.plan_author,
        )
        repaired = repairer.repair(plan, expected_weeks=expected_weeks)
        return reconcile_training_days(repaired, training_days)


async def generate_plan(
    profile: Union[UserProfile, Dict[str, Any]],
    client: Optional[GenerationClient] = None,
    **kwargs: Any,
) -> TrainingPlan:
    """Generate a plan with a one-off PlanGenerator. See PlanGenerator.generate_plan."""
    return await PlanGenerator(client=client, **kwargs).generate_plan(profile)


def repair_stored_plan(
    plan: Any,
    training_days: Optional[Sequence[Union[Weekday, str]]] = None,
    expected_weeks: Optional[int] = None,
    start_date: Optional[date] = None,
    hr_zones: Optional[HRZones] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Dict[str, Any]:
    """Repair and reconcile a stored plan. See PlanGenerator.repair_stored_plan."""
    generator = PlanGenerator(clock=clock)
    return generator.repair_stored_plan(
        plan,
        training_days=training_days,
        expected_weeks=expected_weeks,
        start_date=start_date,
        hr_zones=hr_zones,
    )


# Synchronous wrapper for non-async contexts
def generate_plan_sync(
    profile: Union[UserProfile, Dict[str, Any]],
    client: Optional[GenerationClient] = None,
) -> TrainingPlan:
    """
    Synchronous wrapper for plan generation.

    Uses asyncio to run the async plan generation.
    """
    generator = PlanGenerator(client=client)

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is not None:
        # Already in an async context: run on a new loop in a thread
        with concurrent.futures.ThreadPoolExecutor() as executor:
            future = executor.submit(asyncio.run, generator.generate_plan(profile))
            return future.result()
    return asyncio.run(generator.generate_plan(profile))

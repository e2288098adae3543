"""LLM access: prompt assembly, providers with retry/fallback, response parsing."""

from .context_builder import PlanPrompt, build_plan_prompt, resolve_plan_duration
from .providers import (
    GeminiProvider,
    GenerationClient,
    OpenAIProvider,
    RetryPolicy,
    get_generation_client,
    reset_generation_client,
)
from .response_parser import parse_plan_response

__all__ = [
    "PlanPrompt",
    "build_plan_prompt",
    "resolve_plan_duration",
    "GeminiProvider",
    "GenerationClient",
    "OpenAIProvider",
    "RetryPolicy",
    "get_generation_client",
    "reset_generation_client",
    "parse_plan_response",
]

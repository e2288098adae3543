"""Knowledge base and example plan templates."""

from .base import DEFAULT_KNOWLEDGE, KnowledgeBase, MISSING_PLACEHOLDER
from .templates import BUILTIN_TEMPLATES, ExamplePlanSelector, PlanTemplate

__all__ = [
    "DEFAULT_KNOWLEDGE",
    "KnowledgeBase",
    "MISSING_PLACEHOLDER",
    "BUILTIN_TEMPLATES",
    "ExamplePlanSelector",
    "PlanTemplate",
]

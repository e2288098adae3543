"""
Read-only running knowledge base.

Content is looked up by dotted key (``"distances.marathon.focus"``). A
missing key never raises: lookups degrade to a placeholder string so the
prompt can still be assembled.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

MISSING_PLACEHOLDER = "[no guidance available for {key}]"


DEFAULT_KNOWLEDGE: Dict[str, Any] = {
    "distances": {
        "5k": {
            "description": "5 kilometer race",
            "focus": ["speed endurance", "VO2max", "lactate threshold"],
            "key_training_types": ["interval training", "tempo runs", "easy runs"],
            "tapering": "7-10 days, volume reduced 20-50%",
            "emphasis": {
                "beginner": ["building base mileage", "developing running form", "gradual progression"],
                "intermediate": ["speed development", "lactate threshold improvement", "race-specific workouts"],
                "advanced": ["VO2max optimization", "race pace simulation", "advanced interval training"],
            },
        },
        "10k": {
            "description": "10 kilometer race",
            "focus": ["speed endurance", "lactate threshold", "aerobic capacity"],
            "key_training_types": ["interval training", "tempo runs", "long runs", "easy runs"],
            "tapering": "7-10 days, volume reduced 20-50%",
            "emphasis": {
                "beginner": ["building endurance", "developing pace awareness", "gradual mileage increase"],
                "intermediate": ["tempo runs", "long intervals", "progressive long runs"],
                "advanced": ["race-specific workouts", "advanced interval training", "strength endurance"],
            },
        },
        "half_marathon": {
            "description": "21.0975 kilometer race",
            "focus": ["endurance", "lactate threshold", "aerobic capacity"],
            "key_training_types": ["long runs", "tempo runs", "interval training", "easy runs"],
            "tapering": "10-14 days, volume reduced 30-60%",
            "emphasis": {
                "beginner": ["building long run endurance", "developing pacing strategy", "nutrition practice"],
                "intermediate": ["tempo runs", "progressive long runs", "race simulation workouts"],
                "advanced": ["advanced tempo runs", "long intervals", "strength endurance"],
            },
        },
        "marathon": {
            "description": "42.195 kilometer race",
            "focus": ["endurance", "fatigue resistance", "aerobic capacity"],
            "key_training_types": ["long runs", "marathon pace runs", "tempo runs", "easy runs"],
            "tapering": "2-3 weeks, volume reduced 30-70%",
            "emphasis": {
                "beginner": ["completing the distance", "long run progression", "fueling practice"],
                "intermediate": ["marathon pace runs", "progressive long runs", "mileage consistency"],
                "advanced": ["marathon-specific long runs", "high mileage", "race pace blocks"],
            },
        },
        "ultra_marathon": {
            "description": "Any race longer than a marathon",
            "focus": ["endurance", "fatigue resistance", "fueling"],
            "key_training_types": ["long runs", "back-to-back long runs", "hill training", "easy runs"],
            "tapering": "2-3 weeks, volume reduced 30-60%",
            "emphasis": {
                "beginner": ["time on feet", "walking breaks", "fueling practice"],
                "intermediate": ["back-to-back long runs", "terrain-specific training"],
                "advanced": ["race-specific terrain", "night running", "high volume weeks"],
            },
        },
    },
    "principles": {
        "progressive_overload": "Increase weekly mileage by no more than about 10% and progress intensity gradually.",
        "specificity": "Train at race-specific intensities and in race-like conditions.",
        "variation": "Vary training types, intensities and surfaces to keep adapting and reduce injury risk.",
        "recovery": "Plan rest days, sleep and easy running so that training stress is absorbed.",
    },
    "phases": {
        "base": "Aerobic foundation: easy runs, long runs and strength work with gradual mileage increase.",
        "build": "Race preparation: tempo runs, intervals and long runs at rising intensity.",
        "peak": "Race-specific work at goal pace while recovery is optimized.",
        "taper": "Reduce volume gradually while keeping some intensity before the race.",
    },
    "injury_prevention": {
        "strength_training": "Core, hip and leg strength two to three times per week.",
        "mobility": "Daily hip, ankle and thoracic spine mobility.",
        "common_injuries": {
            "runners_knee": "Strengthen quadriceps, improve form, increase mileage gradually.",
            "shin_splints": "Strengthen lower legs, increase mileage gradually, use proper footwear.",
            "itbs": "Strengthen hips, improve running form, stretch regularly.",
            "achilles_issues": "Eccentric calf raises and careful hill and speed progression.",
            "plantar_fasciitis": "Calf and foot strengthening, gradual loading.",
        },
    },
    "nutrition": {
        "pre_run": "Easily digestible carbohydrates 2-3 hours before long runs, 30-60 minutes before short runs.",
        "during_run": "30-60 g carbohydrates per hour on runs longer than 60 minutes.",
        "post_run": "Carbohydrates and protein within 30-60 minutes after running.",
    },
    "hydration": {
        "pre_run": "500-750 ml 2-3 hours before running.",
        "during_run": "150-250 ml every 15-20 minutes, with electrolytes on runs over 60 minutes.",
        "post_run": "450-675 ml per 0.5 kg of body weight lost.",
    },
    "corrective_exercises": {
        "general": [
            {"name": "Glute bridge", "sets": 3, "reps": 12},
            {"name": "Side-lying hip abduction", "sets": 3, "reps": 15},
            {"name": "Clamshell", "sets": 3, "reps": 15},
            {"name": "Plank", "sets": 3, "duration": 45},
            {"name": "Side plank", "sets": 3, "duration": 30},
            {"name": "Bodyweight squat", "sets": 3, "reps": 12},
        ],
        "knee": [
            {"name": "Wall sit", "sets": 3, "duration": 30},
            {"name": "Step-down", "sets": 3, "reps": 10},
        ],
        "ankle": [
            {"name": "Eccentric calf raise", "sets": 3, "reps": 15},
            {"name": "Single-leg balance", "sets": 3, "duration": 30},
        ],
    },
}


class KnowledgeBase:
    """Synchronous read-only lookups into nested knowledge content."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data = data if data is not None else DEFAULT_KNOWLEDGE

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "KnowledgeBase":
        """Load knowledge content from a JSON file."""
        with open(path, encoding="utf-8") as f:
            return cls(json.load(f))

    def get(self, key: str, default: Any = None) -> Any:
        """Return the raw value at a dotted key, or default."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def lookup(self, key: str) -> str:
        """
        Return the value at a dotted key formatted as prompt text.

        Missing keys yield a placeholder string instead of raising.
        """
        value = self.get(key)
        if value is None:
            logger.debug(f"Knowledge key not found: {key}")
            return MISSING_PLACEHOLDER.format(key=key)
        return _format(value)


def _format(value: Any, indent: int = 0) -> str:
    pad = "  " * indent
    if isinstance(value, dict):
        lines = []
        for key, item in value.items():
            label = str(key).replace("_", " ")
            if isinstance(item, (dict, list)) and not _is_flat_list(item):
                lines.append(f"{pad}- {label}:")
                lines.append(_format(item, indent + 1))
            else:
                lines.append(f"{pad}- {label}: {_format(item)}")
        return "\n".join(lines)
    if isinstance(value, list):
        if _is_flat_list(value):
            return ", ".join(str(v) for v in value)
        return "\n".join(f"{pad}- {_format_inline(v)}" for v in value)
    return str(value)


def _format_inline(value: Any) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    return _format(value)


def _is_flat_list(value: Any) -> bool:
    return isinstance(value, list) and all(not isinstance(v, (dict, list)) for v in value)

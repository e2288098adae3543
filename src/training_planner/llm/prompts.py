"""LLM prompt templates for training plan generation."""

# ============================================================================
# PLAN GENERATION PROMPTS
# ============================================================================

PLAN_GENERATION_PROMPT = """You are an experienced running coach creating a personalized, safe and progressive training plan.

RUNNER PROFILE:
{profile_summary}

HEALTH:
{health_summary}

PLAN DURATION:
{duration_summary}

HEART RATE ZONES ({zone_method}):
{hr_zones}
{pace_section}{example_section}
COACHING KNOWLEDGE:
{knowledge}

OUTPUT SCHEMA:
{output_schema}

HARD CONSTRAINTS:
{constraints}

Respond with a single JSON object that follows the schema. Do not add any text before or after it."""

PACE_SECTION = """
TRAINING PACES (VO2max {vo2max:.1f}):
{paces}
"""

EXAMPLE_SECTION = """
EXAMPLE PLAN (STRUCTURE ONLY, DO NOT COPY CONTENT):
{example_plan}
"""

PLAN_OUTPUT_SCHEMA = """{
  "id": "string",
  "metadata": {
    "discipline": "running",
    "target_group": "string",
    "target_goal": "string",
    "level_hint": "string",
    "days_per_week": number,
    "duration_weeks": number,
    "description": "string",
    "author": "string"
  },
  "plan_weeks": [
    {
      "week_num": number,
      "focus": "string",
      "days": [
        {
          "day_name": "one of the canonical day names",
          "date": "YYYY-MM-DD",
          "workout": {
            "type": "easy_run | tempo | intervals | long_run | recovery | fartlek | hills | rest",
            "description": "string",
            "distance": number or null,
            "duration": number,
            "target_pace": {"minutes": number, "seconds": number} or null,
            "target_heart_rate": {"min": number, "max": number, "zone": "string"},
            "support_exercises": [{"name": "string", "sets": number, "reps": number, "duration": number or null}]
          }
        }
      ]
    }
  ],
  "corrective_exercises": {
    "frequency": "string",
    "list": [{"name": "string", "sets": number, "reps": number, "duration": number or null, "description": "string"}]
  },
  "pain_monitoring": {"scale": "0-10", "rules": ["string"]},
  "notes": ["string"]
}"""

# Human-readable labels for profile enums
LEVEL_LABELS = {
    "beginner": "Beginner (runs irregularly, just getting started)",
    "intermediate": "Intermediate (runs regularly for months or years)",
    "advanced": "Advanced (runs regularly for years, races)",
}

GOAL_LABELS = {
    "start_running": "Start running",
    "general_fitness": "General fitness and health",
    "run_5k": "Prepare for a 5 km race",
    "run_10k": "Prepare for a 10 km race",
    "half_marathon": "Prepare for a half marathon",
    "marathon": "Prepare for a marathon",
    "ultra_marathon": "Prepare for an ultramarathon",
    "speed_improvement": "Improve speed over a given distance",
    "endurance_improvement": "Improve overall endurance",
}

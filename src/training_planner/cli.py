#!/usr/bin/env python3
"""
Training Planner CLI.

Generate running training plans and repair stored ones.

Usage:
    training-planner generate --profile profile.json --output plan.json
    training-planner repair --plan plan.json --days poniedziałek środa piątek
    training-planner zones --age 35 --rest-hr 55 --cooper 2600
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .exceptions import AIGenerationFailure, TrainingPlannerError
from .metrics.paces import estimated_vo2max, training_paces
from .metrics.zones import heart_rate_zones, heart_rate_zones_from_max, max_heart_rate
from .models.profile import UserProfile
from .planning.generator import PlanGenerator
from .utils.log_sanitizer import configure_logging


# ANSI color codes
class Colors:
    RED = "\033[91m"
    GREEN = "\033[92m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def _read_json(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(data: Any, output: Optional[str]) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Plan written to {output}", file=sys.stderr)
    else:
        print(text)


def cmd_generate(args) -> int:
    """Generate a plan from a profile file."""
    profile = UserProfile.from_dict(_read_json(args.profile))
    generator = PlanGenerator()

    try:
        plan = asyncio.run(generator.generate_plan(profile))
    except AIGenerationFailure as e:
        print(f"{Colors.RED}Plan generation failed: {e.message}{Colors.RESET}", file=sys.stderr)
        return 1

    _write_json(plan.model_dump(), args.output)
    return 0


def cmd_repair(args) -> int:
    """Repair a stored plan and reconcile its training days."""
    plan = _read_json(args.plan)
    generator = PlanGenerator()
    repaired = generator.repair_stored_plan(
        plan,
        training_days=args.days,
        expected_weeks=args.weeks,
    )
    _write_json(repaired, args.output)
    return 0


def cmd_zones(args) -> int:
    """Print heart rate zones and, given a Cooper distance, training paces."""
    max_hr = args.max_hr or (max_heart_rate(args.age) if args.age else None)
    if max_hr is None:
        print("Provide --max-hr or --age", file=sys.stderr)
        return 2

    if args.rest_hr:
        zones = heart_rate_zones(max_hr, args.rest_hr)
        method = "Karvonen method"
    else:
        zones = heart_rate_zones_from_max(max_hr)
        method = "% of max HR"

    print()
    print(f"{Colors.BOLD}Heart Rate Zones ({method}){Colors.RESET}")
    for number, low, high, name in zones.get_zone_ranges():
        print(f"  Zone {number} ({name}):".ljust(24) + f"{low}-{high} bpm")

    if args.cooper:
        vo2max = estimated_vo2max(args.cooper)
        paces = training_paces(vo2max)
        print()
        print(f"{Colors.BOLD}Training Paces (VO2max {vo2max:.1f}){Colors.RESET}")
        print(f"  Threshold: {paces.threshold.formatted}")
        print(f"  Marathon:  {paces.marathon.formatted}")
        print(f"  Interval:  {paces.interval.formatted}")
        print(f"  Recovery:  {paces.recovery.formatted}")
    print()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Training Planner - running plans with LLM output repair",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  training-planner generate --profile profile.json --output plan.json
  training-planner repair --plan plan.json --days pon sr pt --weeks 8
  training-planner zones --age 35 --rest-hr 55 --cooper 2600
        """,
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    generate_p = subparsers.add_parser("generate", help="Generate a plan for a profile")
    generate_p.add_argument("--profile", "-p", required=True, help="Profile JSON file")
    generate_p.add_argument("--output", "-o", help="Output file (default: stdout)")

    # Repair command
    repair_p = subparsers.add_parser("repair", help="Repair a stored plan")
    repair_p.add_argument("--plan", required=True, help="Plan JSON file")
    repair_p.add_argument("--days", nargs="+", help="Training days, in order")
    repair_p.add_argument("--weeks", type=int, help="Expected number of weeks")
    repair_p.add_argument("--output", "-o", help="Output file (default: stdout)")

    # Zones command
    zones_p = subparsers.add_parser("zones", help="Show heart rate zones and paces")
    zones_p.add_argument("--age", type=int, help="Age in years")
    zones_p.add_argument("--max-hr", type=int, help="Maximum heart rate")
    zones_p.add_argument("--rest-hr", type=int, help="Resting heart rate")
    zones_p.add_argument("--cooper", type=float, help="Cooper test distance in meters")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    commands = {
        "generate": cmd_generate,
        "repair": cmd_repair,
        "zones": cmd_zones,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        return command(args)
    except TrainingPlannerError as e:
        print(f"{Colors.RED}Error [{e.code.value}]: {e.message}{Colors.RESET}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

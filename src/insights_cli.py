"""
Smart Insights command-line runner
==================================
Reads one JSON context snapshot, runs the insight pipeline and prints the
ranked insights as JSON.

Usage:
    python insights_cli.py snapshot.json
    python insights_cli.py snapshot.json --max 5 --min-priority 40
    python insights_cli.py snapshot.json --sources quality,goals,habits
    python insights_cli.py snapshot.json --preferences prefs.json --mute info-sync

Environment (.env supported):
    INSIGHTS_MAX, INSIGHTS_MIN_PRIORITY, INSIGHTS_PREFERENCES_PATH,
    INSIGHTS_ENABLED_SOURCES
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("insights_cli")

from constants import DEFAULT_MAX_INSIGHTS, DEFAULT_MIN_PRIORITY
from insight_models import InsightGeneratorContext
from pipeline.insight_pipeline import ALL_SOURCES, generate_insights
from pipeline.preferences import load_preferences, save_preferences


def _split_sources(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    sources = [s.strip() for s in value.split(",") if s.strip()]
    unknown = sorted(set(sources) - ALL_SOURCES)
    if unknown:
        log.warning("Ignoring unknown insight sources: %s", ", ".join(unknown))
    return [s for s in sources if s in ALL_SOURCES]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart Insights pipeline")
    parser.add_argument("snapshot", help="Path to a JSON context snapshot")
    parser.add_argument("--max", type=int,
                        default=int(os.getenv("INSIGHTS_MAX", DEFAULT_MAX_INSIGHTS)),
                        help=f"Max insights returned (default: {DEFAULT_MAX_INSIGHTS})")
    parser.add_argument("--min-priority", type=int,
                        default=int(os.getenv("INSIGHTS_MIN_PRIORITY", DEFAULT_MIN_PRIORITY)),
                        help=f"Drop insights below this priority (default: {DEFAULT_MIN_PRIORITY})")
    parser.add_argument("--sources", default=os.getenv("INSIGHTS_ENABLED_SOURCES"),
                        help="Comma-separated generator sources to run (default: all)")
    parser.add_argument("--preferences", default=os.getenv("INSIGHTS_PREFERENCES_PATH"),
                        help="JSON preferences file")
    parser.add_argument("--mute", action="append", default=[],
                        help="Mute an insight id and save it to --preferences")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        with open(args.snapshot, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        log.error("Could not read snapshot %s: %s", args.snapshot, e)
        return 1
    if not isinstance(payload, dict):
        log.error("Snapshot %s must hold a JSON object", args.snapshot)
        return 1

    try:
        preferences = load_preferences(args.preferences)
    except (OSError, ValueError) as e:
        log.error("Could not load insight preferences: %s", e)
        return 1
    if args.mute:
        preferences.muted_insights = preferences.muted_insights | frozenset(args.mute)
        if args.preferences:
            save_preferences(preferences, args.preferences)

    context = InsightGeneratorContext.from_dict(payload)
    insights = generate_insights(
        context,
        max_insights=args.max,
        min_priority=args.min_priority,
        enabled_sources=_split_sources(args.sources),
        preferences=preferences,
    )
    json.dump([i.to_dict() for i in insights], sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())

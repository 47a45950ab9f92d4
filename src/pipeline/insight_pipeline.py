"""
Smart insight pipeline: generator registry + aggregation.

Stages:
  1. Run every enabled generator against the shared context (each isolated).
  2. Deduplicate: keep the highest-priority insight per (source, type).
  3. Personalise: enabled types, muted ids, priority overrides.
  4. Prioritise: priority + type weight + freshness bonus, stable sort.
  5. Filter: drop priority < min_priority.
  6. Limit: keep the first max_insights.

The pipeline never raises because of a generator: a failing generator is
logged and contributes nothing.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from constants import (
    DEFAULT_MAX_INSIGHTS,
    DEFAULT_MIN_PRIORITY,
    FRESHNESS_MAX_BONUS,
    SOURCE_ACHIEVEMENTS,
    SOURCE_AI_RECOMMENDATIONS,
    SOURCE_ANOMALIES,
    SOURCE_CORRELATIONS,
    SOURCE_GOALS,
    SOURCE_HABIT_ACHIEVEMENTS,
    SOURCE_HABIT_OPTIMIZATION,
    SOURCE_HABIT_PATTERNS,
    SOURCE_HABIT_RISKS,
    SOURCE_HABITS,
    SOURCE_INFO,
    SOURCE_PREDICTIONS,
    SOURCE_QUALITY,
    SOURCE_RECOMMENDATIONS,
    SOURCE_SOCIAL,
    SOURCE_TEMPORAL,
    SOURCE_TRAINER,
    SOURCE_TRENDS,
    TYPE_WEIGHTS,
)
from insights import advanced_generators, generators, habit_generators
from insight_models import InsightGeneratorContext, InsightPreferences, SmartInsight

log = logging.getLogger("insight_pipeline")

Generator = Callable[[InsightGeneratorContext], List[SmartInsight]]

# Ordered registry.  Names double as the insight ``source`` each one emits,
# so ``enabled_sources`` filters both generators and their output.
INSIGHT_GENERATORS: List[Tuple[str, Generator]] = [
    (SOURCE_QUALITY, generators.generate_quality_insights),
    (SOURCE_TRENDS, generators.generate_trend_insights),
    (SOURCE_GOALS, generators.generate_goal_insights),
    (SOURCE_HABITS, generators.generate_habit_insights),
    (SOURCE_ACHIEVEMENTS, generators.generate_achievement_insights),
    (SOURCE_INFO, generators.generate_info_insights),
    (SOURCE_RECOMMENDATIONS, generators.generate_recommendation_insights),
    (SOURCE_CORRELATIONS, advanced_generators.generate_correlation_insights),
    (SOURCE_ANOMALIES, advanced_generators.generate_anomaly_insights),
    (SOURCE_PREDICTIONS, advanced_generators.generate_prediction_insights),
    (SOURCE_SOCIAL, advanced_generators.generate_social_insights),
    (SOURCE_TRAINER, advanced_generators.generate_trainer_insights),
    (SOURCE_TEMPORAL, advanced_generators.generate_temporal_insights),
    (SOURCE_HABIT_PATTERNS, habit_generators.generate_pattern_insights),
    (SOURCE_HABIT_RISKS, habit_generators.generate_risk_insights),
    (SOURCE_HABIT_OPTIMIZATION, habit_generators.generate_optimization_insights),
    (SOURCE_HABIT_ACHIEVEMENTS, habit_generators.generate_habit_achievement_insights),
    (SOURCE_AI_RECOMMENDATIONS, habit_generators.generate_ai_recommendation_insights),
]

ALL_SOURCES = frozenset(name for name, _ in INSIGHT_GENERATORS)


def run_generators(context: InsightGeneratorContext,
                   enabled_sources: Optional[Iterable[str]] = None,
                   registry: Optional[Sequence[Tuple[str, Generator]]] = None) -> List[SmartInsight]:
    """Run each enabled generator in registry order and concatenate results."""
    registry = INSIGHT_GENERATORS if registry is None else registry
    enabled = set(enabled_sources) if enabled_sources is not None else None

    collected: List[SmartInsight] = []
    for name, generator in registry:
        if enabled is not None and name not in enabled:
            continue
        try:
            produced = list(generator(context) or [])
        except Exception:
            log.warning("Insight generator '%s' failed; skipping it", name, exc_info=True)
            continue
        log.debug("   %s: %d insights", name, len(produced))
        collected.extend(produced)

    if enabled is not None:
        collected = [i for i in collected if i.source in enabled]
    return collected


def deduplicate_insights(insights: Sequence[SmartInsight]) -> List[SmartInsight]:
    """Keep the highest-priority insight per (source, type); first wins ties."""
    best = {}
    for insight in insights:
        key = (insight.source, insight.type)
        current = best.get(key)
        if current is None or insight.priority > current.priority:
            best[key] = insight
    return list(best.values())


def personalize_insights(insights: Sequence[SmartInsight],
                         preferences: Optional[InsightPreferences]) -> List[SmartInsight]:
    if preferences is None:
        return list(insights)

    out = []
    for insight in insights:
        if insight.type not in preferences.enabled_types:
            continue
        if insight.id in preferences.muted_insights:
            continue
        override = preferences.priority_overrides.get(insight.id)
        if override is not None:
            insight = dataclasses.replace(insight, priority=override)
        out.append(insight)
    return out


def insight_score(insight: SmartInsight, now: datetime) -> float:
    hours = max(0.0, (now - insight.timestamp).total_seconds() / 3600)
    freshness = max(0.0, FRESHNESS_MAX_BONUS - hours)
    return insight.priority + TYPE_WEIGHTS.get(insight.type, 0) + freshness


def prioritize_insights(insights: Sequence[SmartInsight],
                        now: Optional[datetime] = None) -> List[SmartInsight]:
    """Sort by final score, highest first; ties keep their input order."""
    now = now or datetime.now()
    return sorted(insights, key=lambda i: insight_score(i, now), reverse=True)


def filter_insights(insights: Sequence[SmartInsight],
                    min_priority: int = DEFAULT_MIN_PRIORITY) -> List[SmartInsight]:
    return [i for i in insights if i.priority >= min_priority]


def generate_insights(context: InsightGeneratorContext,
                      max_insights: int = DEFAULT_MAX_INSIGHTS,
                      min_priority: int = DEFAULT_MIN_PRIORITY,
                      enabled_sources: Optional[Iterable[str]] = None,
                      preferences: Optional[InsightPreferences] = None) -> List[SmartInsight]:
    """Turn one context snapshot into the final, ranked insight list."""
    raw = run_generators(context, enabled_sources)
    unique = deduplicate_insights(raw)
    personal = personalize_insights(unique, preferences)
    ranked = prioritize_insights(personal, context.now)
    kept = filter_insights(ranked, min_priority)
    final = kept[:max(0, max_insights)]

    log.info(
        "Insights: %d generated, %d unique, %d personalised, %d kept, %d returned",
        len(raw), len(unique), len(personal), len(kept), len(final),
    )
    return final

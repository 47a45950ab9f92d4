"""
Core insight generators: data quality, metric trends, goals, habit
summary, metric achievements, sync info and metric coverage.

Each generator is a pure ``(InsightGeneratorContext) -> List[SmartInsight]``
function.  A missing context field yields an empty list.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from constants import (
    ACHIEVEMENT,
    CRITICAL,
    INFO,
    KEY_COVERAGE_METRICS,
    RECOMMENDATION,
    SOURCE_ACHIEVEMENTS,
    SOURCE_GOALS,
    SOURCE_HABITS,
    SOURCE_INFO,
    SOURCE_QUALITY,
    SOURCE_RECOMMENDATIONS,
    SOURCE_TRENDS,
    TREND_WATCH_METRICS,
    WARNING,
)
from insight_models import InsightAction, InsightGeneratorContext, SmartInsight


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def make_insight(context: InsightGeneratorContext, *, id: str, type: str, emoji: str,
                 message: str, priority: float, source: str,
                 action_type: str = "navigate", path: Optional[str] = None,
                 data: Optional[Dict[str, Any]] = None) -> SmartInsight:
    """Build an insight stamped with the context's generation time."""
    return SmartInsight(
        id=id,
        type=type,
        emoji=emoji,
        message=message,
        priority=priority,
        source=source,
        action=InsightAction(type=action_type, path=path, data=data),
        timestamp=context.now,
    )


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


# ─── Quality ───────────────────────────────────────────────

def generate_quality_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    quality = context.quality_data
    if quality is None:
        return []

    insights = []
    if quality.poor:
        insights.append(make_insight(
            context,
            id="quality-poor",
            type=CRITICAL,
            emoji="🚨",
            message=f"{_plural(len(quality.poor), 'metric')} with poor data quality. Check your data sources.",
            priority=95,
            source=SOURCE_QUALITY,
            path="/data-quality",
        ))
    elif quality.fair:
        insights.append(make_insight(
            context,
            id="quality-fair",
            type=WARNING,
            emoji="⚠️",
            message=f"{_plural(len(quality.fair), 'metric')} with only fair data quality.",
            priority=70,
            source=SOURCE_QUALITY,
            path="/data-quality",
        ))
    return insights


# ─── Trends ────────────────────────────────────────────────

def generate_trend_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    """Last 3 days vs the 4 days before, on the watch-list metrics."""
    metrics = context.metrics_data
    if metrics is None or not metrics.history:
        return []

    insights = []
    for metric_name in TREND_WATCH_METRICS:
        history = [
            m for m in metrics.history
            if m.metric_name == metric_name and m.measurement_date is not None
        ]
        history.sort(key=lambda m: m.measurement_date, reverse=True)
        if len(history) < 7:
            continue

        recent = sum(m.value for m in history[:3]) / 3
        previous = sum(m.value for m in history[3:7]) / 4
        if previous == 0:
            continue
        change = (recent - previous) / previous * 100
        if abs(change) <= 15:
            continue

        rising = change > 0
        slug = slugify(metric_name)
        insights.append(make_insight(
            context,
            id=f"trend-{slug}",
            type=ACHIEVEMENT if rising else WARNING,
            emoji="📈" if rising else "📉",
            message=f"{metric_name} changed {change:+.0f}% compared to earlier this week.",
            priority=75 if abs(change) > 25 else 55,
            source=SOURCE_TRENDS,
            path=f"/metrics/{slug}",
        ))
    return insights


# ─── Goals ─────────────────────────────────────────────────

def generate_goal_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    goals = context.goals_data
    if goals is None:
        return []

    now = context.now
    insights = []
    for goal in goals.all_goals():
        path = f"/goals/{goal.id}"
        measurements = goal.measurements_newest_first()
        latest = measurements[0] if measurements else None

        last_update = latest.created_at if latest else goal.created_at
        if last_update is not None:
            idle_days = (now - last_update).days
            if idle_days > 7:
                insights.append(make_insight(
                    context,
                    id=f"goal-stale-{goal.id}",
                    type=WARNING,
                    emoji="⚠️",
                    message=f"\"{goal.display_name}\" hasn't been updated in {idle_days} days.",
                    priority=65,
                    source=SOURCE_GOALS,
                    path=path,
                ))

        if latest is None or not goal.target_value or goal.target_value <= 0:
            continue

        progress = latest.value / goal.target_value * 100
        if 80 <= progress < 100:
            insights.append(make_insight(
                context,
                id=f"goal-near-{goal.id}",
                type=ACHIEVEMENT,
                emoji="🎯",
                message=f"\"{goal.display_name}\" is {round(progress)}% complete. Almost there!",
                priority=85,
                source=SOURCE_GOALS,
                path=path,
            ))
        elif (progress >= 100 and latest.created_at is not None
              and latest.created_at.date() == now.date()):
            insights.append(make_insight(
                context,
                id=f"goal-complete-{goal.id}",
                type=ACHIEVEMENT,
                emoji="🎉",
                message=f"Goal reached: \"{goal.display_name}\"!",
                priority=90,
                source=SOURCE_GOALS,
                path=path,
            ))
    return insights


# ─── Habits (aggregate) ────────────────────────────────────

def generate_habit_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    habits = context.habits_data
    if not habits:
        return []

    insights = []
    streak_habit = None
    for habit in habits:
        if habit.current_streak > 0 and (
                streak_habit is None or habit.current_streak > streak_habit.current_streak):
            streak_habit = habit

    if streak_habit is not None and streak_habit.current_streak >= 5:
        insights.append(make_insight(
            context,
            id="habit-streak",
            type=ACHIEVEMENT,
            emoji="🔥",
            message=f"{streak_habit.current_streak}-day streak on \"{streak_habit.display_name}\"!",
            priority=80,
            source=SOURCE_HABITS,
            path="/habits",
        ))

    done_today = {
        c.habit_id for c in context.habit_completions or ()
        if c.completed_at.date() == context.now.date()
    }
    completed = sum(1 for h in habits if h.completed_today or h.id in done_today)
    total = len(habits)

    if completed == total:
        insights.append(make_insight(
            context,
            id="habits-all-complete",
            type=ACHIEVEMENT,
            emoji="✅",
            message=f"All habits done today ({completed}/{total}). Great job!",
            priority=75,
            source=SOURCE_HABITS,
            path="/habits",
        ))
    elif completed > 0:
        insights.append(make_insight(
            context,
            id="habits-progress",
            type=INFO,
            emoji="📝",
            message=f"{completed} of {total} habits done today. Keep going!",
            priority=40,
            source=SOURCE_HABITS,
            path="/habits",
        ))
    return insights


# ─── Metric achievements ───────────────────────────────────

def generate_achievement_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    today = context.today_metrics
    if today is None:
        return []

    insights = []
    if today.steps is not None and today.steps > 15000:
        insights.append(make_insight(
            context,
            id="achievement-steps",
            type=ACHIEVEMENT,
            emoji="🏆",
            message=f"Outstanding: {today.steps:,.0f} steps today!",
            priority=88,
            source=SOURCE_ACHIEVEMENTS,
            path="/metrics/steps",
        ))
    if today.recovery is not None and today.recovery >= 85:
        insights.append(make_insight(
            context,
            id="achievement-recovery",
            type=ACHIEVEMENT,
            emoji="💪",
            message=f"Recovery at {today.recovery:.0f}%. A great day for a hard session.",
            priority=78,
            source=SOURCE_ACHIEVEMENTS,
            path="/metrics/recovery",
        ))
    return insights


# ─── Info ──────────────────────────────────────────────────

def generate_info_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    metrics = context.metrics_data
    if metrics is None or not metrics.latest:
        return []

    today = context.now.date()
    synced = [
        m for m in metrics.latest
        if m.measurement_date is not None and m.measurement_date.date() == today
    ]
    if not synced:
        return []
    return [make_insight(
        context,
        id="info-sync",
        type=INFO,
        emoji="📊",
        message=f"{_plural(len(synced), 'metric')} synced today.",
        priority=35,
        source=SOURCE_INFO,
        path="/integrations",
    )]


# ─── Coverage recommendations ──────────────────────────────

def generate_recommendation_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    """Suggest tracking the first key metric missing from the latest data."""
    metrics = context.metrics_data
    if metrics is None or not metrics.latest:
        return []

    present = {m.metric_name for m in metrics.latest}
    for metric_name in KEY_COVERAGE_METRICS:
        if metric_name in present:
            continue
        return [make_insight(
            context,
            id=f"recommendation-add-{slugify(metric_name)}",
            type=RECOMMENDATION,
            emoji="💡",
            message=f"Start tracking {metric_name} for more complete insights.",
            priority=45,
            source=SOURCE_RECOMMENDATIONS,
            path="/add-metric",
        )]
    return []

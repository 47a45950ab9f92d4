"""Small builders for test snapshots."""

from datetime import datetime, timedelta

from insight_models import (
    Goal,
    GoalMeasurement,
    Habit,
    HabitCompletion,
    InsightGeneratorContext,
    MetricObservation,
)

# Monday evening; every test that reasons about "today" uses this instant.
NOW = datetime(2026, 3, 16, 20, 0)


def daily_completions(habit_id, days, now=NOW, hour=None, start=0):
    """One completion per day for ``days`` days, newest ``start`` days ago."""
    out = []
    for i in range(start, start + days):
        ts = now - timedelta(days=i)
        if hour is not None:
            ts = ts.replace(hour=hour, minute=0)
        out.append(HabitCompletion(habit_id=habit_id, completed_at=ts, id=f"{habit_id}-{i}"))
    return out


def completions_on(habit_id, timestamps):
    return [HabitCompletion(habit_id=habit_id, completed_at=ts) for ts in timestamps]


def habit(habit_id, **kwargs):
    kwargs.setdefault("title", habit_id.title())
    return Habit(id=habit_id, **kwargs)


def observations(metric_name, values, now=NOW, hour=7, start=1):
    """``values`` newest first, one per day starting ``start`` days ago."""
    return [
        MetricObservation(
            metric_name=metric_name,
            value=v,
            measurement_date=(now - timedelta(days=start + i)).replace(hour=hour, minute=0),
            source="test",
        )
        for i, v in enumerate(values)
    ]


def goal(goal_id, target, values=(), now=NOW, created_days_ago=30, title=None):
    """``values`` newest first, one measurement per day starting today."""
    measurements = tuple(
        GoalMeasurement(value=v, created_at=now - timedelta(days=i))
        for i, v in enumerate(values)
    )
    return Goal(
        id=goal_id,
        title=title or goal_id,
        target_value=target,
        measurements=measurements,
        created_at=now - timedelta(days=created_days_ago),
    )


def context(**kwargs):
    kwargs.setdefault("now", NOW)
    return InsightGeneratorContext(**kwargs)

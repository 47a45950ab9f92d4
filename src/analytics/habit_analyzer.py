"""
Per-habit analytics over the completion event log.

Completion patterns and optimal time, same-day habit chains,
consistency / momentum / risk scoring and streak-quality classification.
Completions are read-only; every function filters by ``habit_id`` itself,
so callers may pass the full log for all habits.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from constants import (
    MIN_CHAIN_COOCCURRENCES,
    MIN_CHAIN_RATE,
    MIN_MOMENTUM_COMPLETIONS,
    MIN_PATTERN_COMPLETIONS,
)
from insight_models import Habit, HabitCompletion, clamp_score


def habit_time_slot(hour: int) -> str:
    if hour < 6:
        return "night"
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    if hour < 22:
        return "evening"
    return "night"


def habit_completions(habit_id: str,
                      completions: Sequence[HabitCompletion]) -> List[HabitCompletion]:
    """Completions of one habit, oldest first."""
    own = [c for c in completions if c.habit_id == habit_id]
    own.sort(key=lambda c: c.completed_at)
    return own


def completions_in_window(habit_id: str, completions: Sequence[HabitCompletion],
                          days: int, now: datetime) -> List[HabitCompletion]:
    start = now - timedelta(days=days)
    return [c for c in habit_completions(habit_id, completions) if c.completed_at >= start]


def completion_days(completions: Sequence[HabitCompletion]) -> Dict[str, Set[date]]:
    """Distinct calendar days on which each habit was completed."""
    days: Dict[str, Set[date]] = defaultdict(set)
    for c in completions:
        days[c.habit_id].add(c.completed_at.date())
    return dict(days)


def streak_ratio(habit: Habit) -> float:
    """current/best streak as a percentage; current*10 before any best streak."""
    if habit.best_streak > 0:
        return habit.current_streak / habit.best_streak * 100
    return habit.current_streak * 10


# ─── Patterns ──────────────────────────────────────────────

def analyze_completion_patterns(habit_id: str,
                                completions: Sequence[HabitCompletion]) -> List[Dict[str, Any]]:
    """Bucket completions by (time of day, weekday), biggest share first.

    Needs at least 5 completions.  ``day_of_week`` is 0 for Monday.
    """
    own = habit_completions(habit_id, completions)
    if len(own) < MIN_PATTERN_COMPLETIONS:
        return []

    counts: Dict[Tuple[str, int], int] = {}
    for c in own:
        key = (habit_time_slot(c.completed_at.hour), c.completed_at.weekday())
        counts[key] = counts.get(key, 0) + 1

    total = len(own)
    patterns = [
        {
            "habit_id": habit_id,
            "time_of_day": slot,
            "day_of_week": weekday,
            "success_rate": n / total * 100,
            "occurrences": n,
        }
        for (slot, weekday), n in counts.items()
    ]
    patterns.sort(key=lambda p: p["success_rate"], reverse=True)
    return patterns


def find_optimal_habit_time(habit_id: str,
                            completions: Sequence[HabitCompletion]) -> Optional[Dict[str, Any]]:
    patterns = analyze_completion_patterns(habit_id, completions)
    if not patterns:
        return None
    best = patterns[0]
    total = len(habit_completions(habit_id, completions))
    return {
        "time": best["time_of_day"],
        "success_rate": best["success_rate"],
        "confidence": min(best["occurrences"] / total * 100, 100),
    }


def detect_habit_chains(completions: Sequence[HabitCompletion]) -> List[Dict[str, Any]]:
    """Pairs of habits completed on the same day, strongest first.

    A pair needs at least 3 shared days and a co-occurrence rate above 50%
    of the less active habit's days.
    """
    first_by_day: Dict[date, Dict[str, datetime]] = defaultdict(dict)
    for c in completions:
        day = c.completed_at.date()
        seen = first_by_day[day].get(c.habit_id)
        if seen is None or c.completed_at < seen:
            first_by_day[day][c.habit_id] = c.completed_at

    active_days: Dict[str, int] = defaultdict(int)
    pairs: Dict[Tuple[str, str], List[float]] = {}
    for day in sorted(first_by_day):
        firsts = first_by_day[day]
        for habit_id in firsts:
            active_days[habit_id] += 1
        ordered = sorted(firsts, key=lambda h: (firsts[h], h))
        for h1, h2 in combinations(ordered, 2):
            key = tuple(sorted((h1, h2)))
            gap = abs((firsts[h2] - firsts[h1]).total_seconds()) / 60
            pairs.setdefault(key, []).append(gap)

    chains = []
    for (h1, h2), gaps in pairs.items():
        min_days = min(active_days[h1], active_days[h2])
        if min_days == 0 or len(gaps) < MIN_CHAIN_COOCCURRENCES:
            continue
        rate = len(gaps) / min_days * 100
        if rate <= MIN_CHAIN_RATE:
            continue
        chains.append({
            "habit1": h1,
            "habit2": h2,
            "co_occurrence_rate": rate,
            "co_occurrences": len(gaps),
            "avg_time_difference": sum(gaps) / len(gaps),
        })
    chains.sort(key=lambda c: c["co_occurrence_rate"], reverse=True)
    return chains


# ─── Scores ────────────────────────────────────────────────

def calculate_consistency_score(habit: Habit, completions: Sequence[HabitCompletion],
                                days: int = 30, now: Optional[datetime] = None) -> int:
    """0-100 blend of completion rate (40%), streak ratio (30%), regularity (30%).

    Regularity is 100 minus ten times the variance of day gaps between
    completions; with fewer than two completions in the window it is
    left out entirely.
    """
    now = now or datetime.now()
    if not habit_completions(habit.id, completions):
        return 0

    recent = completions_in_window(habit.id, completions, days, now)
    completion_score = min(len(recent) / days * 100, 100) * 0.4
    streak_score = min(streak_ratio(habit), 100) * 0.3

    if len(recent) < 2:
        return clamp_score(completion_score + streak_score)

    gaps = [
        (b.completed_at.date() - a.completed_at.date()).days
        for a, b in zip(recent, recent[1:])
    ]
    variance = float(np.var(gaps))
    regularity_score = max(0.0, 100 - variance * 10) * 0.3
    return clamp_score(completion_score + streak_score + regularity_score)


def calculate_habit_momentum(habit_id: str, completions: Sequence[HabitCompletion],
                             now: Optional[datetime] = None) -> float:
    """Week-over-week % change in completion count (0 below 7 completions)."""
    now = now or datetime.now()
    own = habit_completions(habit_id, completions)
    if len(own) < MIN_MOMENTUM_COMPLETIONS:
        return 0.0

    this_week = 0
    last_week = 0
    for c in own:
        days_ago = (now - c.completed_at).total_seconds() / 86400
        if days_ago < 7:
            this_week += 1
        elif days_ago < 14:
            last_week += 1

    if last_week == 0:
        return 100.0 if this_week > 0 else 0.0
    return (this_week - last_week) / last_week * 100


def predict_habit_risk(habit: Habit, completions: Sequence[HabitCompletion],
                       now: Optional[datetime] = None) -> int:
    """0-100 risk of breaking the streak; 100 when never completed."""
    now = now or datetime.now()
    own = habit_completions(habit.id, completions)
    if not own:
        return 100

    days_since = (now.date() - own[-1].completed_at.date()).days
    if days_since <= 0:
        risk = 0.0
    elif days_since == 1:
        risk = 20.0
    else:
        risk = 40.0

    ratio = min(habit.current_streak / habit.best_streak, 1.0) if habit.best_streak > 0 else 1.0
    risk += (1 - ratio) * 30

    consistency = calculate_consistency_score(habit, completions, 14, now)
    risk += (100 - consistency) * 0.3
    return clamp_score(risk)


def analyze_streak_quality(habit: Habit, completions: Sequence[HabitCompletion],
                           now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    consistency = calculate_consistency_score(habit, completions, 30, now)
    momentum = calculate_habit_momentum(habit.id, completions, now)
    stability = (consistency + max(0.0, momentum)) / 2

    if stability >= 80:
        quality = "excellent"
    elif stability >= 60:
        quality = "good"
    elif stability >= 40:
        quality = "fair"
    else:
        quality = "poor"
    return {"quality": quality, "stability": round(stability)}

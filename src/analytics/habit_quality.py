"""
Habit Quality Scorer
====================
Composite 0-100 score per habit with a letter grade and one recommendation.

    overall = 0.4·consistency + 0.2·streak_stability + 0.2·trend + 0.2·completion_rate

where every factor is already in [0, 100]:
  • consistency     : 30-day consistency score
  • streak_stability: min(current/best streak %, 100)
  • trend           : 50 + momentum/2, clamped
  • completion_rate : completions in window / window days, capped

Recommendations are picked by the first matching condition, in order:
excellent score, low consistency, low streak ratio, negative momentum,
low completion rate, otherwise generic encouragement.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from analytics.habit_analyzer import (
    calculate_consistency_score,
    calculate_habit_momentum,
    completions_in_window,
    streak_ratio,
)
from insight_models import Habit, HabitCompletion, HabitQualityScore, clamp_score

GRADE_BANDS = [(90, "A"), (80, "B"), (70, "C"), (60, "D")]

LOW_CONSISTENCY = 50
LOW_STREAK_STABILITY = 50
LOW_COMPLETION_RATE = 50

NEEDS_ATTENTION_BELOW = 70
TOP_PERFORMER_FROM = 80

RECOMMENDATIONS = {
    "excellent": "Excellent work! This habit is firmly established, keep it up.",
    "regularity": "Improve regularity: try to complete this habit at the same time every day.",
    "streak": "Protect the streak: set a reminder so you don't miss the next day.",
    "restart": "Momentum is dropping. Restart small with an easier version of this habit.",
    "frequency": "Increase frequency: aim for a few more completions each week.",
    "encourage": "Good progress. Stay consistent and the results will follow.",
}


def grade_for(score: float) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return "F"


def _recommendation(overall: int, consistency: int, streak_stability: int,
                    momentum: float, completion_rate: int) -> str:
    if overall >= 90:
        return RECOMMENDATIONS["excellent"]
    if consistency < LOW_CONSISTENCY:
        return RECOMMENDATIONS["regularity"]
    if streak_stability < LOW_STREAK_STABILITY:
        return RECOMMENDATIONS["streak"]
    if momentum < 0:
        return RECOMMENDATIONS["restart"]
    if completion_rate < LOW_COMPLETION_RATE:
        return RECOMMENDATIONS["frequency"]
    return RECOMMENDATIONS["encourage"]


def calculate_habit_quality(habit: Habit, completions: Sequence[HabitCompletion],
                            days: int = 30, now: Optional[datetime] = None) -> HabitQualityScore:
    now = now or datetime.now()
    consistency = calculate_consistency_score(habit, completions, days, now)
    streak_stability = clamp_score(min(streak_ratio(habit), 100))
    momentum = calculate_habit_momentum(habit.id, completions, now)
    trend = clamp_score(max(0.0, 50 + momentum / 2))
    window = completions_in_window(habit.id, completions, days, now)
    completion_rate = clamp_score(min(len(window) / days * 100, 100))

    overall = clamp_score(
        0.4 * consistency + 0.2 * streak_stability + 0.2 * trend + 0.2 * completion_rate
    )
    return HabitQualityScore(
        habit_id=habit.id,
        overall_score=overall,
        factors={
            "consistency": clamp_score(consistency),
            "streak_stability": streak_stability,
            "trend": trend,
            "completion_rate": completion_rate,
        },
        grade=grade_for(overall),
        recommendation=_recommendation(
            overall, consistency, streak_stability, momentum, completion_rate
        ),
    )


def calculate_habits_quality(habits: Sequence[Habit], completions: Sequence[HabitCompletion],
                             days: int = 30, now: Optional[datetime] = None) -> List[HabitQualityScore]:
    now = now or datetime.now()
    return [calculate_habit_quality(h, completions, days, now) for h in habits]


def get_habits_needing_attention(scores: Sequence[HabitQualityScore],
                                 threshold: int = NEEDS_ATTENTION_BELOW) -> List[HabitQualityScore]:
    """Scores below ``threshold``, weakest first."""
    weak = [s for s in scores if s.overall_score < threshold]
    return sorted(weak, key=lambda s: s.overall_score)


def get_top_performing_habits(scores: Sequence[HabitQualityScore],
                              threshold: int = TOP_PERFORMER_FROM) -> List[HabitQualityScore]:
    """Scores at or above ``threshold``, strongest first."""
    strong = [s for s in scores if s.overall_score >= threshold]
    return sorted(strong, key=lambda s: s.overall_score, reverse=True)

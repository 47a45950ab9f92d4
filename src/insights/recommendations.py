"""Actionable habit recommendations built from the habit analytics layer."""

from __future__ import annotations

from typing import List, Sequence

from constants import (
    HABIT_CATEGORIES,
    OPTIMAL_TIME_MIN_CONFIDENCE,
    OPTIMAL_TIME_MIN_SUCCESS_RATE,
    TIME_SLOTS,
)
from analytics.habit_analyzer import find_optimal_habit_time
from analytics.habit_correlation import find_habit_synergies
from analytics.habit_quality import get_habits_needing_attention, get_top_performing_habits
from insight_models import Habit, HabitCompletion, HabitQualityScore, HabitRecommendation

MAX_RECOMMENDATIONS = 10
GAP_SLOTS = ("morning", "evening")
MAX_HABITS_FOR_CATEGORY_GAP = 10


def suggest_optimal_habit_times(habits: Sequence[Habit],
                                completions: Sequence[HabitCompletion]) -> List[HabitRecommendation]:
    recs = []
    for habit in habits:
        optimal = find_optimal_habit_time(habit.id, completions)
        if not optimal:
            continue
        if (optimal["confidence"] <= OPTIMAL_TIME_MIN_CONFIDENCE
                or optimal["success_rate"] <= OPTIMAL_TIME_MIN_SUCCESS_RATE):
            continue
        current = habit.preferred_time or "anytime"
        if current == optimal["time"]:
            continue
        recs.append(HabitRecommendation(
            type="optimize_time",
            priority=round(optimal["confidence"]),
            title=f"Move \"{habit.display_name}\" to the {optimal['time']}",
            description=(
                f"{round(optimal['success_rate'])}% of your completions happen "
                f"in the {optimal['time']}."
            ),
            data={
                "habitId": habit.id,
                "suggestedTime": optimal["time"],
                "currentTime": current,
                "improvementPercent": optimal["success_rate"],
            },
        ))
    return recs


def suggest_gap_fillers(habits: Sequence[Habit]) -> List[HabitRecommendation]:
    recs = []
    covered_slots = {h.preferred_time for h in habits if h.preferred_time}
    for slot in TIME_SLOTS:
        if slot in covered_slots or slot not in GAP_SLOTS:
            continue
        recs.append(HabitRecommendation(
            type="fill_gap",
            priority=70,
            title=f"Add a {slot} habit",
            description=f"You have no habits scheduled for the {slot}.",
            data={"suggestedTime": slot},
        ))

    covered_categories = {h.category for h in habits if h.category}
    missing = [c for c in HABIT_CATEGORIES if c not in covered_categories]
    if missing and len(habits) < MAX_HABITS_FOR_CATEGORY_GAP:
        category = missing[0]
        recs.append(HabitRecommendation(
            type="fill_gap",
            priority=60,
            title=f"Try a {category} habit",
            description="A more diverse set of habits supports overall progress.",
            data={"suggestedCategory": category},
        ))
    return recs


def suggest_difficulty_adjustments(habits: Sequence[Habit],
                                   quality_scores: Sequence[HabitQualityScore]) -> List[HabitRecommendation]:
    by_id = {h.id: h for h in habits}
    recs = []
    for score in get_habits_needing_attention(quality_scores)[:3]:
        habit = by_id.get(score.habit_id)
        if habit is None or score.factors.get("completion_rate", 0) >= 40:
            continue
        recs.append(HabitRecommendation(
            type="difficulty_adjust",
            priority=80,
            title=f"Simplify \"{habit.display_name}\"",
            description=(
                f"Completion rate is only {score.factors['completion_rate']}%. "
                "A smaller version is easier to keep."
            ),
            data={
                "habitId": habit.id,
                "currentDifficulty": habit.difficulty,
                "suggestion": "Start with a smaller, easier version.",
            },
        ))
    return recs


def suggest_synergies(habits: Sequence[Habit],
                      completions: Sequence[HabitCompletion]) -> List[HabitRecommendation]:
    by_id = {h.id: h for h in habits}
    recs = []
    for synergy in find_habit_synergies(habits, completions)[:2]:
        h1 = by_id.get(synergy["habit1"])
        h2 = by_id.get(synergy["habit2"])
        if h1 is None or h2 is None:
            continue
        recs.append(HabitRecommendation(
            type="synergy",
            priority=synergy["synergy_score"],
            title="Group these habits",
            description=(
                f"\"{h1.display_name}\" and \"{h2.display_name}\" work well together "
                f"(synergy {synergy['synergy_score']}%)."
            ),
            data={
                "habit1Id": h1.id,
                "habit2Id": h2.id,
                "synergyScore": synergy["synergy_score"],
            },
        ))
    return recs


def suggest_based_on_success(habits: Sequence[Habit],
                             quality_scores: Sequence[HabitQualityScore]) -> List[HabitRecommendation]:
    by_id = {h.id: h for h in habits}
    candidates = [by_id.get(s.habit_id) for s in get_top_performing_habits(quality_scores)]
    best = next(
        (h for h in candidates
         if h is not None and h.preferred_time and h.preferred_time != "anytime"),
        None,
    )
    if best is None:
        return []
    slot = best.preferred_time
    return [HabitRecommendation(
        type="new_habit",
        priority=65,
        title=f"Add another {slot} habit",
        description=(
            f"You're doing great with \"{best.display_name}\" in the {slot}. "
            "Stack a new habit onto that routine."
        ),
        data={"suggestedTime": slot, "basedOnHabit": best.id},
    )]


def generate_habit_recommendations(habits: Sequence[Habit],
                                   completions: Sequence[HabitCompletion],
                                   quality_scores: Sequence[HabitQualityScore]) -> List[HabitRecommendation]:
    """Merge all rule families and keep the 10 highest-priority suggestions."""
    recs: List[HabitRecommendation] = []
    recs.extend(suggest_optimal_habit_times(habits, completions))
    recs.extend(suggest_gap_fillers(habits))
    recs.extend(suggest_difficulty_adjustments(habits, quality_scores))
    recs.extend(suggest_synergies(habits, completions))
    recs.extend(suggest_based_on_success(habits, quality_scores))
    recs.sort(key=lambda r: r.priority, reverse=True)
    return recs[:MAX_RECOMMENDATIONS]

"""
Habit-specific insight generators.

Completion-based generators read the explicit ``habit_completions`` log
from the context; when it is absent they emit nothing rather than treating
every habit as never completed.
"""

from __future__ import annotations

from typing import List

from constants import (
    ACHIEVEMENT,
    HABIT_OPTIMIZATION,
    HABIT_PATTERN,
    HABIT_RISK,
    OPTIMAL_TIME_MIN_CONFIDENCE,
    OPTIMAL_TIME_MIN_SUCCESS_RATE,
    RECOMMENDATION,
    SOURCE_AI_RECOMMENDATIONS,
    SOURCE_HABIT_ACHIEVEMENTS,
    SOURCE_HABIT_OPTIMIZATION,
    SOURCE_HABIT_PATTERNS,
    SOURCE_HABIT_RISKS,
    STREAK_MILESTONES,
)
from analytics.habit_analyzer import (
    analyze_streak_quality,
    calculate_consistency_score,
    detect_habit_chains,
    find_optimal_habit_time,
    predict_habit_risk,
)
from analytics.habit_correlation import detect_trigger_habits, find_habit_synergies
from analytics.habit_quality import calculate_habits_quality, get_top_performing_habits
from insights.generators import make_insight
from insights.recommendations import generate_habit_recommendations
from insight_models import HabitRecommendation, InsightGeneratorContext, SmartInsight


def generate_pattern_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    habits = context.habits_data
    completions = context.habit_completions
    if not habits or completions is None:
        return []

    insights = []
    for habit in habits:
        optimal = find_optimal_habit_time(habit.id, completions)
        if (optimal is None
                or optimal["confidence"] <= OPTIMAL_TIME_MIN_CONFIDENCE
                or optimal["success_rate"] <= OPTIMAL_TIME_MIN_SUCCESS_RATE):
            continue
        insights.append(make_insight(
            context,
            id=f"pattern-optimal-time-{habit.id}",
            type=HABIT_PATTERN,
            emoji="⏰",
            message=(
                f"\"{habit.display_name}\": {round(optimal['success_rate'])}% of completions "
                f"happen in the {optimal['time']}."
            ),
            priority=round(optimal["confidence"]),
            source=SOURCE_HABIT_PATTERNS,
            action_type="modal",
            data={"habitId": habit.id, "suggestedTime": optimal["time"]},
        ))

    by_id = {h.id: h for h in habits}
    for chain in detect_habit_chains(completions)[:2]:
        h1 = by_id.get(chain["habit1"])
        h2 = by_id.get(chain["habit2"])
        if h1 is None or h2 is None:
            continue
        insights.append(make_insight(
            context,
            id=f"pattern-chain-{h1.id}-{h2.id}",
            type=HABIT_PATTERN,
            emoji="🔗",
            message=(
                f"You complete \"{h1.display_name}\" and \"{h2.display_name}\" together "
                f"{round(chain['co_occurrence_rate'])}% of the time."
            ),
            priority=round(chain["co_occurrence_rate"]),
            source=SOURCE_HABIT_PATTERNS,
            action_type="modal",
            data={"habit1": h1.id, "habit2": h2.id},
        ))

    for trigger in detect_trigger_habits(habits, completions)[:1]:
        habit = by_id.get(trigger["habit_id"])
        if habit is None:
            continue
        insights.append(make_insight(
            context,
            id=f"pattern-trigger-{habit.id}",
            type=HABIT_PATTERN,
            emoji="🗝️",
            message=(
                f"\"{habit.display_name}\" is a keystone habit: on days you do it, "
                f"{len(trigger['triggers'])} other habits usually follow."
            ),
            priority=round(trigger["avg_strength"]),
            source=SOURCE_HABIT_PATTERNS,
            action_type="modal",
            data={"habitId": habit.id, "triggers": trigger["triggers"]},
        ))
    return insights


def generate_risk_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    habits = context.habits_data
    completions = context.habit_completions
    if not habits or completions is None:
        return []

    insights = []
    for habit in habits:
        risk = predict_habit_risk(habit, completions, context.now)
        if risk >= 70 and habit.current_streak > 0:
            insights.append(make_insight(
                context,
                id=f"risk-streak-{habit.id}",
                type=HABIT_RISK,
                emoji="⚠️",
                message=(
                    f"Your {habit.current_streak}-day streak on \"{habit.display_name}\" "
                    "is at risk. Complete it today!"
                ),
                priority=risk,
                source=SOURCE_HABIT_RISKS,
                path="/habits",
            ))

        streak_quality = analyze_streak_quality(habit, completions, context.now)
        if streak_quality["quality"] == "poor" and habit.current_streak > 5:
            insights.append(make_insight(
                context,
                id=f"risk-quality-{habit.id}",
                type=HABIT_RISK,
                emoji="📉",
                message=f"\"{habit.display_name}\" is getting less consistent lately.",
                priority=65,
                source=SOURCE_HABIT_RISKS,
                action_type="modal",
                data={"habitId": habit.id, "quality": streak_quality},
            ))
    return insights


def generate_optimization_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    habits = context.habits_data
    completions = context.habit_completions
    if not habits or completions is None:
        return []

    insights = []
    for habit in habits:
        consistency = calculate_consistency_score(habit, completions, 30, context.now)
        if not 0 < consistency < 50:
            continue
        insights.append(make_insight(
            context,
            id=f"optimize-consistency-{habit.id}",
            type=HABIT_OPTIMIZATION,
            emoji="🎯",
            message=(
                f"\"{habit.display_name}\" is only {consistency}% consistent. "
                "A daily reminder could help."
            ),
            priority=70 - round(consistency / 2),
            source=SOURCE_HABIT_OPTIMIZATION,
            action_type="modal",
            data={"habitId": habit.id, "suggestion": "Set a daily reminder."},
        ))

    by_id = {h.id: h for h in habits}
    for synergy in find_habit_synergies(habits, completions)[:2]:
        h1 = by_id.get(synergy["habit1"])
        h2 = by_id.get(synergy["habit2"])
        if h1 is None or h2 is None:
            continue
        insights.append(make_insight(
            context,
            id=f"optimize-synergy-{h1.id}-{h2.id}",
            type=HABIT_OPTIMIZATION,
            emoji="⚡",
            message=f"Try doing \"{h1.display_name}\" and \"{h2.display_name}\" back to back.",
            priority=round(synergy["synergy_score"] * 0.7),
            source=SOURCE_HABIT_OPTIMIZATION,
            action_type="modal",
            data={"habit1": h1.id, "habit2": h2.id},
        ))
    return insights


def generate_habit_achievement_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    habits = context.habits_data
    if not habits:
        return []

    insights = []
    for habit in habits:
        streak = habit.current_streak
        if streak > 0 and streak == habit.best_streak and streak in STREAK_MILESTONES:
            insights.append(make_insight(
                context,
                id=f"achievement-milestone-{habit.id}",
                type=ACHIEVEMENT,
                emoji="🏆",
                message=f"New record: {streak} days in a row on \"{habit.display_name}\"!",
                priority=85,
                source=SOURCE_HABIT_ACHIEVEMENTS,
                action_type="modal",
                data={"habitId": habit.id, "milestone": streak},
            ))

    if context.habit_completions is None:
        return insights

    scores = calculate_habits_quality(habits, context.habit_completions, 30, context.now)
    top = get_top_performing_habits(scores)
    if top and top[0].overall_score >= 90:
        best = top[0]
        habit = next(h for h in habits if h.id == best.habit_id)
        insights.append(make_insight(
            context,
            id=f"achievement-quality-{habit.id}",
            type=ACHIEVEMENT,
            emoji="⭐",
            message=(
                f"\"{habit.display_name}\" earns grade {best.grade} "
                f"with a quality score of {best.overall_score}."
            ),
            priority=75,
            source=SOURCE_HABIT_ACHIEVEMENTS,
            action_type="modal",
            data={"habitId": habit.id, "score": best.overall_score, "grade": best.grade},
        ))
    return insights


def _recommendation_subject(rec: HabitRecommendation) -> str:
    data = rec.data
    if "habit1Id" in data:
        return f"{data['habit1Id']}-{data['habit2Id']}"
    for key in ("habitId", "basedOnHabit", "suggestedCategory", "suggestedTime"):
        if data.get(key):
            return str(data[key])
    return "general"


def generate_ai_recommendation_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    """Surface the top 3 habit recommendations as insights."""
    habits = context.habits_data
    if not habits:
        return []

    completions = context.habit_completions or ()
    scores = (
        calculate_habits_quality(habits, completions, 30, context.now)
        if context.habit_completions is not None else []
    )
    recs = generate_habit_recommendations(habits, completions, scores)

    return [
        make_insight(
            context,
            id=f"ai-rec-{rec.type}-{_recommendation_subject(rec)}",
            type=RECOMMENDATION,
            emoji="🤖",
            message=rec.description,
            priority=rec.priority,
            source=SOURCE_AI_RECOMMENDATIONS,
            action_type="modal",
            data=dict(rec.data),
        )
        for rec in recs[:3]
    ]

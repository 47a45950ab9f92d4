"""
Analysis-driven insight generators: correlations, anomalies, goal
predictions, social standing, trainer activity and temporal patterns.
"""

from __future__ import annotations

from typing import List

from constants import (
    ANOMALY,
    ANOMALY_HISTORY_WINDOW,
    CORRELATION,
    CORRELATION_R_THRESHOLD,
    MIN_CORRELATION_DAYS,
    PREDICTION,
    RECOVERY_SCORE,
    SLEEP_DURATION,
    SOCIAL,
    SOURCE_ANOMALIES,
    SOURCE_CORRELATIONS,
    SOURCE_PREDICTIONS,
    SOURCE_SOCIAL,
    SOURCE_TEMPORAL,
    SOURCE_TRAINER,
    STEPS,
    TEMPORAL,
    TRAINER,
)
from analytics.statistics import (
    calculate_correlation,
    calculate_trend,
    detect_anomaly,
    detect_weekend_effect,
    find_optimal_time,
    group_by_date,
    predict_goal_completion,
)
from insights.generators import make_insight
from insight_models import InsightGeneratorContext, SmartInsight

SEVERITY_PRIORITY = {"severe": 90, "moderate": 80, "mild": 75}
RANK_EMOJI = {1: "🥇", 2: "🥈", 3: "🥉"}


def generate_correlation_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    """Sleep vs recovery over at least 30 paired days."""
    metrics = context.metrics_data
    if metrics is None or not metrics.history:
        return []

    daily = group_by_date(metrics.history)
    if SLEEP_DURATION not in daily.columns or RECOVERY_SCORE not in daily.columns:
        return []
    paired = daily[[SLEEP_DURATION, RECOVERY_SCORE]].dropna()
    if len(paired) < MIN_CORRELATION_DAYS:
        return []

    sleep = paired[SLEEP_DURATION]
    recovery = paired[RECOVERY_SCORE]
    r = calculate_correlation(sleep.tolist(), recovery.tolist())
    if abs(r) <= CORRELATION_R_THRESHOLD:
        return []

    avg_sleep = float(sleep.mean())
    avg_recovery = float(recovery.mean())
    good_nights = recovery[sleep > avg_sleep]
    if good_nights.empty or avg_recovery == 0:
        return []
    difference = (float(good_nights.mean()) / avg_recovery - 1) * 100
    if difference <= 5:
        return []

    return [make_insight(
        context,
        id="correlation-sleep-recovery",
        type=CORRELATION,
        emoji="💡",
        message=(
            f"When you sleep more than {avg_sleep:.1f}h, your recovery is "
            f"{round(difference)}% higher."
        ),
        priority=60,
        source=SOURCE_CORRELATIONS,
        path="/metrics",
    )]


def generate_anomaly_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    """Today's steps / sleep far below the trailing history (z < -2)."""
    today = context.today_metrics
    metrics = context.metrics_data
    if today is None or metrics is None or not metrics.history:
        return []

    insights = []
    checks = [
        (STEPS, today.steps, "anomaly-steps-low"),
        (SLEEP_DURATION, today.sleep, "anomaly-sleep-low"),
    ]
    for metric_name, value, insight_id in checks:
        if not value:
            continue
        past = [
            m for m in metrics.history
            if m.metric_name == metric_name and m.measurement_date is not None
            and m.measurement_date.date() < context.now.date()
        ]
        past.sort(key=lambda m: m.measurement_date, reverse=True)
        values = [m.value for m in past[:ANOMALY_HISTORY_WINDOW]]

        anomaly = detect_anomaly(value, values)
        if anomaly is None or anomaly["z_score"] >= 0:
            continue

        severity = anomaly["severity"]
        if metric_name == STEPS:
            message = (
                f"Your activity today is {round(abs(anomaly['percent_from_mean']))}% "
                "below your usual level."
            )
            emoji = "🚨" if severity == "severe" else "⚠️"
        else:
            message = (
                f"You slept {value:.1f}h, well below your "
                f"{anomaly['mean']:.1f}h average."
            )
            emoji = "😴"
        insights.append(make_insight(
            context,
            id=insight_id,
            type=ANOMALY,
            emoji=emoji,
            message=message,
            priority=SEVERITY_PRIORITY[severity],
            source=SOURCE_ANOMALIES,
            path="/metrics",
            data={"zScore": round(anomaly["z_score"], 2), "severity": severity},
        ))
    return insights


def generate_prediction_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    goals = context.goals_data
    if goals is None:
        return []

    insights = []
    for goal in goals.all_goals():
        measurements = goal.measurements_newest_first()
        if len(measurements) < 3 or goal.target_value is None:
            continue

        values = [m.value for m in measurements[:14]][::-1]
        current = values[-1]
        target = goal.target_value
        if current == target:
            continue

        days = predict_goal_completion(current, target, values)
        path = f"/goals/{goal.id}"
        if 0 < days <= 7:
            insights.append(make_insight(
                context,
                id=f"prediction-goal-{goal.id}",
                type=PREDICTION,
                emoji="🎯",
                message=(
                    f"At your current pace you'll reach \"{goal.display_name}\" "
                    f"in {days} day{'s' if days != 1 else ''}."
                ),
                priority=70,
                source=SOURCE_PREDICTIONS,
                path=path,
            ))
        elif 7 < days <= 30 and target > current and calculate_trend(values) == "up":
            insights.append(make_insight(
                context,
                id=f"prediction-goal-progress-{goal.id}",
                type=PREDICTION,
                emoji="📈",
                message=f"Good progress on \"{goal.display_name}\". You're on track.",
                priority=50,
                source=SOURCE_PREDICTIONS,
                path=path,
            ))
    return insights


def generate_social_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    if not context.challenge_data:
        return []

    insights = []
    for standing in context.challenge_data:
        rank = standing.user_rank
        if rank is None or not 1 <= rank <= 3:
            continue
        insights.append(make_insight(
            context,
            id=f"social-top3-{standing.challenge_id}",
            type=SOCIAL,
            emoji=RANK_EMOJI[rank],
            message=f"You're #{rank} in \"{standing.title or 'your challenge'}\"!",
            priority=75,
            source=SOURCE_SOCIAL,
            path=f"/challenges/{standing.challenge_id}",
        ))
    return insights


def generate_trainer_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    trainer = context.trainer_data
    if trainer is None:
        return []

    insights = []
    if trainer.unread_messages > 0:
        n = trainer.unread_messages
        insights.append(make_insight(
            context,
            id="trainer-unread-messages",
            type=TRAINER,
            emoji="💬",
            message=f"You have {n} unread message{'s' if n != 1 else ''} from your trainer.",
            priority=70,
            source=SOURCE_TRAINER,
            path="/messages",
        ))
    if trainer.new_recommendations > 0:
        insights.append(make_insight(
            context,
            id="trainer-new-recommendations",
            type=TRAINER,
            emoji="👨‍⚕️",
            message="Your trainer has a new recommendation for you.",
            priority=75,
            source=SOURCE_TRAINER,
            path="/trainer",
        ))
    return insights


def generate_temporal_insights(context: InsightGeneratorContext) -> List[SmartInsight]:
    metrics = context.metrics_data
    if metrics is None or not metrics.history:
        return []

    insights = []
    weekend = detect_weekend_effect(STEPS, metrics.history)
    if weekend is not None and abs(weekend["difference"]) > 20:
        falls = weekend["difference"] < 0
        insights.append(make_insight(
            context,
            id="temporal-weekend-activity",
            type=TEMPORAL,
            emoji="📉" if falls else "📈",
            message=(
                f"Your activity {'falls' if falls else 'rises'} by "
                f"{round(abs(weekend['difference']))}% on weekends."
            ),
            priority=45,
            source=SOURCE_TEMPORAL,
            path="/analytics",
        ))

    best_time = find_optimal_time(STEPS, metrics.history)
    if best_time is not None:
        insights.append(make_insight(
            context,
            id="temporal-optimal-activity",
            type=TEMPORAL,
            emoji="⏰",
            message=f"You're most active in the {best_time}.",
            priority=40,
            source=SOURCE_TEMPORAL,
            path="/analytics",
        ))
    return insights

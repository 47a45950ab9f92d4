"""
Shared constants used across the analytics, generator and pipeline modules.
Single source of truth for insight types, generator sources and thresholds.
"""

# Insight types
CRITICAL = "critical"
WARNING = "warning"
ACHIEVEMENT = "achievement"
INFO = "info"
RECOMMENDATION = "recommendation"
CORRELATION = "correlation"
ANOMALY = "anomaly"
PREDICTION = "prediction"
SOCIAL = "social"
TRAINER = "trainer"
TEMPORAL = "temporal"
HABIT_PATTERN = "habit_pattern"
HABIT_RISK = "habit_risk"
HABIT_OPTIMIZATION = "habit_optimization"

INSIGHT_TYPES = frozenset({
    CRITICAL, WARNING, ACHIEVEMENT, INFO, RECOMMENDATION, CORRELATION,
    ANOMALY, PREDICTION, SOCIAL, TRAINER, TEMPORAL,
    HABIT_PATTERN, HABIT_RISK, HABIT_OPTIMIZATION,
})

ACTION_TYPES = frozenset({"navigate", "modal", "external"})

# Generator sources, in registry order
SOURCE_QUALITY = "quality"
SOURCE_TRENDS = "trends"
SOURCE_GOALS = "goals"
SOURCE_HABITS = "habits"
SOURCE_ACHIEVEMENTS = "achievements"
SOURCE_INFO = "info"
SOURCE_RECOMMENDATIONS = "recommendations"
SOURCE_CORRELATIONS = "correlations"
SOURCE_ANOMALIES = "anomalies"
SOURCE_PREDICTIONS = "predictions"
SOURCE_SOCIAL = "social"
SOURCE_TRAINER = "trainer"
SOURCE_TEMPORAL = "temporal"
SOURCE_HABIT_PATTERNS = "habit-patterns"
SOURCE_HABIT_RISKS = "habit-risks"
SOURCE_HABIT_OPTIMIZATION = "habit-optimization"
SOURCE_HABIT_ACHIEVEMENTS = "habit-achievements"
SOURCE_AI_RECOMMENDATIONS = "ai-recommendations"

# Final prioritisation bonus per insight type (unlisted types get 0)
TYPE_WEIGHTS = {
    CRITICAL: 100,
    WARNING: 80,
    ACHIEVEMENT: 60,
    RECOMMENDATION: 40,
    INFO: 20,
}
FRESHNESS_MAX_BONUS = 10

DEFAULT_MAX_INSIGHTS = 7
DEFAULT_MIN_PRIORITY = 30
DEFAULT_REFRESH_INTERVAL_SECONDS = 300

# Metric names as delivered by the metrics store
SLEEP_DURATION = "Sleep Duration"
STEPS = "Steps"
RECOVERY_SCORE = "Recovery Score"
DAY_STRAIN = "Day Strain"
WEIGHT = "Weight"
RESTING_HR = "Resting Heart Rate"

TREND_WATCH_METRICS = [SLEEP_DURATION, STEPS, RECOVERY_SCORE, DAY_STRAIN]
KEY_COVERAGE_METRICS = [WEIGHT, RESTING_HR, SLEEP_DURATION, STEPS]

# Statistics thresholds
ANOMALY_Z_THRESHOLD = 2.0
ANOMALY_MODERATE_Z = 2.5
ANOMALY_SEVERE_Z = 3.0
MIN_ANOMALY_HISTORY = 7
ANOMALY_HISTORY_WINDOW = 30
TREND_SLOPE_FRACTION = 0.05
MIN_TREND_POINTS = 3
MAX_FORECAST_DAYS = 365
MIN_OPTIMAL_TIME_OBSERVATIONS = 7
MIN_WEEKEND_OBSERVATIONS = 14
MIN_CORRELATION_DAYS = 30
CORRELATION_R_THRESHOLD = 0.5

# Habit analytics thresholds
MIN_PATTERN_COMPLETIONS = 5
OPTIMAL_TIME_MIN_CONFIDENCE = 60
OPTIMAL_TIME_MIN_SUCCESS_RATE = 70
MIN_CHAIN_COOCCURRENCES = 3
MIN_CHAIN_RATE = 50
MIN_DEPENDENCY_SOURCE_DAYS = 3
DEPENDENCY_MIN_LIFT = 1.3
DEPENDENCY_MIN_PROBABILITY = 0.5
SYNERGY_MIN_STRENGTH = 60
SYNERGY_MIN_CATEGORY_DAYS = 5
MIN_MOMENTUM_COMPLETIONS = 7
STREAK_MILESTONES = (7, 14, 21, 30, 50, 100)

TIME_SLOTS = ["morning", "afternoon", "evening", "night"]
HABIT_CATEGORIES = ["health", "productivity", "learning", "mindfulness", "fitness"]
WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
]

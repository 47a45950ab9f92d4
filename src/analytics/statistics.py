"""
Statistics primitives for the insight generators.

Correlation, z-score anomaly detection, OLS trend / forecast, and
time-of-day / weekday pattern detection over metric history.

Every function is total: short, empty or flat inputs return a neutral
value (0, None, "stable" or []) instead of raising.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from constants import (
    ANOMALY_MODERATE_Z,
    ANOMALY_SEVERE_Z,
    ANOMALY_Z_THRESHOLD,
    MAX_FORECAST_DAYS,
    MIN_ANOMALY_HISTORY,
    MIN_OPTIMAL_TIME_OBSERVATIONS,
    MIN_TREND_POINTS,
    MIN_WEEKEND_OBSERVATIONS,
    TREND_SLOPE_FRACTION,
    WEEKDAY_NAMES,
)
from insight_models import MetricObservation


# ─── Correlation ───────────────────────────────────────────

def calculate_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson r over the paired prefix of ``xs`` and ``ys``.

    Returns 0 ("no correlation") with fewer than 2 pairs or when either
    series has zero variance.
    """
    n = min(len(xs), len(ys))
    if n < 2:
        return 0.0
    x = np.asarray(xs[:n], dtype=np.float64)
    y = np.asarray(ys[:n], dtype=np.float64)
    if np.var(x) < 1e-12 or np.var(y) < 1e-12:
        return 0.0
    r, _ = sp_stats.pearsonr(x, y)
    if not np.isfinite(r):
        return 0.0
    return float(max(-1.0, min(1.0, r)))


# ─── Descriptive stats / anomalies ─────────────────────────

def calculate_stats(values: Sequence[float]) -> Dict[str, float]:
    """Mean, population std, min, max and count; all zero for empty input."""
    if len(values) == 0:
        return {"mean": 0.0, "std": 0.0, "min": 0.0, "max": 0.0, "count": 0}
    arr = np.asarray(values, dtype=np.float64)
    return {
        "mean": float(arr.mean()),
        "std": float(arr.std(ddof=0)),
        "min": float(arr.min()),
        "max": float(arr.max()),
        "count": int(arr.size),
    }


def calculate_z_score(value: float, mean: float, std: float) -> float:
    if std == 0:
        return 0.0
    return (value - mean) / std


def percent_from_mean(value: float, mean: float) -> float:
    if mean == 0:
        return 0.0
    return (value - mean) / mean * 100


def percent_change(previous: float, current: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def get_anomaly_severity(z: float) -> str:
    az = abs(z)
    if az > ANOMALY_SEVERE_Z:
        return "severe"
    if az > ANOMALY_MODERATE_Z:
        return "moderate"
    return "mild"


def is_anomalous(value: float, history: Sequence[float]) -> bool:
    """|z| > 2 against ``history``; never flagged with fewer than 7 points."""
    if len(history) < MIN_ANOMALY_HISTORY:
        return False
    s = calculate_stats(history)
    return abs(calculate_z_score(value, s["mean"], s["std"])) > ANOMALY_Z_THRESHOLD


def detect_anomaly(value: float, history: Sequence[float]) -> Optional[Dict[str, Any]]:
    """Describe ``value`` against ``history`` if it is anomalous, else None."""
    if not is_anomalous(value, history):
        return None
    s = calculate_stats(history)
    z = calculate_z_score(value, s["mean"], s["std"])
    return {
        "z_score": z,
        "severity": get_anomaly_severity(z),
        "mean": s["mean"],
        "std": s["std"],
        "percent_from_mean": percent_from_mean(value, s["mean"]),
    }


# ─── Trend / forecast ──────────────────────────────────────

def _ols_fit(values: Sequence[float]):
    """OLS fit of value against index.  Returns (slope, intercept)."""
    y = np.asarray(values, dtype=np.float64)
    x = np.arange(y.size, dtype=np.float64)
    fit = sp_stats.linregress(x, y)
    return float(fit.slope), float(fit.intercept)


def calculate_slope(values: Sequence[float]) -> float:
    if len(values) < MIN_TREND_POINTS:
        return 0.0
    slope, _ = _ols_fit(values)
    return slope


def calculate_trend(values: Sequence[float]) -> str:
    """Classify chronologically ordered ``values`` as up, down or stable.

    A direction is reported only when |slope| exceeds 5% of the first value.
    """
    if len(values) < MIN_TREND_POINTS:
        return "stable"
    slope = calculate_slope(values)
    threshold = TREND_SLOPE_FRACTION * abs(values[0])
    if slope > threshold:
        return "up"
    if slope < -threshold:
        return "down"
    return "stable"


def predict_next_value(history: Sequence[float], days_ahead: int = 1) -> float:
    if len(history) < MIN_TREND_POINTS:
        return float(history[0]) if len(history) else 0.0
    slope, intercept = _ols_fit(history)
    return intercept + slope * (len(history) - 1 + days_ahead)


def predict_goal_completion(current: float, target: float,
                            history: Sequence[float]) -> int:
    """Days until ``target`` is reached at the historical OLS slope.

    -1 means "cannot predict": flat history, travelling away from the
    target, or a horizon longer than a year.
    """
    slope = calculate_slope(history)
    if abs(slope) < 1e-12:
        return -1
    remaining = target - current
    if remaining == 0:
        return 0
    days = remaining / slope
    if days < 0:
        return -1
    days = math.ceil(round(days, 6))
    if days > MAX_FORECAST_DAYS:
        return -1
    return int(days)


# ─── Temporal patterns ─────────────────────────────────────

def time_bucket(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def _metric_frame(metric_name: str,
                  history: Iterable[MetricObservation]) -> pd.DataFrame:
    rows = [
        {"ts": m.measurement_date, "value": m.value}
        for m in history
        if m.metric_name == metric_name and m.measurement_date is not None
    ]
    if not rows:
        return pd.DataFrame(columns=["ts", "value"])
    df = pd.DataFrame(rows)
    df["ts"] = pd.to_datetime(df["ts"])
    return df


def group_by_date(history: Iterable[MetricObservation]) -> pd.DataFrame:
    """Pivot history into one row per calendar day, one column per metric.

    Same-day duplicates are averaged.  Rows are sorted oldest first.
    """
    rows = [
        {"date": m.measurement_date.date(), "metric": m.metric_name, "value": m.value}
        for m in history
        if m.measurement_date is not None
    ]
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame(rows)
    return df.pivot_table(index="date", columns="metric", values="value",
                          aggfunc="mean").sort_index()


def _bucket_averages(df: pd.DataFrame, key: pd.Series) -> List[Dict[str, Any]]:
    grouped = df.assign(bucket=key).groupby("bucket", sort=False)["value"]
    out = pd.DataFrame({"average": grouped.mean(), "count": grouped.size()})
    out = out.sort_values("average", ascending=False, kind="mergesort")
    return [
        {"bucket": str(b), "average": float(r["average"]), "count": int(r["count"])}
        for b, r in out.iterrows()
    ]


def detect_time_patterns(metric_name: str,
                         history: Iterable[MetricObservation]) -> List[Dict[str, Any]]:
    """Average per time-of-day bucket, highest average first."""
    df = _metric_frame(metric_name, history)
    if df.empty:
        return []
    return _bucket_averages(df, df["ts"].dt.hour.map(time_bucket))


def detect_weekday_patterns(metric_name: str,
                            history: Iterable[MetricObservation]) -> List[Dict[str, Any]]:
    """Average per weekday name, highest average first."""
    df = _metric_frame(metric_name, history)
    if df.empty:
        return []
    return _bucket_averages(df, df["ts"].dt.dayofweek.map(lambda d: WEEKDAY_NAMES[d]))


def find_optimal_time(metric_name: str,
                      history: Iterable[MetricObservation]) -> Optional[str]:
    """Time-of-day bucket with the highest average (needs >= 7 observations)."""
    history = list(history)
    df = _metric_frame(metric_name, history)
    if len(df) < MIN_OPTIMAL_TIME_OBSERVATIONS:
        return None
    patterns = detect_time_patterns(metric_name, history)
    return patterns[0]["bucket"] if patterns else None


def detect_weekend_effect(metric_name: str,
                          history: Iterable[MetricObservation]) -> Optional[Dict[str, float]]:
    """Weekend vs weekday average; ``difference`` is % relative to weekdays."""
    df = _metric_frame(metric_name, history)
    if len(df) < MIN_WEEKEND_OBSERVATIONS:
        return None
    is_weekend = df["ts"].dt.dayofweek >= 5
    weekend = df.loc[is_weekend, "value"]
    weekday = df.loc[~is_weekend, "value"]
    if weekend.empty or weekday.empty:
        return None
    weekday_avg = float(weekday.mean())
    weekend_avg = float(weekend.mean())
    if weekday_avg == 0:
        return None
    return {
        "weekday_avg": weekday_avg,
        "weekend_avg": weekend_avg,
        "difference": (weekend_avg - weekday_avg) / weekday_avg * 100,
    }

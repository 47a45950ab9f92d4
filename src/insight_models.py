"""
Value types consumed and produced by the smart-insights core.

Input records (metrics, habits, completions, goals, social/trainer signals)
are read-only snapshots assembled by the caller.  Each has a tolerant
``from_dict`` constructor: records missing their identity fields come back
as ``None`` and are dropped by the collection builders, numeric strings are
coerced, non-finite numbers are treated as missing, and timestamps become
naive datetimes that keep their own wall-clock time.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from constants import (
    ACTION_TYPES,
    DEFAULT_REFRESH_INTERVAL_SECONDS,
    INSIGHT_TYPES,
)


# ─── Coercion helpers ──────────────────────────────────────

def _num(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def _int(value: Any, default: int = 0) -> int:
    v = _num(value)
    return int(v) if v is not None else default


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


_SEQUENCE = (list, tuple)


def _rows(value: Any) -> Tuple[Any, ...]:
    return tuple(value) if isinstance(value, _SEQUENCE) else ()


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string, date or datetime into a naive datetime.

    An offset is dropped without conversion so the wall-clock time the
    user saw is kept; time-of-day buckets and "today" checks depend on it.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.replace(tzinfo=None)
    return dt


def clamp_score(value: float) -> int:
    """Round and clamp a score to the closed range [0, 100]."""
    return int(max(0, min(100, round(value))))


def _collect(cls, rows: Optional[Iterable[Any]]) -> Tuple[Any, ...]:
    out = []
    for row in _rows(rows):
        if isinstance(row, cls):
            out.append(row)
        elif isinstance(row, dict):
            item = cls.from_dict(row)
            if item is not None:
                out.append(item)
    return tuple(out)


# ─── Input records ─────────────────────────────────────────

@dataclass(frozen=True)
class MetricObservation:
    metric_name: str
    value: float
    measurement_date: Optional[datetime] = None
    source: Optional[str] = None
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["MetricObservation"]:
        name = _text(row.get("metric_name"))
        value = _num(row.get("value"))
        if name is None or value is None:
            return None
        return cls(
            metric_name=name,
            value=value,
            measurement_date=parse_timestamp(row.get("measurement_date")),
            source=_text(row.get("source")),
            confidence=_num(row.get("confidence")),
        )


@dataclass(frozen=True)
class Habit:
    id: str
    title: Optional[str] = None
    category: Optional[str] = None
    preferred_time: Optional[str] = None
    difficulty: Optional[str] = None
    current_streak: int = 0
    best_streak: int = 0
    created_at: Optional[datetime] = None
    completed_today: bool = False

    @property
    def display_name(self) -> str:
        return self.title or "Habit"

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["Habit"]:
        habit_id = _text(row.get("id"))
        if habit_id is None:
            return None
        stats = _mapping(row.get("stats"))
        return cls(
            id=habit_id,
            title=_text(row.get("title")) or _text(row.get("name")),
            category=_text(row.get("category")),
            preferred_time=_text(row.get("preferred_time")),
            difficulty=_text(row.get("difficulty")),
            current_streak=_int(row.get("current_streak", stats.get("current_streak"))),
            best_streak=_int(row.get("best_streak", stats.get("best_streak"))),
            created_at=parse_timestamp(row.get("created_at")),
            completed_today=bool(row.get("completed_today", False)),
        )


@dataclass(frozen=True)
class HabitCompletion:
    habit_id: str
    completed_at: datetime
    id: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["HabitCompletion"]:
        habit_id = _text(row.get("habit_id"))
        completed_at = parse_timestamp(row.get("completed_at"))
        if habit_id is None or completed_at is None:
            return None
        return cls(
            habit_id=habit_id,
            completed_at=completed_at,
            id=_text(row.get("id")),
            user_id=_text(row.get("user_id")),
        )


@dataclass(frozen=True)
class GoalMeasurement:
    value: float
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["GoalMeasurement"]:
        value = _num(row.get("value"))
        if value is None:
            return None
        return cls(value=value, created_at=parse_timestamp(row.get("created_at")))


@dataclass(frozen=True)
class Goal:
    id: str
    title: Optional[str] = None
    target_value: Optional[float] = None
    measurements: Tuple[GoalMeasurement, ...] = ()
    created_at: Optional[datetime] = None
    metric_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.title or self.metric_name or "Goal"

    def measurements_newest_first(self) -> List[GoalMeasurement]:
        """Measurements ordered newest first; undated ones keep input order at the end."""
        dated = [m for m in self.measurements if m.created_at is not None]
        undated = [m for m in self.measurements if m.created_at is None]
        dated.sort(key=lambda m: m.created_at, reverse=True)
        return dated + undated

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["Goal"]:
        goal_id = _text(row.get("id"))
        if goal_id is None:
            return None
        return cls(
            id=goal_id,
            title=_text(row.get("title")),
            target_value=_num(row.get("target_value")),
            measurements=_collect(GoalMeasurement, row.get("measurements")),
            created_at=parse_timestamp(row.get("created_at")),
            metric_name=_text(row.get("metric_name")),
        )


@dataclass(frozen=True)
class QualitySummary:
    """Metric names grouped by the external confidence scorer's verdict."""
    poor: Tuple[str, ...] = ()
    fair: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "QualitySummary":
        groups = _mapping(row.get("metrics_by_quality")) or row
        return cls(
            poor=tuple(str(m) for m in _rows(groups.get("poor"))),
            fair=tuple(str(m) for m in _rows(groups.get("fair"))),
        )


@dataclass(frozen=True)
class MetricsData:
    latest: Tuple[MetricObservation, ...] = ()
    history: Tuple[MetricObservation, ...] = ()

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "MetricsData":
        return cls(
            latest=_collect(MetricObservation, row.get("latest")),
            history=_collect(MetricObservation, row.get("history")),
        )


@dataclass(frozen=True)
class GoalsData:
    personal: Tuple[Goal, ...] = ()
    challenge: Tuple[Goal, ...] = ()

    def all_goals(self) -> List[Goal]:
        return list(self.personal) + list(self.challenge)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "GoalsData":
        return cls(
            personal=_collect(Goal, row.get("personal")),
            challenge=_collect(Goal, row.get("challenge")),
        )


@dataclass(frozen=True)
class TodayMetrics:
    steps: Optional[float] = None
    recovery: Optional[float] = None
    sleep: Optional[float] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "TodayMetrics":
        return cls(
            steps=_num(row.get("steps")),
            recovery=_num(row.get("recovery")),
            sleep=_num(row.get("sleep")),
        )


@dataclass(frozen=True)
class ChallengeStanding:
    challenge_id: str
    title: Optional[str] = None
    user_rank: Optional[int] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["ChallengeStanding"]:
        challenge_id = _text(row.get("challenge_id"))
        if challenge_id is None:
            return None
        challenge = _mapping(row.get("challenge"))
        rank = _num(row.get("user_rank", row.get("userRank")))
        return cls(
            challenge_id=challenge_id,
            title=_text(row.get("title")) or _text(challenge.get("title")),
            user_rank=int(rank) if rank is not None else None,
        )


@dataclass(frozen=True)
class TrainerSignals:
    unread_messages: int = 0
    new_recommendations: int = 0

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "TrainerSignals":
        return cls(
            unread_messages=_int(row.get("unread_messages", row.get("unreadMessages"))),
            new_recommendations=_int(row.get("new_recommendations", row.get("newRecommendations"))),
        )


@dataclass(frozen=True)
class InsightGeneratorContext:
    """Fully materialised snapshot handed to every generator.

    Any field may be ``None``; generators treat absence as "no insights
    from this source".
    """
    user_id: Optional[str] = None
    quality_data: Optional[QualitySummary] = None
    metrics_data: Optional[MetricsData] = None
    goals_data: Optional[GoalsData] = None
    habits_data: Optional[Tuple[Habit, ...]] = None
    habit_completions: Optional[Tuple[HabitCompletion, ...]] = None
    today_metrics: Optional[TodayMetrics] = None
    challenge_data: Optional[Tuple[ChallengeStanding, ...]] = None
    trainer_data: Optional[TrainerSignals] = None
    now: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any],
                  now: Optional[datetime] = None) -> "InsightGeneratorContext":
        def _opt(key, builder, kind=dict):
            value = payload.get(key)
            return builder(value) if isinstance(value, kind) else None

        return cls(
            user_id=_text(payload.get("user_id")),
            quality_data=_opt("quality_data", QualitySummary.from_dict),
            metrics_data=_opt("metrics_data", MetricsData.from_dict),
            goals_data=_opt("goals_data", GoalsData.from_dict),
            habits_data=_opt("habits_data", lambda v: _collect(Habit, v), _SEQUENCE),
            habit_completions=_opt(
                "habit_completions", lambda v: _collect(HabitCompletion, v), _SEQUENCE),
            today_metrics=_opt("today_metrics", TodayMetrics.from_dict),
            challenge_data=_opt(
                "challenge_data", lambda v: _collect(ChallengeStanding, v), _SEQUENCE),
            trainer_data=_opt("trainer_data", TrainerSignals.from_dict),
            now=now or parse_timestamp(payload.get("now")) or datetime.now(),
        )


# ─── Core outputs ──────────────────────────────────────────

@dataclass(frozen=True)
class InsightAction:
    type: str = "navigate"
    path: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.type not in ACTION_TYPES:
            raise ValueError(f"Unknown insight action type: {self.type!r}")


@dataclass(frozen=True)
class SmartInsight:
    id: str
    type: str
    emoji: str
    message: str
    priority: int
    source: str
    action: InsightAction = field(default_factory=InsightAction)
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.type not in INSIGHT_TYPES:
            raise ValueError(f"Unknown insight type: {self.type!r}")
        object.__setattr__(self, "priority", clamp_score(self.priority))

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["timestamp"] = self.timestamp.isoformat()
        out["action"] = {k: v for k, v in out["action"].items() if v is not None}
        return out


@dataclass(frozen=True)
class HabitQualityScore:
    habit_id: str
    overall_score: int
    factors: Dict[str, int]
    grade: str
    recommendation: str


@dataclass(frozen=True)
class HabitRecommendation:
    type: str
    priority: int
    title: str
    description: str
    actionable: bool = True
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InsightPreferences:
    """User-level filters applied by the pipeline's personalisation stage."""
    enabled_types: FrozenSet[str] = INSIGHT_TYPES
    priority_overrides: Dict[str, int] = field(default_factory=dict)
    muted_insights: FrozenSet[str] = frozenset()
    refresh_interval_seconds: int = DEFAULT_REFRESH_INTERVAL_SECONDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled_types": sorted(self.enabled_types),
            "priority_overrides": dict(self.priority_overrides),
            "muted_insights": sorted(self.muted_insights),
            "refresh_interval_seconds": self.refresh_interval_seconds,
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "InsightPreferences":
        enabled = row.get("enabled_types")
        overrides = {}
        for key, value in _mapping(row.get("priority_overrides")).items():
            v = _num(value)
            if v is not None:
                overrides[str(key)] = clamp_score(v)
        return cls(
            enabled_types=(
                frozenset(t for t in _rows(enabled) if t in INSIGHT_TYPES)
                if enabled is not None else INSIGHT_TYPES
            ),
            priority_overrides=overrides,
            muted_insights=frozenset(str(i) for i in _rows(row.get("muted_insights"))),
            refresh_interval_seconds=_int(
                row.get("refresh_interval_seconds"), DEFAULT_REFRESH_INTERVAL_SECONDS
            ),
        )

"""
Tests for the value types and their tolerant constructors.

Covers: timestamp parsing (Z, offsets, bad input), numeric coercion and
non-finite values, dropping records without identity fields, malformed
optional fields in a context payload, and SmartInsight validation.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from analytics.habit_analyzer import find_optimal_habit_time
from insight_models import (
    Habit,
    HabitCompletion,
    InsightAction,
    InsightGeneratorContext,
    InsightPreferences,
    MetricObservation,
    MetricsData,
    SmartInsight,
    _num,
    parse_timestamp,
)
from insights.generators import generate_info_insights, generate_trend_insights
from pipeline.insight_pipeline import generate_insights


# ─── Timestamps ───────────────────────────────────────────────


class TestParseTimestamp:

    def test_z_suffix(self):
        assert parse_timestamp("2026-03-16T07:30:00Z") == datetime(2026, 3, 16, 7, 30)

    def test_offset_keeps_wall_clock(self):
        assert parse_timestamp("2026-03-16T07:30:00+03:00") == datetime(2026, 3, 16, 7, 30)

    def test_aware_datetime_keeps_wall_clock(self):
        aware = datetime(2026, 3, 16, 23, 15, tzinfo=timezone(timedelta(hours=-5)))
        assert parse_timestamp(aware) == datetime(2026, 3, 16, 23, 15)

    def test_date_is_midnight(self):
        assert parse_timestamp(date(2026, 3, 16)) == datetime(2026, 3, 16)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2026-13-40"])
    def test_unusable(self, value):
        assert parse_timestamp(value) is None

    def test_local_morning_completions_stay_morning(self):
        rows = [
            {"habit_id": "run", "completed_at": f"2026-03-{d:02d}T07:30:00+03:00"}
            for d in range(1, 9)
        ]
        completions = [HabitCompletion.from_dict(r) for r in rows]
        assert find_optimal_habit_time("run", completions)["time"] == "morning"

    def test_today_uses_the_same_clock_as_the_data(self):
        payload = {
            "now": "2026-03-17T09:00:00+03:00",
            "metrics_data": {"latest": [{
                "metric_name": "Steps", "value": 9000,
                "measurement_date": "2026-03-17T01:00:00+03:00",
            }]},
        }
        ctx = InsightGeneratorContext.from_dict(payload)
        assert ctx.now == datetime(2026, 3, 17, 9, 0)
        assert [i.id for i in generate_info_insights(ctx)] == ["info-sync"]


# ─── Coercion ─────────────────────────────────────────────────


class TestNumbers:

    @pytest.mark.parametrize("value,expected", [("12.5", 12.5), (3, 3.0), (" 7 ", 7.0)])
    def test_numeric(self, value, expected):
        assert _num(value) == expected

    @pytest.mark.parametrize("value", [
        None, True, "abc", [], "nan", "inf", "-Infinity", float("nan"), float("inf"),
    ])
    def test_missing_or_non_finite(self, value):
        assert _num(value) is None

    def test_non_finite_metric_rows_are_dropped(self):
        rows = [{"metric_name": "Steps", "value": "nan",
                 "measurement_date": f"2026-03-{16 - i:02d}T07:00:00"} for i in range(1, 4)]
        rows += [{"metric_name": "Steps", "value": 8000,
                  "measurement_date": f"2026-03-{16 - i:02d}T07:00:00"} for i in range(4, 8)]
        metrics = MetricsData.from_dict({"history": rows})
        assert len(metrics.history) == 4
        ctx = InsightGeneratorContext(metrics_data=metrics, now=datetime(2026, 3, 16, 20))
        assert generate_trend_insights(ctx) == []


class TestRecords:

    def test_records_without_identity_are_dropped(self):
        ctx = InsightGeneratorContext.from_dict({
            "habits_data": [{"title": "no id"}, {"id": "h1", "title": "Read"}],
            "habit_completions": [
                {"habit_id": "h1"},
                {"habit_id": "h1", "completed_at": "2026-03-16T08:00:00"},
            ],
            "metrics_data": {"latest": [{"metric_name": "Steps"}, {"value": 3}]},
        })
        assert [h.id for h in ctx.habits_data] == ["h1"]
        assert len(ctx.habit_completions) == 1
        assert ctx.metrics_data.latest == ()

    def test_habit_streaks_from_stats(self):
        habit = Habit.from_dict({"id": "h", "name": "Walk", "stats": {"current_streak": "4", "best_streak": 9}})
        assert (habit.title, habit.current_streak, habit.best_streak) == ("Walk", 4, 9)

    def test_habit_streak_with_malformed_stats(self):
        habit = Habit.from_dict({"id": "h", "current_streak": 3, "stats": 5})
        assert habit.current_streak == 3
        assert habit.best_streak == 0

    def test_metric_observation_coerces_strings(self):
        obs = MetricObservation.from_dict({"metric_name": "Weight", "value": "80.4"})
        assert obs.value == pytest.approx(80.4)
        assert obs.measurement_date is None

    def test_now_override(self):
        fixed = datetime(2026, 1, 1, 12)
        ctx = InsightGeneratorContext.from_dict({"now": "2026-03-16T20:00:00"}, now=fixed)
        assert ctx.now == fixed


class TestMalformedPayload:

    @pytest.mark.parametrize("payload", [
        {"metrics_data": []},
        {"metrics_data": {"history": 5, "latest": "x"}},
        {"goals_data": {"personal": [{"id": "g", "measurements": 5}]}},
        {"goals_data": "goals"},
        {"habits_data": [{"id": "h", "stats": 5}]},
        {"habits_data": {"id": "h"}},
        {"habit_completions": "none"},
        {"quality_data": {"metrics_by_quality": ["x"]}},
        {"quality_data": {"poor": 3}},
        {"challenge_data": [{"challenge_id": "c", "challenge": "x", "user_rank": 1}]},
        {"today_metrics": [1, 2]},
        {"trainer_data": 7},
    ])
    def test_bad_fields_are_skipped(self, payload, caplog):
        payload = dict(payload, now="2026-03-16T20:00:00")
        ctx = InsightGeneratorContext.from_dict(payload)
        assert isinstance(generate_insights(ctx), list)
        assert "failed" not in caplog.text

    def test_wrong_container_becomes_absent(self):
        ctx = InsightGeneratorContext.from_dict({"metrics_data": [], "habits_data": {"id": "h"}})
        assert ctx.metrics_data is None
        assert ctx.habits_data is None

    def test_malformed_preference_fields(self):
        prefs = InsightPreferences.from_dict({
            "enabled_types": "critical",
            "priority_overrides": [1, 2],
            "muted_insights": 5,
        })
        assert prefs.enabled_types == frozenset()
        assert prefs.priority_overrides == {}
        assert prefs.muted_insights == frozenset()


# ─── Outputs ──────────────────────────────────────────────────


class TestSmartInsight:

    def _make(self, **kw):
        fields = dict(id="x", type="info", emoji="•", message="m", priority=50, source="info",
                      timestamp=datetime(2026, 3, 16, 20))
        fields.update(kw)
        return SmartInsight(**fields)

    @pytest.mark.parametrize("priority,expected", [(150, 100), (-5, 0), (55.6, 56), (30, 30)])
    def test_priority_clamped(self, priority, expected):
        assert self._make(priority=priority).priority == expected

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            self._make(type="gossip")

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            InsightAction(type="teleport")

    def test_to_dict(self):
        out = self._make(action=InsightAction(path="/habits")).to_dict()
        assert out["action"] == {"type": "navigate", "path": "/habits"}
        assert out["timestamp"] == "2026-03-16T20:00:00"

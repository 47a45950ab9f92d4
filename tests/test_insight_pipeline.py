"""
Tests for the insight pipeline.

Covers: generator isolation, source filtering, deduplication,
personalisation, scoring order, limits and a full end-to-end run.
"""
import logging
from datetime import timedelta

import pytest

from constants import RECOVERY_SCORE, SLEEP_DURATION
from factories import NOW, context, observations
from insight_models import (
    InsightAction,
    InsightPreferences,
    MetricsData,
    QualitySummary,
    SmartInsight,
    TodayMetrics,
    TrainerSignals,
)
from pipeline.insight_pipeline import (
    ALL_SOURCES,
    INSIGHT_GENERATORS,
    deduplicate_insights,
    filter_insights,
    generate_insights,
    insight_score,
    personalize_insights,
    prioritize_insights,
    run_generators,
)


def make(id, type="info", priority=50, source="info", timestamp=NOW):
    return SmartInsight(id=id, type=type, emoji="•", message=id, priority=priority,
                        source=source, action=InsightAction(), timestamp=timestamp)


def busy_context():
    return context(
        quality_data=QualitySummary(poor=("Steps",)),
        today_metrics=TodayMetrics(steps=16000, recovery=90),
        trainer_data=TrainerSignals(unread_messages=1, new_recommendations=1),
    )


# ─── Registry ─────────────────────────────────────────────────


class TestRegistry:

    def test_eighteen_named_sources(self):
        assert len(INSIGHT_GENERATORS) == 18
        assert len(ALL_SOURCES) == 18
        assert "habit-patterns" in ALL_SOURCES

    def test_failing_generator_is_isolated(self, caplog):
        def boom(ctx):
            raise RuntimeError("broken")

        registry = [("broken", boom), ("ok", lambda ctx: [make("fine", source="ok")])]
        with caplog.at_level(logging.WARNING, logger="insight_pipeline"):
            out = run_generators(context(), registry=registry)
        assert [i.id for i in out] == ["fine"]
        assert "broken" in caplog.text

    def test_enabled_sources_filter_output(self):
        registry = [("ok", lambda ctx: [make("a", source="ok"), make("b", source="other")])]
        out = run_generators(context(), enabled_sources=["ok"], registry=registry)
        assert [i.id for i in out] == ["a"]

    def test_disabled_generator_is_not_called(self):
        def boom(ctx):
            raise AssertionError("should not run")

        assert run_generators(context(), enabled_sources=[], registry=[("x", boom)]) == []


# ─── Stages ───────────────────────────────────────────────────


class TestDeduplicate:

    def test_keeps_highest_priority(self):
        out = deduplicate_insights([make("low", priority=60), make("high", priority=80)])
        assert [i.id for i in out] == ["high"]

    def test_first_wins_ties(self):
        out = deduplicate_insights([make("first"), make("second")])
        assert [i.id for i in out] == ["first"]

    def test_different_type_or_source_kept(self):
        out = deduplicate_insights([
            make("a"), make("b", type="warning"), make("c", source="trends"),
        ])
        assert len(out) == 3


class TestPersonalize:

    def test_none_is_passthrough(self):
        insights = [make("a")]
        assert personalize_insights(insights, None) == insights

    def test_disabled_type(self):
        prefs = InsightPreferences(enabled_types=frozenset({"warning"}))
        out = personalize_insights([make("a"), make("b", type="warning")], prefs)
        assert [i.id for i in out] == ["b"]

    def test_muted(self):
        prefs = InsightPreferences(muted_insights=frozenset({"a"}))
        assert [i.id for i in personalize_insights([make("a"), make("b")], prefs)] == ["b"]

    def test_priority_override(self):
        prefs = InsightPreferences(priority_overrides={"a": 99})
        out = personalize_insights([make("a", priority=10)], prefs)
        assert out[0].priority == 99


class TestPrioritize:

    def test_type_weight_beats_raw_priority(self):
        rec = make("rec", type="recommendation", priority=60)
        crit = make("crit", type="critical", priority=10)
        assert [i.id for i in prioritize_insights([rec, crit], NOW)] == ["crit", "rec"]

    def test_freshness_bonus(self):
        fresh = make("fresh", timestamp=NOW)
        stale = make("stale", timestamp=NOW - timedelta(hours=12))
        assert insight_score(fresh, NOW) == pytest.approx(50 + 20 + 10)
        assert insight_score(stale, NOW) == pytest.approx(50 + 20)
        assert [i.id for i in prioritize_insights([stale, fresh], NOW)] == ["fresh", "stale"]

    def test_untyped_weight_is_zero(self):
        assert insight_score(make("x", type="social"), NOW) == pytest.approx(60)

    def test_stable_for_equal_scores(self):
        insights = [make(f"i{n}") for n in range(5)]
        assert prioritize_insights(insights, NOW) == insights

    def test_filter(self):
        out = filter_insights([make("a", priority=29), make("b", priority=30)], 30)
        assert [i.id for i in out] == ["b"]


# ─── End to end ───────────────────────────────────────────────


class TestGenerateInsights:

    def test_empty_context(self):
        assert generate_insights(context()) == []

    def test_ranked_and_limited(self):
        out = generate_insights(busy_context(), max_insights=2)
        assert [i.id for i in out] == ["quality-poor", "achievement-steps"]

    def test_min_priority(self):
        out = generate_insights(busy_context(), min_priority=80)
        assert all(i.priority >= 80 for i in out)
        assert "trainer-unread-messages" not in {i.id for i in out}

    def test_sources_exclude_quality(self):
        sources = ALL_SOURCES - {"quality"}
        out = generate_insights(busy_context(), enabled_sources=sources)
        assert all(i.source != "quality" for i in out)
        assert out

    def test_preferences_applied(self):
        prefs = InsightPreferences(muted_insights=frozenset({"quality-poor"}))
        out = generate_insights(busy_context(), preferences=prefs)
        assert "quality-poor" not in {i.id for i in out}

    def test_zero_max(self):
        assert generate_insights(busy_context(), max_insights=0) == []

    def test_idempotent(self):
        ctx = busy_context()
        assert generate_insights(ctx) == generate_insights(ctx)

    def test_sleep_recovery_correlation(self):
        sleep = [8.5 if 10 <= i < 17 else 7.5 for i in range(30)]
        recovery = [88 if 10 <= i < 17 else 80 for i in range(30)]
        history = tuple(observations(SLEEP_DURATION, sleep) + observations(RECOVERY_SCORE, recovery))
        out = generate_insights(context(metrics_data=MetricsData(history=history)))
        assert [i.id for i in out] == ["correlation-sleep-recovery"]

    def test_short_history_has_no_correlation(self):
        history = tuple(observations(SLEEP_DURATION, [7.5] * 13 + [8.5] * 7)
                        + observations(RECOVERY_SCORE, [80] * 13 + [88] * 7))
        out = generate_insights(context(metrics_data=MetricsData(history=history)))
        assert "correlation-sleep-recovery" not in {i.id for i in out}

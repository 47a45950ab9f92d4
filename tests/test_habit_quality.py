"""
Tests for the habit quality scorer.

Covers: weighted overall score, grade bands, recommendation precedence
and the attention / top-performer selectors.
"""
import pytest

from analytics.habit_quality import (
    RECOMMENDATIONS,
    calculate_habit_quality,
    calculate_habits_quality,
    get_habits_needing_attention,
    get_top_performing_habits,
    grade_for,
)
from factories import NOW, daily_completions, habit
from insight_models import HabitQualityScore


def _score(habit_id, overall):
    return HabitQualityScore(habit_id=habit_id, overall_score=overall, factors={},
                             grade=grade_for(overall), recommendation="")


class TestQualityScore:

    def test_perfect_habit(self):
        h = habit("read", current_streak=30, best_streak=30)
        q = calculate_habit_quality(h, daily_completions("read", 30), now=NOW)
        # 0.4*100 + 0.2*100 + 0.2*50 (flat momentum) + 0.2*100
        assert q.overall_score == 90
        assert q.grade == "A"
        assert q.factors == {"consistency": 100, "streak_stability": 100,
                             "trend": 50, "completion_rate": 100}
        assert q.recommendation == RECOMMENDATIONS["excellent"]

    def test_never_completed(self):
        q = calculate_habit_quality(habit("read"), [], now=NOW)
        assert q.overall_score == 10
        assert q.grade == "F"
        assert q.recommendation == RECOMMENDATIONS["regularity"]

    def test_broken_streak_recommends_protecting_it(self):
        h = habit("read", current_streak=2, best_streak=20)
        q = calculate_habit_quality(h, daily_completions("read", 30), now=NOW)
        assert q.factors["streak_stability"] == 10
        assert q.recommendation == RECOMMENDATIONS["streak"]

    def test_falling_momentum_recommends_restart(self):
        h = habit("read", current_streak=30, best_streak=30)
        comps = daily_completions("read", 3) + daily_completions("read", 27, start=7)
        q = calculate_habit_quality(h, comps, now=NOW)
        assert q.factors["trend"] < 50
        assert q.recommendation == RECOMMENDATIONS["restart"]

    def test_low_completion_rate_recommends_frequency(self):
        h = habit("read", current_streak=10, best_streak=10)
        q = calculate_habit_quality(h, daily_completions("read", 10), now=NOW)
        assert q.factors["completion_rate"] == 33
        assert q.recommendation == RECOMMENDATIONS["frequency"]

    def test_solid_habit_gets_encouragement(self):
        h = habit("read", current_streak=20, best_streak=20)
        q = calculate_habit_quality(h, daily_completions("read", 20), now=NOW)
        assert q.grade == "C"
        assert q.recommendation == RECOMMENDATIONS["encourage"]

    def test_scores_every_habit(self):
        habits = [habit("a"), habit("b")]
        scores = calculate_habits_quality(habits, daily_completions("a", 5), now=NOW)
        assert [s.habit_id for s in scores] == ["a", "b"]


class TestGrades:

    @pytest.mark.parametrize("score,grade", [
        (100, "A"), (90, "A"), (89.9, "B"), (80, "B"),
        (70, "C"), (60, "D"), (59, "F"), (0, "F"),
    ])
    def test_bands(self, score, grade):
        assert grade_for(score) == grade


class TestSelectors:

    SCORES = [_score("a", 55), _score("b", 92), _score("c", 69), _score("d", 80), _score("e", 70)]

    def test_needing_attention_weakest_first(self):
        assert [s.habit_id for s in get_habits_needing_attention(self.SCORES)] == ["a", "c"]

    def test_top_performers_strongest_first(self):
        assert [s.habit_id for s in get_top_performing_habits(self.SCORES)] == ["b", "d"]

    def test_empty(self):
        assert get_habits_needing_attention([]) == []
        assert get_top_performing_habits([]) == []

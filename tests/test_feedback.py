"""
Tests for the Adaptive Feedback Analyzer.

analyze_history is pure, so most cases build a PerformanceHistory by hand.
The analyzer tests seed evening reviews and check the adjustment log.
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from conftest import add_review
from momentum.core.errors import InvalidInputError
from momentum.services.feedback import (
    AdaptiveFeedbackAnalyzer,
    PerformanceHistory,
    analyze_history,
    coefficient_of_variation,
    relative_change,
    severity_for,
)
from momentum.services.habit_engine import HabitStreakState
from momentum.services.pattern_engine import EnergyPattern

END = date(2026, 6, 30)


def _history(
    completion: list[float],
    deep_work: list[float] | None = None,
    focus: list[float] | None = None,
    **kw,
) -> PerformanceHistory:
    n = len(completion)
    return PerformanceHistory(
        user_id="u",
        end_date=END,
        days=[END - timedelta(days=n - 1 - i) for i in range(n)],
        completion_rates=completion,
        deep_work_hours=deep_work if deep_work is not None else [2.0] * n,
        focus_quality=focus if focus is not None else [75.0] * n,
        **kw,
    )


def _habit(name: str, consistency: float, broken: bool = False) -> HabitStreakState:
    return HabitStreakState(
        habit_id=1,
        habit_name=name,
        current_streak=0 if broken else 5,
        longest_streak=5,
        consistency_percentage=consistency,
        last_completed=END - timedelta(days=1),
        streak_just_broken=broken,
    )


DECLINING = [90.0] * 10 + [70.0] * 10 + [50.0] * 10


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------

class TestSignals:

    def test_relative_change_compares_thirds(self):
        assert relative_change(DECLINING) == pytest.approx(-40 / 90)

    def test_relative_change_needs_a_baseline(self):
        assert relative_change([1.0, 2.0]) is None
        assert relative_change([0.0] * 6 + [3.0] * 3) is None

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([2.0] * 10) == 0.0
        assert coefficient_of_variation([0.0, 4.0] * 5) == pytest.approx(1.0)

    @pytest.mark.parametrize("magnitude, expected", [(0.1, "low"), (0.3, "medium"), (0.5, "high")])
    def test_severity(self, magnitude, expected):
        assert severity_for(magnitude) == expected


# ---------------------------------------------------------------------------
# analyze_history
# ---------------------------------------------------------------------------

class TestAnalyzeHistory:

    def test_completion_decline_triggers_simplify(self):
        analysis = analyze_history(_history(DECLINING))

        [alert] = analysis.declining_patterns
        assert alert.pattern_type == "completion_rate_decline"
        assert alert.severity == "high"
        assert alert.suggested_actions

        [adjustment] = analysis.system_adjustments
        assert adjustment.adjustment_type == "simplify"
        assert 0 < adjustment.expected_impact <= 1
        assert adjustment.implementation_steps

    def test_focus_decline_triggers_timing_optimization(self):
        focus = [80.0] * 10 + [70.0] * 10 + [40.0] * 10
        analysis = analyze_history(_history([60.0] * 30, focus=focus))
        assert [a.adjustment_type for a in analysis.system_adjustments] == ["timing_optimization"]

    def test_erratic_deep_work(self):
        analysis = analyze_history(_history([60.0] * 30, deep_work=[0.0, 4.0] * 15))
        types = [a.pattern_type for a in analysis.declining_patterns]
        assert types == ["erratic_timing"]
        assert analysis.system_adjustments[0].adjustment_type == "timing_optimization"

    def test_high_performer_gets_more_challenge(self):
        analysis = analyze_history(
            _history([95.0] * 30, consistency_score=90.0, identity_alignment=85.0)
        )
        [adjustment] = analysis.system_adjustments
        assert adjustment.adjustment_type == "complexity_increase"
        assert "high performance" in adjustment.reason.lower()
        assert analysis.declining_patterns == []

    def test_no_challenge_while_completion_declines(self):
        analysis = analyze_history(
            _history(DECLINING, consistency_score=90.0, identity_alignment=85.0)
        )
        types = [a.adjustment_type for a in analysis.system_adjustments]
        assert "complexity_increase" not in types
        assert "simplify" in types

    def test_short_history_has_no_trend_alerts(self):
        analysis = analyze_history(_history([100.0, 100.0, 10.0, 10.0, 10.0]))
        assert analysis.declining_patterns == []
        assert analysis.system_adjustments == []

    def test_low_consistency_and_broken_streak(self):
        history = _history(
            [60.0] * 30,
            consistency_score=30.0,
            habit_streaks=[_habit("Journal", 30.0, broken=True)],
        )
        analysis = analyze_history(history)
        patterns = {a.pattern_type for a in analysis.declining_patterns}
        assert patterns == {"low_consistency", "streak_break"}
        types = {a.adjustment_type for a in analysis.system_adjustments}
        assert types == {"simplify", "habit_modification"}

    def test_one_adjustment_per_type(self):
        focus = [80.0] * 10 + [70.0] * 10 + [40.0] * 10
        deep = [3.0] * 10 + [2.0] * 10 + [1.0] * 10
        analysis = analyze_history(_history([60.0] * 30, deep_work=deep, focus=focus))
        types = [a.adjustment_type for a in analysis.system_adjustments]
        assert types == ["timing_optimization"]
        assert len(analysis.declining_patterns) == 2

    def test_alerts_strongest_first(self):
        focus = [80.0] * 10 + [70.0] * 10 + [60.0] * 10
        analysis = analyze_history(_history(DECLINING, focus=focus))
        magnitudes = [a.magnitude for a in analysis.declining_patterns]
        assert magnitudes == sorted(magnitudes, reverse=True)

    def test_opportunities(self):
        rising = [50.0] * 10 + [70.0] * 10 + [90.0] * 10
        history = _history(
            rising,
            habit_streaks=[_habit("Meditate", 90.0)],
            energy_patterns=[EnergyPattern("morning", 7.5, 0.8, "stable", 10)],
        )
        areas = [o.area for o in analyze_history(history).improvement_opportunities]
        assert areas == ["Completion rate momentum", "Habit Stacking", "Energy Optimization"]

    def test_suggestions_always_have_a_benefit(self):
        histories = [
            _history([]),
            _history([40.0] * 10, deep_work=[1.0] * 10, focus=[50.0] * 10),
            _history([90.0] * 60),
        ]
        for history in histories:
            suggestions = analyze_history(history).optimization_suggestions
            assert suggestions
            for s in suggestions:
                assert s.expected_benefit
                assert 0 <= s.confidence <= 0.95

    def test_empty_history_gets_started(self):
        [suggestion] = analyze_history(_history([])).optimization_suggestions
        assert suggestion.category == "Getting Started"
        assert suggestion.confidence == 0.0


# ---------------------------------------------------------------------------
# Analyzer against the store
# ---------------------------------------------------------------------------

def _seed_declining_reviews(db, user_id: str) -> None:
    start = END - timedelta(days=29)
    for i, (done, missed) in enumerate([(9, 1)] * 10 + [(7, 3)] * 10 + [(5, 5)] * 10):
        add_review(db, user_id, start + timedelta(days=i), done=done, missed=missed)


class TestAdaptiveFeedbackAnalyzer:

    def test_declining_reviews_are_logged_once_per_day(self, db, store, user_id):
        _seed_declining_reviews(db, user_id)
        analyzer = AdaptiveFeedbackAnalyzer(store)

        first = analyzer.analyze_performance_patterns(user_id, END, 30)
        assert first.history_days == 30
        assert [a.adjustment_type for a in first.system_adjustments] == ["simplify"]

        analyzer.analyze_performance_patterns(user_id, END, 30)
        [logged] = store.list_adjustments(user_id)
        assert logged.adjustment_type == "simplify"
        assert logged.tracked_metric == "completion_rate"
        assert logged.baseline_value == 50.0
        assert logged.emitted_on == END

    def test_new_user_has_no_history(self, store, user_id):
        analysis = AdaptiveFeedbackAnalyzer(store).analyze_performance_patterns(user_id, END)
        assert analysis.history_days == 0
        assert analysis.declining_patterns == []
        assert analysis.system_adjustments == []
        assert store.list_adjustments(user_id) == []

    @pytest.mark.parametrize("window", [6, 91])
    def test_window_bounds(self, store, user_id, window):
        with pytest.raises(InvalidInputError):
            AdaptiveFeedbackAnalyzer(store).analyze_performance_patterns(user_id, END, window)


class TestPerformancePatternsEndpoint:

    def test_declining_user(self, client, db, user_id):
        _seed_declining_reviews(db, user_id)
        r = client.get(
            f"/analytics/performance-patterns?user_id={user_id}&reference_date=2026-06-30"
        )
        assert r.status_code == 200
        body = r.json()
        assert body["reference_date"] == "2026-06-30"
        assert body["declining_patterns"][0]["pattern_type"] == "completion_rate_decline"
        assert body["system_adjustments"][0]["adjustment_type"] == "simplify"

    def test_window_too_short(self, client, user_id):
        r = client.get(f"/analytics/performance-patterns?user_id={user_id}&window_days=3")
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_INPUT"
        assert r.json()["details"]["field"] == "window_days"

"""
Tests for the Analytics Aggregator.

Covered:
  - one array entry per day in the window, oldest first, 0 for empty days
  - zero-history users get a well-formed snapshot
  - a failing or hanging collaborator is replaced by its default
  - an unreachable event store raises DataUnavailableError (HTTP 503)
  - scores are clamped to 0-100
  - adaptation effectiveness over logged adjustments
"""
from __future__ import annotations

import time
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import add_completions, add_habit, add_review, add_session
from momentum.core.config import Settings
from momentum.core.errors import DataUnavailableError, InvalidInputError
from momentum.main import app
from momentum.models.adjustment_log import AdjustmentRecord
from momentum.models.user_profile import UserProfile
from momentum.routers.analytics import get_aggregator
from momentum.services.analytics import (
    NEUTRAL_EFFECTIVENESS,
    AnalyticsAggregator,
    adaptation_effectiveness,
    clamp,
)
from momentum.services.event_store import EventStore

END = date(2026, 5, 20)


def _broken_store() -> EventStore:
    engine = create_engine("sqlite:////nonexistent-dir/momentum/unreachable.db")
    return EventStore(sessionmaker(bind=engine))


class FailingProfiles:
    def get_profile(self, user_id):
        raise RuntimeError("profile service down")


class HangingProfiles:
    def get_profile(self, user_id):
        time.sleep(1.0)
        raise AssertionError("should have been abandoned")


# ---------------------------------------------------------------------------
# Window shape
# ---------------------------------------------------------------------------

class TestWindow:

    @pytest.mark.parametrize("period, n", [("daily", 1), ("weekly", 7), ("monthly", 30)])
    def test_array_lengths_match_period(self, store, user_id, period, n):
        snapshot = AnalyticsAggregator(store).get_analytics_data(user_id, period, END)
        pattern = snapshot.productivity_pattern
        assert snapshot.start_date == END - timedelta(days=n - 1)
        assert snapshot.end_date == END
        assert len(pattern.daily_completion_rates) == n
        assert len(pattern.focus_quality_trend) == n
        assert len(pattern.deep_work_hours_trend) == n
        assert len(pattern.daily_distraction_counts) == n
        assert len(snapshot.deep_work_trend) == n

    def test_days_align_oldest_first(self, db, store, user_id):
        add_review(db, user_id, END, done=3, missed=1)
        add_session(db, user_id, END, hour=10, minutes=60, focus=8, distractions=2)
        add_review(db, user_id, END - timedelta(days=6), done=1, missed=1)

        pattern = AnalyticsAggregator(store).get_analytics_data(user_id, "weekly", END).productivity_pattern
        assert pattern.daily_completion_rates == [50.0, 0, 0, 0, 0, 0, 75.0]
        assert pattern.deep_work_hours_trend[-1] == 1.0
        assert pattern.deep_work_hours_trend[:-1] == [0.0] * 6
        assert pattern.focus_quality_trend[-1] == 80.0
        assert pattern.daily_distraction_counts[-1] == 2
        assert pattern.most_productive_hours == ["10:00"]

    def test_custom_window(self, store, user_id):
        snapshot = AnalyticsAggregator(store).snapshot_for_window(user_id, 14, END)
        assert snapshot.period == "14d"
        assert len(snapshot.deep_work_trend) == 14

    @pytest.mark.parametrize("days", [0, 91])
    def test_custom_window_bounds(self, store, user_id, days):
        with pytest.raises(InvalidInputError):
            AnalyticsAggregator(store).snapshot_for_window(user_id, days, END)


# ---------------------------------------------------------------------------
# Composition and defaults
# ---------------------------------------------------------------------------

class TestSnapshot:

    def test_zero_history_is_well_formed(self, store, user_id):
        snapshot = AnalyticsAggregator(store).get_analytics_data(user_id, "weekly", END)
        assert snapshot.consistency_score == 0.0
        assert snapshot.identity_alignment == 50.0
        assert snapshot.habit_streaks == []
        assert len(snapshot.behavioral_insights) == 2
        metrics = snapshot.personalization_metrics
        assert metrics.profile_completeness == 0.0
        assert metrics.adaptation_effectiveness == NEUTRAL_EFFECTIVENESS
        assert metrics.suggestion_acceptance_rate == 50.0
        assert metrics.learning_progression.system_mastery_level == "beginner"

    def test_habits_feed_consistency(self, db, store, user_id):
        habit = add_habit(db, user_id, "Read", END - timedelta(days=9))
        add_completions(db, habit, END - timedelta(days=9), [True] * 10)

        snapshot = AnalyticsAggregator(store).get_analytics_data(user_id, "weekly", END)
        assert snapshot.consistency_score == 100.0
        assert snapshot.habit_streaks[0].current_streak == 10

    def test_streaks_stop_at_reference_date(self, db, store, user_id):
        start = date(2026, 3, 1)
        habit = add_habit(db, user_id, "Stretch", start)
        add_completions(db, habit, start, [True] * 5 + [False] + [True] * 3)

        snapshot = AnalyticsAggregator(store).get_analytics_data(user_id, "weekly", date(2026, 3, 5))
        [state] = snapshot.habit_streaks
        assert state.current_streak == 5
        assert state.last_completed == date(2026, 3, 5)
        assert snapshot.consistency_score == 100.0

    def test_alignment_is_clamped(self, db, store, user_id):
        db.add(UserProfile(user_id=user_id, target_identity="scholar", identity_alignment_score=130))
        db.commit()

        snapshot = AnalyticsAggregator(store).get_analytics_data(user_id, "daily", END)
        assert snapshot.identity_alignment == 100.0

    def test_failing_collaborator_is_defaulted(self, store, user_id):
        aggregator = AnalyticsAggregator(store, profiles=FailingProfiles())
        snapshot = aggregator.get_analytics_data(user_id, "weekly", END)
        assert snapshot.identity_alignment == 50.0
        assert snapshot.personalization_metrics.profile_completeness == 0.0
        assert len(snapshot.deep_work_trend) == 7

    def test_hanging_collaborator_is_abandoned(self, store, user_id):
        cfg = Settings(COLLABORATOR_TIMEOUT_SECONDS=0.3)
        aggregator = AnalyticsAggregator(store, profiles=HangingProfiles(), cfg=cfg)

        started = time.monotonic()
        snapshot = aggregator.get_analytics_data(user_id, "weekly", END)
        assert time.monotonic() - started < 1.0
        assert snapshot.identity_alignment == 50.0

    def test_unreachable_store(self, user_id):
        with pytest.raises(DataUnavailableError):
            AnalyticsAggregator(_broken_store()).get_analytics_data(user_id, "weekly", END)

    @pytest.mark.parametrize("bad_user", ["", "has space", "x" * 65, None])
    def test_invalid_user_id(self, store, bad_user):
        with pytest.raises(InvalidInputError):
            AnalyticsAggregator(store).get_analytics_data(bad_user, "weekly", END)

    def test_invalid_period(self, store, user_id):
        with pytest.raises(InvalidInputError) as exc:
            AnalyticsAggregator(store).get_analytics_data(user_id, "yearly", END)
        assert exc.value.details["field"] == "period"

    def test_repeated_calls_are_identical(self, db, store, user_id):
        add_review(db, user_id, END, done=2, missed=2)
        add_session(db, user_id, END - timedelta(days=1), hour=14, minutes=40, focus=6)

        aggregator = AnalyticsAggregator(store)
        first = aggregator.get_analytics_data(user_id, "weekly", END)
        second = aggregator.get_analytics_data(user_id, "weekly", END)
        assert first == second


class TestClamp:

    @pytest.mark.parametrize("value, expected", [(-5, 0.0), (42.5, 42.5), (250, 100.0)])
    def test_clamp(self, value, expected):
        assert clamp(value) == expected


# ---------------------------------------------------------------------------
# Adaptation effectiveness (pure)
# ---------------------------------------------------------------------------

class TestAdaptationEffectiveness:

    def _adj(self, kind: str, metric: str, baseline: float, emitted: date) -> AdjustmentRecord:
        return AdjustmentRecord(
            user_id="u",
            adjustment_type=kind,
            reason="test",
            expected_impact=0.5,
            tracked_metric=metric,
            baseline_value=baseline,
            emitted_on=emitted,
        )

    def test_share_of_improved_adjustments(self):
        emitted = date(2026, 5, 1)
        completion = {emitted: 40.0, emitted + timedelta(days=1): 70.0, emitted + timedelta(days=2): 60.0}
        deep_work = {emitted: 2.0, emitted + timedelta(days=1): 1.0}
        adjustments = [
            self._adj("simplify", "completion_rate", 50.0, emitted),
            self._adj("timing_optimization", "deep_work_hours", 2.0, emitted),
        ]
        assert adaptation_effectiveness(adjustments, completion, deep_work) == 50.0

    def test_complexity_increase_holds_level(self):
        emitted = date(2026, 5, 1)
        completion = {emitted + timedelta(days=1): 90.0}
        adjustments = [self._adj("complexity_increase", "completion_rate", 90.0, emitted)]
        assert adaptation_effectiveness(adjustments, completion, {}) == 100.0

    def test_neutral_without_later_data(self):
        emitted = date(2026, 5, 1)
        adjustments = [self._adj("simplify", "completion_rate", 50.0, emitted)]
        assert adaptation_effectiveness(adjustments, {emitted: 10.0}, {}) == NEUTRAL_EFFECTIVENESS
        assert adaptation_effectiveness([], {}, {}) == NEUTRAL_EFFECTIVENESS


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class TestAnalyticsEndpoint:

    def test_monthly_snapshot(self, client, user_id):
        r = client.get(f"/analytics?user_id={user_id}&period=monthly&reference_date=2026-05-20")
        assert r.status_code == 200
        body = r.json()
        assert body["start_date"] == "2026-04-21"
        assert body["end_date"] == "2026-05-20"
        assert len(body["productivity_pattern"]["daily_completion_rates"]) == 30

    def test_default_period_is_weekly(self, client, user_id):
        r = client.get(f"/analytics?user_id={user_id}")
        assert r.status_code == 200
        assert r.json()["period"] == "weekly"
        assert len(r.json()["deep_work_trend"]) == 7

    def test_unknown_period_rejected(self, client, user_id):
        r = client.get(f"/analytics?user_id={user_id}&period=yearly")
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_unreachable_store_is_503(self, client, user_id):
        app.dependency_overrides[get_aggregator] = lambda: AnalyticsAggregator(_broken_store())
        r = client.get(f"/analytics?user_id={user_id}")
        assert r.status_code == 503
        assert r.json()["code"] == "DATA_UNAVAILABLE"

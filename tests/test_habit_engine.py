"""
Tests for the Habit Consistency Engine.

Covered:
  - streak counter: resets on any miss, gaps count as misses, longest >= current
  - the 14-day example ([T,T,T,F,T x10] → current 10, longest 10, ≈92.9%)
  - consistency window capped at 30 days
  - habits without history are excluded from the overall score
  - stacking: same time-of-day candidates, template fallback
  - completion upsert over HTTP (overwrite, 404, mirrored event)
"""
from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from conftest import add_completions, add_habit
from momentum.core.errors import InvalidInputError
from momentum.models.habit import HabitCompletion
from momentum.services.habit_engine import (
    HabitConsistencyEngine,
    calculate_consistency,
    calculate_period_streaks,
    calculate_streak,
    streak_just_broken,
)

START = date(2026, 3, 1)


def _records(flags: list[bool], start: date = START) -> list[HabitCompletion]:
    return [
        HabitCompletion(habit_id=1, user_id="u", day=start + timedelta(days=i), completed=f)
        for i, f in enumerate(flags)
    ]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestCalculateStreak:

    def test_example_with_single_miss(self):
        flags = [True, True, True, False] + [True] * 10
        current, longest, last = calculate_streak(_records(flags))
        assert current == 10
        assert longest == 10
        assert last == START + timedelta(days=13)

    def test_example_consistency(self):
        flags = [True, True, True, False] + [True] * 10
        pct = calculate_consistency(_records(flags), START, START + timedelta(days=13), 30)
        assert pct == pytest.approx(92.86, abs=0.01)

    def test_resets_to_zero_on_miss(self):
        current, longest, _ = calculate_streak(_records([True, True, True, False]))
        assert current == 0
        assert longest == 3

    def test_gap_breaks_the_run(self):
        records = _records([True, True]) + _records([True], START + timedelta(days=3))
        current, longest, _ = calculate_streak(records)
        assert current == 1
        assert longest == 2

    def test_order_of_records_does_not_matter(self):
        records = _records([True, False, True, True])
        assert calculate_streak(list(reversed(records))) == calculate_streak(records)

    def test_empty_history(self):
        assert calculate_streak([]) == (0, 0, None)

    @pytest.mark.parametrize("flags", [
        [True] * 5,
        [False, True, True, False, True],
        [True, False, False, True, True, True, False],
        [False] * 4,
    ])
    def test_longest_never_below_current(self, flags):
        current, longest, _ = calculate_streak(_records(flags))
        assert longest >= current >= 0

    def test_streak_just_broken(self):
        assert streak_just_broken(_records([True, False])) is True
        assert streak_just_broken(_records([False, False])) is False
        assert streak_just_broken(_records([True, True])) is False
        assert streak_just_broken(_records([False])) is False


class TestCalculateConsistency:

    def test_window_capped_at_thirty_days(self):
        flags = [False] * 30 + [True] * 30
        today = START + timedelta(days=59)
        assert calculate_consistency(_records(flags), START, today, 30) == 100.0

    def test_new_habit_uses_days_active(self):
        today = START + timedelta(days=3)
        assert calculate_consistency(_records([True, True]), START, today, 30) == 50.0

    def test_period_streaks_count_breaks(self):
        stats = calculate_period_streaks(_records([True, True, False, True, False, True]))
        assert stats.streak_breaks == 2
        assert stats.longest_streak_in_period == 2
        assert stats.current_streak == 1

    def test_period_streaks_treat_missing_days_as_misses(self):
        records = _records([True, True]) + _records([True], START + timedelta(days=3))
        stats = calculate_period_streaks(records)
        assert stats.longest_streak_in_period == 2
        assert stats.streak_breaks == 1
        assert stats.current_streak == 1


# ---------------------------------------------------------------------------
# Engine against the event store
# ---------------------------------------------------------------------------

class TestHabitConsistencyEngine:

    def test_user_without_habits(self, store, user_id):
        engine = HabitConsistencyEngine(store)
        assert engine.compute_streaks(user_id, START) == []
        score = engine.compute_consistency_score(user_id, START)
        assert score.overall_score == 0.0
        assert score.habit_scores == []
        assert engine.suggest_stacks(user_id, START) == []

    def test_habit_without_history_is_not_scored(self, db, store, user_id):
        tracked = add_habit(db, user_id, "Read", START)
        add_habit(db, user_id, "Brand new", START)
        add_completions(db, tracked, START, [True, True, True, False] + [True] * 10)

        engine = HabitConsistencyEngine(store)
        today = START + timedelta(days=13)
        states = {s.habit_name: s for s in engine.compute_streaks(user_id, today)}
        assert states["Read"].current_streak == 10
        assert states["Brand new"].has_history is False

        score = engine.compute_consistency_score(user_id, today)
        assert score.overall_score == pytest.approx(92.9, abs=0.05)
        assert [h.habit_name for h in score.habit_scores] == ["Read"]
        assert score.insights

    def test_records_after_reference_day_are_ignored(self, db, store, user_id):
        habit = add_habit(db, user_id, "Stretch", START)
        add_completions(db, habit, START, [True] * 5 + [False] + [True] * 3)

        [state] = HabitConsistencyEngine(store).compute_streaks(user_id, START + timedelta(days=4))
        assert state.current_streak == 5
        assert state.longest_streak == 5
        assert state.last_completed == START + timedelta(days=4)
        assert state.streak_just_broken is False
        assert state.consistency_percentage == 100.0

    def test_just_broken_streak_triggers_never_miss_twice(self, db, store, user_id):
        habit = add_habit(db, user_id, "Journal", START)
        add_completions(db, habit, START, [True, True, False])

        score = HabitConsistencyEngine(store).compute_consistency_score(
            user_id, START + timedelta(days=2)
        )
        assert any("Never miss twice" in i for i in score.insights)

    def test_stack_pairs_same_time_of_day(self, db, store, user_id):
        anchor = add_habit(db, user_id, "Meditate", START, reminder=time(7, 0))
        partner = add_habit(db, user_id, "Read", START, reminder=time(7, 30))
        add_habit(db, user_id, "Evening walk", START, reminder=time(20, 0))
        add_completions(db, anchor, START, [True] * 14)
        add_completions(db, partner, START, [True, False] * 7)

        suggestions = HabitConsistencyEngine(store).suggest_stacks(
            user_id, START + timedelta(days=13)
        )
        names = [s.suggested_habit for s in suggestions]
        assert "Read" in names
        assert "Evening walk" not in names
        read = next(s for s in suggestions if s.suggested_habit == "Read")
        assert read.anchor_habit_id == anchor.id
        assert read.suggested_habit_id == partner.id
        assert 0 < read.confidence_score <= 0.9

    def test_stack_falls_back_to_routine_template(self, db, store, user_id):
        anchor = add_habit(db, user_id, "Morning run", START)
        add_completions(db, anchor, START, [True] * 10)

        suggestions = HabitConsistencyEngine(store).suggest_stacks(
            user_id, START + timedelta(days=9)
        )
        assert [s.suggested_habit for s in suggestions] == [
            "meditation", "journaling", "exercise", "reading",
        ]
        assert all(s.suggested_habit_id is None for s in suggestions)
        assert all(s.confidence_score == 0.9 for s in suggestions)

    def test_habit_analytics_rejects_inverted_range(self, store, user_id):
        with pytest.raises(InvalidInputError):
            HabitConsistencyEngine(store).habit_analytics(
                user_id, START + timedelta(days=5), START
            )

    def test_habit_analytics_counts_period(self, db, store, user_id):
        habit = add_habit(db, user_id, "Stretch", START)
        add_completions(db, habit, START, [True, True, False, True, True, True, True])

        report = HabitConsistencyEngine(store).habit_analytics(
            user_id, START, START + timedelta(days=6)
        )
        stats = report.habits[0]
        assert stats.total_opportunities == 7
        assert stats.completed_count == 6
        assert stats.streak_data.streak_breaks == 1
        assert report.insights


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class TestHabitEndpoints:

    def test_completion_upsert_overwrites_same_day(self, client, db, user_id):
        habit = add_habit(db, user_id, "Floss", START)
        body = {"user_id": user_id, "habit_id": habit.id, "day": "2026-03-02", "completed": True}

        first = client.post("/habits/completions", json=body)
        assert first.status_code == 200
        second = client.post(
            "/habits/completions", json={**body, "completed": False, "quality": "poor"}
        )
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["completed"] is False
        assert second.json()["quality"] == "poor"

        events = client.get(f"/events?user_id={user_id}&event_type=habit_completion").json()
        assert events["total"] == 2

    def test_completion_for_unknown_habit_is_404(self, client, user_id):
        r = client.post(
            "/habits/completions",
            json={"user_id": user_id, "habit_id": 999_999, "completed": True},
        )
        assert r.status_code == 404
        assert r.json()["code"] == "HABIT_NOT_FOUND"

    def test_streaks_endpoint(self, client, db, user_id):
        habit = add_habit(db, user_id, "Pushups", START)
        add_completions(db, habit, START, [True, True, True])

        r = client.get(f"/habits/streaks?user_id={user_id}&reference_date=2026-03-03")
        assert r.status_code == 200
        item = r.json()["items"][0]
        assert item["current_streak"] == 3
        assert item["consistency_percentage"] == 100.0

    def test_bad_user_id_rejected(self, client):
        r = client.get("/habits/consistency?user_id=not%20valid!")
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

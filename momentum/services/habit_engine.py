"""
Habit Consistency Engine — streaks, consistency and habit stacking.

Streak rules
------------
  current_streak  consecutive completed days ending at the most recent
                  recorded day. A day with no record is a miss.
  longest_streak  longest such run over the full history.
  A single miss resets the counter to 0. "Never miss twice" is only ever
  used in messaging; the counter has no grace day.

Consistency
-----------
  completions in the rolling window / min(window, days since the habit
  started, inclusive) × 100. A habit "starts" at the earlier of its creation
  date and its first completion record. Habits with no records are left out
  of the overall score.

Public API
----------
HabitConsistencyEngine(store, cfg)
  .compute_streaks(user_id, today)            -> [HabitStreakState]
  .compute_consistency_score(user_id, today)  -> ConsistencyScore
  .suggest_stacks(user_id, today)             -> [StackSuggestion]
  .habit_analytics(user_id, start, end, ids)  -> HabitAnalyticsReport
"""
from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

import structlog

from momentum.core.config import Settings, settings as default_settings
from momentum.core.errors import InvalidInputError
from momentum.models.habit import Habit, HabitCompletion
from momentum.services.event_store import EventStore
from momentum.services.windows import as_utc, time_of_day, today as _today

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class HabitStreakState:
    habit_id: int
    habit_name: str
    current_streak: int
    longest_streak: int
    consistency_percentage: float    # 0 – 100
    last_completed: Optional[date]
    has_history: bool = True
    streak_just_broken: bool = False  # most recent record is a miss after a completed day


@dataclass
class HabitScore:
    habit_id: int
    habit_name: str
    score: float
    streak: int


@dataclass
class ConsistencyScore:
    overall_score: float
    habit_scores: list[HabitScore] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class StackSuggestion:
    anchor_habit_id: int
    anchor_habit_name: str
    suggested_habit: str
    confidence_score: float          # 0 – 1
    rationale: str
    suggested_habit_id: Optional[int] = None


@dataclass
class StreakStats:
    current_streak: int
    longest_streak_in_period: int
    streak_breaks: int


@dataclass
class HabitPeriodStats:
    habit_id: int
    habit_name: str
    total_opportunities: int
    completed_count: int
    completion_rate: float
    streak_data: StreakStats
    quality_distribution: dict[str, int]


@dataclass
class HabitAnalyticsReport:
    start_date: date
    end_date: date
    habits: list[HabitPeriodStats]
    insights: list[str]
    recommendations: list[str]


# Routine families for template stacks when an anchor has no partner habit.
STACK_TEMPLATES: list[tuple[str, list[str]]] = [
    ("morning routine", ["meditation", "journaling", "exercise", "reading"]),
    ("study session", ["review notes", "practice problems", "summarize learning"]),
    ("evening routine", ["plan tomorrow", "gratitude practice", "prepare clothes"]),
    ("meal time", ["take vitamins", "drink water", "mindful eating"]),
    ("work break", ["stretch", "deep breathing", "walk"]),
]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def calculate_streak(records: Iterable[HabitCompletion]) -> tuple[int, int, Optional[date]]:
    """
    Return (current_streak, longest_streak, last_completed) for one habit.

    `records` may arrive in any order; at most one per day.
    """
    ordered = sorted(records, key=lambda r: r.day)
    if not ordered:
        return 0, 0, None

    longest = 0
    run = 0
    prev_day: Optional[date] = None
    last_completed: Optional[date] = None
    for r in ordered:
        if r.completed:
            contiguous = prev_day is not None and (r.day - prev_day).days == 1
            run = run + 1 if contiguous and run > 0 else 1
            longest = max(longest, run)
            last_completed = r.day
        else:
            run = 0
        prev_day = r.day

    # Walk back from the most recent record
    current = 0
    expected = ordered[-1].day
    for r in reversed(ordered):
        if r.day != expected or not r.completed:
            break
        current += 1
        expected = r.day - timedelta(days=1)

    return current, longest, last_completed


def streak_just_broken(records: Iterable[HabitCompletion]) -> bool:
    ordered = sorted(records, key=lambda r: r.day)
    if len(ordered) < 2:
        return False
    return (not ordered[-1].completed) and ordered[-2].completed


def calculate_consistency(
    records: Iterable[HabitCompletion],
    started: date,
    today: date,
    window: int = 30,
) -> float:
    """Percentage 0 – 100, rounded to 2 decimals."""
    days_active = (today - started).days + 1
    denominator = max(1, min(window, days_active))
    since = today - timedelta(days=denominator - 1)
    done = sum(1 for r in records if r.completed and since <= r.day <= today)
    return round(min(100.0, done / denominator * 100), 2)


def calculate_period_streaks(records: Iterable[HabitCompletion]) -> StreakStats:
    """Streak statistics over records within a period, in day order."""
    ordered = sorted(records, key=lambda r: r.day)
    longest = 0
    run = 0
    breaks = 0
    prev_day: Optional[date] = None
    for r in ordered:
        # A day with no record between two records is a miss
        gap = prev_day is not None and (r.day - prev_day).days > 1
        if run > 0 and (gap or not r.completed):
            breaks += 1
            run = 0
        if r.completed:
            run += 1
            longest = max(longest, run)
        prev_day = r.day

    current = 0
    expected = ordered[-1].day if ordered else None
    for r in reversed(ordered):
        if r.day != expected or not r.completed:
            break
        current += 1
        expected = r.day - timedelta(days=1)
    return StreakStats(current_streak=current, longest_streak_in_period=longest, streak_breaks=breaks)


def _habit_bucket(habit: Habit) -> Optional[str]:
    if habit.reminder_time is None:
        return None
    return time_of_day(habit.reminder_time.hour)


def _template_for(name: str) -> Optional[list[str]]:
    lowered = name.lower()
    for pattern, suggestions in STACK_TEMPLATES:
        first, second = pattern.split(" ")
        if first in lowered or second in lowered:
            return suggestions
    return None


# ---------------------------------------------------------------------------
# Messaging
# ---------------------------------------------------------------------------

def _consistency_insights(
    overall: float,
    scores: list[HabitScore],
    broken: list[HabitStreakState],
    cfg: Settings,
) -> list[str]:
    insights: list[str] = []
    if not scores:
        return insights

    if overall >= 80:
        insights.append("Excellent consistency! You're building strong discipline through your daily habits.")
    elif overall >= 60:
        insights.append("Good consistency overall. Focus on the habits that need more attention.")
    elif overall >= 40:
        insights.append("Moderate consistency. Consider simplifying your habits or reducing the number of habits.")
    else:
        insights.append("Low consistency detected. Focus on 1-2 core habits and build from there.")

    best = max(scores, key=lambda s: s.score)
    if best.score > cfg.STRONG_HABIT_CONSISTENCY:
        insights.append(
            f'Your most consistent habit is "{best.habit_name}" - consider stacking new habits after this one.'
        )

    struggling = [s for s in scores if s.score < cfg.STRUGGLING_HABIT_CONSISTENCY]
    if struggling:
        insights.append(f'{len(struggling)} habit(s) need attention. Consider the "never miss twice" rule.')

    for state in broken:
        insights.append(
            f'You missed "{state.habit_name}" last time. Never miss twice: get back on track today.'
        )
    return insights


def _consistency_recommendations(
    overall: float, scores: list[HabitScore], cfg: Settings
) -> list[str]:
    recs: list[str] = []
    if not scores:
        return recs

    if overall < 60:
        recs.append(
            f"Focus on 1-2 core habits until they become automatic "
            f"({cfg.STACK_STREAK_TARGET_DAYS}+ day streaks)"
        )
        recs.append('Use the "never miss twice" rule - if you miss once, prioritize not missing again')

    if any(s.score < cfg.STRUGGLING_HABIT_CONSISTENCY for s in scores):
        recs.append("Consider making struggling habits smaller or easier to complete")
        recs.append("Link struggling habits to existing strong routines (habit stacking)")

    if len(scores) > 5:
        recs.append("Consider reducing the number of habits you're tracking to focus on quality over quantity")

    if any(s.score > cfg.STRONG_HABIT_CONSISTENCY for s in scores):
        recs.append("Use your strong habits as anchors for building new habit stacks")
    return recs


def _analytics_insights(stats: list[HabitPeriodStats]) -> list[str]:
    if not stats:
        return []
    insights: list[str] = []
    avg = sum(h.completion_rate for h in stats) / len(stats)
    if avg > 80:
        insights.append("Outstanding habit performance! You're consistently executing your routines.")
    elif avg > 60:
        insights.append("Solid habit performance with room for improvement on consistency.")
    else:
        insights.append("Habit consistency needs attention. Focus on your most important habits first.")

    best = max(stats, key=lambda h: h.completion_rate)
    insights.append(
        f'"{best.habit_name}" is your strongest habit with {best.completion_rate:.1f}% completion rate.'
    )

    breaks = sum(h.streak_data.streak_breaks for h in stats)
    if breaks > 0:
        insights.append(f"You had {breaks} streak breaks in this period. Remember: never miss twice!")
    return insights


def _analytics_recommendations(stats: list[HabitPeriodStats]) -> list[str]:
    recs: list[str] = []
    if any(h.completion_rate < 50 for h in stats):
        recs.append("Consider simplifying or reducing the frequency of low-performing habits")
        recs.append("Use habit stacking to link struggling habits with strong ones")
    if any(h.streak_data.streak_breaks > 2 for h in stats):
        recs.append("Focus on consistency over perfection - aim to never miss the same habit twice in a row")
    if len(stats) > 3:
        avg = sum(h.completion_rate for h in stats) / len(stats)
        if avg < 70:
            recs.append("Consider focusing on fewer habits to improve overall consistency")
    return recs


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class HabitConsistencyEngine:
    def __init__(self, store: EventStore, cfg: Settings = default_settings):
        self._store = store
        self._cfg = cfg

    def _load(
        self, user_id: str, today: date
    ) -> tuple[list[Habit], dict[int, list[HabitCompletion]]]:
        habits = self._store.list_active_habits(user_id)
        by_habit: dict[int, list[HabitCompletion]] = defaultdict(list)
        for record in self._store.query_habit_completions(user_id, until=today):
            by_habit[record.habit_id].append(record)
        return habits, by_habit

    def _state(
        self, habit: Habit, records: list[HabitCompletion], today: date
    ) -> HabitStreakState:
        current, longest, last_completed = calculate_streak(records)
        if records:
            started = min(as_utc(habit.created_at).date(), min(r.day for r in records))
            consistency = calculate_consistency(
                records, started, today, self._cfg.CONSISTENCY_WINDOW_DAYS
            )
        else:
            consistency = 0.0
        return HabitStreakState(
            habit_id=habit.id,
            habit_name=habit.name,
            current_streak=current,
            longest_streak=longest,
            consistency_percentage=consistency,
            last_completed=last_completed,
            has_history=bool(records),
            streak_just_broken=streak_just_broken(records),
        )

    def compute_streaks(self, user_id: str, today: Optional[date] = None) -> list[HabitStreakState]:
        end = today or _today()
        habits, by_habit = self._load(user_id, end)
        return [self._state(h, by_habit.get(h.id, []), end) for h in habits]

    def compute_consistency_score(
        self, user_id: str, today: Optional[date] = None
    ) -> ConsistencyScore:
        states = self.compute_streaks(user_id, today)
        return self.score_from_states(states)

    def score_from_states(self, states: list[HabitStreakState]) -> ConsistencyScore:
        scored = [s for s in states if s.has_history]
        habit_scores = [
            HabitScore(
                habit_id=s.habit_id,
                habit_name=s.habit_name,
                score=round(s.consistency_percentage, 1),
                streak=s.current_streak,
            )
            for s in scored
        ]
        overall = (
            round(sum(s.consistency_percentage for s in scored) / len(scored), 1)
            if scored else 0.0
        )
        broken = [s for s in scored if s.streak_just_broken]
        return ConsistencyScore(
            overall_score=overall,
            habit_scores=habit_scores,
            insights=_consistency_insights(overall, habit_scores, broken, self._cfg),
            recommendations=_consistency_recommendations(overall, habit_scores, self._cfg),
        )

    # -- stacking -----------------------------------------------------------

    def suggest_stacks(self, user_id: str, today: Optional[date] = None) -> list[StackSuggestion]:
        """
        Pair strong anchor habits with weaker habits practised at the same
        time of day. Confidence grows with the anchor's current streak and
        with how often the candidate was also completed on the anchor's days.
        Anchors without a partner habit fall back to routine templates.
        """
        cfg = self._cfg
        end = today or _today()
        habits, by_habit = self._load(user_id, end)
        states = {h.id: self._state(h, by_habit.get(h.id, []), end) for h in habits}
        window_start = end - timedelta(days=cfg.CONSISTENCY_WINDOW_DAYS - 1)

        anchors = sorted(
            (
                h for h in habits
                if h.stacked_after is None
                and states[h.id].consistency_percentage >= cfg.STACK_ANCHOR_MIN_CONSISTENCY
            ),
            key=lambda h: states[h.id].consistency_percentage,
            reverse=True,
        )[:3]

        suggestions: list[StackSuggestion] = []
        for anchor in anchors:
            anchor_state = states[anchor.id]
            anchor_days = {
                r.day for r in by_habit.get(anchor.id, [])
                if r.completed and window_start <= r.day <= end
            }
            streak_factor = min(1.0, anchor_state.current_streak / cfg.STACK_STREAK_TARGET_DAYS)
            anchor_bucket = _habit_bucket(anchor)

            candidates = [
                h for h in habits
                if h.id != anchor.id
                and states[h.id].consistency_percentage < cfg.STACK_ANCHOR_MIN_CONSISTENCY
                and (
                    anchor_bucket is None
                    or _habit_bucket(h) is None
                    or _habit_bucket(h) == anchor_bucket
                )
            ]

            for candidate in candidates:
                candidate_days = {
                    r.day for r in by_habit.get(candidate.id, []) if r.completed
                }
                correlation = (
                    len(anchor_days & candidate_days) / len(anchor_days) if anchor_days else 0.0
                )
                confidence = min(0.9, 0.2 + 0.4 * streak_factor + 0.4 * correlation)
                suggestions.append(StackSuggestion(
                    anchor_habit_id=anchor.id,
                    anchor_habit_name=anchor.name,
                    suggested_habit=candidate.name,
                    suggested_habit_id=candidate.id,
                    confidence_score=round(confidence, 2),
                    rationale=(
                        f"Do {candidate.name} right after {anchor.name} "
                        f"({anchor_state.consistency_percentage:.0f}% consistency, "
                        f"{anchor_state.current_streak}-day streak)"
                    ),
                ))

            if candidates:
                continue

            template = _template_for(anchor.name)
            if template is None:
                continue
            owned = [h.name.lower() for h in habits]
            for idea in template:
                if any(idea in name for name in owned):
                    continue
                suggestions.append(StackSuggestion(
                    anchor_habit_id=anchor.id,
                    anchor_habit_name=anchor.name,
                    suggested_habit=idea,
                    confidence_score=round(
                        min(0.9, anchor_state.consistency_percentage / 100 + 0.2), 2
                    ),
                    rationale=(
                        f"Stack with your consistent {anchor.name} habit "
                        f"({anchor_state.consistency_percentage:.0f}% consistency)"
                    ),
                ))

        seen: set[str] = set()
        unique: list[StackSuggestion] = []
        for s in suggestions:
            key = s.suggested_habit.lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(s)
        unique.sort(key=lambda s: s.confidence_score, reverse=True)
        return unique[: cfg.STACK_MAX_SUGGESTIONS]

    # -- period analytics ---------------------------------------------------

    def habit_analytics(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        habit_ids: Optional[list[int]] = None,
    ) -> HabitAnalyticsReport:
        end = end or _today()
        start = start or end - timedelta(days=self._cfg.CONSISTENCY_WINDOW_DAYS - 1)
        if start > end:
            raise InvalidInputError(
                field="start_date",
                message="start_date must not be after end_date.",
                value=start,
            )

        habits = self._store.list_active_habits(user_id)
        if habit_ids:
            habits = [h for h in habits if h.id in habit_ids]

        records = self._store.query_habit_completions(user_id, since=start, until=end)
        by_habit: dict[int, list[HabitCompletion]] = defaultdict(list)
        for r in records:
            by_habit[r.habit_id].append(r)

        days = (end - start).days + 1
        stats: list[HabitPeriodStats] = []
        for habit in habits:
            completions = by_habit.get(habit.id, [])
            opportunities = days if habit.frequency == "daily" else math.ceil(days / 7)
            done = sum(1 for c in completions if c.completed)
            rate = (done / opportunities) * 100 if opportunities else 0.0
            quality = {"excellent": 0, "good": 0, "poor": 0}
            for c in completions:
                q = c.quality.value if hasattr(c.quality, "value") else c.quality
                if q in quality:
                    quality[q] += 1
            stats.append(HabitPeriodStats(
                habit_id=habit.id,
                habit_name=habit.name,
                total_opportunities=opportunities,
                completed_count=done,
                completion_rate=round(min(100.0, rate), 2),
                streak_data=calculate_period_streaks(completions),
                quality_distribution=quality,
            ))

        logger.info("habit_analytics_computed", user_id=user_id, habits=len(stats))
        return HabitAnalyticsReport(
            start_date=start,
            end_date=end,
            habits=stats,
            insights=_analytics_insights(stats),
            recommendations=_analytics_recommendations(stats),
        )

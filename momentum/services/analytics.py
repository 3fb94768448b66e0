"""
Analytics Aggregator — point-in-time snapshot of a user's behavior.

get_analytics_data(user_id, period, reference_date) -> AnalyticsSnapshot

Window
------
  daily = 1 day, weekly = 7 days, monthly = 30 days, ending on
  reference_date (default: today, UTC) inclusive. Every time-indexed array
  has exactly one entry per day in the window, oldest first, 0 for days
  without data.

Failure semantics
-----------------
  InvalidInputError     bad user id / period; raised before any query.
  DataUnavailableError  the event store cannot be reached at all.
  Anything else a sub-collaborator does wrong (error, timeout) replaces that
  sub-result with its default and is logged as a warning.

Sub-collaborator reads fan out on a thread pool. They share one deadline
(COLLABORATOR_TIMEOUT_SECONDS); a failed read is retried once after a short
backoff if time remains.
"""
from __future__ import annotations

import re
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Optional

import structlog

from momentum.core.config import Settings, settings as default_settings
from momentum.core.errors import InvalidInputError, PartialDataDefault
from momentum.models.adjustment_log import AdjustmentRecord
from momentum.models.behavioral_event import BehavioralEvent
from momentum.services.event_store import DailyActivityStats, EventStore
from momentum.services.habit_engine import HabitConsistencyEngine, HabitStreakState, ConsistencyScore
from momentum.services.pattern_engine import (
    EnergyPattern,
    Insight,
    LearningProgression,
    PatternRecognitionEngine,
    build_insights,
    distraction_triggers,
    energy_patterns,
    learning_progression,
    productivity_peaks,
    routine_modification_frequency,
    suggestion_acceptance_rate,
)
from momentum.services.profile import ProfileCollaborator, ProfileSnapshot
from momentum.services.reviews import ReviewAnalysis, ReviewCollaborator, ReviewHistory, daily_completion_rate
from momentum.services.windows import period_days, today as _today, window_days

logger = structlog.get_logger(__name__)

USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

NEUTRAL_EFFECTIVENESS = 50.0
MAX_WINDOW_DAYS = 90


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class DistractionPattern:
    time_period: str
    average_distractions: float
    common_triggers: list[str]
    impact_on_focus: float          # 0 – 1, higher means focus suffered more


@dataclass
class ProductivityPattern:
    daily_completion_rates: list[float]
    focus_quality_trend: list[float]
    deep_work_hours_trend: list[float]
    daily_distraction_counts: list[int]
    energy_patterns: list[EnergyPattern] = field(default_factory=list)
    most_productive_hours: list[str] = field(default_factory=list)
    distraction_patterns: list[DistractionPattern] = field(default_factory=list)


@dataclass
class PersonalizationMetrics:
    profile_completeness: float
    adaptation_effectiveness: float
    suggestion_acceptance_rate: float
    routine_modification_frequency: float
    learning_progression: LearningProgression


@dataclass
class AnalyticsSnapshot:
    user_id: str
    period: str
    start_date: date
    end_date: date
    consistency_score: float
    identity_alignment: float
    deep_work_trend: list[float]
    habit_streaks: list[HabitStreakState]
    productivity_pattern: ProductivityPattern
    behavioral_insights: list[Insight]
    personalization_metrics: PersonalizationMetrics
    consistency: Optional[ConsistencyScore] = None


# ---------------------------------------------------------------------------
# Validation / helpers
# ---------------------------------------------------------------------------

def validate_user_id(user_id: Any) -> str:
    if not isinstance(user_id, str) or not USER_ID_PATTERN.match(user_id):
        raise InvalidInputError(
            field="user_id",
            message="user_id must be 1-64 characters of letters, digits, '_' or '-'.",
            value=user_id,
        )
    return user_id


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _ranked(counter: Counter) -> list[str]:
    return [key for key, _ in sorted(counter.items(), key=lambda kv: -kv[1])]


def completion_rates_by_day(days: list[date], reviews: ReviewHistory) -> list[float]:
    by_day = {r.day: daily_completion_rate(r) for r in reviews.reviews}
    return [round(by_day.get(d, 0.0), 2) for d in days]


def distraction_patterns(
    stats: list[DailyActivityStats], triggers: list[str]
) -> list[DistractionPattern]:
    totals: dict[str, list[int]] = {}
    focus: dict[str, list[float]] = {}
    for day in stats:
        for period, count in day.distractions_by_period.items():
            totals.setdefault(period, []).append(count)
        for period, value in day.focus_by_period.items():
            focus.setdefault(period, []).append(value)

    patterns = []
    for period, counts in totals.items():
        period_focus = focus.get(period, [])
        mean_focus = sum(period_focus) / len(period_focus) if period_focus else 0.0
        patterns.append(DistractionPattern(
            time_period=period,
            average_distractions=round(sum(counts) / len(counts), 1),
            common_triggers=list(triggers),
            impact_on_focus=round(1 - mean_focus, 2) if period_focus else 0.0,
        ))
    return patterns


def most_productive_hours(
    stats: list[DailyActivityStats], events: list[BehavioralEvent], cfg: Settings
) -> list[str]:
    """Top two "HH:00" hours across the window; productivity peaks without activity data."""
    hours = Counter(s.most_productive_hour for s in stats if s.most_productive_hour)
    if hours:
        return _ranked(hours)[:2]
    return productivity_peaks(events, cfg)


def adaptation_effectiveness(
    adjustments: list[AdjustmentRecord],
    completion_by_day: dict[date, float],
    deep_work_by_day: dict[date, float],
) -> float:
    """
    Percentage of logged adjustments whose tracked metric improved on the
    days after emission. Adjustments with no later data are not evaluated.
    """
    series = {"completion_rate": completion_by_day, "deep_work_hours": deep_work_by_day}
    evaluated = 0
    improved = 0
    for adj in adjustments:
        values = series.get(adj.tracked_metric, {})
        after = [v for d, v in values.items() if d > adj.emitted_on]
        if not after:
            continue
        evaluated += 1
        mean_after = sum(after) / len(after)
        if adj.adjustment_type == "complexity_increase":
            if mean_after >= adj.baseline_value:
                improved += 1
        elif mean_after > adj.baseline_value:
            improved += 1
    if not evaluated:
        return NEUTRAL_EFFECTIVENESS
    return round(improved / evaluated * 100, 1)


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class AnalyticsAggregator:
    def __init__(
        self,
        store: EventStore,
        habits: Optional[HabitConsistencyEngine] = None,
        patterns: Optional[PatternRecognitionEngine] = None,
        profiles: Optional[ProfileCollaborator] = None,
        reviews: Optional[ReviewCollaborator] = None,
        cfg: Settings = default_settings,
    ):
        self._store = store
        self._cfg = cfg
        self._habits = habits or HabitConsistencyEngine(store, cfg)
        self._patterns = patterns or PatternRecognitionEngine(store, cfg)
        self._profiles = profiles or ProfileCollaborator(store.session_factory)
        self._reviews = reviews or ReviewCollaborator(store.session_factory)

    # -- fan-out ------------------------------------------------------------

    def _attempt(self, name: str, fn: Callable[[], Any], deadline: float) -> Any:
        try:
            return fn()
        except Exception as first:
            backoff = self._cfg.COLLABORATOR_RETRY_BACKOFF_SECONDS
            if time.monotonic() + backoff >= deadline:
                raise PartialDataDefault(name, f"{first.__class__.__name__}: {first}") from first
            time.sleep(backoff)
            try:
                return fn()
            except Exception as second:
                raise PartialDataDefault(name, f"{second.__class__.__name__}: {second}") from second

    def _gather(
        self,
        user_id: str,
        tasks: dict[str, tuple[Callable[[], Any], Callable[[], Any]]],
    ) -> dict[str, Any]:
        """Run every (call, default) pair concurrently; never raises."""
        cfg = self._cfg
        deadline = time.monotonic() + cfg.COLLABORATOR_TIMEOUT_SECONDS
        pool = ThreadPoolExecutor(
            max_workers=max(1, min(cfg.AGGREGATOR_MAX_WORKERS, len(tasks))),
            thread_name_prefix="momentum-fanout",
        )
        results: dict[str, Any] = {}
        try:
            futures = {
                name: pool.submit(self._attempt, name, call, deadline)
                for name, (call, _) in tasks.items()
            }
            for name, future in futures.items():
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    results[name] = future.result(timeout=remaining)
                except FutureTimeout:
                    future.cancel()
                    self._defaulted(user_id, PartialDataDefault(name, "timed out"))
                    results[name] = tasks[name][1]()
                except PartialDataDefault as exc:
                    self._defaulted(user_id, exc)
                    results[name] = tasks[name][1]()
        finally:
            # Hung collaborators keep their thread; the snapshot does not wait for them.
            pool.shutdown(wait=False, cancel_futures=True)
        return results

    @staticmethod
    def _defaulted(user_id: str, exc: PartialDataDefault) -> None:
        logger.warning(
            "partial_data_default",
            user_id=user_id,
            source=exc.source,
            reason=exc.reason,
        )

    # -- adaptation ---------------------------------------------------------

    def _adaptation_effectiveness(self, user_id: str, end: date) -> float:
        horizon = end - timedelta(days=self._cfg.INSIGHT_WINDOW_DAYS - 1)
        adjustments = [
            a for a in self._store.list_adjustments(user_id, until=end)
            if horizon <= a.emitted_on < end
        ]
        if not adjustments:
            return NEUTRAL_EFFECTIVENESS

        start = min(a.emitted_on for a in adjustments)
        activity = self._store.query_activity_stats_window(user_id, start, end)
        reviews = self._reviews.get_review_history(user_id, days=(end - start).days + 1, until=end)
        days = [s.day for s in activity]
        completion = dict(zip(days, completion_rates_by_day(days, reviews)))
        deep_work = {s.day: s.deep_work_hours for s in activity}
        return adaptation_effectiveness(adjustments, completion, deep_work)

    # -- snapshot -----------------------------------------------------------

    def get_analytics_data(
        self,
        user_id: str,
        period: str = "weekly",
        reference_date: Optional[date] = None,
    ) -> AnalyticsSnapshot:
        validate_user_id(user_id)
        n = period_days(period)
        return self._snapshot(user_id, period, n, reference_date or _today())

    def snapshot_for_window(
        self,
        user_id: str,
        days: int,
        reference_date: Optional[date] = None,
    ) -> AnalyticsSnapshot:
        """Snapshot over an arbitrary day count, labelled e.g. "14d"."""
        validate_user_id(user_id)
        if days < 1 or days > MAX_WINDOW_DAYS:
            raise InvalidInputError(
                field="window_days",
                message=f"window_days must be between 1 and {MAX_WINDOW_DAYS}.",
                value=days,
            )
        return self._snapshot(user_id, f"{days}d", days, reference_date or _today())

    def _snapshot(self, user_id: str, period: str, n: int, end: date) -> AnalyticsSnapshot:
        days = window_days(end, n)
        start = days[0]

        self._store.ping()

        def empty_stats() -> list[DailyActivityStats]:
            return [DailyActivityStats(day=d) for d in days]

        results = self._gather(user_id, {
            "habit_streaks": (
                lambda: self._habits.compute_streaks(user_id, end),
                list,
            ),
            "profile": (
                lambda: self._profiles.get_profile(user_id),
                lambda: ProfileSnapshot(user_id=user_id),
            ),
            "activity": (
                lambda: self._store.query_activity_stats_window(user_id, start, end),
                empty_stats,
            ),
            "reviews": (
                lambda: self._reviews.get_review_history(user_id, days=n, until=end),
                lambda: ReviewHistory(reviews=[], analysis=ReviewAnalysis()),
            ),
            "events": (
                lambda: self._patterns.window_events(user_id, end),
                list,
            ),
            "adaptation": (
                lambda: self._adaptation_effectiveness(user_id, end),
                lambda: NEUTRAL_EFFECTIVENESS,
            ),
            "first_seen": (
                lambda: self._store.first_event_day(user_id, until=end),
                lambda: None,
            ),
        })

        streaks: list[HabitStreakState] = results["habit_streaks"]
        profile: ProfileSnapshot = results["profile"]
        activity: list[DailyActivityStats] = results["activity"]
        reviews: ReviewHistory = results["reviews"]
        events: list[BehavioralEvent] = results["events"]

        if len(activity) != n:
            activity = empty_stats()

        consistency = self._habits.score_from_states(streaks)
        cfg = self._cfg
        triggers = distraction_triggers(events, cfg)
        deep_work_trend = [s.deep_work_hours for s in activity]

        pattern = ProductivityPattern(
            daily_completion_rates=completion_rates_by_day(days, reviews),
            focus_quality_trend=[round(s.focus_quality * 100, 2) for s in activity],
            deep_work_hours_trend=list(deep_work_trend),
            daily_distraction_counts=[s.distraction_count for s in activity],
            energy_patterns=energy_patterns(events),
            most_productive_hours=most_productive_hours(activity, events, cfg),
            distraction_patterns=distraction_patterns(activity, triggers),
        )

        if events:
            insights = [
                i for i in build_insights(events, cfg)
                if i.pattern_strength >= cfg.INSIGHT_MIN_STRENGTH
            ]
        else:
            insights = build_insights(events, cfg)

        metrics = PersonalizationMetrics(
            profile_completeness=profile.completion_percentage,
            adaptation_effectiveness=results["adaptation"],
            suggestion_acceptance_rate=suggestion_acceptance_rate(events),
            routine_modification_frequency=routine_modification_frequency(
                events, cfg.INSIGHT_WINDOW_DAYS
            ),
            learning_progression=learning_progression(events, end, results["first_seen"]),
        )

        snapshot = AnalyticsSnapshot(
            user_id=user_id,
            period=period,
            start_date=start,
            end_date=end,
            consistency_score=clamp(consistency.overall_score),
            identity_alignment=clamp(profile.identity_alignment),
            deep_work_trend=deep_work_trend,
            habit_streaks=streaks,
            productivity_pattern=pattern,
            behavioral_insights=insights,
            personalization_metrics=metrics,
            consistency=consistency,
        )
        logger.info(
            "analytics_snapshot_generated",
            user_id=user_id,
            period=period,
            consistency_score=snapshot.consistency_score,
            identity_alignment=snapshot.identity_alignment,
        )
        return snapshot

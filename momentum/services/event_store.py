"""
Event Store Accessor — the engine's only door into persisted behavior data.

Reads
-----
query_events(user_id, event_types, since, until)        -> [BehavioralEvent]
query_habit_completions(user_id, habit_id, since, until) -> [HabitCompletion]
list_active_habits(user_id)                              -> [Habit]
query_activity_sessions(user_id, since, until)           -> [ActivitySession]
query_daily_activity_stats(user_id, day)                 -> DailyActivityStats
query_activity_stats_window(user_id, start, end)         -> [DailyActivityStats]
list_adjustments(user_id, until)                         -> [AdjustmentRecord]

Writes (ingestion boundary + adjustment log)
------
record_event / record_events / upsert_habit_completion / record_adjustments

Every call opens its own short-lived session from the factory, so the
Analytics Aggregator can fan reads out across threads without sharing one.
Datetime bounds are [since, until); date bounds are inclusive.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import structlog
from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from momentum.core.config import Settings, settings as default_settings
from momentum.core.errors import DataUnavailableError, HabitNotFoundError
from momentum.db.base import SessionLocal
from momentum.models.activity_session import ActivitySession
from momentum.models.adjustment_log import AdjustmentRecord
from momentum.models.behavioral_event import BehavioralEvent, EventType
from momentum.models.habit import Habit, HabitCompletion
from momentum.services.windows import as_utc, day_end, day_start, time_of_day, window_days

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass
class DailyActivityStats:
    day: date
    total_tracked_minutes: int = 0
    focused_minutes: int = 0
    deep_work_hours: float = 0.0
    focus_quality: float = 0.0          # 0.0 – 1.0, mean session focus / 10
    distraction_count: int = 0
    session_count: int = 0
    most_productive_hour: Optional[str] = None   # "HH:00"
    distractions_by_period: dict[str, int] = field(default_factory=dict)
    focus_by_period: dict[str, float] = field(default_factory=dict)   # 0.0 – 1.0


@dataclass
class NewEvent:
    user_id: str
    event_type: str
    event_data: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None


@dataclass
class NewAdjustment:
    adjustment_type: str
    reason: str
    expected_impact: float
    tracked_metric: str
    baseline_value: float


# ---------------------------------------------------------------------------
# Session summarization (pure)
# ---------------------------------------------------------------------------

def _session_score(session: ActivitySession) -> float:
    """Duration-normalized focus, penalized by distractions."""
    focus = (session.focus_quality or 5) / 10
    duration = min(1.0, (session.duration or 0) / 90)
    penalty = max(0.0, 1 - (session.distractions or 0) * 0.1)
    return focus * duration * penalty


def summarize_sessions(
    day: date,
    sessions: list[ActivitySession],
    cfg: Settings = default_settings,
) -> DailyActivityStats:
    """
    Reduce one day's sessions to DailyActivityStats.

    Focus quality is 1-10. Sessions rated ≥ DEEP_WORK_MIN_FOCUS count fully as
    focused time and, when they last ≥ DEEP_WORK_MIN_MINUTES, as deep work.
    Mid-range sessions (4-6) earn 70% focused credit.
    """
    if not sessions:
        return DailyActivityStats(day=day)

    total = 0
    focused = 0.0
    deep_minutes = 0
    distractions = 0
    rated: list[int] = []
    hourly: dict[str, float] = {}
    period_distractions: dict[str, int] = {}
    period_focus: dict[str, list[int]] = {}

    for s in sessions:
        minutes = s.duration or 0
        total += minutes
        distractions += s.distractions or 0
        started = as_utc(s.start_time)
        period = time_of_day(started.hour)
        period_distractions[period] = period_distractions.get(period, 0) + (s.distractions or 0)
        quality = s.focus_quality
        if quality is not None:
            rated.append(quality)
            period_focus.setdefault(period, []).append(quality)
            if quality >= cfg.DEEP_WORK_MIN_FOCUS:
                focused += minutes
                if minutes >= cfg.DEEP_WORK_MIN_MINUTES:
                    deep_minutes += minutes
            elif quality >= 4:
                focused += minutes * 0.7
        hour_key = f"{started.hour:02d}:00"
        hourly[hour_key] = hourly.get(hour_key, 0.0) + _session_score(s)

    best_hour = max(hourly.items(), key=lambda kv: kv[1])[0] if hourly else None

    return DailyActivityStats(
        day=day,
        total_tracked_minutes=total,
        focused_minutes=round(focused),
        deep_work_hours=round(deep_minutes / 60, 2),
        focus_quality=round(sum(rated) / len(rated) / 10, 4) if rated else 0.0,
        distraction_count=distractions,
        session_count=len(sessions),
        most_productive_hour=best_hour,
        distractions_by_period=period_distractions,
        focus_by_period={
            period: round(sum(values) / len(values) / 10, 4)
            for period, values in period_focus.items()
        },
    )


# ---------------------------------------------------------------------------
# Accessor
# ---------------------------------------------------------------------------

class EventStore:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        cfg: Settings = default_settings,
    ):
        self._session_factory = session_factory
        self._cfg = cfg

    @property
    def session_factory(self) -> Callable[[], Session]:
        return self._session_factory

    # -- reachability -------------------------------------------------------

    def ping(self) -> None:
        """Raise DataUnavailableError when the store cannot be reached."""
        try:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("event_store_unreachable", error=str(exc))
            raise DataUnavailableError(reason=exc.__class__.__name__) from exc

    # -- reads --------------------------------------------------------------

    def query_events(
        self,
        user_id: str,
        event_types: Optional[list[str]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[BehavioralEvent]:
        """Events ordered by timestamp ascending (then id, for equal stamps)."""
        with self._session_factory() as db:
            q = db.query(BehavioralEvent).filter(BehavioralEvent.user_id == user_id)
            if event_types:
                q = q.filter(BehavioralEvent.event_type.in_(event_types))
            if since is not None:
                q = q.filter(BehavioralEvent.timestamp >= since)
            if until is not None:
                q = q.filter(BehavioralEvent.timestamp < until)
            return q.order_by(BehavioralEvent.timestamp.asc(), BehavioralEvent.id.asc()).all()

    def first_event_day(self, user_id: str, until: Optional[date] = None) -> Optional[date]:
        """Day of the user's earliest event on or before `until`, if any."""
        with self._session_factory() as db:
            q = db.query(func.min(BehavioralEvent.timestamp)).filter(BehavioralEvent.user_id == user_id)
            if until is not None:
                q = q.filter(BehavioralEvent.timestamp < day_end(until))
            first = q.scalar()
        return as_utc(first).date() if first is not None else None

    def count_events(self, user_id: str, event_type: Optional[str] = None) -> int:
        with self._session_factory() as db:
            q = db.query(BehavioralEvent).filter(BehavioralEvent.user_id == user_id)
            if event_type:
                q = q.filter(BehavioralEvent.event_type == event_type)
            return q.count()

    def list_events_page(
        self,
        user_id: str,
        event_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[int, list[BehavioralEvent]]:
        """Newest first, for the listing endpoint."""
        with self._session_factory() as db:
            q = db.query(BehavioralEvent).filter(BehavioralEvent.user_id == user_id)
            if event_type:
                q = q.filter(BehavioralEvent.event_type == event_type)
            total = q.count()
            items = (
                q.order_by(BehavioralEvent.timestamp.desc(), BehavioralEvent.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return total, items

    def query_habit_completions(
        self,
        user_id: str,
        habit_id: Optional[int] = None,
        since: Optional[date] = None,
        until: Optional[date] = None,
    ) -> list[HabitCompletion]:
        """Completion records ordered by (habit_id, day) ascending."""
        with self._session_factory() as db:
            q = db.query(HabitCompletion).filter(HabitCompletion.user_id == user_id)
            if habit_id is not None:
                q = q.filter(HabitCompletion.habit_id == habit_id)
            if since is not None:
                q = q.filter(HabitCompletion.day >= since)
            if until is not None:
                q = q.filter(HabitCompletion.day <= until)
            return q.order_by(HabitCompletion.habit_id.asc(), HabitCompletion.day.asc()).all()

    def list_active_habits(self, user_id: str) -> list[Habit]:
        with self._session_factory() as db:
            return (
                db.query(Habit)
                .filter(Habit.user_id == user_id, Habit.is_active.is_(True))
                .order_by(Habit.id.asc())
                .all()
            )

    def query_activity_sessions(
        self,
        user_id: str,
        since: datetime,
        until: datetime,
    ) -> list[ActivitySession]:
        with self._session_factory() as db:
            return (
                db.query(ActivitySession)
                .filter(
                    ActivitySession.user_id == user_id,
                    ActivitySession.start_time >= since,
                    ActivitySession.start_time < until,
                )
                .order_by(ActivitySession.start_time.asc())
                .all()
            )

    def query_daily_activity_stats(self, user_id: str, day: date) -> DailyActivityStats:
        sessions = self.query_activity_sessions(user_id, day_start(day), day_end(day))
        return summarize_sessions(day, sessions, self._cfg)

    def query_activity_stats_window(
        self, user_id: str, start: date, end: date
    ) -> list[DailyActivityStats]:
        """One DailyActivityStats per calendar day in [start, end], zero-filled."""
        sessions = self.query_activity_sessions(user_id, day_start(start), day_end(end))
        by_day: dict[date, list[ActivitySession]] = defaultdict(list)
        for s in sessions:
            by_day[as_utc(s.start_time).date()].append(s)
        n = (end - start).days + 1
        return [
            summarize_sessions(d, by_day.get(d, []), self._cfg)
            for d in window_days(end, n)
        ]

    def list_adjustments(
        self, user_id: str, until: Optional[date] = None
    ) -> list[AdjustmentRecord]:
        with self._session_factory() as db:
            q = db.query(AdjustmentRecord).filter(AdjustmentRecord.user_id == user_id)
            if until is not None:
                q = q.filter(AdjustmentRecord.emitted_on <= until)
            return q.order_by(AdjustmentRecord.emitted_on.asc(), AdjustmentRecord.id.asc()).all()

    # -- writes -------------------------------------------------------------

    @staticmethod
    def _new_event_row(ev: NewEvent) -> BehavioralEvent:
        return BehavioralEvent(
            user_id=ev.user_id,
            event_type=ev.event_type,
            event_data=ev.event_data or {},
            context=ev.context or {},
            timestamp=ev.timestamp or datetime.now(tz=timezone.utc),
        )

    def record_event(self, ev: NewEvent) -> BehavioralEvent:
        with self._session_factory() as db:
            row = self._new_event_row(ev)
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.info(
                "behavioral_event_recorded",
                user_id=ev.user_id, event_type=ev.event_type, event_id=row.id,
            )
            return row

    def record_events(self, items: list[tuple[int, NewEvent]]) -> list[dict]:
        """
        Persist (index, event) pairs using one savepoint per item.
        A failure on one item does not cancel the others.
        Returns raw dicts {index, ok, result, error} in input order.
        """
        raw_results = []
        with self._session_factory() as db:
            for index, ev in items:
                savepoint = db.begin_nested()
                try:
                    row = self._new_event_row(ev)
                    db.add(row)
                    db.flush()
                    savepoint.commit()
                    raw_results.append({"index": index, "ok": True, "result": row, "error": None})
                except SQLAlchemyError as exc:
                    savepoint.rollback()
                    logger.warning("batch_event_rejected", index=index, error=str(exc))
                    raw_results.append({"index": index, "ok": False, "result": None, "error": str(exc)})
            db.commit()
        return raw_results

    def upsert_habit_completion(
        self,
        user_id: str,
        habit_id: int,
        day: date,
        completed: bool,
        quality: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> HabitCompletion:
        """
        Insert or overwrite the (habit_id, day) record and mirror the check-in
        as a `habit_completion` behavioral event.
        """
        with self._session_factory() as db:
            habit = (
                db.query(Habit)
                .filter(Habit.id == habit_id, Habit.user_id == user_id)
                .first()
            )
            if habit is None:
                raise HabitNotFoundError(habit_id=habit_id, user_id=user_id)

            record = (
                db.query(HabitCompletion)
                .filter(HabitCompletion.habit_id == habit_id, HabitCompletion.day == day)
                .first()
            )
            if record is None:
                record = HabitCompletion(habit_id=habit_id, user_id=user_id, day=day)
                db.add(record)
            record.completed = completed
            record.quality = quality
            record.notes = notes

            db.add(self._new_event_row(NewEvent(
                user_id=user_id,
                event_type=EventType.habit_completion.value,
                event_data={"habitId": habit_id, "completed": completed},
                context={},
            )))
            db.commit()
            db.refresh(record)
            return record

    def record_adjustments(
        self,
        user_id: str,
        adjustments: list[NewAdjustment],
        emitted_on: date,
    ) -> int:
        """
        Append adjustments to the log. At most one row per
        (user_id, adjustment_type, emitted_on); repeats are skipped.
        Returns the number of rows written.
        """
        written = 0
        with self._session_factory() as db:
            for adj in adjustments:
                exists = (
                    db.query(AdjustmentRecord.id)
                    .filter(
                        AdjustmentRecord.user_id == user_id,
                        AdjustmentRecord.adjustment_type == adj.adjustment_type,
                        AdjustmentRecord.emitted_on == emitted_on,
                    )
                    .first()
                    is not None
                )
                if exists:
                    continue
                savepoint = db.begin_nested()
                try:
                    db.add(AdjustmentRecord(
                        user_id=user_id,
                        adjustment_type=adj.adjustment_type,
                        reason=adj.reason,
                        expected_impact=adj.expected_impact,
                        tracked_metric=adj.tracked_metric,
                        baseline_value=adj.baseline_value,
                        emitted_on=emitted_on,
                    ))
                    db.flush()
                    savepoint.commit()
                    written += 1
                except IntegrityError:
                    # Concurrent writer got there first
                    savepoint.rollback()
            db.commit()
        if written:
            logger.info("adjustments_logged", user_id=user_id, count=written, emitted_on=str(emitted_on))
        return written


def get_event_store() -> EventStore:
    """FastAPI dependency; overridden in tests to bind a test session factory."""
    return EventStore()

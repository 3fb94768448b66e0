"""
Habit Consistency router.

POST /habits/completions        — upsert a habit check-in for one day
GET  /habits/streaks            — current / longest streak per active habit
GET  /habits/consistency        — overall consistency score with insights
GET  /habits/stack-suggestions  — habit stacking proposals
GET  /habits/analytics          — per-habit stats over a date range
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from momentum.models.habit import HabitCompletion
from momentum.schemas.common import ERROR_RESPONSES, UserIdQuery
from momentum.schemas.habits import (
    ConsistencyScoreOut,
    HabitAnalyticsResponse,
    HabitCompletionIn,
    HabitCompletionOut,
    HabitStreakListResponse,
    HabitStreakOut,
    StackSuggestionListResponse,
    StackSuggestionOut,
)
from momentum.services.event_store import EventStore, get_event_store
from momentum.services.habit_engine import HabitConsistencyEngine
from momentum.services.windows import today

router = APIRouter(prefix="/habits", tags=["habits"])


def get_habit_engine(store: EventStore = Depends(get_event_store)) -> HabitConsistencyEngine:
    return HabitConsistencyEngine(store)


def _completion_to_response(record: HabitCompletion) -> HabitCompletionOut:
    quality = record.quality
    return HabitCompletionOut(
        id=record.id,
        habit_id=record.habit_id,
        user_id=record.user_id,
        day=str(record.day),
        completed=record.completed,
        quality=quality.value if hasattr(quality, "value") else quality,
        notes=record.notes,
    )


# ---------------------------------------------------------------------------
# POST /habits/completions
# ---------------------------------------------------------------------------

@router.post(
    "/completions",
    response_model=HabitCompletionOut,
    status_code=status.HTTP_200_OK,
    summary="Record or overwrite a habit check-in",
    responses={
        404: {"description": "Habit does not exist for this user."},
        422: {"description": "Validation error."},
    },
)
def upsert_completion(
    payload: HabitCompletionIn,
    store: EventStore = Depends(get_event_store),
):
    """
    One record per (habit, day): posting the same day again replaces the
    earlier check-in. Each check-in is also recorded as a `habit_completion`
    behavioral event.
    """
    record = store.upsert_habit_completion(
        user_id=payload.user_id,
        habit_id=payload.habit_id,
        day=payload.day or today(),
        completed=payload.completed,
        quality=payload.quality,
        notes=payload.notes,
    )
    return _completion_to_response(record)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get(
    "/streaks",
    response_model=HabitStreakListResponse,
    summary="Streak state for every active habit",
    responses=ERROR_RESPONSES,
)
def get_streaks(
    user_id: UserIdQuery,
    reference_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    engine: HabitConsistencyEngine = Depends(get_habit_engine),
):
    """
    `current_streak` counts consecutive completed days ending at the most
    recent recorded day; any miss or gap resets it to 0.
    """
    states = engine.compute_streaks(user_id, reference_date)
    return HabitStreakListResponse(
        user_id=user_id,
        items=[HabitStreakOut.model_validate(s) for s in states],
    )


@router.get(
    "/consistency",
    response_model=ConsistencyScoreOut,
    summary="Overall habit consistency score",
    responses=ERROR_RESPONSES,
)
def get_consistency(
    user_id: UserIdQuery,
    reference_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    engine: HabitConsistencyEngine = Depends(get_habit_engine),
):
    """Mean per-habit consistency over the rolling window. Habits with no history are not scored."""
    return ConsistencyScoreOut.model_validate(
        engine.compute_consistency_score(user_id, reference_date)
    )


@router.get(
    "/stack-suggestions",
    response_model=StackSuggestionListResponse,
    summary="Habit stacking suggestions",
    responses=ERROR_RESPONSES,
)
def get_stack_suggestions(
    user_id: UserIdQuery,
    reference_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    engine: HabitConsistencyEngine = Depends(get_habit_engine),
):
    """Up to five anchor / new-habit pairs, highest confidence first."""
    suggestions = engine.suggest_stacks(user_id, reference_date)
    return StackSuggestionListResponse(
        user_id=user_id,
        items=[StackSuggestionOut.model_validate(s) for s in suggestions],
    )


@router.get(
    "/analytics",
    response_model=HabitAnalyticsResponse,
    summary="Per-habit completion statistics over a date range",
    responses=ERROR_RESPONSES,
)
def get_habit_analytics(
    user_id: UserIdQuery,
    start_date: Optional[date] = Query(default=None, description="Defaults to 30 days before end_date."),
    end_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    habit_id: Optional[list[int]] = Query(default=None, description="Restrict to these habits."),
    engine: HabitConsistencyEngine = Depends(get_habit_engine),
):
    report = engine.habit_analytics(user_id, start_date, end_date, habit_id)
    return HabitAnalyticsResponse.model_validate(report)

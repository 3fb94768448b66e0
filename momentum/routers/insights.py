"""
Pattern Recognition router.

GET /insights/personalization  — six-part personalization profile
GET /insights/behavioral       — ranked behavioral insights
GET /insights/temporal         — productivity by time of day and weekday
GET /insights/interactions     — engagement per UI feature

All reads cover the last 30 days of events ending on `reference_date`.
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from momentum.schemas.common import ERROR_RESPONSES, UserIdQuery
from momentum.schemas.insights import (
    InsightListResponse,
    InsightOut,
    InteractionPatternListResponse,
    InteractionPatternOut,
    PersonalizationInsightsOut,
    TemporalPatternListResponse,
    TemporalPatternOut,
)
from momentum.services.event_store import EventStore, get_event_store
from momentum.services.pattern_engine import PatternRecognitionEngine

router = APIRouter(prefix="/insights", tags=["insights"])

ReferenceDate = Annotated[Optional[date], Query(
    description="Last day of the window. Defaults to today (UTC).",
)]


def get_pattern_engine(store: EventStore = Depends(get_event_store)) -> PatternRecognitionEngine:
    return PatternRecognitionEngine(store)


@router.get(
    "/personalization",
    response_model=PersonalizationInsightsOut,
    summary="Personalization insights derived from behavioral events",
    responses=ERROR_RESPONSES,
)
def get_personalization(
    user_id: UserIdQuery,
    reference_date: ReferenceDate = None,
    engine: PatternRecognitionEngine = Depends(get_pattern_engine),
):
    """
    Each part falls back to its default when fewer than 5 relevant events
    exist: no peaks or triggers, a 45 minute session, the current learning
    style, growth / mastery motivators and a moderate noise preference.
    """
    insights = engine.generate_personalization_insights(user_id, reference_date)
    return PersonalizationInsightsOut.model_validate(insights)


@router.get(
    "/behavioral",
    response_model=InsightListResponse,
    summary="Behavioral insights, strongest pattern first",
    responses=ERROR_RESPONSES,
)
def get_behavioral_insights(
    user_id: UserIdQuery,
    reference_date: ReferenceDate = None,
    engine: PatternRecognitionEngine = Depends(get_pattern_engine),
):
    """A user without events receives a getting-started list."""
    return InsightListResponse(
        user_id=user_id,
        items=[InsightOut.model_validate(i) for i in engine.behavioral_insights(user_id, reference_date)],
    )


@router.get(
    "/temporal",
    response_model=TemporalPatternListResponse,
    summary="Productivity and energy per time of day and weekday",
    responses=ERROR_RESPONSES,
)
def get_temporal_patterns(
    user_id: UserIdQuery,
    reference_date: ReferenceDate = None,
    engine: PatternRecognitionEngine = Depends(get_pattern_engine),
):
    return TemporalPatternListResponse(
        user_id=user_id,
        items=[TemporalPatternOut.model_validate(p) for p in engine.temporal_patterns(user_id, reference_date)],
    )


@router.get(
    "/interactions",
    response_model=InteractionPatternListResponse,
    summary="Engagement per UI feature",
    responses=ERROR_RESPONSES,
)
def get_interaction_patterns(
    user_id: UserIdQuery,
    reference_date: ReferenceDate = None,
    engine: PatternRecognitionEngine = Depends(get_pattern_engine),
):
    patterns = engine.interaction_patterns(user_id, reference_date)
    return InteractionPatternListResponse(
        user_id=user_id,
        items=[InteractionPatternOut.model_validate(p) for p in patterns],
    )

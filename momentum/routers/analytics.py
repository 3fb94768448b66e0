"""
Analytics router.

GET /analytics                       — point-in-time snapshot for a period
GET /analytics/performance-patterns  — adaptive feedback over a rolling window
"""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from momentum.schemas.analytics import AnalyticsSnapshotOut, PerformancePatternsOut
from momentum.schemas.common import ERROR_RESPONSES, UserIdQuery
from momentum.services.analytics import AnalyticsAggregator
from momentum.services.event_store import EventStore, get_event_store
from momentum.services.feedback import AdaptiveFeedbackAnalyzer

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_aggregator(store: EventStore = Depends(get_event_store)) -> AnalyticsAggregator:
    return AnalyticsAggregator(store)


def get_feedback_analyzer(
    store: EventStore = Depends(get_event_store),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
) -> AdaptiveFeedbackAnalyzer:
    return AdaptiveFeedbackAnalyzer(store, aggregator)


@router.get(
    "",
    response_model=AnalyticsSnapshotOut,
    summary="Analytics snapshot for a daily, weekly or monthly window",
    responses=ERROR_RESPONSES,
)
def get_analytics(
    user_id: UserIdQuery,
    period: Literal["daily", "weekly", "monthly"] = Query(default="weekly"),
    reference_date: Optional[date] = Query(
        default=None, description="Last day of the window (inclusive). Defaults to today (UTC)."
    ),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    """
    Composes habit streaks, consistency, identity alignment, the productivity
    pattern, behavioral insights and personalization metrics.

    A sub-result whose source fails or times out is replaced by its default
    (empty list, 0, or a neutral 50) instead of failing the request. Only an
    unreachable event store returns **503**.
    """
    snapshot = aggregator.get_analytics_data(user_id, period, reference_date)
    return AnalyticsSnapshotOut.model_validate(snapshot)


@router.get(
    "/performance-patterns",
    response_model=PerformancePatternsOut,
    summary="Declining trends, system adjustments and optimization suggestions",
    responses=ERROR_RESPONSES,
)
def get_performance_patterns(
    user_id: UserIdQuery,
    reference_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    window_days: int = Query(default=30, description="History length, 7 to 90 days."),
    analyzer: AdaptiveFeedbackAnalyzer = Depends(get_feedback_analyzer),
):
    """
    Compares the latest third of the window with the earliest third for
    completion rate, deep-work hours and focus quality.

    | adjustment | emitted when |
    |---|---|
    | `simplify`            | completion declines, or consistency is below 50 |
    | `timing_optimization` | deep work or focus declines, or deep work is erratic |
    | `habit_modification`  | a weak habit's streak was just broken |
    | `complexity_increase` | consistency > 85 and identity alignment > 80 |

    Emitted adjustments are logged once per type and day.
    """
    analysis = analyzer.analyze_performance_patterns(user_id, reference_date, window_days)
    return PerformancePatternsOut.model_validate(analysis)

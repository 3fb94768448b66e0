"""
Review Collaborator — evening review history.

get_review_history(user_id, days, until) -> ReviewHistory {reviews, analysis}
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from momentum.db.base import SessionLocal
from momentum.models.evening_review import EveningReview
from momentum.services.windows import today as _today


@dataclass
class ReviewAnalysis:
    completion_rate: float = 0.0          # 0.0 – 1.0 over all reviewed tasks
    common_obstacles: list[str] = field(default_factory=list)
    average_energy: Optional[float] = None
    average_mood: Optional[float] = None
    review_count: int = 0


@dataclass
class ReviewHistory:
    reviews: list[EveningReview]
    analysis: ReviewAnalysis


def daily_completion_rate(review: EveningReview) -> float:
    """accomplished / (accomplished + missed) × 100; 0 when nothing was planned."""
    done = len(review.accomplished or [])
    total = done + len(review.missed or [])
    return (done / total) * 100 if total else 0.0


def analyze_reviews(reviews: list[EveningReview]) -> ReviewAnalysis:
    if not reviews:
        return ReviewAnalysis()

    done = sum(len(r.accomplished or []) for r in reviews)
    total = done + sum(len(r.missed or []) for r in reviews)

    reasons = Counter(reason for r in reviews for reason in (r.reasons or []) if reason)
    energies = [r.energy_level for r in reviews if r.energy_level is not None]
    moods = [r.mood for r in reviews if r.mood is not None]

    return ReviewAnalysis(
        completion_rate=round(done / total, 4) if total else 0.0,
        common_obstacles=[reason for reason, _ in reasons.most_common(5)],
        average_energy=round(sum(energies) / len(energies), 1) if energies else None,
        average_mood=round(sum(moods) / len(moods), 1) if moods else None,
        review_count=len(reviews),
    )


class ReviewCollaborator:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def get_review_history(
        self,
        user_id: str,
        days: int = 30,
        until: Optional[date] = None,
    ) -> ReviewHistory:
        """Reviews in [until - (days-1), until], oldest first."""
        end = until or _today()
        start = end - timedelta(days=days - 1)
        with self._session_factory() as db:
            reviews = (
                db.query(EveningReview)
                .filter(
                    EveningReview.user_id == user_id,
                    EveningReview.day >= start,
                    EveningReview.day <= end,
                )
                .order_by(EveningReview.day.asc())
                .all()
            )
        return ReviewHistory(reviews=reviews, analysis=analyze_reviews(reviews))

"""
Habit schemas.

POST /habits/completions        → HabitCompletionIn → HabitCompletionOut
GET  /habits/streaks            → HabitStreakListResponse
GET  /habits/consistency        → ConsistencyScoreOut
GET  /habits/stack-suggestions  → StackSuggestionListResponse
GET  /habits/analytics          → HabitAnalyticsResponse
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from momentum.models.habit import CompletionQuality
from momentum.schemas.common import USER_ID_REGEX


# ---------------------------------------------------------------------------
# Completion upsert
# ---------------------------------------------------------------------------

class HabitCompletionIn(BaseModel):
    """Check-in for one habit on one calendar day. Re-posting the same day overwrites it."""
    model_config = ConfigDict(use_enum_values=True)

    user_id: Annotated[str, Field(pattern=USER_ID_REGEX, examples=["user_42"])]
    habit_id: int = Field(ge=1)
    day: Optional[date] = Field(
        default=None,
        description="Calendar day of the check-in. Defaults to today (UTC).",
        examples=["2026-02-20"],
    )
    completed: bool = True
    quality: Optional[CompletionQuality] = None
    notes: Optional[str] = Field(default=None, max_length=2_000)

    @field_validator("notes", mode="before")
    @classmethod
    def blank_notes_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class HabitCompletionOut(BaseModel):
    id: int
    habit_id: int
    user_id: str
    day: str
    completed: bool
    quality: Optional[str] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Streaks and consistency
# ---------------------------------------------------------------------------

class HabitStreakOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    habit_name: str
    current_streak: int = Field(ge=0)
    longest_streak: int = Field(ge=0)
    consistency_percentage: float = Field(ge=0, le=100)
    last_completed: Optional[date] = None
    has_history: bool
    streak_just_broken: bool


class HabitStreakListResponse(BaseModel):
    user_id: str
    items: list[HabitStreakOut]


class HabitScoreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    habit_name: str
    score: float
    streak: int


class ConsistencyScoreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    overall_score: float = Field(ge=0, le=100)
    habit_scores: list[HabitScoreOut]
    insights: list[str]
    recommendations: list[str]


class StackSuggestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    anchor_habit_id: int
    anchor_habit_name: str
    suggested_habit: str
    suggested_habit_id: Optional[int] = Field(
        default=None,
        description="Set when the suggestion is one of the user's existing habits.",
    )
    confidence_score: float = Field(ge=0, le=1)
    rationale: str


class StackSuggestionListResponse(BaseModel):
    user_id: str
    items: list[StackSuggestionOut]


# ---------------------------------------------------------------------------
# Period analytics
# ---------------------------------------------------------------------------

class StreakStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak_in_period: int
    streak_breaks: int


class HabitPeriodStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    habit_name: str
    total_opportunities: int
    completed_count: int
    completion_rate: float
    streak_data: StreakStatsOut
    quality_distribution: dict[str, int]


class HabitAnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_date: date
    end_date: date
    habits: list[HabitPeriodStatsOut]
    insights: list[str]
    recommendations: list[str]

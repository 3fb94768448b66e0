"""
Pattern recognition response schemas.

GET /insights/personalization  → PersonalizationInsightsOut
GET /insights/behavioral       → InsightListResponse
GET /insights/temporal         → TemporalPatternListResponse
GET /insights/interactions     → InteractionPatternListResponse
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EnvironmentalPreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    preferred_locations: list[str]
    optimal_noise_level: str
    best_time_of_day: str


class PersonalizationInsightsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    productivity_peaks: list[str] = Field(description='Top two time-of-day slots, e.g. "Morning (8-11 AM)".')
    distraction_triggers: list[str]
    optimal_session_length: int = Field(description="Minutes, a multiple of 15.")
    learning_style: str
    motivation_factors: list[str]
    environmental_preferences: EnvironmentalPreferencesOut
    adaptation_recommendations: list[str]
    suggestion_acceptance_rate: float = Field(ge=0, le=100)
    events_analyzed: int


class InsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: Literal["productivity", "obstacles", "triggers", "rewards", "environment", "motivation"]
    description: str
    pattern_strength: float = Field(ge=0, le=1)
    behavioral_correlation: float = Field(ge=0, le=1)
    trend: Literal["improving", "declining", "stable"]
    actionable_recommendations: list[str]


class InsightListResponse(BaseModel):
    user_id: str
    items: list[InsightOut]


class EnergyPatternOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time_period: str
    average_energy: float
    productivity_correlation: float
    trend: Literal["increasing", "decreasing", "stable"]
    samples: int


class TemporalPatternOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time_of_day: str
    day_of_week: str
    productivity_score: float
    energy_level: float
    focus_quality: float
    samples: int


class TemporalPatternListResponse(BaseModel):
    user_id: str
    items: list[TemporalPatternOut]


class InteractionPatternOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    feature: str
    engagement_score: float
    click_through_rate: float
    completion_rate: float
    interactions: int


class InteractionPatternListResponse(BaseModel):
    user_id: str
    items: list[InteractionPatternOut]

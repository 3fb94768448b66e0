"""
Analytics and adaptive feedback response schemas.

GET /analytics                       → AnalyticsSnapshotOut
GET /analytics/performance-patterns  → PerformancePatternsOut

Every time-indexed list in `productivity_pattern` (and `deep_work_trend`) has
one entry per day from `start_date` to `end_date` inclusive, oldest first.
"""
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from momentum.schemas.habits import ConsistencyScoreOut, HabitStreakOut
from momentum.schemas.insights import EnergyPatternOut, InsightOut


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class DistractionPatternOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time_period: str
    average_distractions: float
    common_triggers: list[str]
    impact_on_focus: float = Field(ge=0, le=1)


class ProductivityPatternOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_completion_rates: list[float] = Field(description="Percent of planned items done, per day.")
    focus_quality_trend: list[float] = Field(description="Average session focus, 0-100, per day.")
    deep_work_hours_trend: list[float]
    daily_distraction_counts: list[int]
    energy_patterns: list[EnergyPatternOut]
    most_productive_hours: list[str]
    distraction_patterns: list[DistractionPatternOut]


class SkillImprovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    skill_area: str
    improvement_percentage: float
    time_period: str


class LearningProgressionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    weeks_active: int
    skill_improvements: list[SkillImprovementOut]
    habit_formation_rate: float
    system_mastery_level: Literal["beginner", "intermediate", "advanced"]


class PersonalizationMetricsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_completeness: float = Field(ge=0, le=100)
    adaptation_effectiveness: float = Field(ge=0, le=100)
    suggestion_acceptance_rate: float = Field(ge=0, le=100)
    routine_modification_frequency: float = Field(description="Modifications per week.")
    learning_progression: LearningProgressionOut


class AnalyticsSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    period: str
    start_date: date
    end_date: date
    consistency_score: float = Field(ge=0, le=100)
    identity_alignment: float = Field(ge=0, le=100)
    deep_work_trend: list[float]
    habit_streaks: list[HabitStreakOut]
    productivity_pattern: ProductivityPatternOut
    behavioral_insights: list[InsightOut]
    personalization_metrics: PersonalizationMetricsOut
    consistency: Optional[ConsistencyScoreOut] = None


# ---------------------------------------------------------------------------
# Adaptive feedback
# ---------------------------------------------------------------------------

class PatternAlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pattern_type: str
    metric: str
    magnitude: float = Field(ge=0, le=1)
    severity: Literal["low", "medium", "high"]
    description: str
    affected_metrics: list[str]
    suggested_actions: list[str]


class ImprovementOpportunityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    area: str
    potential_impact: float = Field(ge=0, le=1)
    difficulty: Literal["easy", "medium", "hard"]
    description: str
    action_steps: list[str]


class SystemAdjustmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    adjustment_type: Literal["simplify", "complexity_increase", "timing_optimization", "habit_modification"]
    reason: str
    expected_impact: float = Field(ge=0, le=1)
    implementation_steps: list[str]


class OptimizationSuggestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    suggestion: str
    confidence: float = Field(ge=0, le=1)
    expected_benefit: str = Field(min_length=1)
    implementation_effort: Literal["low", "medium", "high"]


class PerformancePatternsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    reference_date: date
    history_days: int = Field(description="Days with data in the analyzed window.")
    declining_patterns: list[PatternAlertOut]
    improvement_opportunities: list[ImprovementOpportunityOut]
    system_adjustments: list[SystemAdjustmentOut]
    optimization_suggestions: list[OptimizationSuggestionOut]

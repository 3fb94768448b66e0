"""
Adaptive Feedback Analyzer — turns a rolling performance history into
corrective system adjustments and optional optimization suggestions.

analyze_performance_patterns(user_id, reference_date, window_days)
    -> PerformancePatternAnalysis

Trend signal
------------
  For each tracked daily series (completion rate, deep-work hours, focus
  quality) the mean of the most recent third of the window is compared with
  the mean of the earliest third. A relative drop beyond DECLINE_THRESHOLD is
  a declining pattern; a relative rise beyond it is an improvement
  opportunity. Histories shorter than MIN_HISTORY_DAYS produce no trend
  alerts.

Adjustment mapping
------------------
  completion decline / low consistency  -> simplify
  deep-work or focus decline            -> timing_optimization
  erratic deep-work timing              -> timing_optimization
  streak just broken on a weak habit    -> habit_modification
  sustained high performance            -> complexity_increase

The analyzer keeps no state of its own. Emitted adjustments are appended to
the adjustment log so later snapshots can measure adaptation effectiveness.
"""
from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from momentum.core.config import Settings, settings as default_settings
from momentum.core.errors import InvalidInputError
from momentum.services.analytics import (
    MAX_WINDOW_DAYS,
    AnalyticsAggregator,
    AnalyticsSnapshot,
    validate_user_id,
)
from momentum.services.event_store import EventStore, NewAdjustment
from momentum.services.habit_engine import HabitStreakState
from momentum.services.pattern_engine import EnergyPattern
from momentum.services.windows import today as _today

logger = structlog.get_logger(__name__)

METRIC_LABELS = {
    "completion_rate": "Completion rate",
    "deep_work_hours": "Deep work hours",
    "focus_quality": "Focus quality",
}

SUGGESTED_ACTIONS = {
    "completion_rate": [
        "Simplify daily routine",
        "Focus on 1-2 core habits",
        'Use "never miss twice" rule',
    ],
    "deep_work_hours": [
        "Schedule protected deep work blocks",
        "Eliminate distractions during focus time",
        "Start with shorter focus sessions",
    ],
    "focus_quality": [
        "Move demanding work to your most productive hours",
        "Silence notifications during focus sessions",
        "Take short breaks between sessions",
    ],
    "erratic_timing": [
        "Start deep work at the same time every day",
        "Anchor focus sessions to an existing habit",
    ],
}

IMPLEMENTATION_STEPS = {
    "simplify": [
        "Reduce daily tasks by 25%",
        "Focus on core habits only",
        "Simplify task descriptions",
        "Increase break time between activities",
    ],
    "timing_optimization": [
        "Schedule deep work during your most productive hours",
        "Block the same daily window for focused work",
        "Move low-energy tasks to low-energy periods",
        "Review the new schedule after one week",
    ],
    "habit_modification": [
        "Shrink the habit to a two-minute version",
        "Attach it to a habit you already do reliably",
        "Move it to a time with fewer conflicts",
        "Restart today: never miss twice",
    ],
    "complexity_increase": [
        "Add one new challenging habit",
        "Increase deep work session length",
        "Add skill-building activities",
        "Set more ambitious daily goals",
    ],
}

HIGH_PERFORMANCE_REASON = "Sustained high performance indicates readiness for increased challenge"
HIGH_PERFORMANCE_IMPACT = 0.6


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class PerformanceHistory:
    user_id: str
    end_date: date
    days: list[date] = field(default_factory=list)
    completion_rates: list[float] = field(default_factory=list)   # 0 – 100 per day
    deep_work_hours: list[float] = field(default_factory=list)
    focus_quality: list[float] = field(default_factory=list)      # 0 – 100 per day
    consistency_score: float = 0.0
    identity_alignment: float = 50.0
    habit_streaks: list[HabitStreakState] = field(default_factory=list)
    energy_patterns: list[EnergyPattern] = field(default_factory=list)

    @property
    def history_days(self) -> int:
        return len(self.days)


@dataclass
class PatternAlert:
    pattern_type: str
    metric: str
    magnitude: float                 # relative change, 0 – 1
    severity: str                    # low | medium | high
    description: str
    affected_metrics: list[str] = field(default_factory=list)
    suggested_actions: list[str] = field(default_factory=list)


@dataclass
class ImprovementOpportunity:
    area: str
    potential_impact: float          # 0 – 1
    difficulty: str                  # easy | medium | hard
    description: str
    action_steps: list[str] = field(default_factory=list)


@dataclass
class SystemAdjustment:
    adjustment_type: str
    reason: str
    expected_impact: float           # 0 – 1
    implementation_steps: list[str] = field(default_factory=list)
    tracked_metric: str = "completion_rate"


@dataclass
class OptimizationSuggestion:
    category: str
    suggestion: str
    confidence: float                # 0 – 1
    expected_benefit: str
    implementation_effort: str       # low | medium | high


@dataclass
class PerformancePatternAnalysis:
    user_id: str
    reference_date: date
    history_days: int
    declining_patterns: list[PatternAlert] = field(default_factory=list)
    improvement_opportunities: list[ImprovementOpportunity] = field(default_factory=list)
    system_adjustments: list[SystemAdjustment] = field(default_factory=list)
    optimization_suggestions: list[OptimizationSuggestion] = field(default_factory=list)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def history_from_snapshot(snapshot: AnalyticsSnapshot) -> PerformanceHistory:
    """
    Daily series from a snapshot, with the leading run of days that carry no
    data at all dropped so a new user's empty past does not read as a trend.
    """
    pattern = snapshot.productivity_pattern
    days = _date_range(snapshot.start_date, snapshot.end_date)
    rows = list(zip(
        days,
        pattern.daily_completion_rates,
        pattern.deep_work_hours_trend,
        pattern.focus_quality_trend,
    ))
    first_active = next(
        (i for i, (_, c, w, f) in enumerate(rows) if c or w or f),
        len(rows),
    )
    rows = rows[first_active:]
    return PerformanceHistory(
        user_id=snapshot.user_id,
        end_date=snapshot.end_date,
        days=[r[0] for r in rows],
        completion_rates=[r[1] for r in rows],
        deep_work_hours=[r[2] for r in rows],
        focus_quality=[r[3] for r in rows],
        consistency_score=snapshot.consistency_score,
        identity_alignment=snapshot.identity_alignment,
        habit_streaks=list(snapshot.habit_streaks),
        energy_patterns=list(snapshot.productivity_pattern.energy_patterns),
    )


def _date_range(start: date, end: date) -> list[date]:
    return [date.fromordinal(o) for o in range(start.toordinal(), end.toordinal() + 1)]


# ---------------------------------------------------------------------------
# Pure signal helpers
# ---------------------------------------------------------------------------

def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def relative_change(values: list[float]) -> Optional[float]:
    """(late third mean - early third mean) / early third mean, or None."""
    k = len(values) // 3
    if k == 0:
        return None
    early = _mean(values[:k])
    late = _mean(values[-k:])
    if early <= 0:
        return None
    return (late - early) / early


def recent_baseline(values: list[float]) -> float:
    k = max(1, len(values) // 3)
    return round(_mean(values[-k:]), 2)


def coefficient_of_variation(values: list[float]) -> float:
    mean = _mean(values)
    if len(values) < 2 or mean <= 0:
        return 0.0
    return statistics.pstdev(values) / mean


def severity_for(magnitude: float) -> str:
    if magnitude >= 0.4:
        return "high"
    if magnitude >= 0.25:
        return "medium"
    return "low"


def _impact(magnitude: float, cfg: Settings) -> float:
    return round(min(1.0, max(0.05, magnitude * cfg.IMPACT_SCALE)), 2)


def tracked_metric_for(adjustment_type: str) -> str:
    return "deep_work_hours" if adjustment_type == "timing_optimization" else "completion_rate"


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def _trend_signals(
    history: PerformanceHistory, cfg: Settings
) -> tuple[list[PatternAlert], list[tuple[str, float]]]:
    """Declining alerts and (metric, rise) pairs for improving series."""
    declines: list[PatternAlert] = []
    rises: list[tuple[str, float]] = []
    if history.history_days < cfg.MIN_HISTORY_DAYS:
        return declines, rises

    series = {
        "completion_rate": history.completion_rates,
        "deep_work_hours": history.deep_work_hours,
        "focus_quality": history.focus_quality,
    }
    for metric, values in series.items():
        change = relative_change(values)
        if change is None:
            continue
        if -change > cfg.DECLINE_THRESHOLD:
            magnitude = round(min(1.0, -change), 3)
            declines.append(PatternAlert(
                pattern_type=f"{metric}_decline",
                metric=metric,
                magnitude=magnitude,
                severity=severity_for(magnitude),
                description=(
                    f"{METRIC_LABELS[metric]} dropped {magnitude * 100:.0f}% "
                    f"over the last {history.history_days} days"
                ),
                affected_metrics=[metric],
                suggested_actions=list(SUGGESTED_ACTIONS[metric]),
            ))
        elif change > cfg.DECLINE_THRESHOLD:
            rises.append((metric, round(change, 3)))

    cv = coefficient_of_variation(history.deep_work_hours)
    if cv > cfg.ERRATIC_CV_THRESHOLD:
        magnitude = round(min(1.0, cv - cfg.ERRATIC_CV_THRESHOLD), 3)
        declines.append(PatternAlert(
            pattern_type="erratic_timing",
            metric="deep_work_hours",
            magnitude=magnitude,
            severity=severity_for(magnitude),
            description="Deep work varies widely from day to day",
            affected_metrics=["deep_work_hours", "focus_quality"],
            suggested_actions=list(SUGGESTED_ACTIONS["erratic_timing"]),
        ))
    return declines, rises


def _level_alerts(history: PerformanceHistory, cfg: Settings) -> list[PatternAlert]:
    alerts: list[PatternAlert] = []
    scored = [h for h in history.habit_streaks if h.has_history]
    floor = cfg.STRUGGLING_HABIT_CONSISTENCY
    if scored and history.consistency_score < floor:
        magnitude = round((floor - history.consistency_score) / floor, 3)
        alerts.append(PatternAlert(
            pattern_type="low_consistency",
            metric="consistency_score",
            magnitude=magnitude,
            severity=severity_for(magnitude),
            description=f"Overall habit consistency is {history.consistency_score:.0f}%",
            affected_metrics=["consistency_score", "completion_rate"],
            suggested_actions=list(SUGGESTED_ACTIONS["completion_rate"]),
        ))

    for habit in scored:
        if habit.streak_just_broken and habit.consistency_percentage < floor:
            magnitude = round((floor - habit.consistency_percentage) / floor, 3)
            alerts.append(PatternAlert(
                pattern_type="streak_break",
                metric="habit_streak",
                magnitude=magnitude,
                severity=severity_for(magnitude),
                description=f"'{habit.habit_name}' was just missed and sits at "
                            f"{habit.consistency_percentage:.0f}% consistency",
                affected_metrics=["habit_streak", "consistency_score"],
                suggested_actions=[
                    'Use "never miss twice" rule',
                    f"Make '{habit.habit_name}' easier to start",
                ],
            ))
    return alerts


def _adjustment_for(alert: PatternAlert, cfg: Settings) -> SystemAdjustment:
    if alert.metric in ("completion_rate", "consistency_score"):
        kind = "simplify"
    elif alert.metric == "habit_streak":
        kind = "habit_modification"
    else:
        kind = "timing_optimization"

    return SystemAdjustment(
        adjustment_type=kind,
        reason=alert.description,
        expected_impact=_impact(alert.magnitude, cfg),
        implementation_steps=list(IMPLEMENTATION_STEPS[kind]),
        tracked_metric=tracked_metric_for(kind),
    )


def _is_high_performer(
    history: PerformanceHistory, declines: list[PatternAlert], cfg: Settings
) -> bool:
    if any(a.metric == "completion_rate" for a in declines):
        return False
    return (
        history.consistency_score > cfg.HIGH_PERFORMANCE_CONSISTENCY
        and history.identity_alignment > cfg.HIGH_PERFORMANCE_ALIGNMENT
    )


def _opportunities(
    history: PerformanceHistory, rises: list[tuple[str, float]], cfg: Settings
) -> list[ImprovementOpportunity]:
    found: list[ImprovementOpportunity] = []
    for metric, rise in rises:
        label = METRIC_LABELS[metric]
        found.append(ImprovementOpportunity(
            area=f"{label} momentum",
            potential_impact=_impact(rise, cfg),
            difficulty="easy",
            description=f"{label} improved {rise * 100:.0f}% over the window; build on it",
            action_steps=[
                "Keep the current routine structure",
                "Note what changed and repeat it",
            ],
        ))

    strong = [
        h for h in history.habit_streaks
        if h.has_history and h.consistency_percentage >= cfg.STACK_ANCHOR_MIN_CONSISTENCY
    ]
    if strong:
        found.append(ImprovementOpportunity(
            area="Habit Stacking",
            potential_impact=0.8,
            difficulty="easy",
            description=f"Use '{strong[0].habit_name}' as an anchor for a new habit",
            action_steps=[
                "Pick one small habit to add",
                f"Do it right after '{strong[0].habit_name}'",
                "Track both together for 21 days",
            ],
        ))

    energised = [p for p in history.energy_patterns if p.productivity_correlation > 0.6]
    if energised:
        best = max(energised, key=lambda p: p.average_energy)
        found.append(ImprovementOpportunity(
            area="Energy Optimization",
            potential_impact=0.7,
            difficulty="medium",
            description=f"Energy tracks focus closely; your {best.time_period} energy is highest",
            action_steps=[
                f"Schedule demanding tasks in the {best.time_period}",
                "Keep routine tasks for low-energy periods",
            ],
        ))
    return found


def _suggestions(history: PerformanceHistory, cfg: Settings) -> list[OptimizationSuggestion]:
    confidence = round(
        min(cfg.MAX_SUGGESTION_CONFIDENCE, history.history_days / cfg.FULL_CONFIDENCE_DAYS), 2
    )
    found: list[OptimizationSuggestion] = []

    focus_days = [f for f in history.focus_quality if f > 0]
    if focus_days and _mean(focus_days) < 70:
        found.append(OptimizationSuggestion(
            category="Focus Enhancement",
            suggestion="Try the Pomodoro Technique: 25 minutes of focus, then a 5 minute break",
            confidence=confidence,
            expected_benefit="Improved focus quality and reduced mental fatigue",
            implementation_effort="low",
        ))

    scored = [h.consistency_percentage for h in history.habit_streaks if h.has_history]
    if scored and _mean(scored) < cfg.STRONG_HABIT_CONSISTENCY:
        found.append(OptimizationSuggestion(
            category="Habit Formation",
            suggestion='Write implementation intentions: "After I [cue], I will [habit]"',
            confidence=confidence,
            expected_benefit="Increased habit consistency through clear triggers",
            implementation_effort="low",
        ))

    work_days = [w for w in history.deep_work_hours if w > 0]
    if work_days and _mean(work_days) < 2:
        found.append(OptimizationSuggestion(
            category="Deep Work",
            suggestion="Protect one 90-minute deep work block on weekdays",
            confidence=confidence,
            expected_benefit="More sustained progress on demanding work",
            implementation_effort="medium",
        ))

    if not found:
        found.append(OptimizationSuggestion(
            category="Getting Started",
            suggestion="Begin by establishing a consistent daily routine with 2-3 core habits",
            confidence=confidence,
            expected_benefit="Foundation for building discipline and tracking progress",
            implementation_effort="medium",
        ))
    return found


def analyze_history(
    history: PerformanceHistory, cfg: Settings = default_settings
) -> PerformancePatternAnalysis:
    declines, rises = _trend_signals(history, cfg)
    alerts = declines + _level_alerts(history, cfg)
    alerts.sort(key=lambda a: -a.magnitude)

    # One adjustment per type; the strongest signal wins.
    by_type: dict[str, SystemAdjustment] = {}
    for alert in alerts:
        adj = _adjustment_for(alert, cfg)
        current = by_type.get(adj.adjustment_type)
        if current is None or adj.expected_impact > current.expected_impact:
            by_type[adj.adjustment_type] = adj

    if _is_high_performer(history, declines, cfg):
        by_type["complexity_increase"] = SystemAdjustment(
            adjustment_type="complexity_increase",
            reason=HIGH_PERFORMANCE_REASON,
            expected_impact=HIGH_PERFORMANCE_IMPACT,
            implementation_steps=list(IMPLEMENTATION_STEPS["complexity_increase"]),
            tracked_metric=tracked_metric_for("complexity_increase"),
        )

    adjustments = sorted(by_type.values(), key=lambda a: -a.expected_impact)
    return PerformancePatternAnalysis(
        user_id=history.user_id,
        reference_date=history.end_date,
        history_days=history.history_days,
        declining_patterns=alerts,
        improvement_opportunities=_opportunities(history, rises, cfg),
        system_adjustments=adjustments,
        optimization_suggestions=_suggestions(history, cfg),
    )


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class AdaptiveFeedbackAnalyzer:
    def __init__(
        self,
        store: EventStore,
        aggregator: Optional[AnalyticsAggregator] = None,
        cfg: Settings = default_settings,
    ):
        self._store = store
        self._cfg = cfg
        self._aggregator = aggregator or AnalyticsAggregator(store, cfg=cfg)

    def analyze_performance_patterns(
        self,
        user_id: str,
        reference_date: Optional[date] = None,
        window_days: int = 30,
    ) -> PerformancePatternAnalysis:
        validate_user_id(user_id)
        if not self._cfg.MIN_HISTORY_DAYS <= window_days <= MAX_WINDOW_DAYS:
            raise InvalidInputError(
                field="window_days",
                message=(
                    f"window_days must be between {self._cfg.MIN_HISTORY_DAYS} "
                    f"and {MAX_WINDOW_DAYS}."
                ),
                value=window_days,
            )
        end = reference_date or _today()

        snapshot = self._aggregator.snapshot_for_window(user_id, window_days, end)
        history = history_from_snapshot(snapshot)
        analysis = analyze_history(history, self._cfg)

        self._log_adjustments(history, analysis.system_adjustments)
        logger.info(
            "performance_patterns_analyzed",
            user_id=user_id,
            history_days=history.history_days,
            declining=len(analysis.declining_patterns),
            adjustments=[a.adjustment_type for a in analysis.system_adjustments],
        )
        return analysis

    def _log_adjustments(
        self, history: PerformanceHistory, adjustments: list[SystemAdjustment]
    ) -> None:
        if not adjustments:
            return
        series = {
            "completion_rate": history.completion_rates,
            "deep_work_hours": history.deep_work_hours,
        }
        entries = [
            NewAdjustment(
                adjustment_type=a.adjustment_type,
                reason=a.reason,
                expected_impact=a.expected_impact,
                tracked_metric=a.tracked_metric,
                baseline_value=recent_baseline(series[a.tracked_metric]),
            )
            for a in adjustments
        ]
        try:
            self._store.record_adjustments(history.user_id, entries, emitted_on=history.end_date)
        except SQLAlchemyError as exc:
            logger.warning(
                "adjustment_log_failed",
                user_id=history.user_id,
                error=f"{exc.__class__.__name__}: {exc}",
            )

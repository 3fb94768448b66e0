"""
Pattern Recognition Engine — productivity patterns from raw behavioral events.

Every sub-analysis is a pure function over an event list and is computed
independently. When fewer than MIN_RELEVANT_EVENTS relevant events exist, a
sub-analysis returns its documented default instead of guessing:

  productivity_peaks          []
  distraction_triggers        []
  optimal_session_length      DEFAULT_SESSION_MINUTES (45)
  learning_style              "current"
  motivation_factors          ["Personal growth mindset", "Mastery and expertise"]
  environmental_preferences   no locations, "moderate" noise, "morning"
  adaptation_recommendations  only rules whose data threshold is met fire

Event payload keys follow the ingestion schemas in momentum/schemas/events.py
(camelCase, e.g. `focusQuality`, `interactionType`).
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional

import structlog

from momentum.core.config import Settings, settings as default_settings
from momentum.models.behavioral_event import BehavioralEvent, EventType
from momentum.services.event_store import EventStore
from momentum.services.windows import as_utc, day_end, day_start, time_of_day, today as _today

logger = structlog.get_logger(__name__)

TIME_SLOT_LABELS = {
    "morning": "Morning (8-11 AM)",
    "afternoon": "Afternoon (1-5 PM)",
    "evening": "Evening (6-9 PM)",
    "night": "Night (9 PM-12 AM)",
}

DEFAULT_MOTIVATION = ["Personal growth mindset", "Mastery and expertise"]
HIGH_ACCEPTANCE_MOTIVATION = ["Progress tracking and metrics", "Clear goals and deadlines"]
LOW_ACCEPTANCE_MOTIVATION = ["Rewards and celebrations", "Accountability partners"]

REDUCE_COMPLEXITY = "Consider reducing routine complexity"
PROFILE_UPDATE = "Your routine preferences are evolving - consider a profile update"
ADJUST_ENVIRONMENT = "Focus quality has declined - consider adjusting your environment or schedule"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class EnvironmentalPreferences:
    preferred_locations: list[str] = field(default_factory=list)
    optimal_noise_level: str = "moderate"
    best_time_of_day: str = "morning"


@dataclass
class PersonalizationInsights:
    productivity_peaks: list[str]
    distraction_triggers: list[str]
    optimal_session_length: int
    learning_style: str
    motivation_factors: list[str]
    environmental_preferences: EnvironmentalPreferences
    adaptation_recommendations: list[str]
    suggestion_acceptance_rate: float
    events_analyzed: int


@dataclass
class Insight:
    category: str        # productivity | obstacles | triggers | rewards | environment | motivation
    description: str
    pattern_strength: float          # 0 – 1
    behavioral_correlation: float    # 0 – 1
    trend: str                       # improving | declining | stable
    actionable_recommendations: list[str] = field(default_factory=list)


@dataclass
class EnergyPattern:
    time_period: str
    average_energy: float
    productivity_correlation: float
    trend: str                       # increasing | decreasing | stable
    samples: int


@dataclass
class TemporalPattern:
    time_of_day: str
    day_of_week: str
    productivity_score: float
    energy_level: float
    focus_quality: float
    samples: int


@dataclass
class InteractionPattern:
    feature: str
    engagement_score: float
    click_through_rate: float
    completion_rate: float
    interactions: int


@dataclass
class SkillImprovement:
    skill_area: str
    improvement_percentage: float
    time_period: str = "last_month"


@dataclass
class LearningProgression:
    weeks_active: int = 0
    skill_improvements: list[SkillImprovement] = field(default_factory=list)
    habit_formation_rate: float = 0.0
    system_mastery_level: str = "beginner"


# ---------------------------------------------------------------------------
# Event helpers
# ---------------------------------------------------------------------------

def _of_type(events: list[BehavioralEvent], event_type: EventType) -> list[BehavioralEvent]:
    return [e for e in events if e.event_type == event_type.value]


def _data(event: BehavioralEvent) -> dict[str, Any]:
    return event.event_data or {}


def _ctx(event: BehavioralEvent) -> dict[str, Any]:
    return event.context or {}


def _num(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    return default


def event_time_of_day(event: BehavioralEvent) -> str:
    """context.timeOfDay when present, else derived from the UTC timestamp."""
    bucket = _ctx(event).get("timeOfDay")
    if bucket:
        return str(bucket)
    return time_of_day(as_utc(event.timestamp).hour)


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def calculate_correlation(x: list[float], y: list[float]) -> float:
    """Pearson correlation coefficient; 0 for mismatched, empty or flat input."""
    if len(x) != len(y) or not x:
        return 0.0
    n = len(x)
    sum_x = sum(x)
    sum_y = sum(y)
    sum_xy = sum(a * b for a, b in zip(x, y))
    sum_xx = sum(a * a for a in x)
    sum_yy = sum(b * b for b in y)
    numerator = n * sum_xy - sum_x * sum_y
    radicand = (n * sum_xx - sum_x ** 2) * (n * sum_yy - sum_y ** 2)
    if radicand <= 0:
        return 0.0
    return numerator / math.sqrt(radicand)


def _ranked(counter: Counter) -> list[str]:
    """Keys by count descending; ties keep first-seen order."""
    return [key for key, _ in sorted(counter.items(), key=lambda kv: -kv[1])]


def _factors(event: BehavioralEvent) -> dict[str, Any]:
    factors = _data(event).get("factors")
    if not isinstance(factors, dict):
        factors = _ctx(event).get("factors")
    return factors if isinstance(factors, dict) else {}


# ---------------------------------------------------------------------------
# Sub-analyses (pure)
# ---------------------------------------------------------------------------

def productivity_peaks(events: list[BehavioralEvent], cfg: Settings = default_settings) -> list[str]:
    metrics = _of_type(events, EventType.productivity_metrics)
    if len(metrics) < cfg.MIN_RELEVANT_EVENTS:
        return []

    buckets: dict[str, list[float]] = {}
    for e in metrics:
        buckets.setdefault(event_time_of_day(e), []).append(_num(_data(e).get("focusQuality")))

    averages = [(bucket, _mean(values)) for bucket, values in buckets.items()]
    averages.sort(key=lambda item: -item[1])
    return [TIME_SLOT_LABELS.get(bucket, bucket) for bucket, _ in averages[:2]]


def distraction_triggers(events: list[BehavioralEvent], cfg: Settings = default_settings) -> list[str]:
    blurs = [
        e for e in _of_type(events, EventType.user_interaction)
        if _data(e).get("interactionType") == "blur"
    ]
    if len(blurs) < cfg.MIN_RELEVANT_EVENTS:
        return []

    triggers: Counter = Counter()
    for e in blurs:
        ctx = _ctx(e)
        if ctx.get("noiseLevel") in ("moderate", "loud"):
            triggers["Background noise"] += 1
        if ctx.get("socialContext") == "group":
            triggers["Other people around"] += 1
    return _ranked(triggers)[:3]


def optimal_session_length(events: list[BehavioralEvent], cfg: Settings = default_settings) -> int:
    tasks = _of_type(events, EventType.task_completion)
    if len(tasks) < cfg.MIN_RELEVANT_EVENTS:
        return cfg.DEFAULT_SESSION_MINUTES

    durations = [
        _num(_data(e).get("duration"))
        for e in tasks
        if _data(e).get("completed") is True and _data(e).get("duration") is not None
    ]
    if not durations:
        return cfg.DEFAULT_SESSION_MINUTES

    step = cfg.SESSION_ROUNDING_MINUTES
    rounded = int(_mean(durations) / step + 0.5) * step
    return max(step, rounded)


def learning_style(events: list[BehavioralEvent], cfg: Settings = default_settings) -> str:
    """Coarse proxy from task completion rate; "current" means keep what works."""
    tasks = _of_type(events, EventType.task_completion)
    if len(tasks) < cfg.MIN_RELEVANT_EVENTS:
        return "current"

    rate = sum(1 for e in tasks if _data(e).get("completed") is True) / len(tasks)
    if rate >= cfg.LEARNING_STYLE_KEEP:
        return "current"
    if rate >= cfg.LEARNING_STYLE_VISUAL:
        return "visual"
    if rate >= cfg.LEARNING_STYLE_KINESTHETIC:
        return "kinesthetic"
    return "auditory"


def acceptance_ratio(events: list[BehavioralEvent]) -> Optional[float]:
    responses = _of_type(events, EventType.suggestion_response)
    if not responses:
        return None
    accepted = sum(1 for e in responses if _data(e).get("response") == "accepted")
    return accepted / len(responses)


def motivation_factors(events: list[BehavioralEvent], cfg: Settings = default_settings) -> list[str]:
    responses = _of_type(events, EventType.suggestion_response)
    if len(responses) < cfg.MIN_RELEVANT_EVENTS:
        return list(DEFAULT_MOTIVATION)

    rate = acceptance_ratio(responses) or 0.0
    if rate > cfg.MOTIVATION_HIGH:
        return list(HIGH_ACCEPTANCE_MOTIVATION)
    if rate > cfg.MOTIVATION_MEDIUM:
        return list(DEFAULT_MOTIVATION)
    return list(LOW_ACCEPTANCE_MOTIVATION)


def environmental_preferences(
    events: list[BehavioralEvent], cfg: Settings = default_settings
) -> EnvironmentalPreferences:
    samples = _of_type(events, EventType.contextual_factors)
    if len(samples) < cfg.MIN_RELEVANT_EVENTS:
        return EnvironmentalPreferences()

    locations: Counter = Counter()
    noise: Counter = Counter()
    times: Counter = Counter()
    for e in samples:
        factors = _factors(e)
        if factors.get("location"):
            locations[str(factors["location"])] += 1
        if factors.get("noiseLevel"):
            noise[str(factors["noiseLevel"])] += 1
        times[event_time_of_day(e)] += 1

    noise_ranked = _ranked(noise)
    times_ranked = _ranked(times)
    return EnvironmentalPreferences(
        preferred_locations=_ranked(locations)[:2],
        optimal_noise_level=noise_ranked[0] if noise_ranked else "moderate",
        best_time_of_day=times_ranked[0] if times_ranked else "morning",
    )


def adaptation_recommendations(
    events: list[BehavioralEvent], cfg: Settings = default_settings
) -> list[str]:
    """Independent rules; every rule that applies contributes."""
    recommendations: list[str] = []

    if len(_of_type(events, EventType.skip_pattern)) > cfg.SKIP_PATTERN_LIMIT:
        recommendations.append(REDUCE_COMPLEXITY)

    if len(_of_type(events, EventType.routine_modification)) > cfg.MODIFICATION_LIMIT:
        recommendations.append(PROFILE_UPDATE)

    metrics = _of_type(events, EventType.productivity_metrics)
    if len(metrics) >= cfg.MIN_RELEVANT_EVENTS:
        recent = metrics[-cfg.RECENT_FOCUS_EVENTS:]
        if _mean([_num(_data(e).get("focusQuality")) for e in recent]) < cfg.LOW_FOCUS_THRESHOLD:
            recommendations.append(ADJUST_ENVIRONMENT)

    return recommendations


def suggestion_acceptance_rate(events: list[BehavioralEvent]) -> float:
    """Percent accepted; neutral 50 when no suggestion has been answered."""
    ratio = acceptance_ratio(events)
    return 50.0 if ratio is None else round(ratio * 100, 1)


def routine_modification_frequency(events: list[BehavioralEvent], window_days: int) -> float:
    """Routine modifications per week over the window."""
    weeks = max(window_days / 7, 1)
    return round(len(_of_type(events, EventType.routine_modification)) / weeks, 1)


# ---------------------------------------------------------------------------
# Energy, temporal and interaction patterns (pure)
# ---------------------------------------------------------------------------

def energy_patterns(events: list[BehavioralEvent]) -> list[EnergyPattern]:
    """Average self-reported energy per time-of-day bucket, its correlation
    with focus quality, and whether energy rose or fell across the window."""
    groups: dict[str, list[tuple[float, float]]] = {}
    for e in _of_type(events, EventType.productivity_metrics):
        data = _data(e)
        if data.get("energyLevel") is None:
            continue
        groups.setdefault(event_time_of_day(e), []).append(
            (_num(data.get("energyLevel")), _num(data.get("focusQuality")))
        )

    patterns: list[EnergyPattern] = []
    for bucket, pairs in groups.items():
        energies = [p[0] for p in pairs]
        focus = [p[1] for p in pairs]
        half = len(energies) // 2
        trend = "stable"
        if half:
            early, late = _mean(energies[:half]), _mean(energies[-half:])
            if early and (late - early) / early > 0.1:
                trend = "increasing"
            elif early and (early - late) / early > 0.1:
                trend = "decreasing"
        patterns.append(EnergyPattern(
            time_period=bucket,
            average_energy=round(_mean(energies), 1),
            productivity_correlation=round(calculate_correlation(energies, focus), 2),
            trend=trend,
            samples=len(pairs),
        ))
    return patterns


def temporal_patterns(events: list[BehavioralEvent]) -> list[TemporalPattern]:
    groups: dict[tuple[str, str], list[dict[str, Any]]] = {}
    for e in _of_type(events, EventType.productivity_metrics):
        day_name = _ctx(e).get("dayOfWeek") or as_utc(e.timestamp).strftime("%A").lower()
        groups.setdefault((event_time_of_day(e), str(day_name)), []).append(_data(e))

    patterns: list[TemporalPattern] = []
    for (bucket, day_name), rows in groups.items():
        focus = _mean([_num(r.get("focusQuality")) for r in rows])
        patterns.append(TemporalPattern(
            time_of_day=bucket,
            day_of_week=day_name,
            productivity_score=round(focus, 2),
            energy_level=round(_mean([_num(r.get("energyLevel")) for r in rows]), 2),
            focus_quality=round(focus, 2),
            samples=len(rows),
        ))
    return patterns


def interaction_patterns(events: list[BehavioralEvent]) -> list[InteractionPattern]:
    by_feature: dict[str, list[BehavioralEvent]] = {}
    for e in _of_type(events, EventType.user_interaction):
        by_feature.setdefault(str(_data(e).get("element") or "unknown"), []).append(e)

    tasks = _of_type(events, EventType.task_completion)
    patterns: list[InteractionPattern] = []
    for feature, rows in by_feature.items():
        kinds = Counter(_data(e).get("interactionType") for e in rows)
        engagement = min((kinds["click"] * 3 + kinds["hover"] + kinds["focus"] * 2) / 10, 10)
        feature_tasks = [t for t in tasks if _data(t).get("taskType") == feature]
        completed = sum(1 for t in feature_tasks if _data(t).get("completed") is True)
        patterns.append(InteractionPattern(
            feature=feature,
            engagement_score=round(engagement, 2),
            click_through_rate=round(kinds["click"] / len(rows), 4),
            completion_rate=round(completed / len(feature_tasks), 4) if feature_tasks else 0.0,
            interactions=len(rows),
        ))
    return patterns


# ---------------------------------------------------------------------------
# Learning progression (pure)
# ---------------------------------------------------------------------------

def _focus_improvement(events: list[BehavioralEvent]) -> float:
    metrics = _of_type(events, EventType.productivity_metrics)
    recent = metrics[-7:]
    older = metrics[-14:-7]
    if not older:
        return 0.0
    recent_avg = _mean([_num(_data(e).get("focusQuality")) for e in recent])
    older_avg = _mean([_num(_data(e).get("focusQuality")) for e in older])
    return round((recent_avg - older_avg) / older_avg * 100) if older_avg else 0.0


def habit_formation_rate(events: list[BehavioralEvent]) -> float:
    checkins = _of_type(events, EventType.habit_completion)
    if not checkins:
        return 0.0
    done = sum(1 for e in checkins if _data(e).get("completed") is True)
    return round(done / len(checkins) * 100)


def learning_progression(
    events: list[BehavioralEvent],
    until: date,
    first_seen: Optional[date] = None,
) -> LearningProgression:
    """
    Mastery level over the insight window. `first_seen` is the day of the
    user's earliest event overall; without it, weeks_active is counted from
    the window's first event and cannot reach the "advanced" threshold.
    """
    if not events:
        return LearningProgression()

    first_day = as_utc(events[0].timestamp).date()
    if first_seen is not None:
        first_day = min(first_day, first_seen)
    weeks_active = max(1, math.ceil(((until - first_day).days + 1) / 7))
    formation = habit_formation_rate(events)

    interactions = len(_of_type(events, EventType.user_interaction))
    if weeks_active < 2 or len(events) < 50:
        level = "beginner"
    elif weeks_active < 8 or interactions < 20:
        level = "intermediate"
    else:
        level = "advanced"

    return LearningProgression(
        weeks_active=weeks_active,
        skill_improvements=[
            SkillImprovement("Focus and Concentration", _focus_improvement(events)),
            SkillImprovement("Habit Formation", formation),
        ],
        habit_formation_rate=formation,
        system_mastery_level=level,
    )


# ---------------------------------------------------------------------------
# Behavioral insights (pure)
# ---------------------------------------------------------------------------

def getting_started_insights() -> list[Insight]:
    return [
        Insight(
            category="productivity",
            description="Not enough activity yet to detect your productivity patterns",
            pattern_strength=0.0,
            behavioral_correlation=0.0,
            trend="stable",
            actionable_recommendations=[
                "Log your focus and energy after each work session",
                "Complete your first routine to start building history",
            ],
        ),
        Insight(
            category="motivation",
            description="Start small: one consistent habit builds momentum for the next",
            pattern_strength=0.0,
            behavioral_correlation=0.0,
            trend="stable",
            actionable_recommendations=[
                "Pick one habit and check it in every day this week",
                "Complete your evening review to track what worked",
            ],
        ),
    ]


def _trend_of(values: list[float], tolerance: float = 0.1) -> str:
    half = len(values) // 2
    if half == 0:
        return "stable"
    early, late = _mean(values[:half]), _mean(values[-half:])
    if early == 0:
        return "improving" if late > 0 else "stable"
    change = (late - early) / early
    if change > tolerance:
        return "improving"
    if change < -tolerance:
        return "declining"
    return "stable"


def build_insights(events: list[BehavioralEvent], cfg: Settings = default_settings) -> list[Insight]:
    """One insight per category with data, strongest pattern first."""
    if not events:
        return getting_started_insights()

    insights: list[Insight] = []

    # productivity
    metrics = _of_type(events, EventType.productivity_metrics)
    if metrics:
        focus = [_num(_data(e).get("focusQuality")) for e in metrics]
        paired = [
            (_num(_data(e).get("energyLevel")), _num(_data(e).get("focusQuality")))
            for e in metrics if _data(e).get("energyLevel") is not None
        ]
        corr = abs(calculate_correlation([p[0] for p in paired], [p[1] for p in paired]))
        peaks = productivity_peaks(events, cfg)
        avg = _mean(focus)
        recs = [f"Schedule demanding work during {peaks[0]}"] if peaks else []
        recs.append(
            "Maintain your current environment and schedule" if avg >= 3.5
            else "Try shorter focus blocks with planned breaks"
        )
        insights.append(Insight(
            category="productivity",
            description=f"Average focus quality is {avg:.1f}/5 across {len(metrics)} check-ins",
            pattern_strength=round(min(1.0, len(metrics) / 14), 2),
            behavioral_correlation=round(min(1.0, corr), 2),
            trend=_trend_of(focus),
            actionable_recommendations=recs,
        ))

    # obstacles
    skips = _of_type(events, EventType.skip_pattern)
    if skips:
        reasons = Counter(str(_data(e).get("reason")) for e in skips if _data(e).get("reason"))
        top = _ranked(reasons)[:2]
        description = f"{len(skips)} skipped routine items"
        if top:
            description += f", most often because of: {', '.join(top)}"
        insights.append(Insight(
            category="obstacles",
            description=description,
            pattern_strength=round(min(1.0, len(skips) / 10), 2),
            behavioral_correlation=round(min(1.0, len(skips) / max(len(events), 1) * 2), 2),
            trend="declining" if len(skips) > cfg.SKIP_PATTERN_LIMIT else "stable",
            actionable_recommendations=[
                "Shrink the skipped items into two-minute versions",
                "Move frequently skipped items to a time you reliably keep",
            ],
        ))

    # triggers
    blurs = [
        e for e in _of_type(events, EventType.user_interaction)
        if _data(e).get("interactionType") == "blur"
    ]
    triggers = distraction_triggers(events, cfg)
    if triggers:
        interactions = len(_of_type(events, EventType.user_interaction))
        insights.append(Insight(
            category="triggers",
            description=f"Most common distraction triggers: {', '.join(triggers)}",
            pattern_strength=round(min(1.0, len(blurs) / 20), 2),
            behavioral_correlation=round(len(blurs) / interactions, 2) if interactions else 0.0,
            trend="stable",
            actionable_recommendations=[
                "Use noise-cancelling headphones or a quieter space" if "Background noise" in triggers
                else "Block distracting sites during focus sessions",
                "Find a solo study spot for deep work" if "Other people around" in triggers
                else "Silence notifications before starting a session",
            ],
        ))

    # rewards
    ratio = acceptance_ratio(events)
    checkins = _of_type(events, EventType.habit_completion)
    if ratio is not None or checkins:
        responses = len(_of_type(events, EventType.suggestion_response))
        formation = habit_formation_rate(events)
        parts = []
        if ratio is not None:
            parts.append(f"{ratio * 100:.0f}% of suggestions accepted")
        if checkins:
            parts.append(f"{formation:.0f}% of habit check-ins completed")
        insights.append(Insight(
            category="rewards",
            description="; ".join(parts),
            pattern_strength=round(min(1.0, (responses + len(checkins)) / 20), 2),
            behavioral_correlation=round(ratio if ratio is not None else formation / 100, 2),
            trend="improving" if (ratio or 0) > cfg.MOTIVATION_HIGH else "stable",
            actionable_recommendations=[
                "Celebrate each completed habit right away",
                "Review weekly progress to reinforce what works",
            ],
        ))

    # environment
    samples = _of_type(events, EventType.contextual_factors)
    if samples:
        prefs = environmental_preferences(events, cfg)
        where = ", ".join(prefs.preferred_locations) or "no single location"
        insights.append(Insight(
            category="environment",
            description=(
                f"You work best at {where} with {prefs.optimal_noise_level} noise"
            ),
            pattern_strength=round(min(1.0, len(samples) / 10), 2),
            behavioral_correlation=round(min(1.0, len(samples) / max(len(events), 1) * 2), 2),
            trend="stable",
            actionable_recommendations=[
                f"Plan deep work for the {prefs.best_time_of_day}",
                "Prepare your workspace before each session",
            ],
        ))

    # motivation
    factors = motivation_factors(events, cfg)
    modifications = len(_of_type(events, EventType.routine_modification))
    insights.append(Insight(
        category="motivation",
        description=f"Key motivators: {', '.join(factors)}",
        pattern_strength=round(min(1.0, len(events) / 50), 2),
        behavioral_correlation=round(ratio, 2) if ratio is not None else 0.5,
        trend="stable" if modifications <= cfg.MODIFICATION_LIMIT else "declining",
        actionable_recommendations=[f"Lean on {factors[0].lower()} when planning your week"],
    ))

    insights.sort(key=lambda i: -i.pattern_strength)
    return insights


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class PatternRecognitionEngine:
    def __init__(self, store: EventStore, cfg: Settings = default_settings):
        self._store = store
        self._cfg = cfg

    def window_events(self, user_id: str, until: Optional[date] = None) -> list[BehavioralEvent]:
        """Events in the INSIGHT_WINDOW_DAYS window ending on `until`, oldest first."""
        end = until or _today()
        start = end - timedelta(days=self._cfg.INSIGHT_WINDOW_DAYS - 1)
        return self._store.query_events(user_id, since=day_start(start), until=day_end(end))

    def analyze(self, events: list[BehavioralEvent]) -> PersonalizationInsights:
        cfg = self._cfg
        return PersonalizationInsights(
            productivity_peaks=productivity_peaks(events, cfg),
            distraction_triggers=distraction_triggers(events, cfg),
            optimal_session_length=optimal_session_length(events, cfg),
            learning_style=learning_style(events, cfg),
            motivation_factors=motivation_factors(events, cfg),
            environmental_preferences=environmental_preferences(events, cfg),
            adaptation_recommendations=adaptation_recommendations(events, cfg),
            suggestion_acceptance_rate=suggestion_acceptance_rate(events),
            events_analyzed=len(events),
        )

    def generate_personalization_insights(
        self, user_id: str, until: Optional[date] = None
    ) -> PersonalizationInsights:
        events = self.window_events(user_id, until)
        result = self.analyze(events)
        logger.info(
            "personalization_insights_generated",
            user_id=user_id,
            events=len(events),
            recommendations=len(result.adaptation_recommendations),
        )
        return result

    def behavioral_insights(self, user_id: str, until: Optional[date] = None) -> list[Insight]:
        return build_insights(self.window_events(user_id, until), self._cfg)

    def temporal_patterns(self, user_id: str, until: Optional[date] = None) -> list[TemporalPattern]:
        return temporal_patterns(self.window_events(user_id, until))

    def interaction_patterns(
        self, user_id: str, until: Optional[date] = None
    ) -> list[InteractionPattern]:
        return interaction_patterns(self.window_events(user_id, until))

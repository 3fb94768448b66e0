"""
Behavioral event ingestion schemas.

Single event:  POST /events        → BehavioralEventIn   → BehavioralEventOut
Batch:         POST /events/batch  → BatchEventRequest   → BatchEventResponse
Listing:       GET  /events        → EventListResponse

`BehavioralEventIn` is a tagged union on `event_type`: each type carries its
own `event_data` schema, so a renamed or mistyped payload field is rejected at
ingestion rather than silently ignored by the pattern heuristics later.
Unknown extra keys are kept.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from momentum.schemas.common import USER_ID_REGEX
from momentum.services.event_store import NewEvent

BATCH_MAX_ITEMS = 100

TimeOfDay = Literal["morning", "afternoon", "evening", "night"]


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

class EventContext(BaseModel):
    model_config = ConfigDict(extra="allow")

    timeOfDay: Optional[TimeOfDay] = None
    dayOfWeek: Optional[str] = None
    noiseLevel: Optional[str] = None
    socialContext: Optional[str] = None


# ---------------------------------------------------------------------------
# Per-type payloads
# ---------------------------------------------------------------------------

class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class UserInteractionData(_Payload):
    interactionType: Annotated[str, Field(min_length=1, examples=["click", "blur"])]
    element: Optional[str] = None


class TaskCompletionData(_Payload):
    completed: bool
    duration: Optional[float] = Field(default=None, ge=0, description="Minutes.")
    taskType: Optional[str] = None


class ProductivityMetricsData(_Payload):
    focusQuality: float = Field(ge=0, le=5)
    energyLevel: Optional[float] = Field(default=None, ge=0, le=10)


class SuggestionResponseData(_Payload):
    response: Literal["accepted", "rejected", "dismissed", "modified"]
    suggestionId: Optional[str] = None


class ContextFactors(BaseModel):
    model_config = ConfigDict(extra="allow")

    location: Optional[str] = None
    noiseLevel: Optional[str] = None
    socialContext: Optional[str] = None


class ContextualFactorsData(_Payload):
    factors: ContextFactors = Field(default_factory=ContextFactors)


class SkipPatternData(_Payload):
    activity: Optional[str] = None
    reason: Optional[str] = None


class RoutineModificationData(_Payload):
    modification: Optional[str] = None
    field: Optional[str] = None


class HabitCompletionData(_Payload):
    habitId: Optional[int] = None
    completed: bool


# ---------------------------------------------------------------------------
# Tagged union
# ---------------------------------------------------------------------------

class _EventBase(BaseModel):
    user_id: Annotated[str, Field(pattern=USER_ID_REGEX, examples=["user_42"])]
    context: EventContext = Field(default_factory=EventContext)
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the behavior happened. Naive values are read as UTC. Defaults to now.",
    )

    @field_validator("timestamp")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_new_event(self) -> NewEvent:
        return NewEvent(
            user_id=self.user_id,
            event_type=self.event_type,
            event_data=self.event_data.model_dump(exclude_none=True),
            context=self.context.model_dump(exclude_none=True),
            timestamp=self.timestamp,
        )


class UserInteractionEvent(_EventBase):
    event_type: Literal["user_interaction"]
    event_data: UserInteractionData


class TaskCompletionEvent(_EventBase):
    event_type: Literal["task_completion"]
    event_data: TaskCompletionData


class ProductivityMetricsEvent(_EventBase):
    event_type: Literal["productivity_metrics"]
    event_data: ProductivityMetricsData


class SuggestionResponseEvent(_EventBase):
    event_type: Literal["suggestion_response"]
    event_data: SuggestionResponseData


class ContextualFactorsEvent(_EventBase):
    event_type: Literal["contextual_factors"]
    event_data: ContextualFactorsData = Field(default_factory=ContextualFactorsData)


class SkipPatternEvent(_EventBase):
    event_type: Literal["skip_pattern"]
    event_data: SkipPatternData = Field(default_factory=SkipPatternData)


class RoutineModificationEvent(_EventBase):
    event_type: Literal["routine_modification"]
    event_data: RoutineModificationData = Field(default_factory=RoutineModificationData)


class HabitCompletionEvent(_EventBase):
    event_type: Literal["habit_completion"]
    event_data: HabitCompletionData


AnyBehavioralEvent = Union[
    UserInteractionEvent,
    TaskCompletionEvent,
    ProductivityMetricsEvent,
    SuggestionResponseEvent,
    ContextualFactorsEvent,
    SkipPatternEvent,
    RoutineModificationEvent,
    HabitCompletionEvent,
]


class BehavioralEventIn(RootModel[Annotated[AnyBehavioralEvent, Field(discriminator="event_type")]]):
    """Any behavioral event, dispatched on `event_type`."""

    def to_new_event(self) -> NewEvent:
        return self.root.to_new_event()


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class BehavioralEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    event_type: str
    event_data: dict[str, Any]
    context: dict[str, Any]
    timestamp: str = Field(description="UTC timestamp of the behavior.")


class EventListResponse(BaseModel):
    total: int
    items: list[BehavioralEventOut]


# ---------------------------------------------------------------------------
# Batch schemas
# ---------------------------------------------------------------------------

class BatchEventRequest(BaseModel):
    """A batch of behavioral events recorded in a single request.

    - Items are validated and stored independently: one malformed or
      rejected event does not cancel the others.
    - Items stay raw here so that validation errors are reported per item.
    """
    items: Annotated[list[dict[str, Any]], Field(
        min_length=1,
        description=f"Events to record (1–{BATCH_MAX_ITEMS} items).",
    )]


class BatchItemResult(BaseModel):
    """Outcome for a single item in a batch request."""
    index: int = Field(description="Zero-based position in the request items list.")
    ok: bool = Field(description="True if the event was recorded.")
    event: Optional[BehavioralEventOut] = Field(
        default=None,
        description="Populated when ok=True.",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message when ok=False.",
    )


class BatchEventResponse(BaseModel):
    total: int = Field(description="Total items received.")
    succeeded: int = Field(description="Events recorded.")
    failed: int = Field(description="Events rejected.")
    items: list[BatchItemResult] = Field(description="Per-item results in input order.")

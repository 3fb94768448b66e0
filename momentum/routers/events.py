"""
Behavioral event ingestion router.

POST /events         — record a single event
POST /events/batch   — record up to 100 events
GET  /events         — list a user's events (paginated, newest first)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError

from momentum.core.errors import BatchTooLargeError
from momentum.models.behavioral_event import BehavioralEvent, EventType
from momentum.schemas.common import UserIdQuery
from momentum.schemas.events import (
    BATCH_MAX_ITEMS,
    BatchEventRequest,
    BatchEventResponse,
    BatchItemResult,
    BehavioralEventIn,
    BehavioralEventOut,
    EventListResponse,
)
from momentum.services.event_store import EventStore, NewEvent, get_event_store
from momentum.services.windows import as_utc

router = APIRouter(prefix="/events", tags=["events"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _event_to_response(ev: BehavioralEvent) -> BehavioralEventOut:
    return BehavioralEventOut(
        id=ev.id,
        user_id=ev.user_id,
        event_type=ev.event_type,
        event_data=ev.event_data or {},
        context=ev.context or {},
        timestamp=as_utc(ev.timestamp).isoformat() if ev.timestamp else "",
    )


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )


# ---------------------------------------------------------------------------
# POST /events
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=BehavioralEventOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a behavioral event",
    responses={
        422: {"description": "Unknown event_type or event_data not matching its schema."},
    },
)
def record_event(
    payload: BehavioralEventIn,
    store: EventStore = Depends(get_event_store),
):
    """
    Append one behavioral event. `event_data` is validated against the schema
    of its `event_type`:

    | event_type | required event_data |
    |---|---|
    | `user_interaction`     | `interactionType` |
    | `task_completion`      | `completed` (bool), optional `duration` minutes |
    | `productivity_metrics` | `focusQuality` 0-5, optional `energyLevel` 0-10 |
    | `suggestion_response`  | `response`: accepted / rejected / dismissed / modified |
    | `contextual_factors`   | optional `factors.location`, `factors.noiseLevel` |
    | `skip_pattern`         | none |
    | `routine_modification` | none |
    | `habit_completion`     | `completed` (bool) |

    Events are immutable once recorded.
    """
    row = store.record_event(payload.to_new_event())
    return _event_to_response(row)


# ---------------------------------------------------------------------------
# POST /events/batch
# ---------------------------------------------------------------------------

@router.post(
    "/batch",
    response_model=BatchEventResponse,
    status_code=status.HTTP_207_MULTI_STATUS,
    summary="Record a batch of behavioral events (up to 100)",
    responses={
        207: {"description": "Multi-status: check each item's `ok` field."},
        422: {"description": "Batch-level validation error (empty list, too many items)."},
    },
)
def record_event_batch(
    payload: BatchEventRequest,
    store: EventStore = Depends(get_event_store),
):
    """
    Record up to **100 events** in a single request.

    Each item is validated on its own and stored in its own savepoint, so a
    malformed item is reported without rolling back the others.
    Response HTTP status is **207 Multi-Status**: always inspect each `item.ok`.
    """
    if len(payload.items) > BATCH_MAX_ITEMS:
        raise BatchTooLargeError(max_items=BATCH_MAX_ITEMS, received=len(payload.items))

    results: dict[int, BatchItemResult] = {}
    valid: list[tuple[int, NewEvent]] = []
    for index, raw in enumerate(payload.items):
        try:
            event = BehavioralEventIn.model_validate(raw)
        except ValidationError as exc:
            results[index] = BatchItemResult(index=index, ok=False, error=_describe(exc))
            continue
        valid.append((index, event.to_new_event()))

    for r in store.record_events(valid):
        results[r["index"]] = BatchItemResult(
            index=r["index"],
            ok=r["ok"],
            event=_event_to_response(r["result"]) if r["ok"] and r["result"] else None,
            error=r["error"],
        )

    item_results = [results[i] for i in sorted(results)]
    succeeded = sum(1 for r in item_results if r.ok)
    return BatchEventResponse(
        total=len(item_results),
        succeeded=succeeded,
        failed=len(item_results) - succeeded,
        items=item_results,
    )


# ---------------------------------------------------------------------------
# GET /events
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=EventListResponse,
    summary="List a user's behavioral events (newest first)",
)
def list_events(
    user_id: UserIdQuery,
    event_type: Optional[EventType] = Query(default=None, description="Omit for all types."),
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    store: EventStore = Depends(get_event_store),
):
    total, items = store.list_events_page(
        user_id,
        event_type=event_type.value if event_type else None,
        limit=limit,
        offset=offset,
    )
    return EventListResponse(
        total=total,
        items=[_event_to_response(ev) for ev in items],
    )

"""
Tests for behavioral event ingestion.

Covered:
  - single event → 201, payload validated per event_type
  - naive timestamps are read as UTC, offsets are converted
  - batch → 207 with per-item outcomes; >100 items rejected as a whole
  - listing is newest first, filtered and paginated
"""
from __future__ import annotations


def _metrics(user_id: str, focus: float = 4, **extra) -> dict:
    return {
        "user_id": user_id,
        "event_type": "productivity_metrics",
        "event_data": {"focusQuality": focus, "energyLevel": 6},
        "context": {"timeOfDay": "morning"},
        **extra,
    }


# ---------------------------------------------------------------------------
# POST /events
# ---------------------------------------------------------------------------

class TestRecordEvent:

    def test_valid_event_returns_201(self, client, user_id):
        r = client.post("/events", json=_metrics(user_id, timestamp="2026-02-01T10:00:00Z"))
        assert r.status_code == 201
        body = r.json()
        assert body["id"] > 0
        assert body["event_type"] == "productivity_metrics"
        assert body["event_data"] == {"focusQuality": 4, "energyLevel": 6}
        assert body["context"] == {"timeOfDay": "morning"}

    def test_naive_timestamp_is_utc(self, client, user_id):
        r = client.post("/events", json=_metrics(user_id, timestamp="2026-02-01T10:00:00"))
        assert r.status_code == 201
        assert r.json()["timestamp"] == "2026-02-01T10:00:00+00:00"

    def test_offset_timestamp_is_converted(self, client, user_id):
        r = client.post("/events", json=_metrics(user_id, timestamp="2026-02-01T12:00:00+02:00"))
        assert r.status_code == 201
        assert r.json()["timestamp"] == "2026-02-01T10:00:00+00:00"

    def test_missing_timestamp_defaults_to_now(self, client, user_id):
        r = client.post("/events", json={
            "user_id": user_id,
            "event_type": "skip_pattern",
            "event_data": {"reason": "tired"},
        })
        assert r.status_code == 201
        assert r.json()["timestamp"]

    def test_unknown_extra_keys_are_kept(self, client, user_id):
        r = client.post("/events", json={
            "user_id": user_id,
            "event_type": "user_interaction",
            "event_data": {"interactionType": "click", "element": "timer", "x": 10},
        })
        assert r.status_code == 201
        assert r.json()["event_data"]["x"] == 10

    def test_out_of_range_payload_rejected(self, client, user_id):
        r = client.post("/events", json=_metrics(user_id, focus=9))
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any("focusQuality" in e["field"] for e in body["details"]["errors"])

    def test_missing_required_payload_field(self, client, user_id):
        r = client.post("/events", json={
            "user_id": user_id,
            "event_type": "task_completion",
            "event_data": {"duration": 30},
        })
        assert r.status_code == 422

    def test_unknown_event_type_rejected(self, client, user_id):
        r = client.post("/events", json={"user_id": user_id, "event_type": "teleport", "event_data": {}})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_malformed_user_id_rejected(self, client):
        r = client.post("/events", json=_metrics("bad user!"))
        assert r.status_code == 422


# ---------------------------------------------------------------------------
# POST /events/batch
# ---------------------------------------------------------------------------

class TestBatch:

    def test_mixed_batch_is_207(self, client, user_id):
        r = client.post("/events/batch", json={"items": [
            _metrics(user_id),
            _metrics(user_id, focus=9),
            {"user_id": user_id, "event_type": "habit_completion", "event_data": {"completed": True}},
        ]})
        assert r.status_code == 207
        body = r.json()
        assert body["total"] == 3
        assert body["succeeded"] == 2
        assert body["failed"] == 1
        assert [item["index"] for item in body["items"]] == [0, 1, 2]
        assert body["items"][0]["ok"] is True
        assert body["items"][0]["event"]["id"] > 0
        assert body["items"][1]["ok"] is False
        assert "focusQuality" in body["items"][1]["error"]
        assert body["items"][2]["event"]["event_type"] == "habit_completion"

    def test_too_many_items(self, client, user_id):
        r = client.post("/events/batch", json={"items": [_metrics(user_id)] * 101})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "BATCH_TOO_LARGE"
        assert body["details"] == {"max_items": 100, "received": 101}
        assert client.get(f"/events?user_id={user_id}").json()["total"] == 0

    def test_empty_batch_rejected(self, client):
        r = client.post("/events/batch", json={"items": []})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# GET /events
# ---------------------------------------------------------------------------

class TestListEvents:

    def test_newest_first_and_paginated(self, client, user_id):
        for day in ("01", "02", "03"):
            client.post("/events", json=_metrics(user_id, timestamp=f"2026-02-{day}T09:00:00Z"))

        page = client.get(f"/events?user_id={user_id}&limit=2").json()
        assert page["total"] == 3
        assert [e["timestamp"][:10] for e in page["items"]] == ["2026-02-03", "2026-02-02"]

        rest = client.get(f"/events?user_id={user_id}&limit=2&offset=2").json()
        assert [e["timestamp"][:10] for e in rest["items"]] == ["2026-02-01"]

    def test_filter_by_type(self, client, user_id):
        client.post("/events", json=_metrics(user_id))
        client.post("/events", json={"user_id": user_id, "event_type": "skip_pattern"})

        r = client.get(f"/events?user_id={user_id}&event_type=skip_pattern")
        assert r.status_code == 200
        assert r.json()["total"] == 1
        assert r.json()["items"][0]["event_type"] == "skip_pattern"

    def test_unknown_filter_type_rejected(self, client, user_id):
        r = client.get(f"/events?user_id={user_id}&event_type=teleport")
        assert r.status_code == 422

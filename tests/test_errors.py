"""
Tests for the error envelope and the health check.
"""
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from momentum.core.errors import BatchTooLargeError, InvalidInputError, PartialDataDefault
from momentum.db.base import get_db
from momentum.main import app
from momentum.routers.habits import get_habit_engine


class ExplodingEngine:
    def compute_consistency_score(self, user_id, today=None):
        raise RuntimeError("boom")


def test_invalid_input_envelope():
    exc = InvalidInputError(field="period", message="bad period", value="yearly")
    assert exc.http_status == 422
    assert exc.to_dict() == {
        "code": "INVALID_INPUT",
        "message": "bad period",
        "details": {"field": "period", "value": "yearly"},
    }


def test_batch_too_large_envelope():
    assert BatchTooLargeError(max_items=100, received=150).to_dict()["details"] == {
        "max_items": 100,
        "received": 150,
    }


def test_partial_default_names_its_source():
    exc = PartialDataDefault("profile", "timed out")
    assert exc.source == "profile"
    assert "profile" in exc.message


def test_request_validation_envelope(client):
    r = client.get("/habits/streaks")
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["errors"][0]["field"] == "query.user_id"


def test_unhandled_error_is_500_envelope(client):
    app.dependency_overrides[get_habit_engine] = lambda: ExplodingEngine()
    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.get("/habits/consistency?user_id=someone")
    assert r.status_code == 500
    assert r.json() == {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."}


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["db"] == "ok"


def test_health_db_unreachable(client):
    broken = sessionmaker(bind=create_engine("sqlite:////nonexistent-dir/momentum/unreachable.db"))

    def broken_db():
        db = broken()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = broken_db
    r = client.get("/health")
    assert r.status_code == 503
    assert r.json() == {"status": "error", "db": "unreachable"}

"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Collaborators open their own sessions (one per call, possibly on worker
threads), so the tests bind an EventStore to the test session factory instead
of sharing one session.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_momentum.db")

import uuid
from datetime import date, datetime, time, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from momentum.db.base import Base, get_db
from momentum.main import app
from momentum.models import ActivitySession, BehavioralEvent, EveningReview, Habit, HabitCompletion
from momentum.services.event_store import EventStore, get_event_store

SQLITE_URL = "sqlite:///./test_momentum.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def override_get_event_store():
    return EventStore(TestingSessionLocal)


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def store():
    return EventStore(TestingSessionLocal)


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_store] = override_get_event_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def user_id():
    """A fresh user per test keeps rows from different tests apart."""
    return f"u_{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

def at(day: date, hour: int = 9, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def add_habit(db, user_id: str, name: str, created: date, reminder: time | None = None, **kw) -> Habit:
    habit = Habit(
        user_id=user_id,
        name=name,
        reminder_time=reminder,
        created_at=at(created, 0),
        **kw,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


def add_completions(db, habit: Habit, start: date, flags: list[bool]) -> None:
    """One record per day from `start`, completed per flag."""
    for offset, flag in enumerate(flags):
        db.add(HabitCompletion(
            habit_id=habit.id,
            user_id=habit.user_id,
            day=date.fromordinal(start.toordinal() + offset),
            completed=flag,
        ))
    db.commit()


def add_session(db, user_id: str, day: date, hour: int, minutes: int, focus: int, distractions: int = 0):
    db.add(ActivitySession(
        user_id=user_id,
        activity="study",
        start_time=at(day, hour),
        duration=minutes,
        focus_quality=focus,
        distractions=distractions,
    ))
    db.commit()


def add_review(db, user_id: str, day: date, done: int, missed: int, **kw) -> None:
    db.add(EveningReview(
        user_id=user_id,
        day=day,
        accomplished=[f"task {i}" for i in range(done)],
        missed=[f"missed {i}" for i in range(missed)],
        reasons=kw.pop("reasons", []),
        **kw,
    ))
    db.commit()


def add_event(db, user_id: str, event_type: str, ts: datetime, data=None, context=None) -> None:
    db.add(BehavioralEvent(
        user_id=user_id,
        event_type=event_type,
        event_data=data or {},
        context=context or {},
        timestamp=ts,
    ))
    db.commit()

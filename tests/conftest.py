from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from agriledger import schemas
from agriledger.config import Settings
from agriledger.db import init_db, make_engine, make_session_factory
from agriledger.events import LedgerEvent
from agriledger.service import TraceabilityLedger

UTC = timezone.utc
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
OWNER = "0xOwner"


class ClockStub:
    """Mutable clock so tests can control ledger timestamps."""

    def __init__(self, initial: datetime | None = None):
        self._now = initial or NOW

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **delta_kwargs) -> None:
        self._now += timedelta(**delta_kwargs)

    def __call__(self) -> datetime:
        return self._now


class EventRecorder:
    def __init__(self):
        self.events: list[LedgerEvent] = []

    def __call__(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.events]


def mk_batch(**overrides) -> schemas.BatchInput:
    data = dict(
        batch_id="B1",
        crop_name="Rice",
        start=NOW,
        end=NOW + timedelta(days=90),
        farmer="A",
        expected_yield=1000,
        land="L1",
        status="Active",
    )
    data.update(overrides)
    return schemas.BatchInput(**data)


def mk_batch_edit(**overrides) -> schemas.BatchEditInput:
    return schemas.BatchEditInput(**mk_batch(**overrides).model_dump())


def mk_activity(**overrides) -> schemas.ActivityLogInput:
    data = dict(
        batch_id="B1",
        activity_name="Planting",
        start={"date": NOW, "hour": 8, "minute": 30},
        end={"date": NOW, "hour": 16, "minute": 30},
        area_covered=100,
    )
    data.update(overrides)
    return schemas.ActivityLogInput(**data)


def mk_activity_edit(log_id: int = 0, **overrides) -> schemas.ActivityLogEditInput:
    data = mk_activity(**overrides).model_dump()
    data.pop("batch_id")
    return schemas.ActivityLogEditInput(id=log_id, **data)


def mk_sustainability(**overrides) -> schemas.SustainabilityLogInput:
    data = dict(
        batch_id="B1",
        practice_name="Organic Fertilizer",
        implementation_date=NOW,
        impact_description="Reduced chemical usage by 50%",
        area_covered=100,
    )
    data.update(overrides)
    return schemas.SustainabilityLogInput(**data)


def mk_sustainability_edit(log_id: int = 0, **overrides) -> schemas.SustainabilityLogEditInput:
    data = mk_sustainability(**overrides).model_dump()
    data.pop("batch_id")
    return schemas.SustainabilityLogEditInput(id=log_id, **data)


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test."""
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    return ClockStub()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite:///:memory:", owner=OWNER)


@pytest.fixture
def ledger(session_factory, clock, recorder, settings):
    return TraceabilityLedger(session_factory, owner=OWNER, clock=clock, notify=recorder, settings=settings)

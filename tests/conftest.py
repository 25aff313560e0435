# tests/conftest.py
"""
Pytest configuration for the CareBook scheduling core.

Every test gets its own SQLite database file under ``tmp_path``, so tests
never share state and the concurrency tests can open several connections
to one database.
"""

from datetime import date, datetime, time
from decimal import Decimal
import os
from typing import Any

# Settings are read on first import of carebook, so set these first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOCK_RETRY_BACKOFF_SECONDS", "0.01")

import pytest
from sqlalchemy.orm import Session, sessionmaker

from carebook.database import create_db_engine, init_db
from carebook.events import EventPublisher
from carebook.models.availability import AvailabilitySlot
from carebook.services.scheduling_service import SchedulingService

from tests.helpers import WEEK_START, FixedClock, RecordingBridge


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'carebook_test.db'}"


@pytest.fixture
def engine(database_url):
    engine = create_db_engine(database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    # Saturday before WEEK_START
    return FixedClock(datetime(2030, 6, 1, 12, 0))


@pytest.fixture
def bridge() -> RecordingBridge:
    return RecordingBridge()


@pytest.fixture
def scheduling_service(db, bridge, clock) -> SchedulingService:
    return SchedulingService(db, event_publisher=EventPublisher(bridge), clock=clock)


@pytest.fixture
def make_slot(scheduling_service):
    """Create a slot through the scheduling service and return it."""

    def _make(
        caregiver_id: str = "caregiver-1",
        slot_date: date = WEEK_START,
        start: time = time(9),
        end: time = time(17),
        capacity: int = 3,
        rate: str = "20.00",
        conflict_policy: Any = None,
    ) -> AvailabilitySlot:
        resolution = scheduling_service.create_slot(
            caregiver_id,
            slot_date,
            start,
            end,
            capacity,
            Decimal(rate),
            conflict_policy=conflict_policy,
        )
        return resolution.slot

    return _make

"""Tests for BookingRepository compare-and-set and listings."""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from carebook.core.enums import BookingStatus
from carebook.core.exceptions import RepositoryException
from carebook.repositories.booking_repository import BookingRepository
from carebook.repositories.factory import RepositoryFactory

START = datetime(2030, 6, 3, 9)


@pytest.fixture
def repo(db) -> BookingRepository:
    return RepositoryFactory.create_booking_repository(db)


def _create(repo, **overrides):
    values = dict(
        caregiver_id="caregiver-1",
        parent_id="parent-1",
        start_at=START,
        end_at=START + timedelta(hours=2),
        children_count=1,
        hourly_rate=Decimal("20.00"),
        total_hours=Decimal("2.00"),
        total_amount=Decimal("40.00"),
        requested_at=datetime(2030, 6, 1, 12),
    )
    values.update(overrides)
    return repo.create(**values)


def test_new_booking_defaults_to_pending(repo, db):
    booking = _create(repo)
    db.commit()
    assert booking.status == BookingStatus.PENDING.value
    assert booking.booking_status is BookingStatus.PENDING


def test_compare_and_set_only_from_expected_status(repo, db):
    booking = _create(repo)
    db.commit()
    confirmed_at = datetime(2030, 6, 2, 9)

    assert (
        repo.compare_and_set_status(
            booking.id, BookingStatus.PENDING, BookingStatus.CONFIRMED, {"confirmed_at": confirmed_at}
        )
        == 1
    )
    # Second caller still believes it is PENDING
    assert repo.compare_and_set_status(booking.id, BookingStatus.PENDING, BookingStatus.CANCELLED) == 0
    db.commit()

    stored = repo.get_by_id(booking.id, refresh=True)
    assert stored.status == BookingStatus.CONFIRMED.value
    assert stored.confirmed_at == confirmed_at


def test_listings_filter_and_order(repo, db):
    later = _create(repo, start_at=START + timedelta(days=1), end_at=START + timedelta(days=1, hours=1))
    earlier = _create(repo)
    _create(repo, caregiver_id="caregiver-2", parent_id="parent-2")
    db.commit()
    repo.compare_and_set_status(later.id, BookingStatus.PENDING, BookingStatus.CONFIRMED)
    db.commit()

    assert [b.id for b in repo.list_for_caregiver("caregiver-1")] == [earlier.id, later.id]
    assert [b.id for b in repo.list_for_parent("parent-1", status=BookingStatus.CONFIRMED)] == [
        later.id
    ]
    assert len(repo.list_for_caregiver("caregiver-1", limit=1)) == 1


def test_list_failure_raises_repository_exception():
    db = MagicMock()
    db.query.side_effect = SQLAlchemyError("boom")

    with pytest.raises(RepositoryException):
        BookingRepository(db).list_for_parent("parent-1")

# carebook/models/booking.py
"""
Booking model for the CareBook scheduling core.

A booking is a parent's request for care against one caregiver slot. The
hourly rate is snapshotted from the slot when the booking is requested and
never changes afterwards, so later rate edits do not reprice commitments.

Bookings are never deleted; they end in COMPLETED or CANCELLED.
"""

import logging
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func

from ..core.enums import BookingStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)


class Booking(Base):
    """Parent booking against a caregiver availability slot."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    caregiver_id = Column(String(64), nullable=False)
    parent_id = Column(String(64), nullable=False)
    slot_id = Column(
        String(26),
        ForeignKey("availability_slots.id", ondelete="SET NULL"),
        nullable=True,
    )
    reservation_id = Column(
        String(26),
        ForeignKey("slot_reservations.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Requested care window (caregiver-local wall time)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    children_count = Column(Integer, nullable=False, default=1)

    # Pricing snapshot
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    total_hours = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    special_requests = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Lifecycle timestamps
    requested_at = Column(DateTime, nullable=False)
    confirmed_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        CheckConstraint("children_count >= 1", name="check_children_count_positive"),
        CheckConstraint("start_at < end_at", name="check_time_order"),
        CheckConstraint("hourly_rate > 0", name="check_rate_positive"),
        CheckConstraint("total_amount >= 0", name="check_amount_non_negative"),
        Index("ix_bookings_caregiver_start", "caregiver_id", "start_at"),
        Index("ix_bookings_parent_start", "parent_id", "start_at"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value

    @property
    def booking_status(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.booking_status.is_terminal

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: parent={self.parent_id}, "
            f"caregiver={self.caregiver_id}, start={self.start_at}, "
            f"end={self.end_at}, status={self.status}>"
        )

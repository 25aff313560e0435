# carebook/models/availability.py
"""
Availability slot model for the CareBook scheduling core.

A slot is a caregiver's published, time-bounded window with a finite number
of places. ``current_occupancy`` is owned by the capacity ledger; caregivers
may edit rate, notes and (within limits) capacity directly.
"""

from datetime import datetime
import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)


class AvailabilitySlot(Base):
    """One caregiver availability window on a single date."""

    __tablename__ = "availability_slots"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    caregiver_id = Column(String(64), nullable=False, index=True)

    slot_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    total_capacity = Column(Integer, nullable=False)
    current_occupancy = Column(Integer, nullable=False, default=0)
    base_rate = Column(Numeric(10, 2), nullable=False)

    is_recurring = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        UniqueConstraint(
            "caregiver_id", "slot_date", "start_time", name="uq_availability_slots_caregiver_start"
        ),
        Index("ix_availability_slots_caregiver_date", "caregiver_id", "slot_date"),
        CheckConstraint("start_time < end_time", name="ck_availability_slots_time_order"),
        CheckConstraint("total_capacity >= 1", name="ck_availability_slots_capacity_positive"),
        CheckConstraint(
            "current_occupancy >= 0 AND current_occupancy <= total_capacity",
            name="ck_availability_slots_occupancy_bounds",
        ),
        CheckConstraint("base_rate > 0", name="ck_availability_slots_rate_positive"),
    )

    @property
    def available_spots(self) -> int:
        return self.total_capacity - (self.current_occupancy or 0)

    @property
    def start_at(self) -> datetime:
        """Start instant, normalized to the slot's date."""
        return datetime.combine(self.slot_date, self.start_time)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.slot_date, self.end_time)

    @property
    def is_occupied(self) -> bool:
        return (self.current_occupancy or 0) > 0

    def __repr__(self) -> str:
        return (
            f"<AvailabilitySlot {self.id}: caregiver={self.caregiver_id}, "
            f"date={self.slot_date}, time={self.start_time}-{self.end_time}, "
            f"occupancy={self.current_occupancy}/{self.total_capacity}>"
        )

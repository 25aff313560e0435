# carebook/models/reservation.py
"""
Capacity reservation tokens.

Each successful reservation increments its slot's occupancy once and writes
one ACTIVE token. Releasing flips the token to RELEASED; only the request that
performs that flip gives the place back, so releasing twice is harmless.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.sql import func

from ..core.enums import ReservationStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class SlotReservation(Base):
    """One held place in an availability slot."""

    __tablename__ = "slot_reservations"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    slot_id = Column(
        String(26),
        ForeignKey("availability_slots.id", ondelete="SET NULL"),
        nullable=True,
    )
    booking_id = Column(String(26), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ReservationStatus.ACTIVE.value)

    reserved_at = Column(DateTime, nullable=False, server_default=func.now())
    released_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE', 'RELEASED')", name="ck_slot_reservations_status"),
        Index("ix_slot_reservations_slot_status", "slot_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<SlotReservation {self.id}: slot={self.slot_id}, booking={self.booking_id}, status={self.status}>"

# carebook/schemas/booking.py
"""Booking request/response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from ..core.enums import BookingEvent, BookingStatus
from ._strict_base import StrictRequestModel, StrictResponseModel


class BookingCreate(StrictRequestModel):
    """
    Request care from a caregiver.

    Times are caregiver-local wall time; the window must fit inside one of
    the caregiver's slots on a single day.
    """

    parent_id: str = Field(..., min_length=1, max_length=64)
    caregiver_id: str = Field(..., min_length=1, max_length=64)
    start_at: datetime
    end_at: datetime
    children_count: int = 1
    special_requests: Optional[str] = Field(None, max_length=1000)


class BookingTransitionRequest(StrictRequestModel):
    event: BookingEvent
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(StrictResponseModel):
    id: str
    caregiver_id: str
    parent_id: str
    slot_id: Optional[str] = None
    start_at: datetime
    end_at: datetime
    children_count: int
    hourly_rate: Decimal
    total_hours: Decimal
    total_amount: Decimal
    status: BookingStatus
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    requested_at: datetime
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

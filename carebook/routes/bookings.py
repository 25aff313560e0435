# carebook/routes/bookings.py
"""
Booking routes

All business logic delegated to SchedulingService.

Endpoints:
    POST / - Request a booking (reserves capacity, status PENDING)
    GET / - List bookings for a caregiver or a parent
    GET /{booking_id} - Booking details
    POST /{booking_id}/transitions - accept / decline / cancel / start / complete
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.params import Path

from ..api.dependencies import get_scheduling_service
from ..core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ..core.enums import BookingStatus
from ..core.exceptions import DomainException
from ..core.ulid_helper import ULID_PATTERN
from ..schemas.booking import BookingCreate, BookingResponse, BookingTransitionRequest
from ..services.scheduling_service import SchedulingService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def request_booking(
    payload: BookingCreate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    """Reserve a place in a covering slot and create a PENDING booking."""
    try:
        booking = await asyncio.to_thread(
            service.request_booking,
            payload.parent_id,
            payload.caregiver_id,
            payload.start_at,
            payload.end_at,
            payload.children_count,
            payload.special_requests,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    caregiver_id: Optional[str] = Query(None),
    parent_id: Optional[str] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[BookingResponse]:
    """Bookings for exactly one of caregiver_id / parent_id, by start time."""
    try:
        bookings = await asyncio.to_thread(
            service.list_bookings,
            caregiver_id=caregiver_id,
            parent_id=parent_id,
            status=status_filter,
            limit=limit,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(..., pattern=ULID_PATTERN, description="Booking ULID"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(service.get_booking, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/transitions", response_model=BookingResponse)
async def transition_booking(
    payload: BookingTransitionRequest,
    booking_id: str = Path(..., pattern=ULID_PATTERN, description="Booking ULID"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    """Apply a caregiver action; 409 if it is not valid from the current status."""
    try:
        booking = await asyncio.to_thread(
            service.transition_booking, booking_id, payload.event, payload.reason
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)

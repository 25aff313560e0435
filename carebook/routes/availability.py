# carebook/routes/availability.py
"""
Caregiver availability routes

All business logic delegated to SchedulingService.

Endpoints:
    GET /templates - Built-in weekly schedule templates
    POST /templates/apply - Expand a template into one week of slots
    POST /slots - Create a slot (explicit conflict policy)
    GET /slots - List a caregiver's slots for a date range
    GET /slots/{slot_id} - Slot details
    PATCH /slots/{slot_id} - Edit capacity, rate or notes
    DELETE /slots/{slot_id} - Delete an unbooked slot
    DELETE /days/{slot_date} - Delete all unbooked slots on one day
"""

import asyncio
from datetime import date
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.params import Path

from ..api.dependencies import get_scheduling_service
from ..core.exceptions import DomainException
from ..core.ulid_helper import ULID_PATTERN
from ..schemas.availability import (
    DayClearResponse,
    SlotCreate,
    SlotResolutionResponse,
    SlotResponse,
    SlotUpdate,
    TemplateApplyRequest,
    TemplateApplyResponse,
    TemplateResponse,
)
from ..services.schedule_templates import list_templates
from ..services.scheduling_service import SchedulingService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

# No prefix here, added when mounting in main.py
router = APIRouter(tags=["availability"])


# ============================================================================
# Templates
# ============================================================================


@router.get("/templates", response_model=List[TemplateResponse])
async def get_templates() -> List[TemplateResponse]:
    """List the built-in weekly schedule templates and quick blocks."""
    return [TemplateResponse.model_validate(t) for t in list_templates()]


@router.post("/templates/apply", response_model=TemplateApplyResponse)
async def apply_template(
    payload: TemplateApplyRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> TemplateApplyResponse:
    """Create one week of slots from a template; all or nothing."""
    try:
        application = await asyncio.to_thread(
            service.apply_template,
            payload.caregiver_id,
            payload.template_name,
            payload.week_start,
            payload.capacity,
            payload.rate,
            payload.days,
            conflict_policy=payload.conflict_policy,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return TemplateApplyResponse(
        template=application.template.name,
        week_start=application.week_start,
        created=[SlotResponse.model_validate(s) for s in application.created],
        replaced=[SlotResponse.model_validate(s) for s in application.replaced],
        skipped=[SlotResponse.model_validate(s) for s in application.skipped],
    )


# ============================================================================
# Slots
# ============================================================================


@router.post("/slots", response_model=SlotResolutionResponse, status_code=status.HTTP_201_CREATED)
async def create_slot(
    payload: SlotCreate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotResolutionResponse:
    """Create an availability slot, resolving a same-start clash by the given policy."""
    try:
        resolution = await asyncio.to_thread(
            service.create_slot,
            payload.caregiver_id,
            payload.slot_date,
            payload.start_time,
            payload.end_time,
            payload.total_capacity,
            payload.base_rate,
            payload.is_recurring,
            payload.notes,
            conflict_policy=payload.conflict_policy,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return SlotResolutionResponse.model_validate(resolution)


@router.get("/slots", response_model=List[SlotResponse])
async def list_slots(
    caregiver_id: str = Query(..., min_length=1),
    start_date: date = Query(..., description="First date (inclusive)"),
    end_date: date = Query(..., description="Last date (exclusive)"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[SlotResponse]:
    try:
        slots = await asyncio.to_thread(service.list_slots, caregiver_id, start_date, end_date)
    except DomainException as e:
        handle_domain_exception(e)
    return [SlotResponse.model_validate(s) for s in slots]


@router.get("/slots/{slot_id}", response_model=SlotResponse)
async def get_slot(
    slot_id: str = Path(..., pattern=ULID_PATTERN, description="Slot ULID"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotResponse:
    try:
        slot = await asyncio.to_thread(service.get_slot, slot_id)
    except DomainException as e:
        handle_domain_exception(e)
    return SlotResponse.model_validate(slot)


@router.patch("/slots/{slot_id}", response_model=SlotResponse)
async def update_slot(
    payload: SlotUpdate,
    slot_id: str = Path(..., pattern=ULID_PATTERN, description="Slot ULID"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotResponse:
    """Edit rate/notes freely; capacity can't go below current occupancy."""
    try:
        slot = await asyncio.to_thread(
            service.update_slot,
            slot_id,
            total_capacity=payload.total_capacity,
            base_rate=payload.base_rate,
            notes=payload.notes,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return SlotResponse.model_validate(slot)


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: str = Path(..., pattern=ULID_PATTERN, description="Slot ULID"),
    service: SchedulingService = Depends(get_scheduling_service),
) -> Response:
    try:
        await asyncio.to_thread(service.delete_slot, slot_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/days/{slot_date}", response_model=DayClearResponse)
async def clear_day(
    slot_date: date,
    caregiver_id: str = Query(..., min_length=1),
    service: SchedulingService = Depends(get_scheduling_service),
) -> DayClearResponse:
    """Delete every unbooked slot on one day; booked slots are kept and listed."""
    try:
        clearance = await asyncio.to_thread(service.delete_slots_for_day, caregiver_id, slot_date)
    except DomainException as e:
        handle_domain_exception(e)
    return DayClearResponse(
        slot_date=clearance.slot_date,
        deleted_slot_ids=[s.id for s in clearance.deleted],
        kept=[SlotResponse.model_validate(s) for s in clearance.kept],
    )

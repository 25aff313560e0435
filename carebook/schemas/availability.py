# carebook/schemas/availability.py
"""
Availability slot and schedule template schemas.

Range and business checks (start before end, capacity >= 1, rate > 0) are
made by the services so they surface as domain validation errors.
"""

from datetime import date, time
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ..core.enums import ConflictPolicy, DayOfWeek, ResolutionOutcome
from ._strict_base import StrictRequestModel, StrictResponseModel


class SlotCreate(StrictRequestModel):
    """
    Create one availability slot.

    ``conflict_policy`` must be sent, even as ``null``: null means "reject if a
    slot already starts at this time".
    """

    caregiver_id: str = Field(..., min_length=1, max_length=64)
    slot_date: date
    start_time: time
    end_time: time
    total_capacity: Optional[int] = Field(None, description="Places in the slot; default from settings")
    base_rate: Optional[Decimal] = Field(None, description="Hourly rate; default from caregiver profile")
    is_recurring: bool = False
    notes: Optional[str] = Field(None, max_length=1000)
    conflict_policy: Optional[ConflictPolicy] = Field(
        ..., description="REPLACE, SKIP, or null to fail on a duplicate start"
    )


class SlotUpdate(StrictRequestModel):
    """Caregiver edit; omitted fields are left unchanged."""

    total_capacity: Optional[int] = None
    base_rate: Optional[Decimal] = None
    notes: Optional[str] = Field(None, max_length=1000)


class SlotResponse(StrictResponseModel):
    id: str
    caregiver_id: str
    slot_date: date
    start_time: time
    end_time: time
    total_capacity: int
    current_occupancy: int
    available_spots: int
    base_rate: Decimal
    is_recurring: bool
    notes: Optional[str] = None


class SlotResolutionResponse(StrictResponseModel):
    outcome: ResolutionOutcome
    slot: SlotResponse
    replaced_slot_id: Optional[str] = None


class TemplateBlockResponse(StrictResponseModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time


class TemplateResponse(StrictResponseModel):
    name: str
    slug: str
    description: str
    days: List[DayOfWeek]
    blocks: List[TemplateBlockResponse]


class TemplateApplyRequest(StrictRequestModel):
    caregiver_id: str = Field(..., min_length=1, max_length=64)
    template_name: str = Field(..., min_length=1)
    week_start: date = Field(..., description="Monday of the target week")
    capacity: Optional[int] = None
    rate: Optional[Decimal] = None
    days: Optional[List[DayOfWeek]] = Field(None, description="Only expand these days")
    conflict_policy: Optional[ConflictPolicy] = Field(
        ..., description="REPLACE, SKIP, or null to fail on any duplicate start"
    )


class TemplateApplyResponse(StrictResponseModel):
    template: str
    week_start: date
    created: List[SlotResponse]
    replaced: List[SlotResponse]
    skipped: List[SlotResponse]


class DayClearResponse(StrictResponseModel):
    slot_date: date
    deleted_slot_ids: List[str]
    kept: List[SlotResponse] = Field(..., description="Slots left in place because they hold bookings")

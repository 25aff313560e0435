"""Pydantic request/response models for the HTTP API."""

from .availability import (
    DayClearResponse,
    SlotCreate,
    SlotResolutionResponse,
    SlotResponse,
    SlotUpdate,
    TemplateApplyRequest,
    TemplateApplyResponse,
    TemplateResponse,
)
from .booking import BookingCreate, BookingResponse, BookingTransitionRequest

__all__ = [
    "DayClearResponse",
    "BookingCreate",
    "BookingResponse",
    "BookingTransitionRequest",
    "SlotCreate",
    "SlotResolutionResponse",
    "SlotResponse",
    "SlotUpdate",
    "TemplateApplyRequest",
    "TemplateApplyResponse",
    "TemplateResponse",
]

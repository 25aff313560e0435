# carebook/core/exceptions.py
"""
Domain-specific exceptions for the CareBook scheduling core.

These exceptions carry business-focused messages plus a machine readable
code and details, and know how to render themselves as HTTP errors at the
API layer. None of the domain errors are retried automatically: each one
describes a real business or concurrency conflict the caller must resolve.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import OperationalError


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is malformed (bad time range, non-positive capacity or rate)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a referenced slot or booking does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when a request conflicts with current state."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """Raised when a service operation fails for infrastructure reasons."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific scheduling exceptions


class DuplicateSlotError(ConflictException):
    """A slot already starts at the same instant and no conflict policy was given."""

    def __init__(self, conflicting_slot_id: str, *, details: Optional[Dict[str, Any]] = None):
        payload = {"conflicting_slot_id": conflicting_slot_id}
        payload.update(details or {})
        super().__init__(
            message=(
                "An availability slot already exists at this start time. "
                "Resubmit with conflict policy REPLACE or SKIP."
            ),
            code="DUPLICATE_SLOT",
            details=payload,
        )
        self.conflicting_slot_id = conflicting_slot_id


class OccupiedSlotConflict(ConflictException):
    """A replace was requested against a slot that still holds bookings."""

    def __init__(self, slot_id: str, current_occupancy: int):
        super().__init__(
            message="Cannot replace a slot that has active bookings",
            code="OCCUPIED_SLOT_CONFLICT",
            details={"slot_id": slot_id, "current_occupancy": current_occupancy},
        )
        self.slot_id = slot_id


class CapacityInUseError(ConflictException):
    """Delete or capacity shrink attempted on an occupied slot."""

    def __init__(
        self,
        slot_id: str,
        current_occupancy: int,
        requested_capacity: Optional[int] = None,
    ):
        details: Dict[str, Any] = {"slot_id": slot_id, "current_occupancy": current_occupancy}
        if requested_capacity is not None:
            details["requested_capacity"] = requested_capacity
            message = (
                f"Capacity cannot be lowered to {requested_capacity}: "
                f"{current_occupancy} spot(s) are booked"
            )
        else:
            message = "Cannot delete a slot with existing bookings"
        super().__init__(message=message, code="CAPACITY_IN_USE", details=details)
        self.slot_id = slot_id


class SlotFullError(ConflictException):
    """Capacity was exhausted at reservation time."""

    def __init__(self, slot_id: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        payload: Dict[str, Any] = {}
        if slot_id is not None:
            payload["slot_id"] = slot_id
        payload.update(details or {})
        super().__init__(
            message="This time slot is fully booked",
            code="SLOT_FULL",
            details=payload,
        )
        self.slot_id = slot_id


class InvalidTransitionError(ConflictException):
    """A lifecycle event is not valid from the booking's current status."""

    def __init__(self, booking_id: str, current_status: str, event: str, reason: Optional[str] = None):
        message = f"Cannot apply '{event}' to a booking in status {current_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="INVALID_TRANSITION",
            details={"booking_id": booking_id, "current_status": current_status, "event": event},
        )
        self.booking_id = booking_id
        self.current_status = current_status
        self.event = event


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


class LockContentionException(RepositoryException):
    """The database refused a write because another transaction holds the lock."""


class IntegrityConstraintException(RepositoryException):
    """A write violated a unique or check constraint."""


def is_lock_contention(exc: Exception) -> bool:
    """
    Check if an exception means the write lost a lock race and may be retried.

    Covers SQLite's "database is locked" / "database table is locked" and
    Postgres deadlock (40P01), serialization (40001) and lock timeout (55P03).
    """
    if isinstance(exc, LockContentionException):
        return True
    if not isinstance(exc, OperationalError):
        return False
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in {"40P01", "40001", "55P03"}:
        return True
    message = str(exc).lower()
    return "database is locked" in message or "table is locked" in message or "deadlock detected" in message

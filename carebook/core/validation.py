# carebook/core/validation.py
"""Field validation shared by slot creation, updates and template expansion."""

from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .constants import CENTS
from .exceptions import ValidationException

TimeLike = Union[time, datetime]
RateLike = Union[Decimal, int, float, str]


def normalize_time(value: TimeLike) -> time:
    """Keep only the wall-clock part of a datetime; the slot's date wins."""
    if isinstance(value, datetime):
        return value.time().replace(tzinfo=None)
    return value.replace(tzinfo=None)


def to_money(value: RateLike, field: str = "base_rate") -> Decimal:
    """Parse a rate into a Decimal rounded to cents."""
    try:
        amount = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as e:
        raise ValidationException(
            f"{field} must be a number", code="INVALID_RATE", details={field: str(value)}
        ) from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationException(
            f"{field} must be greater than zero",
            code="INVALID_RATE",
            details={field: str(value)},
        )
    return amount


def validate_window(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise ValidationException(
            "Start time must be before end time",
            code="INVALID_TIME_RANGE",
            details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )


def validate_capacity(total_capacity: int) -> None:
    if isinstance(total_capacity, bool) or not isinstance(total_capacity, int) or total_capacity < 1:
        raise ValidationException(
            "Capacity must be a whole number of at least 1",
            code="INVALID_CAPACITY",
            details={"total_capacity": total_capacity},
        )


def round_money(value: Decimal) -> Decimal:
    """Round half-up to cents."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)

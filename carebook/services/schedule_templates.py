# carebook/services/schedule_templates.py
"""
Schedule Template Engine for the CareBook scheduling core.

Pure expansion of named weekly templates into concrete candidate slots for
one week. Nothing here touches the database or checks for conflicts; the
candidates go through the conflict resolver like any manual slot.
"""

from dataclasses import dataclass
from datetime import date, time, timedelta
from decimal import Decimal
import re
from typing import Iterable, List, Optional, Tuple, Union

from ..core.constants import ALL_DAYS, WEEKDAYS, WEEKEND
from ..core.enums import DayOfWeek
from ..core.exceptions import NotFoundException, ValidationException
from ..core.validation import RateLike, to_money, validate_capacity, validate_window


@dataclass(frozen=True)
class TemplateBlock:
    day_of_week: DayOfWeek
    start_time: time
    end_time: time


@dataclass(frozen=True)
class ScheduleTemplate:
    name: str
    description: str
    blocks: Tuple[TemplateBlock, ...]

    @property
    def slug(self) -> str:
        return _slugify(self.name)

    @property
    def days(self) -> List[DayOfWeek]:
        seen = {block.day_of_week for block in self.blocks}
        return [day for day in DayOfWeek if day in seen]


@dataclass(frozen=True)
class CandidateSlot:
    """A slot ready to be resolved and stored; has no caregiver yet."""

    slot_date: date
    start_time: time
    end_time: time
    total_capacity: int
    base_rate: Decimal
    is_recurring: bool
    notes: str


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _daily(
    name: str, description: str, days: Iterable[DayOfWeek], start: time, end: time
) -> ScheduleTemplate:
    ordered = [day for day in DayOfWeek if day in set(days)]
    return ScheduleTemplate(
        name=name,
        description=description,
        blocks=tuple(TemplateBlock(day, start, end) for day in ordered),
    )


BUILT_IN_TEMPLATES: Tuple[ScheduleTemplate, ...] = (
    _daily("Traditional Work Week", "Monday to Friday, 9 AM - 5 PM", WEEKDAYS, time(9), time(17)),
    _daily("Extended Weekdays", "Monday to Friday, 7 AM - 7 PM", WEEKDAYS, time(7), time(19)),
    _daily("Weekend Specialist", "Saturday & Sunday, 8 AM - 6 PM", WEEKEND, time(8), time(18)),
    _daily("Full Week Coverage", "All days, 8 AM - 6 PM", ALL_DAYS, time(8), time(18)),
    _daily("Early Bird", "Weekdays, 6 AM - 2 PM", WEEKDAYS, time(6), time(14)),
    _daily("Evening Care", "Weekdays, 3 PM - 9 PM", WEEKDAYS, time(15), time(21)),
    # Quick blocks
    _daily("Morning Hours", "8 AM - 12 PM", ALL_DAYS, time(8), time(12)),
    _daily("Afternoon Hours", "1 PM - 5 PM", ALL_DAYS, time(13), time(17)),
    _daily("Full Day", "8 AM - 6 PM", ALL_DAYS, time(8), time(18)),
    _daily("Evening Hours", "5 PM - 9 PM", ALL_DAYS, time(17), time(21)),
)


def list_templates() -> List[ScheduleTemplate]:
    return list(BUILT_IN_TEMPLATES)


def get_template(name: str) -> ScheduleTemplate:
    """Look a template up by display name or slug, ignoring case."""
    wanted = _slugify(name)
    for template in BUILT_IN_TEMPLATES:
        if template.slug == wanted:
            return template
    raise NotFoundException(
        f"Unknown schedule template: {name}",
        code="TEMPLATE_NOT_FOUND",
        details={"available": [t.name for t in BUILT_IN_TEMPLATES]},
    )


def parse_days(days: Optional[Iterable[Union[DayOfWeek, str]]]) -> Optional[frozenset]:
    if days is None:
        return None
    parsed = set()
    for day in days:
        if isinstance(day, DayOfWeek):
            parsed.add(day)
            continue
        try:
            parsed.add(DayOfWeek(str(day).strip().capitalize()))
        except ValueError as e:
            raise ValidationException(
                f"Unknown day of week: {day}", code="INVALID_DAY", details={"day": str(day)}
            ) from e
    return frozenset(parsed)


def expand(
    template: Union[ScheduleTemplate, str],
    week_start: date,
    capacity: int,
    rate: RateLike,
    days: Optional[Iterable[Union[DayOfWeek, str]]] = None,
) -> List[CandidateSlot]:
    """
    Turn a template into candidate slots for the week starting ``week_start``.

    Args:
        template: a ScheduleTemplate or the name of a built-in one
        week_start: the Monday of the target week
        capacity: places per slot (>= 1)
        rate: hourly rate (> 0)
        days: optional filter, e.g. ``WEEKDAYS``; blocks on other days are
            dropped before expansion

    Returns:
        Candidates ordered by date, then start time

    Raises:
        ValidationException: week_start is not a Monday, or bad capacity/rate
        NotFoundException: unknown template name
    """
    if isinstance(template, str):
        template = get_template(template)
    if week_start.weekday() != 0:
        raise ValidationException(
            "week_start must be a Monday",
            code="INVALID_WEEK_START",
            details={"week_start": week_start.isoformat()},
        )
    validate_capacity(capacity)
    base_rate = to_money(rate)
    day_filter = parse_days(days)

    candidates = []
    for block in template.blocks:
        if day_filter is not None and block.day_of_week not in day_filter:
            continue
        validate_window(block.start_time, block.end_time)
        candidates.append(
            CandidateSlot(
                slot_date=week_start + timedelta(days=block.day_of_week.offset),
                start_time=block.start_time,
                end_time=block.end_time,
                total_capacity=capacity,
                base_rate=base_rate,
                is_recurring=True,
                notes=f"{template.name} availability",
            )
        )
    candidates.sort(key=lambda c: (c.slot_date, c.start_time))
    return candidates

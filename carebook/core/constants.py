"""Application-wide constants for the CareBook scheduling core."""

from decimal import Decimal

from .enums import DayOfWeek

# Money is kept to cents
CENTS = Decimal("0.01")

# Day groups used to filter schedule templates before expansion
WEEKDAYS = frozenset(
    {
        DayOfWeek.MONDAY,
        DayOfWeek.TUESDAY,
        DayOfWeek.WEDNESDAY,
        DayOfWeek.THURSDAY,
        DayOfWeek.FRIDAY,
    }
)
WEEKEND = frozenset({DayOfWeek.SATURDAY, DayOfWeek.SUNDAY})
ALL_DAYS = frozenset(DayOfWeek)

# Query limits
DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 1000

# Upper bound on how far apart list_slots dates may be
MAX_LIST_RANGE_DAYS = 366

"""Tests for the pure schedule template engine."""

from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from carebook.core.constants import WEEKDAYS, WEEKEND
from carebook.core.enums import DayOfWeek
from carebook.core.exceptions import NotFoundException, ValidationException
from carebook.services.schedule_templates import (
    ScheduleTemplate,
    TemplateBlock,
    expand,
    get_template,
    list_templates,
)

from tests.helpers import WEEK_START


class TestTemplateCatalog:
    def test_built_in_templates_are_listed(self):
        names = [t.name for t in list_templates()]
        assert names == [
            "Traditional Work Week",
            "Extended Weekdays",
            "Weekend Specialist",
            "Full Week Coverage",
            "Early Bird",
            "Evening Care",
            "Morning Hours",
            "Afternoon Hours",
            "Full Day",
            "Evening Hours",
        ]

    @pytest.mark.parametrize(
        "lookup", ["Traditional Work Week", "traditional work week", "traditional-work-week"]
    )
    def test_lookup_by_name_or_slug(self, lookup):
        assert get_template(lookup).name == "Traditional Work Week"

    def test_unknown_template(self):
        with pytest.raises(NotFoundException) as exc_info:
            get_template("Night Owl")
        assert exc_info.value.code == "TEMPLATE_NOT_FOUND"

    def test_weekend_specialist_days(self):
        template = get_template("Weekend Specialist")
        assert template.days == [DayOfWeek.SATURDAY, DayOfWeek.SUNDAY]
        assert {(b.start_time, b.end_time) for b in template.blocks} == {(time(8), time(18))}


class TestExpand:
    def test_traditional_work_week_expands_monday_to_friday(self):
        candidates = expand("Traditional Work Week", WEEK_START, 3, Decimal("20"))

        assert [c.slot_date for c in candidates] == [WEEK_START + timedelta(days=i) for i in range(5)]
        for candidate in candidates:
            assert candidate.start_time == time(9)
            assert candidate.end_time == time(17)
            assert candidate.total_capacity == 3
            assert candidate.base_rate == Decimal("20.00")
            assert candidate.is_recurring is True
            assert candidate.notes == "Traditional Work Week availability"

    def test_full_week_with_weekend_filter(self):
        candidates = expand("Full Week Coverage", WEEK_START, 2, "18.5", days=WEEKEND)

        assert [c.slot_date.weekday() for c in candidates] == [5, 6]
        assert all(c.base_rate == Decimal("18.50") for c in candidates)

    def test_filter_accepts_day_names(self):
        candidates = expand("Morning Hours", WEEK_START, 1, 15, days=["monday", "Wednesday"])
        assert [c.slot_date for c in candidates] == [WEEK_START, WEEK_START + timedelta(days=2)]

    def test_filter_with_no_overlap_yields_nothing(self):
        assert expand("Weekend Specialist", WEEK_START, 1, 15, days=WEEKDAYS) == []

    def test_week_start_must_be_monday(self):
        with pytest.raises(ValidationException) as exc_info:
            expand("Early Bird", WEEK_START + timedelta(days=1), 1, 15)
        assert exc_info.value.code == "INVALID_WEEK_START"

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_must_be_positive(self, capacity):
        with pytest.raises(ValidationException):
            expand("Early Bird", WEEK_START, capacity, 15)

    @pytest.mark.parametrize("rate", [0, "-5", "abc"])
    def test_rate_must_be_positive_number(self, rate):
        with pytest.raises(ValidationException):
            expand("Early Bird", WEEK_START, 1, rate)

    def test_unknown_day_in_filter(self):
        with pytest.raises(ValidationException):
            expand("Early Bird", WEEK_START, 1, 15, days=["Funday"])

    def test_custom_template_output_is_sorted(self):
        template = ScheduleTemplate(
            name="Split Shift",
            description="Tuesday afternoon before Monday morning",
            blocks=(
                TemplateBlock(DayOfWeek.TUESDAY, time(13), time(17)),
                TemplateBlock(DayOfWeek.MONDAY, time(13), time(17)),
                TemplateBlock(DayOfWeek.MONDAY, time(8), time(12)),
            ),
        )
        candidates = expand(template, WEEK_START, 1, 10)

        assert [(c.slot_date, c.start_time) for c in candidates] == [
            (WEEK_START, time(8)),
            (WEEK_START, time(13)),
            (WEEK_START + timedelta(days=1), time(13)),
        ]
        assert candidates[0].notes == "Split Shift availability"

    def test_expansion_is_pure(self):
        first = expand("Evening Care", date(2030, 6, 10), 4, 30)
        second = expand("Evening Care", date(2030, 6, 10), 4, 30)
        assert first == second

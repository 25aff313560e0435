"""Tests for the routers' shared domain error translation."""

from fastapi import HTTPException
import pytest

from carebook.core.exceptions import CapacityInUseError, NotFoundException
from carebook.routes.errors import handle_domain_exception


def test_domain_exception_becomes_http_exception():
    original = NotFoundException("Slot x not found", code="SLOT_NOT_FOUND")

    with pytest.raises(HTTPException) as exc_info:
        handle_domain_exception(original)

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail["code"] == "SLOT_NOT_FOUND"
    assert exc_info.value.__cause__ is original


def test_details_are_kept():
    with pytest.raises(HTTPException) as exc_info:
        handle_domain_exception(CapacityInUseError("slot-1", 2))

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail["details"]["current_occupancy"] == 2

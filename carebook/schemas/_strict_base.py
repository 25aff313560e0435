"""Strict schema baselines with forbidden extras by default."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Neutral strict base for DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""


class StrictResponseModel(StrictModel):
    """Response DTO base that can be built straight from ORM objects."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, from_attributes=True)

"""Shared Pydantic base models."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so comparisons never mix offsets."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class StrictBaseModel(BaseModel):
    """Base model with strict, immutable defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class MutableModel(BaseModel):
    """Base model for aggregates that are mutated in place and persisted.

    Assignments are validated so in-place updates cannot break field
    constraints.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

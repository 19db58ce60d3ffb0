"""Tank reading model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aquasense._constants import CAPACITY_UNIT, PERCENT_MAX, PERCENT_MIN


def _utcnow() -> datetime:
    return datetime.now(UTC)


def clamp_percentage(value: float) -> float:
    """Hard-clamp *value* into ``[0, 100]``."""
    return max(PERCENT_MIN, min(PERCENT_MAX, value))


def level_for_percentage(percentage: float, capacity_unit: float = CAPACITY_UNIT) -> float:
    """Empty space left in the tank for a given fill percentage.

    Rounded to micro-units so the level carries no float residue on the wire.
    """
    return round(capacity_unit * (PERCENT_MAX - percentage) / PERCENT_MAX, 6)


class Reading(BaseModel):
    """One sampled or simulated tank measurement.

    Parameters
    ----------
    level : float
        Empty space above the liquid, in capacity units.
    percentage : float
        Fill percentage in ``[0, 100]``.
    timestamp : datetime
        UTC time the reading was taken.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    level: float = Field(..., ge=0)
    percentage: float = Field(..., ge=PERCENT_MIN, le=PERCENT_MAX)
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_percentage(
        cls,
        percentage: float,
        *,
        capacity_unit: float = CAPACITY_UNIT,
        timestamp: datetime | None = None,
    ) -> Reading:
        """Build a reading whose level is the complement of *percentage*."""
        pct = round(clamp_percentage(percentage), 1)
        level = max(0.0, level_for_percentage(pct, capacity_unit))
        if timestamp is None:
            return cls(level=level, percentage=pct)
        return cls(level=level, percentage=pct, timestamp=timestamp)

    @classmethod
    def empty(cls, *, capacity_unit: float = CAPACITY_UNIT) -> Reading:
        """The reading broadcast after a reset: full level, zero percent."""
        return cls.from_percentage(PERCENT_MIN, capacity_unit=capacity_unit)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict as sent over the push channel and REST API."""
        return self.model_dump(mode="json")

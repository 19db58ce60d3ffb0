"""Push channel message envelope."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from aquasense._constants import (
    CHANNEL_EVENTS,
    EVENT_HISTORY_DATA,
    EVENT_MOTOR_UPDATE,
    EVENT_NEW_READING,
)
from aquasense.exceptions import MalformedCommandError
from aquasense.models.reading import Reading


class ChannelMessage(BaseModel):
    """A named event sent to observers: ``{"event": ..., "data": ...}``."""

    model_config = ConfigDict(frozen=True)

    event: str
    data: Any = Field(default=None)

    @field_validator("event")
    @classmethod
    def _known_event(cls, value: str) -> str:
        if value not in CHANNEL_EVENTS:
            raise ValueError(f"unknown channel event {value!r}")
        return value

    @classmethod
    def new_reading(cls, reading: Reading) -> ChannelMessage:
        return cls(event=EVENT_NEW_READING, data=reading.to_wire())

    @classmethod
    def motor_update(cls, motor_on: bool) -> ChannelMessage:
        return cls(event=EVENT_MOTOR_UPDATE, data=motor_on)

    @classmethod
    def history_data(cls, readings: list[Reading]) -> ChannelMessage:
        return cls(event=EVENT_HISTORY_DATA, data=[r.to_wire() for r in readings])

    def to_json(self) -> str:
        return json.dumps({"event": self.event, "data": self.data}, separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str) -> ChannelMessage:
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise MalformedCommandError(f"Invalid channel message: {text[:200]}", payload=text) from exc

    def reading(self) -> Reading:
        """Parse ``data`` of a ``new_reading`` message."""
        return Reading.model_validate(self.data)

    def readings(self) -> list[Reading]:
        """Parse ``data`` of a ``history_data`` message."""
        if not isinstance(self.data, list):
            raise MalformedCommandError("history_data payload must be a list", payload=self.data)
        return [Reading.model_validate(item) for item in self.data]

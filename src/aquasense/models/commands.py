"""Inbound command payloads validated at the API boundary.

The core assumes numeric, in-range inputs. Everything arriving from HTTP
or MQTT is parsed here first; failures become
:class:`~aquasense.exceptions.MalformedCommandError`.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from aquasense._constants import PERCENT_MAX, PERCENT_MIN
from aquasense.exceptions import MalformedCommandError

_M = TypeVar("_M", bound=BaseModel)


class ReadingCommand(BaseModel):
    """Sensor reading as posted by a device."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    level: float = Field(..., ge=0, allow_inf_nan=False)
    percentage: float = Field(..., ge=PERCENT_MIN, le=PERCENT_MAX, allow_inf_nan=False)


class MotorCommand(BaseModel):
    """Operator request to switch the fill motor."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    state: StrictBool


def parse_command(model: type[_M], payload: Any) -> _M:
    """Validate *payload* into *model* or raise ``MalformedCommandError``."""
    if not isinstance(payload, dict):
        raise MalformedCommandError(f"{model.__name__} payload must be a JSON object", payload=payload)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        raise MalformedCommandError(f"Invalid {model.__name__}: {errors}", payload=payload) from exc

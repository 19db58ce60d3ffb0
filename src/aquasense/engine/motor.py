"""Fill motor state."""

from __future__ import annotations

import logging

from aquasense._constants import PERCENT_MAX

_logger = logging.getLogger(__name__)


class MotorController:
    """Single authoritative on/off flag for the fill motor.

    Off → On happens only through :meth:`set_motor`. On → Off happens
    through :meth:`set_motor`, :meth:`evaluate_auto_cutoff` or
    :meth:`reset`. Broadcasting the change is the caller's job.
    """

    def __init__(self, *, on: bool = False) -> None:
        self._on = on

    @property
    def is_on(self) -> bool:
        return self._on

    def set_motor(self, desired: bool) -> bool:
        """Operator override; returns the new state."""
        self._on = bool(desired)
        return self._on

    def evaluate_auto_cutoff(self, percentage: float) -> bool:
        """Force the motor off once the tank is full.

        Returns ``True`` only when this call switched the motor off.
        """
        if percentage >= PERCENT_MAX and self._on:
            self._on = False
            _logger.info("Tank full (%.1f%%); motor cut off", percentage)
            return True
        return False

    def reset(self) -> None:
        self._on = False

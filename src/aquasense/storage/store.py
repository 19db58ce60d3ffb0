"""Bounded reading store with silent durable → volatile degradation.

The store starts on the durable tier when one is given. The first failure
of that tier (write, read, or purge) moves the store onto the volatile
tier for the rest of the process; it never moves back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from aquasense._constants import HISTORY_LIMIT, MEMORY_CAPACITY
from aquasense.models.reading import Reading
from aquasense.storage.backends import DurableBackend, MemoryBackend

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReadingStore:
    """Ordered, bounded history of readings.

    Readings are appended in arrival order and evicted oldest first.
    """

    def __init__(
        self,
        durable: DurableBackend | None = None,
        *,
        memory_capacity: int = MEMORY_CAPACITY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._durable = durable
        self._memory = MemoryBackend(memory_capacity)
        self._clock = clock

    @property
    def degraded(self) -> bool:
        """Whether the store runs on the volatile tier."""
        return self._durable is None

    @property
    def mode(self) -> str:
        return "volatile" if self.degraded else "durable"

    def _degrade(self, action: str, exc: BaseException) -> None:
        _logger.warning(
            "Durable storage %s failed (%s); continuing on volatile storage until restart",
            action,
            exc,
            exc_info=_logger.isEnabledFor(logging.DEBUG),
        )
        self._durable = None

    def append(self, level: float, percentage: float) -> Reading:
        """Timestamp and store a reading; never raises on storage failure."""
        reading = Reading(level=level, percentage=percentage, timestamp=self._clock())
        self.add(reading)
        return reading

    def add(self, reading: Reading) -> None:
        """Store an already-built reading."""
        durable = self._durable
        if durable is not None:
            try:
                durable.append(reading)
                return
            except Exception as exc:
                self._degrade("write", exc)
        self._memory.append(reading)

    def record_simulated(self, reading: Reading) -> bool:
        """Keep a simulated reading, volatile tier only.

        Simulated points never reach durable storage. Returns ``True`` when
        the reading was kept.
        """
        if not self.degraded:
            return False
        self._memory.append(reading)
        return True

    def recent(self, n: int = HISTORY_LIMIT) -> list[Reading]:
        """Newest *n* readings, oldest first."""
        if n <= 0:
            return []
        durable = self._durable
        if durable is not None:
            try:
                newest_first = durable.query_recent(n)
            except Exception as exc:
                self._degrade("read", exc)
            else:
                return list(reversed(newest_first))
        return list(reversed(self._memory.query_recent(n)))

    def clear(self) -> None:
        """Empty both tiers."""
        self._memory.clear()
        durable = self._durable
        if durable is not None:
            try:
                durable.clear()
            except Exception as exc:
                self._degrade("purge", exc)

    def close(self) -> None:
        close = getattr(self._durable, "close", None)
        if callable(close):
            close()

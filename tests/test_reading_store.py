from __future__ import annotations

from pathlib import Path

from aquasense.exceptions import StorageUnavailableError
from aquasense.models.reading import Reading
from aquasense.storage.backends import MemoryBackend, SqliteBackend
from aquasense.storage.store import ReadingStore

from _fakes import SteppingUtcClock


class _FlakyBackend:
    """Durable backend that works until told to fail."""

    def __init__(self) -> None:
        self.inner = MemoryBackend(500)
        self.fail = False
        self.appends = 0

    def append(self, reading: Reading) -> None:
        if self.fail:
            raise StorageUnavailableError("database gone")
        self.appends += 1
        self.inner.append(reading)

    def query_recent(self, limit: int) -> list[Reading]:
        if self.fail:
            raise StorageUnavailableError("database gone")
        return self.inner.query_recent(limit)

    def clear(self) -> None:
        self.inner.clear()


def test_volatile_store_evicts_oldest_first() -> None:
    store = ReadingStore(memory_capacity=3, clock=SteppingUtcClock())

    for pct in (10.0, 20.0, 30.0, 40.0, 50.0):
        store.append(100 - pct, pct)

    assert [r.percentage for r in store.recent(10)] == [30.0, 40.0, 50.0]


def test_recent_returns_newest_n_oldest_first() -> None:
    store = ReadingStore(MemoryBackend(50), clock=SteppingUtcClock())
    for pct in range(10):
        store.append(100.0 - pct, float(pct))

    recent = store.recent(3)

    assert [r.percentage for r in recent] == [7.0, 8.0, 9.0]
    assert recent[0].timestamp < recent[1].timestamp < recent[2].timestamp


def test_six_hundred_readings_keep_last_five_hundred_in_order(tmp_path: Path) -> None:
    backend = SqliteBackend(str(tmp_path / "readings.db"), capacity=500)
    store = ReadingStore(backend, clock=SteppingUtcClock())

    for i in range(600):
        store.append(level=float(i % 100), percentage=float(i % 101))

    history = store.recent(500)
    assert len(history) == 500
    assert store.recent(1000) == history
    # Readings 0..99 were evicted.
    assert history[0].percentage == float(100 % 101)
    timestamps = [r.timestamp for r in history]
    assert timestamps == sorted(timestamps)
    assert not store.degraded
    backend.close()


def test_length_never_exceeds_capacity() -> None:
    store = ReadingStore(MemoryBackend(25), clock=SteppingUtcClock())
    for i in range(80):
        store.append(50.0, 50.0)
        assert len(store.recent(1000)) == min(i + 1, 25)


def test_write_failure_degrades_silently_and_keeps_reading() -> None:
    backend = _FlakyBackend()
    store = ReadingStore(backend, memory_capacity=50, clock=SteppingUtcClock())
    store.append(90.0, 10.0)

    backend.fail = True
    reading = store.append(80.0, 20.0)

    assert store.degraded
    assert store.mode == "volatile"
    assert store.recent(10) == [reading]


def test_no_repromotion_after_backend_recovers() -> None:
    backend = _FlakyBackend()
    backend.fail = True
    store = ReadingStore(backend, clock=SteppingUtcClock())
    store.append(80.0, 20.0)

    backend.fail = False
    store.append(70.0, 30.0)

    assert store.degraded
    assert backend.appends == 0


def test_read_failure_degrades_to_volatile() -> None:
    backend = _FlakyBackend()
    store = ReadingStore(backend, clock=SteppingUtcClock())
    store.append(80.0, 20.0)

    backend.fail = True
    assert store.recent(10) == []
    assert store.degraded


def test_unopenable_database_degrades(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    store = ReadingStore(SqliteBackend(str(blocker / "readings.db")), clock=SteppingUtcClock())

    reading = store.append(60.0, 40.0)

    assert store.degraded
    assert store.recent(5) == [reading]


def test_simulated_readings_only_kept_on_volatile_tier() -> None:
    backend = _FlakyBackend()
    store = ReadingStore(backend, clock=SteppingUtcClock())
    simulated = Reading.from_percentage(12.0)

    assert store.record_simulated(simulated) is False
    assert store.recent(10) == []

    degraded = ReadingStore(None)
    assert degraded.record_simulated(simulated) is True
    assert degraded.recent(10) == [simulated]


def test_clear_empties_both_tiers(tmp_path: Path) -> None:
    backend = SqliteBackend(str(tmp_path / "readings.db"))
    store = ReadingStore(backend, clock=SteppingUtcClock())
    store.append(50.0, 50.0)

    store.clear()

    assert store.recent(10) == []
    assert backend.query_recent(10) == []
    backend.close()

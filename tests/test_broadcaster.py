from __future__ import annotations

from aquasense.config import AquaSenseConfig
from aquasense.engine.broadcaster import ReconciliationBroadcaster
from aquasense.engine.context import TankContext
from aquasense.models.messages import ChannelMessage
from aquasense.storage.backends import MemoryBackend
from aquasense.storage.store import ReadingStore

from _fakes import FakeMonotonic, RecordingObserver, SteppingUtcClock


def _broadcaster(
    clock: FakeMonotonic,
    *,
    durable_capacity: int = 500,
    history_limit: int = 50,
) -> ReconciliationBroadcaster:
    config = AquaSenseConfig(history_limit=history_limit)
    store = ReadingStore(MemoryBackend(durable_capacity), clock=SteppingUtcClock())
    return ReconciliationBroadcaster(TankContext.from_config(config, store=store, clock=clock))


class _BrokenObserver:
    def deliver(self, message: ChannelMessage) -> None:
        raise ConnectionResetError("gone")


def test_attach_replays_motor_state_and_history(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.on_real_reading(80.0, 20.0)
    b.on_real_reading(70.0, 30.0)
    b.on_motor_command(True)

    b.attach(observer)

    assert observer.events() == ["motor_update", "history_data"]
    assert observer.messages[0].data is True
    assert [r.percentage for r in observer.messages[1].readings()] == [20.0, 30.0]


def test_attach_replay_is_one_time(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.attach(observer)
    observer.clear()

    b.on_real_reading(80.0, 20.0)

    assert observer.events() == ["new_reading"]


def test_real_reading_persists_and_broadcasts(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.attach(observer)
    observer.clear()

    reading = b.on_real_reading(55.0, 45.0)

    assert b.history() == [reading]
    assert observer.events() == ["new_reading"]
    assert observer.messages[0].reading() == reading


def test_real_full_reading_cuts_motor_off(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.on_motor_command(True)
    b.attach(observer)
    observer.clear()

    b.on_real_reading(0.0, 100.0)

    assert b.motor_on is False
    assert observer.events() == ["motor_update", "new_reading"]
    assert observer.messages[0].data is False


def test_real_data_precedence_over_simulation(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.on_motor_command(True)
    b.attach(observer)
    b.on_real_reading(60.0, 40.0)
    observer.clear()

    for _ in range(5):
        monotonic.advance(0.5)
        assert b.on_simulated_tick() is None
    monotonic.advance(0.5)
    b.on_real_reading(58.0, 42.0)
    monotonic.advance(2.9)
    assert b.on_simulated_tick() is None

    assert observer.events() == ["new_reading"]


def test_stale_tick_simulates_from_last_real_reading(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.on_motor_command(True)
    b.on_real_reading(60.0, 40.0)
    b.attach(observer)
    observer.clear()

    monotonic.advance(3.5)
    reading = b.on_simulated_tick()

    assert reading is not None
    assert reading.percentage == 42.0
    assert reading.level == 58.0
    assert observer.events() == ["new_reading"]


def test_simulated_tick_98_to_full_is_last_until_operator_command(
    monotonic: FakeMonotonic, observer: RecordingObserver
) -> None:
    b = _broadcaster(monotonic)
    b.context.simulation.seed(98.0)
    b.on_motor_command(True)
    b.attach(observer)
    observer.clear()

    reading = b.on_simulated_tick()

    assert reading is not None
    assert reading.percentage == 100.0
    assert reading.level == 0.0
    assert b.motor_on is False
    assert observer.events() == ["motor_update", "new_reading"]

    observer.clear()
    for _ in range(10):
        assert b.on_simulated_tick() is None
    assert observer.messages == []

    b.on_motor_command(False)
    assert b.on_simulated_tick() is not None


def test_simulation_from_99_cuts_off_exactly_once(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.context.simulation.seed(99.0)
    b.on_motor_command(True)
    b.attach(observer)
    observer.clear()

    for _ in range(10):
        b.on_simulated_tick()

    cutoffs = [m for m in observer.messages if m.event == "motor_update"]
    readings = [m.reading() for m in observer.messages if m.event == "new_reading"]
    assert len(cutoffs) == 1
    assert readings[-1].percentage == 100.0
    assert all(r.percentage <= 100.0 for r in readings)


def test_motor_command_broadcasts_unconditionally(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.attach(observer)
    observer.clear()

    b.on_motor_command(False)
    b.on_motor_command(False)

    assert observer.events() == ["motor_update", "motor_update"]


def test_reset_broadcasts_motor_off_zero_reading_and_empty_history(
    monotonic: FakeMonotonic, observer: RecordingObserver
) -> None:
    b = _broadcaster(monotonic)
    b.on_motor_command(True)
    b.on_real_reading(30.0, 70.0)
    b.attach(observer)
    observer.clear()

    b.on_reset()

    assert observer.events() == ["motor_update", "new_reading", "history_data"]
    assert observer.messages[0].data is False
    zero = observer.messages[1].reading()
    assert zero.percentage == 0.0
    assert zero.level == 100.0
    assert observer.messages[2].data == []
    assert b.motor_on is False
    assert b.history() == []
    assert b.context.simulation.percentage == 0.0


def test_six_hundred_real_readings_history_is_last_five_hundred(monotonic: FakeMonotonic) -> None:
    b = _broadcaster(monotonic, durable_capacity=500, history_limit=500)

    for i in range(600):
        b.on_real_reading(50.0, float(i % 100))

    history = b.history()
    assert len(history) == 500
    assert [r.percentage for r in history[:3]] == [0.0, 1.0, 2.0]
    assert [r.timestamp for r in history] == sorted(r.timestamp for r in history)


def test_served_history_slice_defaults_to_fifty(monotonic: FakeMonotonic) -> None:
    b = _broadcaster(monotonic)
    for i in range(80):
        b.on_real_reading(50.0, float(i))

    history = b.history()

    assert len(history) == 50
    assert history[0].percentage == 30.0
    assert history[-1].percentage == 79.0


def test_failing_observer_is_detached(monotonic: FakeMonotonic, observer: RecordingObserver) -> None:
    b = _broadcaster(monotonic)
    b.attach(observer)
    b.attach(_BrokenObserver())

    assert b.observer_count == 1
    b.on_real_reading(50.0, 50.0)
    assert observer.events()[-1] == "new_reading"


def test_simulated_points_recorded_only_when_degraded(monotonic: FakeMonotonic) -> None:
    config = AquaSenseConfig()
    b = ReconciliationBroadcaster(TankContext.from_config(config, clock=monotonic))
    assert b.context.store.degraded

    b.on_motor_command(True)
    b.on_simulated_tick()
    b.on_simulated_tick()

    assert [r.percentage for r in b.history()] == [2.0, 4.0]

from __future__ import annotations

import pytest

from _fakes import FakeMonotonic, RecordingObserver


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()

"""Reading storage.

``ReadingStore`` is the only component that decides which tier a reading
lands in; backends just persist what they are given.
"""

from aquasense.storage.backends import DurableBackend, MemoryBackend, SqliteBackend
from aquasense.storage.store import ReadingStore

__all__ = ["DurableBackend", "MemoryBackend", "ReadingStore", "SqliteBackend"]

"""Custom exception hierarchy for aquasense."""

from __future__ import annotations


class AquaSenseError(Exception):
    """Base exception for all aquasense errors."""


class AquaSenseConfigError(AquaSenseError):
    """Invalid or missing configuration."""


class StorageUnavailableError(AquaSenseError):
    """Durable storage backend is unreachable or a write failed.

    The reading store catches this internally and degrades to the
    volatile tier; callers of ``append`` never see it.
    """


class ChannelUnavailableError(AquaSenseError):
    """The server cannot be reached (push channel or REST call)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class MalformedCommandError(AquaSenseError):
    """A reading or motor payload failed validation at the boundary."""

    def __init__(self, message: str, *, payload: object = None) -> None:
        self.payload = payload
        super().__init__(message)

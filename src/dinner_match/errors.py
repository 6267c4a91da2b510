"""Error taxonomy for the DinnerMatch core."""

from __future__ import annotations


class DinnerMatchError(Exception):
    """Base class for every error raised by dinner_match."""


class ValidationError(DinnerMatchError):
    """Vote fields are empty or malformed; nothing was persisted."""


class StoreUnavailable(DinnerMatchError):
    """The backing store could not be reached or rejected the call.

    Always retryable from the caller's point of view; local state is kept.
    """

    retryable = True

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class MalformedEvent(DinnerMatchError):
    """A pushed or fetched row is missing required fields."""

    def __init__(self, message: str, payload: object = None) -> None:
        super().__init__(message)
        self.payload = payload

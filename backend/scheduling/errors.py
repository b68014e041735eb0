from __future__ import annotations


class InvalidSlotError(ValueError):
    """A time slot whose times are missing, malformed, or not strictly increasing."""


class EmptyScheduleError(ValueError):
    """Commit was requested with nothing to schedule."""

    def __init__(self, message: str = "Nothing to schedule") -> None:
        super().__init__(message)


class GatewayError(RuntimeError):
    """The persistence gateway rejected a read or write."""


class CommitFailedError(RuntimeError):
    """The batch insert of exam records failed; the draft is left untouched."""


class CommitInProgressError(RuntimeError):
    """A commit for the same wizard instance is already in flight."""


class WizardNotFoundError(LookupError):
    """No open wizard with the given id (never opened, closed, or already committed)."""

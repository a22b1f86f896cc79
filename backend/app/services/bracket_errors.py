"""Errors raised by bracket generation and match progression."""

from typing import Optional


class BracketError(Exception):
    """Base class for bracket errors."""


class BracketPreconditionError(BracketError):
    """Operation not applicable: wrong format, nothing to reset, too few registrants."""


class EventNotFoundError(BracketPreconditionError):
    pass


class MatchNotFoundError(BracketPreconditionError):
    pass


class BracketAlreadyExistsError(BracketPreconditionError):
    pass


class BracketValidationError(BracketError):
    """Bad caller input, e.g. a seed for a registration outside the event."""

    def __init__(self, message: str, invalid_id: Optional[int] = None):
        super().__init__(message)
        self.invalid_id = invalid_id


class BracketConsistencyError(BracketError):
    """A stored bracket breaks an invariant (missing target, result for a bye, occupied slot)."""


class ConcurrentUpdateError(BracketError):
    """Another request completed or reverted the same match first."""

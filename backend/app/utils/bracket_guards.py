"""
Bracket Route Guards

Reusable guards for bracket endpoints:
- Event lookup (404)
- Elimination-only operations (400)
- Translation of bracket service errors to HTTP responses
"""

import logging

from fastapi import HTTPException
from sqlmodel import Session

from app.models.event import Event
from app.services.bracket_errors import (
    BracketAlreadyExistsError,
    BracketConsistencyError,
    BracketError,
    BracketPreconditionError,
    BracketValidationError,
    ConcurrentUpdateError,
    EventNotFoundError,
    MatchNotFoundError,
)

logger = logging.getLogger(__name__)

INTERNAL_BRACKET_ERROR = "Bracket is in an inconsistent state; the operation was not applied"


def require_event(session: Session, event_id: int) -> Event:
    """
    Load an event or raise 404.

    Raises:
        HTTPException 404: Event not found
    """
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def require_elimination_event(session: Session, event_id: int) -> Event:
    """
    Load an event that is played as a bracket.

    Raises:
        HTTPException 404: Event not found
        HTTPException 400: Event format is not single/double elimination
    """
    event = require_event(session, event_id)
    if not event.is_elimination:
        raise HTTPException(
            status_code=400,
            detail=f"Event format '{event.format}' does not use a bracket",
        )
    return event


def http_error_for(error: BracketError) -> HTTPException:
    """Map a bracket service error to the HTTPException the route raises."""
    if isinstance(error, (EventNotFoundError, MatchNotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (BracketAlreadyExistsError, ConcurrentUpdateError)):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, BracketPreconditionError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, BracketValidationError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, BracketConsistencyError):
        logger.error("Bracket consistency error: %s", error)
        return HTTPException(status_code=500, detail=INTERNAL_BRACKET_ERROR)
    return HTTPException(status_code=400, detail=str(error))

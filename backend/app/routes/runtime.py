"""
Match runtime: enter or revert bracket match results.
When a match is completed, the advancement service fills the downstream slots
(winner, and loser in double elimination). Reverting does not retract them.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from app.database import get_session
from app.models.match_set import MatchSet
from app.routes.brackets import BracketMatchResponse
from app.services.advancement_service import apply_advancement, complete_match, revert_match_result
from app.services.bracket_errors import BracketError
from app.utils.bracket_guards import http_error_for, require_elimination_event

router = APIRouter()


class SetScore(BaseModel):
    a: int
    b: int


class MatchResultUpdate(BaseModel):
    played: bool
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    sets: Optional[List[SetScore]] = None


class MatchSetState(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    set_number: int
    score_a: int
    score_b: int


class MatchResultResponse(BaseModel):
    match: BracketMatchResponse
    sets: List[MatchSetState] = []
    advanced_count: int = 0
    event_completed: bool = False


def _match_sets(session: Session, match_id: int) -> List[MatchSetState]:
    rows = session.exec(select(MatchSet).where(MatchSet.match_id == match_id).order_by(MatchSet.set_number)).all()
    return [MatchSetState.model_validate(r) for r in rows]


@router.patch(
    "/events/{event_id}/matches/{match_id}",
    response_model=MatchResultResponse,
)
def update_match_result(
    event_id: int,
    match_id: int,
    payload: MatchResultUpdate,
    session: Session = Depends(get_session),
) -> MatchResultResponse:
    """Complete (played=true) or revert (played=false) a bracket match.
    Completing needs winner_id or sets; the loser, if given, must be the other occupant."""
    require_elimination_event(session, event_id)

    try:
        if payload.played:
            sets: Optional[List[Dict[str, Any]]] = None
            if payload.sets:
                sets = [s.model_dump() for s in payload.sets]
            result = complete_match(
                session,
                match_id,
                winner_id=payload.winner_id,
                loser_id=payload.loser_id,
                sets=sets,
                event_id=event_id,
            )
        else:
            result = revert_match_result(session, match_id, event_id=event_id)
    except BracketError as e:
        raise http_error_for(e)

    return MatchResultResponse(
        match=BracketMatchResponse.model_validate(result.match),
        sets=_match_sets(session, match_id),
        advanced_count=result.advanced_count,
        event_completed=result.event_completed,
    )


@router.post(
    "/events/{event_id}/matches/{match_id}/advance",
    response_model=Dict[str, int],
)
def advance_match(
    event_id: int,
    match_id: int,
    session: Session = Depends(get_session),
) -> Dict[str, int]:
    """Manually run advancement for a played match (repair/testing). Idempotent."""
    require_elimination_event(session, event_id)
    try:
        advanced_count = apply_advancement(session, match_id, event_id=event_id)
    except BracketError as e:
        raise http_error_for(e)
    return {"advanced_count": advanced_count}

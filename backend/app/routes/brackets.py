"""
Bracket API Routes
Generate, view, reset and repair single/double elimination brackets.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from app.database import get_session
from app.models.event import EventFormat
from app.models.registration import Registration
from app.services.advancement_service import reapply_advancements
from app.services.bracket_errors import BracketError
from app.services.bracket_service import (
    GenerateBracketParams,
    SeedAssignment,
    bracket_summary,
    generate_bracket,
    get_bracket_matches,
    reset_bracket,
)
from app.utils.bracket_guards import http_error_for, require_elimination_event

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class SeedItem(BaseModel):
    registration_id: int
    seed: int


class GenerateBracketRequest(BaseModel):
    seeds: Optional[List[SeedItem]] = None


class BracketMatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    round_number: int
    match_number: int
    bracket_position: Optional[int] = None
    bracket_type: Optional[str] = None
    registration_a_id: Optional[int] = None
    registration_b_id: Optional[int] = None
    winner_to_id: Optional[int] = None
    winner_to_slot: Optional[int] = None
    loser_to_id: Optional[int] = None
    loser_to_slot: Optional[int] = None
    is_bye: bool
    is_third_place: bool
    is_reset: bool
    played: bool
    winner_id: Optional[int] = None


class BracketSummary(BaseModel):
    winners_rounds: int
    losers_rounds: int
    total_rounds: int
    bracket_size: int
    match_count: int
    bye_count: int
    played_count: int


class GenerateBracketResponse(BaseModel):
    event_id: int
    total_rounds: int
    bracket_size: int
    match_count: int
    matches: List[BracketMatchResponse]


class BracketResponse(BaseModel):
    event_id: int
    format: str
    completed: bool
    summary: BracketSummary
    matches: List[BracketMatchResponse]


def _stored_seeds(session: Session, event_id: int) -> List[SeedAssignment]:
    registrations = session.exec(
        select(Registration).where(Registration.event_id == event_id, Registration.seed.is_not(None))
    ).all()
    return [SeedAssignment(registration_id=r.id, seed=r.seed) for r in registrations]


# ============================================================================
# Bracket Endpoints
# ============================================================================


@router.post("/events/{event_id}/generate-bracket", response_model=GenerateBracketResponse, status_code=201)
def generate_event_bracket(
    event_id: int,
    request: Optional[GenerateBracketRequest] = None,
    session: Session = Depends(get_session),
):
    """
    Generate the bracket for an elimination event from its registrations.

    Seeds in the body replace any stored seeds; without them, seeds already on
    the registrations are used. Refused with 409 if a bracket already exists.
    """
    event = require_elimination_event(session, event_id)

    registration_ids = session.exec(
        select(Registration.id).where(Registration.event_id == event_id).order_by(Registration.id)
    ).all()

    if request is not None and request.seeds is not None:
        seeds = [SeedAssignment(registration_id=s.registration_id, seed=s.seed) for s in request.seeds]
    else:
        seeds = _stored_seeds(session, event_id)

    params = GenerateBracketParams(
        event_id=event_id,
        format=event.format,
        seeds=seeds,
        has_third_place_match=event.has_third_place_match,
        losers_start_rounds_before_final=event.losers_start_rounds_before_final,
    )
    try:
        result = generate_bracket(session, params, list(registration_ids))
    except BracketError as e:
        raise http_error_for(e)

    return GenerateBracketResponse(
        event_id=event_id,
        total_rounds=result.total_rounds,
        bracket_size=result.bracket_size,
        match_count=result.match_count,
        matches=[BracketMatchResponse.model_validate(m) for m in result.matches],
    )


@router.get("/events/{event_id}/bracket", response_model=BracketResponse)
def get_event_bracket(event_id: int, session: Session = Depends(get_session)):
    """Bracket matches in bracket-position order plus totals. Empty list if not generated yet."""
    event = require_elimination_event(session, event_id)
    matches = get_bracket_matches(session, event_id)

    return BracketResponse(
        event_id=event_id,
        format=EventFormat(event.format).value,
        completed=event.completed,
        summary=BracketSummary(**bracket_summary(matches)),
        matches=[BracketMatchResponse.model_validate(m) for m in matches],
    )


@router.delete("/events/{event_id}/bracket", response_model=Dict[str, int])
def delete_event_bracket(event_id: int, session: Session = Depends(get_session)):
    """
    Reset the bracket: delete all matches and set scores, clear seeds and completion.
    Generation may run again afterwards.
    """
    require_elimination_event(session, event_id)
    try:
        return reset_bracket(session, event_id)
    except BracketError as e:
        raise http_error_for(e)


@router.post("/events/{event_id}/bracket/reapply-advancements", response_model=Dict[str, int])
def reapply_event_advancements(event_id: int, session: Session = Depends(get_session)):
    """Repair: re-run advancement for every played match. Fills empty downstream slots only."""
    require_elimination_event(session, event_id)
    try:
        return reapply_advancements(session, event_id)
    except BracketError as e:
        raise http_error_for(e)

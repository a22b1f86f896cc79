"""
Match progression: when a bracket match is completed, write its winner (and, in
double elimination, its loser) into the downstream slots fixed at generation.

Advancement never cascades past the filled match; byes are only auto-completed
at generation time. Reverting a result clears the match only; slots already
filled downstream are left as they are.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.event import Event
from app.models.match import Match
from app.models.match_set import MatchSet
from app.services.bracket_errors import (
    BracketConsistencyError,
    BracketPreconditionError,
    BracketValidationError,
    ConcurrentUpdateError,
    MatchNotFoundError,
)
from app.services.score_parser import ParsedScore, decide_winner_slot, parse_score

logger = logging.getLogger(__name__)

GRAND_FINAL = "grand-final"


@dataclass
class AdvancementResult:
    match: Match
    advanced_count: int = 0
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    event_completed: bool = False


def _get_match(session: Session, match_id: int, event_id: Optional[int] = None) -> Match:
    match = session.get(Match, match_id)
    if not match or (event_id is not None and match.event_id != event_id):
        raise MatchNotFoundError("Match not found")
    return match


def _loser_of(match: Match, winner_id: int) -> Optional[int]:
    if winner_id == match.registration_a_id:
        return match.registration_b_id
    if winner_id == match.registration_b_id:
        return match.registration_a_id
    return None


def is_reset_decided_by_game_one(match: Match) -> bool:
    """Grand final game 1 won by the winners-bracket champion (slot A): no reset game."""
    return (
        match.bracket_type == GRAND_FINAL
        and not match.is_reset
        and match.played
        and match.winner_id is not None
        and match.winner_id == match.registration_a_id
    )


def _write_slot(session: Session, source: Match, target_id: int, slot: Optional[int], registration_id: int) -> int:
    """Write registration_id into target slot. Returns 1 if written, 0 if already there."""
    target = session.exec(select(Match).where(Match.id == target_id).with_for_update()).first()
    if target is None or target.event_id != source.event_id:
        logger.error("Match %s advances to missing match %s", source.id, target_id)
        raise BracketConsistencyError(f"Advancement target {target_id} of match {source.id} not found")
    if slot not in (1, 2):
        logger.error("Match %s has invalid target slot %r", source.id, slot)
        raise BracketConsistencyError(f"Match {source.id} has no valid slot for target {target_id}")

    current = target.occupant(slot)
    if current == registration_id:
        return 0
    if current is not None:
        logger.error(
            "Match %s would overwrite registration %s with %s in match %s slot %s",
            source.id,
            current,
            registration_id,
            target.id,
            slot,
        )
        raise BracketConsistencyError(f"Slot {slot} of match {target.id} is already taken")

    target.set_occupant(slot, registration_id)
    target.updated_at = datetime.utcnow()
    session.add(target)
    return 1


def _advance(session: Session, match: Match, winner_id: int, loser_id: Optional[int]) -> int:
    """Write winner/loser into their targets. No commit."""
    if match.bracket_type == GRAND_FINAL and not match.is_reset and winner_id == match.registration_a_id:
        # Winners champion took game 1; the reset game stays empty
        return 0

    count = 0
    if match.winner_to_id is not None:
        count += _write_slot(session, match, match.winner_to_id, match.winner_to_slot, winner_id)
    if match.loser_to_id is not None and loser_id is not None:
        count += _write_slot(session, match, match.loser_to_id, match.loser_to_slot, loser_id)
    session.flush()
    return count


def update_event_completed_status(session: Session, event_id: int) -> bool:
    """
    Recompute Event.completed: every bracket match played, except a reset game
    that game 1 of the grand final made unnecessary.
    """
    event = session.get(Event, event_id)
    if not event:
        return False
    matches = session.exec(select(Match).where(Match.event_id == event_id, Match.group_id.is_(None))).all()

    reset_not_needed = set()
    for m in matches:
        if is_reset_decided_by_game_one(m) and m.winner_to_id is not None:
            reset_not_needed.add(m.winner_to_id)

    completed = bool(matches) and all(m.played or m.id in reset_not_needed for m in matches)
    if event.completed != completed:
        event.completed = completed
        event.updated_at = datetime.utcnow()
        session.add(event)
    return completed


def _winner_from_sets(session: Session, match: Match, sets: List[Any]) -> tuple:
    parsed = parse_score(sets)
    if parsed is None:
        raise BracketValidationError("Could not parse set scores")
    event = session.get(Event, match.event_id)
    try:
        slot = decide_winner_slot(parsed, event.best_of)
    except ValueError as e:
        raise BracketValidationError(str(e)) from e
    return match.occupant(slot), parsed


def _store_sets(session: Session, match: Match, parsed: ParsedScore) -> None:
    """Replace the match's set rows with the parsed scores."""
    for old in session.exec(select(MatchSet).where(MatchSet.match_id == match.id)).all():
        session.delete(old)
    session.flush()
    for number, (score_a, score_b) in enumerate(parsed.sets, start=1):
        session.add(MatchSet(match_id=match.id, set_number=number, score_a=score_a, score_b=score_b, played=True))


def complete_match(
    session: Session,
    match_id: int,
    winner_id: Optional[int] = None,
    loser_id: Optional[int] = None,
    sets: Optional[List[Any]] = None,
    event_id: Optional[int] = None,
) -> AdvancementResult:
    """
    Mark an unplayed match as played and advance winner/loser.

    The winner is winner_id, or derived from per-set scores against the
    event's best_of; when both are given they must agree.
    The played flag is flipped with a compare-and-swap so two concurrent
    completions cannot both advance. Commits on success, rolls back on error.
    """
    match = _get_match(session, match_id, event_id)

    if match.is_bye:
        logger.error("Result submitted for bye match %s", match.id)
        raise BracketConsistencyError("Bye matches are completed automatically and cannot take a result")
    if match.played:
        raise ConcurrentUpdateError("Match is already played")
    if match.registration_a_id is None or match.registration_b_id is None:
        raise BracketValidationError("Both sides of the match must be known before a result can be entered")

    parsed = None
    if sets:
        score_winner, parsed = _winner_from_sets(session, match, sets)
        if winner_id is not None and winner_id != score_winner:
            raise BracketValidationError(
                f"winner_id {winner_id} does not match the set scores", invalid_id=winner_id
            )
        winner_id = score_winner
    if winner_id is None:
        raise BracketValidationError("winner_id or sets required to complete a match")

    derived_loser = _loser_of(match, winner_id)
    if derived_loser is None:
        raise BracketValidationError(f"Registration {winner_id} is not playing in this match", invalid_id=winner_id)
    if loser_id is not None and loser_id != derived_loser:
        raise BracketValidationError(f"Registration {loser_id} is not the loser of this match", invalid_id=loser_id)

    try:
        swapped = session.execute(
            update(Match)
            .where(Match.id == match.id, Match.played == False)  # noqa: E712
            .values(played=True, winner_id=winner_id, updated_at=datetime.utcnow())
        )
        if swapped.rowcount != 1:
            raise ConcurrentUpdateError("Match was completed by another request")
        session.refresh(match)
        if parsed is not None:
            _store_sets(session, match, parsed)

        advanced = _advance(session, match, winner_id, derived_loser)
        completed = update_event_completed_status(session, match.event_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info(
        "Match %s completed: winner=%s loser=%s advanced=%s", match.id, winner_id, derived_loser, advanced
    )
    return AdvancementResult(
        match=match,
        advanced_count=advanced,
        winner_id=winner_id,
        loser_id=derived_loser,
        event_completed=completed,
    )


def apply_advancement(
    session: Session,
    match_id: int,
    winner_id: Optional[int] = None,
    loser_id: Optional[int] = None,
    event_id: Optional[int] = None,
) -> int:
    """
    Advance the result of an already played match into its targets.
    Idempotent: slots already holding the same registration are not counted.
    Returns count of downstream slots written.
    """
    match = _get_match(session, match_id, event_id)
    if not match.played or match.winner_id is None:
        raise BracketPreconditionError("Match must be played with a winner to run advancement")

    winner = winner_id if winner_id is not None else match.winner_id
    if winner != match.winner_id:
        raise BracketValidationError(f"Registration {winner} is not the recorded winner", invalid_id=winner)
    loser = _loser_of(match, winner)
    if loser_id is not None and loser_id != loser:
        raise BracketValidationError(f"Registration {loser_id} is not the loser of this match", invalid_id=loser_id)

    try:
        count = _advance(session, match, winner, None if match.is_bye else loser)
        if count:
            session.commit()
    except Exception:
        session.rollback()
        raise
    return count


def revert_match_result(session: Session, match_id: int, event_id: Optional[int] = None) -> AdvancementResult:
    """
    Administrative reversal: played -> unplayed, winner cleared.

    Registrations already written into downstream matches are NOT retracted.
    """
    match = _get_match(session, match_id, event_id)
    if match.is_bye:
        logger.error("Attempt to revert bye match %s", match.id)
        raise BracketConsistencyError("Bye matches cannot be reverted")
    if not match.played:
        raise BracketPreconditionError("Match is not played")

    previous_winner = match.winner_id
    try:
        swapped = session.execute(
            update(Match)
            .where(Match.id == match.id, Match.played == True)  # noqa: E712
            .values(played=False, winner_id=None, updated_at=datetime.utcnow())
        )
        if swapped.rowcount != 1:
            raise ConcurrentUpdateError("Match was reverted by another request")
        session.refresh(match)
        completed = update_event_completed_status(session, match.event_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    if match.winner_to_id is not None or match.loser_to_id is not None:
        logger.warning(
            "Match %s reverted (was won by %s); downstream slots keep their advanced registrations",
            match.id,
            previous_winner,
        )
    return AdvancementResult(match=match, event_completed=completed)


def reapply_advancements(session: Session, event_id: int) -> Dict[str, int]:
    """
    Re-run advancement for every played match of an event.

    Fills only empty downstream slots; processes by match id so the outcome
    is deterministic. Safe to call repeatedly.
    """
    matches: List[Match] = session.exec(
        select(Match).where(Match.event_id == event_id, Match.group_id.is_(None))
    ).all()
    unknown_before = sum(1 for m in matches if m.registration_a_id is None or m.registration_b_id is None)

    played = session.exec(
        select(Match)
        .where(Match.event_id == event_id, Match.played == True, Match.winner_id.is_not(None))  # noqa: E712
        .order_by(Match.id)
    ).all()

    slots_filled = 0
    try:
        for match in played:
            loser = None if match.is_bye else _loser_of(match, match.winner_id)
            slots_filled += _advance(session, match, match.winner_id, loser)
        update_event_completed_status(session, event_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expire_all()
    matches_after = session.exec(
        select(Match).where(Match.event_id == event_id, Match.group_id.is_(None))
    ).all()
    unknown_after = sum(1 for m in matches_after if m.registration_a_id is None or m.registration_b_id is None)

    return {
        "matches_processed": len(played),
        "slots_filled": slots_filled,
        "unknown_before": unknown_before,
        "unknown_after": unknown_after,
    }

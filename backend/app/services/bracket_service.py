"""
Bracket persistence: validate, build the plan, write match rows, wire links, apply byes.

Generation runs in one session transaction. Rows are inserted first (flush per
row gives the id), links are written in a second pass from the
position -> id map, then bye results are applied. Any failure rolls back.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.event import Event, EventFormat, is_elimination_format
from app.models.match import Match
from app.models.match_set import MatchSet
from app.models.registration import Registration
from app.services.bracket_errors import (
    BracketAlreadyExistsError,
    BracketConsistencyError,
    BracketPreconditionError,
    BracketValidationError,
    EventNotFoundError,
)
from app.utils.bracket_plan import BracketPlan, LogicalMatch, is_registrant
from app.utils.bracket_seeding import validate_seed_mapping
from app.utils.bracket_topology import BracketOptions, build_bracket
from app.utils.bye_resolver import ByeResolution, resolve_byes

logger = logging.getLogger(__name__)

ALREADY_GENERATED = "Bracket already generated. Reset the bracket to regenerate."


@dataclass
class SeedAssignment:
    registration_id: int
    seed: int


@dataclass
class GenerateBracketParams:
    event_id: int
    format: str
    seeds: Optional[List[SeedAssignment]] = None
    has_third_place_match: bool = False
    losers_start_rounds_before_final: Optional[int] = None


@dataclass
class GenerateBracketResult:
    matches: List[Match]
    total_rounds: int
    bracket_size: int
    match_count: int


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None
    invalid_id: Optional[int] = None


def validate_event_for_bracket_generation(format: str) -> ValidationResult:
    """Only single and double elimination events get a bracket."""
    if not is_elimination_format(format):
        return ValidationResult(valid=False, error="Bracket generation is only available for elimination events")
    return ValidationResult(valid=True)


def check_bracket_exists(session: Session, event_id: int) -> bool:
    """True if any match exists for the event."""
    existing = session.exec(select(Match.id).where(Match.event_id == event_id).limit(1)).first()
    return existing is not None


def validate_seeds(seeds: Optional[Sequence[SeedAssignment]], registration_ids: Sequence[int]) -> ValidationResult:
    """Return the first seed whose registration is not part of the event."""
    if not seeds:
        return ValidationResult(valid=True)
    known = set(registration_ids)
    for seed in seeds:
        if seed.registration_id not in known:
            return ValidationResult(
                valid=False,
                error=f"Invalid registration ID in seeds: {seed.registration_id}",
                invalid_id=seed.registration_id,
            )
    return ValidationResult(valid=True)


def _seed_map(seeds: Optional[Sequence[SeedAssignment]], registration_ids: Sequence[int]) -> Dict[int, int]:
    if not seeds:
        return {}
    mapping: Dict[int, int] = {}
    for seed in seeds:
        if seed.registration_id in mapping:
            raise BracketValidationError(
                f"Registration {seed.registration_id} is seeded more than once", invalid_id=seed.registration_id
            )
        mapping[seed.registration_id] = seed.seed
    try:
        validate_seed_mapping(mapping, registration_ids)
    except ValueError as e:
        raise BracketValidationError(str(e)) from e
    return mapping


def _create_match_rows(session: Session, event_id: int, plan: BracketPlan) -> Dict[int, Match]:
    """First pass: insert every planned match without links. Returns bracket_position -> row."""
    rows: Dict[int, Match] = {}
    for planned in plan.matches:
        row = Match(
            event_id=event_id,
            group_id=None,
            round_number=planned.round_number,
            match_number=planned.match_number,
            bracket_position=planned.bracket_position,
            bracket_type=planned.bracket_type.value if planned.bracket_type else None,
            registration_a_id=planned.occupant_a if is_registrant(planned.occupant_a) else None,
            registration_b_id=planned.occupant_b if is_registrant(planned.occupant_b) else None,
            winner_to_slot=planned.winner_to.slot if planned.winner_to else None,
            loser_to_slot=planned.loser_to.slot if planned.loser_to else None,
            is_bye=planned.is_bye,
            is_third_place=planned.is_third_place,
            is_reset=planned.is_reset,
            played=False,
        )
        session.add(row)
        session.flush()
        rows[planned.bracket_position] = row
    return rows


def _link_match_rows(plan: BracketPlan, rows: Dict[int, Match]) -> None:
    """Second pass: winner_to / loser_to from planned positions to generated ids."""

    def target_id(planned: LogicalMatch, ref) -> Optional[int]:
        if ref is None:
            return None
        target = rows.get(ref.index + 1)
        if target is None:
            raise BracketConsistencyError(
                f"Match at position {planned.bracket_position} links to missing position {ref.index + 1}"
            )
        return target.id

    for planned in plan.matches:
        row = rows[planned.bracket_position]
        row.winner_to_id = target_id(planned, planned.winner_to)
        row.loser_to_id = target_id(planned, planned.loser_to)


def _apply_bye_resolution(rows: Dict[int, Match], resolution: ByeResolution) -> None:
    for position, winner in resolution.completed.items():
        row = rows[position]
        row.played = True
        row.winner_id = winner
    for key, registration_id in resolution.advancements.items():
        rows[key.bracket_position].set_occupant(key.slot, registration_id)

    # Every bye must be settled before anyone can enter a result
    unresolved = [p for p, row in rows.items() if row.is_bye and not row.played]
    if unresolved:
        raise BracketConsistencyError(f"Unresolved bye matches at positions {unresolved}")


def update_registration_seeds(session: Session, event_id: int, seed_map: Dict[int, int]) -> None:
    """Persist seed values; clears stale seeds first so (event_id, seed) stays unique."""
    registrations = session.exec(select(Registration).where(Registration.event_id == event_id)).all()
    for registration in registrations:
        registration.seed = None
        session.add(registration)
    session.flush()
    for registration in registrations:
        if registration.id in seed_map:
            registration.seed = seed_map[registration.id]
            session.add(registration)
    session.flush()


def generate_bracket(
    session: Session, params: GenerateBracketParams, registration_ids: Sequence[int]
) -> GenerateBracketResult:
    """
    Build and persist the bracket for an event.

    All validation happens before the first write. Raises BracketPreconditionError
    (format, existing bracket, < 2 registrants), BracketValidationError (seeds),
    BracketConsistencyError (plan/row mismatch). Nothing is left behind on failure.
    """
    format_check = validate_event_for_bracket_generation(params.format)
    if not format_check.valid:
        raise BracketPreconditionError(format_check.error)

    if len(registration_ids) < 2:
        raise BracketPreconditionError("At least 2 registrations required to generate bracket")

    seed_check = validate_seeds(params.seeds, registration_ids)
    if not seed_check.valid:
        raise BracketValidationError(seed_check.error, invalid_id=seed_check.invalid_id)
    seed_map = _seed_map(params.seeds, registration_ids)

    # Serialize generators for the same event (row lock; no-op on SQLite)
    event = session.exec(select(Event).where(Event.id == params.event_id).with_for_update()).first()
    if not event:
        raise EventNotFoundError("Event not found")

    if check_bracket_exists(session, params.event_id):
        logger.warning("Refused bracket generation for event %s: bracket already exists", params.event_id)
        raise BracketAlreadyExistsError(ALREADY_GENERATED)

    options = BracketOptions(
        has_third_place_match=params.has_third_place_match,
        losers_start_rounds_before_final=params.losers_start_rounds_before_final,
    )
    try:
        plan = build_bracket(EventFormat(params.format), list(registration_ids), seed_map, options)
        resolution = resolve_byes(plan.matches)
    except ValueError as e:
        raise BracketValidationError(str(e)) from e
    for warning in plan.warnings:
        logger.warning("Event %s: %s", params.event_id, warning)

    try:
        try:
            rows = _create_match_rows(session, params.event_id, plan)
        except IntegrityError as e:
            # Another request inserted the same (event_id, bracket_position) first
            session.rollback()
            logger.warning("Concurrent bracket generation for event %s lost the race", params.event_id)
            raise BracketAlreadyExistsError(ALREADY_GENERATED) from e

        _link_match_rows(plan, rows)
        _apply_bye_resolution(rows, resolution)
        for row in rows.values():
            session.add(row)
        session.flush()

        if params.seeds is not None:
            update_registration_seeds(session, params.event_id, seed_map)

        event.completed = False
        session.add(event)
        session.commit()
    except BracketAlreadyExistsError:
        raise
    except Exception:
        session.rollback()
        logger.exception("Bracket generation failed for event %s; rolled back", params.event_id)
        raise

    matches = get_bracket_matches(session, params.event_id)
    logger.info(
        "Generated %s bracket for event %s: size=%s rounds=%s matches=%s byes=%s",
        params.format,
        params.event_id,
        plan.bracket_size,
        plan.total_rounds,
        len(matches),
        len(resolution.completed),
    )
    return GenerateBracketResult(
        matches=matches,
        total_rounds=plan.total_rounds,
        bracket_size=plan.bracket_size,
        match_count=len(matches),
    )


def get_bracket_matches(session: Session, event_id: int) -> List[Match]:
    """Bracket matches in stable order: bracket position."""
    return list(
        session.exec(
            select(Match).where(Match.event_id == event_id, Match.group_id.is_(None)).order_by(Match.bracket_position)
        ).all()
    )


def bracket_summary(matches: Sequence[Match]) -> Dict:
    """Totals for a persisted bracket."""
    winners_rounds = {m.round_number for m in matches if m.bracket_type in (None, "winners") and not m.is_third_place}
    losers_rounds = {m.round_number for m in matches if m.bracket_type == "losers"}
    first_round = [m for m in matches if m.round_number == 1 and m.bracket_type in (None, "winners")]
    return {
        "winners_rounds": len(winners_rounds),
        "losers_rounds": len(losers_rounds),
        "total_rounds": len(winners_rounds) + len(losers_rounds),
        "bracket_size": len(first_round) * 2,
        "match_count": len(matches),
        "bye_count": sum(1 for m in matches if m.is_bye),
        "played_count": sum(1 for m in matches if m.played),
    }


def reset_bracket(session: Session, event_id: int) -> Dict[str, int]:
    """
    Delete every match (and its set scores) for an elimination event, clear
    registration seeds and the event completion flag. Generation may run again after.
    """
    event = session.get(Event, event_id)
    if not event:
        raise EventNotFoundError("Event not found")
    if not is_elimination_format(event.format):
        raise BracketPreconditionError("Bracket reset is only available for elimination events")
    if not check_bracket_exists(session, event_id):
        raise BracketPreconditionError("No bracket exists for this event")

    matches = session.exec(select(Match).where(Match.event_id == event_id)).all()
    match_ids = [m.id for m in matches]

    # Child records first
    sets = session.exec(select(MatchSet).where(MatchSet.match_id.in_(match_ids))).all()
    for match_set in sets:
        session.delete(match_set)
    session.flush()

    # Drop self references so rows can go in any order
    for match in matches:
        match.winner_to_id = None
        match.loser_to_id = None
        session.add(match)
    session.flush()

    for match in matches:
        session.delete(match)
    session.flush()

    registrations = session.exec(select(Registration).where(Registration.event_id == event_id)).all()
    for registration in registrations:
        registration.seed = None
        session.add(registration)

    event.completed = False
    event.updated_at = datetime.utcnow()
    session.add(event)
    session.commit()

    logger.info("Reset bracket for event %s: deleted %s matches, %s sets", event_id, len(matches), len(sets))
    return {"deleted_matches": len(matches), "deleted_sets": len(sets)}

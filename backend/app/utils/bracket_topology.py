"""
Bracket topology builders.

Pure functions: registrant ids (+ optional seeds) in, BracketPlan out. No I/O.

Single elimination:
    bracket_size = next power of two >= registrants, rounds = log2(bracket_size).
    Round 1 pairs adjacent slots of the standard seeding order; every match's
    winner goes to match i // 2 of the next round, slot 1 for even i, slot 2 for odd.
    Optional third place match fed by the two semifinal losers.

Double elimination:
    Winners bracket as above. Losers bracket alternates drop-in rounds
    (losers-bracket survivors vs. fresh winners-bracket losers) and pairing rounds
    (survivors vs. survivors). Grand final game 1 plus a pre-created reset game.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from app.models.event import EventFormat
from app.utils.bracket_plan import BracketPlan, BracketType, LogicalMatch, Placeholder, SlotRef
from app.utils.bracket_seeding import next_power_of_two, order_by_seeds, place_into_slots, rounds_for_size


@dataclass
class BracketOptions:
    has_third_place_match: bool = False
    losers_start_rounds_before_final: Optional[int] = None


def _check_registrants(registrant_ids: Sequence[int]) -> None:
    if len(registrant_ids) < 2:
        raise ValueError(f"At least 2 registrants required, got {len(registrant_ids)}")
    if len(set(registrant_ids)) != len(registrant_ids):
        raise ValueError("Registrant ids must be unique")


def _add_match(matches: List[LogicalMatch], **kwargs) -> LogicalMatch:
    match = LogicalMatch(index=len(matches), **kwargs)
    matches.append(match)
    return match


def _build_winners_rounds(
    matches: List[LogicalMatch],
    slots: Sequence[Optional[int]],
    bracket_type: Optional[BracketType],
) -> List[List[int]]:
    """Append the winners tree to the arena. Returns arena indices per round (round 1 first)."""
    total_rounds = rounds_for_size(len(slots))
    rounds: List[List[int]] = []

    first_round = []
    for i in range(len(slots) // 2):
        slot_a, slot_b = slots[i * 2], slots[i * 2 + 1]
        match = _add_match(
            matches,
            round_number=1,
            match_number=i + 1,
            bracket_type=bracket_type,
            occupant_a=slot_a if slot_a is not None else Placeholder.BYE,
            occupant_b=slot_b if slot_b is not None else Placeholder.BYE,
        )
        first_round.append(match.index)
    rounds.append(first_round)

    for round_number in range(2, total_rounds + 1):
        previous = rounds[-1]
        current = []
        for i in range(len(previous) // 2):
            match = _add_match(matches, round_number=round_number, match_number=i + 1, bracket_type=bracket_type)
            current.append(match.index)
        for i, index in enumerate(previous):
            matches[index].winner_to = SlotRef(current[i // 2], 1 if i % 2 == 0 else 2)
        rounds.append(current)

    return rounds


def build_single_elimination(
    registrant_ids: Sequence[int],
    seeds: Optional[Mapping[int, int]] = None,
    has_third_place_match: bool = False,
) -> BracketPlan:
    """
    Build a single elimination bracket.

    Exactly 2 registrants yield one final. A power-of-two count yields no byes.
    The third place match is dropped when a semifinal is itself a bye (3 registrants).
    """
    _check_registrants(registrant_ids)

    bracket_size = next_power_of_two(len(registrant_ids))
    total_rounds = rounds_for_size(bracket_size)
    slots = place_into_slots(order_by_seeds(registrant_ids, seeds), bracket_size)

    matches: List[LogicalMatch] = []
    rounds = _build_winners_rounds(matches, slots, bracket_type=None)

    if has_third_place_match and total_rounds >= 2:
        semifinals = rounds[-2]
        third_place = _add_match(matches, round_number=total_rounds, match_number=2, is_third_place=True)
        matches[semifinals[0]].loser_to = SlotRef(third_place.index, 1)
        matches[semifinals[1]].loser_to = SlotRef(third_place.index, 2)

    matches = prune_dead_matches(matches)
    return BracketPlan(matches=matches, bracket_size=bracket_size, winners_rounds=total_rounds)


def _losers_entry_depth(winners_rounds: int, losers_start_rounds_before_final: Optional[int], warnings: List[str]) -> int:
    """How many winners rounds before the final feed the losers bracket (1..winners_rounds - 1)."""
    full = winners_rounds - 1
    if losers_start_rounds_before_final is None:
        return full
    if losers_start_rounds_before_final < 1:
        raise ValueError(
            f"losers_start_rounds_before_final must be positive, got {losers_start_rounds_before_final}"
        )
    if losers_start_rounds_before_final > full:
        warnings.append(
            f"losers_start_rounds_before_final={losers_start_rounds_before_final} exceeds "
            f"{full} rounds before the final; using full double elimination"
        )
        return full
    return losers_start_rounds_before_final


def _crossover(indices: List[int], winners_round: int) -> List[int]:
    """Order in which a winners round's losers drop into the losers bracket.

    Reversed on even winners rounds, halves swapped on odd ones, so that players
    from the same part of the draw do not meet again straight away.
    """
    if len(indices) < 2:
        return list(indices)
    if winners_round % 2 == 0:
        return list(reversed(indices))
    half = len(indices) // 2
    return indices[half:] + indices[:half]


def build_double_elimination(
    registrant_ids: Sequence[int],
    seeds: Optional[Mapping[int, int]] = None,
    losers_start_rounds_before_final: Optional[int] = None,
) -> BracketPlan:
    """
    Build a double elimination bracket.

    losers_start_rounds_before_final limits which winners-bracket losers get a
    second chance: 1 = from the semifinals on, 2 = from the quarterfinals on.
    None is full double elimination. Earlier losers are eliminated.

    Both grand final games are created up front. Game 1's winner goes to slot 1
    and its loser to slot 2 of the reset game, which is only played when the
    losers-bracket champion wins game 1.
    """
    _check_registrants(registrant_ids)

    warnings: List[str] = []
    bracket_size = next_power_of_two(len(registrant_ids))
    winners_rounds = rounds_for_size(bracket_size)
    slots = place_into_slots(order_by_seeds(registrant_ids, seeds), bracket_size)

    matches: List[LogicalMatch] = []
    wb = _build_winners_rounds(matches, slots, bracket_type=BracketType.WINNERS)
    winners_final = matches[wb[-1][0]]

    losers_final: Optional[LogicalMatch] = None
    if winners_rounds > 1:
        depth = _losers_entry_depth(winners_rounds, losers_start_rounds_before_final, warnings)
        first_round = winners_rounds - depth
        lb_round = 1

        # Opening losers round pairs the losers of the first admitted winners round
        entering = wb[first_round - 1]
        survivors = []
        for i in range(len(entering) // 2):
            match = _add_match(matches, round_number=lb_round, match_number=i + 1, bracket_type=BracketType.LOSERS)
            matches[entering[i * 2]].loser_to = SlotRef(match.index, 1)
            matches[entering[i * 2 + 1]].loser_to = SlotRef(match.index, 2)
            survivors.append(match.index)

        for winners_round in range(first_round + 1, winners_rounds + 1):
            # Drop-in round: survivor in slot 1, winners-bracket loser in slot 2
            lb_round += 1
            droppers = _crossover(wb[winners_round - 1], winners_round)
            current = []
            for i, survivor in enumerate(survivors):
                match = _add_match(
                    matches, round_number=lb_round, match_number=i + 1, bracket_type=BracketType.LOSERS
                )
                matches[survivor].winner_to = SlotRef(match.index, 1)
                matches[droppers[i]].loser_to = SlotRef(match.index, 2)
                current.append(match.index)
            survivors = current

            if winners_round < winners_rounds:
                # Pairing round: survivors play each other
                lb_round += 1
                current = []
                for i in range(len(survivors) // 2):
                    match = _add_match(
                        matches, round_number=lb_round, match_number=i + 1, bracket_type=BracketType.LOSERS
                    )
                    matches[survivors[i * 2]].winner_to = SlotRef(match.index, 1)
                    matches[survivors[i * 2 + 1]].winner_to = SlotRef(match.index, 2)
                    current.append(match.index)
                survivors = current

        losers_final = matches[survivors[0]]

    grand_final = _add_match(matches, round_number=1, match_number=1, bracket_type=BracketType.GRAND_FINAL)
    reset = _add_match(matches, round_number=2, match_number=1, bracket_type=BracketType.GRAND_FINAL, is_reset=True)
    winners_final.winner_to = SlotRef(grand_final.index, 1)
    if losers_final is not None:
        losers_final.winner_to = SlotRef(grand_final.index, 2)
    else:
        # Two registrants: the loser of the only winners match gets the second life directly
        winners_final.loser_to = SlotRef(grand_final.index, 2)
    grand_final.winner_to = SlotRef(reset.index, 1)
    grand_final.loser_to = SlotRef(reset.index, 2)

    matches = prune_dead_matches(matches)
    losers_rounds = len({m.round_number for m in matches if m.bracket_type == BracketType.LOSERS})
    return BracketPlan(
        matches=matches,
        bracket_size=bracket_size,
        winners_rounds=winners_rounds,
        losers_rounds=losers_rounds,
        warnings=warnings,
    )


def prune_dead_matches(matches: List[LogicalMatch]) -> List[LogicalMatch]:
    """
    Remove matches that can never be played and compact the arena.

    - bye match (registrant vs BYE): kept; it has no loser, so its loser target slot becomes BYE.
    - void match (BYE vs BYE): removed; its targets receive BYE.
    - pass-through (BYE vs awaiting): removed; the upstream edge feeding the
      awaiting side is redirected to the pass-through's winner target.

    Repeats until stable, then renumbers indices, rounds and match numbers densely.
    Returns a new list; input matches are modified in place.
    """
    removed = set()

    def feeders_of(ref: SlotRef):
        for m in matches:
            if m.index in removed:
                continue
            if m.winner_to == ref:
                yield m, "winner_to"
            if m.loser_to == ref:
                yield m, "loser_to"

    def mark_bye(ref: Optional[SlotRef]) -> None:
        if ref is not None:
            matches[ref.index].set_occupant(ref.slot, Placeholder.BYE)

    changed = True
    while changed:
        changed = False
        for match in matches:
            if match.index in removed:
                continue
            sides = (match.occupant_a, match.occupant_b)
            if Placeholder.BYE not in sides:
                continue

            if match.is_bye:
                if match.loser_to is not None:
                    mark_bye(match.loser_to)
                    match.loser_to = None
                    changed = True
                continue

            if sides == (Placeholder.BYE, Placeholder.BYE):
                mark_bye(match.winner_to)
                mark_bye(match.loser_to)
            else:
                awaiting_slot = 1 if match.occupant_a == Placeholder.AWAITING else 2
                for feeder, edge in list(feeders_of(SlotRef(match.index, awaiting_slot))):
                    setattr(feeder, edge, match.winner_to)
                mark_bye(match.loser_to)
            removed.add(match.index)
            changed = True

    return _compact([m for m in matches if m.index not in removed])


def _compact(matches: List[LogicalMatch]) -> List[LogicalMatch]:
    """Renumber arena indices densely and close gaps in round / match numbering."""
    new_index = {m.index: i for i, m in enumerate(matches)}

    def remap(ref: Optional[SlotRef]) -> Optional[SlotRef]:
        if ref is None:
            return None
        return SlotRef(new_index[ref.index], ref.slot)

    round_maps: Dict[Optional[BracketType], Dict[int, int]] = {}
    for bracket_type in {m.bracket_type for m in matches}:
        present = sorted({m.round_number for m in matches if m.bracket_type == bracket_type})
        round_maps[bracket_type] = {old: new for new, old in enumerate(present, start=1)}

    counters: Dict[tuple, int] = {}
    for match in matches:
        match.index = new_index[match.index]
        match.winner_to = remap(match.winner_to)
        match.loser_to = remap(match.loser_to)
        match.round_number = round_maps[match.bracket_type][match.round_number]
        key = (match.bracket_type, match.round_number)
        counters[key] = counters.get(key, 0) + 1
        match.match_number = counters[key]

    return matches


def _build_single(registrant_ids, seeds, options: BracketOptions) -> BracketPlan:
    return build_single_elimination(registrant_ids, seeds, options.has_third_place_match)


def _build_double(registrant_ids, seeds, options: BracketOptions) -> BracketPlan:
    return build_double_elimination(registrant_ids, seeds, options.losers_start_rounds_before_final)


BRACKET_BUILDERS: Dict[EventFormat, Callable[..., BracketPlan]] = {
    EventFormat.single_elimination: _build_single,
    EventFormat.double_elimination: _build_double,
}


def build_bracket(
    event_format: EventFormat,
    registrant_ids: Sequence[int],
    seeds: Optional[Mapping[int, int]] = None,
    options: Optional[BracketOptions] = None,
) -> BracketPlan:
    """Select the builder for the event format once and run it."""
    builder = BRACKET_BUILDERS.get(EventFormat(event_format))
    if builder is None:
        raise ValueError(f"Format '{event_format}' does not use a bracket")
    return builder(registrant_ids, seeds, options or BracketOptions())

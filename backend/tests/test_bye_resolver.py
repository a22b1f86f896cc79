"""Bye resolution on bracket plans."""

import pytest

from app.utils.bracket_plan import LogicalMatch, Placeholder, SlotRef
from app.utils.bracket_topology import build_double_elimination, build_single_elimination
from app.utils.bye_resolver import SlotKey, resolve_byes

BYE = Placeholder.BYE
AWAITING = Placeholder.AWAITING


def test_five_registrants_round_one_byes():
    plan = build_single_elimination([1, 2, 3, 4, 5])
    resolution = resolve_byes(plan.matches)

    assert resolution.completed == {1: 1, 3: 2, 4: 3}
    assert resolution.auto_completed_positions == [1, 3, 4]
    assert resolution.advancements == {
        SlotKey(5, 1): 1,
        SlotKey(6, 1): 2,
        SlotKey(6, 2): 3,
    }


def test_no_byes_no_resolution():
    resolution = resolve_byes(build_single_elimination([1, 2, 3, 4]).matches)
    assert resolution.completed == {}
    assert resolution.advancements == {}


def test_cascades_through_chain_of_byes():
    matches = [
        LogicalMatch(index=0, round_number=1, match_number=1, occupant_a=10, occupant_b=BYE, winner_to=SlotRef(1, 1)),
        LogicalMatch(index=1, round_number=2, match_number=1, occupant_a=AWAITING, occupant_b=BYE, winner_to=SlotRef(2, 2)),
        LogicalMatch(index=2, round_number=3, match_number=1, occupant_a=30, occupant_b=AWAITING),
    ]
    resolution = resolve_byes(matches)

    assert resolution.completed == {1: 10, 2: 10}
    assert resolution.advancements == {SlotKey(2, 1): 10, SlotKey(3, 2): 10}
    # Input is left alone
    assert matches[1].occupant_a == AWAITING
    assert matches[2].occupant_b == AWAITING


def test_refuses_to_overwrite_registrant():
    matches = [
        LogicalMatch(index=0, round_number=1, match_number=1, occupant_a=10, occupant_b=BYE, winner_to=SlotRef(1, 1)),
        LogicalMatch(index=1, round_number=2, match_number=1, occupant_a=20, occupant_b=30),
    ]
    with pytest.raises(ValueError, match="overwrite"):
        resolve_byes(matches)


def test_slot_key_is_structured():
    key = SlotKey(bracket_position=4, slot=2)
    assert key == (4, 2)
    assert key.bracket_position == 4
    assert key.slot == 2


@pytest.mark.parametrize("n", [3, 5, 6, 7, 11])
def test_double_elimination_byes_resolve_in_winners_bracket(n):
    plan = build_double_elimination(list(range(1, n + 1)))
    resolution = resolve_byes(plan.matches)

    assert len(resolution.completed) == plan.bracket_size - n
    for position in resolution.completed:
        assert plan.by_position(position).round_number == 1
    # Winners round 2 receives every bye winner; nothing lands in the losers bracket
    for key in resolution.advancements:
        assert plan.by_position(key.bracket_position).bracket_type.value == "winners"

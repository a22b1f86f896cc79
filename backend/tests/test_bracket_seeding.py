"""Seeding order, bye placement and seed validation."""

import pytest

from app.utils.bracket_seeding import (
    next_power_of_two,
    order_by_seeds,
    place_into_slots,
    rounds_for_size,
    seed_slot_order,
    validate_seed_mapping,
)


@pytest.mark.parametrize("n,expected", [(2, 2), (3, 4), (4, 4), (5, 8), (8, 8), (9, 16), (17, 32)])
def test_next_power_of_two(n, expected):
    assert next_power_of_two(n) == expected


def test_rounds_for_size():
    assert rounds_for_size(2) == 1
    assert rounds_for_size(8) == 3
    assert rounds_for_size(64) == 6


def test_seed_slot_order_standard_patterns():
    assert seed_slot_order(2) == [1, 2]
    assert seed_slot_order(4) == [1, 4, 2, 3]
    assert seed_slot_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]


def test_seed_slot_order_pairs_sum_to_size_plus_one():
    order = seed_slot_order(16)
    assert sorted(order) == list(range(1, 17))
    for i in range(0, 16, 2):
        assert order[i] + order[i + 1] == 17


def test_seed_slot_order_top_two_in_opposite_halves():
    order = seed_slot_order(32)
    assert order.index(1) < 16
    assert order.index(2) >= 16


def test_seed_slot_order_rejects_non_power_of_two():
    with pytest.raises(ValueError):
        seed_slot_order(6)


def test_order_by_seeds_unseeded_follow_in_input_order():
    ids = [10, 11, 12, 13, 14]
    assert order_by_seeds(ids, {13: 1, 11: 2}) == [13, 11, 10, 12, 14]


def test_order_by_seeds_allows_gaps():
    assert order_by_seeds([1, 2, 3], {3: 5, 1: 9}) == [3, 1, 2]


def test_order_by_seeds_without_seeds_keeps_input():
    assert order_by_seeds([7, 3, 5]) == [7, 3, 5]


def test_validate_seed_mapping_errors():
    with pytest.raises(ValueError, match="unknown registrant 99"):
        validate_seed_mapping({99: 1}, [1, 2])
    with pytest.raises(ValueError, match="positive"):
        validate_seed_mapping({1: 0}, [1, 2])
    with pytest.raises(ValueError, match="Duplicate seed 1"):
        validate_seed_mapping({1: 1, 2: 1}, [1, 2])


def test_place_into_slots_byes_face_top_seeds():
    slots = place_into_slots([101, 102, 103, 104, 105], 8)
    # seed order [1, 8, 4, 5, 2, 7, 3, 6]; seeds 6-8 are missing
    assert slots == [101, None, 104, 105, 102, None, 103, None]


def test_place_into_slots_too_many():
    with pytest.raises(ValueError):
        place_into_slots([1, 2, 3], 2)

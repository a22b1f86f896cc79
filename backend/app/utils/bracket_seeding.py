"""
Bracket seeding helpers.

Deterministic rules for ordering registrants by seed and placing them into
first-round bracket slots so that top seeds meet as late as possible.
"""

from typing import Dict, List, Mapping, Optional, Sequence


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def rounds_for_size(bracket_size: int) -> int:
    """log2 of a power-of-two bracket size."""
    return bracket_size.bit_length() - 1


def seed_slot_order(bracket_size: int) -> List[int]:
    """
    Return the seed that occupies each first-round slot (slot order, 1-based seeds).

    Built by recursive pairing: every seed s in a bracket of size n is paired
    with (2n + 1 - s) when the bracket doubles.

        size 2 -> [1, 2]
        size 4 -> [1, 4, 2, 3]
        size 8 -> [1, 8, 4, 5, 2, 7, 3, 6]
    """
    if bracket_size < 1 or bracket_size & (bracket_size - 1):
        raise ValueError(f"bracket_size must be a power of two, got {bracket_size}")
    if bracket_size == 1:
        return [1]

    slots = [1, 2]
    while len(slots) < bracket_size:
        total = len(slots) * 2 + 1
        slots = [s for seed in slots for s in (seed, total - seed)]
    return slots


def validate_seed_mapping(seeds: Optional[Mapping[int, int]], registrant_ids: Sequence[int]) -> None:
    """Raise ValueError on unknown registrants, non-positive or duplicate seed numbers."""
    if not seeds:
        return
    known = set(registrant_ids)
    seen: Dict[int, int] = {}
    for registrant_id, seed in seeds.items():
        if registrant_id not in known:
            raise ValueError(f"Seed references unknown registrant {registrant_id}")
        if not isinstance(seed, int) or seed < 1:
            raise ValueError(f"Seed must be a positive integer, got {seed!r} for registrant {registrant_id}")
        if seed in seen:
            raise ValueError(f"Duplicate seed {seed} for registrants {seen[seed]} and {registrant_id}")
        seen[seed] = registrant_id


def order_by_seeds(registrant_ids: Sequence[int], seeds: Optional[Mapping[int, int]] = None) -> List[int]:
    """
    Order registrants strongest first.

    Seeded registrants come first by ascending seed; unseeded registrants follow
    in input order. Seed numbers only rank registrants, so gaps (1, 2, 5) are allowed.
    """
    validate_seed_mapping(seeds, registrant_ids)
    if not seeds:
        return list(registrant_ids)

    def sort_key(item):
        position, registrant_id = item
        seed = seeds.get(registrant_id)
        return (seed is None, seed if seed is not None else 0, position)

    return [rid for _, rid in sorted(enumerate(registrant_ids), key=sort_key)]


def place_into_slots(ordered_ids: Sequence[int], bracket_size: int) -> List[Optional[int]]:
    """
    Place registrants (strongest first) into first-round slots.

    Slots beyond the registrant count stay None (byes). Because the missing
    seeds are the weakest ones, byes land opposite the strongest seeds.
    """
    if len(ordered_ids) > bracket_size:
        raise ValueError(f"{len(ordered_ids)} registrants do not fit a bracket of {bracket_size}")

    slots: List[Optional[int]] = [None] * bracket_size
    for slot_index, seed in enumerate(seed_slot_order(bracket_size)):
        if seed <= len(ordered_ids):
            slots[slot_index] = ordered_ids[seed - 1]
    return slots

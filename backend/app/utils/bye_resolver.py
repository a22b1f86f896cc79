"""
Bye resolution for a bracket plan.

Works out, before anything is persisted, which matches complete automatically
and which downstream slots receive a registrant because of them. Cascades:
a match that becomes registrant-vs-BYE after an advancement is resolved too,
so no persisted match ever waits on a decision that byes already made.
"""

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Sequence

from app.utils.bracket_plan import LogicalMatch, Placeholder, is_registrant


class SlotKey(NamedTuple):
    bracket_position: int
    slot: int  # 1 or 2


@dataclass
class ByeResolution:
    # bracket_position -> registrant that wins without playing
    completed: Dict[int, int] = field(default_factory=dict)
    # (bracket_position, slot) -> registrant written into that slot
    advancements: Dict[SlotKey, int] = field(default_factory=dict)

    @property
    def auto_completed_positions(self) -> List[int]:
        return sorted(self.completed)


def resolve_byes(matches: Sequence[LogicalMatch]) -> ByeResolution:
    """
    Resolve all byes in a plan. The plan is not modified.

    Raises ValueError if a bye advancement would overwrite a slot that already
    holds a registrant.
    """
    occupants = {m.index: [m.occupant_a, m.occupant_b] for m in matches}
    by_index = {m.index: m for m in matches}
    resolution = ByeResolution()

    def winner_if_bye(index: int):
        a, b = occupants[index]
        if a == Placeholder.BYE and is_registrant(b):
            return b
        if b == Placeholder.BYE and is_registrant(a):
            return a
        return None

    queue = [m.index for m in matches if winner_if_bye(m.index) is not None]
    while queue:
        index = queue.pop(0)
        match = by_index[index]
        if match.bracket_position in resolution.completed:
            continue
        winner = winner_if_bye(index)
        resolution.completed[match.bracket_position] = winner

        target = match.winner_to
        if target is None:
            continue
        current = occupants[target.index][target.slot - 1]
        if is_registrant(current) and current != winner:
            raise ValueError(
                f"Bye at position {match.bracket_position} would overwrite registrant {current} "
                f"at position {target.index + 1} slot {target.slot}"
            )
        occupants[target.index][target.slot - 1] = winner
        resolution.advancements[SlotKey(target.index + 1, target.slot)] = winner
        if winner_if_bye(target.index) is not None:
            queue.append(target.index)

    return resolution

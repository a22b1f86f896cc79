"""
In-memory bracket plan: logical matches before persistence.

Matches live in a flat list (the arena); links between them are SlotRef values
holding list indices, translated to database ids only when rows are written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Union


class Placeholder(str, Enum):
    AWAITING = "awaiting"  # filled later by the winner/loser of an upstream match
    BYE = "bye"  # structurally empty; nobody will ever arrive


class BracketType(str, Enum):
    WINNERS = "winners"
    LOSERS = "losers"
    GRAND_FINAL = "grand-final"


Occupant = Union[int, Placeholder]


class SlotRef(NamedTuple):
    index: int  # arena index of the target match
    slot: int  # 1 or 2


def is_registrant(occupant: Occupant) -> bool:
    return not isinstance(occupant, Placeholder)


@dataclass
class LogicalMatch:
    index: int
    round_number: int
    match_number: int
    bracket_type: Optional[BracketType] = None
    occupant_a: Occupant = Placeholder.AWAITING
    occupant_b: Occupant = Placeholder.AWAITING
    winner_to: Optional[SlotRef] = None
    loser_to: Optional[SlotRef] = None
    is_third_place: bool = False
    is_reset: bool = False

    @property
    def bracket_position(self) -> int:
        return self.index + 1

    def occupant(self, slot: int) -> Occupant:
        return self.occupant_a if slot == 1 else self.occupant_b

    def set_occupant(self, slot: int, value: Occupant) -> None:
        if slot == 1:
            self.occupant_a = value
        else:
            self.occupant_b = value

    @property
    def is_bye(self) -> bool:
        """Exactly one real registrant, the other side structurally absent."""
        sides = (self.occupant_a, self.occupant_b)
        return Placeholder.BYE in sides and any(is_registrant(o) for o in sides)

    @property
    def bye_winner(self) -> Optional[int]:
        if not self.is_bye:
            return None
        return self.occupant_a if is_registrant(self.occupant_a) else self.occupant_b


@dataclass
class BracketPlan:
    matches: List[LogicalMatch]
    bracket_size: int
    winners_rounds: int
    losers_rounds: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def total_rounds(self) -> int:
        return self.winners_rounds + self.losers_rounds

    @property
    def bye_count(self) -> int:
        return sum(1 for m in self.matches if m.is_bye)

    def by_position(self, bracket_position: int) -> LogicalMatch:
        return self.matches[bracket_position - 1]

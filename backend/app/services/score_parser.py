"""
Set score parsing and best-of winner decision.

Supports:
  [{"a": 11, "b": 7}, {"a": 9, "b": 11}]  → structured sets
  "11-7 9-11 11-5"                         → space separated
  "11-7, 9-11, 11-5"                       → comma-separated variant

parse_score returns None on parse failure; decide_winner_slot raises ValueError
when the sets do not produce a winner for the event's best-of.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union


@dataclass
class ParsedScore:
    sets: List[Tuple[int, int]]  # (side_a, side_b) per set
    side_a_sets_won: int
    side_b_sets_won: int


def parse_score(score: Union[str, List[Any], None]) -> Optional[ParsedScore]:
    """Parse a score string or a list of set dicts / pairs. Returns None if unparseable."""
    if not score:
        return None
    if isinstance(score, str):
        return _parse_score_string(score.strip())
    if isinstance(score, list):
        return _parse_structured_sets(score)
    return None


def _summarize(sets: List[Tuple[int, int]]) -> ParsedScore:
    return ParsedScore(
        sets=sets,
        side_a_sets_won=sum(1 for a, b in sets if a > b),
        side_b_sets_won=sum(1 for a, b in sets if b > a),
    )


def _parse_structured_sets(sets_list: list) -> Optional[ParsedScore]:
    sets: List[Tuple[int, int]] = []
    for s in sets_list:
        try:
            if isinstance(s, dict):
                a, b = int(s.get("a", 0)), int(s.get("b", 0))
            else:
                a, b = int(s[0]), int(s[1])
        except (TypeError, ValueError, IndexError):
            return None
        sets.append((a, b))
    if not sets:
        return None
    return _summarize(sets)


def _parse_score_string(raw: str) -> Optional[ParsedScore]:
    """Parse strings like '11-7', '11-7 9-11 11-5', '11-7, 9-11, 11-5'."""
    # Normalize: replace commas with spaces, collapse whitespace
    parts = raw.replace(",", " ").split()

    sets: List[Tuple[int, int]] = []
    for part in parts:
        pair = part.split("-")
        if len(pair) != 2:
            return None
        try:
            sets.append((int(pair[0]), int(pair[1])))
        except ValueError:
            return None

    if not sets:
        return None
    return _summarize(sets)


def sets_needed(best_of: int) -> int:
    """Majority of a best-of: 3 → 2, 5 → 3."""
    return (best_of + 1) // 2


def decide_winner_slot(parsed: ParsedScore, best_of: int) -> int:
    """
    Return the winning slot (1 = side A, 2 = side B).

    Rejects drawn sets, more sets than best_of allows, sets entered after
    a side already reached the majority, equal set counts, and scores where
    nobody reached the majority.
    """
    if best_of < 1 or best_of % 2 == 0:
        raise ValueError(f"best_of must be a positive odd number, got {best_of}")
    if len(parsed.sets) > best_of:
        raise ValueError(f"{len(parsed.sets)} sets entered for a best of {best_of}")
    needed = sets_needed(best_of)
    won_a = won_b = 0
    for number, (a, b) in enumerate(parsed.sets, start=1):
        if a == b:
            raise ValueError(f"Set {number} is drawn ({a}-{b}); draws are not allowed")
        if won_a >= needed or won_b >= needed:
            raise ValueError(f"Set {number} was entered after a side had already reached {needed} sets")
        if a > b:
            won_a += 1
        else:
            won_b += 1

    if parsed.side_a_sets_won == parsed.side_b_sets_won:
        raise ValueError("Cannot determine winner: both sides won equal sets")
    if parsed.side_a_sets_won >= needed:
        return 1
    if parsed.side_b_sets_won >= needed:
        return 2
    raise ValueError(f"No side has reached {needed} sets yet")

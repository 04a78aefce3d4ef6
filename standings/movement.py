"""Movement classification shared by the main list, the cache and slow-path queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

UP = "up"
DOWN = "down"
SAME = "same"
NEW = "new"


@dataclass(frozen=True)
class Movement:
    last_move: str
    last_position: Optional[int] = None
    last_move_date: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "last_move": self.last_move,
            "last_position": self.last_position,
            "last_move_date": self.last_move_date.isoformat() if self.last_move_date else None,
        }


def classify(
    current_position: Optional[int],
    previous_position: Optional[int],
    previous_date: Optional[datetime] = None,
) -> Movement:
    """
    Compare two observations of the same item.

    Lower position numbers are better, so a drop in the number is ``up``.
    Without a previous observation (or without a current one) the item is
    ``new``.
    """
    if current_position is None or previous_position is None:
        return Movement(NEW)

    if current_position < previous_position:
        move = UP
    elif current_position > previous_position:
        move = DOWN
    else:
        move = SAME
    return Movement(move, previous_position, previous_date)

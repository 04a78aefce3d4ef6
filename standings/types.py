"""Results returned by the position query service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .models import LIST_SIZE
from .movement import Movement

SOURCE_CACHE = "cache"
SOURCE_COMPUTED = "computed"


@dataclass(frozen=True)
class CategoryPosition:
    category: str
    position: Optional[int]

    @property
    def on_list(self) -> bool:
        return self.position is not None

    def as_dict(self) -> dict:
        return {"category": self.category, "position": self.position, "on_list": self.on_list}


@dataclass(frozen=True)
class ContextItem:
    item_id: int
    title: str
    rank: int
    movement: Movement
    is_target: bool = False

    def as_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "title": self.title,
            "rank": self.rank,
            "is_target": self.is_target,
            **self.movement.as_dict(),
        }


@dataclass(frozen=True)
class ExactPosition:
    """The item is on the latest ``main`` snapshot."""

    item_id: int
    rank: int
    captured_at: datetime
    movement: Optional[Movement] = None
    category_positions: tuple[CategoryPosition, ...] = field(default_factory=tuple)

    is_on_main = True

    @property
    def ahead_count(self) -> int:
        return self.rank - 1

    def as_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "is_on_main": True,
            "rank": self.rank,
            "ahead_count": self.ahead_count,
            "to_climb": 0,
            "captured_at": self.captured_at.isoformat(),
            "movement": self.movement.as_dict() if self.movement else None,
            "category_positions": [c.as_dict() for c in self.category_positions],
        }


@dataclass(frozen=True)
class EstimatedPosition:
    """The item is below the observable top 50; ``rank`` is an estimate."""

    item_id: int
    rank: int
    ahead_count: int
    source: str
    captured_at: datetime
    context_items: tuple[ContextItem, ...] = field(default_factory=tuple)
    category_positions: tuple[CategoryPosition, ...] = field(default_factory=tuple)

    is_on_main = False

    @property
    def to_climb(self) -> int:
        """Places to gain before reaching the main list."""
        return max(0, self.ahead_count - (LIST_SIZE - 1))

    def as_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "is_on_main": False,
            "rank": self.rank,
            "ahead_count": self.ahead_count,
            "to_climb": self.to_climb,
            "source": self.source,
            "captured_at": self.captured_at.isoformat(),
            "context_items": [c.as_dict() for c in self.context_items],
            "category_positions": [c.as_dict() for c in self.category_positions],
        }

"""
Global position estimation from overlapping category leaderboards.

Only the ``main`` list exposes global positions, and only for its top 50.
Every other category list is a top 50 of a subset of items. Two pieces
combine them:

  1. AheadSetResolver - which items (heuristically) outrank a target.
  2. TournamentRanker - a deterministic order over a bounded candidate set,
     by counting how many other candidates beat each one in a shared list.

Both work on an in-memory ``LeaderboardBoard`` and never touch the database,
so concurrent callers only share immutable data.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from .exceptions import NoRecentData
from .models import LIST_SIZE, MAIN_CATEGORY


# --------------------------------------------------------------------------- #
# Ahead-Set Resolver
# --------------------------------------------------------------------------- #


class AheadSetResolver:
    """
    Approximates the set of items ranked at or above a target item.

    Steps:
      1. Seed with every item on ``main``.
      2. For each category listing the target, add every item above it.
      3. For each category NOT listing the target, add every item above the
         worst-placed ahead-set member on that list.

    Step 3 is a single pass in category-name order. Items added while
    handling one category count for the categories handled after it, but no
    category is revisited, so the result is an approximation rather than a
    transitive closure. With many categories missing the target this can
    over- or under-count. Do not change it to a fixpoint without also
    rebuilding the competitive zone cache under the new rule.
    """

    def __init__(self, board):
        self.board = board

    def resolve(self, item_id: int) -> set[int]:
        main = self.board.main
        if main is None:
            raise NoRecentData()

        ahead = set(main.item_ids)
        listed_in = self.board.positions_of(item_id)

        for category in sorted(listed_in):
            standing = self.board.standing(category)
            ahead.update(standing.items_above(listed_in[category]))

        for category in self.board.categories:
            if category in listed_in:
                continue
            standing = self.board.standing(category)
            threshold = standing.worst_position_among(ahead)
            if threshold is not None:
                ahead.update(standing.items_above(threshold))

        ahead.discard(item_id)
        return ahead


# --------------------------------------------------------------------------- #
# Tournament Ranker
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class RankedCandidate:
    item_id: int
    rank: int
    score: int
    best_position: Optional[int]


class TournamentRanker:
    """
    Orders candidates below the main list by beat-count.

    B beats A when both appear in at least one common category and B is
    placed better than A in ANY of the categories they share. A candidate's
    score is the number of distinct candidates beating it; lower is better.

    Ties break on best single-category position, then on item id, so equal
    inputs always produce equal output. A candidate listed nowhere scores
    ``len(candidates)``, worse than any achievable count, and sinks to the
    bottom.

    Cost is O(C^2 * G) in the worst case. C stays small (a few hundred)
    because candidates are always an ahead-set, never the whole catalog.
    """

    def __init__(self, board, first_rank: int = LIST_SIZE + 1):
        self.board = board
        self.first_rank = first_rank

    def position_map(self, candidates: Iterable[int]) -> dict[int, dict[str, int]]:
        """{item_id: {category: position}} restricted to non-main categories."""
        positions = {}
        for item_id in candidates:
            listed_in = self.board.positions_of(item_id)
            listed_in.pop(MAIN_CATEGORY, None)
            positions[item_id] = listed_in
        return positions

    @staticmethod
    def beat_counts(positions: dict[int, dict[str, int]]) -> dict[int, int]:
        # Walking each category list once finds, for every candidate, the
        # candidates placed above it there. The union over the candidate's
        # categories is exactly the set of candidates that beat it.
        members_by_category = defaultdict(list)
        for item_id, listed_in in positions.items():
            for category, position in listed_in.items():
                members_by_category[category].append((position, item_id))

        beaten_by = {item_id: set() for item_id in positions}
        for members in members_by_category.values():
            members.sort()
            for index, (position, item_id) in enumerate(members):
                for other_position, other_id in members[:index]:
                    if other_position < position:
                        beaten_by[item_id].add(other_id)

        unlisted_score = len(positions)
        return {
            item_id: len(beaten_by[item_id]) if positions[item_id] else unlisted_score
            for item_id in positions
        }

    def rank(self, candidates: Iterable[int]) -> list[RankedCandidate]:
        positions = self.position_map(candidates)
        scores = self.beat_counts(positions)

        def sort_key(item_id):
            listed_in = positions[item_id]
            best = min(listed_in.values()) if listed_in else math.inf
            return (scores[item_id], best, item_id)

        ranked = []
        for offset, item_id in enumerate(sorted(positions, key=sort_key)):
            listed_in = positions[item_id]
            ranked.append(
                RankedCandidate(
                    item_id=item_id,
                    rank=self.first_rank + offset,
                    score=scores[item_id],
                    best_position=min(listed_in.values()) if listed_in else None,
                )
            )
        return ranked

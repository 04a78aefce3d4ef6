"""
On-demand position lookups.

Three paths, cheapest first:
  1. Item on the latest ``main`` snapshot -> exact rank from the board.
  2. Item in the competitive zone cache   -> cached rank plus neighbours.
  3. Anything else                        -> resolver + ranker for that one
     item, computed privately and never written back to the cache.
"""

import logging
import math
import time

from django.conf import settings
from django.core.cache import cache as django_cache

from .cache import CompetitiveZoneCache
from .exceptions import NotRankable, RateLimited, StandingsError
from .models import LIST_SIZE, MAIN_CATEGORY, Item
from .movement import Movement, NEW, classify
from .ranking import AheadSetResolver, TournamentRanker
from .services import MainListService
from .snapshots import SnapshotStore
from .tags import categories_for_tags
from .types import (
    SOURCE_CACHE,
    SOURCE_COMPUTED,
    CategoryPosition,
    ContextItem,
    EstimatedPosition,
    ExactPosition,
)

logger = logging.getLogger(__name__)


class PositionQueryService:
    """
    Answers "where is this item globally?".

    Raises ``NoRecentData`` when there is no main snapshot to rank against,
    ``NotRankable`` for items that are unknown or have never been observed on
    any list, and ``RateLimited`` when the same item is looked up again within
    ``STANDINGS_LOOKUP_COOLDOWN_SECONDS``.
    """

    def __init__(self, store=None, cache=None):
        self._store = store or SnapshotStore()
        self._cache = cache or CompetitiveZoneCache(self._store)

    def get_position(self, item_id):
        try:
            item = Item.objects.get(pk=item_id)
        except Item.DoesNotExist:
            raise NotRankable(item_id) from None
        self._claim_lookup(item.id)
        return self._position_for(item, self._store.load())

    def get_position_by_external_id(self, external_id):
        try:
            item = Item.objects.get(external_id=external_id)
        except Item.DoesNotExist:
            raise NotRankable(external_id) from None
        self._claim_lookup(item.id)
        return self._position_for(item, self._store.load())

    def get_positions(self, item_ids) -> dict:
        """
        {item_id: position} for every item that could be resolved.

        The board is loaded once for the whole batch. Items that fail are
        logged and left out, including items still in their cooldown; a
        missing main snapshot still raises.
        """
        board = self._store.load()
        items = Item.objects.in_bulk(list(item_ids))
        results = {}
        for item_id in item_ids:
            item = items.get(item_id)
            if item is None:
                logger.warning(f"Position lookup skipped unknown item {item_id}.")
                continue
            try:
                self._claim_lookup(item_id)
                results[item_id] = self._position_for(item, board)
            except NotRankable as e:
                logger.info(f"Position lookup skipped: {e}")
            except StandingsError as e:
                logger.warning(f"Position lookup failed for item {item_id}: {e}")
        return results

    def category_positions(self, item, board) -> tuple:
        """
        The item's place in every category relevant to it.

        Relevant means mapped from its tags or observed on the board. Categories
        it is relevant to but not currently listed in report ``None``.
        """
        listed_in = board.positions_of(item.id)
        listed_in.pop(MAIN_CATEGORY, None)
        relevant = categories_for_tags(item.tags) | set(listed_in)
        return tuple(
            CategoryPosition(category, listed_in.get(category))
            for category in sorted(relevant)
        )

    def _claim_lookup(self, item_id):
        """Allow one lookup per item per cooldown window (0 disables the limit)."""
        cooldown = settings.STANDINGS_LOOKUP_COOLDOWN_SECONDS
        if not cooldown:
            return
        key = f"standings:lookup:{item_id}"
        now = time.time()
        if django_cache.add(key, now, timeout=cooldown):
            return
        last_lookup = django_cache.get(key, now)
        raise RateLimited(item_id, max(1, math.ceil(cooldown - (now - last_lookup))))

    # ── Paths ─────────────────────────────────────────────────────────────

    def _position_for(self, item, board):
        main_rank = board.main.position_of(item.id)
        if main_rank is not None:
            return ExactPosition(
                item_id=item.id,
                rank=main_rank,
                captured_at=board.captured_at,
                movement=self._main_movement(item.id, main_rank, board),
                category_positions=self.category_positions(item, board),
            )

        if not self._store.has_observations(item.id):
            raise NotRankable(item.id)

        entry = self._cache.get_position(item.id)
        # An entry at 50 or better is left over from when the item was on main.
        if entry is not None and entry.is_estimated:
            return self._from_cache(item, entry, board)
        return self._compute(item, board, entry)

    def _main_movement(self, item_id, main_rank, board):
        entry = self._cache.get_position(item_id)
        if entry is None:
            return MainListService(board).movements()[item_id][1]
        if entry.estimated_position == main_rank:
            return entry.movement
        # The item moved since the last rebuild.
        return classify(main_rank, entry.estimated_position, entry.updated_at)

    def _from_cache(self, item, entry, board):
        radius = settings.STANDINGS_CONTEXT_RADIUS
        rank = entry.estimated_position
        neighbours = self._cache.get_range(rank - radius, rank + radius)
        context = tuple(
            ContextItem(
                item_id=neighbour.item_id,
                title=neighbour.item.title,
                rank=neighbour.estimated_position,
                movement=neighbour.movement,
                is_target=neighbour.item_id == item.id,
            )
            for neighbour in neighbours
        )
        return EstimatedPosition(
            item_id=item.id,
            rank=rank,
            ahead_count=rank - 1,
            source=SOURCE_CACHE,
            captured_at=board.captured_at,
            context_items=context,
            category_positions=self.category_positions(item, board),
        )

    def _compute(self, item, board, entry=None):
        ahead = AheadSetResolver(board).resolve(item.id)
        ranked = TournamentRanker(board).rank(ahead - set(board.main.item_ids))
        rank = LIST_SIZE + 1 + len(ranked)
        logger.debug(
            f"Computed position for item {item.id}: #{rank} "
            f"({len(ahead)} ahead, {len(ranked)} ranked below main)."
        )

        radius = settings.STANDINGS_CONTEXT_RADIUS
        nearby = ranked[-radius:] if radius else []
        neighbour_ids = [candidate.item_id for candidate in nearby]
        titles = dict(Item.objects.filter(pk__in=neighbour_ids + [item.id]).values_list("id", "title"))
        cached = {
            zone_entry.item_id: zone_entry
            for zone_entry in self._cache.get_entries(neighbour_ids)
        }

        context = [
            ContextItem(
                item_id=candidate.item_id,
                title=titles.get(candidate.item_id, ""),
                rank=candidate.rank,
                movement=self._movement_against(candidate.rank, cached.get(candidate.item_id)),
            )
            for candidate in nearby
        ]
        context.append(
            ContextItem(
                item_id=item.id,
                title=titles.get(item.id, item.title),
                rank=rank,
                movement=self._movement_against(rank, entry),
                is_target=True,
            )
        )

        return EstimatedPosition(
            item_id=item.id,
            rank=rank,
            ahead_count=rank - 1,
            source=SOURCE_COMPUTED,
            captured_at=board.captured_at,
            context_items=tuple(context),
            category_positions=self.category_positions(item, board),
        )

    @staticmethod
    def _movement_against(rank, entry):
        if entry is None:
            return Movement(NEW)
        return classify(rank, entry.estimated_position, entry.updated_at)

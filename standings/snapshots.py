"""
Read side of the leaderboard snapshots written by the external collector.

The collector writes one batch of category lists roughly every 15 minutes,
all rows of a batch sharing ``captured_at``. Categories occasionally fail to
scrape, so a batch can be incomplete: such categories fall back to their own
latest snapshot. ``SnapshotStore.load()`` turns the result into an immutable
``LeaderboardBoard`` that the ranking code works on without touching the
database again.
"""

import logging
from datetime import timedelta
from functools import reduce
from operator import or_
from types import MappingProxyType

from django.conf import settings
from django.db.models import Max, Q
from django.utils import timezone

from .exceptions import NoRecentData, PartialCategoryData
from .models import MAIN_CATEGORY, LeaderboardSnapshot

logger = logging.getLogger(__name__)


class CategoryStanding:
    """One category's leaderboard at a single capture time."""

    def __init__(self, category, captured_at, rows):
        self.category = category
        self.captured_at = captured_at
        ordered = sorted(rows, key=lambda row: row[1])
        self.item_ids = tuple(item_id for item_id, _ in ordered)
        self.positions = MappingProxyType({item_id: position for item_id, position in ordered})

    def __len__(self):
        return len(self.item_ids)

    def __contains__(self, item_id):
        return item_id in self.positions

    def position_of(self, item_id):
        return self.positions.get(item_id)

    def items_above(self, position):
        """Items with a strictly better (lower) position."""
        return [item_id for item_id in self.item_ids if self.positions[item_id] < position]

    def worst_position_among(self, item_ids):
        """Highest position number held by any of ``item_ids``, or None."""
        worst = None
        for item_id in item_ids:
            position = self.positions.get(item_id)
            if position is not None and (worst is None or position > worst):
                worst = position
        return worst


class LeaderboardBoard:
    """
    Latest standing of every category, indexed both ways.

    ``captured_at`` is the newest batch timestamp; individual standings may be
    older when their category fell back.
    """

    def __init__(self, captured_at, standings):
        self.captured_at = captured_at
        self._standings = MappingProxyType(dict(standings))
        by_item = {}
        for category, standing in self._standings.items():
            for item_id, position in standing.positions.items():
                by_item.setdefault(item_id, {})[category] = position
        self._by_item = MappingProxyType(by_item)

    @property
    def main(self):
        return self._standings.get(MAIN_CATEGORY)

    @property
    def categories(self):
        return sorted(self._standings)

    def standing(self, category):
        return self._standings.get(category)

    def positions_of(self, item_id):
        """{category: position} for every category the item is listed in."""
        return dict(self._by_item.get(item_id, {}))

    def is_listed(self, item_id):
        return item_id in self._by_item


class SnapshotStore:
    """Builds ``LeaderboardBoard`` objects from ``LeaderboardSnapshot`` rows."""

    def _settled_cutoff(self):
        return timezone.now() - timedelta(seconds=settings.STANDINGS_SNAPSHOT_SETTLE_SECONDS)

    def latest_snapshot_at(self):
        """Timestamp of the newest fully written batch, or None."""
        return (
            LeaderboardSnapshot.objects
            .filter(captured_at__lte=self._settled_cutoff())
            .aggregate(latest=Max("captured_at"))["latest"]
        )

    def has_observations(self, item_id):
        return LeaderboardSnapshot.objects.filter(item_id=item_id).exists()

    def load(self):
        """
        Load the latest complete board.

        Raises NoRecentData when no ``main`` snapshot has been captured.
        """
        latest_by_category = dict(
            LeaderboardSnapshot.objects
            .filter(captured_at__lte=self._settled_cutoff())
            .values("category")
            .annotate(latest=Max("captured_at"))
            .values_list("category", "latest")
        )
        if MAIN_CATEGORY not in latest_by_category:
            raise NoRecentData()

        batch_at = max(latest_by_category.values())
        stale_hours = settings.STANDINGS_CATEGORY_STALE_HOURS
        stale_before = batch_at - timedelta(hours=stale_hours) if stale_hours else None

        selected = {}
        for category in sorted(latest_by_category):
            try:
                selected[category] = self._batch_timestamp(category, batch_at, latest_by_category)
            except PartialCategoryData as e:
                logger.debug(f"{e}; using its latest snapshot instead.")
                captured_at = latest_by_category[category]
                if stale_before and category != MAIN_CATEGORY and captured_at < stale_before:
                    logger.debug(f"Dropping stale category '{category}' (last seen {captured_at}).")
                    continue
                selected[category] = captured_at

        rows_by_category = {category: [] for category in selected}
        snapshot_filter = reduce(
            or_,
            (Q(category=category, captured_at=captured_at) for category, captured_at in selected.items()),
        )
        for category, item_id, position in (
            LeaderboardSnapshot.objects
            .filter(snapshot_filter)
            .values_list("category", "item_id", "position")
        ):
            rows_by_category[category].append((item_id, position))

        standings = {
            category: CategoryStanding(category, selected[category], rows)
            for category, rows in rows_by_category.items()
        }
        return LeaderboardBoard(batch_at, standings)

    @staticmethod
    def _batch_timestamp(category, batch_at, latest_by_category):
        # A category is part of the batch only if its newest rows carry the batch timestamp.
        if latest_by_category[category] != batch_at:
            raise PartialCategoryData(category, batch_at)
        return batch_at

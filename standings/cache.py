"""
Competitive zone cache.

Holds estimated positions for the main list plus the items just below it,
so position lookups for the items most likely to break into the top 50 are
a single row read. The cache is owned by ``rebuild()``: nothing else writes
to ``CompetitiveZoneEntry``.

A rebuild computes the whole next generation in memory first and only then
writes it in one transaction (upsert everything, delete whatever fell out),
so readers see either the old generation or the new one.
"""

import logging
import threading
import time

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Max, Min
from django.utils import timezone

from .exceptions import CacheRebuildFailure
from .models import CompetitiveZoneEntry
from .movement import NEW, SAME, UP, DOWN, Movement, classify
from .ranking import AheadSetResolver, TournamentRanker
from .services import MainListService
from .snapshots import SnapshotStore

logger = logging.getLogger(__name__)


class CompetitiveZoneCache:
    """
    Explicit store for the competitive zone.

    Created empty, filled by the first ``rebuild()`` and wholly replaced by
    every later one. Rebuilds on one instance never overlap: a call made
    while another is running returns None immediately.
    """

    def __init__(self, store=None):
        self._store = store or SnapshotStore()
        self._rebuild_lock = threading.Lock()

    # ── Rebuild ───────────────────────────────────────────────────────────

    def rebuild(self):
        """
        Recompute ranks and movement for the whole competitive zone.

        Returns a summary dict, or None if a rebuild was already running.
        Raises CacheRebuildFailure if the rebuild aborts; the previous
        generation is then left untouched.
        """
        if not self._rebuild_lock.acquire(blocking=False):
            logger.warning("Competitive zone rebuild already running; skipping.")
            return None
        try:
            return self._rebuild()
        except CacheRebuildFailure:
            raise
        except Exception as e:
            raise CacheRebuildFailure(f"Competitive zone rebuild failed: {e}") from e
        finally:
            self._rebuild_lock.release()

    def _rebuild(self):
        started = time.monotonic()
        generated_at = timezone.now()
        logger.info("Starting competitive zone rebuild...")

        board = self._store.load()
        reference_id = self.find_reference_item(board)
        if reference_id is None:
            raise CacheRebuildFailure(
                f"No reference item in category '{settings.STANDINGS_REFERENCE_CATEGORY}'"
            )

        ahead = AheadSetResolver(board).resolve(reference_id)
        main_ids = set(board.main.item_ids)
        ranked = TournamentRanker(board).rank(ahead - main_ids)
        main_movements = MainListService(board).movements()

        previous = {entry.item_id: entry for entry in CompetitiveZoneEntry.objects.all()}

        generation = []
        for item_id, (position, movement) in main_movements.items():
            if movement.last_move == NEW and item_id in previous:
                movement = self._diff(position, previous[item_id])
            generation.append((item_id, position, movement))
        for candidate in ranked:
            movement = self._diff(candidate.rank, previous.get(candidate.item_id))
            generation.append((candidate.item_id, candidate.rank, movement))

        removed = self._commit(generation, previous, generated_at)

        moves = [movement.last_move for _, _, movement in generation]
        summary = {
            "generated_at": generated_at.isoformat(),
            "reference_item_id": reference_id,
            "total": len(generation),
            "main": len(main_movements),
            "estimated": len(ranked),
            "moved": moves.count(UP) + moves.count(DOWN),
            "same": moves.count(SAME),
            "new": moves.count(NEW),
            "removed": removed,
            "elapsed_ms": round((time.monotonic() - started) * 1000),
        }
        positions = [position for _, position, _ in generation]
        logger.info(
            f"Competitive zone rebuilt in {summary['elapsed_ms']}ms: "
            f"{summary['total']} items ({summary['main']} main, {summary['estimated']} estimated), "
            f"{summary['moved']} moved, {summary['same']} unchanged, {summary['new']} new, "
            f"{removed} removed, positions #{min(positions)}-#{max(positions)}."
        )
        return summary

    @staticmethod
    def find_reference_item(board):
        """
        Item that bounds the zone population.

        The item at the configured position of a low-traffic category; if
        that list is shorter, its last item.
        """
        standing = board.standing(settings.STANDINGS_REFERENCE_CATEGORY)
        if standing is None or not len(standing):
            return None
        target = settings.STANDINGS_REFERENCE_POSITION
        for item_id in standing.item_ids:
            if standing.positions[item_id] == target:
                return item_id
        return standing.item_ids[-1]

    @staticmethod
    def _diff(rank, existing):
        """Movement of a recomputed rank against the item's previous cache entry."""
        if existing is None:
            return Movement(NEW)
        movement = classify(rank, existing.estimated_position, existing.updated_at)
        if movement.last_move == SAME:
            # Keep the baseline of the last real change.
            return Movement(SAME, existing.last_position, existing.last_move_date)
        return movement

    @staticmethod
    def _commit(generation, previous, generated_at):
        to_update = []
        to_create = []
        for item_id, position, movement in generation:
            entry = previous.get(item_id)
            if entry is None:
                entry = CompetitiveZoneEntry(item_id=item_id)
                to_create.append(entry)
            else:
                to_update.append(entry)
            entry.estimated_position = position
            entry.last_move = movement.last_move
            entry.last_position = movement.last_position
            entry.last_move_date = movement.last_move_date
            entry.updated_at = generated_at

        stale_ids = set(previous) - {item_id for item_id, _, _ in generation}
        with transaction.atomic():
            CompetitiveZoneEntry.objects.bulk_update(
                to_update,
                ["estimated_position", "last_move", "last_position", "last_move_date", "updated_at"],
                batch_size=500,
            )
            CompetitiveZoneEntry.objects.bulk_create(to_create, batch_size=500)
            if stale_ids:
                CompetitiveZoneEntry.objects.filter(item_id__in=stale_ids).delete()
        return len(stale_ids)

    # ── Reads ─────────────────────────────────────────────────────────────

    def get_position(self, item_id):
        return CompetitiveZoneEntry.objects.filter(item_id=item_id).first()

    def get_entries(self, item_ids):
        return list(CompetitiveZoneEntry.objects.filter(item_id__in=item_ids))

    def get_range(self, start, end):
        """Entries with ``start <= estimated_position <= end``, best first."""
        return list(
            CompetitiveZoneEntry.objects
            .filter(estimated_position__gte=start, estimated_position__lte=end)
            .select_related("item")
            .order_by("estimated_position", "item_id")
        )

    def stats(self):
        aggregates = CompetitiveZoneEntry.objects.aggregate(
            total_entries=Count("id"),
            min_position=Min("estimated_position"),
            max_position=Max("estimated_position"),
            last_updated=Max("updated_at"),
        )
        last_updated = aggregates["last_updated"]
        return {
            "total_entries": aggregates["total_entries"],
            "min_position": aggregates["min_position"],
            "max_position": aggregates["max_position"],
            "last_updated": last_updated.isoformat() if last_updated else None,
        }

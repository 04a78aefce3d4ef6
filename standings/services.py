"""
Service classes for the main list, its movement indicators, and best
position records.

Snapshot rows are produced by an external collector; nothing here writes
them. The heavier global estimation lives in ``ranking.py``.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Min
from django.utils import timezone

from .models import MAIN_CATEGORY, BestPositionRecord, Item, LeaderboardSnapshot
from .movement import classify

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Main List
# --------------------------------------------------------------------------- #


class MainListService:
    """
    Exact positions 1-50 of the latest ``main`` snapshot with movement.

    Movement compares each item's current position to the most recent
    earlier ``main`` observation that differs from it, looking back at most
    ``STANDINGS_MOVEMENT_LOOKBACK_DAYS``:
      - a differing observation exists  -> up / down against it
      - only equal observations exist   -> same
      - no earlier observation at all   -> new
    """

    def __init__(self, board):
        self.board = board

    def movements(self) -> dict:
        """{item_id: (position, Movement)} for every item on main."""
        main = self.board.main
        if main is None:
            return {}

        window_start = main.captured_at - timedelta(days=settings.STANDINGS_MOVEMENT_LOOKBACK_DAYS)
        history = (
            LeaderboardSnapshot.objects
            .filter(
                category=MAIN_CATEGORY,
                item_id__in=main.item_ids,
                captured_at__lt=main.captured_at,
                captured_at__gte=window_start,
            )
            .order_by("item_id", "-captured_at")
            .values_list("item_id", "position", "captured_at")
        )

        latest_seen = {}
        latest_different = {}
        for item_id, position, captured_at in history:
            latest_seen.setdefault(item_id, (position, captured_at))
            if item_id not in latest_different and position != main.positions[item_id]:
                latest_different[item_id] = (position, captured_at)

        result = {}
        for item_id in main.item_ids:
            current = main.positions[item_id]
            previous = latest_different.get(item_id) or latest_seen.get(item_id)
            if previous is None:
                result[item_id] = (current, classify(current, None))
            else:
                result[item_id] = (current, classify(current, *previous))
        return result

    def get_main_list(self) -> list[dict]:
        """Main list entries with item metadata, movement and days on list."""
        main = self.board.main
        if main is None:
            return []

        movements = self.movements()
        items = Item.objects.in_bulk(main.item_ids)
        first_seen = dict(
            LeaderboardSnapshot.objects
            .filter(category=MAIN_CATEGORY, item_id__in=main.item_ids)
            .values("item_id")
            .annotate(first_seen=Min("captured_at"))
            .values_list("item_id", "first_seen")
        )

        entries = []
        for item_id in main.item_ids:
            position, movement = movements[item_id]
            item = items.get(item_id)
            first_seen_at = first_seen.get(item_id, main.captured_at)
            entries.append({
                "position": position,
                "item_id": item_id,
                "title": item.title if item else "",
                "author_name": item.author_name if item else "",
                "external_id": item.external_id if item else "",
                "cover_url": item.cover_url if item else "",
                "first_seen_at": first_seen_at.isoformat(),
                "days_on_list": (main.captured_at - first_seen_at).days + 1,
                **movement.as_dict(),
            })
        return entries


# --------------------------------------------------------------------------- #
# Best Positions
# --------------------------------------------------------------------------- #


class BestPositionTracker:
    """
    Maintains ``BestPositionRecord`` rows.

    A record only ever moves to a strictly better position. Records are
    refreshed before old snapshots are pruned, so they outlive the raw rows.
    """

    def update_all(self) -> dict:
        """
        Fold every stored snapshot row into the best position records.

        Returns counts of updated and inserted records.
        """
        best = {}
        rows = (
            LeaderboardSnapshot.objects
            .order_by("captured_at")
            .values_list("item_id", "category", "position", "captured_at")
        )
        for item_id, category, position, captured_at in rows.iterator():
            key = (item_id, category)
            # Rows arrive oldest first, so the first time a position is seen is kept.
            if key not in best or position < best[key][0]:
                best[key] = (position, captured_at)

        existing = {
            (record.item_id, record.category): record
            for record in BestPositionRecord.objects.all()
        }

        updated = 0
        to_insert = []
        with transaction.atomic():
            for (item_id, category), (position, achieved_at) in best.items():
                record = existing.get((item_id, category))
                if record is None:
                    to_insert.append(
                        BestPositionRecord(
                            item_id=item_id,
                            category=category,
                            best_position=position,
                            first_achieved_at=achieved_at,
                            first_day_on_list=achieved_at.date(),
                        )
                    )
                elif record.improve(position, achieved_at):
                    record.save(update_fields=["best_position", "first_achieved_at", "last_updated_at"])
                    updated += 1
            BestPositionRecord.objects.bulk_create(to_insert)

        logger.info(f"Best positions updated: {updated} improved, {len(to_insert)} inserted.")
        return {"updated": updated, "inserted": len(to_insert)}

    def record(self, item_id, category, position, observed_at=None) -> bool:
        """Fold a single observation in. Returns True if a record changed."""
        observed_at = observed_at or timezone.now()
        record, created = BestPositionRecord.objects.get_or_create(
            item_id=item_id,
            category=category,
            defaults={
                "best_position": position,
                "first_achieved_at": observed_at,
                "first_day_on_list": observed_at.date(),
            },
        )
        if created:
            return True
        if record.improve(position, observed_at):
            record.save(update_fields=["best_position", "first_achieved_at", "last_updated_at"])
            return True
        return False

    def get_best_position(self, item_id, category):
        """Best of the stored record and the snapshot rows still on disk."""
        candidates = []
        record = BestPositionRecord.objects.filter(item_id=item_id, category=category).first()
        if record:
            candidates.append(record.best_position)
        live = (
            LeaderboardSnapshot.objects
            .filter(item_id=item_id, category=category)
            .aggregate(best=Min("position"))["best"]
        )
        if live is not None:
            candidates.append(live)
        return min(candidates) if candidates else None

    def get_all_best_positions(self, item_id) -> dict:
        """{category: best position} across records and live snapshot rows."""
        positions = dict(
            BestPositionRecord.objects
            .filter(item_id=item_id)
            .values_list("category", "best_position")
        )
        live = (
            LeaderboardSnapshot.objects
            .filter(item_id=item_id)
            .values("category")
            .annotate(best=Min("position"))
            .values_list("category", "best")
        )
        for category, best in live:
            if category not in positions or best < positions[category]:
                positions[category] = best
        return positions


def prune_snapshots() -> int:
    """
    Delete snapshot rows older than the retention window.

    The window never drops below the movement lookback, which needs the
    older rows.
    """
    days = max(
        settings.STANDINGS_SNAPSHOT_RETENTION_DAYS,
        settings.STANDINGS_MOVEMENT_LOOKBACK_DAYS,
    )
    cutoff = timezone.now() - timedelta(days=days)
    deleted_count, _ = LeaderboardSnapshot.objects.filter(captured_at__lt=cutoff).delete()
    if deleted_count:
        logger.info(f"Pruned {deleted_count} snapshot rows older than {days} days.")
    return deleted_count

"""
Tests for the competitive zone cache.

Uses the ``zone`` fixture from conftest: five items on main at 1-5 plus
four estimated items at 51-54.
"""

import pytest

from standings.cache import CompetitiveZoneCache
from standings.exceptions import CacheRebuildFailure
from standings.models import CompetitiveZoneEntry
from standings.movement import DOWN, NEW, SAME, UP

pytestmark = pytest.mark.django_db


def entries():
    return {entry.item_id: entry for entry in CompetitiveZoneEntry.objects.all()}


# =============================================================================
# REBUILD
# =============================================================================

class TestRebuild:

    def test_first_generation(self, zone):
        summary = CompetitiveZoneCache().rebuild()

        assert summary["total"] == 9
        assert summary["main"] == 5
        assert summary["estimated"] == 4
        assert summary["new"] == 9
        assert summary["reference_item_id"] == zone.ref.id

        cached = entries()
        assert {item.id: cached[item.id].estimated_position for item in zone.main} == {
            item.id: position for position, item in enumerate(zone.main, start=1)
        }
        assert [cached[x.id].estimated_position for x in (zone.x1, zone.x2, zone.x3, zone.x4)] == [51, 52, 53, 54]
        assert zone.ref.id not in cached
        assert all(entry.last_move == NEW for entry in cached.values())

    def test_every_entry_shares_the_generation_timestamp(self, zone):
        CompetitiveZoneCache().rebuild()
        assert CompetitiveZoneEntry.objects.order_by().values("updated_at").distinct().count() == 1

    def test_rebuild_without_new_data_reports_same(self, zone):
        cache = CompetitiveZoneCache()
        cache.rebuild()
        before = {item_id: entry.estimated_position for item_id, entry in entries().items()}

        summary = cache.rebuild()

        after = entries()
        assert {item_id: entry.estimated_position for item_id, entry in after.items()} == before
        assert summary["same"] == 9
        assert all(entry.last_move == SAME for entry in after.values())

    def test_same_keeps_the_new_baseline(self, zone):
        cache = CompetitiveZoneCache()
        cache.rebuild()
        cache.rebuild()

        entry = entries()[zone.x2.id]
        assert entry.estimated_position == 52
        assert entry.last_move == SAME
        assert entry.last_position is None
        assert entry.last_move_date is None

    def test_rank_change_records_previous_rank_and_generation(self, zone, capture, batch_time):
        cache = CompetitiveZoneCache()
        cache.rebuild()
        first_generation = entries()[zone.x1.id].updated_at

        capture({"main": zone.main, "mystery": [zone.main[0], zone.x2, zone.x1, zone.x3, zone.x4, zone.ref]}, batch_time)
        cache.rebuild()

        cached = entries()
        assert cached[zone.x2.id].estimated_position == 51
        assert cached[zone.x2.id].last_move == UP
        assert cached[zone.x2.id].last_position == 52
        assert cached[zone.x2.id].last_move_date == first_generation
        assert cached[zone.x1.id].last_move == DOWN
        assert cached[zone.x1.id].last_position == 51

    def test_same_preserves_movement_metadata(self, zone, capture, batch_time):
        cache = CompetitiveZoneCache()
        cache.rebuild()
        capture({"main": zone.main, "mystery": [zone.main[0], zone.x2, zone.x1, zone.x3, zone.x4, zone.ref]}, batch_time)
        cache.rebuild()
        moved = entries()[zone.x2.id]

        cache.rebuild()

        entry = entries()[zone.x2.id]
        assert entry.last_move == SAME
        assert entry.estimated_position == 51
        assert entry.last_position == moved.last_position == 52
        assert entry.last_move_date == moved.last_move_date

    def test_item_leaving_the_zone_is_deleted(self, zone, items, capture, batch_time):
        cache = CompetitiveZoneCache()
        cache.rebuild()
        assert zone.x3.id in entries()

        (newcomer,) = items(1)
        capture({"main": zone.main, "mystery": [zone.main[0], zone.x1, zone.x2, zone.x4, newcomer, zone.ref]}, batch_time)
        summary = cache.rebuild()

        cached = entries()
        assert zone.x3.id not in cached
        assert cached[newcomer.id].last_move == NEW
        assert summary["removed"] == 1
        assert summary["total"] == 9

    def test_estimated_item_joining_main_is_diffed_against_cache(self, zone, capture, batch_time):
        cache = CompetitiveZoneCache()
        cache.rebuild()

        new_main = zone.main[:4] + [zone.x2]
        capture({"main": new_main, "mystery": [zone.main[0], zone.x1, zone.x3, zone.x4, zone.main[4], zone.ref]}, batch_time)
        cache.rebuild()

        entry = entries()[zone.x2.id]
        assert entry.estimated_position == 5
        assert entry.last_move == UP
        assert entry.last_position == 52

    def test_reference_falls_back_to_last_listed_item(self, zone, settings):
        settings.STANDINGS_REFERENCE_POSITION = 50
        summary = CompetitiveZoneCache().rebuild()
        assert summary["reference_item_id"] == zone.ref.id

    def test_missing_reference_category_fails_and_keeps_previous_generation(self, zone, settings):
        cache = CompetitiveZoneCache()
        cache.rebuild()
        before = entries()

        settings.STANDINGS_REFERENCE_CATEGORY = "horror"
        with pytest.raises(CacheRebuildFailure):
            cache.rebuild()

        assert entries().keys() == before.keys()

    def test_no_data_is_wrapped(self):
        with pytest.raises(CacheRebuildFailure):
            CompetitiveZoneCache().rebuild()

    def test_overlapping_rebuild_is_skipped(self, zone):
        cache = CompetitiveZoneCache()
        cache._rebuild_lock.acquire()
        try:
            assert cache.rebuild() is None
        finally:
            cache._rebuild_lock.release()

        assert CompetitiveZoneEntry.objects.count() == 0
        assert cache.rebuild() is not None


# =============================================================================
# READS
# =============================================================================

class TestReads:

    def test_get_position(self, zone):
        cache = CompetitiveZoneCache()
        assert cache.get_position(zone.x1.id) is None
        cache.rebuild()
        assert cache.get_position(zone.x1.id).estimated_position == 51
        assert cache.get_position(zone.ref.id) is None

    def test_get_range_is_ordered_and_inclusive(self, zone):
        cache = CompetitiveZoneCache()
        cache.rebuild()

        window = cache.get_range(52, 54)

        assert [entry.estimated_position for entry in window] == [52, 53, 54]
        assert [entry.item.title for entry in window] == [zone.x2.title, zone.x3.title, zone.x4.title]

    def test_stats(self, zone):
        cache = CompetitiveZoneCache()
        assert cache.stats()["total_entries"] == 0

        cache.rebuild()
        stats = cache.stats()

        assert stats["total_entries"] == 9
        assert stats["min_position"] == 1
        assert stats["max_position"] == 54
        assert stats["last_updated"] is not None

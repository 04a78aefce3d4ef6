"""
Shared fixtures for the standings tests.

Pure algorithm tests build boards in memory with ``make_board``; ORM-backed
tests write snapshot rows through the ``capture`` fixture.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from django.core.cache import cache
from django.utils import timezone

from standings import scheduler
from standings.models import Item, LeaderboardSnapshot
from standings.snapshots import CategoryStanding, LeaderboardBoard


# =============================================================================
# IN-MEMORY BOARDS
# =============================================================================

def make_board(lists, captured_at=None):
    """
    Build a board from {category: [item_id, ...]} with positions 1, 2, ...

    Item ids are plain ints; nothing touches the database.
    """
    captured_at = captured_at or timezone.now()
    standings = {
        category: CategoryStanding(
            category,
            captured_at,
            [(item_id, position) for position, item_id in enumerate(item_ids, start=1)],
        )
        for category, item_ids in lists.items()
    }
    return LeaderboardBoard(captured_at, standings)


# =============================================================================
# DATABASE HELPERS
# =============================================================================

def make_item(n, tags=None) -> Item:
    return Item.objects.create(
        title=f"Item {n}",
        author_name=f"Author {n}",
        external_id=f"ext-{n}",
        tags=tags or [],
    )


@pytest.fixture
def items():
    """Factory: ``items(count, tags=None)`` creates and returns that many items."""
    counter = {"n": 0}

    def create(count, tags=None):
        created = []
        for _ in range(count):
            counter["n"] += 1
            created.append(make_item(counter["n"], tags=tags))
        return created

    return create


@pytest.fixture
def batch_time():
    """A capture time old enough to be settled."""
    return timezone.now() - timedelta(hours=1)


@pytest.fixture
def capture():
    """
    Factory: ``capture({category: [Item, ...]}, captured_at)`` writes one batch
    of snapshot rows, positions following list order.
    """

    def write(lists, captured_at):
        rows = [
            LeaderboardSnapshot(category=category, item=item, position=position, captured_at=captured_at)
            for category, category_items in lists.items()
            for position, item in enumerate(category_items, start=1)
        ]
        LeaderboardSnapshot.objects.bulk_create(rows)
        return captured_at

    return write


@pytest.fixture(autouse=True)
def reset_scheduler_state():
    scheduler._update_status(
        running=False,
        started_at=None,
        last_completed_at=None,
        last_generation_size=None,
        error=None,
    )
    scheduler._cache = None
    yield


@pytest.fixture(autouse=True)
def no_lookup_cooldown(settings):
    """Lookups repeat freely unless a test sets a cooldown itself."""
    settings.STANDINGS_LOOKUP_COOLDOWN_SECONDS = 0
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# COMPETITIVE ZONE
# =============================================================================

@pytest.fixture
def zone(items, capture, batch_time, settings):
    """
    Five items on main and a mystery list whose sixth entry is the reference
    item (the reference position is lowered to 6 so lists stay short). Four
    non-main items sit above the reference, so a rebuild caches the main
    items at 1-5 plus x1-x4 at 51-54.
    """
    settings.STANDINGS_REFERENCE_POSITION = 6
    settings.STANDINGS_REFERENCE_CATEGORY = "mystery"
    main = items(5)
    x1, x2, x3, x4 = items(4)
    (ref,) = items(1)
    first_at = batch_time - timedelta(minutes=30)
    capture({"main": main, "mystery": [main[0], x1, x2, x3, x4, ref]}, first_at)
    return SimpleNamespace(main=main, x1=x1, x2=x2, x3=x3, x4=x4, ref=ref, first_at=first_at)

"""
Background maintenance scheduler for the standings engine.

Runs a daemon thread that periodically rebuilds the competitive zone cache.
Status is kept in memory so the status endpoint can report on the last
cycle without touching the database.

Each cycle:
  - Rebuilds the competitive zone cache.
  - Folds new snapshot rows into the best position records.
  - Prunes snapshot rows past the retention window (after the records, so
    no best position is lost with its rows).
"""

import logging
import threading
import time

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

# ── In-memory status (single-worker) ──────────────────────────────────────

_status_lock = threading.Lock()
_cycle_status = {
    "running": False,
    "started_at": None,
    "last_completed_at": None,
    "last_generation_size": None,
    "error": None,
}

_cache = None
_cache_lock = threading.Lock()


def get_status():
    """Return a snapshot of the current cycle status."""
    with _status_lock:
        return dict(_cycle_status)


def _update_status(**kwargs):
    with _status_lock:
        _cycle_status.update(kwargs)


def _claim_cycle():
    with _status_lock:
        if _cycle_status["running"]:
            return False
        _cycle_status.update(running=True, started_at=timezone.now().isoformat(), error=None)
        return True


def get_cache():
    """The process-wide cache instance, so every rebuild shares one lock."""
    global _cache
    with _cache_lock:
        if _cache is None:
            from .cache import CompetitiveZoneCache

            _cache = CompetitiveZoneCache()
        return _cache


# ── Cycle ─────────────────────────────────────────────────────────────────

def run_cycle():
    """
    Run one maintenance cycle. Returns the rebuild summary, or None if a
    cycle was already running or the rebuild failed.

    A failed rebuild leaves the previous cache generation in place and does
    not stop the best position and retention steps.
    """
    from .exceptions import CacheRebuildFailure
    from .services import BestPositionTracker, prune_snapshots

    if not _claim_cycle():
        logger.warning("Maintenance cycle already running; skipping.")
        return None

    errors = []
    summary = None
    try:
        summary = get_cache().rebuild()
    except CacheRebuildFailure as e:
        logger.error(f"Competitive zone rebuild failed: {e}")
        errors.append(str(e))

    for step in (BestPositionTracker().update_all, prune_snapshots):
        try:
            step()
        except Exception as e:
            logger.error(f"Maintenance step {step.__name__} failed: {e}")
            errors.append(f"{step.__name__}: {e}")

    _update_status(
        running=False,
        last_completed_at=timezone.now().isoformat(),
        last_generation_size=summary["total"] if summary else get_status()["last_generation_size"],
        error="; ".join(errors) or None,
    )
    return summary


def trigger_rebuild():
    """Start one cycle on a worker thread. Returns False if one is already running."""
    if get_status()["running"]:
        return False
    thread = threading.Thread(target=_run_cycle_safely, daemon=True, name="standings-rebuild")
    thread.start()
    return True


def _run_cycle_safely():
    try:
        run_cycle()
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        _update_status(running=False, error=str(e))


# ── Scheduler thread ─────────────────────────────────────────────────────

def _scheduler_loop():
    """Main scheduler loop. Runs a cycle every STANDINGS_REBUILD_INTERVAL_SECONDS."""
    # Wait 30 seconds for the app to fully start
    time.sleep(30)

    while True:
        _run_cycle_safely()
        time.sleep(settings.STANDINGS_REBUILD_INTERVAL_SECONDS)


_scheduler_started = False
_scheduler_lock = threading.Lock()


def start_scheduler():
    """Start the background scheduler thread (idempotent)."""
    global _scheduler_started
    with _scheduler_lock:
        if _scheduler_started:
            return
        _scheduler_started = True

    thread = threading.Thread(target=_scheduler_loop, daemon=True, name="standings-scheduler")
    thread.start()
    logger.info("Standings scheduler started.")

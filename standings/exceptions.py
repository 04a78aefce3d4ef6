"""
Errors raised by the standings engine.

Only ``NoRecentData``, ``NotRankable`` and ``RateLimited`` reach callers of
the position service. ``PartialCategoryData`` is recovered inside the
snapshot store and ``CacheRebuildFailure`` is logged by the scheduler.
"""


class StandingsError(Exception):
    """Base class for all standings errors."""


class NoRecentData(StandingsError):
    """No ``main`` snapshot exists, so nothing can be ranked."""

    def __init__(self, message: str = "No recent leaderboard data available"):
        super().__init__(message)


class NotRankable(StandingsError):
    """The item has never appeared on any leaderboard."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(
            f"Item {item_id} is not yet ranked: it has never appeared on any leaderboard"
        )


class PartialCategoryData(StandingsError):
    """A category has no rows at the requested batch timestamp."""

    def __init__(self, category: str, captured_at):
        self.category = category
        self.captured_at = captured_at
        super().__init__(f"Category '{category}' has no snapshot at {captured_at}")


class CacheRebuildFailure(StandingsError):
    """A competitive zone rebuild aborted; the previous generation stays live."""


class RateLimited(StandingsError):
    """The same item was looked up again inside its cooldown window."""

    def __init__(self, item_id, retry_after: int):
        self.item_id = item_id
        self.retry_after = retry_after
        super().__init__(f"Rate limited. Please wait {retry_after} seconds before requesting again.")

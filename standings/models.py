from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .movement import Movement

MAIN_CATEGORY = "main"
LIST_SIZE = 50


class Item(models.Model):
    """A ranked work, as supplied by the external catalog."""

    title = models.CharField(max_length=500)
    author_name = models.CharField(max_length=255, blank=True, default="")
    external_id = models.CharField(max_length=64, unique=True)
    cover_url = models.URLField(max_length=500, blank=True, default="")
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["title"]

    def __str__(self):
        return f"{self.title} ({self.external_id})"


class LeaderboardSnapshot(models.Model):
    """One row of a category leaderboard captured at ``captured_at``."""

    category = models.CharField(max_length=100, db_index=True)
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name="snapshots")
    position = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(LIST_SIZE)]
    )
    captured_at = models.DateTimeField(db_index=True)

    class Meta:
        ordering = ["-captured_at", "category", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["category", "captured_at", "position"],
                name="unique_snapshot_position",
            ),
            models.UniqueConstraint(
                fields=["category", "captured_at", "item"],
                name="unique_snapshot_item",
            ),
        ]
        indexes = [
            models.Index(fields=["category", "captured_at"], name="snapshot_cat_time_idx"),
            models.Index(fields=["item", "category", "captured_at"], name="snapshot_item_idx"),
        ]

    def __str__(self):
        return f"{self.category} #{self.position} @ {self.captured_at:%Y-%m-%d %H:%M}"

    @property
    def is_main(self):
        return self.category == MAIN_CATEGORY


class CompetitiveZoneEntry(models.Model):
    """Cached position of an item in or just below the main list."""

    MOVE_UP = "up"
    MOVE_DOWN = "down"
    MOVE_SAME = "same"
    MOVE_NEW = "new"
    MOVE_CHOICES = [
        (MOVE_UP, "Up"),
        (MOVE_DOWN, "Down"),
        (MOVE_SAME, "Same"),
        (MOVE_NEW, "New"),
    ]

    item = models.OneToOneField(Item, on_delete=models.CASCADE, related_name="zone_entry")
    estimated_position = models.PositiveIntegerField(db_index=True)
    last_move = models.CharField(max_length=4, choices=MOVE_CHOICES, default=MOVE_NEW)
    last_position = models.PositiveIntegerField(null=True, blank=True)
    last_move_date = models.DateTimeField(null=True, blank=True)
    # Set explicitly to the generation timestamp, shared by every row a rebuild writes.
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["estimated_position"]
        verbose_name_plural = "competitive zone entries"

    def __str__(self):
        return f"#{self.estimated_position} {self.item_id} ({self.last_move})"

    @property
    def is_estimated(self):
        return self.estimated_position > LIST_SIZE

    @property
    def movement(self):
        return Movement(self.last_move, self.last_position, self.last_move_date)


class BestPositionRecord(models.Model):
    """Best position an item ever reached in a category. Never regresses."""

    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name="best_positions")
    category = models.CharField(max_length=100)
    best_position = models.PositiveSmallIntegerField()
    first_achieved_at = models.DateTimeField()
    first_day_on_list = models.DateField(null=True, blank=True)
    last_updated_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["category", "best_position"]
        constraints = [
            models.UniqueConstraint(
                fields=["item", "category"],
                name="unique_best_position",
            ),
        ]

    def __str__(self):
        return f"{self.item_id} best #{self.best_position} in {self.category}"

    def improve(self, position, achieved_at):
        """
        Lower ``best_position`` to ``position`` if it is strictly better.

        Returns True when the record changed. Callers save the record.
        """
        if position >= self.best_position:
            return False
        self.best_position = position
        self.first_achieved_at = achieved_at
        return True

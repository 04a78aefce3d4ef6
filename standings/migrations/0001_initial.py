import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Item",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=500)),
                ("author_name", models.CharField(blank=True, default="", max_length=255)),
                ("external_id", models.CharField(max_length=64, unique=True)),
                ("cover_url", models.URLField(blank=True, default="", max_length=500)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["title"],
            },
        ),
        migrations.CreateModel(
            name="LeaderboardSnapshot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("category", models.CharField(db_index=True, max_length=100)),
                (
                    "position",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(50),
                        ]
                    ),
                ),
                ("captured_at", models.DateTimeField(db_index=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="snapshots",
                        to="standings.item",
                    ),
                ),
            ],
            options={
                "ordering": ["-captured_at", "category", "position"],
                "indexes": [
                    models.Index(fields=["category", "captured_at"], name="snapshot_cat_time_idx"),
                    models.Index(fields=["item", "category", "captured_at"], name="snapshot_item_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("category", "captured_at", "position"),
                        name="unique_snapshot_position",
                    ),
                    models.UniqueConstraint(
                        fields=("category", "captured_at", "item"),
                        name="unique_snapshot_item",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CompetitiveZoneEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("estimated_position", models.PositiveIntegerField(db_index=True)),
                (
                    "last_move",
                    models.CharField(
                        choices=[("up", "Up"), ("down", "Down"), ("same", "Same"), ("new", "New")],
                        default="new",
                        max_length=4,
                    ),
                ),
                ("last_position", models.PositiveIntegerField(blank=True, null=True)),
                ("last_move_date", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField()),
                (
                    "item",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="zone_entry",
                        to="standings.item",
                    ),
                ),
            ],
            options={
                "ordering": ["estimated_position"],
                "verbose_name_plural": "competitive zone entries",
            },
        ),
        migrations.CreateModel(
            name="BestPositionRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("category", models.CharField(max_length=100)),
                ("best_position", models.PositiveSmallIntegerField()),
                ("first_achieved_at", models.DateTimeField()),
                ("first_day_on_list", models.DateField(blank=True, null=True)),
                ("last_updated_at", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="best_positions",
                        to="standings.item",
                    ),
                ),
            ],
            options={
                "ordering": ["category", "best_position"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("item", "category"),
                        name="unique_best_position",
                    ),
                ],
            },
        ),
    ]

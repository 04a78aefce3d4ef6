from django.contrib import admin

from .models import BestPositionRecord, CompetitiveZoneEntry, Item, LeaderboardSnapshot


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("title", "author_name", "external_id", "created_at")
    search_fields = ("title", "author_name", "external_id")


@admin.register(LeaderboardSnapshot)
class LeaderboardSnapshotAdmin(admin.ModelAdmin):
    list_display = ("category", "position", "item", "captured_at")
    list_filter = ("category",)
    list_select_related = ("item",)
    date_hierarchy = "captured_at"


@admin.register(CompetitiveZoneEntry)
class CompetitiveZoneEntryAdmin(admin.ModelAdmin):
    list_display = ("estimated_position", "item", "last_move", "last_position", "updated_at")
    list_filter = ("last_move",)
    list_select_related = ("item",)
    readonly_fields = ("updated_at",)


@admin.register(BestPositionRecord)
class BestPositionRecordAdmin(admin.ModelAdmin):
    list_display = ("item", "category", "best_position", "first_achieved_at")
    list_filter = ("category",)
    readonly_fields = ("last_updated_at", "created_at")

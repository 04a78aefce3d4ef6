from django.urls import path

from . import views

app_name = "standings"

urlpatterns = [
    path("position/<str:external_id>/", views.position_view, name="position"),
    path("positions/", views.positions_view, name="positions"),
    path("main/", views.main_list_view, name="main_list"),
    path("zone/", views.zone_view, name="zone"),
    path("zone/stats/", views.zone_stats_view, name="zone_stats"),
    path("zone/rebuild/", views.zone_rebuild_view, name="zone_rebuild"),
    path("latest-snapshot/", views.latest_snapshot_view, name="latest_snapshot"),
    path("scheduler/status/", views.scheduler_status_view, name="scheduler_status"),
]

"""Tests for the JSON endpoints."""

import pytest
from django.urls import reverse

from standings import scheduler
from standings.models import CompetitiveZoneEntry

pytestmark = pytest.mark.django_db


# =============================================================================
# POSITIONS
# =============================================================================

class TestPositionView:

    def test_main_item(self, client, zone):
        response = client.get(reverse("standings:position", args=[zone.main[2].external_id]))

        assert response.status_code == 200
        data = response.json()
        assert data["is_on_main"] is True
        assert data["rank"] == 3
        assert data["title"] == zone.main[2].title

    def test_estimated_item(self, client, zone):
        response = client.get(reverse("standings:position", args=[zone.ref.external_id]))

        data = response.json()
        assert response.status_code == 200
        assert data["is_on_main"] is False
        assert data["rank"] == 55
        assert data["ahead_count"] == 54
        assert data["source"] == "computed"
        assert data["context_items"][-1]["is_target"] is True

    def test_unknown_item(self, client, zone):
        response = client.get(reverse("standings:position", args=["nope"]))
        assert response.status_code == 404

    def test_not_ranked(self, client, zone, items):
        (unseen,) = items(1)
        response = client.get(reverse("standings:position", args=[unseen.external_id]))

        assert response.status_code == 400
        assert response.json()["kind"] == "not_ranked"

    def test_no_data(self, client, items):
        (a,) = items(1)
        response = client.get(reverse("standings:position", args=[a.external_id]))

        assert response.status_code == 503
        assert response.json()["kind"] == "no_data"

    def test_repeat_lookup_is_rate_limited(self, client, zone, settings):
        settings.STANDINGS_LOOKUP_COOLDOWN_SECONDS = 60
        url = reverse("standings:position", args=[zone.x1.external_id])

        assert client.get(url).status_code == 200
        response = client.get(url)

        assert response.status_code == 429
        assert response.json()["kind"] == "rate_limited"
        assert 1 <= int(response["Retry-After"]) <= 60
        assert client.get(reverse("standings:position", args=[zone.x2.external_id])).status_code == 200


class TestPositionsView:

    def test_bulk_lookup(self, client, zone, items):
        (unseen,) = items(1)
        ids = f"{zone.main[0].external_id}, {zone.x1.external_id},{unseen.external_id},missing"

        response = client.post(reverse("standings:positions"), {"external_ids": ids})

        assert response.status_code == 200
        data = response.json()
        assert set(data["results"]) == {zone.main[0].external_id, zone.x1.external_id}
        assert data["missing"] == [unseen.external_id, "missing"]

    def test_empty_ids(self, client):
        response = client.post(reverse("standings:positions"), {"external_ids": " , "})
        assert response.status_code == 400

    def test_get_not_allowed(self, client):
        assert client.get(reverse("standings:positions")).status_code == 405


# =============================================================================
# LISTS AND ZONE
# =============================================================================

class TestListViews:

    def test_main_list(self, client, zone):
        response = client.get(reverse("standings:main_list"))

        entries = response.json()["entries"]
        assert [e["position"] for e in entries] == [1, 2, 3, 4, 5]
        assert entries[0]["external_id"] == zone.main[0].external_id

    def test_main_list_without_data(self, client):
        assert client.get(reverse("standings:main_list")).status_code == 503

    def test_zone_range(self, client, zone):
        scheduler.get_cache().rebuild()

        response = client.get(reverse("standings:zone"), {"start": 52, "end": 53})

        data = response.json()
        assert [e["position"] for e in data["entries"]] == [52, 53]
        assert data["entries"][0]["item_id"] == zone.x2.id
        assert data["entries"][0]["last_move"] == "new"

    def test_zone_defaults_to_just_below_main(self, client, zone):
        scheduler.get_cache().rebuild()

        data = client.get(reverse("standings:zone")).json()

        assert (data["start"], data["end"]) == (51, 100)
        assert len(data["entries"]) == 4

    def test_zone_rejects_reversed_range(self, client):
        response = client.get(reverse("standings:zone"), {"start": 60, "end": 55})
        assert response.status_code == 400

    def test_zone_stats(self, client, zone):
        scheduler.get_cache().rebuild()
        data = client.get(reverse("standings:zone_stats")).json()
        assert data["total_entries"] == CompetitiveZoneEntry.objects.count() == 9

    def test_latest_snapshot(self, client, zone):
        data = client.get(reverse("standings:latest_snapshot")).json()
        assert data["latest_snapshot_at"] == zone.first_at.isoformat()


# =============================================================================
# SCHEDULER
# =============================================================================

class TestSchedulerViews:

    def test_status(self, client):
        data = client.get(reverse("standings:scheduler_status")).json()
        assert data["running"] is False

    def test_rebuild_trigger(self, client, monkeypatch):
        monkeypatch.setattr("standings.views.trigger_rebuild", lambda: True)
        response = client.post(reverse("standings:zone_rebuild"))
        assert response.status_code == 202

    def test_rebuild_already_running(self, client, monkeypatch):
        monkeypatch.setattr("standings.views.trigger_rebuild", lambda: False)
        response = client.post(reverse("standings:zone_rebuild"))
        assert response.status_code == 409

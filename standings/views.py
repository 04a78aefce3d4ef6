import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from .exceptions import NoRecentData, NotRankable, RateLimited
from .forms import PositionLookupForm, ZoneRangeForm
from .models import Item
from .positions import PositionQueryService
from .scheduler import get_cache, get_status, trigger_rebuild
from .services import MainListService
from .snapshots import SnapshotStore

logger = logging.getLogger(__name__)


def _no_data_response(e):
    return JsonResponse({"error": str(e), "kind": "no_data"}, status=503)


def _rate_limited_response(e):
    response = JsonResponse({"error": str(e), "kind": "rate_limited"}, status=429)
    response["Retry-After"] = str(e.retry_after)
    return response


@require_GET
def position_view(request, external_id):
    """
    Global position of a single item.

    Items on the main list get their exact rank; everything else gets an
    estimate, from the competitive zone cache when possible.
    """
    item = get_object_or_404(Item, external_id=external_id)
    service = PositionQueryService(cache=get_cache())
    try:
        position = service.get_position(item.id)
    except NotRankable as e:
        return JsonResponse({"error": str(e), "kind": "not_ranked"}, status=400)
    except RateLimited as e:
        return _rate_limited_response(e)
    except NoRecentData as e:
        return _no_data_response(e)

    return JsonResponse({
        "title": item.title,
        "author_name": item.author_name,
        "external_id": item.external_id,
        **position.as_dict(),
    })


@require_POST
def positions_view(request):
    """
    Positions for several items at once (comma-separated external ids, max 20).

    Ids that are unknown or cannot be ranked are listed under "missing".
    """
    form = PositionLookupForm(request.POST)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid form data.", "details": form.errors.get_json_data()}, status=400)

    external_ids = form.cleaned_data["external_ids"]
    items = {item.id: item for item in Item.objects.filter(external_id__in=external_ids)}

    service = PositionQueryService(cache=get_cache())
    try:
        positions = service.get_positions(list(items))
    except NoRecentData as e:
        return _no_data_response(e)

    results = {items[item_id].external_id: position.as_dict() for item_id, position in positions.items()}
    return JsonResponse({
        "results": results,
        "missing": [external_id for external_id in external_ids if external_id not in results],
    })


@require_GET
def main_list_view(request):
    """The main list, 1 to 50, with movement and days on list."""
    try:
        board = SnapshotStore().load()
    except NoRecentData as e:
        return _no_data_response(e)
    return JsonResponse({
        "captured_at": board.captured_at.isoformat(),
        "entries": MainListService(board).get_main_list(),
    })


@require_GET
def zone_view(request):
    """Cached competitive zone entries between ?start= and ?end= (inclusive)."""
    form = ZoneRangeForm(request.GET)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid range.", "details": form.errors.get_json_data()}, status=400)

    start = form.cleaned_data["start"]
    end = form.cleaned_data["end"]
    entries = get_cache().get_range(start, end)
    return JsonResponse({
        "start": start,
        "end": end,
        "entries": [
            {
                "item_id": entry.item_id,
                "title": entry.item.title,
                "author_name": entry.item.author_name,
                "external_id": entry.item.external_id,
                "cover_url": entry.item.cover_url,
                "position": entry.estimated_position,
                "updated_at": entry.updated_at.isoformat(),
                **entry.movement.as_dict(),
            }
            for entry in entries
        ],
    })


@require_GET
def zone_stats_view(request):
    return JsonResponse(get_cache().stats())


@require_GET
def latest_snapshot_view(request):
    latest = SnapshotStore().latest_snapshot_at()
    return JsonResponse({"latest_snapshot_at": latest.isoformat() if latest else None})


@require_GET
def scheduler_status_view(request):
    return JsonResponse(get_status())


@require_POST
def zone_rebuild_view(request):
    """Start a maintenance cycle in the background."""
    if not trigger_rebuild():
        return JsonResponse({"error": "A rebuild is already running."}, status=409)
    logger.info("Competitive zone rebuild triggered manually.")
    return JsonResponse({"success": True}, status=202)

from fastapi import APIRouter, Depends, HTTPException

from usagewatch.schemas.usage import AppUsageResponse, UsageOverviewResponse
from usagewatch.services.container import HostServices, get_services
from usagewatch.utils.constants import resolve_display_name
from usagewatch.utils.security import get_current_owner

router = APIRouter()

# Read-only views: usage keys belong to the reporting process


def _to_response(record) -> AppUsageResponse:
    return AppUsageResponse(
        app_id=record.app_id,
        display_name=resolve_display_name(record.app_id),
        cumulative_duration=record.cumulative_duration,
        hourly_breakdown=record.hourly_breakdown,
        time_ranges=record.time_ranges,
    )


@router.get("/apps", response_model=UsageOverviewResponse)
def get_usage_overview(
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    apps = []
    for app_id in services.state.read_usage_app_ids():
        record = services.state.read_usage_record(app_id)
        if record is not None:
            apps.append(_to_response(record))

    # most used first
    apps.sort(key=lambda a: a.cumulative_duration, reverse=True)

    return UsageOverviewResponse(
        apps=apps,
        last_activity_update=services.state.read_last_activity_update(),
    )


@router.get("/apps/{app_id}", response_model=AppUsageResponse)
def get_app_usage(
    app_id: str,
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    if app_id not in services.state.read_usage_app_ids():
        raise HTTPException(status_code=404, detail="No usage recorded for this app")

    record = services.state.read_usage_record(app_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Usage data unreadable")

    return _to_response(record)

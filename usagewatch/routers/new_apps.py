from fastapi import APIRouter, Depends

from usagewatch.routers.common import GUARDIAN_ERRORS, to_http_exception
from usagewatch.schemas.deleted_apps import GuardianActionResponse, NewAppItem, NewAppListResponse
from usagewatch.services.container import HostServices, get_services
from usagewatch.utils.security import get_current_owner

router = APIRouter()


@router.get("", response_model=NewAppListResponse)
def list_new_apps(
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    try:
        records = services.new_apps.list_pending(owner_id)
    except GUARDIAN_ERRORS as e:
        raise to_http_exception(e)

    return NewAppListResponse(new_apps=[NewAppItem.model_validate(r) for r in records])


# POST /new-apps/{doc_id}/monitor
# default 2-hour restriction for the new app
@router.post("/{doc_id}/monitor", response_model=GuardianActionResponse)
def monitor_new_app(
    doc_id: str,
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    try:
        record = services.new_apps.add_to_monitoring(owner_id, doc_id)
    except GUARDIAN_ERRORS as e:
        raise to_http_exception(e)

    return GuardianActionResponse(
        doc_id=doc_id,
        action="monitor",
        message=f"Added {record['display_name']} to monitoring",
    )


@router.post("/{doc_id}/ignore", response_model=GuardianActionResponse)
def ignore_new_app(
    doc_id: str,
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    try:
        record = services.new_apps.ignore(owner_id, doc_id)
    except GUARDIAN_ERRORS as e:
        raise to_http_exception(e)

    return GuardianActionResponse(
        doc_id=doc_id,
        action="ignore",
        message=f"Ignored {record['display_name']}",
    )

from fastapi import APIRouter, Depends

from usagewatch.routers.common import GUARDIAN_ERRORS, get_device_owner, to_http_exception
from usagewatch.schemas.deleted_apps import (
    DeletedAppItem,
    DeletedAppListResponse,
    GuardianActionResponse,
)
from usagewatch.services.container import HostServices, get_services
from usagewatch.utils.security import get_current_owner

router = APIRouter()


# GET /deleted-apps
# unprocessed deletions, newest first
@router.get("", response_model=DeletedAppListResponse)
def list_deleted_apps(
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    try:
        records = services.lifecycle.list_pending(owner_id)
    except GUARDIAN_ERRORS as e:
        raise to_http_exception(e)

    return DeletedAppListResponse(
        deleted_apps=[DeletedAppItem.model_validate(r) for r in records]
    )


# POST /deleted-apps/{doc_id}/restore
# recreate the default restriction and put the app back in the baseline
@router.post("/{doc_id}/restore", response_model=GuardianActionResponse)
def restore_deleted_app(
    doc_id: str,
    owner_id: str = Depends(get_device_owner),
    services: HostServices = Depends(get_services),
):
    try:
        record = services.lifecycle.restore(owner_id, doc_id)
    except GUARDIAN_ERRORS as e:
        raise to_http_exception(e)

    return GuardianActionResponse(
        doc_id=doc_id,
        action="restore",
        message=f"Restored {record['display_name']} to monitoring",
    )


# POST /deleted-apps/{doc_id}/remove
@router.post("/{doc_id}/remove", response_model=GuardianActionResponse)
def remove_deleted_app(
    doc_id: str,
    owner_id: str = Depends(get_device_owner),
    services: HostServices = Depends(get_services),
):
    try:
        record = services.lifecycle.remove(owner_id, doc_id)
    except GUARDIAN_ERRORS as e:
        raise to_http_exception(e)

    return GuardianActionResponse(
        doc_id=doc_id,
        action="remove",
        message=f"Removed {record['display_name']} from monitoring",
    )

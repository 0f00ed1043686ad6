from fastapi import Depends, HTTPException

from usagewatch.services.container import HostServices, get_services
from usagewatch.services.errors import (
    AlreadyProcessedError,
    RecordNotFoundError,
    RecordOwnershipError,
    RemoteSyncError,
)
from usagewatch.utils.security import get_current_owner


def to_http_exception(e: Exception) -> HTTPException:
    if isinstance(e, RecordNotFoundError):
        return HTTPException(status_code=404, detail="Record not found")
    if isinstance(e, RecordOwnershipError):
        return HTTPException(status_code=403, detail="Record belongs to another account")
    if isinstance(e, AlreadyProcessedError):
        return HTTPException(status_code=409, detail="Record was already processed")
    if isinstance(e, RemoteSyncError):
        return HTTPException(status_code=503, detail="Remote store unavailable, try again")
    return HTTPException(status_code=500, detail="Internal error")


GUARDIAN_ERRORS = (
    AlreadyProcessedError,
    RecordNotFoundError,
    RecordOwnershipError,
    RemoteSyncError,
)


# Dependency - the known-apps baseline is device-wide, only its signed-in owner may change it
def get_device_owner(
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
) -> str:
    if owner_id != services.identity.current_owner_id():
        raise HTTPException(status_code=403, detail="Not the signed-in owner of this device")
    return owner_id

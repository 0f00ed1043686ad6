from dataclasses import asdict

from fastapi import APIRouter, Depends

from usagewatch.routers.common import get_device_owner
from usagewatch.schemas.reconciliation import PassResultResponse, ReconciliationStatusResponse
from usagewatch.services.container import HostServices, get_services
from usagewatch.utils.security import get_current_owner

router = APIRouter()


# POST /reconciliation/run
# same pass the timer runs; skipped when one is already in progress
@router.post("/run", response_model=PassResultResponse)
def run_reconciliation(
    owner_id: str = Depends(get_device_owner),
    services: HostServices = Depends(get_services),
):
    result = services.reconciliation.run_scheduled_pass()
    return PassResultResponse(**asdict(result))


@router.get("/status", response_model=ReconciliationStatusResponse)
def get_reconciliation_status(
    owner_id: str = Depends(get_current_owner),
    services: HostServices = Depends(get_services),
):
    return ReconciliationStatusResponse(**services.state.read_status())

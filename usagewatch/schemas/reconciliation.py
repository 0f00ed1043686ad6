from pydantic import BaseModel
from typing import List, Optional


class PassResultResponse(BaseModel):
    owner_id: Optional[str] = None
    status: str  # completed / skipped / no_data / failed
    bootstrap: bool = False
    new_apps: List[str] = []
    removed_apps: List[str] = []
    failed_apps: List[str] = []
    baseline_advanced: bool = False
    reason: Optional[str] = None


class ReconciliationStatusResponse(BaseModel):
    last_error: Optional[str] = None
    last_success: Optional[float] = None

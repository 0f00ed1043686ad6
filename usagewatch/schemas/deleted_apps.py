from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional


class DeletedAppItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    doc_id: str
    app_id: str
    display_name: str
    owner_id: str
    detected_at: datetime
    was_monitored: bool
    is_processed: bool
    state: str
    processed_at: Optional[datetime] = None


class DeletedAppListResponse(BaseModel):
    deleted_apps: List[DeletedAppItem]


class NewAppItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    doc_id: str
    app_id: str
    display_name: str
    owner_id: str
    detected_at: datetime
    is_processed: bool
    processed_at: Optional[datetime] = None


class NewAppListResponse(BaseModel):
    new_apps: List[NewAppItem]


class GuardianActionResponse(BaseModel):
    doc_id: str
    action: str
    message: str

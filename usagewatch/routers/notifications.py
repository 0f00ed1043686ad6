from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from usagewatch.database import get_db
from usagewatch.schemas.notifications import NotificationItem
from usagewatch.services.notification_service import get_recent_notifications
from usagewatch.utils.security import get_current_owner

router = APIRouter()


@router.get("/recent", response_model=List[NotificationItem])
def get_recent(
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return get_recent_notifications(db, owner_id)

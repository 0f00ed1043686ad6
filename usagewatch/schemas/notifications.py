from pydantic import BaseModel
from datetime import datetime


class NotificationItem(BaseModel):
    noti_id: int
    category: str
    app_id: str
    message_body: str
    delivered: bool
    sent_at: datetime

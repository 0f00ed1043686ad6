# usagewatch/services/notification_service.py

import logging
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from usagewatch.database import SessionLocal
from usagewatch.models.notification_logs import NotificationLog
from usagewatch.models.users import User
from usagewatch.services.message_manager import MessageManager

logger = logging.getLogger(__name__)


def get_fcm_token(db: Session, owner_id: str):
    user = db.query(User).filter(User.owner_id == owner_id).first()
    return user.fcm_token if user else None


def save_notification_log(db: Session, owner_id: str, category: str, app_id: str,
                          title: str, body: str, delivered: bool):
    # record of every dispatched notification
    log = NotificationLog(
        owner_id=owner_id,
        category=category,
        app_id=app_id,
        title=title,
        message_body=body,
        delivered=delivered,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def get_recent_notifications(db: Session, owner_id: str, limit: int = 10):
    logs = db.query(NotificationLog).filter(
        NotificationLog.owner_id == owner_id
    ).order_by(NotificationLog.sent_at.desc(), NotificationLog.noti_id.desc()).limit(limit).all()

    return [
        {
            "noti_id": log.noti_id,
            "category": log.category,
            "app_id": log.app_id,
            "message_body": log.message_body,
            "delivered": log.delivered,
            "sent_at": log.sent_at,
        }
        for log in logs
    ]


class NotificationDispatcher:

    # notify(category, payload) - fire-and-forget, never raises into the caller
    # payload: {"appId", "displayName", "ownerId"}

    def __init__(
        self,
        session_factory=SessionLocal,
        push_sender: Callable[..., bool] = MessageManager.send_push_notification,
    ):
        self.session_factory = session_factory
        self.push_sender = push_sender

    def notify(self, category: str, payload: dict) -> bool:
        owner_id = payload.get("ownerId")
        app_id = payload.get("appId")
        display_name = payload.get("displayName") or app_id

        msg = MessageManager.construct_message(category, display_name)

        db = self.session_factory()
        try:
            fcm_token = get_fcm_token(db, owner_id)
            delivered = False
            if fcm_token:
                delivered = self.push_sender(
                    fcm_token, msg["title"], msg["body"],
                    {"category": category, "appId": app_id},
                )
            else:
                logger.info(f"No device token for owner {owner_id}; logging {category} only")

            save_notification_log(
                db,
                owner_id=owner_id,
                category=category,
                app_id=app_id,
                title=msg["title"],
                body=msg["body"],
                delivered=delivered,
            )
            return delivered

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record {category} notification for {app_id}: {e}")
            return False
        finally:
            db.close()

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, func
from usagewatch.database import Base

class NotificationLog(Base):
    __tablename__ = "notification_logs"

    noti_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(String(128), nullable=False, index=True)

    category = Column(String(50), nullable=False)  # appDeleted / newAppDetected
    app_id = Column(String(255), nullable=False)

    title = Column(String(255), nullable=False)
    message_body = Column(Text, nullable=False)

    delivered = Column(Boolean, default=False)
    sent_at = Column(DateTime, server_default=func.now())

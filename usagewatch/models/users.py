# usagewatch/models/users.py

from sqlalchemy import Column, Integer, String, DateTime, func
from usagewatch.database import Base

class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(String(128), unique=True, nullable=False, index=True)
    display_name = Column(String(50), nullable=True)
    fcm_token = Column(String(255), nullable=True) # FCM device token of the guardian
    created_at = Column(DateTime, server_default=func.now())

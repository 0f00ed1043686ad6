from sqlalchemy import Column, String, DateTime, Boolean, Float
from usagewatch.database import Base

class AppRestriction(Base):
    __tablename__ = "app_restrictions"

    doc_id = Column(String(400), primary_key=True)  # "{owner_id}_{app_id}"

    app_id = Column(String(255), nullable=False)
    owner_id = Column(String(128), nullable=False, index=True)

    time_limit = Column(Float, default=0.0)  # seconds per day
    is_disabled = Column(Boolean, default=False)
    daily_usage = Column(Float, default=0.0)
    last_reset_date = Column(DateTime, nullable=True)

    last_updated = Column(DateTime, nullable=True)

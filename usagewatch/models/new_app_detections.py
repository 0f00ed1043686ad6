from sqlalchemy import Column, String, DateTime, Boolean
from usagewatch.database import Base

class NewAppDetection(Base):
    __tablename__ = "new_app_detections"

    doc_id = Column(String(400), primary_key=True)  # "{owner_id}_{app_id}"

    app_id = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False)
    owner_id = Column(String(128), nullable=False, index=True)

    detected_at = Column(DateTime, nullable=False)
    is_processed = Column(Boolean, default=False, index=True)
    processed_at = Column(DateTime, nullable=True)

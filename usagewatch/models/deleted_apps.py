from sqlalchemy import Column, String, DateTime, Boolean
from usagewatch.database import Base

# Lifecycle states of a deleted app record
STATE_DETECTED = "detected"
STATE_PERSISTED = "persisted"
STATE_NOTIFIED = "notified"
STATE_RESTORED = "restored"
STATE_REMOVED = "removed"


class DeletedApp(Base):
    __tablename__ = "deleted_apps"

    # "{owner_id}_{app_id}"
    doc_id = Column(String(400), primary_key=True)

    app_id = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False)
    owner_id = Column(String(128), nullable=False, index=True)

    detected_at = Column(DateTime, nullable=False)
    was_monitored = Column(Boolean, default=False)

    is_processed = Column(Boolean, default=False, index=True)
    state = Column(String(20), default=STATE_DETECTED)

    notified_at = Column(DateTime, nullable=True)
    processed_at = Column(DateTime, nullable=True)

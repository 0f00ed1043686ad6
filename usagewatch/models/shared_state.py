from sqlalchemy import Column, String, Text, DateTime, func
from usagewatch.database import SharedBase

class SharedStateEntry(SharedBase):
    __tablename__ = "shared_state"

    key = Column(String(400), primary_key=True)
    value = Column(Text, nullable=False)  # JSON encoded blob
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

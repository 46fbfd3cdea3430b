from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from lostfound.database import Base

# ============================================
# STORAGE ENTRY MODEL (key / value)
# ============================================

class StorageEntry(Base):
    """One key of the local store, value is a JSON document"""
    __tablename__ = "local_storage"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StorageEntry(key='{self.key}', size={len(self.value or '')})>"

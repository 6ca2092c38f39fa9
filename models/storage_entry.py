# models/storage_entry.py

from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime
from core.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """One local-storage slot: a key holding a JSON document as text."""

    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<StorageEntry {self.key} ({len(self.value or '')} chars)>"

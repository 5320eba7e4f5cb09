"""Database models for the word game data layer."""
from sqlalchemy import Column, String, Text

from wordgame.models.base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """One key of the key-value store, holding a JSON-encoded payload."""

    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)

"""SQLAlchemy database models for the local settings store"""
import datetime

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)

class StoreEntry(Base):
    """
    One slot of the key-value settings store.
    The session log and the sync cursor each live in a single slot.
    """
    __tablename__ = 'settings_store'

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utc_now, onupdate=_utc_now)

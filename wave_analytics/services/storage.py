"""Key-value settings store backed by the local database"""
import logging
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from wave_analytics.models.db import StoreEntry

logger = logging.getLogger(__name__)

class SettingsStore:
    """Handles all database operations on the settings_store table"""

    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str) -> Optional[str]:
        """Return the raw value stored under key, or None if the slot is empty"""
        try:
            entry = self.session.get(StoreEntry, key)
            return entry.value if entry else None
        except SQLAlchemyError as e:
            logger.error(f"Database error reading settings key {key}: {e}")
            # Rollback in case of error during read
            self.session.rollback()
            raise

    def set(self, key: str, value: str) -> None:
        """Create or overwrite the slot for key"""
        try:
            entry = self.session.get(StoreEntry, key)
            if entry:
                entry.value = value
            else:
                self.session.add(StoreEntry(key=key, value=value))
            self.session.commit()
            logger.debug(f"Wrote {len(value)} bytes to settings key {key}")
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error writing settings key {key}: {e}")
            raise

    def delete(self, key: str) -> None:
        """Remove the slot for key; missing keys are ignored"""
        try:
            entry = self.session.get(StoreEntry, key)
            if entry:
                self.session.delete(entry)
                self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error deleting settings key {key}: {e}")
            raise

    def close(self) -> None:
        self.session.close()

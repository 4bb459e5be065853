"""Database connection and session management"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from wave_analytics.models.db import Base

logger = logging.getLogger(__name__)

class Database:
    """Connection and session manager for the local settings store"""

    def __init__(self, url: str):
        """Initialize database manager state"""
        self.url = url
        self._engine = None
        self._SessionLocal = None

    def init(self) -> None:
        """
        Initialize database connection and create tables.
        """
        try:
            self._engine = create_engine(self.url)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine)
            logger.info(f"Settings store initialized at {self._engine.url.render_as_string(hide_password=True)}")

        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    def get_session(self) -> Session:
        """Get a new database session"""
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._SessionLocal()

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None

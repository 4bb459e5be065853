"""Local settings store location"""
import os
from dataclasses import dataclass

from wave_analytics.config import Settings

STORE_FILENAME = "wave_settings.db"

@dataclass
class StoreLocation:
    """SQLite file backing the local key-value settings store"""
    directory: str
    filename: str = STORE_FILENAME

    @property
    def path(self) -> str:
        return os.path.join(self.directory, self.filename)

    def to_connection_string(self) -> str:
        """Generate the SQLAlchemy URL for the store file"""
        return f"sqlite:///{self.path}"

    @classmethod
    def from_settings(cls, settings: Settings) -> 'StoreLocation':
        return cls(directory=settings.DATA_DIR)

def resolve_store_url(settings: Settings) -> str:
    """
    Resolve the store connection string.

    An explicit STORE_URL wins; otherwise the SQLite file under DATA_DIR is
    used and its directory is created if needed.
    """
    if settings.STORE_URL:
        return settings.STORE_URL

    location = StoreLocation.from_settings(settings)
    os.makedirs(location.directory, exist_ok=True)
    return location.to_connection_string()

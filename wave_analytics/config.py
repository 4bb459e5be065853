"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class AppleMusicSettings(BaseModel):
    """Apple Music API specific settings"""
    developer_token: str = Field(..., description="Apple Music developer token (JWT)")
    user_token: str = Field(..., description="Music-User-Token for the listener")
    base_url: str = Field(..., description="Apple Music API base URL")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Local store
    DATA_DIR: str = Field("./data", description="Directory holding the local settings store")
    STORE_URL: Optional[str] = Field(None, description="SQLAlchemy URL overriding the SQLite file in DATA_DIR")
    SESSIONS_KEY: str = Field("listeningSessionsKey", description="Settings key for the session log")
    LAST_SYNC_KEY: str = Field("lastSyncDateKey", description="Settings key for the sync cursor")

    # Aggregation
    SESSION_GAP_MINUTES: int = Field(30, description="Max gap between plays of one listening session")
    TIMEZONE: Optional[str] = Field(None, description="IANA zone for daily/hourly buckets, system zone if unset")
    DEFAULT_WINDOW: str = Field("allTime", description="Report window: week, month, year or allTime")
    TOP_LIMIT: int = Field(25, description="Number of top songs/artists in a report")
    DAILY_DAYS: int = Field(30, description="Number of days in the daily listening series")

    # Apple Music credentials - sync is skipped when either token is missing
    SYNC_ON_RUN: bool = Field(True, description="Fetch recently played songs before reporting")
    APPLE_MUSIC_DEVELOPER_TOKEN: Optional[str] = Field(None, description="Apple Music developer token")
    APPLE_MUSIC_USER_TOKEN: Optional[str] = Field(None, description="Apple Music user token")
    APPLE_MUSIC_API_URL: str = Field("https://api.music.apple.com/v1", description="Apple Music API base URL")

    OUTPUT_DIR: str = Field("./output", description="Directory for report files")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the CLI")

    @property
    def apple_music_settings(self) -> Optional[AppleMusicSettings]:
        """Get Apple Music settings as a separate model, None without credentials"""
        if not (self.APPLE_MUSIC_DEVELOPER_TOKEN and self.APPLE_MUSIC_USER_TOKEN):
            return None
        return AppleMusicSettings(
            developer_token=self.APPLE_MUSIC_DEVELOPER_TOKEN,
            user_token=self.APPLE_MUSIC_USER_TOKEN,
            base_url=self.APPLE_MUSIC_API_URL
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )

settings = Settings()

# Constants
UNKNOWN_ALBUM = "Unknown Album"

"""Play session and provider aggregate models"""
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wave_analytics.config import UNKNOWN_ALBUM

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value

class PlaySession(BaseModel):
    """
    One recorded playback occurrence, real or synthesized.

    Sessions are immutable once created. The timestamp is when the session
    was recorded, which for synthesized sessions is the reconciliation time
    rather than the true play time.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique session ID")
    song_title: str = Field(..., min_length=1, description="Song title")
    artist_name: str = Field(..., min_length=1, description="Artist name")
    album_title: str = Field(UNKNOWN_ALBUM, description="Album title or placeholder")
    timestamp: datetime = Field(default_factory=utc_now, description="When the session was recorded")
    duration: float = Field(..., ge=0, description="Elapsed seconds, possibly estimated")

    @field_validator('timestamp')
    @classmethod
    def timestamp_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def minutes(self) -> int:
        """Whole minutes this session contributes, truncated per session"""
        return int(self.duration // 60)

    @property
    def song_key(self) -> Tuple[str, str]:
        return self.song_title, self.artist_name

class RecentlyPlayedSong(BaseModel):
    """
    Aggregate reported by the catalog provider for one song.

    play_count and total_minutes cover the plays since the last fetch; the
    provider does not expose individual play events. Ranges are checked by
    the reconciler, not here.
    """
    title: str
    artist: str
    album: str = UNKNOWN_ALBUM
    play_count: int
    total_minutes: int
    catalog_id: Optional[str] = None

"""AnalyticsReport model definition"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field

class SongEntry(BaseModel):
    title: str
    artist: str
    album: str
    play_count: int
    total_minutes: int

class ArtistEntry(BaseModel):
    name: str
    play_count: int
    total_minutes: int
    top_songs: List[str] = []

class StatsEntry(BaseModel):
    total_minutes: int
    total_songs: int
    unique_artists: int
    average_session_length: int
    longest_session: int

class DailyEntry(BaseModel):
    date: date
    minutes: int

class HourlyEntry(BaseModel):
    hour: int
    minutes: int

class AnalyticsReport(BaseModel):
    """
    One full derivation of the listening log, ready for output.

    Attributes:
        window: Time window applied to stats, top songs and top artists
        limit: Maximum entries in the top lists
        generated_at: When the report was built
        last_sync: Last reconciliation with the catalog provider, if any
        session_count: Size of the whole log, independent of the window
        daily: Per-day minutes over the last N days (all sessions)
        hourly: Per-hour minutes, always 24 entries (all sessions)
    """
    window: str = Field(description="Time window name")
    limit: int = Field(description="Top list size")
    generated_at: datetime
    last_sync: Optional[datetime] = None
    session_count: int = 0
    stats: StatsEntry
    top_songs: List[SongEntry] = []
    top_artists: List[ArtistEntry] = []
    daily: List[DailyEntry] = []
    hourly: List[HourlyEntry] = []

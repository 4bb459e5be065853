"""Derived listening statistics"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

class TimeWindow(str, Enum):
    """Time range applied to sessions before aggregation"""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "allTime"

    @classmethod
    def parse(cls, value) -> 'TimeWindow':
        """Accept an enum member, its value, or a loose name like 'all_time'"""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().replace("_", "").replace("-", "").lower()
        for window in cls:
            if window.value.lower() == normalized:
                return window
        raise ValueError(f"Unknown time window: {value!r}")

@dataclass
class SongStat:
    """Play count and listening time for one (title, artist) pair"""
    title: str
    artist: str
    album: str
    play_count: int
    total_minutes: int

@dataclass
class ArtistStat:
    """Play count and listening time for one artist"""
    name: str
    play_count: int
    total_minutes: int
    top_songs: List[str] = field(default_factory=list)

@dataclass
class HourlyListening:
    hour: int
    minutes: int

@dataclass
class DailyListening:
    date: date
    minutes: int

@dataclass
class ListeningStats:
    """Summary statistics for a window; session lengths are in minutes"""
    total_minutes: int
    total_songs: int
    unique_artists: int
    average_session_length: int
    longest_session: int

@dataclass
class SyncResult:
    """Outcome of one reconciliation run"""
    synthesized: int
    appended: int
    skipped_existing: int
    rejected: int
    synced_at: Optional[datetime]

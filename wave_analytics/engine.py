"""Listening analytics engine: the consumer-facing entry point"""
import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from wave_analytics.aggregation import ListeningAggregator
from wave_analytics.config import Settings, UNKNOWN_ALBUM
from wave_analytics.db import Database
from wave_analytics.db_config import resolve_store_url
from wave_analytics.models.report import AnalyticsReport
from wave_analytics.models.session import PlaySession, RecentlyPlayedSong
from wave_analytics.models.stats import (
    ArtistStat,
    DailyListening,
    HourlyListening,
    ListeningStats,
    SongStat,
    SyncResult,
    TimeWindow,
)
from wave_analytics.reconciler import SyncReconciler
from wave_analytics.services.storage import SettingsStore
from wave_analytics.session_store import SessionStore

logger = logging.getLogger(__name__)

class ListeningAnalyticsEngine:
    """
    Records plays, reconciles provider data and serves derived statistics.

    Construct one instance per process and pass it to whatever needs it.
    All calls are synchronous; callers running several threads must
    serialize writes themselves.
    """

    def __init__(self, store: SessionStore, aggregator: Optional[ListeningAggregator] = None,
                 reconciler: Optional[SyncReconciler] = None, database: Optional[Database] = None):
        self.store = store
        self.aggregator = aggregator or ListeningAggregator()
        self.reconciler = reconciler or SyncReconciler(store, clock=self.aggregator.clock)
        self.database = database

    @classmethod
    def from_settings(cls, settings: Settings,
                      clock: Optional[Callable[[], datetime]] = None) -> 'ListeningAnalyticsEngine':
        """Build the engine and its local store; falls back to in-memory if the store is unavailable"""
        database: Optional[Database] = None
        backend: Optional[SettingsStore] = None
        try:
            database = Database(resolve_store_url(settings))
            database.init()
            backend = SettingsStore(database.get_session())
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Settings store unavailable, listening history will not be saved: {e}")
            if database is not None:
                database.dispose()
            database = None

        store = SessionStore(backend, sessions_key=settings.SESSIONS_KEY, last_sync_key=settings.LAST_SYNC_KEY)
        aggregator = ListeningAggregator(
            clock=clock,
            tz=ZoneInfo(settings.TIMEZONE) if settings.TIMEZONE else None,
            session_gap=timedelta(minutes=settings.SESSION_GAP_MINUTES)
        )
        return cls(store, aggregator, SyncReconciler(store, clock=aggregator.clock), database)

    def close(self) -> None:
        if self.store.backend is not None:
            self.store.backend.close()
        if self.database is not None:
            self.database.dispose()
            logger.info("Settings store closed.")

    # --- Writes ---

    def track_session(self, session: PlaySession) -> None:
        self.store.append(session)

    def track_sessions(self, sessions: Iterable[PlaySession]) -> None:
        self.store.append_batch(sessions)

    def record_play(self, song_title: str, artist_name: str, duration: float,
                    album_title: str = UNKNOWN_ALBUM, timestamp: Optional[datetime] = None) -> PlaySession:
        """Create and store a session for a single playback event"""
        session = PlaySession(
            song_title=song_title,
            artist_name=artist_name,
            album_title=album_title,
            timestamp=timestamp or self.aggregator.clock(),
            duration=duration
        )
        self.store.append(session)
        return session

    def sync(self, recent_songs: Iterable[RecentlyPlayedSong]) -> SyncResult:
        return self.reconciler.reconcile(recent_songs)

    def clear_all(self) -> None:
        self.store.clear()

    # --- Reads ---

    def sessions(self) -> List[PlaySession]:
        return self.store.all()

    @property
    def last_sync_date(self) -> Optional[datetime]:
        return self.store.last_sync

    def top_songs(self, limit: int = 25, window: TimeWindow = TimeWindow.ALL_TIME) -> List[SongStat]:
        return self.aggregator.top_songs(self.store.all(), limit=limit, window=window)

    def top_artists(self, limit: int = 25, window: TimeWindow = TimeWindow.ALL_TIME) -> List[ArtistStat]:
        return self.aggregator.top_artists(self.store.all(), limit=limit, window=window)

    def daily_listening(self, days: int = 30) -> List[DailyListening]:
        return self.aggregator.daily_listening(self.store.all(), days=days)

    def hourly_distribution(self) -> List[HourlyListening]:
        return self.aggregator.hourly_distribution(self.store.all())

    def summary_stats(self, window: TimeWindow = TimeWindow.ALL_TIME) -> ListeningStats:
        return self.aggregator.summary_stats(self.store.all(), window=window)

    def build_report(self, window: TimeWindow = TimeWindow.ALL_TIME, limit: int = 25,
                     days: int = 30) -> AnalyticsReport:
        """Derive everything from one snapshot of the log"""
        window = TimeWindow.parse(window)
        sessions = self.store.all()
        aggregator = self.aggregator

        return AnalyticsReport.model_validate({
            'window': window.value,
            'limit': limit,
            'generated_at': aggregator.clock(),
            'last_sync': self.store.last_sync,
            'session_count': len(sessions),
            'stats': asdict(aggregator.summary_stats(sessions, window=window)),
            'top_songs': [asdict(stat) for stat in aggregator.top_songs(sessions, limit=limit, window=window)],
            'top_artists': [asdict(stat) for stat in aggregator.top_artists(sessions, limit=limit, window=window)],
            'daily': [asdict(entry) for entry in aggregator.daily_listening(sessions, days=days)],
            'hourly': [asdict(entry) for entry in aggregator.hourly_distribution(sessions)]
        })

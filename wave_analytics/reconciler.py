"""Merge provider-reported recent plays into the local session log"""
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from wave_analytics.models.session import PlaySession, RecentlyPlayedSong
from wave_analytics.models.stats import SyncResult
from wave_analytics.session_store import SessionStore

logger = logging.getLogger(__name__)

class SyncReconciler:
    """
    Turns provider aggregates into synthesized sessions and appends the new ones.

    The provider only reports per-song totals, so each unit of play_count
    becomes one session stamped with the reconciliation time and an even
    share of the reported minutes. A song whose (title, artist) pair is
    already anywhere in the log is skipped entirely, so replays of a known
    song are never counted again.
    """

    def __init__(self, store: SessionStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _is_valid(self, song: RecentlyPlayedSong) -> bool:
        if song.play_count <= 0:
            logger.warning(f"Skipping '{song.title}' by {song.artist}: play_count {song.play_count} is not positive")
            return False
        if song.total_minutes < 0:
            logger.warning(f"Skipping '{song.title}' by {song.artist}: negative total_minutes {song.total_minutes}")
            return False
        if not song.title or not song.artist:
            logger.warning(f"Skipping provider record with empty title or artist: {song}")
            return False
        return True

    def synthesize(self, song: RecentlyPlayedSong, now: datetime) -> List[PlaySession]:
        """One session per reported play, splitting total_minutes evenly in whole seconds"""
        duration = (song.total_minutes * 60) // song.play_count
        return [
            PlaySession(
                song_title=song.title,
                artist_name=song.artist,
                album_title=song.album,
                timestamp=now,
                duration=duration
            )
            for _ in range(song.play_count)
        ]

    def reconcile(self, recent_songs: Iterable[RecentlyPlayedSong]) -> SyncResult:
        now = self.clock()
        existing_keys = {session.song_key for session in self.store.all()}

        synthesized = 0
        rejected = 0
        skipped_existing = 0
        new_sessions: List[PlaySession] = []

        for song in recent_songs:
            if not self._is_valid(song):
                rejected += 1
                continue

            sessions = self.synthesize(song, now)
            synthesized += len(sessions)
            if (song.title, song.artist) in existing_keys:
                skipped_existing += len(sessions)
                continue
            new_sessions.extend(sessions)

        self.store.append_batch(new_sessions)
        self.store.mark_synced(now)

        if new_sessions:
            logger.info(f"Synced {len(new_sessions)} new listening sessions")
        else:
            logger.info("Sync found no new songs")
        if skipped_existing:
            logger.debug(f"Skipped {skipped_existing} synthesized sessions for songs already in history")

        return SyncResult(
            synthesized=synthesized,
            appended=len(new_sessions),
            skipped_existing=skipped_existing,
            rejected=rejected,
            synced_at=now
        )

"""Listening statistics derived from the session log"""
import calendar
import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from wave_analytics.models.session import PlaySession
from wave_analytics.models.stats import (
    ArtistStat,
    DailyListening,
    HourlyListening,
    ListeningStats,
    SongStat,
    TimeWindow,
)

logger = logging.getLogger(__name__)

# Plays further apart than this start a new listening session
DEFAULT_SESSION_GAP = timedelta(minutes=30)
# Representative titles kept per artist
ARTIST_TOP_SONGS = 3

Clock = Callable[[], datetime]

def _default_clock() -> datetime:
    return datetime.now(timezone.utc)

def shift_months(moment: datetime, months: int) -> datetime:
    """
    Move a datetime by whole calendar months, clamping the day.

    March 31 minus one month is February 28 (or 29), matching how calendar
    arithmetic behaves on the client.
    """
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)

class ListeningAggregator:
    """Pure derivations over a sequence of PlaySession records"""

    def __init__(self, clock: Optional[Clock] = None, tz: Optional[tzinfo] = None,
                 session_gap: timedelta = DEFAULT_SESSION_GAP):
        """
        Args:
            clock: Returns the current aware datetime; defaults to UTC now
            tz: Zone for calendar days, hours and month/year shifts;
                defaults to the system local zone
            session_gap: Largest gap between plays of one listening session
        """
        self.clock = clock or _default_clock
        self.tz = tz
        self.session_gap = session_gap

    def _local(self, moment: datetime) -> datetime:
        # astimezone(None) converts to the system local zone
        return moment.astimezone(self.tz)

    # --- Windowing ---

    def window_start(self, window: TimeWindow) -> Optional[datetime]:
        """Inclusive lower bound of a window, None for all time"""
        window = TimeWindow.parse(window)
        now = self._local(self.clock())
        if window is TimeWindow.WEEK:
            return now - timedelta(days=7)
        if window is TimeWindow.MONTH:
            return shift_months(now, -1)
        if window is TimeWindow.YEAR:
            return shift_months(now, -12)
        return None

    def filter_window(self, sessions: Sequence[PlaySession], window: TimeWindow = TimeWindow.ALL_TIME) -> List[PlaySession]:
        start = self.window_start(window)
        if start is None:
            return list(sessions)
        return [session for session in sessions if session.timestamp >= start]

    # --- Rankings ---

    def top_songs(self, sessions: Sequence[PlaySession], limit: int = 25,
                  window: TimeWindow = TimeWindow.ALL_TIME) -> List[SongStat]:
        """
        Rank (title, artist) pairs by play count.

        Matching is exact and case-sensitive. Each session's minutes are
        truncated before summing. Ties keep first-seen order.
        """
        groups: Dict[Tuple[str, str], SongStat] = {}
        for session in self.filter_window(sessions, window):
            stat = groups.get(session.song_key)
            if stat is None:
                groups[session.song_key] = SongStat(
                    title=session.song_title,
                    artist=session.artist_name,
                    album=session.album_title,
                    play_count=1,
                    total_minutes=session.minutes
                )
            else:
                stat.play_count += 1
                stat.total_minutes += session.minutes

        # sorted() is stable, dict preserves insertion order
        ranked = sorted(groups.values(), key=lambda stat: stat.play_count, reverse=True)
        return ranked[:max(0, limit)]

    def top_artists(self, sessions: Sequence[PlaySession], limit: int = 25,
                    window: TimeWindow = TimeWindow.ALL_TIME) -> List[ArtistStat]:
        """Rank artists by play count, keeping the first three distinct titles heard"""
        groups: Dict[str, ArtistStat] = {}
        for session in self.filter_window(sessions, window):
            stat = groups.get(session.artist_name)
            if stat is None:
                stat = groups[session.artist_name] = ArtistStat(
                    name=session.artist_name, play_count=0, total_minutes=0
                )
            stat.play_count += 1
            stat.total_minutes += session.minutes
            if len(stat.top_songs) < ARTIST_TOP_SONGS and session.song_title not in stat.top_songs:
                stat.top_songs.append(session.song_title)

        ranked = sorted(groups.values(), key=lambda stat: stat.play_count, reverse=True)
        return ranked[:max(0, limit)]

    # --- Time buckets ---

    def daily_listening(self, sessions: Sequence[PlaySession], days: int = 30) -> List[DailyListening]:
        """Minutes per local calendar day for the last `days` days, oldest first"""
        if days <= 0:
            return []

        minutes_by_day: Dict[date, int] = {}
        for session in sessions:
            day = self._local(session.timestamp).date()
            minutes_by_day[day] = minutes_by_day.get(day, 0) + session.minutes

        today = self._local(self.clock()).date()
        return [
            DailyListening(date=day, minutes=minutes_by_day.get(day, 0))
            for day in (today - timedelta(days=offset) for offset in range(days - 1, -1, -1))
        ]

    def hourly_distribution(self, sessions: Sequence[PlaySession]) -> List[HourlyListening]:
        """Minutes per local hour of day; always 24 entries"""
        minutes_by_hour = [0] * 24
        for session in sessions:
            minutes_by_hour[self._local(session.timestamp).hour] += session.minutes
        return [HourlyListening(hour=hour, minutes=minutes) for hour, minutes in enumerate(minutes_by_hour)]

    # --- Summary ---

    def session_lengths(self, sessions: Sequence[PlaySession]) -> List[int]:
        """
        Group plays into listening sessions and return each one's minutes.

        Plays are sorted by timestamp; a gap larger than session_gap closes
        the current cluster. Clusters adding up to zero minutes are dropped.
        """
        lengths: List[int] = []
        current_minutes = 0
        last_timestamp: Optional[datetime] = None

        for session in sorted(sessions, key=lambda s: s.timestamp):
            if last_timestamp is not None and session.timestamp - last_timestamp > self.session_gap:
                if current_minutes > 0:
                    lengths.append(current_minutes)
                current_minutes = 0
            current_minutes += session.minutes
            last_timestamp = session.timestamp

        if current_minutes > 0:
            lengths.append(current_minutes)
        return lengths

    def summary_stats(self, sessions: Sequence[PlaySession],
                      window: TimeWindow = TimeWindow.ALL_TIME) -> ListeningStats:
        filtered = self.filter_window(sessions, window)
        lengths = self.session_lengths(filtered)

        stats = ListeningStats(
            total_minutes=sum(session.minutes for session in filtered),
            # Counts plays, so a replayed song counts again
            total_songs=len(filtered),
            unique_artists=len({session.artist_name for session in filtered}),
            average_session_length=sum(lengths) // len(lengths) if lengths else 0,
            longest_session=max(lengths, default=0)
        )
        logger.debug(f"Summary for {TimeWindow.parse(window).value}: {stats}")
        return stats

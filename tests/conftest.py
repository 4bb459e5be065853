"""Shared fixtures for the wave_analytics test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from wave_analytics.aggregation import ListeningAggregator
from wave_analytics.db import Database
from wave_analytics.models.session import PlaySession
from wave_analytics.services.storage import SettingsStore

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def aggregator(clock):
    """Aggregator pinned to FIXED_NOW with UTC calendar buckets."""
    return ListeningAggregator(clock=clock, tz=timezone.utc)


@pytest.fixture
def make_session():
    """Factory for PlaySession records relative to FIXED_NOW."""

    def _make(title="Song", artist="Artist", seconds=60, minutes_ago=0, album="Album", at=None):
        return PlaySession(
            song_title=title,
            artist_name=artist,
            album_title=album,
            timestamp=at or FIXED_NOW - timedelta(minutes=minutes_ago),
            duration=seconds,
        )

    return _make


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'settings.db'}")
    db.init()
    yield db
    db.dispose()


@pytest.fixture
def settings_store(database):
    store = SettingsStore(database.get_session())
    yield store
    store.close()

"""Tests for the Apple Music recently played client."""

import pytest
import requests
import responses
from responses import matchers

from wave_analytics.services import apple_music
from wave_analytics.services.apple_music import AppleMusicAPI

RECENT_URL = "https://api.music.apple.com/v1/me/recent/played/tracks"


def _track(track_id, name, artist, album="Album", millis=200000):
    return {
        "id": track_id,
        "type": "songs",
        "attributes": {
            "name": name,
            "artistName": artist,
            "albumName": album,
            "durationInMillis": millis,
        },
    }


@pytest.fixture
def client():
    return AppleMusicAPI(developer_token="dev-token", user_token="user-token")


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(apple_music.time, "sleep", lambda seconds: None)


class TestConstruction:
    """Tests for client construction."""

    @pytest.mark.parametrize("developer_token, user_token", [("", "user"), ("dev", "")])
    def test_rejects_empty_tokens(self, developer_token, user_token):
        with pytest.raises(ValueError):
            AppleMusicAPI(developer_token=developer_token, user_token=user_token)


class TestGetRecentlyPlayedSongs:
    """Tests for folding recent plays into per-song aggregates."""

    @responses.activate
    def test_folds_repeated_tracks(self, client):
        responses.add(
            responses.GET,
            RECENT_URL,
            json={
                "data": [
                    _track("1", "Song One", "Artist", millis=200000),
                    _track("2", "Song Two", "Other", millis=59000),
                    _track("1", "Song One", "Artist", millis=200000),
                ]
            },
            status=200,
        )

        songs = client.get_recently_played_songs()

        assert [(s.title, s.artist, s.play_count, s.total_minutes) for s in songs] == [
            ("Song One", "Artist", 2, 6),
            ("Song Two", "Other", 1, 0),
        ]
        assert songs[0].catalog_id == "1"
        assert songs[0].album == "Album"

    @responses.activate
    def test_sends_both_tokens(self, client):
        responses.add(responses.GET, RECENT_URL, json={"data": []}, status=200)

        client.get_recently_played_songs()

        headers = responses.calls[0].request.headers
        assert headers["Authorization"] == "Bearer dev-token"
        assert headers["Music-User-Token"] == "user-token"

    @responses.activate
    def test_follows_next_link(self, client):
        responses.add(
            responses.GET,
            RECENT_URL,
            match=[matchers.query_param_matcher({"limit": "10"})],
            json={"data": [_track("1", "First", "A")], "next": "/v1/me/recent/played/tracks?offset=10"},
            status=200,
        )
        responses.add(
            responses.GET,
            RECENT_URL,
            match=[matchers.query_param_matcher({"offset": "10"})],
            json={"data": [_track("2", "Second", "B")]},
            status=200,
        )

        songs = client.get_recently_played_songs()

        assert [s.title for s in songs] == ["First", "Second"]
        assert len(responses.calls) == 2

    @responses.activate
    def test_stops_at_max_pages(self):
        limited = AppleMusicAPI(developer_token="dev", user_token="user", max_pages=1)
        responses.add(
            responses.GET,
            RECENT_URL,
            json={"data": [_track("1", "First", "A")], "next": "/v1/me/recent/played/tracks?offset=10"},
            status=200,
        )

        limited.get_recently_played_songs()

        assert len(responses.calls) == 1

    @responses.activate
    def test_skips_entries_without_title_or_attributes(self, client):
        responses.add(
            responses.GET,
            RECENT_URL,
            json={"data": [{"id": "x"}, _track("2", "", "Artist"), _track("3", "Real", "Artist")]},
            status=200,
        )

        songs = client.get_recently_played_songs()

        assert [s.title for s in songs] == ["Real"]

    @responses.activate
    def test_missing_album_uses_placeholder(self, client):
        track = _track("1", "Song", "Artist")
        del track["attributes"]["albumName"]
        responses.add(responses.GET, RECENT_URL, json={"data": [track]}, status=200)

        assert client.get_recently_played_songs()[0].album == "Unknown Album"


class TestErrorHandling:
    """Tests for HTTP error handling and retries."""

    @responses.activate
    def test_unauthorized_raises_immediately(self, client):
        responses.add(responses.GET, RECENT_URL, json={"errors": []}, status=401)

        with pytest.raises(requests.exceptions.HTTPError):
            client.get_recently_played_songs()
        assert len(responses.calls) == 1

    @responses.activate
    def test_retries_server_errors(self, client):
        responses.add(responses.GET, RECENT_URL, json={"errors": []}, status=503)
        responses.add(responses.GET, RECENT_URL, json={"data": [_track("1", "Song", "A")]}, status=200)

        songs = client.get_recently_played_songs()

        assert len(songs) == 1
        assert len(responses.calls) == 2

    @responses.activate
    def test_gives_up_after_retries(self, client):
        responses.add(responses.GET, RECENT_URL, json={"errors": []}, status=500)

        with pytest.raises(requests.exceptions.HTTPError):
            client.get_recently_played_songs()
        assert len(responses.calls) == 3

    @responses.activate
    def test_rate_limit_is_retried(self, client):
        responses.add(responses.GET, RECENT_URL, status=429, headers={"Retry-After": "1"})
        responses.add(responses.GET, RECENT_URL, json={"data": []}, status=200)

        assert client.get_recently_played_songs() == []
        assert len(responses.calls) == 2

    @responses.activate
    def test_rate_limit_with_http_date_is_retried(self, client, monkeypatch):
        waits = []
        monkeypatch.setattr(apple_music.time, "sleep", waits.append)
        responses.add(
            responses.GET,
            RECENT_URL,
            status=429,
            headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"},
        )
        responses.add(responses.GET, RECENT_URL, json={"data": [_track("1", "Song", "A")]}, status=200)

        songs = client.get_recently_played_songs()

        assert len(songs) == 1
        assert waits[0] == apple_music.RATE_LIMIT_RETRY_BASE_DELAY

    @pytest.mark.parametrize("value, expected", [
        ("5", 5),
        ("0", 1),
        ("3600", 60),
        (None, 4),
        ("Wed, 21 Oct 2026 07:28:00 GMT", 4),
        ("soon", 4),
    ])
    def test_parse_retry_after(self, value, expected):
        assert apple_music.parse_retry_after(value, default=4) == expected

    @responses.activate
    def test_unexpected_payload_yields_nothing(self, client):
        responses.add(responses.GET, RECENT_URL, json={"results": {}}, status=200)

        assert client.get_recently_played_songs() == []

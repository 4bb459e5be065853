"""Apple Music API integration service"""
import logging
import time
from typing import Dict, List, Optional, Protocol
from urllib.parse import urljoin

import requests

from wave_analytics.config import UNKNOWN_ALBUM
from wave_analytics.models.session import RecentlyPlayedSong

logger = logging.getLogger(__name__)

# --- Constants for Fetching Control ---
# Apple Music caps recently played tracks at 10 per page
RECENT_PAGE_SIZE = 10
# Max pages of recently played tracks per fetch
MAX_RECENT_PAGES = 5
# Base delay in seconds for retries on rate limit
RATE_LIMIT_RETRY_BASE_DELAY = 2
# Small delay between pagination requests to be gentle on the API
PAGINATION_DELAY_SECONDS = 0.1
REQUEST_TIMEOUT_SECONDS = 15
# ------------------------------------

def parse_retry_after(value: Optional[str], default: int) -> int:
    """Seconds to wait for a Retry-After header, clamped to 1-60s"""
    try:
        seconds = int(value) if value is not None else default
    except ValueError:
        # HTTP-date or garbage
        logger.warning(f"Unparseable Retry-After header {value!r}, using {default}s")
        seconds = default
    return max(1, min(seconds, 60))

class CatalogProvider(Protocol):
    """Anything that can report recently played songs as per-song aggregates"""

    def get_recently_played_songs(self) -> List[RecentlyPlayedSong]:
        ...

class AppleMusicAPI:
    """Handles Apple Music API interactions for the listener's recent plays"""

    def __init__(self, developer_token: str, user_token: str,
                 base_url: str = "https://api.music.apple.com/v1",
                 max_pages: int = MAX_RECENT_PAGES):
        if not developer_token:
            raise ValueError("Apple Music developer token cannot be empty")
        if not user_token:
            raise ValueError("Apple Music user token cannot be empty")
        self.base_url = base_url.rstrip('/')
        self.max_pages = max_pages
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {developer_token}',
            'Music-User-Token': user_token,
            'Accept': 'application/json'
        })

    def _make_request(self, url: str, params: Optional[Dict] = None, retries: int = 3) -> Dict:
        """Make authenticated GET request with retries"""
        attempt = 0
        last_exception = None

        while attempt < retries:
            attempt += 1
            try:
                logger.debug(f"Attempt {attempt}/{retries}: Making request to {url}")
                response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
                response.raise_for_status()
                try:
                    json_response = response.json()
                except ValueError:
                    logger.error(f"Failed to decode JSON response from {url}. Status: {response.status_code}. Response text: {response.text[:200]}")
                    return {}
                return json_response if isinstance(json_response, dict) else {}
            except requests.exceptions.HTTPError as e:
                last_exception = e
                status = e.response.status_code
                logger.warning(f"HTTP Error on attempt {attempt} for {url}: {e}")
                if status == 401:
                    logger.error(f"Apple Music token is invalid or expired (401) for {url}. Cannot proceed.")
                    raise
                elif status == 403:
                    logger.error(f"Forbidden access (403) to Apple Music endpoint {url}. Check the user token.")
                    raise
                elif status == 429:
                    retry_after = parse_retry_after(
                        e.response.headers.get('Retry-After'),
                        default=RATE_LIMIT_RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    )
                    if attempt < retries:
                        logger.warning(f"Rate limit hit (429) for {url}. Retrying after {retry_after} seconds...")
                        time.sleep(retry_after)
                    continue
                elif status >= 500:
                    logger.warning(f"Apple Music server error ({status}) for {url}. Retrying...")
                else:
                    logger.error(f"Client error ({status}) for {url}. Aborting request.")
                    raise
            except requests.exceptions.RequestException as e:
                last_exception = e
                logger.warning(f"Request Error on attempt {attempt} for {url}: {e}. Retrying...")

            if attempt < retries:
                sleep_time = RATE_LIMIT_RETRY_BASE_DELAY * (1.5 ** (attempt - 1)) + (0.5 * attempt)
                logger.info(f"Waiting {sleep_time:.2f}s before next retry for {url}...")
                time.sleep(sleep_time)

        logger.error(f"Request failed after {retries} attempts for {url}.")
        raise last_exception or requests.exceptions.RetryError(f"Request failed after {retries} attempts for {url}")

    def get_recently_played(self) -> List[Dict]:
        """
        Fetch raw recently played track resources, newest first.

        Follows the response's `next` link for up to max_pages pages.
        """
        items: List[Dict] = []
        url: Optional[str] = f'{self.base_url}/me/recent/played/tracks'
        params: Optional[Dict] = {'limit': RECENT_PAGE_SIZE}
        page_count = 0

        while url and page_count < self.max_pages:
            response_data = self._make_request(url, params=params)
            page_count += 1
            page = response_data.get('data')
            if not isinstance(page, list):
                logger.warning(f"Unexpected response format for recently played: {response_data}")
                break
            items.extend(page)
            logger.info(f"Page {page_count}: Found {len(page)} recently played tracks")

            next_path = response_data.get('next')
            if not next_path or not page:
                break
            # `next` is a root-relative path that already carries the query
            url = urljoin(self.base_url, next_path)
            params = None
            time.sleep(PAGINATION_DELAY_SECONDS)

        logger.info(f"Fetched {len(items)} recently played tracks in {page_count} pages.")
        return items

    def get_recently_played_songs(self) -> List[RecentlyPlayedSong]:
        """
        Fold recently played tracks into per-song aggregates.

        A track appearing n times becomes one record with play_count n and
        total_minutes = whole minutes of the track times n.
        """
        songs: Dict[str, RecentlyPlayedSong] = {}
        for item in self.get_recently_played():
            attributes = item.get('attributes') if isinstance(item, dict) else None
            if not isinstance(attributes, dict):
                logger.warning(f"Skipping recently played entry without attributes: {item}")
                continue

            title = attributes.get('name')
            artist = attributes.get('artistName')
            if not title or not artist:
                logger.warning(f"Skipping recently played entry missing title or artist: {item.get('id')}")
                continue

            key = item.get('id') or f"{title}-{artist}"
            track_minutes = int(attributes.get('durationInMillis') or 0) // 60000
            existing = songs.get(key)
            if existing:
                play_count = existing.play_count + 1
                songs[key] = existing.model_copy(update={
                    'play_count': play_count,
                    'total_minutes': track_minutes * play_count
                })
            else:
                songs[key] = RecentlyPlayedSong(
                    title=title,
                    artist=artist,
                    album=attributes.get('albumName') or UNKNOWN_ALBUM,
                    play_count=1,
                    total_minutes=track_minutes,
                    catalog_id=item.get('id')
                )

        logger.info(f"Recently played tracks folded into {len(songs)} songs")
        return list(songs.values())

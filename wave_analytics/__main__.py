"""Entry point for listening report generation"""
import json
import logging
import os
import sys
import traceback
from typing import Optional

import requests

from wave_analytics.config import settings
from wave_analytics.engine import ListeningAnalyticsEngine
from wave_analytics.models.stats import TimeWindow
from wave_analytics.services.apple_music import AppleMusicAPI, CatalogProvider

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), format='%(message)s')
logger = logging.getLogger(__name__)

REPORT_FILENAME = "analytics_report.json"

def build_provider() -> Optional[CatalogProvider]:
    """Apple Music client from settings, or None when sync is off or unconfigured"""
    if not settings.SYNC_ON_RUN:
        logger.info("SYNC_ON_RUN is false. Skipping Apple Music sync.")
        return None

    apple_music = settings.apple_music_settings
    if apple_music is None:
        logger.info("Apple Music tokens not configured. Skipping sync.")
        return None

    return AppleMusicAPI(
        developer_token=apple_music.developer_token,
        user_token=apple_music.user_token,
        base_url=apple_music.base_url
    )

def sync_recent_plays(engine: ListeningAnalyticsEngine, provider: CatalogProvider) -> None:
    """Pull recently played songs from the provider into the local history"""
    try:
        recent_songs = provider.get_recently_played_songs()
    except requests.exceptions.RequestException as e:
        # Reporting still works from local history
        logger.error(f"Failed to fetch recently played songs: {e}")
        return

    result = engine.sync(recent_songs)
    logger.info(f"Sync result: {result.appended} appended, {result.skipped_existing} already known, {result.rejected} rejected")

def run() -> None:
    """Sync, build the report and write it to OUTPUT_DIR."""
    engine = None
    try:
        window = TimeWindow.parse(settings.DEFAULT_WINDOW)

        logger.info("Using configuration:")
        safe_config = settings.model_dump(exclude={'APPLE_MUSIC_DEVELOPER_TOKEN', 'APPLE_MUSIC_USER_TOKEN'})
        logger.info(json.dumps(safe_config, indent=2))

        engine = ListeningAnalyticsEngine.from_settings(settings)
        provider = build_provider()
        if provider is not None:
            sync_recent_plays(engine, provider)

        report = engine.build_report(window=window, limit=settings.TOP_LIMIT, days=settings.DAILY_DAYS)

        os.makedirs(settings.OUTPUT_DIR, exist_ok=True)
        output_path = os.path.join(settings.OUTPUT_DIR, REPORT_FILENAME)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report.model_dump(mode='json'), f, indent=2, ensure_ascii=False)

        stats = report.stats
        logger.info(f"{stats.total_songs} plays, {stats.total_minutes} minutes, {stats.unique_artists} artists ({window.value})")
        if report.top_songs:
            top = report.top_songs[0]
            logger.info(f"Top song: {top.title} by {top.artist} ({top.play_count} plays)")
        logger.info(f"Report written to {output_path}")

    except Exception as e:
        logger.error(f"Error during report generation: {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        if engine is not None:
            engine.close()

if __name__ == "__main__":
    run()

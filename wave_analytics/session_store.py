"""Append-only local log of play sessions"""
import json
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from wave_analytics.models.session import PlaySession, ensure_aware
from wave_analytics.services.storage import SettingsStore
from wave_analytics.utils.json_encoder import json_dumps

logger = logging.getLogger(__name__)

_session_list = TypeAdapter(List[PlaySession])

class SessionStore:
    """
    Ordered, append-only sequence of PlaySession records.

    The whole sequence is written to one settings slot on every mutation and
    the sync cursor to a second slot. Persistence failures never reach the
    caller: the in-memory sequence stays authoritative for the life of the
    process. A store without a backend is purely in-memory.

    Not internally locked. all() returns a copy, so readers never iterate
    the live list; concurrent writers need external serialization.
    """

    def __init__(self, backend: Optional[SettingsStore] = None,
                 sessions_key: str = "listeningSessionsKey",
                 last_sync_key: str = "lastSyncDateKey"):
        self.backend = backend
        self.sessions_key = sessions_key
        self.last_sync_key = last_sync_key
        self._sessions: List[PlaySession] = []
        self._last_sync: Optional[datetime] = None
        self._load()

    # --- Persistence ---

    def _load(self) -> None:
        if self.backend is None:
            return

        try:
            raw_sessions = self.backend.get(self.sessions_key)
            if raw_sessions is not None:
                self._sessions = _session_list.validate_python(json.loads(raw_sessions))
        except (SQLAlchemyError, ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Could not load stored sessions from {self.sessions_key}, starting empty: {e}")
            self._sessions = []

        try:
            raw_cursor = self.backend.get(self.last_sync_key)
            if raw_cursor is not None:
                self._last_sync = ensure_aware(datetime.fromisoformat(raw_cursor))
        except (SQLAlchemyError, ValueError) as e:
            logger.warning(f"Could not load sync cursor from {self.last_sync_key}: {e}")
            self._last_sync = None

        logger.info(f"Loaded {len(self._sessions)} listening sessions (last sync: {self._last_sync})")

    def _save_sessions(self) -> None:
        if self.backend is None:
            return
        try:
            payload = json_dumps([session.model_dump() for session in self._sessions])
            self.backend.set(self.sessions_key, payload)
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist {len(self._sessions)} sessions; keeping in-memory state: {e}")

    def _save_cursor(self) -> None:
        if self.backend is None:
            return
        try:
            if self._last_sync is None:
                self.backend.delete(self.last_sync_key)
            else:
                self.backend.set(self.last_sync_key, self._last_sync.isoformat())
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist sync cursor; keeping in-memory state: {e}")

    # --- Writes ---

    def append(self, session: PlaySession) -> None:
        self._sessions.append(session)
        self._save_sessions()

    def append_batch(self, sessions: Iterable[PlaySession]) -> None:
        """Append in order and persist once"""
        batch = list(sessions)
        if not batch:
            return
        self._sessions.extend(batch)
        self._save_sessions()

    def mark_synced(self, when: datetime) -> None:
        self._last_sync = when
        self._save_cursor()

    def clear(self) -> None:
        """Drop every session and reset the sync cursor"""
        self._sessions = []
        self._last_sync = None
        self._save_sessions()
        self._save_cursor()
        logger.info("Cleared all listening history")

    # --- Reads ---

    def all(self) -> List[PlaySession]:
        return list(self._sessions)

    @property
    def last_sync(self) -> Optional[datetime]:
        return self._last_sync

    def __len__(self) -> int:
        return len(self._sessions)

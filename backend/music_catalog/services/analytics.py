"""
Fire-and-forget telemetry.

Events are pushed onto an RQ queue and delivered to the analytics endpoint by
the worker, so a request never waits on the sink. When telemetry is disabled
the no-op tracker is used and events are skipped rather than queued.
"""
import time
from typing import Any, Dict, Optional

import requests

from music_catalog.config import get_settings
from music_catalog.logger import get_logger

logger = get_logger("analytics")


class Events:
    """Event names."""
    PAGE_VIEW = "page_view"

    # Auth
    LOGIN = "login"
    LOGIN_ERROR = "login_error"
    SIGN_UP = "sign_up"
    SIGN_UP_ERROR = "sign_up_error"
    GOOGLE_SIGN_IN_ATTEMPT = "google_sign_in_attempt"
    GOOGLE_SIGN_IN_ERROR = "google_sign_in_error"
    LOGOUT = "logout"

    # Content interaction
    PLAY_SONG = "play_song"
    PAUSE_SONG = "pause_song"
    SKIP_SONG = "skip_song"
    VIEW_ARTIST = "view_artist"
    VIEW_GENRE = "view_genre"
    ARTIST_SONGS_LOADED = "artist_songs_loaded"
    SEARCH = "search"

    # Admin actions
    CREATE_GENRE = "create_genre"
    UPDATE_GENRE = "update_genre"
    DELETE_GENRE = "delete_genre"
    CREATE_ARTIST = "create_artist"
    UPDATE_ARTIST = "update_artist"
    DELETE_ARTIST = "delete_artist"
    CREATE_SONG = "create_song"
    UPDATE_SONG = "update_song"
    DELETE_SONG = "delete_song"


# Events a browser may report through POST /events.
CLIENT_EVENTS = frozenset({
    Events.PLAY_SONG,
    Events.PAUSE_SONG,
    Events.SKIP_SONG,
    Events.SEARCH,
})


class NullAnalyticsTracker:
    """Tracker used when telemetry is disabled."""

    enabled = False

    def track(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        logger.debug(f"[Analytics] {name} {params or {}}")


class AnalyticsTracker:
    """Tracker that queues events for the worker."""

    enabled = True

    def __init__(
        self,
        queue_manager=None,
        queue_name: Optional[str] = None,
        retry_seconds: Optional[float] = None
    ):
        if queue_manager is None:
            from music_catalog.queue import get_queue_manager
            queue_manager = get_queue_manager()
        settings = get_settings()
        self._queue_manager = queue_manager
        self._queue_name = queue_name or settings.analytics_queue
        self._retry_seconds = settings.analytics_retry_seconds if retry_seconds is None else retry_seconds
        self._paused_until = 0.0

    @property
    def paused(self) -> bool:
        """True while events are dropped after a failed enqueue."""
        return time.monotonic() < self._paused_until

    def track(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        if self.paused:
            logger.debug(f"Analytics queue unavailable, dropping '{name}'")
            return

        payload = {
            "name": name,
            "params": params or {},
            "timestamp": time.time(),
        }
        try:
            self._queue_manager.enqueue_job(self._queue_name, deliver_event, payload)
        except Exception as e:
            # Queue down: drop events without dialing Redis until the pause ends.
            self._paused_until = time.monotonic() + self._retry_seconds
            logger.warning(
                f"Dropping analytics event '{name}', pausing telemetry for {self._retry_seconds:.0f}s: {e}"
            )


def deliver_event(payload: Dict[str, Any]) -> bool:
    """Worker job: post one event to the analytics endpoint."""
    endpoint = get_settings().analytics_endpoint
    if not endpoint:
        logger.info(f"No analytics endpoint configured, skipping '{payload.get('name')}'")
        return False

    response = requests.post(endpoint, json=payload, timeout=10)
    response.raise_for_status()
    logger.debug(f"Delivered analytics event '{payload.get('name')}'")
    return True


def create_tracker():
    """Tracker matching the current configuration."""
    if get_settings().analytics_active:
        return AnalyticsTracker()
    logger.info("Analytics disabled, events will be skipped")
    return NullAnalyticsTracker()

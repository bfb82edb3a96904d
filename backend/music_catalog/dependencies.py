"""
FastAPI dependencies for sessions and telemetry.
"""
from typing import Optional
from fastapi import Depends, Request
from music_catalog.config import get_settings
from music_catalog.exceptions import ExternalServiceError
from music_catalog.logger import get_logger
from music_catalog.models import ANONYMOUS, SessionSnapshot
from music_catalog.session import SessionManager, SessionStore

logger = get_logger("dependencies")


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_analytics(request: Request):
    return request.app.state.analytics


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(get_settings().session_cookie_name)


def get_session_store(
    session_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager)
) -> Optional[SessionStore]:
    """The visitor's session store, once its first auth transition resolved."""
    store = manager.get(session_id)
    if store is None:
        return None

    if not store.wait_until_ready(get_settings().session_ready_timeout):
        logger.error("Session did not finish loading in time")
        raise ExternalServiceError("Session is still loading, please retry")
    return store


def get_session_snapshot(
    store: Optional[SessionStore] = Depends(get_session_store)
) -> SessionSnapshot:
    return store.snapshot() if store is not None else ANONYMOUS

"""
Authentication routes: registration, login, Google sign-in, logout and the
current session.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from music_catalog.config import get_settings
from music_catalog.dependencies import get_session_id, get_session_manager, get_session_snapshot
from music_catalog.exceptions import AuthenticationError
from music_catalog.logger import get_logger
from music_catalog.models import SessionSnapshot
from music_catalog.schemas import GoogleSignInRequest, LoginRequest, SignupRequest
from music_catalog.session import SessionManager, SessionStore

logger = get_logger("auth_routes")
router = APIRouter(tags=["authentication"])


def _activate(
    response: Response,
    manager: SessionManager,
    previous_id: Optional[str],
    session_id: str,
    store: SessionStore
) -> dict:
    """Hand the new session to the visitor and drop the one it replaces."""
    if previous_id and previous_id != session_id:
        manager.discard(previous_id)
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return store.snapshot().to_dict()


@router.get("/login")
async def login_screen(session: SessionSnapshot = Depends(get_session_snapshot)):
    """Login screen context."""
    return {"providers": ["password", "google"], "session": session.to_dict()}


@router.get("/register")
async def register_screen(session: SessionSnapshot = Depends(get_session_snapshot)):
    """Registration screen context."""
    return {"session": session.to_dict()}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: SignupRequest,
    response: Response,
    previous_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager)
):
    """Register a new account with email and password."""
    logger.info(f"Registration attempt for email: {payload.email}")
    session_id, store = manager.create_session()

    result = store.signup(payload.email, payload.password, payload.display_name)
    if not result.success:
        manager.discard(session_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)

    logger.info(f"User registered successfully: {payload.email}")
    return {**result.to_dict(), "session": _activate(response, manager, previous_id, session_id, store)}


@router.post("/login")
async def login(
    payload: LoginRequest,
    response: Response,
    previous_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager)
):
    """Sign in with email and password."""
    logger.info(f"Login attempt for email: {payload.email}")
    session_id, store = manager.create_session()

    try:
        store.login(payload.email, payload.password)
    except AuthenticationError:
        manager.discard(session_id)
        raise

    logger.info(f"User logged in successfully: {payload.email}")
    return {"success": True, "session": _activate(response, manager, previous_id, session_id, store)}


@router.post("/login/google")
async def login_with_google(
    payload: GoogleSignInRequest,
    response: Response,
    previous_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager)
):
    """Sign in with a Google ID token."""
    session_id, store = manager.create_session()

    result = store.sign_in_with_google(payload.id_token)
    if not result.success:
        manager.discard(session_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.error)

    return {**result.to_dict(), "session": _activate(response, manager, previous_id, session_id, store)}


@router.post("/logout")
async def logout(
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager)
):
    """Sign out and forget the session."""
    store = manager.get(session_id)
    response.delete_cookie(get_settings().session_cookie_name)
    if store is None:
        return {"success": True}

    try:
        store.logout()
    finally:
        manager.discard(session_id)
    return {"success": True}


@router.get("/session")
async def current_session(session: SessionSnapshot = Depends(get_session_snapshot)):
    """Who is signed in and whether they can administer the catalog."""
    return session.to_dict()

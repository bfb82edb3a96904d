"""
Session state for signed-in visitors.

A SessionStore holds ``(current_user, is_admin, loading)`` for one visitor. It
subscribes to its identity provider's auth-state notifications when started
and, on every transition, re-reads the visitor's profile document to decide
the admin flag. The SessionManager owns the stores, keyed by the opaque
session id carried in the visitor's cookie.
"""
import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from music_catalog import crud
from music_catalog.config import get_settings
from music_catalog.exceptions import AuthenticationError, CatalogException, DatabaseError
from music_catalog.logger import get_logger
from music_catalog.models import AuthResult, Principal, SessionSnapshot
from music_catalog.schemas import UserProfile
from music_catalog.services.analytics import Events, NullAnalyticsTracker

logger = get_logger("session")


class SessionStore:
    """Auth state of one visitor, fed by identity provider notifications."""

    def __init__(self, identity, analytics=None):
        self._identity = identity
        self._analytics = analytics or NullAnalyticsTracker()
        self._lock = threading.RLock()
        self._ready = threading.Event()
        self._current_user: Optional[Principal] = None
        self._is_admin = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._stopped = False
        self.last_seen = time.monotonic()

    # Lifecycle
    def start(self) -> "SessionStore":
        """Subscribe to auth-state changes and resolve the initial session."""
        self._unsubscribe = self._identity.on_auth_state_change(self._handle_transition)
        try:
            initial = self._identity.current_principal()
        except AuthenticationError as e:
            logger.warning(f"Could not resolve initial session: {e.message}")
            initial = None
        self._handle_transition(initial)
        return self

    def stop(self) -> None:
        """Unsubscribe and end the identity client's auth session."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        self._identity.close()

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    # State
    @property
    def current_user(self) -> Optional[Principal]:
        with self._lock:
            return self._current_user

    @property
    def is_admin(self) -> bool:
        with self._lock:
            return self._is_admin

    @property
    def loading(self) -> bool:
        return not self._ready.is_set()

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(self._current_user, self._is_admin, self.loading)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the first auth transition has been resolved."""
        return self._ready.wait(timeout)

    def _handle_transition(self, principal: Optional[Principal]) -> None:
        if self._stopped:
            return

        is_admin = self._resolve_admin_flag(principal) if principal else False
        with self._lock:
            if self._stopped:
                return
            self._current_user = principal
            self._is_admin = is_admin
        self._ready.set()
        logger.debug(f"Session transition: user={principal!r} admin={is_admin}")

    def _resolve_admin_flag(self, principal: Principal) -> bool:
        try:
            profile = crud.get_user_profile(principal.uid)
        except DatabaseError as e:
            logger.error(f"Error checking admin status for {principal.uid}: {e.message}")
            return False
        return bool(profile and profile.is_admin)

    # Operations
    def signup(self, email: str, password: str, display_name: str) -> AuthResult:
        """Create an email/password account and its profile document."""
        try:
            principal = self._identity.sign_up(email, password, display_name)
            crud.create_user_profile(UserProfile(
                uid=principal.uid,
                email=email,
                display_name=display_name,
                is_admin=False,
            ))
        except CatalogException as e:
            logger.warning(f"Sign-up failed for {email}: {e.message}")
            self._analytics.track(Events.SIGN_UP_ERROR, {"error_message": e.message})
            return AuthResult(success=False, error=e.message)

        self._analytics.track(Events.SIGN_UP, {"method": "email_password", "email": email})
        return AuthResult(success=True)

    def login(self, email: str, password: str) -> Principal:
        """Sign in with email and password. Failures propagate."""
        try:
            principal = self._identity.sign_in_with_password(email, password)
        except AuthenticationError as e:
            logger.warning(f"Login failed for {email}: {e.message}")
            self._analytics.track(Events.LOGIN_ERROR, {"error_message": e.message, "email": email})
            raise

        self._analytics.track(Events.LOGIN, {"method": "email_password", "email": email})
        return principal

    def sign_in_with_google(self, id_token: str) -> AuthResult:
        """Sign in with a Google ID token, creating the profile on first use."""
        self._analytics.track(Events.GOOGLE_SIGN_IN_ATTEMPT)
        try:
            principal = self._identity.sign_in_with_google(id_token)
            is_new_user = crud.get_user_profile(principal.uid) is None
            if is_new_user:
                crud.create_user_profile(UserProfile(
                    uid=principal.uid,
                    email=principal.email,
                    display_name=principal.display_name,
                    photo_url=principal.photo_url,
                    is_admin=False,
                ))
                self._analytics.track(Events.SIGN_UP, {"method": "google", "email": principal.email})
        except CatalogException as e:
            logger.error(f"Error signing in with Google: {e.message}")
            self._analytics.track(Events.GOOGLE_SIGN_IN_ERROR, {"error_message": e.message})
            return AuthResult(success=False, error=e.message)

        self._analytics.track(Events.LOGIN, {
            "method": "google",
            "email": principal.email,
            "is_new_user": is_new_user,
        })
        return AuthResult(success=True)

    def logout(self) -> None:
        """Sign out. Failures propagate."""
        user = self.current_user
        if user is not None:
            self._analytics.track(Events.LOGOUT, {"user_id": user.uid})
        try:
            self._identity.sign_out()
        except AuthenticationError as e:
            logger.error(f"Error during logout: {e.message}")
            raise


class SessionManager:
    """Owns one SessionStore per signed-in visitor."""

    def __init__(self, identity_factory=None, analytics=None, ttl_seconds: Optional[int] = None):
        if identity_factory is None:
            from music_catalog.identity import SupabaseIdentityProvider
            identity_factory = SupabaseIdentityProvider
        self._identity_factory = identity_factory
        self.analytics = analytics or NullAnalyticsTracker()
        self._ttl = ttl_seconds if ttl_seconds is not None else get_settings().session_ttl_seconds
        self._sessions: Dict[str, SessionStore] = {}
        self._lock = threading.Lock()

    def create_session(self) -> Tuple[str, SessionStore]:
        """Start a store with a fresh identity client and register it."""
        store = SessionStore(self._identity_factory(), self.analytics).start()
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_id] = store
        return session_id, store

    def get(self, session_id: Optional[str]) -> Optional[SessionStore]:
        if not session_id:
            return None
        self.purge_expired()
        with self._lock:
            store = self._sessions.get(session_id)
        if store is not None:
            store.touch()
        return store

    def discard(self, session_id: Optional[str]) -> None:
        with self._lock:
            store = self._sessions.pop(session_id, None) if session_id else None
        if store is not None:
            store.stop()

    def purge_expired(self) -> int:
        cutoff = time.monotonic() - self._ttl
        with self._lock:
            expired = [sid for sid, store in self._sessions.items() if store.last_seen < cutoff]
            stores = [self._sessions.pop(sid) for sid in expired]
        for store in stores:
            store.stop()
        if stores:
            logger.info(f"Expired {len(stores)} idle sessions")
        return len(stores)

    def stop(self) -> None:
        """Stop every store; called on application shutdown."""
        with self._lock:
            stores = list(self._sessions.values())
            self._sessions.clear()
        for store in stores:
            store.stop()
        logger.info(f"Stopped {len(stores)} sessions")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

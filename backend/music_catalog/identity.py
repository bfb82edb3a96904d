"""
Identity provider adapter around Supabase Auth.

Each instance owns its own Supabase client, and with it one auth session, the
same way a browser holds exactly one signed-in user. The session manager
creates one provider per visitor.
"""
from typing import Callable, Optional

from supabase import create_client, Client, ClientOptions

from music_catalog.config import get_settings
from music_catalog.logger import get_logger
from music_catalog.models import Principal
from music_catalog.exceptions import AuthenticationError

logger = get_logger("identity")

AuthStateCallback = Callable[[Optional[Principal]], None]


def _principal_from_session(session) -> Optional[Principal]:
    user = getattr(session, "user", None) if session else None
    return Principal.from_auth_user(user) if user else None


class SupabaseIdentityProvider:
    """Email/password and Google sign-in backed by Supabase Auth."""

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            settings = get_settings()
            # Token refresh happens lazily in get_session(); no background refresh timer.
            client = create_client(
                settings.supabase_url,
                settings.supabase_key,
                options=ClientOptions(auto_refresh_token=False),
            )
        self._client = client

    @property
    def auth(self):
        return self._client.auth

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Subscribe to session changes.

        The callback receives the signed-in principal, or None once signed
        out. Returns a function that cancels the subscription.
        """
        def _listener(event, session):
            logger.debug(f"Auth state change: {event}")
            callback(_principal_from_session(session))

        subscription = self.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    def current_principal(self) -> Optional[Principal]:
        try:
            return _principal_from_session(self.auth.get_session())
        except Exception as e:
            raise AuthenticationError("Could not read the current session", str(e))

    def sign_up(self, email: str, password: str, display_name: str) -> Principal:
        try:
            response = self.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"display_name": display_name}},
            })
        except Exception as e:
            raise AuthenticationError(str(e))

        if not response.user:
            raise AuthenticationError("Sign-up did not return a user")
        return Principal.from_auth_user(response.user)

    def sign_in_with_password(self, email: str, password: str) -> Principal:
        try:
            response = self.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise AuthenticationError(str(e))

        if not response.user:
            raise AuthenticationError("Invalid email or password")
        return Principal.from_auth_user(response.user)

    def sign_in_with_google(self, id_token: str) -> Principal:
        try:
            response = self.auth.sign_in_with_id_token({"provider": "google", "token": id_token})
        except Exception as e:
            raise AuthenticationError(str(e))

        if not response.user:
            raise AuthenticationError("Google sign-in did not return a user")
        return Principal.from_auth_user(response.user)

    def sign_out(self) -> None:
        try:
            self.auth.sign_out()
        except Exception as e:
            raise AuthenticationError("Sign-out failed", str(e))

    def close(self) -> None:
        """
        End this client's auth session locally and revoke its refresh token.

        Called when the owning session store stops. Failures are logged.
        """
        try:
            self.auth.sign_out({"scope": "local"})
        except Exception as e:
            logger.warning(f"Could not end auth session cleanly: {e}")

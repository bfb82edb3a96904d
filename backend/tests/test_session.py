from unittest.mock import MagicMock

import pytest

from music_catalog.config import get_settings
from music_catalog.dependencies import get_session_store
from music_catalog.exceptions import AuthenticationError, ExternalServiceError
from music_catalog.session import SessionManager, SessionStore


@pytest.fixture
def store(identity_factory, tracker):
    store = SessionStore(identity_factory(), tracker).start()
    yield store
    store.stop()


def test_start_resolves_anonymous_session(store):
    assert not store.loading
    assert store.wait_until_ready(0)
    assert store.current_user is None
    assert store.is_admin is False


def test_admin_flag_comes_from_profile(store):
    store.login("admin@example.com", "secret123")
    snapshot = store.snapshot()
    assert snapshot.current_user.uid == "admin-uid"
    assert snapshot.is_admin is True


def test_non_admin_profile(store):
    store.login("listener@example.com", "secret123")
    assert store.current_user.email == "listener@example.com"
    assert store.is_admin is False


def test_missing_profile_defaults_to_non_admin(store, auth_backend):
    auth_backend.add_account("ghost@example.com", "secret123", uid="ghost-uid")
    store.login("ghost@example.com", "secret123")
    assert store.current_user.uid == "ghost-uid"
    assert store.is_admin is False


def test_profile_fetch_failure_defaults_to_non_admin(store, db):
    db.fail("users", "select")
    store.login("admin@example.com", "secret123")
    assert store.current_user.uid == "admin-uid"
    assert store.is_admin is False


def test_signup_creates_non_admin_profile(store, db, tracker):
    result = store.signup("new@example.com", "secret123", "Newcomer")

    assert result.success
    profile = next(row for row in db.rows("users") if row["email"] == "new@example.com")
    assert profile["is_admin"] is False
    assert profile["display_name"] == "Newcomer"
    assert profile["created_at"]
    assert "sign_up" in tracker.names()
    assert store.current_user.email == "new@example.com"


def test_signup_failure_is_reported_not_raised(store, tracker):
    result = store.signup("admin@example.com", "secret123", "Again")
    assert not result.success
    assert result.error == "User already registered"
    assert tracker.params_for("sign_up_error") == [{"error_message": "User already registered"}]


def test_login_failure_raises_and_is_tracked(store, tracker):
    with pytest.raises(AuthenticationError):
        store.login("admin@example.com", "wrong-password")
    assert "login_error" in tracker.names()
    assert store.current_user is None


def test_google_sign_in_creates_profile_for_new_user(store, auth_backend, db, tracker):
    auth_backend.add_google_token("token-1", uid="google-uid", email="g@example.com", display_name="Gee")

    result = store.sign_in_with_google("token-1")

    assert result.success
    profile = next(row for row in db.rows("users") if row["uid"] == "google-uid")
    assert profile["photo_url"] == "https://photos.example.test/me.png"
    assert tracker.names()[0] == "google_sign_in_attempt"
    assert tracker.params_for("sign_up") == [{"method": "google", "email": "g@example.com"}]
    assert tracker.params_for("login")[0]["is_new_user"] is True


def test_google_sign_in_keeps_existing_profile(store, auth_backend, db, tracker):
    auth_backend.add_google_token("token-2", uid="admin-uid", email="admin@example.com")
    profiles_before = len(db.rows("users"))

    result = store.sign_in_with_google("token-2")

    assert result.success
    assert len(db.rows("users")) == profiles_before
    assert store.is_admin is True
    assert tracker.params_for("login")[0]["is_new_user"] is False


def test_google_sign_in_failure_returns_result(store, tracker):
    result = store.sign_in_with_google("bogus")
    assert not result.success
    assert "google_sign_in_error" in tracker.names()


def test_logout_tracks_and_clears_user(store, tracker):
    store.login("admin@example.com", "secret123")
    store.logout()
    assert tracker.params_for("logout") == [{"user_id": "admin-uid"}]
    assert store.current_user is None
    assert store.is_admin is False


def test_logout_failure_raises(store, auth_backend):
    store.login("admin@example.com", "secret123")
    auth_backend.fail_sign_out = True
    with pytest.raises(AuthenticationError):
        store.logout()


def test_stopped_store_ignores_transitions(identity_factory):
    identity = identity_factory()
    store = SessionStore(identity).start()
    store.stop()

    identity.sign_in_with_password("admin@example.com", "secret123")
    assert store.current_user is None


def test_manager_expires_idle_sessions(identity_factory):
    manager = SessionManager(identity_factory=identity_factory, ttl_seconds=60)
    session_id, store = manager.create_session()
    assert manager.get(session_id) is store

    store.last_seen -= 120
    assert manager.get(session_id) is None
    assert len(manager) == 0


def test_manager_stop_closes_every_identity_client(identity_factory):
    identities = []

    def factory():
        identities.append(identity_factory())
        return identities[-1]

    manager = SessionManager(identity_factory=factory, ttl_seconds=60)
    manager.create_session()
    manager.create_session()
    manager.stop()

    assert len(manager) == 0
    assert [identity.closed for identity in identities] == [True, True]


def test_unstarted_store_is_loading(identity_factory):
    store = SessionStore(identity_factory())
    assert store.loading
    assert store.snapshot().loading
    assert store.wait_until_ready(0) is False


def test_requests_wait_for_the_first_transition(identity_factory, monkeypatch):
    store = SessionStore(identity_factory())
    manager = MagicMock()
    manager.get.return_value = store
    monkeypatch.setattr(get_settings(), "session_ready_timeout", 0.01)

    with pytest.raises(ExternalServiceError):
        get_session_store(session_id="sid", manager=manager)

    store.start()
    assert get_session_store(session_id="sid", manager=manager) is store

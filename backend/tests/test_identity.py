from unittest.mock import MagicMock, patch

from music_catalog import identity
from music_catalog.identity import SupabaseIdentityProvider
from music_catalog.session import SessionManager


def _auth_client():
    client = MagicMock()
    client.auth.get_session.return_value = None
    return client


def test_visitor_clients_do_not_refresh_tokens_in_the_background():
    with patch.object(identity, "create_client") as create_client:
        SupabaseIdentityProvider()

    options = create_client.call_args.kwargs["options"]
    assert options.auto_refresh_token is False


def test_discarded_session_ends_its_auth_session():
    client = _auth_client()
    manager = SessionManager(identity_factory=lambda: SupabaseIdentityProvider(client), ttl_seconds=60)
    session_id, _ = manager.create_session()

    manager.discard(session_id)

    client.auth.on_auth_state_change.return_value.unsubscribe.assert_called_once_with()
    client.auth.sign_out.assert_called_once_with({"scope": "local"})


def test_expired_session_ends_its_auth_session():
    client = _auth_client()
    manager = SessionManager(identity_factory=lambda: SupabaseIdentityProvider(client), ttl_seconds=60)
    _, store = manager.create_session()
    store.last_seen -= 120

    assert manager.purge_expired() == 1
    client.auth.sign_out.assert_called_once_with({"scope": "local"})


def test_stopping_twice_closes_once():
    client = _auth_client()
    manager = SessionManager(identity_factory=lambda: SupabaseIdentityProvider(client), ttl_seconds=60)
    _, store = manager.create_session()

    store.stop()
    manager.stop()

    assert client.auth.sign_out.call_count == 1


def test_close_failure_is_logged_not_raised():
    client = _auth_client()
    client.auth.sign_out.side_effect = RuntimeError("network down")
    SupabaseIdentityProvider(client).close()

import io
import os
import uuid
import wave

os.environ.setdefault("SUPABASE_URL", "https://catalog.supabase.test")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("R2_ACCESS_KEY", "test-access-key")
os.environ.setdefault("R2_SECRET_KEY", "test-secret-key")
os.environ.setdefault("R2_ENDPOINT", "https://r2.example.test")
os.environ.setdefault("R2_BUCKET", "catalog")
os.environ.setdefault("STORAGE_PUBLIC_URL", "https://cdn.example.test")
os.environ.setdefault("ANALYTICS_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from music_catalog import crud
from music_catalog.exceptions import AuthenticationError
from music_catalog.models import Principal
from music_catalog.services import storage_service
from music_catalog.session import SessionManager

ADMIN_EMAIL = "admin@example.com"
USER_EMAIL = "listener@example.com"
PASSWORD = "secret123"


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self._db = db
        self._table = table
        self._op = None
        self._payload = None
        self._count = None
        self._filters = []
        self._order = None

    def select(self, columns="*", count=None):
        self._op = "select"
        self._count = count
        return self

    def insert(self, document):
        self._op = "insert"
        self._payload = dict(document)
        return self

    def update(self, changes):
        self._op = "update"
        self._payload = dict(changes)
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = column
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self):
        self._db.calls.append((self._table, self._op, self._payload, list(self._filters)))
        if (self._table, self._op) in self._db.failures:
            raise RuntimeError(f"{self._op} on {self._table} failed")

        rows = self._db.tables.setdefault(self._table, [])
        if self._op == "select":
            found = [dict(row) for row in rows if self._matches(row)]
            if self._order:
                found.sort(key=lambda row: str(row.get(self._order) or ""))
            return FakeResponse(found, count=len(found) if self._count else None)

        if self._op == "insert":
            row = {"id": str(uuid.uuid4()), **self._payload}
            rows.append(row)
            return FakeResponse([dict(row)])

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return FakeResponse(updated)

        removed = [row for row in rows if self._matches(row)]
        self._db.tables[self._table] = [row for row in rows if not self._matches(row)]
        return FakeResponse([dict(row) for row in removed])


class FakeSupabase:
    """In-memory stand-in for the Supabase table API."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = set()

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, **row):
        row.setdefault("id", str(uuid.uuid4()))
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table):
        return self.tables.get(table, [])

    def find(self, table, document_id):
        return next((row for row in self.rows(table) if row["id"] == document_id), None)

    def fail(self, table, op):
        self.failures.add((table, op))

    def writes(self):
        return [call for call in self.calls if call[1] != "select"]


class FakeS3:
    def __init__(self):
        self.objects = {}
        self.uploads = []
        self.deleted = []
        self.fail_deletes = set()

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.objects[key] = fileobj.read()
        self.uploads.append((bucket, key, ExtraArgs or {}))

    def delete_object(self, Bucket, Key):
        if Key in self.fail_deletes:
            raise RuntimeError(f"delete of {Key} failed")
        self.objects.pop(Key, None)
        self.deleted.append(Key)

    def head_bucket(self, Bucket):
        return {}


class FakeAuthBackend:
    """Accounts shared by every identity client, like the real auth service."""

    def __init__(self):
        self.accounts = {}
        self.google_tokens = {}
        self.fail_sign_out = False

    def add_account(self, email, password, uid=None, display_name=None):
        uid = uid or str(uuid.uuid4())
        self.accounts[email] = (password, Principal(uid, email, display_name))
        return uid

    def add_google_token(self, token, uid, email, display_name=None):
        self.google_tokens[token] = Principal(uid, email, display_name, "https://photos.example.test/me.png")


class FakeIdentityProvider:
    """Identity client for one visitor; notifies listeners synchronously."""

    def __init__(self, backend):
        self._backend = backend
        self._listeners = []
        self._principal = None
        self.closed = False

    def on_auth_state_change(self, callback):
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def current_principal(self):
        return self._principal

    def _transition(self, principal):
        self._principal = principal
        for listener in list(self._listeners):
            listener(principal)

    def sign_up(self, email, password, display_name):
        if email in self._backend.accounts:
            raise AuthenticationError("User already registered")
        self._backend.add_account(email, password, display_name=display_name)
        principal = self._backend.accounts[email][1]
        self._transition(principal)
        return principal

    def sign_in_with_password(self, email, password):
        account = self._backend.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthenticationError("Invalid login credentials")
        self._transition(account[1])
        return account[1]

    def sign_in_with_google(self, id_token):
        principal = self._backend.google_tokens.get(id_token)
        if principal is None:
            raise AuthenticationError("Invalid Google ID token")
        self._transition(principal)
        return principal

    def sign_out(self):
        if self._backend.fail_sign_out:
            raise AuthenticationError("Sign-out failed")
        self._transition(None)

    def close(self):
        self.closed = True
        self._principal = None


class RecordingTracker:
    enabled = True

    def __init__(self):
        self.events = []

    def track(self, name, params=None):
        self.events.append((name, params or {}))

    def names(self):
        return [name for name, _ in self.events]

    def params_for(self, name):
        return [params for event, params in self.events if event == name]


def make_wav(seconds, rate=8000):
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(b"\x00\x00" * int(rate * seconds))
    return buffer.getvalue()


@pytest.fixture
def db(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr(crud, "get_supabase_client", lambda: fake)
    return fake


@pytest.fixture
def s3(monkeypatch):
    fake = FakeS3()
    monkeypatch.setattr(storage_service, "get_s3_client", lambda: fake)
    return fake


@pytest.fixture
def tracker():
    return RecordingTracker()


@pytest.fixture
def auth_backend(db):
    backend = FakeAuthBackend()
    admin_uid = backend.add_account(ADMIN_EMAIL, PASSWORD, uid="admin-uid", display_name="Admin")
    user_uid = backend.add_account(USER_EMAIL, PASSWORD, uid="listener-uid", display_name="Listener")
    db.seed("users", uid=admin_uid, email=ADMIN_EMAIL, is_admin=True)
    db.seed("users", uid=user_uid, email=USER_EMAIL, is_admin=False)
    return backend


@pytest.fixture
def identity_factory(auth_backend):
    return lambda: FakeIdentityProvider(auth_backend)


@pytest.fixture
def app(monkeypatch, db, s3, tracker, identity_factory):
    from music_catalog.main import app as catalog_app

    manager = SessionManager(identity_factory=identity_factory, analytics=tracker, ttl_seconds=3600)
    monkeypatch.setattr(catalog_app.state, "analytics", tracker)
    monkeypatch.setattr(catalog_app.state, "session_manager", manager)
    return catalog_app


@pytest.fixture
def client(app):
    return TestClient(app)


def _login(client, email):
    response = client.post("/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def admin_client(client):
    return _login(client, ADMIN_EMAIL)


@pytest.fixture
def listener_client(client):
    return _login(client, USER_EMAIL)


@pytest.fixture
def wav():
    return make_wav

import pytest

from music_catalog.guard import evaluate_route
from music_catalog.models import Principal


def test_anonymous_visitor_is_sent_to_login_with_origin():
    decision = evaluate_route(None, False, admin_only=True, location="/admin/songs")
    assert not decision.allowed
    assert decision.location == "/login"
    assert decision.redirect_from == "/admin/songs"


def test_signed_in_non_admin_is_sent_home_from_admin_routes():
    decision = evaluate_route(Principal("u1"), False, admin_only=True, location="/admin")
    assert not decision.allowed
    assert decision.location == "/"


def test_admin_is_allowed():
    assert evaluate_route(Principal("u1"), True, admin_only=True).allowed


def test_login_only_route_allows_any_signed_in_user():
    assert evaluate_route(Principal("u1"), False, admin_only=False).allowed


def test_anonymous_admin_request_redirects_to_login(client):
    response = client.get("/admin/genres", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert response.headers["x-redirect-from"] == "/admin/genres"


def test_anonymous_admin_write_is_redirected_before_touching_the_store(client, db, s3):
    response = client.post("/admin/genres/new", data={"name": "Rock"}, follow_redirects=False)
    assert response.status_code == 303
    assert db.writes() == []
    assert s3.uploads == []


def test_non_admin_is_redirected_home(listener_client):
    response = listener_client.get("/admin", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert "x-redirect-from" not in response.headers


def test_admin_sees_dashboard_with_counts(admin_client, db):
    db.seed("genres", name="Rock")
    db.seed("genres", name="Jazz")
    db.seed("artists", name="Band A", genre_id="g1")

    response = admin_client.get("/admin")
    assert response.status_code == 200
    counts = {section["title"]: section["count"] for section in response.json()["sections"]}
    assert counts == {"Genres": 2, "Artists": 1, "Songs": 0}


def test_unknown_admin_path_renders_dashboard(admin_client):
    response = admin_client.get("/admin/does/not/exist")
    assert response.status_code == 200
    assert [section["path"] for section in response.json()["sections"]] == [
        "/admin/genres", "/admin/artists", "/admin/songs",
    ]


def test_admin_flag_follows_logout(admin_client):
    assert admin_client.get("/admin").status_code == 200
    admin_client.post("/logout")
    response = admin_client.get("/admin", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_principal_rejects_unknown_fields():
    with pytest.raises(TypeError):
        Principal("u1", role="admin")

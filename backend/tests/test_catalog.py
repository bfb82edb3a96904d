def test_home_lists_genres_by_name(client, db):
    db.seed("genres", name="Rock")
    db.seed("genres", name="Blues")

    response = client.get("/")

    assert response.status_code == 200
    assert [genre["name"] for genre in response.json()["genres"]] == ["Blues", "Rock"]


def test_screens_are_tracked_as_page_views(client, tracker):
    client.get("/")
    client.get("/health")
    assert tracker.params_for("page_view") == [{"page_path": "/"}]


def test_genre_page_lists_only_its_artists(client, db, tracker):
    rock = db.seed("genres", name="Rock")
    db.seed("artists", name="Band A", genre_id=rock["id"])
    db.seed("artists", name="Trio", genre_id="other")

    body = client.get(f"/genre/{rock['id']}").json()

    assert body["genre"]["name"] == "Rock"
    assert [artist["name"] for artist in body["artists"]] == ["Band A"]
    assert tracker.params_for("view_genre") == [{"genre_id": rock["id"], "genre_name": "Rock"}]


def test_unknown_genre(client):
    response = client.get("/genre/missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "Genre not found"
    assert response.json()["back"] == "/"


def test_artist_page_lists_songs_with_display_duration(client, db, tracker):
    rock = db.seed("genres", name="Rock")
    artist = db.seed("artists", name="Band A", genre_id=rock["id"])
    db.seed("songs", title="Track 2", artist_id=artist["id"], duration=61)
    db.seed("songs", title="Track 1", artist_id=artist["id"], duration=9)
    db.seed("songs", title="Elsewhere", artist_id="someone-else", duration=30)

    body = client.get(f"/artist/{artist['id']}").json()

    assert body["genre"]["id"] == rock["id"]
    assert [(s["title"], s["duration_display"]) for s in body["songs"]] == [("Track 1", "0:09"), ("Track 2", "1:01")]
    assert "view_artist" in tracker.names()
    assert tracker.params_for("artist_songs_loaded") == [{"artist_id": artist["id"], "song_count": 2}]


def test_unknown_artist(client):
    assert client.get("/artist/missing").status_code == 404


def test_store_failure_is_reported(client, db):
    db.fail("genres", "select")
    response = client.get("/")
    assert response.status_code == 500
    assert response.json()["error_type"] == "DatabaseError"


def test_playback_events_are_recorded(client, tracker):
    response = client.post("/events", json={"name": "play_song", "params": {"song_id": "s1"}})
    assert response.status_code == 202
    assert tracker.params_for("play_song") == [{"song_id": "s1"}]


def test_unknown_events_are_rejected(client, tracker):
    response = client.post("/events", json={"name": "delete_genre"})
    assert response.status_code == 400
    assert "name" in response.json()["errors"]
    assert "delete_genre" not in tracker.names()


def test_unknown_path(client):
    response = client.get("/no/such/page")
    assert response.status_code == 404
    assert response.json() == {"detail": "Page not found", "home": "/"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "x-process-time" in response.headers

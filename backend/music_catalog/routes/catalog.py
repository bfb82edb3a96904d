"""
Public browsing screens: home, genre and artist pages, playback events.
"""
from fastapi import APIRouter, Depends, status
from music_catalog import crud
from music_catalog.dependencies import get_analytics
from music_catalog.exceptions import NotFoundError, ValidationError
from music_catalog.logger import get_logger
from music_catalog.schemas import EventRequest
from music_catalog.services.analytics import CLIENT_EVENTS, Events

logger = get_logger("catalog_routes")
router = APIRouter(tags=["catalog"])


def _song_entry(song):
    return {**song.model_dump(mode="json"), "duration_display": song.duration_display}


@router.get("/")
async def home():
    """All genres, ordered by name."""
    genres = crud.list_genres()
    return {"genres": genres}


@router.get("/genre/{genre_id}")
async def genre_page(genre_id: str, analytics=Depends(get_analytics)):
    """A genre and the artists filed under it."""
    genre = crud.get_genre(genre_id)
    if genre is None:
        raise NotFoundError("Genre not found")

    analytics.track(Events.VIEW_GENRE, {"genre_id": genre.id, "genre_name": genre.name})
    artists = crud.list_artists(genre_id=genre.id)
    return {"genre": genre, "artists": artists}


@router.get("/artist/{artist_id}")
async def artist_page(artist_id: str, analytics=Depends(get_analytics)):
    """An artist and their songs, ready for preview playback."""
    artist = crud.get_artist(artist_id)
    if artist is None:
        raise NotFoundError("Artist not found")

    analytics.track(Events.VIEW_ARTIST, {"artist_id": artist.id, "artist_name": artist.name})
    songs = crud.list_songs(artist_id=artist.id)
    analytics.track(Events.ARTIST_SONGS_LOADED, {"artist_id": artist.id, "song_count": len(songs)})

    genre = crud.get_genre(artist.genre_id) if artist.genre_id else None
    return {
        "artist": artist,
        "genre": genre,
        "songs": [_song_entry(song) for song in songs],
    }


@router.post("/events", status_code=status.HTTP_202_ACCEPTED)
async def record_event(payload: EventRequest, analytics=Depends(get_analytics)):
    """Record a playback or search interaction reported by the browser."""
    if payload.name not in CLIENT_EVENTS:
        raise ValidationError.for_field("name", f"Unknown event: {payload.name}")
    analytics.track(payload.name, payload.params)
    return {"accepted": True}

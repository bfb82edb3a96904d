from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from music_catalog import crud
from music_catalog.dependencies import get_analytics
from music_catalog.exceptions import ConfirmationRequired, ValidationError
from music_catalog.logger import get_logger
from music_catalog.schemas import SongForm, format_duration
from music_catalog.services import catalog_service, storage_service
from music_catalog.services.analytics import Events

logger = get_logger("admin_songs")
router = APIRouter(prefix="/songs")


def _artist_options():
    return [{"id": artist.id, "name": artist.name} for artist in crud.list_artists()]


@router.get("")
async def list_songs():
    """Songs ordered by title, with artist and genre names resolved."""
    artists = {artist.id: artist for artist in crud.list_artists()}
    genre_names = {genre.id: genre.name for genre in crud.list_genres()}

    entries = []
    for song in crud.list_songs():
        artist = artists.get(song.artist_id)
        genre_id = artist.genre_id if artist and artist.genre_id else song.genre_id
        entries.append({
            **song.model_dump(mode="json"),
            "duration_display": song.duration_display,
            "artist_name": artist.name if artist else None,
            "genre_name": genre_names.get(genre_id),
        })
    return {"songs": entries}


@router.get("/new")
async def new_song():
    return {"song": None, "artists": _artist_options()}


@router.post("/probe")
async def probe_audio(audio: UploadFile = File(...)):
    """Read the playback length of an audio file before the form is submitted."""
    if not storage_service.is_selected(audio):
        raise ValidationError.for_field("audio", "Audio file is required")
    storage_service.validate_upload(audio, storage_service.AUDIO, "audio")
    duration = catalog_service.read_duration(audio)
    return {"duration": duration, "duration_display": format_duration(duration)}


@router.post("/new", status_code=status.HTTP_201_CREATED)
async def create_song(
    title: Optional[str] = Form(None),
    artist_id: Optional[str] = Form(None),
    genre_id: Optional[str] = Form(None),
    duration: Optional[int] = Form(None),
    audio: Optional[UploadFile] = File(None),
    cover: Optional[UploadFile] = File(None),
    analytics=Depends(get_analytics)
):
    form = SongForm(title=title, artist_id=artist_id, genre_id=genre_id, duration=duration)
    song = catalog_service.create_song(form, audio, cover)
    analytics.track(Events.CREATE_SONG, {"song_id": song.id, "song_title": song.title})
    return {
        "message": "Song created",
        "song": song,
        "edit_url": f"/admin/songs/edit/{song.id}",
    }


@router.get("/edit/{song_id}")
async def edit_song(song_id: str):
    song = catalog_service.load_song(song_id)
    return {"song": song, "artists": _artist_options()}


@router.post("/edit/{song_id}")
async def update_song(
    song_id: str,
    title: Optional[str] = Form(None),
    artist_id: Optional[str] = Form(None),
    genre_id: Optional[str] = Form(None),
    duration: Optional[int] = Form(None),
    audio: Optional[UploadFile] = File(None),
    cover: Optional[UploadFile] = File(None),
    analytics=Depends(get_analytics)
):
    form = SongForm(title=title, artist_id=artist_id, genre_id=genre_id, duration=duration)
    song = catalog_service.update_song(song_id, form, audio, cover)
    analytics.track(Events.UPDATE_SONG, {"song_id": song.id, "song_title": song.title})
    return {"message": "Song updated", "song": song}


@router.delete("/{song_id}")
async def delete_song(
    song_id: str,
    confirm: bool = Query(False),
    analytics=Depends(get_analytics)
):
    song = catalog_service.load_song(song_id)
    if not confirm:
        raise ConfirmationRequired(
            f'Are you sure you want to delete the song "{song.title}"? This cannot be undone.',
            confirm_url=f"/admin/songs/{song_id}?confirm=true",
        )

    catalog_service.delete_song(song)
    analytics.track(Events.DELETE_SONG, {"song_id": song.id, "song_title": song.title})
    return {"message": "Song deleted", "deleted_id": song.id}

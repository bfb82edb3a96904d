"""
Admin workflows for genres, artists and songs.

Each save runs in the same order: validate the submission locally, check
references, upload any selected files, write the document, then remove
files the write replaced. Nothing touches the network until validation
passes. An upload followed by a failed write leaves the uploaded file behind;
this is logged and not rolled back.
"""
from typing import Dict, List, Optional

from fastapi import UploadFile

from music_catalog import crud
from music_catalog.exceptions import AudioProbeError, CatalogException, NotFoundError, ValidationError
from music_catalog.logger import get_logger
from music_catalog.schemas import Artist, ArtistForm, Genre, GenreForm, Song, SongForm
from music_catalog.services import storage_service
from music_catalog.services.audio_probe import probe_duration

logger = get_logger("catalog_service")

GENRE_IMAGE_PREFIX = "genres"
ARTIST_IMAGE_PREFIX = "artists"
SONG_AUDIO_PREFIX = "songs/audio"
SONG_COVER_PREFIX = "songs/covers"


def _check_required(form, required: Dict[str, str], creating: bool) -> Dict[str, str]:
    """
    On create every required field must be present. On edit a field may be
    left out, but one that is submitted cannot be blank.
    """
    errors = {}
    for field, message in required.items():
        value = getattr(form, field)
        if value is None:
            if creating:
                errors[field] = message
        elif isinstance(value, str) and not value:
            errors[field] = message
    return errors


def _raise_if_errors(errors: Dict[str, str]) -> None:
    if errors:
        raise ValidationError("Please complete the required fields", errors=errors)


def _validate_files(errors: Dict[str, str], files: Dict[str, tuple]) -> None:
    for field, (file, kind) in files.items():
        if not storage_service.is_selected(file):
            continue
        try:
            storage_service.validate_upload(file, kind, field)
        except ValidationError as e:
            errors.update(e.errors)


def _upload_then_write(uploads: Dict[str, tuple], write):
    """Upload the selected files, then call ``write`` with their URLs."""
    urls = {}
    for field, (file, prefix, keep_name) in uploads.items():
        if storage_service.is_selected(file):
            urls[field] = storage_service.upload_file(file, prefix, keep_name=keep_name)

    try:
        return write(urls)
    except CatalogException:
        if urls:
            logger.error(f"Document write failed after upload; orphaned files: {sorted(urls.values())}")
        raise


def _remove_replaced(previous, current, fields: List[str]) -> None:
    for field in fields:
        old_url = getattr(previous, field)
        if old_url and old_url != getattr(current, field):
            storage_service.delete_file(old_url)


# Genres
GENRE_REQUIRED = {"name": "Name is required"}


def validate_genre(form: GenreForm, image: Optional[UploadFile], creating: bool) -> None:
    errors = _check_required(form, GENRE_REQUIRED, creating)
    _validate_files(errors, {"image": (image, storage_service.IMAGE)})
    _raise_if_errors(errors)


def load_genre(genre_id: str) -> Genre:
    genre = crud.get_genre(genre_id)
    if genre is None:
        raise NotFoundError("Genre not found", back="/admin/genres")
    return genre


def create_genre(form: GenreForm, image: Optional[UploadFile] = None) -> Genre:
    validate_genre(form, image, creating=True)
    return _upload_then_write(
        {"image_url": (image, GENRE_IMAGE_PREFIX, True)},
        lambda urls: crud.create_genre({**form.submitted(), **urls}),
    )


def update_genre(genre_id: str, form: GenreForm, image: Optional[UploadFile] = None) -> Genre:
    validate_genre(form, image, creating=False)
    existing = load_genre(genre_id)
    updated = _upload_then_write(
        {"image_url": (image, GENRE_IMAGE_PREFIX, True)},
        lambda urls: crud.update_genre(genre_id, {**form.submitted(), **urls}),
    )
    _remove_replaced(existing, updated, ["image_url"])
    return updated


def delete_genre(genre: Genre) -> None:
    """Delete the document; its image is removed best-effort first."""
    storage_service.delete_file(genre.image_url)
    crud.delete_genre(genre.id)


# Artists
ARTIST_REQUIRED = {"name": "Name is required", "genre_id": "Select a genre"}


def validate_artist(form: ArtistForm, image: Optional[UploadFile], creating: bool) -> None:
    errors = _check_required(form, ARTIST_REQUIRED, creating)
    _validate_files(errors, {"image": (image, storage_service.IMAGE)})
    _raise_if_errors(errors)


def _check_genre_reference(genre_id: Optional[str]) -> None:
    if genre_id is not None and crud.get_genre(genre_id) is None:
        raise ValidationError.for_field("genre_id", "Selected genre does not exist")


def load_artist(artist_id: str) -> Artist:
    artist = crud.get_artist(artist_id)
    if artist is None:
        raise NotFoundError("Artist not found", back="/admin/artists")
    return artist


def create_artist(form: ArtistForm, image: Optional[UploadFile] = None) -> Artist:
    validate_artist(form, image, creating=True)
    _check_genre_reference(form.genre_id)
    return _upload_then_write(
        {"image_url": (image, ARTIST_IMAGE_PREFIX, False)},
        lambda urls: crud.create_artist({**form.submitted(), **urls}),
    )


def update_artist(artist_id: str, form: ArtistForm, image: Optional[UploadFile] = None) -> Artist:
    validate_artist(form, image, creating=False)
    existing = load_artist(artist_id)
    _check_genre_reference(form.genre_id)
    updated = _upload_then_write(
        {"image_url": (image, ARTIST_IMAGE_PREFIX, False)},
        lambda urls: crud.update_artist(artist_id, {**form.submitted(), **urls}),
    )
    _remove_replaced(existing, updated, ["image_url"])
    return updated


def delete_artist(artist: Artist) -> None:
    """
    Delete the artist's image (best-effort) and document. Songs that
    reference the artist are not touched.
    """
    storage_service.delete_file(artist.image_url)
    crud.delete_artist(artist.id)


# Songs
SONG_REQUIRED = {"title": "Title is required", "artist_id": "Select an artist"}


def read_duration(audio: UploadFile) -> int:
    """Playback length of a selected audio file, as a field error on failure."""
    try:
        return probe_duration(audio.file, audio.filename)
    except AudioProbeError as e:
        raise ValidationError.for_field("audio", e.message)


def validate_song(
    form: SongForm,
    audio: Optional[UploadFile],
    cover: Optional[UploadFile],
    creating: bool
) -> Optional[int]:
    """Validate a submission; returns the probed duration when audio was selected."""
    errors = _check_required(form, SONG_REQUIRED, creating)
    _validate_files(errors, {
        "audio": (audio, storage_service.AUDIO),
        "cover": (cover, storage_service.IMAGE),
    })
    _raise_if_errors(errors)

    if storage_service.is_selected(audio):
        return read_duration(audio)
    return None


def _check_artist_reference(artist_id: Optional[str]) -> None:
    if artist_id is not None and crud.get_artist(artist_id) is None:
        raise ValidationError.for_field("artist_id", "Selected artist does not exist")


def _song_document(form: SongForm, duration: Optional[int], urls: Dict[str, str]) -> dict:
    document = {**form.submitted(), **urls}
    if duration is not None:
        document["duration"] = duration
    return document


def load_song(song_id: str) -> Song:
    song = crud.get_song(song_id)
    if song is None:
        raise NotFoundError("Song not found", back="/admin/songs")
    return song


def _song_uploads(audio, cover) -> Dict[str, tuple]:
    return {
        "audio_url": (audio, SONG_AUDIO_PREFIX, True),
        "cover_url": (cover, SONG_COVER_PREFIX, True),
    }


def create_song(
    form: SongForm,
    audio: Optional[UploadFile] = None,
    cover: Optional[UploadFile] = None
) -> Song:
    duration = validate_song(form, audio, cover, creating=True)
    _check_artist_reference(form.artist_id)
    return _upload_then_write(
        _song_uploads(audio, cover),
        lambda urls: crud.create_song(_song_document(form, duration, urls)),
    )


def update_song(
    song_id: str,
    form: SongForm,
    audio: Optional[UploadFile] = None,
    cover: Optional[UploadFile] = None
) -> Song:
    duration = validate_song(form, audio, cover, creating=False)
    existing = load_song(song_id)
    _check_artist_reference(form.artist_id)
    updated = _upload_then_write(
        _song_uploads(audio, cover),
        lambda urls: crud.update_song(song_id, _song_document(form, duration, urls)),
    )
    _remove_replaced(existing, updated, ["audio_url", "cover_url"])
    return updated


def delete_song(song: Song) -> None:
    """Delete the song's audio and cover (best-effort) and its document."""
    storage_service.delete_file(song.audio_url)
    storage_service.delete_file(song.cover_url)
    crud.delete_song(song.id)

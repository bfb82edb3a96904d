from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from music_catalog import crud
from music_catalog.dependencies import get_analytics
from music_catalog.exceptions import ConfirmationRequired
from music_catalog.logger import get_logger
from music_catalog.schemas import ArtistForm
from music_catalog.services import catalog_service
from music_catalog.services.analytics import Events

logger = get_logger("admin_artists")
router = APIRouter(prefix="/artists")


def _genre_options():
    return [{"id": genre.id, "name": genre.name} for genre in crud.list_genres()]


@router.get("")
async def list_artists():
    """Artists ordered by name, with their genre's name resolved."""
    genre_names = {genre.id: genre.name for genre in crud.list_genres()}
    return {
        "artists": [
            {**artist.model_dump(mode="json"), "genre_name": genre_names.get(artist.genre_id)}
            for artist in crud.list_artists()
        ]
    }


@router.get("/new")
async def new_artist():
    genres = _genre_options()
    return {
        "artist": None,
        "genres": genres,
        "can_submit": bool(genres),
    }


@router.post("/new", status_code=status.HTTP_201_CREATED)
async def create_artist(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    genre_id: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    analytics=Depends(get_analytics)
):
    form = ArtistForm(name=name, description=description, genre_id=genre_id)
    artist = catalog_service.create_artist(form, image)
    analytics.track(Events.CREATE_ARTIST, {"artist_id": artist.id, "artist_name": artist.name})
    return {"message": "Artist created", "artist": artist}


@router.get("/edit/{artist_id}")
async def edit_artist(artist_id: str):
    artist = catalog_service.load_artist(artist_id)
    return {"artist": artist, "genres": _genre_options()}


@router.post("/edit/{artist_id}")
async def update_artist(
    artist_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    genre_id: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    analytics=Depends(get_analytics)
):
    form = ArtistForm(name=name, description=description, genre_id=genre_id)
    artist = catalog_service.update_artist(artist_id, form, image)
    analytics.track(Events.UPDATE_ARTIST, {"artist_id": artist.id, "artist_name": artist.name})
    return {"message": "Artist updated", "artist": artist}


@router.delete("/{artist_id}")
async def delete_artist(
    artist_id: str,
    confirm: bool = Query(False),
    analytics=Depends(get_analytics)
):
    artist = catalog_service.load_artist(artist_id)
    if not confirm:
        raise ConfirmationRequired(
            f'Are you sure you want to delete the artist "{artist.name}"? This cannot be undone.',
            confirm_url=f"/admin/artists/{artist_id}?confirm=true",
        )

    catalog_service.delete_artist(artist)
    analytics.track(Events.DELETE_ARTIST, {"artist_id": artist.id, "artist_name": artist.name})
    return {"message": "Artist deleted", "deleted_id": artist.id}

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from music_catalog import crud
from music_catalog.dependencies import get_analytics
from music_catalog.exceptions import ConfirmationRequired
from music_catalog.logger import get_logger
from music_catalog.schemas import GenreForm
from music_catalog.services import catalog_service
from music_catalog.services.analytics import Events

logger = get_logger("admin_genres")
router = APIRouter(prefix="/genres")


@router.get("")
async def list_genres():
    """Genres ordered by name."""
    return {"genres": crud.list_genres()}


@router.get("/new")
async def new_genre():
    return {"genre": None}


@router.post("/new", status_code=status.HTTP_201_CREATED)
async def create_genre(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    analytics=Depends(get_analytics)
):
    genre = catalog_service.create_genre(GenreForm(name=name, description=description), image)
    analytics.track(Events.CREATE_GENRE, {"genre_id": genre.id, "genre_name": genre.name})
    return {"message": "Genre created", "genre": genre}


@router.get("/edit/{genre_id}")
async def edit_genre(genre_id: str):
    return {"genre": catalog_service.load_genre(genre_id)}


@router.post("/edit/{genre_id}")
async def update_genre(
    genre_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    analytics=Depends(get_analytics)
):
    genre = catalog_service.update_genre(genre_id, GenreForm(name=name, description=description), image)
    analytics.track(Events.UPDATE_GENRE, {"genre_id": genre.id, "genre_name": genre.name})
    return {"message": "Genre updated", "genre": genre}


@router.delete("/{genre_id}")
async def delete_genre(
    genre_id: str,
    confirm: bool = Query(False),
    analytics=Depends(get_analytics)
):
    genre = catalog_service.load_genre(genre_id)
    if not confirm:
        raise ConfirmationRequired(
            f'Are you sure you want to delete the genre "{genre.name}"? This cannot be undone.',
            confirm_url=f"/admin/genres/{genre_id}?confirm=true",
        )

    catalog_service.delete_genre(genre)
    analytics.track(Events.DELETE_GENRE, {"genre_id": genre.id, "genre_name": genre.name})
    logger.info(f"Deleted genre {genre.id}")
    return {"message": "Genre deleted", "deleted_id": genre.id}

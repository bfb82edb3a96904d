"""
Admin area. Every route below is guarded admin-only.
"""
from fastapi import APIRouter, Depends
from music_catalog import crud
from music_catalog.config import get_settings
from music_catalog.guard import require_admin
from music_catalog.routes import admin_artists, admin_genres, admin_songs

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _dashboard():
    settings = get_settings()
    sections = [
        ("Genres", "/admin/genres", settings.genres_collection),
        ("Artists", "/admin/artists", settings.artists_collection),
        ("Songs", "/admin/songs", settings.songs_collection),
    ]
    return {
        "sections": [
            {"title": title, "path": path, "count": crud.count_documents(collection)}
            for title, path, collection in sections
        ]
    }


@router.get("")
async def dashboard():
    """Admin dashboard with a document count per section."""
    return _dashboard()


router.include_router(admin_genres.router)
router.include_router(admin_artists.router)
router.include_router(admin_songs.router)


# Registered last so the section routes above take precedence.
@router.get("/{unknown_path:path}")
async def admin_fallback(unknown_path: str):
    return _dashboard()

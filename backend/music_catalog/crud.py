from music_catalog.schemas import Artist, Document, Genre, Song, UserProfile
from music_catalog.config import get_settings
from music_catalog.logger import get_logger
from music_catalog.exceptions import DatabaseError, NotFoundError
from supabase import create_client, Client
from pydantic import ValidationError as SchemaError
from typing import Any, Dict, List, Optional, Type, TypeVar
from datetime import datetime, timezone
from functools import lru_cache

logger = get_logger("crud")

DocumentT = TypeVar("DocumentT", bound=Document)


@lru_cache()
def get_supabase_client() -> Client:
    """Shared Supabase client used for document access."""
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_key)


def _table(name: str):
    return get_supabase_client().table(name)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse(model: Type[DocumentT], row: Dict[str, Any]) -> DocumentT:
    """Validate a raw row at the store boundary."""
    try:
        return model.model_validate(row)
    except SchemaError as e:
        logger.error(f"Malformed {model.__name__.lower()} document {row.get('id')}: {e}")
        raise DatabaseError(f"Malformed {model.__name__.lower()} document", str(e))


def _list(
    collection: str,
    model: Type[DocumentT],
    order_by: Optional[str] = None,
    **filters: Any
) -> List[DocumentT]:
    try:
        query = _table(collection).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by)
        response = query.execute()
    except Exception as e:
        logger.error(f"Failed to list {collection}: {e}")
        raise DatabaseError(f"Failed to list {collection}", str(e))

    return [_parse(model, row) for row in response.data or []]


def _get(collection: str, model: Type[DocumentT], document_id: str) -> Optional[DocumentT]:
    try:
        response = _table(collection).select("*").eq("id", document_id).execute()
    except Exception as e:
        logger.error(f"Failed to fetch {collection}/{document_id}: {e}")
        raise DatabaseError(f"Failed to fetch document from {collection}", str(e))

    if not response.data:
        return None
    return _parse(model, response.data[0])


def _insert(collection: str, model: Type[DocumentT], data: Dict[str, Any]) -> DocumentT:
    now = utc_now()
    document = {**data, "created_at": now, "updated_at": now}
    try:
        response = _table(collection).insert(document).execute()
    except Exception as e:
        logger.error(f"Failed to create document in {collection}: {e}")
        raise DatabaseError(f"Failed to create document in {collection}", str(e))

    if not response.data:
        raise DatabaseError(f"Failed to create document in {collection}", "No data returned from insert")

    created = _parse(model, response.data[0])
    logger.info(f"Created {collection}/{created.id}")
    return created


def _merge(collection: str, model: Type[DocumentT], document_id: str, data: Dict[str, Any]) -> DocumentT:
    """Write only the given fields; everything else on the document is left as is."""
    changes = {k: v for k, v in data.items() if v is not None and k not in ("id", "created_at")}
    changes["updated_at"] = utc_now()
    try:
        response = _table(collection).update(changes).eq("id", document_id).execute()
    except Exception as e:
        logger.error(f"Failed to update {collection}/{document_id}: {e}")
        raise DatabaseError(f"Failed to update document in {collection}", str(e))

    if not response.data:
        raise NotFoundError(f"Document {document_id} not found in {collection}")

    logger.info(f"Updated {collection}/{document_id}: {sorted(changes)}")
    return _parse(model, response.data[0])


def _delete(collection: str, document_id: str) -> bool:
    try:
        response = _table(collection).delete().eq("id", document_id).execute()
    except Exception as e:
        logger.error(f"Failed to delete {collection}/{document_id}: {e}")
        raise DatabaseError(f"Failed to delete document from {collection}", str(e))

    if not response.data:
        logger.warning(f"No document {document_id} found in {collection}")
        return False

    logger.info(f"Deleted {collection}/{document_id}")
    return True


def count_documents(collection: str) -> int:
    try:
        response = _table(collection).select("id", count="exact").execute()
    except Exception as e:
        logger.error(f"Failed to count {collection}: {e}")
        raise DatabaseError(f"Failed to count {collection}", str(e))
    return response.count or 0


# Genres
def list_genres() -> List[Genre]:
    return _list(get_settings().genres_collection, Genre, order_by="name")


def get_genre(genre_id: str) -> Optional[Genre]:
    return _get(get_settings().genres_collection, Genre, genre_id)


def create_genre(data: Dict[str, Any]) -> Genre:
    return _insert(get_settings().genres_collection, Genre, data)


def update_genre(genre_id: str, data: Dict[str, Any]) -> Genre:
    return _merge(get_settings().genres_collection, Genre, genre_id, data)


def delete_genre(genre_id: str) -> bool:
    return _delete(get_settings().genres_collection, genre_id)


# Artists
def list_artists(genre_id: Optional[str] = None) -> List[Artist]:
    collection = get_settings().artists_collection
    if genre_id is not None:
        return _list(collection, Artist, order_by="name", genre_id=genre_id)
    return _list(collection, Artist, order_by="name")


def get_artist(artist_id: str) -> Optional[Artist]:
    return _get(get_settings().artists_collection, Artist, artist_id)


def create_artist(data: Dict[str, Any]) -> Artist:
    return _insert(get_settings().artists_collection, Artist, data)


def update_artist(artist_id: str, data: Dict[str, Any]) -> Artist:
    return _merge(get_settings().artists_collection, Artist, artist_id, data)


def delete_artist(artist_id: str) -> bool:
    return _delete(get_settings().artists_collection, artist_id)


# Songs
def list_songs(artist_id: Optional[str] = None) -> List[Song]:
    collection = get_settings().songs_collection
    if artist_id is not None:
        return _list(collection, Song, order_by="title", artist_id=artist_id)
    return _list(collection, Song, order_by="title")


def get_song(song_id: str) -> Optional[Song]:
    return _get(get_settings().songs_collection, Song, song_id)


def create_song(data: Dict[str, Any]) -> Song:
    return _insert(get_settings().songs_collection, Song, data)


def update_song(song_id: str, data: Dict[str, Any]) -> Song:
    return _merge(get_settings().songs_collection, Song, song_id, data)


def delete_song(song_id: str) -> bool:
    return _delete(get_settings().songs_collection, song_id)


# User profiles
def get_user_profile(uid: str) -> Optional[UserProfile]:
    """Fetch the profile document for an identity, if one exists."""
    collection = get_settings().users_collection
    try:
        response = _table(collection).select("*").eq("uid", uid).execute()
    except Exception as e:
        logger.error(f"Failed to fetch profile for {uid}: {e}")
        raise DatabaseError("Failed to fetch user profile", str(e))

    if not response.data:
        return None
    try:
        return UserProfile.model_validate(response.data[0])
    except SchemaError as e:
        raise DatabaseError("Malformed user profile document", str(e))


def create_user_profile(profile: UserProfile) -> UserProfile:
    collection = get_settings().users_collection
    document = profile.model_dump(mode="json")
    document["created_at"] = document.get("created_at") or utc_now()
    try:
        response = _table(collection).insert(document).execute()
    except Exception as e:
        logger.error(f"Failed to create profile for {profile.uid}: {e}")
        raise DatabaseError("Failed to create user profile", str(e))

    logger.info(f"Created user profile: {profile.email}")
    if response.data:
        return UserProfile.model_validate(response.data[0])
    return profile

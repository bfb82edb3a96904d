from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Any, Dict, Optional
from datetime import datetime


# Stored documents
class Document(BaseModel):
    """Common shape of a catalog document as read from the store."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Document ID")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v


class Genre(Document):
    """A musical genre."""
    name: str = Field(..., min_length=1, description="Genre name")
    description: Optional[str] = Field(None, description="Genre description")
    image_url: Optional[str] = Field(None, description="Public URL of the genre image")


class Artist(Document):
    """An artist, filed under one genre."""
    name: str = Field(..., min_length=1, description="Artist name")
    description: Optional[str] = Field(None, description="Artist biography")
    genre_id: Optional[str] = Field(None, description="Referenced genre ID")
    image_url: Optional[str] = Field(None, description="Public URL of the artist image")


class Song(Document):
    """A song with its audio preview."""
    title: str = Field(..., min_length=1, description="Song title")
    artist_id: Optional[str] = Field(None, description="Referenced artist ID")
    duration: int = Field(0, ge=0, description="Playback length in seconds")
    audio_url: Optional[str] = Field(None, description="Public URL of the audio file")
    cover_url: Optional[str] = Field(None, description="Public URL of the cover image")
    genre_id: Optional[str] = Field(None, description="Genre ID as submitted with the song")

    @field_validator('duration', mode='before')
    @classmethod
    def default_duration(cls, v):
        return 0 if v is None else v

    @property
    def duration_display(self) -> str:
        return format_duration(self.duration)


class UserProfile(BaseModel):
    """Profile document kept alongside each identity."""
    model_config = ConfigDict(extra="ignore")

    uid: str = Field(..., description="Identity provider user ID")
    email: Optional[str] = Field(None, description="User email address")
    display_name: Optional[str] = Field(None, description="Display name")
    photo_url: Optional[str] = Field(None, description="Profile photo URL")
    is_admin: bool = Field(False, description="Grants access to the admin screens")
    created_at: Optional[datetime] = Field(None, description="Profile creation timestamp")

    @field_validator('is_admin', mode='before')
    @classmethod
    def default_is_admin(cls, v):
        return bool(v) if v is not None else False


# Admin form submissions. Every field is optional so an edit can carry only
# the fields that changed; required fields are checked by the catalog service.
class FormData(BaseModel):

    @field_validator('*', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    def submitted(self) -> Dict[str, Any]:
        """Fields that were actually submitted."""
        return self.model_dump(exclude_none=True)


class GenreForm(FormData):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)


class ArtistForm(FormData):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    genre_id: Optional[str] = None


class SongForm(FormData):
    title: Optional[str] = Field(None, max_length=255)
    artist_id: Optional[str] = None
    genre_id: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Used only when no audio file is uploaded")


# Authentication
class SignupRequest(BaseModel):
    """Schema for email/password registration."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, description="User password")
    display_name: str = Field(..., min_length=1, max_length=100, description="Name shown in the app")

    @field_validator('display_name')
    @classmethod
    def validate_display_name(cls, v):
        if not v.strip():
            raise ValueError('Display name cannot be empty or whitespace only')
        return v.strip()


class LoginRequest(BaseModel):
    """Schema for email/password login."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class GoogleSignInRequest(BaseModel):
    """Schema for federated sign-in with a Google ID token."""
    id_token: str = Field(..., min_length=1, description="Google ID token obtained by the client")


# Telemetry
class EventRequest(BaseModel):
    """A client-side interaction to record."""
    name: str = Field(..., description="Event name")
    params: Dict[str, Any] = Field(default_factory=dict, description="Event parameters")


def format_duration(seconds: Optional[int]) -> str:
    """Render a duration in seconds as m:ss."""
    if not seconds:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"

import time
import unicodedata
from functools import lru_cache
from typing import Optional
from urllib.parse import quote, unquote

import boto3
from fastapi import UploadFile

from music_catalog.config import get_settings
from music_catalog.logger import get_logger
from music_catalog.exceptions import ConfigurationError, FileUploadError, ValidationError

logger = get_logger("storage_service")

IMAGE = "image"
AUDIO = "audio"


@lru_cache()
def get_s3_client():
    """S3 client pointed at the Cloudflare R2 endpoint."""
    settings = get_settings()
    if not all([settings.r2_access_key, settings.r2_secret_key, settings.r2_endpoint]):
        raise ConfigurationError("Cloudflare R2 credentials are missing! Check your .env file.")

    try:
        client = boto3.client(
            "s3",
            endpoint_url=settings.r2_endpoint,
            aws_access_key_id=settings.r2_access_key,
            aws_secret_access_key=settings.r2_secret_key,
            config=boto3.session.Config(signature_version="s3v4")
        )
    except Exception as e:
        logger.error(f"Failed to initialize R2 client: {e}")
        raise ConfigurationError(f"Failed to initialize R2 client: {e}")

    logger.info("Successfully initialized R2 client")
    return client


def is_selected(file: Optional[UploadFile]) -> bool:
    """Browsers submit an empty part when no file was picked."""
    return file is not None and bool(file.filename)


def _extension(filename: str) -> str:
    return filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''


def _file_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    position = file.file.tell()
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(position)
    return size


def validate_upload(file: UploadFile, kind: str, field: str) -> None:
    """Check type, extension and size of a selected file. No network access."""
    settings = get_settings()
    content_type = file.content_type or ""

    if kind == AUDIO:
        allowed = settings.allowed_audio_formats
        max_size = settings.max_audio_size
        if not content_type.startswith("audio/"):
            raise ValidationError.for_field(field, "Please upload a valid audio file")
    else:
        allowed = settings.allowed_image_formats
        max_size = settings.max_image_size
        if not content_type.startswith("image/"):
            raise ValidationError.for_field(field, "Please upload a valid image file")

    ext = _extension(file.filename)
    if f".{ext}" not in allowed:
        raise ValidationError.for_field(
            field,
            f"Invalid {kind} format: .{ext}. Allowed formats: {', '.join(allowed)}"
        )

    size = _file_size(file)
    if size > max_size:
        raise ValidationError.for_field(
            field,
            f"File too large: {size} bytes. Maximum allowed: {max_size} bytes"
        )


def to_ascii(value: str) -> str:
    return unicodedata.normalize('NFKD', value).encode('ascii', 'ignore').decode('ascii')


def build_storage_key(prefix: str, filename: str, keep_name: bool = True) -> str:
    """
    Build a timestamp-qualified object key.

    ``{prefix}/{millis}_{filename}`` when the original name is kept,
    ``{prefix}/{millis}.{ext}`` otherwise.
    """
    timestamp = int(time.time() * 1000)
    safe_name = to_ascii(filename).replace('/', '_').replace(' ', '_') or 'file'
    if keep_name:
        return f"{prefix}/{timestamp}_{safe_name}"
    ext = _extension(safe_name)
    return f"{prefix}/{timestamp}.{ext}" if ext else f"{prefix}/{timestamp}"


def public_url(key: str) -> str:
    return f"{get_settings().storage_public_url}/{quote(key)}"


def key_from_url(url: str) -> Optional[str]:
    """Object key for a URL this service issued, or None for foreign URLs."""
    base = f"{get_settings().storage_public_url}/"
    if not url or not url.startswith(base):
        return None
    key = unquote(url[len(base):].split('?')[0])
    return key or None


def upload_file(file: UploadFile, prefix: str, keep_name: bool = True) -> str:
    """
    Upload a file to R2 under a timestamp-qualified key.

    Args:
        file: The file to upload
        prefix: Entity path the key is created under, e.g. ``songs/audio``
        keep_name: Whether the original filename is kept in the key

    Returns:
        The public URL of the uploaded file
    """
    settings = get_settings()
    key = build_storage_key(prefix, file.filename, keep_name=keep_name)

    try:
        logger.info(f"Uploading {file.filename} as {key}")
        file.file.seek(0)
        get_s3_client().upload_fileobj(
            file.file,
            settings.r2_bucket,
            key,
            ExtraArgs={
                'ContentType': file.content_type or 'application/octet-stream',
                'Metadata': {
                    'original_filename': to_ascii(file.filename),
                    'entity': prefix.split('/')[0],
                }
            }
        )
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(f"Error uploading file to R2: {e}")
        raise FileUploadError(f"Failed to upload file: {str(e)}")

    url = public_url(key)
    logger.info(f"Successfully uploaded file to: {url}")
    return url


def delete_file(url: Optional[str]) -> bool:
    """
    Best-effort removal of a stored file.

    Failures are logged as warnings and reported through the return value,
    never raised, so the caller's document operation can proceed.
    """
    if not url:
        return False

    key = key_from_url(url)
    if key is None:
        logger.info(f"Skipping deletion of file not managed by this store: {url}")
        return False

    try:
        get_s3_client().delete_object(Bucket=get_settings().r2_bucket, Key=key)
    except Exception as e:
        logger.warning(f"Error deleting stored file {key}: {e}")
        return False

    logger.info(f"Successfully deleted file: {key}")
    return True


def verify_bucket_access() -> bool:
    """Verify that the configured bucket is reachable."""
    try:
        get_s3_client().head_bucket(Bucket=get_settings().r2_bucket)
        return True
    except Exception as e:
        logger.error(f"Failed to verify bucket access: {e}")
        return False

"""
Custom exceptions for the music catalog backend.
"""
from typing import Dict, Optional


class CatalogException(Exception):
    """Base exception class for the music catalog."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class DatabaseError(CatalogException):
    """Raised when document store operations fail."""
    pass


class FileUploadError(CatalogException):
    """Raised when blob storage uploads fail."""
    pass


class AudioProbeError(CatalogException):
    """Raised when an audio file's duration cannot be read."""
    pass


class ValidationError(CatalogException):
    """Raised when input validation fails, before any backend call is made."""

    def __init__(
        self,
        message: str,
        errors: Optional[Dict[str, str]] = None,
        details: Optional[str] = None
    ):
        super().__init__(message, details)
        self.errors = errors or {}

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors={field: message})


class NotFoundError(CatalogException):
    """Raised when a requested document does not exist."""

    def __init__(self, message: str, back: str = "/", details: Optional[str] = None):
        super().__init__(message, details)
        self.back = back


class ConfirmationRequired(CatalogException):
    """Raised when a destructive action is requested without confirmation."""

    def __init__(self, message: str, confirm_url: str):
        super().__init__(message)
        self.confirm_url = confirm_url


class AuthenticationError(CatalogException):
    """Raised when the identity provider rejects or fails a request."""
    pass


class ConfigurationError(CatalogException):
    """Raised when configuration is invalid."""
    pass


class ExternalServiceError(CatalogException):
    """Raised when external service calls fail."""
    pass

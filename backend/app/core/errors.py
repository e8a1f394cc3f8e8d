"""
Error taxonomy for the images API

Every error carries the HTTP status it maps to and a message that is safe to
return to the client as ``{"success": false, "message": ...}``.
"""
from fastapi import status


class AppError(Exception):
    """Base class for errors rendered in the API error shape"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class MissingFile(ValidationError):
    default_message = "Please upload a file"


class MissingTitle(ValidationError):
    default_message = "Please provide a title"


class UnsupportedFormat(ValidationError):
    default_message = (
        "Unsupported file format. Please upload PDF, Word, PowerPoint, image, or text files."
    )


class SizeExceeded(ValidationError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "File too large"


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to access this image"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Image not found"


class UpstreamStorageError(AppError):
    default_message = "Object storage request failed"


class RemoteWriteFailed(UpstreamStorageError):
    default_message = "Failed to upload file to storage"


class PersistenceError(AppError):
    default_message = "Database write failed"


class PersistFailed(PersistenceError):
    """Record insert failed after the remote write succeeded"""

    default_message = "Error saving image"

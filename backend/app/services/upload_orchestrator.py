"""
Upload orchestrator - multipart file to object storage to images collection

The remote write and the record insert are two separate writes. When the
insert fails, the freshly written object is deleted on a best-effort basis;
a failed cleanup is only logged and the caller still receives the original
persistence error. A process crash between the two writes leaves an orphaned
object behind.
"""
from datetime import datetime
from typing import Iterable, Optional, Union
from uuid import uuid4
import io
import logging

from app.core.config import settings
from app.core.errors import (
    MissingFile,
    MissingTitle,
    PersistFailed,
    RemoteWriteFailed,
    SizeExceeded,
    ValidationError,
)
from app.core.object_store import upload_object, delete_object
from app.models.image import ImageInDB
from app.services.image_store import ImageStore
from app.services.media_types import classify_upload, probe_image
from app.services.tags import normalize_tags

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000


def clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise MissingTitle()
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")
    return title


def clean_description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
    return description


class UploadOrchestrator:
    """Validates, stores and records one uploaded file"""

    def __init__(self, store: ImageStore):
        self.store = store

    async def upload(
        self,
        file,
        owner_id: str,
        title: Optional[str],
        description: Optional[str] = None,
        tags: Optional[Union[str, Iterable[str]]] = None,
        is_public: bool = True,
    ) -> dict:
        """
        Run the upload pipeline and return the stored record.

        ``file`` is a Starlette ``UploadFile`` (anything with ``filename``,
        ``content_type`` and an async ``read(size)``). Every validation step
        runs before the remote write.
        """
        if file is None:
            raise MissingFile()

        title = clean_title(title)
        description = clean_description(description)
        media = classify_upload(file.content_type)

        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        content = await file.read(max_bytes + 1)
        if len(content) > max_bytes:
            raise SizeExceeded(f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE_MB}MB")
        if not content:
            raise MissingFile("The uploaded file is empty")

        width = height = None
        fmt = media.extension
        if media.is_image:
            width, height, probed_format = probe_image(content)
            fmt = probed_format or fmt

        object_name = f"{settings.STORAGE_FOLDER}/{media.resource_type}/question-{uuid4().hex}.{fmt}"

        logger.info(
            f"Uploading {file.filename} ({media.content_type}, {len(content)} bytes) as {object_name}"
        )
        try:
            stored = await upload_object(
                object_name=object_name,
                data=io.BytesIO(content),
                size=len(content),
                content_type=media.content_type,
                resource_type=media.resource_type,
            )
        except Exception as e:
            logger.error(f"Failed to upload file to storage: {e}")
            raise RemoteWriteFailed(f"Failed to upload file to storage: {e}") from e

        try:
            now = datetime.utcnow()
            record = ImageInDB(
                _id=str(uuid4()),
                public_id=stored.public_id,
                secure_url=stored.secure_url,
                title=title,
                description=description,
                tags=list(normalize_tags(tags)),
                format=fmt,
                resource_type=stored.resource_type,
                content_type=media.content_type,
                original_filename=file.filename,
                width=width,
                height=height,
                size=stored.bytes,
                uploaded_by=owner_id,
                is_public=is_public,
                created_at=now,
                updated_at=now,
            )
            doc = await self.store.insert(record)
        except Exception as e:
            logger.error(f"Failed to save image record for {stored.public_id}: {e}")
            await self._discard_remote(stored.public_id)
            raise PersistFailed(f"Error saving image: {e}") from e

        logger.info(f"Image {doc['_id']} stored at {stored.public_id}")
        return doc

    async def _discard_remote(self, public_id: str) -> None:
        """Compensating delete after a failed insert"""
        try:
            await delete_object(public_id)
            logger.info(f"Removed orphaned object {public_id}")
        except Exception as cleanup_error:
            logger.error(f"Error cleaning up uploaded file {public_id}: {cleanup_error}")

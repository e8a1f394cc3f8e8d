"""
Object storage client (MinIO/S3) holding uploaded file bytes
"""
from minio import Minio
from minio.error import S3Error
from typing import Optional, BinaryIO
from dataclasses import dataclass
from datetime import timedelta
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class ObjectStore:
    """MinIO/S3 object storage manager"""

    client: Optional[Minio] = None


object_store = ObjectStore()


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful remote write"""
    public_id: str
    secure_url: str
    resource_type: str
    bytes: int


async def init_object_store():
    """Initialize MinIO client and ensure the assets bucket exists"""
    logger.info(f"Connecting to MinIO at {settings.MINIO_ENDPOINT}")

    object_store.client = Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE
    )

    try:
        if not object_store.client.bucket_exists(bucket_name=settings.MINIO_BUCKET):
            object_store.client.make_bucket(bucket_name=settings.MINIO_BUCKET)
            logger.info(f"Created bucket: {settings.MINIO_BUCKET}")
    except S3Error as e:
        logger.error(f"Error creating bucket {settings.MINIO_BUCKET}: {e}")

    logger.info("MinIO object store initialized")


def public_url(object_name: str) -> str:
    """Stable URL of an object, as stored on the asset record"""
    base = settings.MINIO_PUBLIC_URL.rstrip("/")
    if not base:
        scheme = "https" if settings.MINIO_SECURE else "http"
        base = f"{scheme}://{settings.MINIO_ENDPOINT}/{settings.MINIO_BUCKET}"
    return f"{base}/{object_name}"


async def upload_object(
    object_name: str,
    data: BinaryIO,
    size: int,
    content_type: str,
    resource_type: str,
    bucket: str = None,
) -> StoredObject:
    """Stream a file into object storage"""
    try:
        object_store.client.put_object(
            bucket_name=bucket or settings.MINIO_BUCKET,
            object_name=object_name,
            data=data,
            length=size,
            content_type=content_type,
            metadata={"resource-type": resource_type},
        )
    except S3Error as e:
        logger.error(f"Error uploading file: {e}")
        raise

    return StoredObject(
        public_id=object_name,
        secure_url=public_url(object_name),
        resource_type=resource_type,
        bytes=size,
    )


async def delete_object(object_name: str, bucket: str = None) -> bool:
    """Delete a file from object storage"""
    try:
        object_store.client.remove_object(
            bucket_name=bucket or settings.MINIO_BUCKET,
            object_name=object_name,
        )
        return True
    except S3Error as e:
        logger.error(f"Error deleting file: {e}")
        raise


async def get_file(object_name: str, bucket: str = None) -> bytes:
    """Get a file from object storage"""
    try:
        response = object_store.client.get_object(
            bucket_name=bucket or settings.MINIO_BUCKET,
            object_name=object_name,
        )
        data = response.read()
        response.close()
        response.release_conn()
        return data
    except S3Error as e:
        logger.error(f"Error getting file: {e}")
        raise


async def get_presigned_url(
    object_name: str,
    expires: timedelta = timedelta(hours=1),
    download_filename: Optional[str] = None,
    bucket: str = None,
) -> str:
    """Generate a presigned GET URL, optionally forcing a file save"""
    response_headers = None
    if download_filename:
        response_headers = {
            "response-content-disposition": f'attachment; filename="{download_filename}"'
        }
    try:
        return object_store.client.presigned_get_object(
            bucket_name=bucket or settings.MINIO_BUCKET,
            object_name=object_name,
            expires=expires,
            response_headers=response_headers,
        )
    except S3Error as e:
        logger.error(f"Error generating presigned URL: {e}")
        raise

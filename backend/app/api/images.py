"""
Image management API routes
"""
from datetime import timedelta
from math import ceil
from typing import List, Optional
from fastapi import APIRouter, status, Depends, UploadFile, File, Form, Query, Response
import logging

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from app.core.object_store import delete_object, get_file, get_presigned_url
from app.core.security import get_current_user
from app.models.user import UserInDB
from app.models.image import (
    Counters,
    CountersEnvelope,
    DownloadLink,
    DownloadLinkEnvelope,
    ImageEnvelope,
    ImageListEnvelope,
    ImageResponse,
    ImageStats,
    ImageStatsEnvelope,
    ImageUpdate,
    MessageEnvelope,
    PreviewEnvelope,
    ResourceType,
)
from app.services.image_store import ImageStore
from app.services.previews import build_preview, filename_for, make_thumbnail
from app.services.stats_cache import StatsCache, get_stats_cache
from app.services.tags import normalize_tags
from app.services.upload_orchestrator import UploadOrchestrator, clean_description, clean_title

logger = logging.getLogger(__name__)
router = APIRouter()


def get_image_store() -> ImageStore:
    return ImageStore(get_db())


def can_view(doc: dict, user: UserInDB) -> bool:
    return doc["is_public"] or doc["uploaded_by"] == user.id


async def load_visible(store: ImageStore, image_id: str, user: UserInDB, action: str = "view") -> dict:
    doc = await store.get(image_id)
    if not doc:
        raise NotFoundError()
    if not can_view(doc, user):
        raise PermissionDeniedError(f"You do not have permission to {action} this image")
    return doc


async def load_owned(store: ImageStore, image_id: str, user: UserInDB, action: str) -> dict:
    doc = await store.get(image_id)
    if not doc:
        raise NotFoundError()
    if doc["uploaded_by"] != user.id:
        raise PermissionDeniedError(f"You do not have permission to {action} this image")
    return doc


@router.get("/stats/me", response_model=ImageStatsEnvelope)
async def get_my_image_stats(
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """Counts, storage used and top tags for the caller's images"""
    stats = await store.owner_stats(current_user.id)
    return ImageStatsEnvelope(data=ImageStats(**stats))


@router.post("", response_model=ImageEnvelope, status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    is_public: bool = Form(True, alias="isPublic"),
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Upload a new image or document"""
    orchestrator = UploadOrchestrator(store)
    doc = await orchestrator.upload(
        image,
        owner_id=current_user.id,
        title=title,
        description=description,
        tags=tags,
        is_public=is_public,
    )
    await cache.invalidate()
    await store.attach_uploaders([doc])
    return ImageEnvelope(message="Image uploaded successfully", data=ImageResponse.from_doc(doc))


@router.get("", response_model=ImageListEnvelope)
async def list_images(
    my_images: bool = Query(False, alias="myImages"),
    tags: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """List the caller's images, or the caller's plus everyone's public ones"""
    docs, total = await store.list(
        current_user.id,
        mine=my_images,
        tags=normalize_tags(tags),
        search=search,
        page=page,
        limit=limit,
    )
    await store.attach_uploaders(docs)
    return ImageListEnvelope(
        count=len(docs),
        total=total,
        page=page,
        pages=ceil(total / limit),
        data=[ImageResponse.from_doc(doc) for doc in docs],
    )


@router.get("/{image_id}", response_model=ImageEnvelope)
async def get_image(
    image_id: str,
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """Get image metadata"""
    doc = await load_visible(store, image_id, current_user)
    await store.attach_uploaders([doc])
    return ImageEnvelope(data=ImageResponse.from_doc(doc))


@router.put("/{image_id}", response_model=ImageEnvelope)
async def update_image(
    image_id: str,
    update: ImageUpdate,
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """Update title, description, tags or visibility (owner only)"""
    await load_owned(store, image_id, current_user, "update")

    provided = update.model_fields_set
    fields = {}
    if "title" in provided:
        fields["title"] = clean_title(update.title)
    if "description" in provided:
        fields["description"] = clean_description(update.description)
    if "tags" in provided:
        fields["tags"] = list(normalize_tags(update.tags))
    if "is_public" in provided:
        if update.is_public is None:
            raise ValidationError("isPublic must be true or false")
        fields["is_public"] = update.is_public

    doc = await store.update(image_id, fields)
    if not doc:
        raise NotFoundError()

    await store.attach_uploaders([doc])
    return ImageEnvelope(message="Image updated successfully", data=ImageResponse.from_doc(doc))


@router.delete("/{image_id}", response_model=MessageEnvelope)
async def delete_image(
    image_id: str,
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Delete an image (owner only)"""
    doc = await load_owned(store, image_id, current_user, "delete")

    # Remote cleanup never blocks removing the record
    try:
        await delete_object(doc["public_id"])
    except Exception as e:
        logger.error(f"Failed to delete {doc['public_id']} from storage: {e}")

    await store.delete(image_id)
    await cache.invalidate()
    logger.info(f"Image {image_id} deleted by {current_user.id}")

    return MessageEnvelope(message="Image deleted successfully")


@router.post("/{image_id}/view", response_model=CountersEnvelope)
async def record_view(
    image_id: str,
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """Count one view"""
    await load_visible(store, image_id, current_user)
    doc = await store.increment(image_id, "views")
    if not doc:
        raise NotFoundError()
    return CountersEnvelope(data=Counters(views=doc["views"], downloads=doc["downloads"]))


@router.get("/{image_id}/download", response_model=DownloadLinkEnvelope)
async def download_image(
    image_id: str,
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """Resolve a URL that saves the file under a readable name, and count the download"""
    doc = await load_visible(store, image_id, current_user, "download")
    filename = filename_for(doc)

    url = await get_presigned_url(
        doc["public_id"],
        expires=timedelta(minutes=settings.DOWNLOAD_URL_EXPIRY_MINUTES),
        download_filename=filename,
    )
    await store.increment(image_id, "downloads")

    return DownloadLinkEnvelope(data=DownloadLink(url=url, filename=filename))


@router.get("/{image_id}/preview", response_model=PreviewEnvelope)
async def preview_image(
    image_id: str,
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """How to render the file inline"""
    doc = await load_visible(store, image_id, current_user)
    return PreviewEnvelope(data=await build_preview(doc))


@router.get("/{image_id}/thumbnail")
async def get_thumbnail(
    image_id: str,
    width: int = Query(settings.THUMBNAIL_WIDTH, ge=16, le=2000),
    height: int = Query(settings.THUMBNAIL_HEIGHT, ge=16, le=2000),
    current_user: UserInDB = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    """
    Downscaled JPEG of an image record.

    Requires the Bearer header like every images route, so a browser must
    fetch it and render the blob rather than use the path as an img src.
    """
    doc = await load_visible(store, image_id, current_user)
    if doc["resource_type"] != ResourceType.IMAGE.value:
        raise ValidationError("Thumbnails are only available for images")

    content = await get_file(doc["public_id"])
    thumbnail = make_thumbnail(content, width, height)

    return Response(
        content=thumbnail,
        media_type="image/jpeg",
        headers={"Cache-Control": "private, max-age=3600"},
    )

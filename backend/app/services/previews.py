"""
Preview dispatch, download filenames and thumbnails

A record is rendered one of three ways: images get a resized thumbnail,
PDFs are embedded, and everything else (Word, PowerPoint, text) gets a
fallback panel with open and download actions.
"""
from datetime import timedelta
from io import BytesIO
from typing import Optional
from urllib.parse import quote, urlparse
import logging
import re

from PIL import Image

from app.core.config import settings
from app.core.object_store import get_presigned_url
from app.models.image import FileKind, Preview

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"}
INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def extension_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    name = urlparse(url).path.rsplit("/", 1)[-1]
    if "." not in name:
        return None
    return name.rsplit(".", 1)[-1].lower() or None


def detect_file_kind(
    content_type: Optional[str] = None,
    fmt: Optional[str] = None,
    url: Optional[str] = None,
) -> FileKind:
    content_type = (content_type or "").lower()
    fmt = (fmt or extension_from_url(url) or "").lower()

    if content_type.startswith("image/") or fmt in IMAGE_EXTENSIONS:
        return FileKind.IMAGE
    if content_type == "application/pdf" or fmt == "pdf":
        return FileKind.PDF
    return FileKind.DOCUMENT


def detect_extension(kind: FileKind, fmt: Optional[str] = None, url: Optional[str] = None) -> str:
    """Recorded format first, then the URL, then a per-kind default"""
    if fmt:
        return fmt.lower()
    from_url = extension_from_url(url)
    if from_url:
        return from_url
    return "png" if kind == FileKind.IMAGE else "pdf"


def build_download_filename(title: Optional[str], extension: Optional[str]) -> str:
    base = INVALID_FILENAME_CHARS.sub(" ", title or "")
    base = " ".join(base.split()).strip(" .") or "download"
    return f"{base}.{extension}" if extension else base


def filename_for(doc: dict) -> str:
    kind = detect_file_kind(doc.get("content_type"), doc.get("format"), doc.get("secure_url"))
    extension = detect_extension(kind, doc.get("format"), doc.get("secure_url"))
    return build_download_filename(doc.get("title"), extension)


def thumbnail_path(image_id: str, width: int = None, height: int = None) -> str:
    width = width or settings.THUMBNAIL_WIDTH
    height = height or settings.THUMBNAIL_HEIGHT
    return f"/api/images/{image_id}/thumbnail?width={width}&height={height}"


async def build_preview(doc: dict) -> Preview:
    """
    Pick the inline rendering strategy for a record.

    The bucket has no anonymous read policy, so every storage URL handed to
    the browser is presigned for DOWNLOAD_URL_EXPIRY_MINUTES. The thumbnail
    ``url`` is an API path and needs the caller's Bearer token.
    """
    kind = detect_file_kind(doc.get("content_type"), doc.get("format"), doc.get("secure_url"))
    signed_url = await get_presigned_url(
        doc["public_id"],
        expires=timedelta(minutes=settings.DOWNLOAD_URL_EXPIRY_MINUTES),
    )
    common = {
        "kind": kind,
        "title": doc["title"],
        "filename": filename_for(doc),
    }

    if kind == FileKind.IMAGE:
        return Preview(url=thumbnail_path(doc["_id"]), full_url=signed_url, **common)

    if kind == FileKind.PDF:
        return Preview(embed_url=signed_url, **common)

    # No in-browser renderer for office documents
    return Preview(
        open_url=signed_url,
        download_url=f"/api/images/{doc['_id']}/download",
        viewer_url=settings.DOCUMENT_VIEWER_URL.format(url=quote(signed_url, safe="")),
        **common,
    )


def make_thumbnail(image_bytes: bytes, width: int, height: int, quality: int = 80) -> bytes:
    """Shrink an image to fit inside width x height and re-encode as JPEG"""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            if img.mode in ("P", "LA"):
                img = img.convert("RGBA")
            if img.mode == "RGBA":
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            # thumbnail() only ever shrinks
            img.thumbnail((width, height), Image.Resampling.LANCZOS)

            output = BytesIO()
            img.save(output, format="JPEG", quality=quality, optimize=True)
            return output.getvalue()
    except Exception as e:
        logger.error(f"Failed to create thumbnail: {e}")
        raise

"""
Media type allow-list, file classification and display helpers
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import io

from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.errors import UnsupportedFormat

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "application/pdf": "pdf",
    "text/plain": "txt",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-powerpoint": "ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
}

# Pillow format names that differ from the extension we store
PIL_FORMATS = {"JPEG": "jpg", "MPO": "jpg"}

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


@dataclass(frozen=True)
class MediaInfo:
    content_type: str
    resource_type: str
    extension: str

    @property
    def is_image(self) -> bool:
        return self.resource_type == "image"


def normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def classify_upload(content_type: Optional[str]) -> MediaInfo:
    """Check a declared media type against the allow-list"""
    normalized = normalize_content_type(content_type)
    if normalized not in settings.ALLOWED_UPLOAD_CONTENT_TYPES or normalized not in EXTENSIONS:
        raise UnsupportedFormat()

    resource_type = "image" if normalized.startswith("image/") else "raw"
    return MediaInfo(
        content_type=normalized,
        resource_type=resource_type,
        extension=EXTENSIONS[normalized],
    )


def probe_image(data: bytes) -> Tuple[int, int, str]:
    """Return (width, height, format) of an encoded image"""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            pil_format = img.format or ""
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedFormat("Image file could not be read") from e

    fmt = PIL_FORMATS.get(pil_format, pil_format.lower())
    return width, height, fmt


def format_file_size(num_bytes: int) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'"""
    if not num_bytes:
        return "0 Bytes"

    unit = 0
    scaled = float(num_bytes)
    while scaled >= 1024 and unit < len(SIZE_UNITS) - 1:
        scaled /= 1024
        unit += 1

    value = ("%.2f" % scaled).rstrip("0").rstrip(".")
    return f"{value} {SIZE_UNITS[unit]}"


def aspect_ratio(width: Optional[int], height: Optional[int]) -> Optional[float]:
    if width and height:
        return round(width / height, 2)
    return None

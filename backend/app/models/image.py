"""
Image (asset record) models for uploaded past questions and pictures
"""
from datetime import datetime
from typing import Optional, List, Union
from enum import Enum
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from app.services.media_types import format_file_size, aspect_ratio


class ResourceType(str, Enum):
    """How the object store classifies the file"""
    IMAGE = "image"
    RAW = "raw"


class FileKind(str, Enum):
    """Preview strategy for a record"""
    IMAGE = "image"
    PDF = "pdf"
    DOCUMENT = "document"


class CamelModel(BaseModel):
    """API models exchanged with the browser use camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ImageInDB(BaseModel):
    """Asset record as stored in the images collection"""
    id: str = Field(..., alias="_id")
    public_id: str = Field(..., min_length=1)
    secure_url: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=1000)
    tags: List[str] = []
    format: str
    resource_type: ResourceType
    content_type: str
    original_filename: Optional[str] = None
    width: Optional[int] = Field(None, ge=0)
    height: Optional[int] = Field(None, ge=0)
    size: int = Field(..., ge=0)
    uploaded_by: str
    is_public: bool = True
    views: int = Field(0, ge=0)
    downloads: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True
        use_enum_values = True

    @model_validator(mode="after")
    def image_has_dimensions(self):
        if self.resource_type == ResourceType.IMAGE.value and (self.width is None or self.height is None):
            raise ValueError("width and height are required for images")
        return self


class Uploader(CamelModel):
    """Public profile of the user who posted a record"""
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None


class ImageResponse(CamelModel):
    """Asset record returned by the API"""
    id: str
    title: str
    description: str = ""
    tags: List[str] = []
    public_id: str
    secure_url: str
    format: str
    resource_type: str
    content_type: str
    original_filename: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    size: int
    formatted_size: str
    aspect_ratio: Optional[float] = None
    uploaded_by: str
    uploader: Optional[Uploader] = None
    is_public: bool
    views: int = 0
    downloads: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_doc(cls, doc: dict) -> "ImageResponse":
        return cls(
            id=doc["_id"],
            title=doc["title"],
            description=doc.get("description") or "",
            tags=doc.get("tags", []),
            public_id=doc["public_id"],
            secure_url=doc["secure_url"],
            format=doc["format"],
            resource_type=doc["resource_type"],
            content_type=doc["content_type"],
            original_filename=doc.get("original_filename"),
            width=doc.get("width"),
            height=doc.get("height"),
            size=doc["size"],
            formatted_size=format_file_size(doc["size"]),
            aspect_ratio=aspect_ratio(doc.get("width"), doc.get("height")),
            uploaded_by=doc["uploaded_by"],
            uploader=Uploader(**doc["uploader"]) if doc.get("uploader") else None,
            is_public=doc["is_public"],
            views=doc.get("views", 0),
            downloads=doc.get("downloads", 0),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )


class ImageUpdate(CamelModel):
    """Partial metadata update; unset fields stay unchanged. Lengths are checked after trimming."""
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[Union[str, List[str]]] = None
    is_public: Optional[bool] = None


class ImageEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: ImageResponse


class ImageListEnvelope(CamelModel):
    success: bool = True
    count: int
    total: int
    page: int
    pages: int
    data: List[ImageResponse]


class MessageEnvelope(CamelModel):
    success: bool = True
    message: str


class TagCount(CamelModel):
    tag: str
    count: int


class ImageStats(CamelModel):
    """Per-owner statistics"""
    total_images: int
    public_images: int
    private_images: int
    total_storage: int
    total_storage_mb: str = Field(..., alias="totalStorageMB")
    top_tags: List[TagCount]


class ImageStatsEnvelope(CamelModel):
    success: bool = True
    data: ImageStats


class Counters(CamelModel):
    views: int
    downloads: int


class CountersEnvelope(CamelModel):
    success: bool = True
    data: Counters


class DownloadLink(CamelModel):
    """Resolved URL that makes the browser save the file"""
    url: str
    filename: str


class DownloadLinkEnvelope(CamelModel):
    success: bool = True
    data: DownloadLink


class Preview(CamelModel):
    """How the client should render a record inline"""
    kind: FileKind
    title: str
    filename: str
    url: Optional[str] = None
    full_url: Optional[str] = None
    embed_url: Optional[str] = None
    open_url: Optional[str] = None
    download_url: Optional[str] = None
    viewer_url: Optional[str] = None


class PreviewEnvelope(CamelModel):
    success: bool = True
    data: Preview


class PortalSummary(CamelModel):
    """Home page counters"""
    total_images: int
    public_images: int
    contributors: int
    cached_at: datetime


class PortalSummaryEnvelope(CamelModel):
    success: bool = True
    data: PortalSummary

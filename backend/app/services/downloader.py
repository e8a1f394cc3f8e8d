"""
Client-side download helpers

Used by API consumers (see scripts/fetch-image.py) once they have resolved a
file URL from the images API. Nothing here talks to the database.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse
import asyncio
import logging

import httpx

from app.services.media_types import format_file_size

logger = logging.getLogger(__name__)

DOWNLOADABLE_EXTENSIONS = (
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".zip", ".rar",
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".webp",
    ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm",
    ".mp3", ".wav", ".flac", ".aac", ".ogg",
)
DEFAULT_MAX_SIZE = 50 * 1024 * 1024

ProgressCallback = Callable[[float], None]


class DownloadError(Exception):
    """The transfer failed or the server did not answer 200"""


@dataclass(frozen=True)
class FileCheck:
    valid: bool
    error: Optional[str] = None


@asynccontextmanager
async def _http_client(client: Optional[httpx.AsyncClient]):
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(follow_redirects=True, timeout=60.0) as owned:
            yield owned


def smart_filename(url: str, custom_name: Optional[str] = None) -> str:
    """Filename from the last URL segment, guessing an extension when missing"""
    if custom_name:
        return custom_name

    filename = urlparse(url).path.rsplit("/", 1)[-1] or "download"
    if "." not in filename:
        lowered = url.lower()
        if "pdf" in lowered or "document" in lowered:
            filename += ".pdf"
        elif "image" in lowered or "img" in lowered:
            filename += ".jpg"
    return filename


def is_downloadable_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    return parsed.path.lower().endswith(DOWNLOADABLE_EXTENSIONS)


def save_bytes(data: bytes, destination: Path, filename: str) -> Path:
    """Write a downloaded payload to ``destination/filename``"""
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    target = destination / Path(filename).name
    target.write_bytes(data)
    logger.info(f"Saved {target} ({format_file_size(len(data))})")
    return target


async def validate_remote_file(
    url: str,
    max_size: int = DEFAULT_MAX_SIZE,
    client: Optional[httpx.AsyncClient] = None,
) -> FileCheck:
    """HEAD the URL and check its type and advertised size"""
    if not is_downloadable_url(url):
        return FileCheck(valid=False, error="Unsupported file type")

    try:
        async with _http_client(client) as http:
            response = await http.head(url)
    except httpx.HTTPError:
        return FileCheck(valid=False, error="Unable to validate file")

    content_length = response.headers.get("content-length")
    if content_length and int(content_length) > max_size:
        return FileCheck(
            valid=False,
            error=f"File too large. Maximum size: {format_file_size(max_size)}",
        )
    return FileCheck(valid=True)


async def download_with_progress(
    url: str,
    destination: Path,
    filename: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Path:
    """
    Stream ``url`` into memory, reporting progress as a fraction between 0
    and 1 whenever the server sends a Content-Length, then save it.

    Raises DownloadError on transport errors or a non-200 status.
    """
    buffer = bytearray()
    try:
        async with _http_client(client) as http:
            async with http.stream("GET", url) as response:
                if response.status_code != 200:
                    raise DownloadError(f"Download failed with status: {response.status_code}")

                total = int(response.headers.get("content-length") or 0)
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if total and on_progress:
                        on_progress(min(len(buffer) / total, 1.0))
    except httpx.HTTPError as e:
        raise DownloadError("Network error during download") from e

    if on_progress and not total:
        on_progress(1.0)

    return save_bytes(bytes(buffer), destination, filename or smart_filename(url))


async def batch_download(
    files: List[Dict[str, str]],
    destination: Path,
    delay: float = 0.5,
    client: Optional[httpx.AsyncClient] = None,
) -> List[Dict[str, object]]:
    """Download several files one after another, ``delay`` seconds apart"""
    results = []
    async with _http_client(client) as http:
        for index, item in enumerate(files):
            if index and delay:
                await asyncio.sleep(delay)

            name = item.get("filename") or smart_filename(item["url"])
            try:
                path = await download_with_progress(item["url"], destination, filename=name, client=http)
                results.append({"success": True, "filename": name, "path": str(path)})
            except (DownloadError, OSError) as e:
                logger.warning(f"Batch download of {item['url']} failed: {e}")
                results.append({"success": False, "filename": name, "error": str(e)})
    return results

#!/usr/bin/env python3
"""
Download one past question or image from a running API with a progress bar

Usage:
    scripts/fetch-image.py --email me@example.com --password secret IMAGE_ID [--out downloads]
"""
import argparse
import asyncio
import sys
from pathlib import Path

import httpx

# Add backend to path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from app.services.downloader import DEFAULT_MAX_SIZE, DownloadError, download_with_progress
from app.services.media_types import format_file_size


def print_progress(fraction: float):
    filled = int(fraction * 40)
    sys.stdout.write(f"\r[{'#' * filled}{'.' * (40 - filled)}] {fraction * 100:5.1f}%")
    sys.stdout.flush()


async def fetch_image(api_url: str, email: str, password: str, image_id: str, out_dir: Path):
    async with httpx.AsyncClient(base_url=api_url, timeout=60.0) as api:
        login = await api.post("/api/auth/login", json={"email": email, "password": password})
        if login.status_code != 200:
            print(f"✗ Login failed: {login.json().get('message')}")
            sys.exit(1)
        api.headers["Authorization"] = f"Bearer {login.json()['access_token']}"

        meta = await api.get(f"/api/images/{image_id}")
        if meta.status_code != 200:
            print(f"✗ {meta.json().get('message')}")
            sys.exit(1)
        record = meta.json()["data"]
        print(f"Title: {record['title']} ({record['formattedSize']})")

        link = await api.get(f"/api/images/{image_id}/download")
        if link.status_code != 200:
            print(f"✗ {link.json().get('message')}")
            sys.exit(1)
        data = link.json()["data"]

    # The download link is signed for GET only, so size is checked from the record
    if record["size"] > DEFAULT_MAX_SIZE:
        print(f"⚠ Large file: {record['formattedSize']} (limit {format_file_size(DEFAULT_MAX_SIZE)})")

    async with httpx.AsyncClient(follow_redirects=True, timeout=60.0) as storage:
        try:
            path = await download_with_progress(
                data["url"],
                out_dir,
                filename=data["filename"],
                on_progress=print_progress,
                client=storage,
            )
        except DownloadError as e:
            print(f"\n✗ {e}")
            sys.exit(1)

    print(f"\n✓ Saved to {path}")


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("image_id")
    parser.add_argument("--api", default="http://localhost:8000")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--out", default="downloads", type=Path)
    args = parser.parse_args()

    asyncio.run(fetch_image(args.api, args.email, args.password, args.image_id, args.out))


if __name__ == "__main__":
    main()

"""Shared test fixtures: in-memory MongoDB, object store and Redis."""
import io
import sys
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from app.core.database import database
from app.core.object_store import object_store
from app.core.redis_client import redis_client
from app.main import app
from app.models.image import ImageInDB


class _MemoryObject:
    def __init__(self, data: bytes):
        self._data = data

    def read(self):
        return self._data

    def close(self):
        pass

    def release_conn(self):
        pass


class _MemoryMinio:
    """Stands in for the minio.Minio client; flip fail_* to simulate outages."""

    def __init__(self):
        self.objects = {}
        self.put_calls = []
        self.remove_calls = []
        self.fail_put = False
        self.fail_remove = False

    def put_object(self, bucket_name, object_name, data, length, content_type=None, metadata=None):
        self.put_calls.append(object_name)
        if self.fail_put:
            raise RuntimeError("storage unavailable")
        self.objects[object_name] = data.read(length)

    def remove_object(self, bucket_name, object_name):
        self.remove_calls.append(object_name)
        if self.fail_remove:
            raise RuntimeError("storage unavailable")
        self.objects.pop(object_name, None)

    def get_object(self, bucket_name, object_name):
        return _MemoryObject(self.objects[object_name])

    def presigned_get_object(self, bucket_name, object_name, expires=None, response_headers=None):
        query = {"X-Amz-Expires": int(expires.total_seconds())}
        query.update(response_headers or {})
        return f"https://storage.test/{bucket_name}/{object_name}?{urlencode(query)}"


class _MemoryRedis:
    def __init__(self):
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, key):
        self.expiry.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0


@pytest.fixture(autouse=True)
def mongo_db():
    previous = database.db
    database.db = AsyncMongoMockClient()[f"test_{uuid.uuid4().hex[:8]}"]
    yield database.db
    database.db = previous


@pytest.fixture(autouse=True)
def storage():
    previous = object_store.client
    object_store.client = _MemoryMinio()
    yield object_store.client
    object_store.client = previous


@pytest.fixture(autouse=True)
def memory_redis():
    previous = redis_client.client
    redis_client.client = _MemoryRedis()
    yield redis_client.client
    redis_client.client = previous


@pytest.fixture
def api_client():
    return TestClient(app)


def register_user(api_client, name: str) -> dict:
    suffix = uuid.uuid4().hex[:8]
    r = api_client.post(
        "/api/auth/register",
        json={
            "email": f"{name}-{suffix}@example.com",
            "username": f"{name}_{suffix}",
            "password": "testpass123",
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    return {
        "id": body["user"]["id"],
        "username": body["user"]["username"],
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
    }


@pytest.fixture
def alice(api_client):
    return register_user(api_client, "alice")


@pytest.fixture
def bob(api_client):
    return register_user(api_client, "bob")


def make_png(width: int = 40, height: int = 30, color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def upload(api_client, user, title="Diagram", content=None, content_type="image/png",
           filename="diagram.png", **fields):
    data = {"title": title} if title is not None else {}
    data.update(fields)
    return api_client.post(
        "/api/images",
        files={"image": (filename, content if content is not None else make_png(), content_type)},
        data=data,
        headers=user["headers"],
    )


def make_record(owner: str, title: str = "Paper", is_public: bool = True, tags=(), size: int = 100,
                age_minutes: int = 0, resource_type: str = "image", **overrides) -> ImageInDB:
    created = datetime.utcnow() - timedelta(minutes=age_minutes)
    image_id = str(uuid.uuid4())
    fields = dict(
        _id=image_id,
        public_id=f"university-past-questions/{resource_type}/question-{image_id}.png",
        secure_url=f"https://storage.test/past-questions/{image_id}.png",
        title=title,
        description="",
        tags=list(tags),
        format="png" if resource_type == "image" else "pdf",
        resource_type=resource_type,
        content_type="image/png" if resource_type == "image" else "application/pdf",
        width=40 if resource_type == "image" else None,
        height=30 if resource_type == "image" else None,
        size=size,
        uploaded_by=owner,
        is_public=is_public,
        created_at=created,
        updated_at=created,
    )
    fields.update(overrides)
    return ImageInDB(**fields)

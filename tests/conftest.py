from __future__ import annotations

import os

os.environ.update(
    {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite+aiosqlite://",
        "RATE_LIMIT_ENABLED": "false",
        "JWT_SECRET": "test-secret",
        "B2_APPLICATION_KEY_ID": "key-id",
        "B2_APPLICATION_KEY": "key-secret",
        "B2_BUCKET_ID": "bucket-id",
        "B2_BUCKET_NAME": "test-bucket",
        "B2_DOWNLOAD_URL": "https://f001.backblazeb2.com",
    }
)

from io import BytesIO

import httpx
import jwt
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import assetvault.models  # noqa: F401
from assetvault.db.base import Base
from assetvault.db.session import get_db
from assetvault.models.account import Profile
from assetvault.models.catalog import Product
from assetvault.models.project import Project, ProjectDocument, Space
from assetvault.services.auth import AuthUser
from assetvault.services.object_keys import object_key_from_url, public_url
from assetvault.services.object_store import DeleteResult, ObjectStoreError, StoredObject, get_object_store

DOWNLOAD_URL = "https://f001.backblazeb2.com"
BUCKET = "test-bucket"


class FakeObjectStore:
    """In-memory object store keyed like the B2 bucket."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.uploads: list[tuple[str, str, int]] = []
        self.deleted_urls: list[str] = []
        self.fail_uploads = False
        self.fail_deletes = False

    async def upload_object(self, data: bytes, mime_type: str, key: str) -> StoredObject:
        if self.fail_uploads:
            raise ObjectStoreError("B2 upload failed: 503 Service Unavailable")
        self.uploads.append((key, mime_type, len(data)))
        self.objects[key] = data
        return StoredObject(
            url=public_url(DOWNLOAD_URL, BUCKET, key),
            key=key,
            file_id=f"file-{len(self.uploads)}",
            size=len(data),
        )

    async def delete_object_by_url(self, url: str) -> DeleteResult:
        if self.fail_deletes:
            raise ObjectStoreError("B2 delete file version failed: 500 Internal Server Error")
        key = object_key_from_url(url, DOWNLOAD_URL, BUCKET)
        if key is None:
            return DeleteResult.SKIPPED
        self.deleted_urls.append(url)
        if self.objects.pop(key, None) is None:
            return DeleteResult.NOT_FOUND
        return DeleteResult.DELETED

    async def delete_all_by_prefix(self, prefix: str) -> int:
        if self.fail_deletes:
            raise ObjectStoreError("B2 list file names failed: 500 Internal Server Error")
        keys = [k for k in self.objects if k.startswith(prefix)]
        for key in keys:
            del self.objects[key]
        return len(keys)


def make_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB", exif=None) -> bytes:
    color = {"RGB": (200, 80, 40), "RGBA": (200, 80, 40, 128), "L": 128}[mode]
    img = Image.new(mode, (width, height), color=color)
    out = BytesIO()
    if exif is not None:
        img.save(out, format=fmt, exif=exif)
    else:
        img.save(out, format=fmt)
    return out.getvalue()


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(user_id="user-1", email="owner@example.com")


@pytest.fixture
def other_user() -> AuthUser:
    return AuthUser(user_id="user-2", email="other@example.com")


@pytest_asyncio.fixture
async def project(db, user) -> Project:
    row = Project(id="project-1", user_id=user.user_id, name="Kitchen")
    db.add_all([Profile(id=user.user_id, email=user.email), row])
    await db.commit()
    return row


@pytest_asyncio.fixture
async def space(db, project) -> Space:
    row = Space(id="space-1", project_id=project.id, name="Living room")
    db.add(row)
    await db.commit()
    return row


@pytest_asyncio.fixture
async def product(db, user) -> Product:
    row = Product(id="product-1", user_id=user.user_id, name="Lamp")
    db.add(row)
    await db.commit()
    return row


@pytest_asyncio.fixture
async def document(db, user, project) -> ProjectDocument:
    row = ProjectDocument(id="document-1", project_id=project.id, user_id=user.user_id, name="Quote")
    db.add(row)
    await db.commit()
    return row


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def png_bytes() -> bytes:
    return make_image(2400, 1200)


def bearer_for(user: AuthUser) -> dict[str, str]:
    token = jwt.encode({"sub": user.user_id, "email": user.email}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return bearer_for(user)


@pytest.fixture
def other_headers(other_user) -> dict[str, str]:
    return bearer_for(other_user)


@pytest_asyncio.fixture
async def client(db, store):
    from assetvault.main import app

    async def _db_override():
        yield db

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_object_store] = lambda: store
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()

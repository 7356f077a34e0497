from __future__ import annotations
import io
import os
import tempfile
from datetime import datetime, timezone

# Settings are read at import time
_DB_DIR = tempfile.mkdtemp(prefix="p100-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/p100.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_PANEL_SLUG"] = "test"
os.environ["ADMIN_PASSWORD"] = "correct horse"
os.environ["ADMIN_SECRET_KEY"] = "open-sesame"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STORAGE_PUBLIC_URL"] = "https://cdn.example.com"

import httpx
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from p100.config import settings
from p100.db import Base, get_session
from p100.main import app
from p100.models.character import Killer, Survivor
from p100.security import make_admin_token, login_throttle
from p100.services.storage import ObjectExists, ObjectStorage, StoredObject, get_storage
import p100.models.player  # noqa: F401
import p100.models.submission  # noqa: F401
import p100.models.artist  # noqa: F401
import p100.models.blacklist  # noqa: F401

ADMIN = "/admin-panel-test"

engine = create_async_engine(settings.database_url, poolclass=NullPool)
TestSession = async_sessionmaker(engine, expire_on_commit=False)


class FakeStorage(ObjectStorage):
    """In-memory buckets with the same surface as the S3-backed store."""

    def __init__(self):
        super().__init__(client=None, public_base=settings.storage_public_url)
        self.objects: dict[tuple[str, str], tuple[bytes, str, datetime]] = {}

    def put_bytes(self, bucket, path, data, content_type):
        self.objects[(bucket, path)] = (data, content_type, datetime.now(timezone.utc))
        return self.public_url(bucket, path)

    def list_objects(self, bucket):
        items = [
            StoredObject(
                name=path.rsplit("/", 1)[-1],
                path=path,
                bucket=b,
                public_url=self.public_url(b, path),
                size=len(data),
                last_modified=ts,
            )
            for (b, path), (data, _, ts) in self.objects.items()
            if b == bucket
        ]
        items.sort(key=lambda i: i.last_modified, reverse=True)
        return items

    def exists(self, bucket, path):
        return (bucket, path) in self.objects

    def move(self, bucket, src, dst):
        if self.exists(bucket, dst):
            raise ObjectExists(f"A file named {dst} already exists in {bucket}.")
        if (bucket, src) not in self.objects:
            raise FileNotFoundError(f"Object not found: {bucket}/{src}")
        self.objects[(bucket, dst)] = self.objects.pop((bucket, src))

    def remove(self, bucket, paths):
        for path in paths:
            self.objects.pop((bucket, path), None)

    def paths(self, bucket):
        return sorted(p for b, p in self.objects if b == bucket)


async def _override_session():
    async with TestSession() as session:
        yield session


def png_bytes(color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest_asyncio.fixture(autouse=True)
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    login_throttle.reset()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    return fake


@pytest_asyncio.fixture
async def client(storage):
    app.dependency_overrides[get_session] = _override_session
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_admin_token()}"}


@pytest_asyncio.fixture
async def characters():
    async with TestSession() as session:
        session.add_all([
            Killer(id="the-trapper", name="The Trapper", image_url="https://cdn.example.com/k/trapper.png", display_order=1),
            Killer(id="the-wraith", name="The Wraith", image_url="https://cdn.example.com/k/wraith.png", display_order=2),
            Killer(id="the-hillbilly", name="The Hillbilly", image_url="https://cdn.example.com/k/billy.png", display_order=3),
            Survivor(id="dwight-fairfield", name="Dwight Fairfield", image_url="https://cdn.example.com/s/dwight.png", display_order=1),
        ])
        await session.commit()

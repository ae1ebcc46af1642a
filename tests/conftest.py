import secrets
import shutil
import uuid

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tubely.core.base import Base
from tubely.core.config import Settings
from tubely.core.db import get_session
from tubely.core.errors import StorageUploadError
from tubely.core.security import create_access_token
from tubely.main import create_app
from tubely.modules.videos.models import Video
from tubely.platform.provider_registry import ProviderRegistry

JWT_SECRET = "test-secret"
BUCKET = "tubely-test"


class FakeStorage:
    def __init__(self):
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.fail_puts = False

    def put_object(self, bucket, key, body, content_type):
        if self.fail_puts:
            raise StorageUploadError("simulated outage")
        self.objects[(bucket, key)] = (body.read(), content_type)

    def presign_download(self, bucket, key, expires_seconds):
        return f"https://{bucket}.s3.test/{key}?X-Amz-Expires={expires_seconds}&X-Amz-Signature={secrets.token_hex(8)}"


class FakeMediaTool:
    def __init__(self, width=1280, height=720):
        self.streams = [{"index": 0, "codec_type": "video", "width": width, "height": height}]
        self.inspected: list[str] = []
        self.remuxed: list[tuple[str, str]] = []
        self.inspect_error: Exception | None = None
        self.remux_error: Exception | None = None

    def inspect(self, path):
        self.inspected.append(path)
        if self.inspect_error is not None:
            raise self.inspect_error
        return {"streams": self.streams}

    def remux(self, src, dest):
        self.remuxed.append((src, dest))
        if self.remux_error is not None:
            raise self.remux_error
        with open(src, "rb") as s, open(dest, "wb") as d:
            d.write(b"faststart:")
            shutil.copyfileobj(s, d)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ENV="dev",
        JWT_SECRET=JWT_SECRET,
        S3_BUCKET=BUCKET,
        ASSETS_ROOT=str(tmp_path / "assets"),
        SCRATCH_DIR=str(tmp_path / "scratch"),
        PUBLIC_BASE_URL="http://testserver",
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def media_tool():
    return FakeMediaTool()


@pytest.fixture
def registry(settings, storage, media_tool):
    return ProviderRegistry(settings, object_storage=storage, media_tool=media_tool)


@pytest.fixture
async def sessionmaker(anyio_backend):
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.fixture
def app(settings, registry, sessionmaker):
    app = create_app(settings, registry)

    async def _session():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    return app


@pytest.fixture
async def client(app, anyio_backend):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers(owner_id):
    return {"Authorization": f"Bearer {create_access_token(owner_id, JWT_SECRET)}"}


@pytest.fixture
async def video(sessionmaker, owner_id, anyio_backend):
    async with sessionmaker() as session:
        obj = Video(user_id=owner_id, title="boots", description="a video about boots")
        session.add(obj)
        await session.commit()
        return obj


@pytest.fixture
def reload_video(sessionmaker):
    async def _reload(video_id) -> Video:
        async with sessionmaker() as session:
            return await session.get(Video, video_id)
    return _reload

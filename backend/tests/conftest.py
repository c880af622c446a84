"""
Pytest Configuration and Test Fixtures for the Tubely backend

Provides:
- Test settings with small upload ceilings and a private scratch directory
- A fake media toolkit standing in for ffprobe/ffmpeg
- Mocked object store and video catalog
- Bearer tokens for the owner and for a stranger
- A FastAPI TestClient wired to the mocked upload service
"""

import os

from collections.abc import Generator
from io import BytesIO
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from fastapi import UploadFile
from fastapi.testclient import TestClient
from starlette.datastructures import Headers

from app.api.v1.upload import get_upload_service
from app.config import Settings, get_settings
from app.core.auth import create_access_token
from app.core.storage import StorageClient
from app.main import app
from app.models.media import VideoStream
from app.models.video import Video
from app.services.catalog_service import VideoCatalog
from app.services.delivery_service import DeliveryURLResolver
from app.services.media_service import FASTSTART_SUFFIX, MediaService, RemuxError
from app.services.upload_service import UploadService


TEST_SECRET_KEY = "test-secret-key-for-jwt-signing-minimum-32-chars"

# Bytes prepended by FakeToolkit.remux so tests can tell processed output apart
FASTSTART_MARKER = b"moov-first:"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as async")
    config.addinivalue_line("markers", "unit: mark test as unit test")


# ==============================================================================
# Settings
# ==============================================================================


@pytest.fixture
def scratch_dir(tmp_path) -> str:
    """Directory used as ``temp_dir`` so staging files can be counted."""
    path = tmp_path / "scratch"
    path.mkdir()
    return str(path)


@pytest.fixture
def assets_dir(tmp_path) -> str:
    return str(tmp_path / "assets")


@pytest.fixture
def test_settings(scratch_dir: str, assets_dir: str) -> Settings:
    """Settings with 1 MB thumbnail and 2 MB video ceilings."""
    return Settings(
        app_env="testing",
        secret_key=TEST_SECRET_KEY,
        s3_bucket="tubely-test",
        s3_region="us-east-1",
        delivery_mode="s3",
        asset_host="localhost",
        port=8091,
        assets_root=assets_dir,
        temp_dir=scratch_dir,
        max_thumbnail_upload_mb=1,
        max_video_upload_mb=2,
    )


@pytest.fixture
def local_settings(test_settings: Settings) -> Settings:
    return Settings(**{**test_settings.model_dump(), "delivery_mode": "local"})


# ==============================================================================
# Collaborators
# ==============================================================================


class FakeToolkit:
    """
    In-process MediaToolkit.

    ``probe`` reports fixed dimensions; ``remux`` writes the input with a
    marker prefix next to it, or an empty file when ``empty_output`` is set.
    """

    def __init__(self, width: int = 1920, height: int = 1080) -> None:
        self.width = width
        self.height = height
        self.probe_error: Exception | None = None
        self.empty_output = False
        self.probed: list[str] = []
        self.remuxed: list[str] = []

    def probe(self, path: str) -> VideoStream:
        self.probed.append(path)
        if self.probe_error is not None:
            raise self.probe_error
        return VideoStream(width=self.width, height=self.height, codec_name="h264")

    def remux(self, path: str) -> str:
        self.remuxed.append(path)
        output_path = f"{path}{FASTSTART_SUFFIX}"
        with open(path, "rb") as source, open(output_path, "wb") as target:
            if not self.empty_output:
                target.write(FASTSTART_MARKER + source.read())
        if self.empty_output:
            raise RemuxError("processed file is empty")
        return output_path


@pytest.fixture
def fake_toolkit() -> FakeToolkit:
    return FakeToolkit()


@pytest.fixture
def mock_storage() -> Mock:
    """
    Object store double recording what was written.

    ``mock_storage.objects`` maps key -> (bytes, content_type).
    """
    storage = Mock(spec=StorageClient)
    storage.objects = {}

    def put_object(key: str, body: Any, content_type: str) -> dict[str, Any]:
        data = body if isinstance(body, bytes) else body.read()
        storage.objects[key] = (data, content_type)
        return {"bucket": "tubely-test", "key": key, "etag": '"etag"'}

    storage.put_object.side_effect = put_object
    return storage


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def stranger_id() -> UUID:
    return uuid4()


@pytest.fixture
def sample_video(owner_id: UUID) -> Video:
    return Video(id=uuid4(), user_id=owner_id, title="Boots launch")


@pytest.fixture
def mock_catalog(sample_video: Video) -> Mock:
    """Catalog double holding ``sample_video``; unknown ids return None."""
    catalog = Mock(spec=VideoCatalog)

    async def get_by_id(video_id: UUID) -> Video | None:
        if video_id == sample_video.id:
            return sample_video.model_copy()
        return None

    async def update_url(video_id: UUID, field: str, url: str) -> Video:
        return sample_video.model_copy(update={field: url})

    catalog.get_by_id = AsyncMock(side_effect=get_by_id)
    catalog.update_url = AsyncMock(side_effect=update_url)
    return catalog


def build_upload_service(
    settings: Settings, storage: Mock, catalog: Mock, toolkit: FakeToolkit
) -> UploadService:
    return UploadService(
        storage=storage,
        catalog=catalog,
        media=MediaService(toolkit),
        resolver=DeliveryURLResolver(settings),
        settings=settings,
    )


@pytest.fixture
def upload_service(
    test_settings: Settings, mock_storage: Mock, mock_catalog: Mock, fake_toolkit: FakeToolkit
) -> UploadService:
    return build_upload_service(test_settings, mock_storage, mock_catalog, fake_toolkit)


def make_upload(data: bytes, content_type: str | None, filename: str = "upload.bin") -> UploadFile:
    """An in-memory UploadFile as the multipart parser would produce it."""
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(file=BytesIO(data), filename=filename, headers=headers)


def scratch_files(scratch_dir: str) -> list[str]:
    return os.listdir(scratch_dir)


# ==============================================================================
# Auth
# ==============================================================================


@pytest.fixture
def owner_headers(owner_id: UUID, test_settings: Settings) -> dict[str, str]:
    token = create_access_token(owner_id, test_settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def stranger_headers(stranger_id: UUID, test_settings: Settings) -> dict[str, str]:
    token = create_access_token(stranger_id, test_settings)
    return {"Authorization": f"Bearer {token}"}


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def test_client(
    test_settings: Settings, upload_service: UploadService
) -> Generator[TestClient, None, None]:
    """
    TestClient with settings and the upload service overridden.

    The lifespan is not entered, so no MongoDB connection is attempted.
    """
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_upload_service] = lambda: upload_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

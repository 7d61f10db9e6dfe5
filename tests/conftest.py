"""Shared pytest fixtures for Curator tests."""

import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from curator.api.main import create_app
from curator.core.backends import JsonFileBackend, MemoryBackend
from curator.core.config import CuratorConfig
from curator.core.image_store import ImageStore
from curator.core.ingestion import IngestionPipeline, UploadedFile
from curator.core.moderation import ModerationService
from curator.core.query import QueryService

FIXED_DATE = "2026-10-17"

# Smallest valid PNG header plus padding; content is never decoded.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> CuratorConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        CuratorConfig instance for testing
    """
    return CuratorConfig(
        _env_file=None,
        data_dir=str(temp_dir / "data"),
        uploads_dir=str(temp_dir / "uploads"),
        max_upload_bytes=1024,
        max_files_per_upload=3,
    )


@pytest.fixture
def memory_store() -> ImageStore:
    """Create an empty store on an in-memory backend."""
    return ImageStore(MemoryBackend())


@pytest.fixture
def file_store(temp_dir: Path) -> ImageStore:
    """Create an empty store persisting to ``images.json`` in a temp dir."""
    return ImageStore(JsonFileBackend(temp_dir / "images.json"))


@pytest.fixture
def moderation(memory_store: ImageStore, temp_dir: Path) -> ModerationService:
    """Moderation service stamping a fixed date."""
    return ModerationService(memory_store, temp_dir, today=lambda: FIXED_DATE)


@pytest.fixture
def query(memory_store: ImageStore) -> QueryService:
    return QueryService(memory_store)


@pytest.fixture
def pipeline(memory_store: ImageStore, temp_dir: Path) -> IngestionPipeline:
    """Ingestion pipeline writing into ``temp_dir/uploads`` with a 1 KiB ceiling."""
    return IngestionPipeline(
        memory_store,
        temp_dir / "uploads",
        max_upload_bytes=1024,
        max_files=3,
        today=lambda: FIXED_DATE,
    )


@pytest.fixture
def make_upload() -> Callable[..., UploadedFile]:
    """Factory for :class:`UploadedFile` test payloads."""

    def _make(
        name: str = "sunset.png",
        content_type: str = "image/png",
        data: bytes = PNG_BYTES,
    ) -> UploadedFile:
        return UploadedFile(original_name=name, content_type=content_type, data=data)

    return _make


@pytest.fixture
def make_record_data() -> Callable[..., dict]:
    """Factory for record payloads accepted by :meth:`ImageStore.create`."""

    def _make(**overrides) -> dict:
        data = {
            "url": "/uploads/image-1.png",
            "filename": "image-1.png",
            "originalName": "photo.png",
            "title": "Photo",
            "status": "pending",
            "uploadedBy": "Alice",
            "uploadDate": FIXED_DATE,
            "tags": [],
            "fileSize": "1 KB",
            "dimensions": "1920x1080",
            "mimeType": "image/png",
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def test_client(test_config: CuratorConfig) -> Generator[TestClient, None, None]:
    """FastAPI TestClient bound to an app built around ``test_config``.

    The context manager runs the lifespan, so services exist on ``app.state``.
    """
    app = create_app(test_config)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_headers(test_config: CuratorConfig) -> dict[str, str]:
    return {"Authorization": f"Bearer {test_config.admin_token}"}


@pytest.fixture
def fixed_date() -> str:
    """Date stamped by the services built in these fixtures."""
    return FIXED_DATE

"""Core functionality for the moderation-gated gallery.

This package holds everything below the HTTP layer:

- **config.py**: Configuration management using Pydantic Settings
- **models.py**: The image record model and status enum
- **backends.py**: Whole-document durable backends (JSON file, memory)
- **image_store.py**: Record store assigning ids and persisting every mutation
- **moderation.py**: Approve/reject transitions and deletion
- **ingestion.py**: Upload validation, binary storage and record creation
- **query.py**: Listing, search and visibility narrowing
- **access.py**: Static-credential admin gate
- **errors.py**: Exception hierarchy mapped to HTTP status codes by the API

Usage Example
-------------
    from curator.core import ImageStore, JsonFileBackend, ModerationService

    store = ImageStore(JsonFileBackend(config.images_db_path))
    moderation = ModerationService(store, config.uploads_dir)
    moderation.approve(1, approved_by="admin")
"""

from curator.core.access import AccessGate
from curator.core.backends import DurableBackend, JsonFileBackend, MemoryBackend
from curator.core.config import CuratorConfig, config
from curator.core.errors import (
    GalleryError,
    InvalidArgument,
    NotFound,
    PayloadTooLarge,
    StorageFailure,
    Unauthorized,
)
from curator.core.image_store import ImageStore
from curator.core.ingestion import FileMetadata, IngestionPipeline, UploadedFile
from curator.core.models import ImageRecord, ImageStatus
from curator.core.moderation import ModerationService
from curator.core.query import QueryService

__all__ = [
    "AccessGate",
    "CuratorConfig",
    "DurableBackend",
    "FileMetadata",
    "GalleryError",
    "ImageRecord",
    "ImageStatus",
    "ImageStore",
    "IngestionPipeline",
    "InvalidArgument",
    "JsonFileBackend",
    "MemoryBackend",
    "ModerationService",
    "NotFound",
    "PayloadTooLarge",
    "QueryService",
    "StorageFailure",
    "Unauthorized",
    "UploadedFile",
    "config",
]

"""Upload ingestion: validate files, store binaries, create pending records.

A submission is one or more :class:`UploadedFile` objects, per-file
:class:`FileMetadata` and the uploader's name.  Ingestion runs in three
phases so that a bad request never leaves half a batch behind:

1. **Validate** every file (media type, size) and the shared fields.  Any
   failure rejects the whole submission before anything is written.
2. **Write** every binary into the uploads directory under a generated
   name.  If one write fails, the files already written for this submission
   are removed and :class:`~curator.core.errors.StorageFailure` is raised.
3. **Record** one ``pending`` image per file in the store.

Per-file metadata problems never fail the batch: unparseable tags become an
empty tag list and a blank title falls back to one derived from the original
filename.
"""

from __future__ import annotations

import json
import logging
import random
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from curator.core.errors import InvalidArgument, PayloadTooLarge, StorageFailure
from curator.core.image_store import ImageStore
from curator.core.moderation import utc_today
from curator.core.models import ImageRecord, ImageStatus

logger = logging.getLogger(__name__)

# A JSON-encoded list of strings, an already-parsed sequence, or nothing.
RawTags = str | Sequence[str] | None

SIZE_UNITS: tuple[str, ...] = ("Bytes", "KB", "MB", "GB")

_SEPARATORS = re.compile(r"[_\-.\s]+")


@dataclass
class UploadedFile:
    """One uploaded binary as received from the transport."""

    original_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class FileMetadata:
    """Uploader-supplied metadata for one file."""

    title: str | None = None
    tags: RawTags = None


@dataclass
class StoredFile:
    """A binary written to the uploads directory, before its record exists."""

    upload: UploadedFile
    metadata: FileMetadata
    filename: str
    path: Path = field(repr=False)


def parse_tags(raw: RawTags) -> list[str]:
    """Resolve raw tag input into a list of tag strings.

    Sequences pass through; strings are decoded as JSON and must hold a list.
    Anything malformed yields an empty list.  Non-string and blank entries
    are dropped and the rest are stripped.

    Examples:
        >>> parse_tags('["sunset", "beach"]')
        ['sunset', 'beach']
        >>> parse_tags("not json")
        []
    """
    if raw is None:
        return []

    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return []
        try:
            decoded = json.loads(raw)
        except ValueError:
            logger.debug(f"Ignoring unparseable tags: {raw!r}")
            return []
    else:
        decoded = raw

    if not isinstance(decoded, (list, tuple)):
        return []

    return [tag.strip() for tag in decoded if isinstance(tag, str) and tag.strip()]


def default_title(original_name: str) -> str:
    """Derive a title from a filename: drop the extension, separators become spaces.

    Examples:
        >>> default_title("summer_beach-trip.jpg")
        'summer beach trip'
    """
    stem = Path(original_name).stem if original_name else ""
    title = _SEPARATORS.sub(" ", stem).strip()
    return title or "Untitled"


def resolve_title(title: str | None, original_name: str) -> str:
    cleaned = (title or "").strip()
    return cleaned or default_title(original_name)


def format_file_size(num_bytes: int) -> str:
    """Render a byte count with 1024-based units and up to two decimals.

    Examples:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(10 * 1024 * 1024)
        '10 MB'
    """
    if num_bytes <= 0:
        return "0 Bytes"

    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    rounded = round(value, 2)
    text = f"{rounded:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[unit]}"


def generate_storage_filename(original_name: str) -> str:
    """Return ``image-<epoch ms>-<random>`` plus the original extension."""
    suffix = Path(original_name).suffix if original_name else ""
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"image-{unique}{suffix}"


class IngestionPipeline:
    """Turn uploaded files into ``pending`` image records.

    Args:
        store: Record store new images are created in.
        uploads_dir: Content root binaries are written to.
        max_upload_bytes: Per-file size ceiling.
        max_files: Maximum number of files per submission.
        dimensions: Dimensions string recorded for every upload; dimensions
            are not inspected.
        url_prefix: Public path prefix the uploads directory is served under.
        today: Callable returning the upload date string.
    """

    def __init__(
        self,
        store: ImageStore,
        uploads_dir: Path,
        *,
        max_upload_bytes: int = 10 * 1024 * 1024,
        max_files: int = 10,
        dimensions: str = "1920x1080",
        url_prefix: str = "/uploads",
        today: Callable[[], str] = utc_today,
    ):
        self.store = store
        self.uploads_dir = Path(uploads_dir)
        self.max_upload_bytes = max_upload_bytes
        self.max_files = max_files
        self.dimensions = dimensions
        self.url_prefix = url_prefix.rstrip("/")
        self.today = today

    def validate_file(self, upload: UploadedFile) -> None:
        """Reject non-image media types and oversized payloads.

        Raises:
            InvalidArgument: If the media type is not an image type.
            PayloadTooLarge: If the file exceeds the size ceiling.
        """
        if not (upload.content_type or "").startswith("image/"):
            raise InvalidArgument("Only image files are allowed")
        if upload.size > self.max_upload_bytes:
            raise PayloadTooLarge(
                f"{upload.original_name or 'File'} exceeds the maximum size of "
                f"{format_file_size(self.max_upload_bytes)}"
            )

    def ingest(
        self,
        files: Sequence[UploadedFile],
        uploaded_by: str | None,
        metadata: Sequence[FileMetadata] | None = None,
    ) -> list[ImageRecord]:
        """Validate, store and record a submission.

        Args:
            files: Uploaded files in submission order.
            uploaded_by: Uploader name shared by every file.
            metadata: Per-file metadata aligned with *files*; missing entries
                use defaults.

        Returns:
            The created records, in submission order.

        Raises:
            InvalidArgument: No files, too many files, blank uploader, or a
                file failing :meth:`validate_file`.
            StorageFailure: A binary could not be written.
        """
        if not files:
            raise InvalidArgument("No files uploaded")
        if len(files) > self.max_files:
            raise InvalidArgument(f"At most {self.max_files} files can be uploaded at once")

        uploader = (uploaded_by or "").strip()
        if not uploader:
            raise InvalidArgument("uploadedBy is required")

        for upload in files:
            self.validate_file(upload)

        metadata = list(metadata or [])
        metadata += [FileMetadata() for _ in range(len(files) - len(metadata))]

        stored = self._write_files(files, metadata)

        records = [self._create_record(item, uploader) for item in stored]
        logger.info(f"Ingested {len(records)} image(s) uploaded by {uploader}")
        return records

    def ingest_one(
        self,
        upload: UploadedFile,
        uploaded_by: str | None,
        title: str | None = None,
        tags: RawTags = None,
    ) -> ImageRecord:
        """Single-file shorthand for :meth:`ingest`."""
        return self.ingest([upload], uploaded_by, [FileMetadata(title=title, tags=tags)])[0]

    def _write_files(
        self,
        files: Sequence[UploadedFile],
        metadata: Sequence[FileMetadata],
    ) -> list[StoredFile]:
        stored: list[StoredFile] = []
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            for upload, meta in zip(files, metadata):
                filename = generate_storage_filename(upload.original_name)
                path = self.uploads_dir / filename
                path.write_bytes(upload.data)
                stored.append(StoredFile(upload=upload, metadata=meta, filename=filename, path=path))
        except OSError as e:
            for item in stored:
                item.path.unlink(missing_ok=True)
            logger.error(f"Failed to store uploaded file: {e}")
            raise StorageFailure(f"Failed to store uploaded file: {e}") from e
        return stored

    def _create_record(self, item: StoredFile, uploader: str) -> ImageRecord:
        upload = item.upload
        return self.store.create(
            {
                "url": f"{self.url_prefix}/{item.filename}",
                "filename": item.filename,
                "original_name": upload.original_name,
                "title": resolve_title(item.metadata.title, upload.original_name),
                "status": ImageStatus.PENDING.value,
                "uploaded_by": uploader,
                "upload_date": self.today(),
                "tags": parse_tags(item.metadata.tags),
                "file_size": format_file_size(upload.size),
                "dimensions": self.dimensions,
                "mime_type": upload.content_type,
            }
        )

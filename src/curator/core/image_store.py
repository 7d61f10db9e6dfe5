"""In-memory image record store backed by a whole-document durable backend.

The store keeps every :class:`~curator.core.models.ImageRecord` in memory, in
insertion order, and rewrites the complete document through its backend after
every mutation::

    {"images": [<record>, ...], "nextId": <int>}

Loading is forgiving.  A missing document starts an empty store (and writes
it, so the file exists after first start); an unreadable or corrupt document
also starts an empty store but is only logged, never raised, so the process
keeps serving.  Records that fail validation are skipped one by one.

Writing is best-effort.  A failed write is logged and the in-memory state is
kept, marked dirty; the next successful mutation (or :meth:`ImageStore.flush`
at shutdown) brings the backend back in line.

Mutations run under a process-local lock so the merge and the document write
of one request are never interleaved with another thread's.  Nothing guards
against a second process writing the same document: the last full write wins.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from pydantic import ValidationError

from curator.core.backends import DurableBackend
from curator.core.errors import InvalidArgument, StorageFailure
from curator.core.models import (
    APPROVAL_FIELDS,
    REJECTION_FIELDS,
    ImageRecord,
    ImageStatus,
    parse_status,
)

logger = logging.getLogger(__name__)

# camelCase alias -> attribute name, so callers may use either spelling.
_FIELD_NAMES: dict[str, str] = {
    (info.alias or name): name for name, info in ImageRecord.model_fields.items()
}


def _normalize_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {_FIELD_NAMES.get(key, key): value for key, value in fields.items()}


def _opposite_fields(status: Any) -> tuple[str, ...]:
    """Fields of the other terminal decision, which a record in *status* must not carry."""
    if status == ImageStatus.APPROVED:
        return REJECTION_FIELDS
    if status == ImageStatus.REJECTED:
        return APPROVAL_FIELDS
    return ()


class ImageStore:
    """Durable mapping from integer id to :class:`ImageRecord`.

    Args:
        backend: Whole-document storage the store reads at construction and
            rewrites on every mutation.
    """

    def __init__(self, backend: DurableBackend):
        self.backend = backend
        self._images: list[ImageRecord] = []
        self._next_id = 1
        self._dirty = False
        self._lock = threading.RLock()
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        try:
            document = self.backend.read_all()
        except StorageFailure as e:
            logger.error(f"Error loading images, starting with an empty store: {e}")
            return

        if document is None:
            logger.info("No image document found, initialising an empty store")
            self._save()
            return

        raw_images = document.get("images") or []
        if not isinstance(raw_images, list):
            logger.error("Image document has no usable 'images' list, starting empty")
            raw_images = []

        seen: set[int] = set()
        for raw in raw_images:
            try:
                record = ImageRecord.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid image record: {e.error_count()} error(s)")
                continue
            if record.id in seen:
                logger.warning(f"Skipping duplicate image id {record.id}")
                continue
            seen.add(record.id)
            self._images.append(record)

        persisted_next = document.get("nextId")
        if not isinstance(persisted_next, int) or isinstance(persisted_next, bool):
            persisted_next = 1

        # Never hand out an id that is already in use, whatever nextId says.
        self._next_id = max(persisted_next, max(seen, default=0) + 1, 1)
        logger.info(f"Loaded {len(self._images)} image(s), next id {self._next_id}")

    def _save(self) -> None:
        document = {
            "images": [record.to_public() for record in self._images],
            "nextId": self._next_id,
        }
        try:
            self.backend.write_all(document)
        except StorageFailure as e:
            self._dirty = True
            logger.error(f"Error saving images, memory and disk have diverged: {e}")
            return
        self._dirty = False

    def flush(self) -> None:
        """Rewrite the document if an earlier write failed."""
        with self._lock:
            if self._dirty:
                self._save()

    @property
    def dirty(self) -> bool:
        """Whether the last write failed and the backend is behind memory."""
        return self._dirty

    @property
    def next_id(self) -> int:
        """The id the next :meth:`create` call will assign."""
        return self._next_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, image_id: int) -> ImageRecord | None:
        for record in self._images:
            if record.id == image_id:
                return record
        return None

    def list(self) -> list[ImageRecord]:
        return list(self._images)

    def list_by_status(self, status: str | ImageStatus) -> list[ImageRecord]:
        """Return records with the given status.

        Raises:
            InvalidArgument: If *status* is not a recognised status.
        """
        wanted = parse_status(status)
        return [record for record in self._images if record.status == wanted]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, data: dict[str, Any]) -> ImageRecord:
        """Assign the next id to *data*, store it and persist.

        Any ``id`` in *data* is ignored.

        Raises:
            InvalidArgument: If *data* does not form a valid record.
        """
        fields = _normalize_fields(data)
        fields.pop("id", None)

        with self._lock:
            try:
                record = ImageRecord.model_validate({**fields, "id": self._next_id})
            except ValidationError as e:
                raise InvalidArgument(f"Invalid image data: {e}") from e

            self._next_id += 1
            self._images.append(record)
            self._save()

        logger.info(f"Created image {record.id} ({record.filename})")
        return record

    def update(self, image_id: int, fields: dict[str, Any]) -> ImageRecord | None:
        """Shallow-merge *fields* into a record and persist.

        A field given as ``None`` is removed from the record.  ``id`` cannot
        be changed and is ignored if present.  A record that ends up
        ``approved`` loses its rejection fields, and one that ends up
        ``rejected`` loses its approval fields.

        Returns:
            The updated record, or ``None`` if *image_id* does not exist.

        Raises:
            InvalidArgument: If the merged record is invalid.
        """
        changes = _normalize_fields(fields)
        changes.pop("id", None)

        with self._lock:
            index = next(
                (i for i, record in enumerate(self._images) if record.id == image_id),
                None,
            )
            if index is None:
                return None

            merged = self._images[index].model_dump()
            merged.update(changes)
            merged.update(dict.fromkeys(_opposite_fields(merged.get("status"))))
            try:
                updated = ImageRecord.model_validate(merged)
            except ValidationError as e:
                raise InvalidArgument(f"Invalid image update: {e}") from e

            self._images[index] = updated
            self._save()

        return updated

    def delete(self, image_id: int) -> bool:
        """Remove a record and persist.

        Returns:
            ``True`` if the record existed, ``False`` otherwise.
        """
        return self.pop(image_id) is not None

    def pop(self, image_id: int) -> ImageRecord | None:
        """Remove a record and persist, returning the removed record or ``None``."""
        with self._lock:
            index = next(
                (i for i, record in enumerate(self._images) if record.id == image_id),
                None,
            )
            if index is None:
                return None
            removed = self._images.pop(index)
            self._save()

        logger.info(f"Deleted image {image_id}")
        return removed

"""Moderation transitions for stored images.

States are ``pending`` (initial), ``approved`` and ``rejected``.  Both
terminal states can be re-entered: an approved image may later be rejected
and the other way round, and repeating a transition simply re-stamps the date
and actor.  No transition is guarded by the current state.

Each transition writes its own metadata and removes the opposite decision's
metadata, so a record only ever carries the fields of its current decision.
No history of earlier decisions is kept.

``delete`` is not a transition: it removes the record (and its stored file)
regardless of status.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from curator.core.errors import InvalidArgument, NotFound
from curator.core.image_store import ImageStore
from curator.core.models import APPROVAL_FIELDS, REJECTION_FIELDS, ImageRecord, ImageStatus

logger = logging.getLogger(__name__)


def utc_today() -> str:
    """Return the current UTC date as ``YYYY-MM-DD``."""
    return datetime.now(timezone.utc).date().isoformat()


def _require_actor(value: str | None, field_name: str) -> str:
    actor = (value or "").strip()
    if not actor:
        raise InvalidArgument(f"{field_name} is required")
    return actor


class ModerationService:
    """Apply approve/reject/delete to records held by an :class:`ImageStore`.

    Args:
        store: Record store to read and mutate.
        uploads_dir: Content root; ``delete`` removes the record's file from
            here when given.
        today: Callable returning the date string to stamp.  Tests pin it.
    """

    def __init__(
        self,
        store: ImageStore,
        uploads_dir: Path | None = None,
        today: Callable[[], str] = utc_today,
    ):
        self.store = store
        self.uploads_dir = uploads_dir
        self.today = today

    def approve(self, image_id: int, approved_by: str) -> ImageRecord:
        """Move an image to ``approved``.

        Raises:
            InvalidArgument: If *approved_by* is blank.
            NotFound: If *image_id* does not exist.
        """
        actor = _require_actor(approved_by, "approvedBy")
        changes: dict = dict.fromkeys(REJECTION_FIELDS)
        changes.update(
            status=ImageStatus.APPROVED.value,
            approved_date=self.today(),
            approved_by=actor,
        )

        record = self.store.update(image_id, changes)
        if record is None:
            raise NotFound("Image not found")

        logger.info(f"Image {image_id} approved by {actor}")
        return record

    def reject(
        self,
        image_id: int,
        rejected_by: str,
        rejection_reason: str | None = None,
    ) -> ImageRecord:
        """Move an image to ``rejected``.

        The reason is stored as given; a missing or blank reason leaves
        ``rejectionReason`` absent.  Supplying a default is up to the caller.

        Raises:
            InvalidArgument: If *rejected_by* is blank.
            NotFound: If *image_id* does not exist.
        """
        actor = _require_actor(rejected_by, "rejectedBy")
        reason = (rejection_reason or "").strip() or None

        changes: dict = dict.fromkeys(APPROVAL_FIELDS)
        changes.update(
            status=ImageStatus.REJECTED.value,
            rejected_date=self.today(),
            rejected_by=actor,
            rejection_reason=reason,
        )

        record = self.store.update(image_id, changes)
        if record is None:
            raise NotFound("Image not found")

        logger.info(f"Image {image_id} rejected by {actor}")
        return record

    def delete(self, image_id: int) -> int:
        """Remove an image record and its stored file.

        Returns:
            The deleted id.

        Raises:
            NotFound: If *image_id* does not exist.
        """
        record = self.store.pop(image_id)
        if record is None:
            raise NotFound("Image not found")

        if self.uploads_dir is not None:
            filepath = self.uploads_dir / record.filename
            try:
                filepath.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove {filepath}: {e}")

        return image_id

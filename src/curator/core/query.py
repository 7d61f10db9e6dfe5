"""Read-side queries over the image store.

Lookups delegate to :class:`~curator.core.image_store.ImageStore`.  On top of
that this module applies two filters that compose with logical AND:

- a text search, matching a case-insensitive substring of the title or of
  any tag;
- visibility narrowing, where callers without admin privilege only ever see
  ``approved`` images, whatever status they asked for.

An empty result is always a success.
"""

from __future__ import annotations

from curator.core.errors import NotFound
from curator.core.image_store import ImageStore
from curator.core.models import ImageRecord, ImageStatus, parse_status

# Statuses anyone may see.
PUBLIC_STATUSES: frozenset[str] = frozenset({ImageStatus.APPROVED.value})


def is_visible(record: ImageRecord, privileged: bool) -> bool:
    return privileged or record.status in PUBLIC_STATUSES


def matches_search(record: ImageRecord, term: str | None) -> bool:
    """Return whether *term* occurs in the record's title or any of its tags.

    A blank term matches every record.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return True
    if needle in record.title.lower():
        return True
    return any(needle in tag.lower() for tag in record.tags)


class QueryService:
    """Answer list/get/search requests against an :class:`ImageStore`."""

    def __init__(self, store: ImageStore):
        self.store = store

    def list_all(self) -> list[ImageRecord]:
        return self.store.list()

    def list_by_status(self, status: str | ImageStatus) -> list[ImageRecord]:
        return self.store.list_by_status(status)

    def get_by_id(self, image_id: int, *, privileged: bool = True) -> ImageRecord:
        """Return one image.

        Raises:
            NotFound: If the id does not exist, or the image is not visible
                to an unprivileged caller.
        """
        record = self.store.get(image_id)
        if record is None or not is_visible(record, privileged):
            raise NotFound("Image not found")
        return record

    def search(
        self,
        term: str | None = None,
        status: str | ImageStatus | None = None,
        *,
        privileged: bool = False,
    ) -> list[ImageRecord]:
        """Filter images by status, text and caller visibility.

        Args:
            term: Optional search text.
            status: Optional status filter; ``None`` or ``"all"`` means any.
            privileged: Whether the caller is an admin.

        Raises:
            InvalidArgument: If *status* is not a recognised status.
        """
        if status is None or status == "all":
            records = self.store.list()
        else:
            records = self.store.list_by_status(parse_status(status))

        return [
            record
            for record in records
            if is_visible(record, privileged) and matches_search(record, term)
        ]

    def stats(self, *, privileged: bool = False) -> dict[str, int]:
        """Count visible images per status.

        Returns:
            Mapping with one key per status plus ``total``.
        """
        counts = dict.fromkeys((status.value for status in ImageStatus), 0)
        for record in self.search(privileged=privileged):
            counts[record.status] = counts.get(record.status, 0) + 1
        counts["total"] = sum(counts.values())
        return counts

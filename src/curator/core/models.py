"""Image record model shared by the store, the services and the API.

Records are persisted and served with camelCase keys (``originalName``,
``uploadedBy`` ...) while Python code uses snake_case attributes.  Optional
moderation fields are omitted from the serialized form when unset, so a
record carries approval metadata only while approved and rejection metadata
only while rejected.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from curator.core.errors import InvalidArgument


class ImageStatus(str, Enum):
    """Moderation status of an image."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


STATUS_VALUES: tuple[str, ...] = tuple(status.value for status in ImageStatus)

APPROVAL_FIELDS: tuple[str, ...] = ("approved_date", "approved_by")
REJECTION_FIELDS: tuple[str, ...] = ("rejected_date", "rejected_by", "rejection_reason")


def parse_status(value: str | ImageStatus) -> ImageStatus:
    """Convert a raw status value into :class:`ImageStatus`.

    Raises:
        InvalidArgument: If *value* is not one of the three statuses.
    """
    try:
        return ImageStatus(value)
    except ValueError as e:
        raise InvalidArgument("Invalid status") from e


class ImageRecord(BaseModel):
    """A stored image and its moderation metadata.

    Attributes:
        id: Store-assigned identifier, unique and never reused.
        url: Path reference into the uploads content root.
        filename: Generated storage filename.
        original_name: Filename as supplied by the uploader.
        title: Display title.
        status: Current moderation status.
        uploaded_by: Name given by the uploader.
        upload_date: ``YYYY-MM-DD`` creation date.
        approved_date: Date of the current approval, if approved.
        approved_by: Approving admin, if approved.
        rejected_date: Date of the current rejection, if rejected.
        rejected_by: Rejecting admin, if rejected.
        rejection_reason: Optional reason for the current rejection.
        tags: Ordered tag strings.
        file_size: Human-readable size such as ``"1.5 MB"``.
        dimensions: Best-effort dimensions string.
        mime_type: Declared media type of the upload.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    id: int = Field(..., ge=1)
    url: str
    filename: str
    original_name: str
    title: str
    status: ImageStatus = ImageStatus.PENDING
    uploaded_by: str
    upload_date: str
    approved_date: str | None = None
    approved_by: str | None = None
    rejected_date: str | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    tags: list[str] = Field(default_factory=list)
    file_size: str
    dimensions: str
    mime_type: str

    def to_public(self) -> dict:
        """Serialize with camelCase keys, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

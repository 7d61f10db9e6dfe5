"""Exception types raised by the gallery core.

The HTTP layer maps each type to a status code in a single exception
handler, so core code raises these instead of ``HTTPException``.  Messages of
``InvalidArgument``, ``NotFound`` and ``Unauthorized`` are meant to be shown
to the caller as-is; ``StorageFailure`` messages are logged server-side and
replaced by a generic message at the boundary.
"""


class GalleryError(Exception):
    """Base class for all gallery errors."""

    pass


class InvalidArgument(GalleryError):
    """Malformed or missing input: required field, id format, status value."""

    pass


class NotFound(GalleryError):
    """The requested image id does not exist."""

    pass


class Unauthorized(GalleryError):
    """The caller lacks the privilege the operation requires."""

    pass


class StorageFailure(GalleryError):
    """Reading or writing durable storage failed."""

    pass


class PayloadTooLarge(InvalidArgument):
    """An uploaded file exceeds the size ceiling."""

    pass

"""Pydantic request models for the Curator API.

JSON bodies use the camelCase names the frontend sends (``approvedBy``,
``rejectionReason``); Python code reads the snake_case attributes.

Models
------
LoginRequest
    Payload for ``POST /api/auth/login``.
ApproveRequest
    Payload for ``POST /api/admin/images/{id}/approve``.
RejectRequest
    Payload for ``POST /api/admin/images/{id}/reject``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_CamelModel):
    """Request body for ``POST /api/auth/login``.

    Both fields default to empty so that a missing credential is reported by
    the access gate as a 400 with the same message as a blank one.
    """

    username: str = Field(default="", description="Admin username.")
    password: str = Field(default="", description="Admin password.")


class ApproveRequest(_CamelModel):
    """Request body for the approve endpoint.

    Attributes:
        approved_by: Name of the approving admin.  Required; blank values
            are rejected by the moderation service.
    """

    approved_by: str | None = Field(
        default=None,
        description="Name of the approving admin.",
    )


class RejectRequest(_CamelModel):
    """Request body for the reject endpoint.

    Attributes:
        rejected_by: Name of the rejecting admin.  Required.
        rejection_reason: Optional reason; the configured default reason is
            stored when omitted.
    """

    rejected_by: str | None = Field(
        default=None,
        description="Name of the rejecting admin.",
    )
    rejection_reason: str | None = Field(
        default=None,
        description="Reason shown to the uploader.",
    )

"""Curator — FastAPI Application.

This module builds the FastAPI ``app``, defines every REST route, and
provides the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~curator.core.config.CuratorConfig`
  (``CURATOR_*`` environment variables).
- **Services** (record store, query, moderation, ingestion, access gate) are
  built once per process in the application lifespan and kept on
  ``app.state``.  Nothing is a module-level singleton, so tests build a fresh
  app around a temporary configuration with :func:`create_app`.
- **Persistence** uses a single ``images.json`` document written through
  :class:`~curator.core.backends.JsonFileBackend`.
- **Uploaded files** are served from the uploads directory at ``/uploads``.
- **Errors** raised by the core are turned into the JSON envelope
  ``{"success": false, "error": "..."}`` by one exception handler.

Endpoints
---------
========  ==================================  ==============================
Method    Path                                Purpose
========  ==================================  ==============================
POST      ``/api/auth/login``                 Admin login, returns token
GET       ``/api/images``                     List (``status``, ``q``)
GET       ``/api/images/status/{status}``     List by status
GET       ``/api/images/{id}``                Single image
POST      ``/api/upload``                     Upload one image
POST      ``/api/upload/multiple``            Upload several images
POST      ``/api/admin/images/{id}/approve``  Approve (admin)
POST      ``/api/admin/images/{id}/reject``   Reject (admin)
DELETE    ``/api/admin/images/{id}``          Delete (admin)
GET       ``/api/stats``                      Counts per status
GET       ``/api/ping``                       Liveness check
========  ==================================  ==============================

Anonymous callers only ever see approved images; a request carrying the
admin bearer token sees everything.

Usage
-----
CLI (installed entry point)::

    curator

Direct invocation::

    python -m curator.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import UploadFile as StarletteUploadFile

from curator import __version__
from curator.api.models import ApproveRequest, LoginRequest, RejectRequest
from curator.core.access import AccessGate
from curator.core.backends import JsonFileBackend
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
from curator.core.models import ImageRecord
from curator.core.moderation import ModerationService
from curator.core.query import QueryService

logger = logging.getLogger(__name__)

UPLOADS_URL = "/uploads"

# Checked in order, so subclasses must precede their bases.
_ERROR_STATUS: tuple[tuple[type[GalleryError], int], ...] = (
    (PayloadTooLarge, 413),
    (InvalidArgument, 400),
    (Unauthorized, 401),
    (NotFound, 404),
    (StorageFailure, 500),
)


# ---------------------------------------------------------------------------
# Response helpers.
# ---------------------------------------------------------------------------


def _ok(data) -> dict:
    return {"success": True, "data": data}


def _records(records: list[ImageRecord]) -> list[dict]:
    return [record.to_public() for record in records]


def _parse_id(raw: str) -> int:
    """Parse a path id, raising :class:`InvalidArgument` when it is not an integer."""
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidArgument("Invalid image ID") from e


async def _read_upload(upload: StarletteUploadFile, limit: int) -> UploadedFile:
    # Read one byte past the limit so oversize files are detected without
    # buffering all of them.
    data = await upload.read(limit + 1)
    return UploadedFile(
        original_name=upload.filename or "",
        content_type=upload.content_type or "",
        data=data,
    )


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


BearerCredentials = Annotated[
    HTTPAuthorizationCredentials | None, Depends(HTTPBearer(auto_error=False))
]


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials else None


def is_admin(request: Request, credentials: BearerCredentials = None) -> bool:
    """Whether the request carries the admin bearer token."""
    return request.app.state.gate.is_admin(_token(credentials))


def require_admin(request: Request, credentials: BearerCredentials = None) -> None:
    """Reject the request with 401 unless it carries the admin token."""
    request.app.state.gate.require_admin(_token(credentials))


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(cfg: CuratorConfig | None = None) -> FastAPI:
    """Build the FastAPI application for *cfg* (the global config by default).

    Args:
        cfg: Configuration supplying paths, limits and admin credentials.

    Returns:
        A configured :class:`FastAPI` instance.  Services are created when
        the lifespan starts.
    """
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the services on startup; flush the store on shutdown."""
        # --- Startup -------------------------------------------------------
        store = ImageStore(JsonFileBackend(cfg.images_db_path))
        app.state.store = store
        app.state.query = QueryService(store)
        app.state.moderation = ModerationService(store, cfg.uploads_dir)
        app.state.ingestion = IngestionPipeline(
            store,
            cfg.uploads_dir,
            max_upload_bytes=cfg.max_upload_bytes,
            max_files=cfg.max_files_per_upload,
            dimensions=cfg.placeholder_dimensions,
            url_prefix=UPLOADS_URL,
        )
        app.state.gate = AccessGate(cfg.admin_username, cfg.admin_password, cfg.admin_token)
        logger.info(f"Image store ready at {cfg.images_db_path}")

        yield

        # --- Shutdown ------------------------------------------------------
        store.flush()
        logger.info("Image store closed.")

    app = FastAPI(
        title="Curator",
        description="Moderation-gated image gallery API.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(UPLOADS_URL, StaticFiles(directory=str(cfg.uploads_dir)), name="uploads")

    # -----------------------------------------------------------------------
    # Error handling.
    # -----------------------------------------------------------------------

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(request: Request, exc: GalleryError) -> JSONResponse:
        status_code = next(
            (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)),
            500,
        )
        message = str(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
            message = "Internal storage error"
        return JSONResponse(status_code=status_code, content={"success": False, "error": message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"success": False, "error": message})

    # -----------------------------------------------------------------------
    # Auth.
    # -----------------------------------------------------------------------

    @app.post("/api/auth/login")
    async def login(req: LoginRequest, request: Request) -> dict:
        """Exchange the admin credentials for the admin token.

        Raises:
            InvalidArgument: 400 if a credential is missing.
            Unauthorized: 401 for wrong credentials.
        """
        token = request.app.state.gate.authenticate(req.username, req.password)
        return _ok({"token": token})

    # -----------------------------------------------------------------------
    # Public image routes.
    # -----------------------------------------------------------------------

    @app.get("/api/images")
    async def list_images(
        request: Request,
        admin: Annotated[bool, Depends(is_admin)],
        status: str | None = None,
        q: str | None = None,
    ) -> dict:
        """List images, optionally filtered by status and search text.

        Anonymous callers receive approved images only.
        """
        query: QueryService = request.app.state.query
        return _ok(_records(query.search(q, status, privileged=admin)))

    @app.get("/api/images/status/{status}")
    async def list_images_by_status(
        status: str,
        request: Request,
        admin: Annotated[bool, Depends(is_admin)],
    ) -> dict:
        """List images with the given status (narrowed for anonymous callers)."""
        query: QueryService = request.app.state.query
        return _ok(_records(query.search(status=status, privileged=admin)))

    @app.get("/api/images/{image_id}")
    async def get_image(
        image_id: str,
        request: Request,
        admin: Annotated[bool, Depends(is_admin)],
    ) -> dict:
        """Return one image; unapproved images are 404 for anonymous callers."""
        query: QueryService = request.app.state.query
        return _ok(query.get_by_id(_parse_id(image_id), privileged=admin).to_public())

    @app.get("/api/stats")
    async def get_stats(request: Request, admin: Annotated[bool, Depends(is_admin)]) -> dict:
        """Return counts per status over the images visible to the caller."""
        query: QueryService = request.app.state.query
        return _ok(query.stats(privileged=admin))

    # -----------------------------------------------------------------------
    # Uploads.
    # -----------------------------------------------------------------------

    @app.post("/api/upload")
    async def upload_image(
        request: Request,
        image: Annotated[UploadFile | None, File(description="Image file")] = None,
        title: Annotated[str | None, Form()] = None,
        tags: Annotated[str | None, Form(description="JSON-encoded list of tags")] = None,
        uploaded_by: Annotated[str | None, Form(alias="uploadedBy")] = None,
    ) -> dict:
        """Upload a single image; it is stored as ``pending``.

        Raises:
            InvalidArgument: 400 when no file, no uploader, or not an image.
            PayloadTooLarge: 413 when the file exceeds the size ceiling.
        """
        if image is None:
            raise InvalidArgument("No file uploaded")

        pipeline: IngestionPipeline = request.app.state.ingestion
        upload = await _read_upload(image, pipeline.max_upload_bytes)
        record = pipeline.ingest_one(upload, uploaded_by, title=title, tags=tags)
        return _ok(record.to_public())

    @app.post("/api/upload/multiple")
    async def upload_multiple_images(request: Request) -> dict:
        """Upload several images in one multipart request.

        Form fields: ``images`` (repeated file field), ``uploadedBy``, and
        per-file ``title_<i>`` / ``tags_<i>`` where ``i`` is the zero-based
        position of the file.
        """
        pipeline: IngestionPipeline = request.app.state.ingestion
        form = await request.form()

        files: list[UploadedFile] = []
        metadata: list[FileMetadata] = []
        for index, item in enumerate(form.getlist("images")):
            if not isinstance(item, StarletteUploadFile):
                raise InvalidArgument("images must be file uploads")
            files.append(await _read_upload(item, pipeline.max_upload_bytes))
            metadata.append(
                FileMetadata(
                    title=_form_text(form.get(f"title_{index}")),
                    tags=_form_text(form.get(f"tags_{index}")),
                )
            )

        records = pipeline.ingest(files, _form_text(form.get("uploadedBy")), metadata)
        return _ok(_records(records))

    # -----------------------------------------------------------------------
    # Admin routes.
    # -----------------------------------------------------------------------

    @app.post("/api/admin/images/{image_id}/approve", dependencies=[Depends(require_admin)])
    async def approve_image(image_id: str, req: ApproveRequest, request: Request) -> dict:
        """Approve an image.

        Raises:
            InvalidArgument: 400 for a bad id or missing ``approvedBy``.
            NotFound: 404 if the image does not exist.
        """
        moderation: ModerationService = request.app.state.moderation
        record = moderation.approve(_parse_id(image_id), req.approved_by)
        return _ok(record.to_public())

    @app.post("/api/admin/images/{image_id}/reject", dependencies=[Depends(require_admin)])
    async def reject_image(image_id: str, req: RejectRequest, request: Request) -> dict:
        """Reject an image, storing the default reason when none is given.

        Raises:
            InvalidArgument: 400 for a bad id or missing ``rejectedBy``.
            NotFound: 404 if the image does not exist.
        """
        moderation: ModerationService = request.app.state.moderation
        reason = (req.rejection_reason or "").strip() or cfg.default_rejection_reason
        record = moderation.reject(_parse_id(image_id), req.rejected_by, reason)
        return _ok(record.to_public())

    @app.delete("/api/admin/images/{image_id}", dependencies=[Depends(require_admin)])
    async def delete_image(image_id: str, request: Request) -> dict:
        """Delete an image record and its file.

        Raises:
            NotFound: 404 if the image does not exist.
        """
        moderation: ModerationService = request.app.state.moderation
        deleted = moderation.delete(_parse_id(image_id))
        return _ok({"id": deleted})

    # -----------------------------------------------------------------------
    # Misc.
    # -----------------------------------------------------------------------

    @app.get("/api/ping")
    async def ping() -> dict:
        return {"message": cfg.ping_message}

    return app


def _form_text(value) -> str | None:
    """Return a form value if it is text, ``None`` for files or absent fields."""
    return value if isinstance(value, str) else None


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~curator.core.config.config` (which
    loads from ``CURATOR_SERVER_HOST`` and ``CURATOR_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:8080``.

    This function is registered as the ``curator`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "curator.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()

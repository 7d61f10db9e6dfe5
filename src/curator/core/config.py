"""Configuration management for the Curator image gallery.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the CURATOR_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (CURATOR_* prefix)
2. .env file in the project root
3. Default values defined in CuratorConfig

Example .env file:
    CURATOR_DATA_DIR=/var/lib/curator
    CURATOR_UPLOADS_DIR=/var/lib/curator/uploads
    CURATOR_MAX_UPLOAD_BYTES=5242880
    CURATOR_ADMIN_PASSWORD=change-me

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The API lifespan builds the record store and services from it, so tests can
construct their own ``CuratorConfig`` pointing at temporary directories and
pass it to :func:`curator.api.main.create_app`.

Directory Management
--------------------
The configuration automatically creates required directories on initialization:
- data_dir: holds the ``images.json`` document
- uploads_dir: content root for uploaded image binaries
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CuratorConfig(BaseSettings):
    """Main configuration for the Curator gallery.

    Attributes
    ----------
    Paths:
        data_dir : Path
            Directory holding the JSON record document
        uploads_dir : Path
            Content root that uploaded binaries are written to
        images_db_name : str
            File name of the record document inside ``data_dir``

    Upload limits:
        max_upload_bytes : int
            Per-file size ceiling (10 MiB)
        max_files_per_upload : int
            Maximum number of files in one multi-file submission

    Moderation:
        admin_username, admin_password : str
            Static admin credentials checked by the access gate
        admin_token : str
            Opaque token handed out on successful login
        default_rejection_reason : str
            Reason stored when an admin rejects without giving one
        placeholder_dimensions : str
            Dimensions string recorded for every upload

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        cors_origins : list[str]
            Allowed CORS origins
        ping_message : str
            Body of ``GET /api/ping``

    Notes
    -----
    - Directories are created automatically if they don't exist
    - The admin credentials are a static check, not a security design
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CURATOR_",
        case_sensitive=False,
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the images.json document",
    )
    uploads_dir: Path = Field(
        default=Path("public") / "uploads",
        description="Content root for uploaded image files",
    )
    images_db_name: str = Field(
        default="images.json",
        description="File name of the record document inside data_dir",
    )

    # Upload limits
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum size of a single uploaded file in bytes",
        ge=1,
    )
    max_files_per_upload: int = Field(
        default=10,
        description="Maximum number of files accepted by a multi-file upload",
        ge=1,
        le=100,
    )

    # Moderation
    admin_username: str = Field(default="admin")
    admin_password: str = Field(default="password123")
    admin_token: str = Field(
        default="demo-admin-token",
        description="Static bearer token returned on successful admin login",
    )
    default_rejection_reason: str = Field(
        default="Content policy violation",
        description="Reason recorded when an admin rejects without one",
    )
    placeholder_dimensions: str = Field(
        default="1920x1080",
        description="Dimensions string stored for uploads (not inspected)",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8080,
        description="Server port",
        ge=1024,
        le=65535,
    )
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    ping_message: str = Field(default="ping")

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def images_db_path(self) -> Path:
        """Full path of the JSON record document."""
        return self.data_dir / self.images_db_name


# Global configuration instance
# Loads values from environment variables (CURATOR_* prefix) and .env file.
config = CuratorConfig()

"""
Configuration management for the Image Manager service.

Environment variable loading precedence:
1. Real environment variables (exported in shell) - highest priority
2. `.env.local` file (for local development only, gitignored)
3. Built-in defaults - lowest priority

Note: `.env.local` is intended for local development only.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Filesystem layout
    PUBLIC_ROOT: Path = Field(default=Path("public"), description="Root that public paths are relative to")
    ERROR_IMAGE_DIR: str = Field(
        default="vendor/image-manager", description="Placeholder image directory, relative to PUBLIC_ROOT"
    )
    ERROR_IMAGE_FILENAME: str = Field(default="error.jpg", description="Placeholder image filename")
    UPLOAD_DIR: str = Field(default="uploads", description="Upload directory, relative to PUBLIC_ROOT")

    # Derivative generation
    DEFAULT_QUALITY: int = Field(default=90, ge=0, le=100, description="Encoder quality for derivatives")
    CACHE_FILE_MODE: int = Field(default=0o777, description="Permission bits for written derivatives")
    CACHE_DIR_MODE: int = Field(default=0o777, description="Permission bits for created cache directories")
    SUPPORTED_OUTPUT_FORMATS: List[str] = Field(default=["gif", "jpg", "jpeg", "png", "webp"])
    MAX_IMAGE_PIXELS: Optional[int] = Field(
        default=None, description="Pillow decompression bomb limit (None keeps Pillow's default)"
    )

    # File upload limits
    MAX_UPLOAD_MB: int = Field(default=20, description="Maximum upload size in MB")
    MAX_UPLOAD_SIZE_BYTES: int = Field(default=20 * 1024 * 1024, description="Maximum upload size in bytes")

    # Allowed MIME types for uploads
    ALLOWED_MIME_TYPES: List[str] = Field(
        default=["image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"]
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: Path = Field(default=Path("logs"), description="Directory for the application log file")
    TRACE_CALLS: bool = Field(default=False, description="Log entry/exit of traced functions")

    model_config = SettingsConfigDict(
        # Precedence: shell env vars > .env.local > .env > defaults
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings and compute derived fields."""
        super().__init__(**kwargs)
        # Compute MAX_UPLOAD_SIZE_BYTES from MAX_UPLOAD_MB
        self.MAX_UPLOAD_SIZE_BYTES = self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def error_image_path(self) -> Path:
        """Absolute path of the placeholder image used when a source can't be served."""
        return (self.PUBLIC_ROOT / self.ERROR_IMAGE_DIR / self.ERROR_IMAGE_FILENAME).resolve()

    @property
    def upload_path(self) -> Path:
        """Absolute path of the upload directory."""
        return (self.PUBLIC_ROOT / self.UPLOAD_DIR).resolve()


settings = Settings()

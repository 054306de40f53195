"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
the listen port, the upload size limit, the staging directory used for
temporary conversion artifacts and the ogr2ogr invocation parameters.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from geoconvert.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.max_upload_bytes)

    Environment variables can override defaults:
        >>> PORT=8080
        >>> MAX_UPLOAD_MB=200
        >>> STORAGE_DIR=/custom/path/uploads
"""

import functools
import pathlib
import tempfile

import pydantic
import pydantic_settings


def _default_storage_dir() -> pathlib.Path:
    return pathlib.Path(tempfile.gettempdir()) / "geometry-converter-uploads"


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.
    The staging directory is created on initialization via
    ensure_directories().

    Attributes:
        host: Interface the HTTP server binds to.
        port: Listen port (``PORT``, default 5000).
        max_upload_mb: Maximum accepted payload size in megabytes
            (``MAX_UPLOAD_MB``, default 50). Applies to JSON and binary
            requests alike.
        storage_dir: Directory for staged inputs and converted outputs.
        conversion_timeout_seconds: Upper bound for one ogr2ogr run.
        ogr2ogr_binary: Executable name or path of the conversion tool.
        log_level: Minimum level emitted by the log sink.

    Example:
        Create settings with custom values:
            >>> settings = Settings(
            ...     storage_dir=Path("/custom/uploads"),
            ...     max_upload_mb=10,
            ... )
            >>> settings.ensure_directories()
    """

    host: str = "0.0.0.0"
    port: int = 5000
    max_upload_mb: int = pydantic.Field(default=50, gt=0)
    storage_dir: pathlib.Path = pydantic.Field(
        default_factory=_default_storage_dir
    )
    conversion_timeout_seconds: float = pydantic.Field(default=60.0, gt=0)
    ogr2ogr_binary: str = "ogr2ogr"
    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def max_upload_bytes(self) -> int:
        """Upload limit converted to bytes."""
        return self.max_upload_mb * 1024 * 1024

    def ensure_directories(self) -> None:
        """Create the staging directory if it does not already exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance with directories initialized.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. The staging directory is created on
    first call. Subsequent calls return the same cached instance.

    Returns:
        Settings instance with all configuration values populated and
        the staging directory ensured to exist.
    """
    settings = Settings()
    settings.ensure_directories()
    return settings

"""
clipshelf.config
Configuration and settings management for the clipboard store.
Overview:
- Pydantic-settings classes for the store and the logging stack.
- Each settings class inherits from FactoryBaseSettings and supports environment
    variable overrides via Field aliases.
Contents:
- StoreSettings:
    Location and connection options for the SQLite store, including an
    in-memory switch for tests and previews, and the encryption key file.
- LoggingSettings:
    Log level, JSON log directory, and the debug log file with its optional
    rotation cap.
- get_settings:
    Cached factory for settings instances (re-exported).
Design Notes:
- Defaults allow zero-configuration startup in development.
- Path fields accept strings or Path objects.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator

from clipshelf.config.base import APP_ENV, APP_ROOT, DATA_DIR, AppEnv  # noqa: F401
from clipshelf.config.factory import FactoryBaseSettings
from clipshelf.config.factory import get_settings  # noqa: F401  This is used externally


class StoreSettings(FactoryBaseSettings):
    """
    Clipboard store configuration settings.
    """

    data_dir: Path = Field(
        default=DATA_DIR,
        alias="CLIPSHELF_DATA_DIR",
        description="Directory holding the durable SQLite store.",
    )
    store_name: str = Field(
        default="ClipboardManager",
        alias="CLIPSHELF_STORE_NAME",
        description="Base name of the store file (without extension).",
    )
    in_memory: bool = Field(
        default=False,
        alias="CLIPSHELF_IN_MEMORY",
        description="Use an ephemeral memory-only store. No file is touched.",
    )
    busy_timeout: float = Field(
        default=15.0,
        alias="CLIPSHELF_BUSY_TIMEOUT",
        description="Seconds SQLite waits on a locked database before failing.",
    )
    echo_sql: bool = Field(
        default=False,
        alias="CLIPSHELF_ECHO_SQL",
        description="Echo emitted SQL through the sqlalchemy.engine logger.",
    )
    encryption_key_file: Optional[Path] = Field(
        default=None,
        alias="CLIPSHELF_ENCRYPTION_KEY",
        description="AES-256 key file for encrypted items. Defaults to data_dir/encryption.key.",
    )

    @property
    def database_path(self) -> Path:
        """Path of the durable SQLite file."""
        return self.data_dir / f"{self.store_name}.sqlite"

    @property
    def encryption_key_path(self) -> Path:
        """Path of the key used to encrypt item content."""
        return self.encryption_key_file or self.data_dir / "encryption.key"


class LoggingSettings(FactoryBaseSettings):
    """
    Logging configuration settings.
    """

    log_level: str = Field(
        default="info",
        alias="CLIPSHELF_LOG_LEVEL",
        description="Log level for the clipshelf logger.",
    )
    log_dir: Path = Field(
        default=APP_ROOT / "logs",
        alias="CLIPSHELF_LOG_DIR",
        description="Directory for the JSON-lines application log.",
    )
    console: bool = Field(
        default=True,
        alias="CLIPSHELF_LOG_CONSOLE",
        description="Also log to stderr.",
    )
    debug_log_path: Path = Field(
        default=Path("/tmp/clipboard_monitor_debug.txt"),
        alias="CLIPSHELF_DEBUG_LOG",
        description="Plain-text debug log written by debug_log().",
    )
    debug_log_max_bytes: int = Field(
        default=0,
        alias="CLIPSHELF_DEBUG_LOG_MAX_BYTES",
        description="Rotate the debug log past this size. 0 disables rotation.",
    )
    debug_log_backup_count: int = Field(
        default=3,
        alias="CLIPSHELF_DEBUG_LOG_BACKUPS",
        description="Rotated debug log files to keep.",
    )

    @property
    def log_file(self) -> Path:
        """JSON-lines application log file."""
        return self.log_dir / "clipshelf.jsonl"

    @field_validator("log_level", mode="before")
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


__all__ = [
    "APP_ENV",
    "APP_ROOT",
    "DATA_DIR",
    "AppEnv",
    "FactoryBaseSettings",
    "LoggingSettings",
    "StoreSettings",
    "get_settings",
]

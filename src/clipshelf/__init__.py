"""
clipshelf
Persistence core of a clipboard history application.

This package stores clipboard items in a local SQLite database through
SQLAlchemy, describes the closed set of item categories, and writes a
best-effort debug log. Settings are loaded with pydantic-settings from
environment variables, .env and YAML files.
"""

from .config import LoggingSettings, StoreSettings, get_settings  # noqa: F401
from .errors import (  # noqa: F401
    ClipshelfError,
    EncryptionError,
    StoreAlreadyOpenError,
    StoreClosedError,
    StoreLoadError,
    UnknownCategoryError,
)
from .logger import configure_logging, debug_log  # noqa: F401
from .encryption import EncryptionHelper  # noqa: F401
from .models import (  # noqa: F401
    CategoryDescription,
    ClipboardCategory,
    ClipboardItem,
    ClipboardItemEntity,
    ItemType,
    describe,
)
from .persistence import PersistenceController, SaveStatus  # noqa: F401
from .app import ClipshelfApp  # noqa: F401

__version__ = "0.1.0"

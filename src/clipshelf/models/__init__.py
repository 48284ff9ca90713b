"""
clipshelf.models
Persistence and domain models of the clipboard store.
Contents:
- Entity Models:
    - ClipboardItemEntity: SQLAlchemy entity for one captured clipboard item.
- Domain Models:
    - ClipboardItem: Pydantic mirror of ClipboardItemEntity.
    - CategoryDescription: Display metadata of a category.
- Enums and lookups:
    - ClipboardCategory, ItemType, describe().
"""

from .category import CategoryDescription, ClipboardCategory, describe  # noqa: F401
from .clipboard_item import ClipboardItem, ClipboardItemEntity, ItemType  # noqa: F401


entities = ["ClipboardItemEntity"]
"""
Entity classes for database persistence.
"""

models = [
    "CategoryDescription",
    "ClipboardCategory",
    "ClipboardItem",
    "ItemType",
    "describe",
]
"""
Pydantic model classes and enums for application logic and I/O.
"""

__all__ = entities + models

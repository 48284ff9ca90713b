# region Docstring
"""
clipshelf.models.clipboard_item
Persistence and domain models for captured clipboard items.
Overview:
- Provides the SQLAlchemy entity persisted by the store and a Pydantic model
    mirroring it for safe I/O, validation and serialization.
Contents:
- ItemType:
    Integer discriminant of the captured payload: TEXT=0, IMAGE=1, URL=2.
- SQLAlchemy entities:
    - ClipboardItemEntity:
        One clipboard capture: UUID identity, capture timestamp, plain or
        encrypted content, category code, item type, optional image bytes,
        source application, OCR text, tags, favorite flag, embedding bytes,
        project tag, context score, related item ids and access tracking.
        Includes the clipboard_category accessor, display_content() and the
        .model property.
- Pydantic models:
    - ClipboardItem:
        Domain model of a clipboard item. Binary columns are left out.
Design notes:
- `category` stores the integer code of ClipboardCategory; unknown codes read
    back as TEXT through clipboard_category.
- `tags` and `related_item_ids` are comma separated strings; tag_list and
    related_ids split them.
"""
# endregion
# region Imports
import enum
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import (
    Boolean,
    Float,
    Integer,
    LargeBinary,
    SmallInteger,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from clipshelf.database import Base, UTCDateTime
from clipshelf.encryption import default_helper
from clipshelf.models.category import ClipboardCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# endregion
# region Enum
class ItemType(enum.IntEnum):
    """Kind of payload that was captured."""

    TEXT = 0
    IMAGE = 1
    URL = 2


ENCRYPTED_PLACEHOLDER = "[Encrypted]"


# endregion
# region SQLAlchemy Model
class ClipboardItemEntity(Base):
    """
    Model representing one captured clipboard item.
    Attributes:
        id (uuid.UUID): Primary key.
        timestamp (datetime): When the item was captured.
        content (Optional[str]): Plain text content; None when encrypted or image-only.
        type (int): ItemType code.
        category (int): ClipboardCategory code (0-6).
        image_data (Optional[bytes]): PNG bytes for image captures.
        encrypted_content (Optional[bytes]): Ciphertext when is_encrypted is set.
        is_encrypted (bool): Whether the content is stored encrypted.
        source_app (Optional[str]): Frontmost application at capture time.
        ocr_text (Optional[str]): Text recognized in image captures.
        tags (Optional[str]): Comma separated user tags.
        is_favorite (bool): Whether the item is pinned as favorite.
        embedding (Optional[bytes]): Serialized embedding vector.
        project_tag (Optional[str]): Detected project context.
        context_score (float): Relevance score in the current context.
        related_item_ids (Optional[str]): Comma separated ids of related items.
        last_accessed_at (Optional[datetime]): Last time the item was pasted.
        access_count (int): Number of times the item was pasted.
    """

    __tablename__ = "clipboard_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=_utcnow, index=True
    )
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    type: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    category: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=0, index=True
    )
    image_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    encrypted_content: Mapped[Optional[bytes]] = mapped_column(
        LargeBinary, nullable=True
    )
    is_encrypted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_app: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    ocr_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    embedding: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    project_tag: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    context_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    related_item_ids: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    access_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ClipboardItem(id={self.id}, category={self.category}, timestamp={self.timestamp})>"

    @property
    def clipboard_category(self) -> ClipboardCategory:
        return ClipboardCategory.coerce(self.category)

    @clipboard_category.setter
    def clipboard_category(self, value: ClipboardCategory) -> None:
        self.category = int(ClipboardCategory.from_code(value))

    @property
    def item_type(self) -> ItemType:
        try:
            return ItemType(self.type)
        except (TypeError, ValueError):
            return ItemType.TEXT

    @property
    def tag_list(self) -> list[str]:
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    @property
    def related_ids(self) -> list[str]:
        if not self.related_item_ids:
            return []
        return [i.strip() for i in self.related_item_ids.split(",") if i.strip()]

    def display_content(
        self, decrypt: Optional[Callable[[bytes], Optional[str]]] = None
    ) -> str:
        """
        Text to show for this item.

        Encrypted items are passed through `decrypt`, by default the helper for
        the configured key file. When it returns None the "[Encrypted]"
        placeholder is shown.
        """
        if self.is_encrypted and self.encrypted_content is not None:
            if decrypt is None:
                decrypt = default_helper().decrypt
            text = decrypt(self.encrypted_content)
            return ENCRYPTED_PLACEHOLDER if text is None else text
        return self.content or ""

    def mark_accessed(self) -> None:
        self.access_count = (self.access_count or 0) + 1
        self.last_accessed_at = _utcnow()

    @property
    def model(self) -> "ClipboardItem":
        return ClipboardItem(
            id=self.id,
            timestamp=self.timestamp,
            content=self.content,
            type=self.item_type,
            category=self.clipboard_category,
            is_encrypted=self.is_encrypted,
            has_image=self.image_data is not None,
            source_app=self.source_app,
            ocr_text=self.ocr_text,
            tags=self.tag_list,
            is_favorite=self.is_favorite,
            project_tag=self.project_tag,
            context_score=self.context_score,
            related_item_ids=self.related_ids,
            last_accessed_at=self.last_accessed_at,
            access_count=self.access_count,
        )


# endregion
# region Pydantic Model
class ClipboardItem(BaseModel):
    id: Optional[uuid.UUID] = Field(None, description="Unique id of the item")
    timestamp: Optional[datetime] = Field(None, description="When the item was captured")
    content: Optional[str] = Field(None, description="Plain text content")
    type: ItemType = Field(ItemType.TEXT, description="Kind of captured payload")
    category: ClipboardCategory = Field(
        ClipboardCategory.TEXT, description="Category of the item"
    )
    is_encrypted: bool = Field(False, description="Whether the content is encrypted")
    has_image: bool = Field(False, description="Whether image bytes are stored")
    source_app: Optional[str] = Field(None, description="Application the item came from")
    ocr_text: Optional[str] = Field(None, description="Text recognized in the image")
    tags: list[str] = Field(default_factory=list, description="User tags")
    is_favorite: bool = Field(False, description="Whether the item is a favorite")
    project_tag: Optional[str] = Field(None, description="Detected project context")
    context_score: float = Field(0.0, description="Relevance in the current context")
    related_item_ids: list[str] = Field(
        default_factory=list, description="Ids of related items"
    )
    last_accessed_at: Optional[datetime] = Field(
        None, description="Last time the item was pasted"
    )
    access_count: int = Field(0, description="Number of times the item was pasted")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "id": "6f1c2f64-6f0e-4a4c-9d59-0f7f5b8f5d11",
                    "timestamp": "2025-12-31T12:00:00Z",
                    "content": "https://example.com",
                    "type": 2,
                    "category": 2,
                    "is_encrypted": False,
                    "has_image": False,
                    "source_app": "Safari",
                    "tags": ["work"],
                    "is_favorite": True,
                    "access_count": 3,
                }
            ]
        },
    )

    @property
    def entity(self) -> ClipboardItemEntity:
        return ClipboardItemEntity(
            id=self.id if self.id is not None else uuid.uuid4(),
            timestamp=self.timestamp if self.timestamp is not None else _utcnow(),
            content=self.content,
            type=int(self.type),
            category=int(self.category),
            is_encrypted=self.is_encrypted,
            source_app=self.source_app,
            ocr_text=self.ocr_text,
            tags=",".join(self.tags) or None,
            is_favorite=self.is_favorite,
            project_tag=self.project_tag,
            context_score=self.context_score,
            related_item_ids=",".join(self.related_item_ids) or None,
            last_accessed_at=self.last_accessed_at,
            access_count=self.access_count,
        )


# endregion

__all__ = ["ClipboardItem", "ClipboardItemEntity", "ItemType"]

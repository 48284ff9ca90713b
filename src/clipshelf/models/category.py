# region Docstring
"""
clipshelf.models.category
Closed set of clipboard item categories and their display metadata.
Overview:
- ClipboardCategory is an IntEnum whose values are the integer codes stored in
    the `category` column of clipboard items.
- CategoryDescription is the Pydantic model returned by describe(), carrying the
    display name, icon identifier (SF Symbol name) and color name.
Contents:
- ClipboardCategory: text=0, code=1, link=2, email=3, phone=4, color=5, image=6.
- CategoryDescription: name, icon, color.
- describe(category) -> CategoryDescription: static lookup, total over all codes.
"""
# endregion
# region Imports
import enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from clipshelf.errors import UnknownCategoryError


# endregion
# region Pydantic Model
class CategoryDescription(BaseModel):
    name: str = Field(..., description="Display name of the category")
    icon: str = Field(..., description="Icon identifier (SF Symbol name)")
    color: str = Field(..., description="Named display color")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [{"name": "Link", "icon": "link", "color": "green"}]
        },
    )


# endregion
# region Enum
class ClipboardCategory(enum.IntEnum):
    """Category of a clipboard item, stored as its integer code."""

    TEXT = 0
    CODE = 1
    LINK = 2
    EMAIL = 3
    PHONE = 4
    COLOR = 5
    IMAGE = 6

    @classmethod
    def from_code(cls, code: int) -> "ClipboardCategory":
        """Return the category for `code`, raising UnknownCategoryError otherwise."""
        try:
            return cls(code)
        except ValueError:
            raise UnknownCategoryError(code) from None

    @classmethod
    def coerce(cls, code) -> "ClipboardCategory":
        """Return the category for `code`, or TEXT when it is unknown."""
        try:
            return cls(code)
        except (TypeError, ValueError):
            return cls.TEXT

    @property
    def description(self) -> CategoryDescription:
        return _DESCRIPTIONS[self]

    @property
    def display_name(self) -> str:
        return _DESCRIPTIONS[self].name

    @property
    def icon(self) -> str:
        return _DESCRIPTIONS[self].icon

    @property
    def color(self) -> str:
        return _DESCRIPTIONS[self].color


_DESCRIPTIONS: dict[ClipboardCategory, CategoryDescription] = {
    ClipboardCategory.TEXT: CategoryDescription(
        name="Text", icon="text.alignleft", color="blue"
    ),
    ClipboardCategory.CODE: CategoryDescription(
        name="Code", icon="chevron.left.forwardslash.chevron.right", color="purple"
    ),
    ClipboardCategory.LINK: CategoryDescription(name="Link", icon="link", color="green"),
    ClipboardCategory.EMAIL: CategoryDescription(
        name="Email", icon="envelope", color="orange"
    ),
    ClipboardCategory.PHONE: CategoryDescription(name="Phone", icon="phone", color="pink"),
    ClipboardCategory.COLOR: CategoryDescription(
        name="Color", icon="paintpalette", color="red"
    ),
    ClipboardCategory.IMAGE: CategoryDescription(name="Image", icon="photo", color="cyan"),
}


# endregion
def describe(category: Union[ClipboardCategory, int]) -> CategoryDescription:
    """
    Look up the display metadata for a category.

    Args:
        category (ClipboardCategory | int): A category or its integer code.

    Returns:
        CategoryDescription: Name, icon and color of the category.

    Raises:
        UnknownCategoryError: If an integer code names no category.

    Example:
        >>> describe(ClipboardCategory.LINK).icon
        'link'
        >>> describe(3).name
        'Email'
    """
    return _DESCRIPTIONS[ClipboardCategory.from_code(category)]


__all__ = ["CategoryDescription", "ClipboardCategory", "describe"]

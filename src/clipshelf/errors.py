"""
clipshelf.errors
Exception hierarchy for the clipboard store.
"""


class ClipshelfError(Exception):
    """Base class for all clipshelf errors."""


class StoreLoadError(ClipshelfError):
    """The backing store could not be opened. The application cannot continue."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Unable to load persistent store at {location}: {reason}")


class StoreAlreadyOpenError(ClipshelfError):
    """A durable controller for this database file is already open in the process."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"A durable store is already open for {location}")


class StoreClosedError(ClipshelfError):
    """An operation was attempted on a closed or uninitialized controller."""


class UnknownCategoryError(ClipshelfError, ValueError):
    """An integer code does not name a clipboard category."""

    def __init__(self, code: object):
        self.code = code
        super().__init__(f"{code!r} is not a valid clipboard category code")


class EncryptionError(ClipshelfError):
    """Content could not be encrypted, usually because the key file is unusable."""


__all__ = [
    "ClipshelfError",
    "EncryptionError",
    "StoreAlreadyOpenError",
    "StoreClosedError",
    "StoreLoadError",
    "UnknownCategoryError",
]

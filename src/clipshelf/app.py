"""
clipshelf.app
Composition root: builds logging and exactly one store, and owns them.

Consumers receive the controller from ClipshelfApp.store instead of reaching
for a module-level instance.
"""

from typing import Optional

from clipshelf.config import LoggingSettings, StoreSettings, get_settings
from clipshelf.errors import StoreLoadError
from clipshelf.logger import configure_logging, system_logger
from clipshelf.persistence import PersistenceController


class ClipshelfApp:
    """
    Application container.

    Attributes:
        store_settings (StoreSettings): Settings for the store.
        logging_settings (LoggingSettings): Settings for the logging stack.
    """

    def __init__(
        self,
        store_settings: Optional[StoreSettings] = None,
        logging_settings: Optional[LoggingSettings] = None,
    ):
        self.store_settings = store_settings or get_settings(StoreSettings)
        self.logging_settings = logging_settings or get_settings(LoggingSettings)
        self._store: Optional[PersistenceController] = None

    def start(self) -> PersistenceController:
        """
        Configure logging and open the store.

        Raises:
            StoreLoadError: The durable store could not be opened. Startup stops here.
        """
        if self._store is not None:
            return self._store
        configure_logging(self.logging_settings)
        try:
            self._store = PersistenceController.open(self.store_settings)
        except StoreLoadError:
            system_logger.critical("Startup aborted: persistent store unavailable")
            raise
        system_logger.info("clipshelf started (%r)", self._store)
        return self._store

    @property
    def store(self) -> PersistenceController:
        if self._store is None:
            return self.start()
        return self._store

    def shutdown(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None
            system_logger.info("clipshelf stopped")

    def __enter__(self) -> "ClipshelfApp":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


__all__ = ["ClipshelfApp"]

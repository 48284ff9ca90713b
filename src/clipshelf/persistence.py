# region Docstring
"""
clipshelf.persistence
Store controller owning the clipboard database and its view session.
Overview:
- PersistenceController opens a durable (file-backed) or ephemeral
    (memory-only) SQLite store, creates the schema, and exposes a long-lived
    "view" session used by the display path.
- save() commits the view session's pending mutations and reports the outcome
    as a SaveStatus instead of raising.
- perform_background_task() runs writes on a single writer thread with its own
    session. Rows it touches are expired in the view session before the view's
    next ORM statement, so reads pick up background writes without an explicit
    refresh.
Contents:
- SaveStatus: SAVED, NO_CHANGES, FAILED.
- PersistenceController:
    - open(settings=None, in_memory=None) -> PersistenceController
    - preview(sample_count=5) -> PersistenceController
    - initialize() / close()
    - view_context -> Session
    - has_changes -> bool
    - save() -> SaveStatus
    - perform_background_task(task) -> Future
    - add_item / display_content / delete_item
    - fetch_items / find_by_content / count_items / clear_all
Design notes:
- Writes from the view session and from background tasks are serialized by a
    single lock. Conflicts resolve as last writer wins: a background write to a
    row the view has modified but not saved is overwritten when the view saves.
    Attributes the view has not modified are still refreshed from the
    background write.
- The view session does not autoflush. Items added with add_item() are not
    returned by queries until save() commits them.
- A failed save rolls back the transaction and then re-applies the captured
    pending objects and attribute changes, so the caller may retry.
- Only one durable controller may be open per database file in a process.
"""
# endregion
# region Imports
import enum
import logging
import sqlite3
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, TypeVar, Union

from sqlalchemy import delete, event, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clipshelf.config import StoreSettings, get_settings
from clipshelf.database import DatabaseSessionGenerator
from clipshelf.encryption import EncryptionHelper, helper_for
from clipshelf.errors import (
    EncryptionError,
    StoreAlreadyOpenError,
    StoreClosedError,
    StoreLoadError,
)
from clipshelf.logger import debug_log
from clipshelf.logger import logger as app_logger
from clipshelf.models.category import ClipboardCategory
from clipshelf.models.clipboard_item import ClipboardItemEntity, ItemType

logger = app_logger.getChild("persistence")

T = TypeVar("T")


# endregion
# region SaveStatus
class SaveStatus(str, enum.Enum):
    """Outcome of PersistenceController.save()."""

    SAVED = "saved"
    NO_CHANGES = "no_changes"
    FAILED = "failed"


# endregion
# region Pending change snapshot
class _PendingChanges:
    """Pending objects and attribute changes of a session, captured before commit."""

    def __init__(self, new: list, deleted: list, modified: list[tuple[object, dict]]):
        self.new = new
        self.deleted = deleted
        self.modified = modified

    @classmethod
    def capture(cls, session: Session) -> "_PendingChanges":
        modified = []
        for obj in session.dirty:
            changes = {}
            for attr in inspect(obj).attrs:
                history = attr.history
                if history.has_changes() and history.added:
                    changes[attr.key] = history.added[0]
            if changes:
                modified.append((obj, changes))
        return cls(list(session.new), list(session.deleted), modified)

    def restore(self, session: Session) -> None:
        session.add_all(self.new)
        for obj, changes in self.modified:
            for key, value in changes.items():
                setattr(obj, key, value)
        for obj in self.deleted:
            if inspect(obj).persistent:
                session.delete(obj)


# endregion
# region PersistenceController
class PersistenceController:
    """
    Owns one store: its engine, the view session, and the background writer.

    Attributes:
        settings (StoreSettings): Settings the store was opened with.
        in_memory (bool): True for an ephemeral store.
        location (str): Database file path, or ":memory:".
        encryption (EncryptionHelper): Seals and opens encrypted item content.
    """

    _open_durable: set[str] = set()
    _registry_lock = threading.Lock()

    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        *,
        in_memory: Optional[bool] = None,
    ):
        settings = settings or get_settings(StoreSettings)
        if in_memory is not None and in_memory != settings.in_memory:
            settings = settings.model_copy(update={"in_memory": in_memory})
        self.settings = settings
        self.in_memory = settings.in_memory
        self.location = (
            ":memory:" if self.in_memory else settings.database_path.as_posix()
        )
        self.encryption: EncryptionHelper = helper_for(settings.encryption_key_path)

        self._db: Optional[DatabaseSessionGenerator] = None
        self._view: Optional[Session] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._write_lock = threading.RLock()
        self._pending_merges: deque = deque()
        self._flushed_uncommitted = False
        self._registered = False

    # region Lifecycle
    @classmethod
    def open(
        cls,
        settings: Optional[StoreSettings] = None,
        *,
        in_memory: Optional[bool] = None,
    ) -> "PersistenceController":
        """Construct and initialize a controller."""
        return cls(settings, in_memory=in_memory).initialize()

    @classmethod
    def preview(cls, sample_count: int = 5) -> "PersistenceController":
        """
        Ephemeral controller seeded with sample items.

        Item i has content "Sample text i", category code i (modulo the number
        of categories) and a timestamp i hours before now.
        """
        controller = cls.open(in_memory=True)
        now = datetime.now(timezone.utc)
        for i in range(sample_count):
            controller.add_item(
                f"Sample text {i}",
                category=ClipboardCategory(i % len(ClipboardCategory)),
                timestamp=now - timedelta(hours=i),
                context_score=0.0,
            )
        if controller.save() is SaveStatus.FAILED:
            logger.error("Failed to save preview context")
        return controller

    def initialize(self) -> "PersistenceController":
        """
        Open or create the backing store and its schema.

        Raises:
            StoreAlreadyOpenError: A durable controller for the same file is open.
            StoreLoadError: The durable store could not be opened or created.
        """
        if self._view is not None:
            return self

        if not self.in_memory:
            self._register_durable()

        try:
            if not self.in_memory:
                self.settings.data_dir.mkdir(parents=True, exist_ok=True)
            self._db = DatabaseSessionGenerator(self.settings)
            self._db.init_db()
        except (OSError, SQLAlchemyError, sqlite3.Error) as error:
            if self._db is not None:
                self._db.dispose()
                self._db = None
            self._release_durable()
            logger.critical("Unable to load persistent store at %s: %s", self.location, error)
            raise StoreLoadError(self.location, str(error)) from error

        self._view = self._db.get_session(autoflush=False)
        event.listen(self._view, "do_orm_execute", self._on_view_execute)
        event.listen(self._view, "after_flush", self._on_view_flush)
        event.listen(self._view, "after_commit", self._on_view_transaction_end)
        event.listen(self._view, "after_soft_rollback", self._on_view_transaction_end)
        logger.info(
            "Loaded %s store at %s",
            "ephemeral" if self.in_memory else "durable",
            self.location,
        )
        return self

    def close(self) -> None:
        """Finish background writes, close the view session and dispose the engine."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self._view is not None:
            self._view.close()
            self._view = None
        if self._db is not None:
            self._db.dispose()
            self._db = None
        self._pending_merges.clear()
        self._release_durable()

    @property
    def is_open(self) -> bool:
        return self._view is not None

    def __enter__(self) -> "PersistenceController":
        return self.initialize()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "ephemeral" if self.in_memory else "durable"
        return f"<PersistenceController({mode}, location='{self.location}', open={self.is_open})>"

    def _register_durable(self) -> None:
        with self._registry_lock:
            if self.location in self._open_durable:
                raise StoreAlreadyOpenError(self.location)
            self._open_durable.add(self.location)
            self._registered = True

    def _release_durable(self) -> None:
        if not self._registered:
            return
        with self._registry_lock:
            self._open_durable.discard(self.location)
            self._registered = False

    # endregion
    # region View session
    @property
    def view_context(self) -> Session:
        """The session used by the display path. Background writes are merged first."""
        if self._view is None:
            raise StoreClosedError("The store is not initialized or has been closed")
        self._merge_background_changes()
        return self._view

    @property
    def has_changes(self) -> bool:
        """Whether the view session holds mutations that save() would commit."""
        session = self.view_context
        if session.new or session.deleted or self._flushed_uncommitted:
            return True
        return any(session.is_modified(obj) for obj in session.dirty)

    def save(self) -> SaveStatus:
        """
        Commit the view session if it has pending mutations.

        Returns:
            SaveStatus: SAVED after a commit, NO_CHANGES when nothing was pending,
                FAILED when the commit raised. On failure the pending mutations are
                kept for a retry.
        """
        session = self.view_context
        with self._write_lock:
            has_changes = self.has_changes
            debug_log(f"save() called. has_changes: {has_changes}")

            if not has_changes:
                debug_log("No changes to save", logging.WARNING)
                return SaveStatus.NO_CHANGES

            pending = _PendingChanges.capture(session)
            try:
                session.commit()
            except SQLAlchemyError as error:
                session.rollback()
                pending.restore(session)
                debug_log(f"Save ERROR: {error}", logging.ERROR)
                return SaveStatus.FAILED

            debug_log("Context saved successfully!")
            return SaveStatus.SAVED

    def _on_view_execute(self, orm_execute_state) -> None:
        self._merge_background_changes()

    def _on_view_flush(self, session, flush_context) -> None:
        self._flushed_uncommitted = True

    def _on_view_transaction_end(self, session, *args) -> None:
        self._flushed_uncommitted = False

    def _merge_background_changes(self) -> None:
        view = self._view
        while True:
            try:
                key, was_deleted = self._pending_merges.popleft()
            except IndexError:
                return
            obj = view.identity_map.get(key)
            if obj is None or obj in view.deleted:
                continue
            if view.is_modified(obj):
                if was_deleted:
                    continue
                # Unsaved view edits win; every other attribute is reloaded.
                unchanged = [
                    attr.key
                    for attr in inspect(obj).attrs
                    if not attr.history.has_changes()
                ]
                if unchanged:
                    view.expire(obj, unchanged)
            elif was_deleted:
                view.expunge(obj)
            else:
                view.expire(obj)

    # endregion
    # region Background writes
    def perform_background_task(self, task: Callable[[Session], T]) -> "Future[T]":
        """
        Run `task(session)` on the writer thread and commit its session.

        The returned future resolves to the task's return value, or raises the
        exception that made the task or its commit fail (the session is rolled
        back in that case).
        """
        if self._db is None:
            raise StoreClosedError("The store is not initialized or has been closed")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="clipshelf-writer"
            )
        return self._executor.submit(self._run_background_task, task)

    def _run_background_task(self, task: Callable[[Session], T]) -> T:
        session = self._db.get_session()
        touched: list[tuple[object, bool]] = []

        def _collect(s, flush_context, instances):
            touched.extend((obj, False) for obj in s.new)
            touched.extend((obj, False) for obj in s.dirty)
            touched.extend((obj, True) for obj in s.deleted)

        event.listen(session, "before_flush", _collect)
        try:
            with self._write_lock:
                result = task(session)
                session.commit()
        except Exception:
            session.rollback()
            logger.exception("Background task failed")
            raise
        finally:
            session.close()

        for obj, was_deleted in touched:
            key = inspect(obj).key
            if key is not None:
                self._pending_merges.append((key, was_deleted))
        return result

    # endregion
    # region Items
    def add_item(
        self,
        content: Optional[str],
        category: Union[ClipboardCategory, int] = ClipboardCategory.TEXT,
        item_type: Union[ItemType, int] = ItemType.TEXT,
        *,
        timestamp: Optional[datetime] = None,
        image_data: Optional[bytes] = None,
        encrypted_content: Optional[bytes] = None,
        encrypt: bool = False,
        source_app: Optional[str] = None,
        context_score: float = 0.5,
    ) -> ClipboardItemEntity:
        """
        Create a clipboard item in the view session. It is stored on the next save().

        With encrypt=True the content is sealed with the store's key. Passing
        encrypted_content stores ready-made ciphertext. Either way the plain
        content is not stored.

        Raises:
            EncryptionError: encrypt=True and the key could not be loaded or created.
        """
        if encrypt and encrypted_content is None:
            encrypted_content = self.encryption.encrypt(content or "")
            if encrypted_content is None:
                raise EncryptionError(
                    f"Unable to encrypt content with key {self.encryption.key_path}"
                )
        item = ClipboardItemEntity(
            timestamp=timestamp or datetime.now(timezone.utc),
            type=int(ItemType(item_type)),
            category=int(ClipboardCategory.from_code(category)),
            image_data=image_data,
            source_app=source_app,
            is_favorite=False,
            access_count=0,
            context_score=context_score,
        )
        if encrypted_content is not None:
            item.encrypted_content = encrypted_content
            item.is_encrypted = True
        else:
            item.content = content
            item.is_encrypted = False
        self.view_context.add(item)
        return item

    def display_content(self, item: ClipboardItemEntity) -> str:
        """Text to show for `item`, decrypted with this store's key."""
        return item.display_content(self.encryption.decrypt)

    def delete_item(self, item: ClipboardItemEntity) -> None:
        """Mark an item for deletion on the next save()."""
        session = self.view_context
        if item in session.new:
            session.expunge(item)
        else:
            session.delete(item)

    def fetch_items(
        self,
        category: Optional[Union[ClipboardCategory, int]] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> list[ClipboardItemEntity]:
        """Saved items, optionally filtered by category, ordered by timestamp."""
        stmt = select(ClipboardItemEntity)
        if category is not None:
            code = int(ClipboardCategory.from_code(category))
            stmt = stmt.where(ClipboardItemEntity.category == code)
        order = ClipboardItemEntity.timestamp
        stmt = stmt.order_by(order.desc() if newest_first else order.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.view_context.scalars(stmt))

    def find_by_content(self, content: str) -> Optional[ClipboardItemEntity]:
        stmt = (
            select(ClipboardItemEntity)
            .where(ClipboardItemEntity.content == content)
            .limit(1)
        )
        return self.view_context.scalars(stmt).first()

    def count_items(self) -> int:
        stmt = select(func.count()).select_from(ClipboardItemEntity)
        return self.view_context.execute(stmt).scalar_one()

    def clear_all(self) -> int:
        """
        Delete every saved item directly in the database.

        Unsaved items in the view session are kept. Returns the number of rows removed.
        """
        view = self.view_context
        with self._write_lock:
            with self._db.get_session() as session:
                result = session.execute(
                    delete(ClipboardItemEntity),
                    execution_options={"synchronize_session": False},
                )
                removed = result.rowcount
                session.commit()
        for obj in list(view.identity_map.values()):
            if isinstance(obj, ClipboardItemEntity) and not view.is_modified(obj):
                view.expunge(obj)
        debug_log(f"Cleared {removed} clipboard items")
        return removed

    # endregion


# endregion

__all__ = ["PersistenceController", "SaveStatus"]

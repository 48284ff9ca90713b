import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import SingletonThreadPool

from clipshelf.config import StoreSettings
from clipshelf.errors import StoreAlreadyOpenError, StoreClosedError, StoreLoadError
from clipshelf.models.category import ClipboardCategory
from clipshelf.models.clipboard_item import ClipboardItemEntity, ItemType
from clipshelf.persistence import PersistenceController, SaveStatus


# region Initialization
def test_ephemeral_store_touches_no_files(tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    settings = StoreSettings(data_dir=workdir / "data")

    store = PersistenceController.open(settings, in_memory=True)
    try:
        store.add_item("ephemeral")
        assert store.save() is SaveStatus.SAVED
        assert store.save() is SaveStatus.NO_CHANGES
        assert store.count_items() == 1
    finally:
        store.close()

    assert list(workdir.iterdir()) == []
    assert not settings.database_path.exists()


def test_ephemeral_stores_are_independent(store_settings):
    first = PersistenceController.open(store_settings, in_memory=True)
    second = PersistenceController.open(store_settings, in_memory=True)
    try:
        first.add_item("only in first")
        first.save()
        assert first.count_items() == 1
        assert second.count_items() == 0
    finally:
        first.close()
        second.close()


def test_ephemeral_store_pins_one_connection_per_thread(memory_store, durable_store):
    assert isinstance(memory_store._db.engine.pool, SingletonThreadPool)
    assert not isinstance(durable_store._db.engine.pool, SingletonThreadPool)


def test_durable_store_creates_database_file(durable_store, store_settings):
    assert store_settings.database_path.exists()
    assert durable_store.location == store_settings.database_path.as_posix()
    assert not durable_store.in_memory


def test_second_durable_handle_is_refused(durable_store, store_settings):
    with pytest.raises(StoreAlreadyOpenError):
        PersistenceController.open(store_settings)


def test_durable_handle_is_released_on_close(store_settings):
    first = PersistenceController.open(store_settings)
    first.close()
    second = PersistenceController.open(store_settings)
    second.close()


def test_durable_load_failure_is_fatal(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    settings = StoreSettings(data_dir=blocker / "data")

    with pytest.raises(StoreLoadError) as excinfo:
        PersistenceController.open(settings)
    assert excinfo.value.location == settings.database_path.as_posix()


def test_corrupt_database_file_is_fatal(store_settings):
    store_settings.data_dir.mkdir(parents=True)
    store_settings.database_path.write_bytes(b"definitely not sqlite " * 64)

    with pytest.raises(StoreLoadError):
        PersistenceController.open(store_settings)

    # The failed attempt does not hold the durable registration.
    store_settings.database_path.unlink()
    PersistenceController.open(store_settings).close()


def test_initialize_is_idempotent(memory_store):
    session = memory_store.view_context
    assert memory_store.initialize() is memory_store
    assert memory_store.view_context is session


def test_closed_store_rejects_use(store_settings):
    store = PersistenceController.open(store_settings, in_memory=True)
    store.close()
    assert not store.is_open
    with pytest.raises(StoreClosedError):
        store.save()
    with pytest.raises(StoreClosedError):
        store.perform_background_task(lambda session: None)


def test_context_manager_closes(store_settings):
    with PersistenceController(store_settings) as store:
        assert store.is_open
    assert not store.is_open
    PersistenceController.open(store_settings).close()


# endregion
# region save()
def test_save_without_changes_is_a_distinct_no_op(store, debug_log_path):
    assert not store.has_changes
    assert store.save() is SaveStatus.NO_CHANGES
    assert store.save() is not SaveStatus.SAVED

    text = debug_log_path.read_text(encoding="utf-8")
    assert "save() called. has_changes: False" in text
    assert "No changes to save" in text
    assert "Context saved successfully!" not in text


def test_save_without_changes_never_commits(store, monkeypatch):
    session = store.view_context

    def _fail_commit():
        raise AssertionError("commit must not be called")

    monkeypatch.setattr(session, "commit", _fail_commit)
    assert store.save() is SaveStatus.NO_CHANGES


def test_save_commits_pending_items(store, debug_log_path):
    store.add_item("Test content")
    assert store.has_changes

    assert store.save() is SaveStatus.SAVED
    assert not store.has_changes
    items = store.fetch_items()
    assert [item.content for item in items] == ["Test content"]
    assert "Context saved successfully!" in debug_log_path.read_text(encoding="utf-8")


def test_sample_scenario(memory_store):
    for i in range(5):
        memory_store.add_item(f"Sample text {i}", category=i)

    assert memory_store.save() is SaveStatus.SAVED
    items = memory_store.fetch_items()
    assert len(items) == 5
    assert memory_store.count_items() == 5
    assert sorted(item.content for item in items) == [
        f"Sample text {i}" for i in range(5)
    ]
    assert sorted(item.category for item in items) == [0, 1, 2, 3, 4]


def test_durable_read_after_write(durable_store):
    item = durable_store.add_item("persisted", category=ClipboardCategory.LINK)
    assert durable_store.save() is SaveStatus.SAVED

    durable_store.view_context.expire_all()
    found = durable_store.find_by_content("persisted")
    assert found is not None
    assert found.id == item.id
    assert found.clipboard_category is ClipboardCategory.LINK


def test_durable_data_survives_reopen(store_settings):
    with PersistenceController(store_settings) as store:
        store.add_item("survivor", category=ClipboardCategory.CODE)
        assert store.save() is SaveStatus.SAVED

    with PersistenceController(store_settings) as store:
        items = store.fetch_items()
        assert [item.content for item in items] == ["survivor"]
        assert items[0].category == int(ClipboardCategory.CODE)
        assert items[0].timestamp.tzinfo == timezone.utc


def test_save_after_update(store):
    item = store.add_item("Original content")
    store.save()

    item.content = "Updated content"
    assert store.has_changes
    assert store.save() is SaveStatus.SAVED

    store.view_context.expire_all()
    items = store.fetch_items()
    assert len(items) == 1
    assert items[0].content == "Updated content"


def test_save_after_delete(store):
    item = store.add_item("To be deleted")
    store.save()

    store.delete_item(item)
    assert store.has_changes
    assert store.save() is SaveStatus.SAVED
    assert store.count_items() == 0


def test_deleting_unsaved_item_discards_it(store):
    item = store.add_item("never saved")
    store.delete_item(item)
    assert not store.has_changes
    assert store.save() is SaveStatus.NO_CHANGES


def test_failed_save_keeps_pending_changes(memory_store, debug_log_path):
    first = memory_store.add_item("first")
    second = memory_store.add_item("second")
    memory_store.save()

    memory_store.view_context.expunge(second)
    first.content = "first, edited"
    duplicate = ClipboardItemEntity(
        id=second.id,
        timestamp=datetime.now(timezone.utc),
        content="duplicate",
        type=0,
        category=0,
    )
    memory_store.view_context.add(duplicate)

    assert memory_store.save() is SaveStatus.FAILED
    assert "Save ERROR" in debug_log_path.read_text(encoding="utf-8")

    # Pending state is back for a retry.
    assert memory_store.has_changes
    assert duplicate in memory_store.view_context.new
    assert first.content == "first, edited"

    duplicate.id = uuid.uuid4()
    assert memory_store.save() is SaveStatus.SAVED

    memory_store.view_context.expire_all()
    contents = sorted(item.content for item in memory_store.fetch_items())
    assert contents == ["duplicate", "first, edited", "second"]


# endregion
# region Queries
def test_fetch_items_filters_by_category(store):
    store.add_item("Text", category=ClipboardCategory.TEXT)
    store.add_item("Code", category=ClipboardCategory.CODE)
    store.save()

    items = store.fetch_items(category=ClipboardCategory.CODE)
    assert [item.content for item in items] == ["Code"]
    assert store.fetch_items(category=ClipboardCategory.IMAGE) == []


def test_fetch_items_orders_by_timestamp(store):
    now = datetime.now(timezone.utc)
    for i in range(3):
        store.add_item(f"Item {i}", timestamp=now + timedelta(hours=i))
    store.save()

    newest = [item.content for item in store.fetch_items()]
    oldest = [item.content for item in store.fetch_items(newest_first=False)]
    assert newest == ["Item 2", "Item 1", "Item 0"]
    assert oldest == ["Item 0", "Item 1", "Item 2"]
    assert [item.content for item in store.fetch_items(limit=2)] == ["Item 2", "Item 1"]


def test_timestamps_read_back_as_utc(store):
    plus_five = timezone(timedelta(hours=5))
    captured = datetime(2025, 6, 1, 17, 30, tzinfo=plus_five)
    item = store.add_item("offset", timestamp=captured)
    store.save()

    store.view_context.expire_all()
    assert item.timestamp.tzinfo == timezone.utc
    assert item.timestamp == captured
    assert item.timestamp.hour == 12
    assert item.timestamp < datetime.now(timezone.utc)


def test_fetch_items_orders_across_offsets(store):
    now = datetime.now(timezone.utc)
    store.add_item("newer-utc", timestamp=now)
    store.add_item(
        "older-plus5",
        timestamp=(now - timedelta(hours=1)).astimezone(timezone(timedelta(hours=5))),
    )
    store.save()

    assert [i.content for i in store.fetch_items()] == ["newer-utc", "older-plus5"]
    assert [i.content for i in store.fetch_items(newest_first=False)] == [
        "older-plus5",
        "newer-utc",
    ]


def test_naive_timestamps_are_taken_as_utc(store):
    item = store.add_item("naive", timestamp=datetime(2025, 1, 1, 8, 0))
    store.save()
    store.view_context.expire_all()
    assert item.timestamp == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_pending_items_are_not_queried_until_saved(store):
    store.add_item("pending")
    assert store.count_items() == 0
    assert store.find_by_content("pending") is None
    store.save()
    assert store.find_by_content("pending") is not None


def test_add_item_encrypted_and_image(store):
    png = b"\x89PNG\r\n\x1a\n"
    secret = store.add_item("plain", encrypted_content=b"ciphertext")
    image = store.add_item(
        "Image", ClipboardCategory.IMAGE, ItemType.IMAGE, image_data=png, source_app="Preview"
    )
    store.save()
    store.view_context.expire_all()

    assert secret.is_encrypted
    assert secret.content is None
    assert secret.display_content() == "[Encrypted]"
    assert image.image_data == png
    assert image.item_type is ItemType.IMAGE
    assert image.source_app == "Preview"
    assert image.context_score == 0.5


def test_clear_all(store):
    for i in range(4):
        store.add_item(f"Item {i}")
    store.save()
    kept = store.add_item("unsaved")

    assert store.clear_all() == 4
    assert store.count_items() == 0
    assert kept in store.view_context.new
    assert store.save() is SaveStatus.SAVED
    assert store.count_items() == 1


# endregion
# region Preview
def test_preview_store_has_sample_items():
    preview = PersistenceController.preview()
    try:
        assert preview.in_memory
        items = preview.fetch_items()
        assert len(items) == 5
        assert [item.content for item in items] == [f"Sample text {i}" for i in range(5)]
        assert [item.category for item in items] == [0, 1, 2, 3, 4]
        for item in items:
            assert item.id is not None
            assert item.timestamp is not None
            assert not item.is_encrypted
            assert item.type == int(ItemType.TEXT)
    finally:
        preview.close()


# endregion

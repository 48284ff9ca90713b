import pytest

from clipshelf.app import ClipshelfApp
from clipshelf.config import StoreSettings
from clipshelf.errors import StoreLoadError
from clipshelf.persistence import PersistenceController, SaveStatus


def test_app_owns_one_store(store_settings, logging_settings):
    app = ClipshelfApp(store_settings, logging_settings)
    store = app.start()

    assert isinstance(store, PersistenceController)
    assert app.store is store
    assert app.start() is store
    assert store_settings.database_path.exists()

    app.shutdown()
    assert not store.is_open
    # The durable registration is released with the store.
    PersistenceController.open(store_settings).close()


def test_app_context_manager(store_settings, logging_settings):
    with ClipshelfApp(store_settings, logging_settings) as app:
        app.store.add_item("from app")
        assert app.store.save() is SaveStatus.SAVED
    assert app._store is None


def test_app_configures_logging(store_settings, logging_settings):
    with ClipshelfApp(store_settings, logging_settings):
        pass
    assert logging_settings.log_file.exists()
    assert "clipshelf started" in logging_settings.log_file.read_text(encoding="utf-8")


def test_app_startup_fails_without_store(tmp_path, logging_settings):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    app = ClipshelfApp(StoreSettings(data_dir=blocker / "data"), logging_settings)

    with pytest.raises(StoreLoadError):
        app.start()
    assert "Startup aborted" in logging_settings.log_file.read_text(encoding="utf-8")

import logging

import pytest

from clipshelf.config import LoggingSettings, StoreSettings, get_settings
from clipshelf.logger import LOGGER_NAME, configure_debug_log
from clipshelf.persistence import PersistenceController

CLIPSHELF_ENV_VARS = [
    "CLIPSHELF_ENV",
    "CLIPSHELF_DATA_DIR",
    "CLIPSHELF_STORE_NAME",
    "CLIPSHELF_IN_MEMORY",
    "CLIPSHELF_BUSY_TIMEOUT",
    "CLIPSHELF_ECHO_SQL",
    "CLIPSHELF_ENCRYPTION_KEY",
    "CLIPSHELF_LOG_LEVEL",
    "CLIPSHELF_LOG_DIR",
    "CLIPSHELF_LOG_CONSOLE",
    "CLIPSHELF_DEBUG_LOG",
    "CLIPSHELF_DEBUG_LOG_MAX_BYTES",
    "CLIPSHELF_DEBUG_LOG_BACKUPS",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path_factory):
    """Clear clipshelf env vars; point the debug log and key file at temp files."""
    for name in CLIPSHELF_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv(
        "CLIPSHELF_ENCRYPTION_KEY",
        str(tmp_path_factory.mktemp("keys") / "encryption.key"),
    )
    get_settings.cache_clear()

    debug_path = tmp_path_factory.mktemp("debug") / "debug.txt"
    configure_debug_log(debug_path, max_bytes=0, backup_count=0)
    yield debug_path

    get_settings.cache_clear()
    app_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture
def debug_log_path(isolated_environment):
    """Path of the debug log file used by the current test."""
    return isolated_environment


@pytest.fixture
def store_settings(tmp_path) -> StoreSettings:
    """Durable store settings rooted in a temp directory."""
    return StoreSettings(data_dir=tmp_path / "data")


@pytest.fixture
def logging_settings(tmp_path) -> LoggingSettings:
    return LoggingSettings(
        log_dir=tmp_path / "logs",
        debug_log_path=tmp_path / "logs" / "debug.txt",
        console=False,
        log_level="debug",
    )


@pytest.fixture
def memory_store(store_settings):
    """Ephemeral controller."""
    store = PersistenceController.open(store_settings, in_memory=True)
    yield store
    store.close()


@pytest.fixture
def durable_store(store_settings):
    """Durable controller backed by a file in a temp directory."""
    store = PersistenceController.open(store_settings)
    yield store
    store.close()


@pytest.fixture(params=["memory", "durable"])
def store(request, store_settings):
    """Both store lifecycles."""
    controller = PersistenceController.open(
        store_settings, in_memory=request.param == "memory"
    )
    yield controller
    controller.close()

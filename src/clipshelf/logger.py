"""
clipshelf.logger
Application logging and the best-effort debug log.

Overview:
- configure_logging() installs the application logging stack through
    logging.config.dictConfig: a JSON-lines file handler (python-json-logger)
    and a console handler, both attached to the "clipshelf" logger.
- debug_log() appends "[<timestamp>] <message>" lines to a plain-text debug
    file and mirrors the message to the application logger. Writing the debug
    file never raises to the caller.
- The debug file handler is a RotatingFileHandler. With max_bytes=0 (the
    default) it grows without bound; a positive max_bytes caps it.
"""

import logging
import os
from datetime import datetime
from logging import Logger as T_Logger
from logging.config import dictConfig
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pythonjsonlogger.json import JsonFormatter  # type: ignore # noqa F401

from clipshelf.config import LoggingSettings, get_settings

LOGGER_NAME = "clipshelf"

logger: T_Logger = logging.getLogger(LOGGER_NAME)
system_logger = logger.getChild("SYSTEM")
_mirror_logger = logger.getChild("debug")
_debug_file_logger = logger.getChild("debugfile")
_debug_handler: Optional["DebugFileHandler"] = None


# region Debug file handler
class DebugLineFormatter(logging.Formatter):
    """Formats records as ``[<local ISO timestamp>] <message>``."""

    def __init__(self):
        super().__init__("[%(asctime)s] %(message)s")

    def formatTime(self, record, datefmt=None):
        return (
            datetime.fromtimestamp(record.created)
            .astimezone()
            .isoformat(timespec="milliseconds")
        )


class DebugFileHandler(RotatingFileHandler):
    """
    Append-only handler for the debug file.

    The file is opened lazily on the first record and reopened if it was removed
    between writes. Errors are dropped instead of reported.
    """

    def __init__(self, filename: Path, max_bytes: int = 0, backup_count: int = 3):
        super().__init__(
            filename,
            mode="a",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )
        self.setFormatter(DebugLineFormatter())

    def emit(self, record):
        if self.stream is not None and not os.path.exists(self.baseFilename):
            self.stream.close()
            self.stream = None
        super().emit(record)

    def handleError(self, record):
        # Debug output must never affect the caller.
        return


def configure_debug_log(
    path: Optional[Path] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
) -> DebugFileHandler:
    """
    Point debug_log() at a file, replacing any previously installed handler.

    Args:
        path: Target file. Defaults to LoggingSettings.debug_log_path.
        max_bytes: Rotation threshold in bytes; 0 disables rotation.
        backup_count: Number of rotated files to keep.

    Returns:
        DebugFileHandler: The installed handler.
    """
    global _debug_handler

    if path is None or max_bytes is None or backup_count is None:
        settings = get_settings(LoggingSettings)
        path = settings.debug_log_path if path is None else path
        max_bytes = settings.debug_log_max_bytes if max_bytes is None else max_bytes
        backup_count = (
            settings.debug_log_backup_count if backup_count is None else backup_count
        )

    # dictConfig resets child loggers of "clipshelf", so restate these here.
    # It also drops their handlers without closing them.
    _debug_file_logger.propagate = False
    _debug_file_logger.setLevel(logging.DEBUG)
    if _debug_handler is not None:
        _debug_file_logger.removeHandler(_debug_handler)
        _debug_handler.close()

    _debug_handler = DebugFileHandler(
        Path(path), max_bytes=max_bytes, backup_count=backup_count
    )
    _debug_file_logger.addHandler(_debug_handler)
    return _debug_handler


def debug_log(message: str, level: int = logging.INFO) -> None:
    """
    Append a timestamped line to the debug file.

    The line is ``"[" + timestamp + "] " + message + "\\n"``. The file is
    created if it does not exist. Failures are never raised.
    """
    if not _debug_file_logger.handlers:
        try:
            configure_debug_log()
        except (OSError, ValueError):
            _mirror_logger.log(level, message)
            return
    _debug_file_logger.log(level, message)
    _mirror_logger.log(level, message)


# endregion
# region Application logging
def configure_logging(settings: Optional[LoggingSettings] = None) -> T_Logger:
    """
    Configure the application loggers.

    Args:
        settings: Logging settings. Defaults to the cached LoggingSettings.

    Returns:
        Logger: The configured "clipshelf" logger.
    """
    settings = settings or get_settings(LoggingSettings)
    log_level = settings.log_level.upper()
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers = ["file", "console"] if settings.console else ["file"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
        },
        "handlers": {
            "file": {
                "class": "logging.FileHandler",
                "filename": str(settings.log_file),
                "formatter": "json",
                "level": log_level,
                "encoding": "utf-8",
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": log_level,
            },
        },
        "loggers": {
            LOGGER_NAME: {
                "handlers": handlers,
                "level": log_level,
                "propagate": False,
            },
        },
    }

    dictConfig(config)
    configure_debug_log(
        settings.debug_log_path,
        settings.debug_log_max_bytes,
        settings.debug_log_backup_count,
    )
    system_logger.debug("Logger for clipshelf initialized.")
    return logger


# endregion

__all__ = [
    "DebugFileHandler",
    "DebugLineFormatter",
    "configure_debug_log",
    "configure_logging",
    "debug_log",
    "logger",
    "system_logger",
]

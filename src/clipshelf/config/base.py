# region Docstring
"""
clipshelf.config.base

Environment detection and path resolution for the clipboard store.

Overview:
- Provides a utility class for detecting the current application environment
    (production, Docker, or development) based on an environment variable or
    path-based heuristics.
- Exposes module-level constants for the application root, the detected
    environment, and the default data directory holding the durable store.

Contents:
- Classes:
    - AppEnv:
        Class methods to determine the current environment, retrieve the
        application root directory, and locate the data directory for the
        detected environment.

- Module-level Constants:
    - APP_ROOT (Path): The resolved root directory of the application.
    - APP_ENV (Literal["prod", "docker", "dev"]): The detected environment.
    - DATA_DIR (Path): Default directory for the durable SQLite store.

Environment Detection Logic:
- Priority 1: Checks the CLIPSHELF_ENV environment variable.
- Priority 2: Falls back to path-based detection:
    - Paths starting with "/app" indicate Docker environment.
    - Paths starting with "/srv" or "/Applications" indicate production.
    - All other paths default to development environment.
"""
# endregion
# region Imports
import os
import sys
from pathlib import Path
from typing import Literal


# endregion
# region AppEnv Class
class AppEnv:
    """
    Application environment detection utility.

    Attributes:
        ROOT (Path): The root directory of the application. Defaults to the current working directory.
        PROD (Literal["prod"]): Constant representing the production environment.
        DOCKER (Literal["docker"]): Constant representing the Docker environment.
        DEV (Literal["dev"]): Constant representing the development environment.
    """

    ROOT: Path = Path().cwd().resolve()
    PROD: Literal["prod"] = "prod"
    DOCKER: Literal["docker"] = "docker"
    DEV: Literal["dev"] = "dev"

    @classmethod
    def environment(cls) -> Literal["prod", "docker", "dev"]:
        """Determine the current application environment."""
        if os.getenv("CLIPSHELF_ENV") in {cls.PROD, cls.DOCKER, cls.DEV}:
            return os.getenv("CLIPSHELF_ENV")

        calling_path = Path.cwd().as_posix()
        if calling_path.startswith("/app"):
            return cls.DOCKER
        elif calling_path.startswith(("/srv", "/Applications")):
            return cls.PROD
        else:
            return cls.DEV

    @classmethod
    def app_root(cls) -> Path:
        """Get the application root directory."""
        return cls.ROOT

    @classmethod
    def data_dir(cls) -> Path:
        """Get the directory holding the durable store for the environment."""
        env = cls.environment()
        if env == cls.DOCKER:
            return Path("/data").resolve()
        elif env == cls.PROD:
            if sys.platform == "darwin":
                return (
                    Path.home() / "Library" / "Application Support" / "clipshelf"
                ).resolve()
            return Path(
                os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")
            ).resolve() / "clipshelf"
        else:
            return (cls.ROOT / ".clipshelf").resolve()


# endregion
# region Module-level Constants

APP_ROOT: Path = AppEnv.app_root()
"""[Path] Root directory of the application."""
APP_ENV: Literal["prod", "docker", "dev"] = AppEnv.environment()
"""[Literal] Environment type."""
DATA_DIR: Path = AppEnv.data_dir()
"""[Path] Directory where the durable store lives."""
# endregion


__all__ = [
    "APP_ENV",
    "APP_ROOT",
    "DATA_DIR",
    "AppEnv",
]

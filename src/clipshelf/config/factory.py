# region Docstring
"""
clipshelf.config.factory
Settings base class with multi-source loading and a cached settings factory.
Overview:
- FactoryBaseSettings extends pydantic-settings so every settings class reads,
    in priority order:
        1. Environment variables
        2. .env file values
        3. clipshelf.{env}.yaml
        4. clipshelf.yaml
        5. Init kwargs / field defaults
- get_settings(settings_cls) instantiates a settings class once and caches it.
Design notes:
- decode_complex_value returns the raw string when a complex value in the
    environment is not valid JSON, so field validators can parse it.
- get_settings.cache_clear() resets the cache (used by tests that change the
    environment).
"""
# endregion
# region Imports
import json
from functools import lru_cache
from typing import Any, Type, TypeVar

from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .base import APP_ENV, APP_ROOT


# endregion
# region FactoryBaseSettings Class
T = TypeVar("T", bound=BaseSettings)


class FactoryBaseSettings(BaseSettings):
    """
    Custom BaseSettings that supports YAML and Env Vars.
    Priority: Env Vars > .env > YAML (Env specific) > YAML (Default) > Defaults
    """

    model_config = SettingsConfigDict(
        env_file=APP_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Later files override earlier ones
        yaml_settings = YamlConfigSettingsSource(
            settings_cls,
            yaml_file=[
                APP_ROOT / "clipshelf.yaml",
                APP_ROOT / f"clipshelf.{APP_ENV}.yaml",
            ],
        )
        return (
            env_settings,
            dotenv_settings,
            yaml_settings,
            init_settings,
        )

    def decode_complex_value(
        self, field_name: str, field: FieldInfo, value: Any
    ) -> Any:
        """Return the raw string when a complex value is not JSON."""
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value


# endregion
# region get_settings Factory Function


@lru_cache
def get_settings(settings_cls: Type[T]) -> T:
    """
    Factory function to load any settings class.
    Results are cached so we don't re-read files every time.
    """
    return settings_cls()


# endregion

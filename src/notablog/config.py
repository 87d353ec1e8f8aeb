"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (NOTABLOG__CONCURRENCY=8, NOTABLOG__LOGGING__LEVEL=DEBUG)
  3. config.json            (in the working directory)

Only ``url`` has no default; every other field can be omitted.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from notablog.errors import ErrorCode, NotablogError

CONFIG_FILENAME = "config.json"


class SourceSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # JSON content API serving tables and page trees
    api_url: str = "http://127.0.0.1:8787"
    # Public site of the hosted collection; unresolved links point here
    source_url: str = "https://www.notion.so"
    timeout_seconds: float = 30.0
    max_redirects: int = 3


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: NOTABLOG__SOURCE__API_URL=...
        env_prefix="NOTABLOG__",
        env_nested_delimiter="__",
        json_file=None,
        json_file_encoding="utf-8",
        populate_by_name=True,
    )

    theme: str = "pure"
    url: str
    preview_browser: str | None = Field(
        default=None,
        validation_alias=AliasChoices("previewBrowser", "preview_browser"),
    )
    concurrency: int = Field(default=3, ge=1)
    source: SourceSettings = SourceSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            JsonConfigSettingsSource(settings_cls),  # config.json
        )

    @classmethod
    def from_work_dir(cls, work_dir: Path, **overrides: Any) -> Settings:
        """Load ``config.json`` from *work_dir*.

        A missing, unparsable or invalid file is fatal for the run and is
        reported as ``CONFIG_INVALID``.
        """
        config_path = Path(work_dir) / CONFIG_FILENAME
        if not config_path.is_file():
            raise NotablogError(
                ErrorCode.CONFIG_INVALID,
                f'Failed to load config from "{config_path}"',
                suggestion="run inside a notablog starter directory",
            )

        class _FileSettings(cls):  # type: ignore[valid-type, misc]
            model_config = SettingsConfigDict(json_file=config_path)

        try:
            return _FileSettings(**overrides)
        except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise NotablogError(
                ErrorCode.CONFIG_INVALID,
                f'Failed to load config from "{config_path}": {exc}',
            ) from exc

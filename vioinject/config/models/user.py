"""User configuration models."""

import tempfile
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .imaging import (
    DEFAULT_DRIVER_CATALOG,
    DriverCatalogEntry,
    ImageLayoutConfig,
    ImagingServiceConfig,
    MasteringToolConfig,
)


class UserConfigData(BaseSettings):
    """User configuration data model with automatic environment variable support.

    Precedence order (highest to lowest):
    1. Environment variables (highest)
    2. Constructor arguments (file data)
    3. .env file
    4. Default values (lowest)
    """

    model_config = SettingsConfigDict(
        env_prefix="VIOINJECT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Return sources in priority order: env > init > dotenv > file_secret."""
        return (
            env_settings,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    candidate_directory: Path = Field(
        default_factory=Path.cwd,
        description="Directory searched for input artifacts that were not given explicitly",
    )
    output_directory: Path = Field(
        default_factory=Path.cwd,
        description="Directory the bootable image is written to",
    )
    work_directory: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "vioinject",
        description="Per-run working directory; wiped at the start of every run",
    )

    log_level: str = "WARNING"

    image_layout: ImageLayoutConfig = Field(default_factory=ImageLayoutConfig)
    mastering_tool: MasteringToolConfig = Field(default_factory=MasteringToolConfig)
    imaging: ImagingServiceConfig = Field(default_factory=ImagingServiceConfig)

    driver_catalog: list[DriverCatalogEntry] = Field(
        default_factory=lambda: list(DEFAULT_DRIVER_CATALOG),
        description="Driver subtrees injected into both nested images",
    )
    language_abbreviations: dict[str, str] = Field(
        default_factory=dict,
        description="Extra language name -> abbreviation pairs for output naming",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper_v = v.strip().upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return upper_v

    @field_validator("candidate_directory", "output_directory", "work_directory")
    @classmethod
    def expand_user_paths(cls, v: Path) -> Path:
        return v.expanduser()

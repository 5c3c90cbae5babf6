"""Configuration package for vioinject."""

from vioinject.config.models import (
    DEFAULT_DRIVER_CATALOG,
    DriverCatalogEntry,
    ImageLayoutConfig,
    ImagingServiceConfig,
    MasteringToolConfig,
    UserConfigData,
)
from vioinject.config.user_config import UserConfig, create_user_config


__all__ = [
    "DEFAULT_DRIVER_CATALOG",
    "DriverCatalogEntry",
    "ImageLayoutConfig",
    "ImagingServiceConfig",
    "MasteringToolConfig",
    "UserConfig",
    "UserConfigData",
    "create_user_config",
]

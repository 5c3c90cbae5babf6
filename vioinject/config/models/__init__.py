"""Configuration models for vioinject."""

from .imaging import (
    DEFAULT_DRIVER_CATALOG,
    DriverCatalogEntry,
    ImageLayoutConfig,
    ImagingServiceConfig,
    MasteringToolConfig,
)
from .user import UserConfigData


__all__ = [
    "DEFAULT_DRIVER_CATALOG",
    "DriverCatalogEntry",
    "ImageLayoutConfig",
    "ImagingServiceConfig",
    "MasteringToolConfig",
    "UserConfigData",
]

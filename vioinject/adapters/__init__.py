"""Adapters for the external imaging service and mastering tool."""

from vioinject.adapters.imaging_adapter import (
    PowerShellImagingService,
    create_imaging_service,
)
from vioinject.adapters.oscdimg_adapter import (
    OscdimgTool,
    create_mastering_tool,
    find_oscdimg,
)


__all__ = [
    "OscdimgTool",
    "PowerShellImagingService",
    "create_imaging_service",
    "create_mastering_tool",
    "find_oscdimg",
]

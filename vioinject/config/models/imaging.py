"""Configuration models describing the image layout and external tools."""

from pathlib import Path

from pydantic import Field, model_validator

from vioinject.models.artifacts import DriverDescriptor
from vioinject.models.base import VioinjectBaseModel


class DriverCatalogEntry(VioinjectBaseModel):
    """Configurable form of a driver catalog entry."""

    path: str = Field(
        description="Path below the driver image root; may use {os} and {arch}"
    )
    name: str = Field(description="Human readable driver name")

    def to_descriptor(self) -> DriverDescriptor:
        return DriverDescriptor(relative_path_template=self.path, display_name=self.name)


DEFAULT_DRIVER_CATALOG: list[DriverCatalogEntry] = [
    DriverCatalogEntry(path="viostor/{os}/{arch}", name="VirtIO SCSI pass-through storage"),
    DriverCatalogEntry(path="vioscsi/{os}/{arch}", name="VirtIO SCSI storage"),
    DriverCatalogEntry(path="NetKVM/{os}/{arch}", name="VirtIO network"),
    DriverCatalogEntry(path="Balloon/{os}/{arch}", name="VirtIO memory balloon"),
    DriverCatalogEntry(path="vioserial/{os}/{arch}", name="VirtIO serial"),
    DriverCatalogEntry(path="viorng/{os}/{arch}", name="VirtIO RNG"),
    DriverCatalogEntry(path="qemupciserial/{os}/{arch}", name="QEMU PCI serial"),
    DriverCatalogEntry(path="vioinput/{os}/{arch}", name="VirtIO input"),
    DriverCatalogEntry(path="pvpanic/{os}/{arch}", name="QEMU pvpanic"),
    DriverCatalogEntry(path="qxldod/{os}/{arch}", name="QXL display"),
]


class ImageLayoutConfig(VioinjectBaseModel):
    """Where things live inside the primary image and the driver image."""

    install_image: str = Field(
        default="sources/install.wim",
        description="Nested installed-system image, relative to the image root",
    )
    boot_image: str = Field(
        default="sources/boot.wim",
        description="Nested setup-environment image, relative to the image root",
    )
    boot_image_index: int = Field(
        default=2,
        ge=1,
        description="Index of the setup environment inside the boot image",
    )
    recovery_image_index: int = Field(
        default=1,
        ge=1,
        description="Index of the recovery environment; never modified",
    )
    legacy_boot_asset: str = Field(default="boot/etfsboot.com")
    uefi_boot_asset: str = Field(default="efi/microsoft/boot/efisys.bin")
    driver_os: str = Field(default="w11", description="OS folder in the driver image")
    driver_arch: str = Field(
        default="amd64", description="Architecture folder in the driver image"
    )
    payload_file_name: str = Field(
        default="virtio-win-guest-tools.exe",
        description="File name the payload gets inside the installed system",
    )

    @model_validator(mode="after")
    def validate_boot_index(self) -> "ImageLayoutConfig":
        if self.boot_image_index == self.recovery_image_index:
            raise ValueError(
                f"boot_image_index {self.boot_image_index} is the recovery "
                "environment and must not be modified"
            )
        return self


class MasteringToolConfig(VioinjectBaseModel):
    """Settings for the oscdimg image-mastering tool."""

    executable: Path | None = Field(
        default=None,
        description="Explicit path to oscdimg.exe; searched on PATH and in the ADK when unset",
    )
    udf_version: str = Field(default="102", description="UDF revision passed to oscdimg")


class ImagingServiceConfig(VioinjectBaseModel):
    """Settings for the PowerShell imaging service."""

    powershell: str = Field(default="powershell.exe")
    command_timeout: int = Field(
        default=3600,
        gt=0,
        description="Seconds to wait for a single imaging command",
    )

"""Protocol definition for the image-mastering tool."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass
class MasteringResult:
    """Exit status and captured output of one mastering run."""

    return_code: int
    output: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.return_code == 0


def format_boot_data(legacy_boot_asset: Path, uefi_boot_asset: Path) -> str:
    """Boot descriptor with one legacy (BIOS) and one UEFI boot entry.

    Each entry names its platform id (``p0`` BIOS, ``pEF`` UEFI), no
    emulation (``e``) and the boot sector file (``b<path>``).
    """
    return f"2#p0,e,b{legacy_boot_asset}#pEF,e,b{uefi_boot_asset}"


@runtime_checkable
class MasteringToolProtocol(Protocol):
    """Builds a bootable ISO9660/UDF image from a directory tree."""

    def build_image(
        self,
        source_dir: Path,
        destination: Path,
        volume_label: str,
        boot_data: str,
    ) -> MasteringResult:
        """Build ``destination`` from ``source_dir``.

        Args:
            source_dir: Directory tree to master
            destination: Output image path
            volume_label: Volume label, at most 32 characters
            boot_data: Boot configuration descriptor

        Returns:
            MasteringResult with the tool's exit code and output lines
        """
        ...

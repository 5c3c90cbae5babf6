"""Protocol definition for the OS imaging service."""

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ImagingServiceProtocol(Protocol):
    """Mounting and servicing of container images and nested images.

    Container images are sector-addressable archives (ISO) attached read-only.
    Nested images are index-addressable file-tree images (WIM) stored inside a
    container, mounted writable into a directory.
    """

    def mount_container(self, image_path: Path) -> Path:
        """Attach a container image read-only.

        Returns:
            Root directory of the attached image

        Raises:
            MountError: If the image cannot be attached
        """
        ...

    def dismount_container(self, image_path: Path) -> None:
        """Detach a container image previously attached by ``mount_container``.

        Raises:
            MountError: If the image cannot be detached
        """
        ...

    def list_image_indexes(self, image_file: Path) -> list[int]:
        """List the image indexes present in a nested image file.

        Raises:
            MountError: If the image file cannot be read
        """
        ...

    def mount_nested_image(self, image_file: Path, index: int, mount_dir: Path) -> None:
        """Mount one index of a nested image writable at ``mount_dir``.

        Raises:
            MountError: If the image cannot be mounted
        """
        ...

    def add_driver(self, mount_dir: Path, driver_dir: Path) -> None:
        """Inject all drivers below ``driver_dir``, recursively, unsigned allowed.

        Raises:
            MountError: If the servicing command fails
        """
        ...

    def save_nested_image(self, mount_dir: Path) -> None:
        """Commit pending changes of the image mounted at ``mount_dir``.

        Raises:
            MountError: If the changes cannot be saved
        """
        ...

    def dismount_nested_image(self, mount_dir: Path) -> None:
        """Unmount the image at ``mount_dir``, discarding uncommitted changes.

        Raises:
            MountError: If the image cannot be unmounted
        """
        ...

    def get_file_version(self, path: Path) -> str | None:
        """Read the file version from an executable's binary metadata."""
        ...

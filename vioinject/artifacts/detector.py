"""Classify candidate files and select the artifacts for a run."""

from collections.abc import Callable, Iterable
from pathlib import Path

from vioinject.artifacts.version import (
    Version,
    format_version,
    parse_version,
    same_release,
    version_key,
)
from vioinject.config.models import DEFAULT_DRIVER_CATALOG, ImageLayoutConfig
from vioinject.core.errors import MountError, PayloadVersionMismatch, ValidationError
from vioinject.core.structlog_logger import get_struct_logger
from vioinject.models.artifacts import (
    ArtifactOverrides,
    ArtifactRole,
    ArtifactSelection,
    DetectedType,
    DriverDescriptor,
    SourceArtifact,
)
from vioinject.pipeline.lifecycle import ResourceKind, ResourceLifecycleManager
from vioinject.protocols.imaging_protocol import ImagingServiceProtocol


logger = get_struct_logger(__name__)

CONTAINER_EXTENSIONS = (".iso",)
PAYLOAD_PATTERNS = ("virtio-win-guest-tools*.exe", "virtio-win-gt-*.exe")
RAW_INSTALL_IMAGE = "sources/install.esd"


class ArtifactDetector:
    """Resolves the primary image, driver image and payload for a run.

    Classification mounts each candidate once and inspects its root; results
    are cached per path for the lifetime of the detector.
    """

    def __init__(
        self,
        imaging: ImagingServiceProtocol,
        driver_catalog: list[DriverDescriptor] | None = None,
        layout: ImageLayoutConfig | None = None,
    ) -> None:
        self.imaging = imaging
        self.driver_catalog = (
            driver_catalog
            if driver_catalog is not None
            else [entry.to_descriptor() for entry in DEFAULT_DRIVER_CATALOG]
        )
        self.layout = layout or ImageLayoutConfig()
        self._classified: dict[Path, DetectedType] = {}

    def classify_artifact(self, path: Path) -> DetectedType:
        """Mount ``path``, match its root against the known signatures, unmount.

        A candidate that cannot be mounted is ``UNKNOWN``. The mount is
        released even when inspection fails.
        """
        if path in self._classified:
            return self._classified[path]

        with ResourceLifecycleManager() as lifecycle:
            try:
                handle = lifecycle.acquire(
                    ResourceKind.CONTAINER_MOUNT,
                    lambda: self.imaging.mount_container(path),
                    lambda _resource: self.imaging.dismount_container(path),
                    label=path.name,
                )
            except MountError as e:
                logger.warning("candidate_mount_failed", path=str(path), error=str(e))
                detected = DetectedType.UNKNOWN
            else:
                detected = self._match_signatures(handle.mount_path)

        self._classified[path] = detected
        logger.info("artifact_classified", path=path.name, detected_type=detected.value)
        return detected

    def _match_signatures(self, root: Path) -> DetectedType:
        # Priority: driver image, then installer image, then raw install
        driver_roots = {descriptor.root_directory for descriptor in self.driver_catalog}
        if any((root / name).is_dir() for name in sorted(driver_roots)):
            return DetectedType.DRIVER_IMAGE

        install_image = root / self.layout.install_image
        boot_image = root / self.layout.boot_image
        if install_image.is_file() and boot_image.is_file():
            return DetectedType.INSTALLER_IMAGE

        if (root / RAW_INSTALL_IMAGE).is_file():
            return DetectedType.RAW_INSTALL

        return DetectedType.UNKNOWN

    def list_candidates(self, candidate_directory: Path) -> list[Path]:
        """Container image files in ``candidate_directory``, sorted by name."""
        if not candidate_directory.is_dir():
            return []
        return sorted(
            path
            for path in candidate_directory.iterdir()
            if path.is_file() and path.suffix.lower() in CONTAINER_EXTENSIONS
        )

    def classify_candidates(self, candidate_directory: Path) -> dict[Path, DetectedType]:
        return {
            path: self.classify_artifact(path)
            for path in self.list_candidates(candidate_directory)
        }

    def select_artifacts(
        self,
        candidate_directory: Path,
        overrides: ArtifactOverrides | None = None,
    ) -> ArtifactSelection:
        """Resolve every role, honoring explicit overrides first.

        Raises:
            ValidationError: If the primary or driver image cannot be resolved,
                or an override points at a missing file
        """
        overrides = overrides or ArtifactOverrides()

        primary = self._from_override(
            overrides.primary, ArtifactRole.PRIMARY_IMAGE, DetectedType.INSTALLER_IMAGE
        )
        driver = self._from_override(
            overrides.driver, ArtifactRole.DRIVER_IMAGE, DetectedType.DRIVER_IMAGE
        )

        if primary is None or driver is None:
            skip = {p.path for p in (primary, driver) if p is not None}
            classified = {
                path: self.classify_artifact(path)
                for path in self.list_candidates(candidate_directory)
                if path not in skip
            }
            if primary is None:
                primary = self._select_primary(classified)
            if driver is None:
                driver = self._select_driver(classified)

        if primary is None:
            raise ValidationError(
                f"No installer image found in {candidate_directory}; pass one with --iso",
                {"candidate_directory": str(candidate_directory)},
            )
        if driver is None:
            raise ValidationError(
                f"No VirtIO driver image found in {candidate_directory}; "
                "pass one with --drivers",
                {"candidate_directory": str(candidate_directory)},
            )

        selection = ArtifactSelection(primary=primary, driver=driver)

        if overrides.payload is not None:
            payload = self._from_override(
                overrides.payload,
                ArtifactRole.PAYLOAD_EXECUTABLE,
                DetectedType.PAYLOAD_EXECUTABLE,
            )
        else:
            payload = self._select_payload(candidate_directory)

        if payload is not None:
            if same_release(payload.version, driver.version):
                selection.payload = payload
            else:
                warning = PayloadVersionMismatch(
                    f"Guest tools {payload.name} ({payload.version_string}) do not "
                    f"match driver image {driver.name} ({driver.version_string}); "
                    "not embedding them",
                    payload_version=payload.version_string,
                    driver_version=driver.version_string,
                )
                logger.warning(
                    "payload_version_mismatch",
                    payload=payload.name,
                    payload_version=payload.version_string,
                    driver_version=driver.version_string,
                )
                selection.warnings.append(warning)

        logger.info(
            "artifacts_selected",
            primary=primary.name,
            driver=driver.name,
            payload=selection.payload.name if selection.payload else None,
        )
        return selection

    def _from_override(
        self, path: Path | None, role: ArtifactRole, detected_type: DetectedType
    ) -> SourceArtifact | None:
        if path is None:
            return None
        if not path.is_file():
            raise ValidationError(
                f"{role.value.replace('_', ' ').capitalize()} not found: {path}",
                {"path": str(path)},
            )
        if role is ArtifactRole.PAYLOAD_EXECUTABLE:
            version = self._payload_version(path)
        else:
            version = parse_version(path.name)
        logger.debug("artifact_override", role=role.value, path=str(path))
        return SourceArtifact(
            path=path, role=role, detected_type=detected_type, version=version
        )

    def _select_primary(
        self, classified: dict[Path, DetectedType]
    ) -> SourceArtifact | None:
        installers = [p for p, t in classified.items() if t is DetectedType.INSTALLER_IMAGE]
        for path, detected in classified.items():
            if detected is DetectedType.RAW_INSTALL:
                logger.warning(
                    "raw_install_image_ignored",
                    path=path.name,
                    hint="only images carrying sources/install.wim can be serviced",
                )
        if not installers:
            return None
        if len(installers) > 1:
            logger.info(
                "multiple_installer_images",
                chosen=installers[0].name,
                ignored=[p.name for p in installers[1:]],
            )
        return SourceArtifact(
            path=installers[0],
            role=ArtifactRole.PRIMARY_IMAGE,
            detected_type=DetectedType.INSTALLER_IMAGE,
            version=parse_version(installers[0].name),
        )

    def _select_driver(
        self, classified: dict[Path, DetectedType]
    ) -> SourceArtifact | None:
        drivers = sorted(p for p, t in classified.items() if t is DetectedType.DRIVER_IMAGE)
        best = _highest_version(drivers, lambda p: parse_version(p.name))
        if best is None:
            return None
        path, version = best
        return SourceArtifact(
            path=path,
            role=ArtifactRole.DRIVER_IMAGE,
            detected_type=DetectedType.DRIVER_IMAGE,
            version=version,
        )

    def _select_payload(self, candidate_directory: Path) -> SourceArtifact | None:
        if not candidate_directory.is_dir():
            return None
        found = sorted(
            {
                path
                for pattern in PAYLOAD_PATTERNS
                for path in candidate_directory.glob(pattern)
                if path.is_file()
            }
        )
        best = _highest_version(found, self._payload_version)
        if best is None:
            logger.debug("no_payload_found", directory=str(candidate_directory))
            return None
        path, version = best
        return SourceArtifact(
            path=path,
            role=ArtifactRole.PAYLOAD_EXECUTABLE,
            detected_type=DetectedType.PAYLOAD_EXECUTABLE,
            version=version,
        )

    def _payload_version(self, path: Path) -> Version:
        """File version metadata, falling back to the version in the file name."""
        version = parse_version(self.imaging.get_file_version(path))
        if version_key(version):
            return version
        return parse_version(path.name)


def _highest_version(
    paths: Iterable[Path], version_of: Callable[[Path], Version]
) -> tuple[Path, Version] | None:
    """Highest version among ``paths``; the earliest path wins ties."""
    best: tuple[Path, Version] | None = None
    for path in paths:
        version = version_of(path)
        if best is None or version_key(version) > version_key(best[1]):
            best = (path, version)
    if best is not None:
        logger.debug("highest_version", path=best[0].name, version=format_version(best[1]))
    return best

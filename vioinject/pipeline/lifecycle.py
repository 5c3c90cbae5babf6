"""Tracking and guaranteed release of external resources.

Every mount, nested-image mount and the working directory of a run is
registered here the moment it is acquired. ``release_all`` (also run on
context-manager exit) walks the held resources newest-first, so one cleanup
pass at the outermost scope is enough to detach everything, whatever phase
failed.
"""

import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import TracebackType

from vioinject.core.errors import MountError, ReleaseWarning
from vioinject.core.structlog_logger import get_struct_logger
from vioinject.models.artifacts import SourceArtifact


logger = get_struct_logger(__name__)


class ResourceKind(str, Enum):
    CONTAINER_MOUNT = "container_mount"
    NESTED_IMAGE_MOUNT = "nested_image_mount"
    WORK_DIRECTORY = "work_directory"


@dataclass(eq=False)
class MountedResource:
    """A held external resource.

    ``released`` only becomes True once the release callback returned, so a
    released resource is always detached.
    """

    kind: ResourceKind
    mount_path: Path
    release_fn: Callable[["MountedResource"], None] = field(repr=False)
    backing: "weakref.ref[SourceArtifact] | None" = field(default=None, repr=False)
    label: str = ""
    acquired_at: datetime = field(default_factory=datetime.now)
    released: bool = False

    @property
    def backing_artifact(self) -> SourceArtifact | None:
        return self.backing() if self.backing is not None else None

    def describe(self) -> str:
        name = self.label or str(self.mount_path)
        return f"{self.kind.value} {name}"


@dataclass
class ReleaseReport:
    """What a ``release_all`` pass achieved."""

    released: list[MountedResource] = field(default_factory=list)
    failures: list[tuple[MountedResource, Exception]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def warning(self) -> ReleaseWarning | None:
        if not self.failures:
            return None
        names = ", ".join(resource.describe() for resource, _ in self.failures)
        return ReleaseWarning(
            f"{len(self.failures)} resource(s) failed to release: {names}"
        )


class ResourceLifecycleManager:
    """Owns every resource acquired during one pipeline run."""

    def __init__(self) -> None:
        self._held: list[MountedResource] = []
        self.last_report: ReleaseReport | None = None

    @property
    def held(self) -> list[MountedResource]:
        """Currently held resources in acquisition order."""
        return list(self._held)

    def acquire(
        self,
        kind: ResourceKind,
        acquire_fn: Callable[[], Path],
        release_fn: Callable[[MountedResource], None],
        backing: SourceArtifact | None = None,
        label: str = "",
    ) -> MountedResource:
        """Acquire a resource and start tracking it.

        Nothing is recorded if ``acquire_fn`` raises; the exception
        propagates unchanged.

        Args:
            kind: Kind of resource
            acquire_fn: Performs the acquisition, returns the mount path
            release_fn: Detaches the resource; receives the handle
            backing: Source artifact the resource was created from
            label: Short name used in logs

        Returns:
            Handle for the held resource
        """
        mount_path = acquire_fn()
        resource = MountedResource(
            kind=kind,
            mount_path=mount_path,
            release_fn=release_fn,
            backing=weakref.ref(backing) if backing is not None else None,
            label=label,
        )
        self._held.append(resource)
        logger.debug(
            "resource_acquired",
            kind=kind.value,
            path=str(mount_path),
            held=len(self._held),
        )
        return resource

    def release(self, resource: MountedResource | None) -> None:
        """Release one resource ahead of the final cleanup pass.

        Idempotent: releasing an already released handle, or a handle that
        was never recorded, does nothing.

        Raises:
            MountError: If the release callback fails; the resource stays held
        """
        if resource is None or resource.released:
            return
        if not any(held is resource for held in self._held):
            return

        try:
            resource.release_fn(resource)
        except MountError:
            raise
        except Exception as e:
            raise MountError(f"Failed to release {resource.describe()}: {e}") from e

        resource.released = True
        self._held = [held for held in self._held if held is not resource]
        logger.debug("resource_released", kind=resource.kind.value, held=len(self._held))

    def release_all(self) -> ReleaseReport:
        """Release every held resource, most recently acquired first.

        A failing release does not stop the pass. Failed resources are
        reported, dropped from tracking, and left with ``released`` False.
        """
        report = ReleaseReport()
        while self._held:
            resource = self._held.pop()
            try:
                resource.release_fn(resource)
            except Exception as e:
                report.failures.append((resource, e))
                logger.warning(
                    "resource_release_failed",
                    resource=resource.describe(),
                    error=str(e),
                )
                continue
            resource.released = True
            report.released.append(resource)

        if report.failures:
            logger.warning(
                "release_incomplete",
                released=len(report.released),
                failed=len(report.failures),
            )
        elif report.released:
            logger.debug("all_resources_released", released=len(report.released))

        self.last_report = report
        return report

    def __enter__(self) -> "ResourceLifecycleManager":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release_all()

"""Driver injection pipeline: from selected artifacts to a bootable image."""

import logging
import shutil
import time
import uuid
from collections.abc import Callable, Mapping
from pathlib import Path

from vioinject.artifacts.naming import OUTPUT_EXTENSION, compute_volume_label
from vioinject.config.models import DEFAULT_DRIVER_CATALOG, ImageLayoutConfig
from vioinject.core.errors import (
    BuildError,
    CopyError,
    InjectionWarning,
    MountError,
    PipelineError,
    VerificationError,
    WorkspaceError,
)
from vioinject.core.file_operations import clear_read_only, copy_tree, remove_tree
from vioinject.models.artifacts import (
    ArtifactSelection,
    DriverDescriptor,
    OutputArtifact,
    SourceArtifact,
)
from vioinject.models.results import PhaseRecord, PipelineResult
from vioinject.pipeline.context import PipelineContext
from vioinject.pipeline.lifecycle import (
    MountedResource,
    ReleaseReport,
    ResourceKind,
    ResourceLifecycleManager,
)
from vioinject.pipeline.phases import (
    PHASE_SEQUENCE,
    PhaseOutcome,
    PhaseStatus,
    PipelinePhase,
)
from vioinject.protocols.imaging_protocol import ImagingServiceProtocol
from vioinject.protocols.mastering_protocol import (
    MasteringToolProtocol,
    format_boot_data,
)


logger = logging.getLogger(__name__)

SETUP_SCRIPTS_DIRECTORY = Path("Windows/Setup/Scripts")
SETUP_COMPLETE_SCRIPT = "SetupComplete.cmd"
PAYLOAD_INSTALL_ARGUMENTS = "/install /quiet /norestart"


def render_setup_complete(payload_file_name: str, with_header: bool = True) -> str:
    """Post-install script running the payload once, silently, without reboot."""
    lines = ["@echo off"] if with_header else []
    lines += [
        "rem Install the VirtIO guest tools after Windows setup completes",
        f'if exist "%WINDIR%\\{payload_file_name}" (',
        f'    start "" /wait "%WINDIR%\\{payload_file_name}" {PAYLOAD_INSTALL_ARGUMENTS}',
        ")",
    ]
    return "\n".join(lines) + "\n"


PhaseHandler = Callable[[PipelineContext], PhaseOutcome]


class DriverInjectionPipeline:
    """Runs the fixed phase sequence against one artifact selection.

    Every external resource is acquired through a per-run
    ``ResourceLifecycleManager`` whose cleanup pass runs however the run
    ends. The working directory is the first resource acquired, so it is
    released last; releasing it deletes the directory unless the run failed.
    """

    def __init__(
        self,
        imaging: ImagingServiceProtocol,
        mastering_tool: MasteringToolProtocol,
        work_directory: Path,
        output_directory: Path,
        layout: ImageLayoutConfig | None = None,
        driver_catalog: list[DriverDescriptor] | None = None,
        language_abbreviations: Mapping[str, str] | None = None,
    ) -> None:
        self.imaging = imaging
        self.mastering_tool = mastering_tool
        self.work_directory = work_directory
        self.output_directory = output_directory
        self.layout = layout or ImageLayoutConfig()
        self.driver_catalog = (
            driver_catalog
            if driver_catalog is not None
            else [entry.to_descriptor() for entry in DEFAULT_DRIVER_CATALOG]
        )
        self.language_abbreviations = dict(language_abbreviations or {})
        self._handlers: dict[PipelinePhase, PhaseHandler] = {
            PipelinePhase.MOUNT_SOURCES: self._mount_sources,
            PipelinePhase.EXTRACT_PRIMARY_CONTENTS: self._extract_primary_contents,
            PipelinePhase.VERIFY_BOOT_ASSETS: self._verify_boot_assets,
            PipelinePhase.INJECT_INSTALLATION_IMAGE: self._inject_installation_image,
            PipelinePhase.EMBED_POST_INSTALL_PAYLOAD: self._embed_post_install_payload,
            PipelinePhase.COMMIT_INSTALLATION_IMAGE: self._commit_installation_image,
            PipelinePhase.INJECT_BOOT_ENVIRONMENT_IMAGE: self._inject_boot_environment_image,
            PipelinePhase.BUILD_OUTPUT_ARTIFACT: self._build_output_artifact,
        }

    def run(self, selection: ArtifactSelection) -> PipelineResult:
        """Run every phase in order against ``selection``.

        Phase failures end the run and are reported on the result; they are
        not raised. Anything else (including KeyboardInterrupt) propagates
        after cleanup, with the working directory kept for inspection.

        Returns:
            PipelineResult describing every phase, warnings and the output
        """
        run_id = uuid.uuid4().hex[:8]
        logger.info(
            "Run %s: %s + %s -> %s",
            run_id,
            selection.primary.name,
            selection.driver.name,
            self.output_directory,
        )

        result = PipelineResult(success=False, work_directory=self.work_directory)
        lifecycle = ResourceLifecycleManager()
        context = PipelineContext(
            work_directory=self.work_directory,
            selection=selection,
            lifecycle=lifecycle,
            warnings=list(selection.warnings),
        )

        try:
            with lifecycle:
                try:
                    self._run_phases(context, result)
                except BaseException:
                    context.retain_work_directory = True
                    raise
                finally:
                    context.current_phase = PipelinePhase.FINALIZE
        finally:
            self._finalize(context, result, lifecycle.last_report)

        if result.failed_phase is None:
            result.success = True
            logger.info("Run %s completed: %s", run_id, result.output_path)
        else:
            logger.error("Run %s failed in %s", run_id, result.failed_phase)
        return result

    def _run_phases(self, context: PipelineContext, result: PipelineResult) -> None:
        for phase in PHASE_SEQUENCE:
            if phase is PipelinePhase.FINALIZE:
                break
            outcome = self._run_phase(phase, context)
            result.phases.append(outcome.to_record())
            if outcome.is_failure:
                assert outcome.error is not None
                context.retain_work_directory = True
                result.record_failure(outcome.error)
                return

    def _run_phase(self, phase: PipelinePhase, context: PipelineContext) -> PhaseOutcome:
        context.current_phase = phase
        logger.debug("Phase %s started", phase.value)
        start_time = time.time()

        try:
            outcome = self._handlers[phase](context)
        except PipelineError as e:
            outcome = PhaseOutcome.failed(phase, e)

        outcome.elapsed_time = time.time() - start_time
        if outcome.is_failure:
            logger.error("%s", outcome.error)
        elif outcome.status is PhaseStatus.SKIPPED:
            logger.info("Phase %s skipped: %s", phase.value, outcome.detail)
        else:
            logger.info(
                "Phase %s completed in %.2f seconds", phase.value, outcome.elapsed_time
            )
        return outcome

    def _finalize(
        self,
        context: PipelineContext,
        result: PipelineResult,
        report: ReleaseReport | None,
    ) -> None:
        """Fold the cleanup pass into the result."""
        if report is not None:
            result.resources_released = len(report.released)
            result.release_failures = len(report.failures)
            release_warning = report.warning()
            if release_warning is not None:
                context.warnings.append(release_warning)

        result.work_directory_retained = context.retain_work_directory
        result.warnings = [str(warning) for warning in context.warnings]
        if context.output is not None:
            result.output_name = context.output.name
            result.output_path = context.output.path

        detail = (
            f"work directory kept at {context.work_directory}"
            if context.retain_work_directory
            else "work directory removed"
        )
        result.phases.append(
            PhaseRecord(
                phase=PipelinePhase.FINALIZE.value,
                status=PhaseStatus.COMPLETED.value,
                detail=detail,
            )
        )

    def _warn(self, context: PipelineContext, warning: Warning) -> None:
        logger.warning("%s", warning)
        context.warnings.append(warning)

    # Resource helpers

    def _claim_work_directory(self, context: PipelineContext) -> MountedResource:
        work_directory = context.work_directory

        def acquire() -> Path:
            try:
                if work_directory.exists():
                    logger.info("Clearing stale work directory %s", work_directory)
                    remove_tree(work_directory)
                context.extraction_directory.mkdir(parents=True)
                context.nested_mount_directory.mkdir(parents=True)
            except OSError as e:
                raise WorkspaceError(
                    f"Cannot prepare work directory {work_directory}: {e}",
                    {"work_directory": str(work_directory)},
                ) from e
            return work_directory

        def release(resource: MountedResource) -> None:
            context.current_phase = PipelinePhase.FINALIZE
            if context.retain_work_directory:
                logger.warning(
                    "Keeping work directory for inspection: %s", resource.mount_path
                )
                return
            remove_tree(resource.mount_path)

        return context.lifecycle.acquire(
            ResourceKind.WORK_DIRECTORY, acquire, release, label=str(work_directory)
        )

    def _mount_container(
        self, context: PipelineContext, artifact: SourceArtifact
    ) -> MountedResource:
        return context.lifecycle.acquire(
            ResourceKind.CONTAINER_MOUNT,
            lambda: self.imaging.mount_container(artifact.path),
            lambda _resource: self.imaging.dismount_container(artifact.path),
            backing=artifact,
            label=artifact.name,
        )

    def _mount_nested(
        self, context: PipelineContext, image_file: Path, index: int
    ) -> MountedResource:
        mount_directory = context.nested_mount_directory

        def acquire() -> Path:
            self.imaging.mount_nested_image(image_file, index, mount_directory)
            return mount_directory

        return context.lifecycle.acquire(
            ResourceKind.NESTED_IMAGE_MOUNT,
            acquire,
            lambda resource: self.imaging.dismount_nested_image(resource.mount_path),
            backing=context.selection.primary,
            label=f"{image_file.name}:{index}",
        )

    def _inject_drivers(
        self, context: PipelineContext, image_label: str, mount_directory: Path
    ) -> tuple[int, int]:
        """Inject every catalog entry; missing or failing entries only warn."""
        assert context.driver_root is not None
        injected = skipped = 0
        for descriptor in self.driver_catalog:
            relative = descriptor.resolve(self.layout.driver_os, self.layout.driver_arch)
            driver_directory = context.driver_root / relative

            if not driver_directory.is_dir():
                skipped += 1
                self._warn(
                    context,
                    InjectionWarning(
                        f"{descriptor.display_name}: {relative.as_posix()} not found "
                        f"on the driver image, skipped for {image_label}",
                        driver=descriptor.display_name,
                        image=image_label,
                    ),
                )
                continue

            try:
                self.imaging.add_driver(mount_directory, driver_directory)
            except MountError as e:
                skipped += 1
                self._warn(
                    context,
                    InjectionWarning(
                        f"{descriptor.display_name}: injection into {image_label} "
                        f"failed: {e.message}",
                        driver=descriptor.display_name,
                        image=image_label,
                    ),
                )
                continue

            injected += 1
            logger.debug("Injected %s into %s", descriptor.display_name, image_label)

        logger.info(
            "%s: %d driver(s) injected, %d skipped", image_label, injected, skipped
        )
        return injected, skipped

    # Phases

    def _mount_sources(self, context: PipelineContext) -> PhaseOutcome:
        self._claim_work_directory(context)
        selection = context.selection
        context.driver_root = self._mount_container(context, selection.driver).mount_path
        context.primary_root = self._mount_container(context, selection.primary).mount_path
        return PhaseOutcome.completed(
            PipelinePhase.MOUNT_SOURCES,
            f"primary at {context.primary_root}, drivers at {context.driver_root}",
        )

    def _extract_primary_contents(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.EXTRACT_PRIMARY_CONTENTS
        assert context.primary_root is not None
        destination = context.extraction_directory

        copy_result = copy_tree(context.primary_root, destination)
        if not copy_result.success:
            return PhaseOutcome.failed(
                phase,
                CopyError(
                    f"Copying {context.primary_root} to {destination} failed: "
                    f"{copy_result.error}"
                ),
            )
        if copy_result.files_copied == 0:
            return PhaseOutcome.failed(
                phase, CopyError(f"No files were copied from {context.primary_root}")
            )

        try:
            clear_read_only(destination)
        except OSError as e:
            return PhaseOutcome.failed(
                phase, CopyError(f"Cannot make {destination} writable: {e}")
            )

        return PhaseOutcome.completed(
            phase,
            f"{copy_result.files_copied} files, "
            f"{copy_result.bytes_copied / (1024 * 1024):.1f} MB",
        )

    def _verify_boot_assets(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.VERIFY_BOOT_ASSETS
        root = context.extraction_directory
        missing = [
            asset
            for asset in (self.layout.legacy_boot_asset, self.layout.uefi_boot_asset)
            if not (root / asset).is_file()
        ]
        if missing:
            return PhaseOutcome.failed(
                phase,
                VerificationError(
                    f"Required boot asset(s) missing: {', '.join(missing)}",
                    {"missing": missing},
                ),
            )
        return PhaseOutcome.completed(phase)

    def _inject_installation_image(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.INJECT_INSTALLATION_IMAGE
        image_file = context.extraction_directory / self.layout.install_image
        if not image_file.is_file():
            return PhaseOutcome.failed(
                phase, MountError(f"Installation image not found: {image_file}")
            )

        indexes = self.imaging.list_image_indexes(image_file)
        if not indexes:
            return PhaseOutcome.failed(
                phase, MountError(f"No image indexes found in {image_file}")
            )

        # Single-edition images only; the first index is the one serviced
        context.install_mount = self._mount_nested(context, image_file, indexes[0])
        injected, skipped = self._inject_drivers(
            context, image_file.name, context.install_mount.mount_path
        )
        return PhaseOutcome.completed(
            phase, f"index {indexes[0]}: {injected} injected, {skipped} skipped"
        )

    def _embed_post_install_payload(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.EMBED_POST_INSTALL_PAYLOAD
        payload = context.selection.payload
        if payload is None:
            return PhaseOutcome.skipped(phase, "no guest tools payload selected")

        assert context.install_mount is not None
        system_root = context.install_mount.mount_path
        payload_file_name = self.layout.payload_file_name
        payload_destination = system_root / "Windows" / payload_file_name
        scripts_directory = system_root / SETUP_SCRIPTS_DIRECTORY
        script = scripts_directory / SETUP_COMPLETE_SCRIPT

        try:
            shutil.copy2(payload.path, payload_destination)
            scripts_directory.mkdir(parents=True, exist_ok=True)
            if script.exists():
                logger.info("Appending payload install to existing %s", script)
                content = "\n" + render_setup_complete(payload_file_name, with_header=False)
            else:
                content = render_setup_complete(payload_file_name)
            with script.open("a", encoding="ascii", newline="\r\n") as handle:
                handle.write(content)
        except OSError as e:
            return PhaseOutcome.failed(
                phase, CopyError(f"Embedding {payload.name} failed: {e}")
            )

        return PhaseOutcome.completed(phase, f"{payload.name} as {payload_file_name}")

    def _commit_installation_image(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.COMMIT_INSTALLATION_IMAGE
        assert context.install_mount is not None
        self.imaging.save_nested_image(context.install_mount.mount_path)
        context.lifecycle.release(context.install_mount)
        context.install_mount = None
        return PhaseOutcome.completed(phase)

    def _inject_boot_environment_image(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.INJECT_BOOT_ENVIRONMENT_IMAGE
        image_file = context.extraction_directory / self.layout.boot_image
        index = self.layout.boot_image_index
        if not image_file.is_file():
            return PhaseOutcome.failed(
                phase, MountError(f"Boot image not found: {image_file}")
            )

        indexes = self.imaging.list_image_indexes(image_file)
        if index not in indexes:
            return PhaseOutcome.failed(
                phase,
                MountError(
                    f"{image_file.name} has no index {index} (found {indexes})",
                    {"indexes": indexes},
                ),
            )

        handle = self._mount_nested(context, image_file, index)
        injected, skipped = self._inject_drivers(
            context, f"{image_file.name}:{index}", handle.mount_path
        )
        self.imaging.save_nested_image(handle.mount_path)
        context.lifecycle.release(handle)
        return PhaseOutcome.completed(
            phase, f"index {index}: {injected} injected, {skipped} skipped"
        )

    def _build_output_artifact(self, context: PipelineContext) -> PhaseOutcome:
        phase = PipelinePhase.BUILD_OUTPUT_ARTIFACT
        selection = context.selection
        source = context.extraction_directory

        label = compute_volume_label(
            selection.primary.name, selection.driver.name, self.language_abbreviations
        )
        output_path = self.output_directory / f"{label}{OUTPUT_EXTENSION}"
        boot_data = format_boot_data(
            source / self.layout.legacy_boot_asset,
            source / self.layout.uefi_boot_asset,
        )

        try:
            self.output_directory.mkdir(parents=True, exist_ok=True)
            if output_path.exists():
                logger.warning("Replacing existing output %s", output_path)
                output_path.unlink()
        except OSError as e:
            return PhaseOutcome.failed(
                phase, BuildError(f"Cannot prepare output {output_path}: {e}")
            )

        mastering = self.mastering_tool.build_image(source, output_path, label, boot_data)
        if not mastering.success:
            return PhaseOutcome.failed(
                phase,
                BuildError(
                    f"Image mastering exited with status {mastering.return_code}",
                    output=mastering.output,
                    return_code=mastering.return_code,
                ),
            )
        if not output_path.is_file():
            return PhaseOutcome.failed(
                phase,
                BuildError(
                    f"Image mastering reported success but {output_path} was not created",
                    output=mastering.output,
                    return_code=mastering.return_code,
                ),
            )

        context.output = OutputArtifact(name=label, path=output_path)
        return PhaseOutcome.completed(phase, str(output_path))


def create_pipeline(
    imaging: ImagingServiceProtocol,
    mastering_tool: MasteringToolProtocol,
    work_directory: Path,
    output_directory: Path,
    layout: ImageLayoutConfig | None = None,
    driver_catalog: list[DriverDescriptor] | None = None,
    language_abbreviations: Mapping[str, str] | None = None,
) -> DriverInjectionPipeline:
    """Create a driver injection pipeline."""
    return DriverInjectionPipeline(
        imaging=imaging,
        mastering_tool=mastering_tool,
        work_directory=work_directory,
        output_directory=output_directory,
        layout=layout,
        driver_catalog=driver_catalog,
        language_abbreviations=language_abbreviations,
    )

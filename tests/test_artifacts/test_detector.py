"""Tests for artifact classification and selection."""

from pathlib import Path

import pytest

from tests.fakes import (
    DRIVER_NAME,
    PAYLOAD_NAME,
    PRIMARY_NAME,
    FakeImagingService,
    make_driver_tree,
    make_primary_tree,
)
from vioinject.artifacts.detector import ArtifactDetector
from vioinject.core.errors import PayloadVersionMismatch, ValidationError
from vioinject.models.artifacts import (
    ArtifactOverrides,
    ArtifactRole,
    DetectedType,
    DriverDescriptor,
)


class TestClassifyArtifact:
    """Test ArtifactDetector.classify_artifact."""

    def test_installer_and_driver_images(self, fake_imaging, candidate_dir):
        """Test installer and driver images are recognized by their contents."""
        detector = ArtifactDetector(fake_imaging)

        assert (
            detector.classify_artifact(candidate_dir / PRIMARY_NAME)
            is DetectedType.INSTALLER_IMAGE
        )
        assert (
            detector.classify_artifact(candidate_dir / DRIVER_NAME)
            is DetectedType.DRIVER_IMAGE
        )
        assert fake_imaging.attached == []

    def test_driver_signature_beats_installer_signature(self, tmp_path):
        """Test an image carrying both signatures classifies as a driver image."""
        image = tmp_path / "combined.iso"
        image.write_bytes(b"iso")
        root = make_primary_tree(tmp_path / "root")
        make_driver_tree(root, drivers=["NetKVM"])
        imaging = FakeImagingService(containers={image: root})

        assert ArtifactDetector(imaging).classify_artifact(image) is (
            DetectedType.DRIVER_IMAGE
        )

    def test_raw_install_image(self, tmp_path):
        """Test an image with only install.esd is a raw install image."""
        image = tmp_path / "esd.iso"
        image.write_bytes(b"iso")
        root = tmp_path / "root"
        (root / "sources").mkdir(parents=True)
        (root / "sources" / "install.esd").write_bytes(b"esd")
        imaging = FakeImagingService(containers={image: root})

        assert ArtifactDetector(imaging).classify_artifact(image) is (
            DetectedType.RAW_INSTALL
        )

    def test_unknown_contents(self, tmp_path):
        """Test an image without any signature is unknown and is detached."""
        image = tmp_path / "data.iso"
        image.write_bytes(b"iso")
        root = tmp_path / "root"
        root.mkdir()
        (root / "readme.txt").write_text("hello")
        imaging = FakeImagingService(containers={image: root})

        assert ArtifactDetector(imaging).classify_artifact(image) is DetectedType.UNKNOWN
        assert imaging.attached == []

    def test_mount_failure_is_unknown(self, tmp_path):
        """Test a candidate that cannot be mounted is unknown, not an error."""
        image = tmp_path / "broken.iso"
        image.write_bytes(b"iso")
        imaging = FakeImagingService()

        assert ArtifactDetector(imaging).classify_artifact(image) is DetectedType.UNKNOWN
        assert "dismount_container" not in imaging.operations()

    def test_every_mount_is_released(self, fake_imaging, candidate_dir):
        """Test classification pairs each mount with a dismount."""
        detector = ArtifactDetector(fake_imaging)
        detector.classify_candidates(candidate_dir)

        operations = fake_imaging.operations()
        assert operations.count("mount_container") == 2
        assert operations.count("dismount_container") == 2
        assert fake_imaging.attached == []

    def test_dismount_failure_does_not_escape(self, fake_imaging, candidate_dir):
        """Test a failing dismount is reported by cleanup, not raised."""
        fake_imaging.fail_on["dismount_container"] = "device busy"
        detector = ArtifactDetector(fake_imaging)

        assert (
            detector.classify_artifact(candidate_dir / DRIVER_NAME)
            is DetectedType.DRIVER_IMAGE
        )

    def test_empty_catalog_has_no_driver_signature(self, fake_imaging, candidate_dir):
        """Test an explicitly empty catalog is kept and matches no driver image."""
        detector = ArtifactDetector(fake_imaging, driver_catalog=[])

        assert detector.driver_catalog == []
        assert (
            detector.classify_artifact(candidate_dir / DRIVER_NAME)
            is DetectedType.UNKNOWN
        )

    def test_configured_catalog_drives_signature(self, tmp_path):
        """Test the driver signature follows the configured catalog roots."""
        image = tmp_path / "drivers.iso"
        image.write_bytes(b"iso")
        root = make_driver_tree(tmp_path / "root", drivers=["NetKVM"])
        imaging = FakeImagingService(containers={image: root})

        network_only = [DriverDescriptor("NetKVM/{os}/{arch}", "VirtIO network")]
        input_only = [DriverDescriptor("vioinput/{os}/{arch}", "VirtIO input")]

        assert ArtifactDetector(imaging, driver_catalog=network_only).classify_artifact(
            image
        ) is DetectedType.DRIVER_IMAGE
        assert ArtifactDetector(imaging, driver_catalog=input_only).classify_artifact(
            image
        ) is DetectedType.UNKNOWN

    def test_results_are_cached(self, fake_imaging, candidate_dir):
        """Test a path is only mounted once per detector."""
        detector = ArtifactDetector(fake_imaging)
        detector.classify_artifact(candidate_dir / PRIMARY_NAME)
        detector.classify_artifact(candidate_dir / PRIMARY_NAME)

        assert fake_imaging.operations().count("mount_container") == 1


class TestSelectArtifacts:
    """Test ArtifactDetector.select_artifacts."""

    def test_selects_primary_and_driver(self, fake_imaging, candidate_dir):
        """Test both mandatory roles are resolved from the candidate directory."""
        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.primary.path == candidate_dir / PRIMARY_NAME
        assert selection.primary.role == ArtifactRole.PRIMARY_IMAGE
        assert selection.driver.path == candidate_dir / DRIVER_NAME
        assert selection.driver.version == (0, 1, 285)
        assert selection.payload is None
        assert selection.warnings == []

    def test_highest_driver_version_wins(self, fake_imaging, candidate_dir, tmp_path):
        """Test 0.1.285 is chosen over 0.1.240 regardless of listing order."""
        older = candidate_dir / "virtio-win-0.1.240.iso"
        older.write_bytes(b"iso")
        fake_imaging.containers[older] = make_driver_tree(tmp_path / "older_root")

        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.driver.path.name == DRIVER_NAME
        assert selection.driver.version == (0, 1, 285)

    def test_equal_versions_break_ties_by_path(self, fake_imaging, candidate_dir, tmp_path):
        """Test the lexicographically first path wins a version tie."""
        twin = candidate_dir / "a-virtio-win-0.1.285.iso"
        twin.write_bytes(b"iso")
        fake_imaging.containers[twin] = make_driver_tree(tmp_path / "twin_root")

        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.driver.path == twin

    def test_missing_primary_raises(self, fake_imaging, candidate_dir):
        """Test an unresolved primary image is a validation error."""
        (candidate_dir / PRIMARY_NAME).unlink()

        with pytest.raises(ValidationError, match="No installer image found"):
            ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

    def test_missing_driver_raises(self, fake_imaging, candidate_dir):
        """Test an unresolved driver image is a validation error."""
        (candidate_dir / DRIVER_NAME).unlink()

        with pytest.raises(ValidationError, match="No VirtIO driver image found"):
            ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

    def test_raw_install_is_not_a_primary(self, tmp_path):
        """Test an install.esd-only image cannot serve as the primary image."""
        candidates = tmp_path / "c"
        candidates.mkdir()
        esd_image = candidates / "Win11_esd.iso"
        driver_image = candidates / DRIVER_NAME
        esd_image.write_bytes(b"iso")
        driver_image.write_bytes(b"iso")
        esd_root = tmp_path / "esd"
        (esd_root / "sources").mkdir(parents=True)
        (esd_root / "sources" / "install.esd").write_bytes(b"esd")
        imaging = FakeImagingService(
            containers={
                esd_image: esd_root,
                driver_image: make_driver_tree(tmp_path / "drv"),
            }
        )

        with pytest.raises(ValidationError):
            ArtifactDetector(imaging).select_artifacts(candidates)

    def test_overrides_skip_classification(self, fake_imaging, candidate_dir):
        """Test explicit paths are used as given without mounting them."""
        overrides = ArtifactOverrides(
            primary=candidate_dir / PRIMARY_NAME,
            driver=candidate_dir / DRIVER_NAME,
        )

        selection = ArtifactDetector(fake_imaging).select_artifacts(
            candidate_dir, overrides
        )

        assert selection.primary.path == candidate_dir / PRIMARY_NAME
        assert selection.driver.version == (0, 1, 285)
        assert "mount_container" not in fake_imaging.operations()

    def test_missing_override_raises(self, fake_imaging, candidate_dir):
        """Test an override pointing at a missing file is rejected."""
        overrides = ArtifactOverrides(primary=candidate_dir / "nope.iso")

        with pytest.raises(ValidationError, match="not found"):
            ArtifactDetector(fake_imaging).select_artifacts(candidate_dir, overrides)

    def test_only_missing_roles_are_resolved(self, fake_imaging, candidate_dir):
        """Test an explicit primary leaves the driver to auto-resolution."""
        overrides = ArtifactOverrides(primary=candidate_dir / PRIMARY_NAME)

        selection = ArtifactDetector(fake_imaging).select_artifacts(
            candidate_dir, overrides
        )

        assert selection.driver.path == candidate_dir / DRIVER_NAME
        mounted = [
            target
            for operation, target in fake_imaging.calls
            if operation == "mount_container"
        ]
        assert mounted == [str(candidate_dir / DRIVER_NAME)]


class TestPayloadSelection:
    """Test guest tools payload matching."""

    def test_matching_payload_is_selected(self, fake_imaging, candidate_dir):
        """Test a payload of the same release as the drivers is kept."""
        (candidate_dir / PAYLOAD_NAME).write_bytes(b"exe")

        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.payload is not None
        assert selection.payload.path == candidate_dir / PAYLOAD_NAME
        assert selection.payload.version == (0, 1, 285, 0)
        assert selection.payload.role == ArtifactRole.PAYLOAD_EXECUTABLE

    def test_mismatched_payload_is_excluded_with_warning(
        self, fake_imaging, candidate_dir
    ):
        """Test a 0.1.300 payload against 0.1.285 drivers is dropped, not fatal."""
        (candidate_dir / PAYLOAD_NAME).write_bytes(b"exe")
        fake_imaging.file_versions[PAYLOAD_NAME] = "0.1.300.0"

        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.payload is None
        assert len(selection.warnings) == 1
        warning = selection.warnings[0]
        assert isinstance(warning, PayloadVersionMismatch)
        assert warning.payload_version == "0.1.300.0"
        assert warning.driver_version == "0.1.285"

    def test_version_falls_back_to_file_name(self, fake_imaging, candidate_dir):
        """Test a payload without version metadata uses its file name."""
        payload = candidate_dir / "virtio-win-guest-tools-0.1.285.exe"
        payload.write_bytes(b"exe")

        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.payload is not None
        assert selection.payload.version == (0, 1, 285)

    def test_standalone_guest_tools_name(self, fake_imaging, candidate_dir):
        """Test the per-architecture guest tools installer is also recognized."""
        (candidate_dir / "virtio-win-gt-x64.exe").write_bytes(b"exe")
        fake_imaging.file_versions["virtio-win-gt-x64.exe"] = "0.1.285.1"

        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.payload is not None
        assert selection.payload.name == "virtio-win-gt-x64.exe"

    def test_payload_override(self, fake_imaging, candidate_dir, tmp_path):
        """Test an explicit payload is still checked against the drivers."""
        payload = tmp_path / "tools.exe"
        payload.write_bytes(b"exe")
        fake_imaging.file_versions["tools.exe"] = "0.1.240.0"

        selection = ArtifactDetector(fake_imaging).select_artifacts(
            candidate_dir, ArtifactOverrides(payload=payload)
        )

        assert selection.payload is None
        assert isinstance(selection.warnings[0], PayloadVersionMismatch)

    def test_no_payload_is_fine(self, fake_imaging, candidate_dir):
        """Test a missing payload is neither a warning nor an error."""
        selection = ArtifactDetector(fake_imaging).select_artifacts(candidate_dir)

        assert selection.payload is None
        assert selection.warnings == []


def test_list_candidates_only_returns_images(tmp_path: Path):
    """Test only .iso files are candidates, in sorted order."""
    (tmp_path / "b.iso").write_bytes(b"iso")
    (tmp_path / "a.ISO").write_bytes(b"iso")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "dir.iso").mkdir()

    detector = ArtifactDetector(FakeImagingService())

    assert [p.name for p in detector.list_candidates(tmp_path)] == ["a.ISO", "b.iso"]

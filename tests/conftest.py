"""Core test fixtures for the vioinject project."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from tests.fakes import (
    DRIVER_NAME,
    PAYLOAD_NAME,
    PRIMARY_NAME,
    FakeImagingService,
    FakeMasteringTool,
    make_driver_tree,
    make_primary_tree,
)
from vioinject.core.logging import configure_structlog


@pytest.fixture(scope="session", autouse=True)
def structured_logging() -> None:
    """Configure structlog over stdlib logging, as the CLI does."""
    configure_structlog(logging.DEBUG)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Undo handler changes made by ``setup_logging`` calls under test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def candidate_dir(tmp_path: Path) -> Path:
    """Candidate directory holding one installer image and one driver image."""
    directory = tmp_path / "candidates"
    directory.mkdir()
    (directory / PRIMARY_NAME).write_bytes(b"iso")
    (directory / DRIVER_NAME).write_bytes(b"iso")
    return directory


@pytest.fixture
def fake_imaging(tmp_path: Path, candidate_dir: Path) -> FakeImagingService:
    """Imaging service with the candidate images backed by prepared trees."""
    return FakeImagingService(
        containers={
            candidate_dir / PRIMARY_NAME: make_primary_tree(tmp_path / "primary_root"),
            candidate_dir / DRIVER_NAME: make_driver_tree(tmp_path / "driver_root"),
        },
        file_versions={PAYLOAD_NAME: "0.1.285.0"},
    )


@pytest.fixture
def fake_mastering() -> FakeMasteringTool:
    return FakeMasteringTool()

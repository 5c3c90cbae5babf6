"""Fixtures for CLI command tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import typer

from vioinject.cli import app
from vioinject.cli.commands import register_all_commands


@pytest.fixture(scope="session")
def cli_app() -> typer.Typer:
    """The application with every command registered exactly once."""
    if not app.registered_commands:
        register_all_commands(app)
    return app


@pytest.fixture
def isolated_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run commands from an empty directory with no user configuration."""
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("VIOINJECT_LOG_LEVEL", raising=False)
    # Wide enough that Rich tables do not wrap cell values
    monkeypatch.setenv("COLUMNS", "200")
    return workdir


@pytest.fixture
def no_logging_setup() -> Generator[None, None, None]:
    """Keep the CLI callback from replacing the test logging configuration."""
    with patch("vioinject.cli.app.setup_logging"):
        yield

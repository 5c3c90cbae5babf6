"""Tests for the oscdimg mastering adapter."""

from pathlib import Path
from unittest.mock import patch

import pytest

from vioinject.adapters.oscdimg_adapter import (
    OscdimgTool,
    create_mastering_tool,
    find_oscdimg,
)
from vioinject.config.models import MasteringToolConfig
from vioinject.core.errors import BuildError, ToolNotFoundError
from vioinject.protocols.mastering_protocol import (
    MasteringToolProtocol,
    format_boot_data,
)


BOOT_DATA = format_boot_data(Path("x/boot/etfsboot.com"), Path("x/efi/efisys.bin"))


class TestFormatBootData:
    """Test the boot descriptor string."""

    def test_two_entries_legacy_then_uefi(self):
        """Test the descriptor names both platforms in order."""
        assert format_boot_data(Path("a.com"), Path("b.bin")) == (
            "2#p0,e,ba.com#pEF,e,bb.bin"
        )


class TestOscdimgTool:
    """Test OscdimgTool argument building and execution."""

    def test_argument_order(self):
        """Test flags come in the positional order oscdimg expects."""
        tool = OscdimgTool(Path("oscdimg.exe"))

        args = tool.build_arguments(
            Path("src"), Path("out.iso"), "MicroWin11_25H2_Eng_x64_VIO285", BOOT_DATA
        )

        assert args == [
            "oscdimg.exe",
            "-m",
            "-o",
            "-u2",
            "-udfver102",
            "-lMicroWin11_25H2_Eng_x64_VIO285",
            f"-bootdata:{BOOT_DATA}",
            "src",
            "out.iso",
        ]

    def test_udf_version_is_configurable(self):
        """Test the UDF revision flag follows the configuration."""
        tool = OscdimgTool(Path("oscdimg.exe"), udf_version="250")

        args = tool.build_arguments(Path("s"), Path("d"), "L", BOOT_DATA)

        assert "-udfver250" in args

    def test_build_image_returns_exit_code_and_output(self):
        """Test stdout and stderr lines are both captured."""
        tool = OscdimgTool(Path("oscdimg.exe"))

        with patch(
            "vioinject.adapters.oscdimg_adapter.run_command",
            return_value=(3, ["Scanning source tree"], ["ERROR: bad boot sector"]),
        ) as mock_run:
            result = tool.build_image(Path("s"), Path("d.iso"), "L", BOOT_DATA)

        assert not result.success
        assert result.return_code == 3
        assert result.output == ["Scanning source tree", "ERROR: bad boot sector"]
        assert mock_run.call_args.args[0][0] == "oscdimg.exe"

    def test_build_image_start_failure(self):
        """Test a tool that cannot be started raises BuildError."""
        tool = OscdimgTool(Path("oscdimg.exe"))

        with (
            patch(
                "vioinject.adapters.oscdimg_adapter.run_command",
                side_effect=FileNotFoundError("oscdimg.exe"),
            ),
            pytest.raises(BuildError, match="Failed to start"),
        ):
            tool.build_image(Path("s"), Path("d.iso"), "L", BOOT_DATA)

    def test_implements_protocol(self):
        """Test OscdimgTool satisfies MasteringToolProtocol."""
        assert isinstance(OscdimgTool(Path("oscdimg.exe")), MasteringToolProtocol)


class TestFindOscdimg:
    """Test oscdimg discovery."""

    def test_configured_path(self, tmp_path):
        """Test an existing configured path is used as is."""
        exe = tmp_path / "oscdimg.exe"
        exe.write_bytes(b"MZ")

        assert find_oscdimg(exe) == exe

    def test_configured_path_missing(self, tmp_path):
        """Test a missing configured path is an error, not a fallback."""
        with pytest.raises(ToolNotFoundError, match="Configured oscdimg not found"):
            find_oscdimg(tmp_path / "missing.exe")

    def test_found_on_path(self):
        """Test PATH is searched when nothing is configured."""
        with patch(
            "vioinject.adapters.oscdimg_adapter.shutil.which",
            return_value="C:/tools/oscdimg.exe",
        ):
            assert find_oscdimg() == Path("C:/tools/oscdimg.exe")

    def test_found_in_adk(self, tmp_path):
        """Test the ADK install location is the last resort."""
        exe = tmp_path / "oscdimg.exe"
        exe.write_bytes(b"MZ")

        with (
            patch("vioinject.adapters.oscdimg_adapter.shutil.which", return_value=None),
            patch(
                "vioinject.adapters.oscdimg_adapter.ADK_OSCDIMG_PATHS",
                [tmp_path / "nope.exe", exe],
            ),
        ):
            assert find_oscdimg() == exe

    def test_not_found(self, tmp_path):
        """Test a missing tool raises ToolNotFoundError."""
        with (
            patch("vioinject.adapters.oscdimg_adapter.shutil.which", return_value=None),
            patch(
                "vioinject.adapters.oscdimg_adapter.ADK_OSCDIMG_PATHS",
                [tmp_path / "nope.exe"],
            ),
            pytest.raises(ToolNotFoundError, match="Windows ADK"),
        ):
            find_oscdimg()

    def test_create_mastering_tool(self, tmp_path):
        """Test the factory resolves the executable up front."""
        exe = tmp_path / "oscdimg.exe"
        exe.write_bytes(b"MZ")

        tool = create_mastering_tool(MasteringToolConfig(executable=exe, udf_version="201"))

        assert isinstance(tool, OscdimgTool)
        assert tool.executable == exe
        assert tool.udf_version == "201"

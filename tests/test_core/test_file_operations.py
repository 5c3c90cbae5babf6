"""Tests for tree copy and cleanup helpers."""

import stat
from pathlib import Path

from vioinject.core.file_operations import clear_read_only, copy_tree, remove_tree


def make_tree(root: Path) -> Path:
    (root / "sources").mkdir(parents=True)
    (root / "setup.exe").write_bytes(b"x" * 10)
    (root / "sources" / "install.wim").write_bytes(b"y" * 20)
    return root


class TestCopyTree:
    """Tests for copy_tree."""

    def test_copies_everything(self, tmp_path):
        """Test files and sizes are counted on the destination."""
        src = make_tree(tmp_path / "src")

        result = copy_tree(src, tmp_path / "dst")

        assert result.success
        assert result.files_copied == 2
        assert result.bytes_copied == 30
        assert (tmp_path / "dst" / "sources" / "install.wim").read_bytes() == b"y" * 20

    def test_merges_into_existing_directory(self, tmp_path):
        """Test an existing destination is merged, not rejected."""
        src = make_tree(tmp_path / "src")
        dst = tmp_path / "dst"
        dst.mkdir()
        (dst / "keep.txt").write_text("keep")

        result = copy_tree(src, dst)

        assert result.success
        assert (dst / "keep.txt").exists()
        assert result.files_copied == 3

    def test_missing_source_reported(self, tmp_path):
        """Test failures are returned on the result, not raised."""
        result = copy_tree(tmp_path / "missing", tmp_path / "dst")

        assert not result.success
        assert result.error
        assert result.speed_mbps == 0.0


class TestReadOnlyHandling:
    """Tests for clear_read_only and remove_tree."""

    def test_clear_read_only(self, tmp_path):
        """Test read-only entries are made writable and counted."""
        root = make_tree(tmp_path / "tree")
        locked = root / "setup.exe"
        locked.chmod(stat.S_IREAD)

        changed = clear_read_only(root)

        assert changed == 1
        assert locked.stat().st_mode & stat.S_IWRITE

    def test_remove_tree_with_read_only_files(self, tmp_path):
        """Test read-only files do not block removal."""
        root = make_tree(tmp_path / "tree")
        (root / "sources" / "install.wim").chmod(stat.S_IREAD)

        remove_tree(root)

        assert not root.exists()

    def test_remove_missing_tree(self, tmp_path):
        """Test removing a missing directory is a no-op."""
        remove_tree(tmp_path / "missing")

"""目录清单测试"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest

from depkit.core import listing
from depkit.core.listing import FileEntry, build_manifest, manifest_to_toml
from tests.helpers import sha256_of


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    (root / "y").mkdir(parents=True)
    (root / "x.txt").write_bytes(b"x-content")
    (root / "y" / "z.txt").write_bytes(b"z-content")
    return root


class TestBuildManifest:
    def test_entries_sorted_with_directories(self, tree: Path) -> None:
        entries = build_manifest(tree)

        assert [e.path for e in entries] == ["x.txt", "y", "y/z.txt"]
        x, y, z = entries
        assert x.sha256 == sha256_of(b"x-content")
        assert z.sha256 == sha256_of(b"z-content")
        assert y.sha256 is None
        assert y.mode.startswith("d")
        assert x.mode.startswith("-")

    def test_mode_and_mtime(self, tree: Path) -> None:
        os.chmod(tree / "x.txt", 0o640)
        os.utime(tree / "x.txt", (0, 86400))

        entry = build_manifest(tree)[0]
        assert entry.mode == "-rw-r-----"
        assert entry.modification_time == "1970-01-02T00:00:00Z"

    def test_deterministic_across_pool_sizes(self, tree: Path) -> None:
        for i in range(20):
            (tree / f"f{i:02d}").write_bytes(str(i).encode())
        assert build_manifest(tree, max_workers=1) == build_manifest(tree, max_workers=8)

    def test_symlink_not_followed(self, tree: Path) -> None:
        os.symlink("x.txt", tree / "link")

        entry = next(e for e in build_manifest(tree) if e.path == "link")
        assert entry.mode.startswith("l")
        assert entry.sha256 is None

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert build_manifest(tmp_path) == []

    def test_root_must_be_directory(self, tree: Path) -> None:
        with pytest.raises(NotADirectoryError):
            build_manifest(tree / "x.txt")
        with pytest.raises(NotADirectoryError):
            build_manifest(tree / "missing")

    def test_read_failure_propagates(self, tree: Path) -> None:
        with patch("depkit.core.listing._sha256", side_effect=PermissionError("denied")):
            with pytest.raises(PermissionError, match="denied"):
                build_manifest(tree, max_workers=2)

    def test_single_failure_fails_whole_call(self, tree: Path) -> None:
        real = listing._sha256

        def flaky(path: str) -> str:
            if path.endswith("z.txt"):
                raise OSError("read error")
            return real(path)

        with patch("depkit.core.listing._sha256", side_effect=flaky):
            with pytest.raises(OSError, match="read error"):
                build_manifest(tree)


class TestSerialization:
    def test_to_dict_omits_missing_digest(self) -> None:
        entry = FileEntry("y", "drwxr-xr-x", "2024-01-01T00:00:00Z")
        assert entry.to_dict() == {
            "path": "y", "mode": "drwxr-xr-x", "modification-time": "2024-01-01T00:00:00Z",
        }

    def test_toml(self, tree: Path) -> None:
        data = tomllib.loads(manifest_to_toml(build_manifest(tree)))
        assert [f["path"] for f in data["files"]] == ["x.txt", "y", "y/z.txt"]
        assert "sha256" not in data["files"][1]

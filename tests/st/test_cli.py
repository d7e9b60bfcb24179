"""CLI 端到端测试，制品全部来自本地 file:// 或临时目录"""

from __future__ import annotations

import io
import tarfile
import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from depkit.cli import main
from depkit.utils.toml_io import save_toml
from tests.helpers import make_dependency


def _tgz(files: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, payload in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(payload))
    return buf.getvalue()


@pytest.fixture
def workspace(tmp_path: Path) -> dict[str, Path]:
    origin = tmp_path / "origin"
    origin.mkdir()
    deps = []
    for version in ("11.0.2", "11.0.9", "17.0.1"):
        content = _tgz({f"jdk-{version}/bin/java": version.encode()})
        path = origin / f"jdk-{version}.tar.gz"
        path.write_bytes(content)
        deps.append(make_dependency(path.as_uri(), content, version=version).to_dict())

    catalog = tmp_path / "buildpack.toml"
    save_toml(catalog, {"metadata": {"default-versions": {"jdk": "11.*"}, "dependencies": deps}})

    config = tmp_path / "depkit.yml"
    config.write_text(
        f"catalog: {catalog}\n"
        f"cache-path: {tmp_path / 'cache'}\n"
        f"download-path: {tmp_path / 'downloads'}\n"
        "stack: bionic\n"
    )
    return {"root": tmp_path, "config": config, "catalog": catalog}


@pytest.fixture
def run(workspace):
    runner = CliRunner()

    def _run(*args: str):
        with patch("depkit.cli.setup_logging"):
            return runner.invoke(main, ["--config", str(workspace["config"]), *args])

    return _run


class TestResolve:
    def test_default_version_from_catalog(self, run) -> None:
        result = run("resolve", "jdk")
        assert result.exit_code == 0, result.output
        assert result.output.startswith("jdk 11.0.9")

    def test_explicit_constraint(self, run) -> None:
        result = run("resolve", "jdk", "--version", ">=17")
        assert result.exit_code == 0, result.output
        assert result.output.startswith("jdk 17.0.1")

    def test_no_match(self, run) -> None:
        result = run("resolve", "jdk", "--version", "8.*")
        assert result.exit_code == 1
        assert "[NO_VALID_DEPENDENCY]" in result.output

    def test_other_stack(self, run) -> None:
        result = run("resolve", "jdk", "--stack", "jammy")
        assert result.exit_code == 1
        assert "stack=jammy" in result.output

    def test_bad_constraint(self, run) -> None:
        result = run("resolve", "jdk", "--version", ">=eleven")
        assert result.exit_code == 1
        assert "[CONSTRAINT_PARSE_ERROR]" in result.output

    def test_missing_catalog(self, run, tmp_path: Path) -> None:
        result = run("resolve", "jdk", "--catalog", str(tmp_path / "none.toml"))
        assert result.exit_code == 1
        assert "[CONFIG_ERROR]" in result.output


class TestFetchInstall:
    def test_fetch_to_output(self, run, workspace) -> None:
        out = workspace["root"] / "out"
        result = run("fetch", "jdk", "--version", "17.*", "-o", str(out))
        assert result.exit_code == 0, result.output
        assert (out / "jdk-17.0.1.tar.gz").is_file()
        assert "就绪: jdk@17.0.1" in result.output

    def test_fetch_populates_download_cache(self, run, workspace) -> None:
        result = run("fetch", "jdk")
        assert result.exit_code == 0, result.output
        sidecars = list((workspace["root"] / "downloads").glob("*.toml"))
        assert len(sidecars) == 1
        assert tomllib.loads(sidecars[0].read_text())["version"] == "11.0.9"

    def test_install(self, run, workspace) -> None:
        layer = workspace["root"] / "layers" / "jdk"
        result = run("install", "jdk", str(layer), "--strip-components", "1")
        assert result.exit_code == 0, result.output
        assert (layer / "bin" / "java").read_bytes() == b"11.0.9"
        assert (workspace["root"] / "layers" / "jdk.toml").is_file()


class TestArchiveCommands:
    def test_pack_then_extract(self, run, tmp_path: Path) -> None:
        src = tmp_path / "src"
        (src / "bin").mkdir(parents=True)
        (src / "bin" / "tool").write_text("tool")

        archive_path = tmp_path / "out" / "src.tgz"
        result = run("pack", str(src), str(archive_path), "--gzip")
        assert result.exit_code == 0, result.output

        dest = tmp_path / "dest"
        result = run("extract", str(archive_path), str(dest))
        assert result.exit_code == 0, result.output
        assert (dest / "bin" / "tool").read_text() == "tool"

    def test_extract_unknown_suffix(self, run, tmp_path: Path) -> None:
        path = tmp_path / "blob.bin"
        path.write_bytes(b"x")
        result = run("extract", str(path), str(tmp_path / "dest"))
        assert result.exit_code == 1
        assert "[VALIDATION_ERROR]" in result.output

    def test_extract_corrupt(self, run, tmp_path: Path) -> None:
        path = tmp_path / "broken.tar.gz"
        path.write_bytes(b"garbage" * 10)
        result = run("extract", str(path), str(tmp_path / "dest"))
        assert result.exit_code == 1
        assert "[ARCHIVE_FORMAT_ERROR]" in result.output


class TestManifest:
    def test_toml_output(self, run, tmp_path: Path) -> None:
        root = tmp_path / "tree"
        (root / "y").mkdir(parents=True)
        (root / "x.txt").write_text("x")
        (root / "y" / "z.txt").write_text("z")

        result = run("manifest", str(root), "--toml", "-w", "2")
        assert result.exit_code == 0, result.output
        files = tomllib.loads(result.output)["files"]
        assert [f["path"] for f in files] == ["x.txt", "y", "y/z.txt"]

    def test_text_output(self, run, tmp_path: Path) -> None:
        root = tmp_path / "single"
        root.mkdir()
        (root / "a").write_text("a")
        result = run("manifest", str(root))
        assert result.exit_code == 0, result.output
        assert result.output.rstrip().endswith("  a")


def test_version_flag() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.3.0" in result.output

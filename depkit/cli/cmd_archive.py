"""CLI — 归档展开与打包命令"""

from __future__ import annotations

from pathlib import Path

import click

from depkit.cli import handle_errors
from depkit.core import archive


def register(group: click.Group) -> None:
    group.add_command(extract)
    group.add_command(pack)


@click.command()
@click.argument("archive_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("destination")
@click.option(
    "--format", "-f", "fmt", default=None,
    type=click.Choice(sorted(archive.EXTRACTORS)),
    help="归档格式（默认按后缀推断）",
)
@click.option("--strip-components", default=0, show_default=True, help="去掉的前导路径段数")
@click.option("--confine", is_flag=True, help="拒绝越出目标目录的条目")
@handle_errors
def extract(
    archive_path: str, destination: str, fmt: str | None,
    strip_components: int, confine: bool,
) -> None:
    """展开归档到目标目录"""
    fmt = fmt or archive.detect_format(archive_path)
    Path(destination).mkdir(parents=True, exist_ok=True)
    with open(archive_path, "rb") as src:
        archive.extract(fmt, src, destination, strip_components, confine=confine)
    click.echo(f"已展开: {archive_path} -> {destination}")


@click.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False))
@click.argument("destination")
@click.option("--gzip", "use_gzip", is_flag=True, help="输出 gzip 压缩的 TAR")
@handle_errors
def pack(source: str, destination: str, use_gzip: bool) -> None:
    """把目录打包为 TAR"""
    Path(destination).parent.mkdir(parents=True, exist_ok=True)
    with open(destination, "wb") as out:
        if use_gzip:
            archive.create_tar_gz(out, source)
        else:
            archive.create_tar(out, source)
    click.echo(f"已打包: {source} -> {destination}")

"""CLI — 目录清单命令"""

from __future__ import annotations

import click

from depkit.cli import _cfg, handle_errors
from depkit.core.listing import build_manifest, manifest_to_toml


def register(group: click.Group) -> None:
    group.add_command(manifest)


@click.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.option("--workers", "-w", default=None, type=click.IntRange(min=1), help="并行度（默认取配置）")
@click.option("--toml", "as_toml", is_flag=True, help="以 TOML 输出")
@handle_errors
def manifest(root: str, workers: int | None, as_toml: bool) -> None:
    """生成目录清单（路径、权限、修改时间、sha256）"""
    entries = build_manifest(root, max_workers=workers or _cfg().max_workers)
    if as_toml:
        click.echo(manifest_to_toml(entries), nl=False)
        return
    for e in entries:
        click.echo(f"{e.mode}  {e.modification_time}  {e.sha256 or '-':64s}  {e.path}")

"""CLI — 依赖解析、拉取与安装命令"""

from __future__ import annotations

import shutil
from pathlib import Path

import click

from depkit.cli import _cfg, handle_errors
from depkit.core.config import CacheConfig
from depkit.core.dep import Catalog, Dependency, DependencyCache, DependencyResolver, load_catalog
from depkit.core.dep.cache import artifact_name
from depkit.core.layer import DependencyLayerContributor


def register(group: click.Group) -> None:
    group.add_command(resolve_dep)
    group.add_command(fetch)
    group.add_command(install)


_catalog_option = click.option("--catalog", default=None, help="依赖清单路径（默认取配置）")
_version_option = click.option("--version", "constraint", default=None, help="版本约束，如 '>=11 <12'")
_stack_option = click.option("--stack", default=None, help="stack 标识（默认取配置）")


def _resolve(id: str, constraint: str | None, stack: str | None, catalog_path: str | None) -> Dependency:
    cfg = _cfg()
    catalog: Catalog = load_catalog(catalog_path or cfg.catalog)
    if constraint is None:
        constraint = catalog.default_version(id)
    resolver = DependencyResolver(catalog.dependencies, stack if stack is not None else cfg.stack)
    return resolver.resolve(id, constraint)


def _cache_config(
    cache_path: str | None, download_path: str | None, user_agent: str | None,
) -> CacheConfig:
    config = _cfg().cache_config()
    if cache_path:
        config.cache_path = Path(cache_path)
    if download_path:
        config.download_path = Path(download_path)
    if user_agent is not None:
        config.user_agent = user_agent
    return config


def _cache_options(func):  # type: ignore[no-untyped-def]
    func = click.option("--user-agent", default=None, help="下载请求 User-Agent")(func)
    func = click.option("--download-path", default=None, help="下载缓存目录")(func)
    func = click.option("--cache-path", default=None, help="常驻缓存目录")(func)
    return func


@click.command(name="resolve")
@click.argument("id")
@_version_option
@_stack_option
@_catalog_option
@handle_errors
def resolve_dep(id: str, constraint: str | None, stack: str | None, catalog: str | None) -> None:
    """解析满足约束的最新版本依赖"""
    dep = _resolve(id, constraint, stack, catalog)
    click.echo(f"{dep.id} {dep.version}")
    click.echo(f"  name:   {dep.name}")
    click.echo(f"  uri:    {dep.uri}")
    click.echo(f"  sha256: {dep.sha256 or '(无)'}")
    click.echo(f"  stacks: {', '.join(dep.stacks)}")


@click.command()
@click.argument("id")
@_version_option
@_stack_option
@_catalog_option
@_cache_options
@click.option("--output", "-o", default=None, help="把制品复制到该目录")
@handle_errors
def fetch(
    id: str, constraint: str | None, stack: str | None, catalog: str | None,
    cache_path: str | None, download_path: str | None, user_agent: str | None,
    output: str | None,
) -> None:
    """拉取依赖制品（常驻缓存 -> 下载缓存 -> 远程）"""
    dep = _resolve(id, constraint, stack, catalog)
    cache = DependencyCache(_cache_config(cache_path, download_path, user_agent))
    with cache.artifact(dep) as artifact:
        if output:
            dest = Path(output) / artifact_name(dep.uri)
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as out:
                shutil.copyfileobj(artifact, out)
            click.echo(f"就绪: {dep} -> {dest}")
        elif isinstance(artifact.name, str):
            click.echo(f"就绪: {dep} -> {artifact.name}")
        else:
            click.echo(f"就绪: {dep} (无 sha256，未缓存；用 --output 保存)")


@click.command()
@click.argument("id")
@click.argument("layer_dir")
@_version_option
@_stack_option
@_catalog_option
@_cache_options
@click.option("--strip-components", default=0, show_default=True, help="去掉的前导路径段数")
@handle_errors
def install(
    id: str, layer_dir: str, constraint: str | None, stack: str | None, catalog: str | None,
    cache_path: str | None, download_path: str | None, user_agent: str | None,
    strip_components: int,
) -> None:
    """拉取依赖并展开到层目录（元数据一致时复用）"""
    dep = _resolve(id, constraint, stack, catalog)
    cache = DependencyCache(_cache_config(cache_path, download_path, user_agent))
    layer = DependencyLayerContributor(dep, cache).install(layer_dir, strip_components)
    click.echo(f"已安装: {dep} -> {layer}")

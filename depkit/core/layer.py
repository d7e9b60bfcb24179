"""层贡献器

层是一个目录加一份同名侧车元数据（<layer>.toml）。元数据与期望一致时
直接复用目录；否则清空目录、重新生成并写入新的元数据。

用法:
    cache = DependencyCache(config.cache_config())
    contributor = DependencyLayerContributor(dependency, cache)
    contributor.install("layers/jdk", strip_components=1)

    helper = HelperLayerContributor("bin/helper", "helper", {"version": "1.0.0"})
    helper.contribute("layers/helper", copy_helper)
"""

from __future__ import annotations

import logging
import shutil
import tomllib
from pathlib import Path
from typing import Any, BinaryIO, Callable

from depkit.core import archive
from depkit.core.dep.cache import DependencyCache, artifact_name
from depkit.core.dep.models import Dependency
from depkit.core.exceptions import CacheMetadataError
from depkit.utils.toml_io import load_toml, save_toml

logger = logging.getLogger(__name__)

LayerFunc = Callable[[Path], None]
DependencyLayerFunc = Callable[[BinaryIO, Path], None]


def layer_metadata_path(layer_dir: Path) -> Path:
    return layer_dir.with_name(layer_dir.name + ".toml")


class LayerContributor:
    """按期望元数据决定复用还是重建层目录"""

    def __init__(self, name: str, expected_metadata: dict[str, Any]) -> None:
        self.name = name
        self.expected_metadata = expected_metadata

    def read_metadata(self, layer_dir: Path) -> dict[str, Any] | None:
        path = layer_metadata_path(layer_dir)
        try:
            return load_toml(path)
        except tomllib.TOMLDecodeError as e:
            raise CacheMetadataError(f"无法解码层元数据 {path}: {e}") from e

    def contribute(self, layer_dir: str | Path, func: LayerFunc) -> Path:
        """元数据一致则复用，否则重建层目录后调用 func(layer_dir)

        func 抛出异常时不写元数据，下次调用会再次重建。
        """
        layer = Path(layer_dir)
        if layer.is_dir() and self.read_metadata(layer) == self.expected_metadata:
            logger.info("%s: 复用缓存层 %s", self.name, layer)
            return layer

        logger.info("%s: 贡献到层 %s", self.name, layer)
        if layer.exists():
            shutil.rmtree(layer)
        layer.mkdir(parents=True)

        func(layer)

        save_toml(layer_metadata_path(layer), self.expected_metadata)
        return layer


class DependencyLayerContributor:
    """以依赖描述为期望元数据，从制品缓存取制品贡献到层"""

    def __init__(self, dependency: Dependency, cache: DependencyCache) -> None:
        self.dependency = dependency
        self.cache = cache
        self.layer_contributor = LayerContributor(
            f"{dependency.name or dependency.id} {dependency.version}",
            dependency.to_dict(),
        )

    def contribute(self, layer_dir: str | Path, func: DependencyLayerFunc) -> Path:
        def _contribute(layer: Path) -> None:
            with self.cache.artifact(self.dependency) as artifact:
                func(artifact, layer)

        return self.layer_contributor.contribute(layer_dir, _contribute)

    def install(self, layer_dir: str | Path, strip_components: int = 0) -> Path:
        """把制品按其后缀对应的格式展开到层目录"""
        fmt = archive.detect_format(artifact_name(self.dependency.uri))

        def _extract(artifact: BinaryIO, layer: Path) -> None:
            archive.extract(fmt, artifact, layer, strip_components)

        return self.contribute(layer_dir, _extract)


class HelperLayerContributor:
    """把本地辅助程序文件贡献到层，以辅助程序信息（名称、版本等）为期望元数据"""

    def __init__(self, path: str | Path, name: str, info: dict[str, Any]) -> None:
        self.path = Path(path)
        self.layer_contributor = LayerContributor(name, info)

    def contribute(self, layer_dir: str | Path, func: DependencyLayerFunc) -> Path:
        """元数据不一致时打开辅助程序文件，调用 func(helper, layer)

        Raises:
            OSError: 辅助程序文件无法打开
        """
        def _contribute(layer: Path) -> None:
            with open(self.path, "rb") as helper:
                func(helper, layer)

        return self.layer_contributor.contribute(layer_dir, _contribute)

"""依赖清单加载

职责:
- 从 TOML（buildpack.toml 风格）或 YAML 清单文件加载依赖描述
- 读取 default-versions 段

清单结构（TOML 示例）:

    [metadata.default-versions]
    jdk = "11.*"

    [[metadata.dependencies]]
    id      = "jdk"
    name    = "JDK"
    version = "11.0.2"
    uri     = "https://example.com/jdk-11.0.2.tar.gz"
    sha256  = "..."
    stacks  = ["bionic"]

      [[metadata.dependencies.licenses]]
      type = "GPL-2.0 WITH Classpath-exception-2.0"
      uri  = "https://openjdk.java.net/legal/gplv2+ce.html"

顶层没有 metadata 表时，dependencies / default-versions 直接从顶层读取。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from depkit.core.dep.models import Dependency
from depkit.core.exceptions import ConfigError, ValidationError
from depkit.utils.toml_io import load_toml
from depkit.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """依赖清单"""

    dependencies: list[Dependency] = field(default_factory=list)
    default_versions: dict[str, str] = field(default_factory=dict)

    def default_version(self, id: str) -> str:
        """依赖的默认版本约束，未配置时返回空串（即任意版本）"""
        return self.default_versions.get(id, "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Catalog:
        metadata = data.get("metadata", data)
        if not isinstance(metadata, dict):
            raise ValidationError(f"metadata 必须是表结构: {metadata!r}")

        defaults = metadata.get("default-versions") or {}
        if not isinstance(defaults, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in defaults.items()
        ):
            raise ValidationError(f"default-versions 必须是字符串映射: {defaults!r}")

        entries = metadata.get("dependencies") or []
        if not isinstance(entries, list):
            raise ValidationError(f"dependencies 必须是列表: {entries!r}")

        dependencies = []
        errors = []
        for i, entry in enumerate(entries):
            try:
                dependencies.append(Dependency.from_dict(entry))
            except ValidationError as e:
                errors.append(f"dependencies[{i}]: {e}")
        if errors:
            raise ValidationError(f"清单包含 {len(errors)} 条无效依赖", details=errors)

        return cls(dependencies=dependencies, default_versions=dict(defaults))


def load_catalog(path: str | Path) -> Catalog:
    """按后缀加载清单文件（.toml / .yml / .yaml）

    Raises:
        ConfigError: 文件不存在、后缀不支持或内容无法解析
        ValidationError: 条目结构无效
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"清单文件不存在: {p}")

    suffix = p.suffix.lower()
    try:
        if suffix == ".toml":
            data = load_toml(p) or {}
        elif suffix in (".yml", ".yaml"):
            data = load_yaml(p)
        else:
            raise ConfigError(f"不支持的清单格式: {p}")
    except ConfigError:
        raise
    except (ValueError, OSError, yaml.YAMLError) as e:
        raise ConfigError(f"无法读取清单 {p}: {e}") from e

    catalog = Catalog.from_dict(data)
    logger.info("已加载 %d 个依赖 (%s)", len(catalog.dependencies), p)
    return catalog

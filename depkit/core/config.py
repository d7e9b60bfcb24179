"""集中配置管理

Config 描述 CLI 的全部可调项，支持从 YAML 文件加载 + 编程式覆盖。
核心操作不读全局状态：缓存相关参数通过 CacheConfig 显式传入，
并发度通过 max_workers 参数显式传入。
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from depkit.core.exceptions import ConfigError
from depkit.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/depkit.yml"


@dataclass
class CacheConfig:
    """制品缓存配置

    cache_path:    常驻缓存（随调用方分发，只读为主）
    download_path: 临时缓存（本次运行的下载目录）
    user_agent:    下载请求的 User-Agent
    proxies:       显式代理映射；None 表示按环境变量发现
    """

    cache_path: Path
    download_path: Path
    user_agent: str = ""
    proxies: dict[str, str] | None = None

    def __post_init__(self) -> None:
        self.cache_path = Path(self.cache_path)
        self.download_path = Path(self.download_path)

    @classmethod
    def for_project(cls, path: str | Path, name: str, version: str) -> CacheConfig:
        """默认布局: <path>/dependencies 为常驻缓存，系统临时目录为下载目录"""
        return cls(
            cache_path=Path(path) / "dependencies",
            download_path=Path(tempfile.gettempdir()),
            user_agent=f"{name}/{version}",
        )


@dataclass
class Config:
    """depkit 全局配置"""

    # 目录
    catalog: str = "deps/catalog.toml"
    cache_path: str = "deps/dependencies"
    download_path: str = ""

    # 解析
    stack: str = ""

    # 下载
    user_agent: str = ""
    proxies: dict[str, str] | None = None

    # 执行
    max_workers: int = 8
    log_level: str = "INFO"

    # 自定义扩展
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"无法加载配置文件 {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()} - {"extra"}
        matched = {k.replace("-", "_"): v for k, v in data.items()
                   if k.replace("-", "_") in known}
        extra = {k: v for k, v in data.items() if k.replace("-", "_") not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigError(f"max_workers 必须是正整数: {self.max_workers!r}")
        if self.proxies is not None and not isinstance(self.proxies, dict):
            raise ConfigError(f"proxies 必须是映射: {self.proxies!r}")

    def cache_config(self) -> CacheConfig:
        return CacheConfig(
            cache_path=Path(self.cache_path),
            download_path=Path(self.download_path or tempfile.gettempdir()),
            user_agent=self.user_agent,
            proxies=self.proxies,
        )


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current

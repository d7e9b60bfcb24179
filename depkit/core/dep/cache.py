"""依赖制品缓存

职责:
- 按三级顺序获取制品: 常驻缓存 -> 本次下载缓存 -> 远程下载
- 下载时流式计算 sha256 并校验
- 校验通过后写入侧车元数据（<sha256>.toml）

缓存目录布局（每一级相同）:
    <tier>/<sha256>.toml                 依赖描述
    <tier>/<sha256>/<basename(uri)>      制品内容

并发写入策略: 不加锁，最后写入者生效。制品先写入同目录临时文件，
校验通过后 os.replace 到位；侧车元数据在制品之后同样以原子 rename 写入。
因此侧车文件可见时，对应制品一定已经完整落盘。
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import os
import posixpath
import tempfile
import tomllib
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse

from depkit.core.config import CacheConfig
from depkit.core.dep.models import Dependency
from depkit.core.exceptions import (
    CacheMetadataError,
    DownloadError,
    IntegrityMismatchError,
    ValidationError,
)
from depkit.utils.net import open_url
from depkit.utils.toml_io import load_toml, save_toml

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def artifact_name(uri: str) -> str:
    """从 URI 解析制品文件名"""
    name = posixpath.basename(urlparse(uri).path)
    if not name:
        raise ValidationError(f"无法从 URI 解析文件名: {uri}")
    return name


class DependencyCache:
    """依赖制品缓存 - 常驻缓存优先，其次本次下载，最后远程拉取"""

    def __init__(self, config: CacheConfig) -> None:
        self.config = config

    @property
    def tiers(self) -> list[tuple[str, Path]]:
        return [
            ("常驻缓存", self.config.cache_path),
            ("下载缓存", self.config.download_path),
        ]

    def artifact(self, dependency: Dependency) -> BinaryIO:
        """返回依赖制品的只读二进制流，调用方负责关闭

        sha256 为空的依赖无法校验新鲜度，总是直接下载到匿名临时文件，
        且不写入任何缓存层。

        Raises:
            CacheMetadataError: 侧车元数据无法解码
            DownloadError: 下载失败
            IntegrityMismatchError: 下载内容校验失败（不会留下侧车元数据）
        """
        if not dependency.sha256:
            logger.warning("依赖 %s 没有 sha256，跳过缓存", dependency)
            logger.info("下载 %s", dependency.uri)
            return self._download_uncached(dependency)

        for label, tier in self.tiers:
            cached = self._lookup(tier, dependency)
            if cached is not None:
                logger.info("复用%s中的制品: %s -> %s", label, dependency, cached)
                return open(cached, "rb")

        logger.info("下载 %s", dependency.uri)
        path = self._download_verified(dependency)
        save_toml(self.metadata_path(self.config.download_path, dependency), dependency.to_dict())
        return open(path, "rb")

    # ------------------------------------------------------------------
    # 缓存层查找
    # ------------------------------------------------------------------

    @staticmethod
    def metadata_path(tier: Path, dependency: Dependency) -> Path:
        return tier / f"{dependency.sha256}.toml"

    @staticmethod
    def artifact_path(tier: Path, dependency: Dependency) -> Path:
        return tier / dependency.sha256 / artifact_name(dependency.uri)

    def read_metadata(self, tier: Path, dependency: Dependency) -> Dependency | None:
        """读取某一缓存层中的侧车元数据，不存在时返回 None"""
        path = self.metadata_path(tier, dependency)
        try:
            data = load_toml(path)
        except tomllib.TOMLDecodeError as e:
            raise CacheMetadataError(f"无法解码下载元数据 {path}: {e}") from e
        if data is None:
            return None
        try:
            return Dependency.from_dict(data)
        except ValidationError as e:
            raise CacheMetadataError(f"无法解码下载元数据 {path}: {e}") from e

    def _lookup(self, tier: Path, dependency: Dependency) -> Path | None:
        actual = self.read_metadata(tier, dependency)
        if actual is None:
            return None
        if actual != dependency:
            logger.debug("缓存元数据不一致，忽略: %s", self.metadata_path(tier, dependency))
            return None
        path = self.artifact_path(tier, dependency)
        if not path.is_file():
            logger.warning("缓存元数据存在但制品缺失: %s", path)
            return None
        return path

    # ------------------------------------------------------------------
    # 下载
    # ------------------------------------------------------------------

    def _download_verified(self, dependency: Dependency) -> Path:
        """下载到 <download_path>/<sha256>/ 并校验，返回制品路径"""
        dest = self.artifact_path(self.config.download_path, dependency)
        dest.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp = tempfile.mkstemp(dir=str(dest.parent), prefix=f".{dest.name}.", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as out:
                actual = self._download(dependency.uri, out)
            logger.info("校验 sha256: %s", dest.name)
            if actual != dependency.sha256:
                raise IntegrityMismatchError(str(dest), dependency.sha256, actual)
            os.replace(tmp, str(dest))
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                # 已被 rename 或从未创建
                pass
            raise

        logger.info("已保存: %s", dest)
        return dest

    def _download_uncached(self, dependency: Dependency) -> BinaryIO:
        out = tempfile.TemporaryFile(prefix="depkit-")
        try:
            self._download(dependency.uri, out)
            out.seek(0)
        except Exception:
            out.close()
            raise
        return out

    def _download(self, uri: str, out: BinaryIO) -> str:
        """把 uri 内容流式写入 out，返回内容的 sha256 十六进制摘要"""
        sha256 = hashlib.sha256()
        with open_url(
            uri, user_agent=self.config.user_agent, proxies=self.config.proxies,
        ) as resp:
            while True:
                try:
                    chunk = resp.read(CHUNK_SIZE)
                except (OSError, http.client.HTTPException) as e:
                    raise DownloadError(uri, f"读取响应失败: {e}") from e
                if not chunk:
                    break
                sha256.update(chunk)
                out.write(chunk)
        return sha256.hexdigest()

"""TOML 文件统一读写工具

缓存侧车元数据（<sha256>.toml）、层元数据与依赖清单都以 TOML 存储。
读取用标准库 tomllib，写入用 tomli_w；写入一律走 atomic_write。
"""

from __future__ import annotations

import logging
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

logger = logging.getLogger(__name__)


def atomic_write(path: Path, content: str | bytes) -> None:
    """原子写入文件：先写同目录临时文件再 rename，读者永远看不到半截内容

    参数:
        path: 目标文件路径
        content: 文本（按 UTF-8 编码）或字节

    异常:
        OSError: 文件写入或移动失败
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8") if isinstance(content, str) else content
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, str(path))
    except Exception:
        # 只捕获普通异常，不拦截 KeyboardInterrupt/SystemExit
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def load_toml(path: str | Path) -> dict[str, Any] | None:
    """读取 TOML 文件，文件不存在时返回 None

    异常:
        tomllib.TOMLDecodeError: TOML 格式错误
        OSError: 读取失败（不存在除外）
    """
    p = Path(path)
    try:
        with open(p, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.error("解析 TOML 文件失败: %s, 错误: %s", p, e)
        raise


def dump_toml(data: dict[str, Any]) -> str:
    """序列化为 TOML 文本"""
    return tomli_w.dumps(data)


def save_toml(path: str | Path, data: dict[str, Any]) -> None:
    """原子写入 TOML 文件，自动创建父目录"""
    atomic_write(Path(path), dump_toml(data))

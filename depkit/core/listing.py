"""目录文件清单

为目录树生成确定性的清单（路径、权限、修改时间、内容 sha256），
供调用方判断缓存是否仍然新鲜。

并发模型: 每个文件系统条目一个任务，提交到有界线程池；
任何一个任务失败，整个调用失败且不返回部分结果（未开始的任务被取消，
正在执行的任务跑完后结果被丢弃）。返回前按路径排序，与遍历顺序和完成时机无关。
"""

from __future__ import annotations

import hashlib
import logging
import os
import stat
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from depkit.utils.toml_io import dump_toml

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileEntry:
    """单个条目的元数据，sha256 仅普通文件有"""

    path: str
    mode: str
    modification_time: str
    sha256: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "path": self.path,
            "mode": self.mode,
            "modification-time": self.modification_time,
        }
        if self.sha256 is not None:
            data["sha256"] = self.sha256
        return data


def _raise(error: OSError) -> None:
    raise error


def _walk(root: str) -> Iterator[str]:
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        for name in dirnames + filenames:
            yield os.path.join(dirpath, name)


def _sha256(path: str) -> str:
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def _file_entry(root: str, path: str) -> FileEntry:
    st = os.lstat(path)
    mtime = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
    return FileEntry(
        path=os.path.relpath(path, root).replace(os.sep, "/"),
        mode=stat.filemode(st.st_mode),
        modification_time=mtime.strftime("%Y-%m-%dT%H:%M:%SZ"),
        sha256=_sha256(path) if stat.S_ISREG(st.st_mode) else None,
    )


def build_manifest(root: str | Path, max_workers: int | None = None) -> list[FileEntry]:
    """生成 root 下所有条目的清单（不含 root 本身），按 path 排序

    参数:
        root: 目录路径
        max_workers: 线程池大小，None 时使用 ThreadPoolExecutor 默认值

    软链接本身入清单（权限串以 l 开头），不跟随、不计算摘要。

    Raises:
        NotADirectoryError: root 不存在或不是目录
        OSError: 遍历、打开或读取任一条目失败
    """
    top = os.fspath(root)
    if not os.path.isdir(top):
        raise NotADirectoryError(f"不是目录: {top}")

    entries: list[FileEntry] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = []
        try:
            for path in _walk(top):
                futures.append(executor.submit(_file_entry, top, path))
            for future in as_completed(futures):
                entries.append(future.result())
        except Exception:
            for f in futures:
                f.cancel()
            raise

    entries.sort(key=lambda e: e.path)
    logger.debug("已生成清单: %s (%d 个条目)", top, len(entries))
    return entries


def manifest_to_toml(entries: list[FileEntry]) -> str:
    """序列化为 TOML，[[files]] 数组"""
    return dump_toml({"files": [e.to_dict() for e in entries]})

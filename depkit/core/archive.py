"""归档展开与打包

展开:
- extract_tar / extract_tar_gz / extract_tar_xz: 流式读取，源可以不可 seek
- extract_zip: 需要可 seek 的源，不可 seek 时先落到临时文件
- extract: 按格式名分发；detect_format 按文件后缀推断格式

strip_components 从每个条目名去掉前 N 段路径，段数不超过 N 的条目静默跳过，
用于剥掉打包惯例产生的单个顶层目录。

安全说明: 默认只做路径段剥离，不校验 ../ 或软链接目标是否逃出目标目录。
传入 confine=True 时，越界的条目会以 ArchiveFormatError 拒绝。

打包:
- create_tar / create_tar_gz: 按名称顺序深度优先遍历源目录，根目录本身不入包，
  文件内容流式写入
"""

from __future__ import annotations

import gzip
import logging
import lzma
import os
import shutil
import tarfile
import tempfile
import zipfile
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, Callable

from depkit.core.exceptions import ArchiveFormatError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o644

_TAR_ERRORS = (tarfile.TarError, EOFError, lzma.LZMAError, zlib.error)
_ZIP_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError, EOFError, zlib.error)

# 后缀 -> 格式，长后缀在前
_SUFFIX_FORMATS = (
    (".tar.gz", "tar.gz"),
    (".tgz", "tar.gz"),
    (".tar.xz", "tar.xz"),
    (".txz", "tar.xz"),
    (".tar", "tar"),
    (".zip", "zip"),
    (".jar", "zip"),
)


def stripped_path(name: str, destination: str | Path, strip_components: int) -> Path | None:
    """去掉条目名前 strip_components 段，返回目标路径；段数不足时返回 None"""
    components = name.rstrip("/").split("/")
    if len(components) <= strip_components:
        return None
    return Path(destination, *components[strip_components:])


def _check_confined(path: Path, destination: Path, name: str) -> None:
    root = os.path.normpath(os.path.abspath(destination))
    target = os.path.normpath(os.path.abspath(path))
    if target != root and not target.startswith(root + os.sep):
        raise ArchiveFormatError(f"条目 '{name}' 越出目标目录: {target}")


def _write_file(source: BinaryIO, path: Path, mode: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
    with open(path, "wb") as out:
        shutil.copyfileobj(source, out, CHUNK_SIZE)
    os.chmod(path, mode)


def _write_symlink(target: str, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
    if path.is_symlink() or path.exists():
        path.unlink()
    os.symlink(target, path)


# ---------------------------------------------------------------------------
# tar
# ---------------------------------------------------------------------------


def _extract_tar_stream(
    tf: tarfile.TarFile, destination: Path, strip_components: int, confine: bool,
) -> None:
    for member in tf:
        target = stripped_path(member.name, destination, strip_components)
        if target is None:
            logger.debug("跳过条目 (strip_components=%d): %s", strip_components, member.name)
            continue
        if confine:
            _check_confined(target, destination, member.name)

        if member.isdir():
            target.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
        elif member.issym():
            if confine:
                _check_confined(target.parent / member.linkname, destination, member.name)
            _write_symlink(member.linkname, target)
        elif member.islnk():
            source = stripped_path(member.linkname, destination, strip_components)
            if source is None or not source.is_file():
                raise ArchiveFormatError(f"硬链接 '{member.name}' 的目标不存在: {member.linkname}")
            target.parent.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
            shutil.copy2(source, target)
        elif member.isfile():
            data = tf.extractfile(member)
            if data is None:
                raise ArchiveFormatError(f"无法读取条目: {member.name}")
            _write_file(data, target, member.mode & 0o7777 or DEFAULT_FILE_MODE)
        else:
            logger.debug("跳过不支持的条目类型 %r: %s", member.type, member.name)


def _extract_tar(
    source: BinaryIO, mode: str, destination: str | Path,
    strip_components: int, confine: bool,
) -> None:
    dest = Path(destination)
    try:
        with tarfile.open(fileobj=source, mode=mode) as tf:
            _extract_tar_stream(tf, dest, strip_components, confine)
    except _TAR_ERRORS as e:
        raise ArchiveFormatError(f"无法读取 TAR 文件: {e}") from e


def extract_tar(
    source: BinaryIO, destination: str | Path, strip_components: int = 0,
    *, confine: bool = False,
) -> None:
    """把 TAR 流展开到 destination"""
    _extract_tar(source, "r|", destination, strip_components, confine)


def extract_tar_gz(
    source: BinaryIO, destination: str | Path, strip_components: int = 0,
    *, confine: bool = False,
) -> None:
    """把 gzip 压缩的 TAR 流展开到 destination"""
    _extract_tar(source, "r|gz", destination, strip_components, confine)


def extract_tar_xz(
    source: BinaryIO, destination: str | Path, strip_components: int = 0,
    *, confine: bool = False,
) -> None:
    """把 xz 压缩的 TAR 流展开到 destination"""
    _extract_tar(source, "r|xz", destination, strip_components, confine)


# ---------------------------------------------------------------------------
# zip
# ---------------------------------------------------------------------------


def _seekable(source: BinaryIO) -> BinaryIO:
    seekable = getattr(source, "seekable", None)
    if seekable is not None and seekable():
        return source
    spool = tempfile.TemporaryFile(prefix="depkit-zip-")
    shutil.copyfileobj(source, spool, CHUNK_SIZE)
    spool.seek(0)
    return spool


def extract_zip(
    source: BinaryIO, destination: str | Path, strip_components: int = 0,
    *, confine: bool = False,
) -> None:
    """把 ZIP 展开到 destination；文件权限取自 external_attr，缺省 0644"""
    dest = Path(destination)
    src = _seekable(source)
    try:
        with zipfile.ZipFile(src) as zf:
            for info in zf.infolist():
                target = stripped_path(info.filename, dest, strip_components)
                if target is None:
                    logger.debug("跳过条目 (strip_components=%d): %s", strip_components, info.filename)
                    continue
                if confine:
                    _check_confined(target, dest, info.filename)

                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
                    continue
                mode = (info.external_attr >> 16) & 0o7777 or DEFAULT_FILE_MODE
                with zf.open(info) as data:
                    _write_file(data, target, mode)
    except _ZIP_ERRORS as e:
        raise ArchiveFormatError(f"无法读取 ZIP 文件: {e}") from e
    finally:
        if src is not source:
            src.close()


# ---------------------------------------------------------------------------
# 分发
# ---------------------------------------------------------------------------

EXTRACTORS: dict[str, Callable[..., None]] = {
    "tar": extract_tar,
    "tar.gz": extract_tar_gz,
    "tar.xz": extract_tar_xz,
    "zip": extract_zip,
}


def detect_format(filename: str) -> str:
    """按文件后缀推断归档格式

    Raises:
        ValidationError: 无法识别的后缀
    """
    lower = filename.lower()
    for suffix, fmt in _SUFFIX_FORMATS:
        if lower.endswith(suffix):
            return fmt
    raise ValidationError(
        f"无法识别归档格式: {filename}，支持: {', '.join(s for s, _ in _SUFFIX_FORMATS)}"
    )


def extract(
    fmt: str, source: BinaryIO, destination: str | Path, strip_components: int = 0,
    *, confine: bool = False,
) -> None:
    """按格式名展开归档

    Raises:
        ValidationError: 格式不支持或 strip_components 为负
        ArchiveFormatError: 归档损坏或截断
        OSError: 写入目标目录失败
    """
    extractor = EXTRACTORS.get(fmt)
    if extractor is None:
        raise ValidationError(f"不支持的归档格式 '{fmt}'，可用: {list(EXTRACTORS)}")
    if strip_components < 0:
        raise ValidationError(f"strip_components 不能为负: {strip_components}")
    logger.info("展开 %s -> %s (strip_components=%d)", fmt, destination, strip_components)
    extractor(source, destination, strip_components, confine=confine)


# ---------------------------------------------------------------------------
# 打包
# ---------------------------------------------------------------------------


def _walk(directory: str) -> Iterator[str]:
    """深度优先、按名称排序遍历，不跟随软链接"""
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        yield entry.path
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(entry.path)


def create_tar(destination: BinaryIO, source: str | Path) -> None:
    """把 source 目录下的目录与文件写成 TAR 流

    条目名为相对 source 的路径，目录条目以 / 结尾（tarfile 写入时自动补齐）。
    """
    src = os.fspath(source)
    with tarfile.open(fileobj=destination, mode="w|", format=tarfile.PAX_FORMAT) as tf:
        for path in _walk(src):
            rel = os.path.relpath(path, src).replace(os.sep, "/")
            info = tf.gettarinfo(path, arcname=rel)
            if info is None:
                logger.debug("跳过无法打包的文件类型: %s", path)
                continue
            if info.isreg():
                with open(path, "rb") as f:
                    tf.addfile(info, f)
            else:
                tf.addfile(info)


def create_tar_gz(destination: BinaryIO, source: str | Path) -> None:
    """create_tar 外包一层 gzip 压缩"""
    with gzip.GzipFile(fileobj=destination, mode="wb") as gz:
        create_tar(gz, source)

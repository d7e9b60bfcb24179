"""测试辅助函数"""

from __future__ import annotations

import hashlib

from depkit.core.dep.models import Dependency, License


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def make_dependency(
    uri: str,
    content: bytes | None = None,
    *,
    id: str = "jdk",
    version: str = "11.0.2",
    stacks: tuple[str, ...] = ("bionic",),
    sha256: str | None = None,
    license_type: str = "GPL-2.0",
) -> Dependency:
    """构造依赖；给了 content 时 sha256 取其摘要"""
    if sha256 is None:
        sha256 = sha256_of(content) if content is not None else ""
    return Dependency(
        id=id,
        name=f"{id.upper()} {version}",
        version=version,
        uri=uri,
        sha256=sha256,
        stacks=stacks,
        licenses=(License(type=license_type, uri="https://example.com/license"),),
    )

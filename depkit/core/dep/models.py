"""依赖包数据模型

数据类:
- License: 许可证信息
- Dependency: 依赖包描述（目录清单条目，同时是缓存侧车元数据的内容）
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from depkit.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")

_STR_FIELDS = ("id", "name", "version", "uri", "sha256")
_KNOWN_KEYS = frozenset(_STR_FIELDS + ("stacks", "licenses"))


@dataclass(frozen=True)
class License:
    """依赖包分发所遵循的许可证，type 通常是 SPDX 短标识"""

    type: str = ""
    uri: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "uri": self.uri}

    @classmethod
    def from_dict(cls, data: Any) -> License:
        if not isinstance(data, dict):
            raise ValidationError(f"license 必须是表结构: {data!r}")
        for key in ("type", "uri"):
            if not isinstance(data.get(key, ""), str):
                raise ValidationError(f"license.{key} 必须是字符串: {data!r}")
        return cls(type=data.get("type", ""), uri=data.get("uri", ""))


@dataclass(frozen=True, eq=False)
class Dependency:
    """单个依赖包的描述

    sha256 为空表示没有完整性锚点，制品缓存会跳过所有缓存层。
    version 的语义化校验延迟到解析阶段（见 DependencyResolver）。
    """

    id: str
    name: str
    version: str
    uri: str
    sha256: str = ""
    stacks: tuple[str, ...] = field(default_factory=tuple)
    licenses: tuple[License, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stacks", tuple(self.stacks))
        object.__setattr__(self, "licenses", tuple(self.licenses))
        if self.sha256 and not _SHA256_RE.match(self.sha256):
            raise ValidationError(
                f"依赖 '{self.id}' 的 sha256 不是 64 位小写十六进制: {self.sha256!r}"
            )

    def __eq__(self, other: object) -> bool:
        """逐字段比较，决定缓存命中与否

        stacks 是集合语义，按集合比较；licenses 有序，按序列比较。
        """
        if not isinstance(other, Dependency):
            return NotImplemented
        return (
            self.id == other.id
            and self.name == other.name
            and self.version == other.version
            and self.uri == other.uri
            and self.sha256 == other.sha256
            and frozenset(self.stacks) == frozenset(other.stacks)
            and self.licenses == other.licenses
        )

    def __hash__(self) -> int:
        return hash((
            self.id, self.name, self.version, self.uri, self.sha256,
            frozenset(self.stacks), self.licenses,
        ))

    def supports(self, stack_id: str) -> bool:
        return stack_id in self.stacks

    def to_dict(self) -> dict[str, Any]:
        """转为侧车 TOML 结构"""
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "uri": self.uri,
            "sha256": self.sha256,
            "stacks": list(self.stacks),
            "licenses": [lic.to_dict() for lic in self.licenses],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Dependency:
        """按已知结构解析，字符串字段缺省为 ""，列表字段缺省为空

        类型不符时抛 ValidationError；未知字段忽略。
        """
        if not isinstance(data, dict):
            raise ValidationError(f"依赖描述必须是表结构: {data!r}")

        values: dict[str, str] = {}
        for key in _STR_FIELDS:
            value = data.get(key, "")
            if not isinstance(value, str):
                raise ValidationError(
                    f"依赖字段 '{key}' 必须是字符串，实际 {type(value).__name__}"
                )
            values[key] = value

        stacks = data.get("stacks", [])
        if not isinstance(stacks, list) or not all(isinstance(s, str) for s in stacks):
            raise ValidationError(f"依赖字段 'stacks' 必须是字符串列表: {stacks!r}")

        licenses = data.get("licenses", [])
        if not isinstance(licenses, list):
            raise ValidationError(f"依赖字段 'licenses' 必须是列表: {licenses!r}")

        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            logger.debug("忽略未知依赖字段: %s", ", ".join(sorted(unknown)))

        return cls(
            stacks=tuple(stacks),
            licenses=tuple(License.from_dict(lic) for lic in licenses),
            **values,
        )

    def __str__(self) -> str:
        return f"{self.id}@{self.version}"


def format_dependencies(dependencies: list[Dependency]) -> str:
    """渲染依赖列表，用于错误信息"""
    if not dependencies:
        return "[]"
    parts = [
        f"({d.id}, {d.version}, [{', '.join(d.stacks)}])"
        for d in dependencies
    ]
    return "[" + ", ".join(parts) + "]"

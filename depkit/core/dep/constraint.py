"""语义化版本约束

版本号按 SemVer 2.0.0 解析与排序（semver 库）：预发布版本低于对应正式版，
预发布标识逐段比较，数字段低于字母段；构建元数据不参与比较。
为兼容常见写法，允许前缀 v 以及省略 minor / patch（1.2 即 1.2.0）。

约束表达式语法（与 npm / Masterminds semver 一致）:

  比较:     =  !=  >  <  >=  <=  =>  =<
  波浪号:   ~1.2.3  ~1.2  ~1   (~> 同 ~)
  插入号:   ^1.2.3  ^0.2.3  ^0.0.3
  通配:     *  x  1.x  1.2.*
  连字符:   1.2 - 1.4.5
  与:       空格或逗号分隔
  或:       ||

预发布版本只有在同一“或”分支中某个比较项写了相同 major.minor.patch
的预发布版本时才会被匹配。
"""

from __future__ import annotations

import operator
import re
from typing import NamedTuple

from semver import Version

from depkit.core.exceptions import ConstraintParseError, VersionParseError

ANY = "*"

_OR_RE = re.compile(r"\s*\|\|\s*")
_HYPHEN_RE = re.compile(r"^(?P<low>[^\s,]+)\s+-\s+(?P<high>[^\s,]+)$")
_TERM_RE = re.compile(
    r"\s*(?P<op>!=|>=|<=|=>|=<|~>|>|<|=|~|\^)?\s*(?P<ver>[^\s,]+)\s*,?\s*"
)
_PARTIAL_RE = re.compile(
    r"^[vV]?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)
_WILDCARDS = frozenset("xX*")

_OPS = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


def parse_version(value: str) -> Version:
    """解析语义化版本号

    Raises:
        VersionParseError: 版本号无法解析
    """
    text = value[1:] if value[:1] in ("v", "V") else value
    try:
        return Version.parse(text, optional_minor_and_patch=True)
    except (ValueError, TypeError) as e:
        raise VersionParseError(f"无法解析版本号 '{value}': {e}") from e


def _release(version: Version) -> tuple[int, int, int]:
    return version.major, version.minor, version.patch


class _Term(NamedTuple):
    """单个比较项；op 为 "!=" 且 upper 非空时表示排除区间 [version, upper)"""

    op: str
    version: Version
    upper: Version | None = None

    def check(self, version: Version) -> bool:
        if self.upper is not None:
            return not (self.version <= version < self.upper)
        return _OPS[self.op](version, self.version)

    def __str__(self) -> str:
        if self.upper is not None:
            return f"!=[{self.version}, {self.upper})"
        return f"{self.op}{self.version}"


class _Partial:
    """约束中的（可能不完整的）版本号，如 1、1.2、1.2.x、1.2.3-rc.1"""

    def __init__(self, text: str, expr: str) -> None:
        m = _PARTIAL_RE.match(text)
        if not m:
            raise ConstraintParseError(f"无效的版本约束 '{expr}': 无法解析 '{text}'")

        self.parts: list[int] = []
        self.wild = False
        for group in ("major", "minor", "patch"):
            value = m.group(group)
            if value is None or value in _WILDCARDS:
                self.wild = True
                break
            self.parts.append(int(value))
        if self.wild and m.group("pre"):
            raise ConstraintParseError(
                f"无效的版本约束 '{expr}': 通配版本不能带预发布标识 '{text}'"
            )
        self.pre = m.group("pre")

    @property
    def version(self) -> Version:
        major, minor, patch = (self.parts + [0, 0, 0])[:3]
        return Version(major, minor, patch, prerelease=self.pre)

    def bump(self, index: int) -> Version:
        """第 index 段加一并把其后各段置零，如 (1.2.3, 1) -> 1.3.0"""
        head = self.parts[:index + 1]
        head[-1] += 1
        major, minor, patch = (head + [0, 0])[:3]
        return Version(major, minor, patch)


def _translate(op: str, p: _Partial, expr: str) -> list[_Term]:
    """把单个比较项翻译为一组需同时满足的 _Term"""
    if op in ("", "="):
        if not p.parts:
            return []
        if p.wild:
            return [_Term(">=", p.version), _Term("<", p.bump(len(p.parts) - 1))]
        return [_Term("==", p.version)]
    if op == "!=":
        if not p.parts:
            raise ConstraintParseError(f"无效的版本约束 '{expr}': != 不能用于 *")
        if p.wild:
            return [_Term("!=", p.version, p.bump(len(p.parts) - 1))]
        return [_Term("!=", p.version)]
    if op in (">=", "=>"):
        return [_Term(">=", p.version)] if p.parts else []
    if op == ">":
        if not p.parts:
            raise ConstraintParseError(f"无效的版本约束 '{expr}': > 不能用于 *")
        return [_Term(">=", p.bump(len(p.parts) - 1))] if p.wild else [_Term(">", p.version)]
    if op == "<":
        if not p.parts:
            raise ConstraintParseError(f"无效的版本约束 '{expr}': < 不能用于 *")
        return [_Term("<", p.version)]
    if op in ("<=", "=<"):
        if not p.parts:
            return []
        return [_Term("<", p.bump(len(p.parts) - 1))] if p.wild else [_Term("<=", p.version)]
    if op in ("~", "~>"):
        if not p.parts:
            return []
        return [_Term(">=", p.version), _Term("<", p.bump(min(len(p.parts) - 1, 1)))]
    if op == "^":
        if not p.parts:
            return []
        major, minor, patch = (p.parts + [None, None])[:3]
        if major > 0 or minor is None:
            upper = p.bump(0)
        elif minor > 0 or patch is None:
            upper = p.bump(1)
        else:
            upper = p.bump(2)
        return [_Term(">=", p.version), _Term("<", upper)]
    raise ConstraintParseError(f"无效的版本约束 '{expr}': 未知操作符 '{op}'")


class _Group:
    """一个“或”分支：全部比较项同时满足"""

    def __init__(self, terms: list[_Term]) -> None:
        self.terms = terms

    def check(self, version: Version) -> bool:
        if version.prerelease and not any(
            t.version.prerelease and _release(t.version) == _release(version)
            for t in self.terms
        ):
            return False
        return all(t.check(version) for t in self.terms)

    def __str__(self) -> str:
        return " ".join(str(t) for t in self.terms) or ANY


def _parse_group(group: str, expr: str) -> _Group:
    terms: list[_Term] = []
    hyphen = _HYPHEN_RE.match(group)
    if hyphen:
        terms.extend(_translate(">=", _Partial(hyphen.group("low"), expr), expr))
        terms.extend(_translate("<=", _Partial(hyphen.group("high"), expr), expr))
        return _Group(terms)

    pos = 0
    while pos < len(group):
        m = _TERM_RE.match(group, pos)
        if not m or m.end() == pos:
            raise ConstraintParseError(f"无效的版本约束 '{expr}'")
        terms.extend(_translate(m.group("op") or "", _Partial(m.group("ver"), expr), expr))
        pos = m.end()
    return _Group(terms)


class Constraint:
    """已解析的版本约束，由若干“或”分支组成"""

    def __init__(self, expr: str = "") -> None:
        self.expr = expr.strip() or ANY
        self._groups: list[_Group] = []
        for group in _OR_RE.split(self.expr):
            if not group:
                raise ConstraintParseError(f"无效的版本约束 '{expr}': 空的 || 分支")
            self._groups.append(_parse_group(group, self.expr))

    def check(self, version: Version) -> bool:
        return any(group.check(version) for group in self._groups)

    def __str__(self) -> str:
        return self.expr

    def __repr__(self) -> str:
        return f"Constraint({self.expr!r} -> {' || '.join(str(g) for g in self._groups)})"

"""依赖版本解析器

职责:
- 在依赖清单中按 id + 版本约束 + stack 过滤候选
- 按语义化版本取最大者
- 纯函数，不做任何 I/O
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from depkit.core.dep.constraint import ANY, Constraint, parse_version
from depkit.core.dep.models import Dependency, format_dependencies
from depkit.core.exceptions import DependencyError, NoValidDependencyError

logger = logging.getLogger(__name__)


class DependencyResolver:
    """依赖解析器 - 绑定一份依赖清单与当前 stack"""

    def __init__(self, dependencies: Iterable[Dependency], stack_id: str) -> None:
        self.dependencies = list(dependencies)
        self.stack_id = stack_id

    def resolve(self, id: str, constraint: str = "") -> Dependency:
        """返回满足约束的最新版本依赖

        约束为空时视为 "*"。清单中任何一条版本号无法解析都会让整个解析失败，
        而不仅是候选条目。

        Raises:
            ConstraintParseError: 约束表达式无效
            VersionParseError: 清单中存在无效版本号
            NoValidDependencyError: 没有满足条件的候选
        """
        vc = Constraint(constraint)

        candidates = []
        for dep in self.dependencies:
            version = parse_version(dep.version)
            if dep.id == id and vc.check(version) and dep.supports(self.stack_id):
                candidates.append((version, dep))

        if not candidates:
            raise NoValidDependencyError(
                f"没有满足条件的依赖: id={id}, version={vc}, stack={self.stack_id}, "
                f"清单: {format_dependencies(self.dependencies)}"
            )

        version, dep = max(candidates, key=lambda c: c[0])
        logger.debug("解析 %s@%s (stack=%s) -> %s", id, vc, self.stack_id, version)
        return dep

    def any(self, id: str, constraint: str = "") -> bool:
        """是否存在满足约束的依赖，用于探测可选依赖，等价于 resolve 成功

        约束或清单无效时同样返回 False，但会记一条警告。
        """
        try:
            self.resolve(id, constraint)
        except NoValidDependencyError:
            return False
        except DependencyError as e:
            logger.warning("探测依赖 %s 失败: %s", id, e)
            return False
        return True


def resolve(
    dependencies: Iterable[Dependency],
    id: str,
    constraint: str = ANY,
    stack_id: str = "",
) -> Dependency:
    """DependencyResolver(dependencies, stack_id).resolve 的快捷方式"""
    return DependencyResolver(dependencies, stack_id).resolve(id, constraint)


def any_match(
    dependencies: Iterable[Dependency],
    id: str,
    constraint: str = ANY,
    stack_id: str = "",
) -> bool:
    return DependencyResolver(dependencies, stack_id).any(id, constraint)

"""依赖包模块

- models.py: 数据模型（Dependency / License）
- constraint.py: 语义化版本约束
- catalog.py: 清单加载
- resolver.py: 版本解析
- cache.py: 制品缓存与下载
"""

from depkit.core.dep.cache import DependencyCache
from depkit.core.dep.catalog import Catalog, load_catalog
from depkit.core.dep.constraint import Constraint
from depkit.core.dep.models import Dependency, License, format_dependencies
from depkit.core.dep.resolver import DependencyResolver, any_match, resolve

__all__ = [
    "Catalog",
    "Constraint",
    "Dependency",
    "DependencyCache",
    "DependencyResolver",
    "License",
    "any_match",
    "format_dependencies",
    "load_catalog",
    "resolve",
]

"""depkit - 依赖解析、校验缓存与归档展开工具集"""

__version__ = "0.3.0"

from depkit.core.archive import (  # noqa: E402
    create_tar,
    create_tar_gz,
    detect_format,
    extract,
    extract_tar,
    extract_tar_gz,
    extract_tar_xz,
    extract_zip,
)
from depkit.core.config import CacheConfig, Config  # noqa: E402
from depkit.core.dep import (  # noqa: E402
    Catalog,
    Dependency,
    DependencyCache,
    DependencyResolver,
    License,
    any_match,
    load_catalog,
    resolve,
)
from depkit.core.layer import (  # noqa: E402
    DependencyLayerContributor,
    HelperLayerContributor,
    LayerContributor,
)
from depkit.core.listing import FileEntry, build_manifest  # noqa: E402

__all__ = [
    "CacheConfig",
    "Catalog",
    "Config",
    "Dependency",
    "DependencyCache",
    "DependencyLayerContributor",
    "DependencyResolver",
    "FileEntry",
    "HelperLayerContributor",
    "LayerContributor",
    "License",
    "any_match",
    "build_manifest",
    "create_tar",
    "create_tar_gz",
    "detect_format",
    "extract",
    "extract_tar",
    "extract_tar_gz",
    "extract_tar_xz",
    "extract_zip",
    "load_catalog",
    "resolve",
]

"""统一异常体系

所有业务异常继承 DepkitError。CLI 层据此输出友好提示，
调用方可按子类区分可恢复（NoValidDependencyError）与致命错误。

文件系统错误不做包装，直接以内置 OSError 子类向上传播。
"""

from __future__ import annotations


class DepkitError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(DepkitError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(DepkitError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class DependencyError(DepkitError):
    """依赖包解析或拉取失败"""

    code = "DEPENDENCY_ERROR"


class ConstraintParseError(DependencyError):
    """版本约束表达式无法解析"""

    code = "CONSTRAINT_PARSE_ERROR"


class VersionParseError(DependencyError):
    """清单中存在无法解析的版本号"""

    code = "VERSION_PARSE_ERROR"


class NoValidDependencyError(DependencyError):
    """没有满足约束的依赖包（可恢复，可选依赖用 any_match 探测）"""

    code = "NO_VALID_DEPENDENCY"


class IntegrityMismatchError(DependencyError):
    """下载内容的 sha256 与声明值不一致"""

    code = "INTEGRITY_MISMATCH"

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(
            f"sha256 校验失败 {path}: 实际 {actual}, 期望 {expected}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class DownloadError(DependencyError):
    """下载失败（网络错误或非 2xx 响应）"""

    code = "DOWNLOAD_ERROR"

    def __init__(self, uri: str, reason: str, status: int | None = None) -> None:
        super().__init__(f"下载失败: {uri} - {reason}")
        self.uri = uri
        self.status = status


class CacheMetadataError(DependencyError):
    """缓存元数据文件无法解码"""

    code = "CACHE_METADATA_ERROR"


class ArchiveFormatError(DepkitError):
    """归档文件头损坏、数据截断或格式不支持"""

    code = "ARCHIVE_FORMAT_ERROR"

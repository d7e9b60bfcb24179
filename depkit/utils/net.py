"""网络工具 — URL 协议校验与下载流打开"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from typing import BinaryIO
from urllib.parse import urlparse
from urllib.request import url2pathname

from depkit.core.exceptions import DownloadError, ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https", "file"))


def validate_url_scheme(url: str, *, context: str = "") -> str:
    """校验 URL 仅使用 http/https/file，返回小写 scheme

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    scheme = urlparse(url).scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{scheme}'{label}，"
            f"仅支持 http/https/file: {url}"
        )
    return scheme


def local_path(url: str) -> str:
    """file:// URL 转本地路径"""
    return url2pathname(urlparse(url).path)


def open_url(
    url: str,
    *,
    user_agent: str = "",
    proxies: dict[str, str] | None = None,
) -> BinaryIO:
    """以 GET 打开 URL，返回可读的二进制流，调用方负责关闭

    参数:
        url: http/https/file URL
        user_agent: 非空时设置 User-Agent 请求头
        proxies: 显式代理映射 {scheme: proxy_url}；None 时按环境变量发现代理

    file:// 直接读本地文件，不经过 urllib。

    Raises:
        ValidationError: 不支持的 URL 协议
        DownloadError: 网络错误或非 2xx 响应
    """
    scheme = validate_url_scheme(url, context="download")
    if scheme == "file":
        path = local_path(url)
        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise DownloadError(url, f"本地文件不存在: {path}") from e

    headers = {"User-Agent": user_agent} if user_agent else {}
    request = urllib.request.Request(url, headers=headers, method="GET")
    opener = urllib.request.build_opener(urllib.request.ProxyHandler(proxies))
    try:
        resp = opener.open(request)  # nosec B310: scheme 已校验
    except urllib.error.HTTPError as e:
        e.close()
        raise DownloadError(url, f"HTTP {e.code}", status=e.code) from e
    except (urllib.error.URLError, OSError) as e:
        raise DownloadError(url, str(e)) from e

    status = resp.status
    if status < 200 or status > 299:
        resp.close()
        raise DownloadError(url, f"HTTP {status}", status=status)
    logger.debug("已连接: %s (HTTP %s)", url, status)
    return resp

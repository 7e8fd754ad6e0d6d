"""下载 URL 处理"""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit

from devenv.core.exceptions import ValidationError

DOWNLOAD_SCHEMES = ("http", "https")


def check_download_url(url: str, *, context: str = "") -> SplitResult:
    """只接受 http/https 下载地址，返回拆分后的 URL

    file:// 之类的协议会让清单读取本机任意文件，一律拒绝。

    Raises:
        ValidationError: 地址无法解析，或协议不在 DOWNLOAD_SCHEMES 中
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise ValidationError(f"无效的下载地址: {url} - {e}") from e
    if parts.scheme.lower() not in DOWNLOAD_SCHEMES:
        where = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parts.scheme}'{where}，仅支持 http/https: {url}",
        )
    return parts


def url_filename(url: str, default: str) -> str:
    """URL 路径的最后一段（忽略查询串与结尾的 /），为空时返回 default"""
    try:
        path = urlsplit(url).path
    except ValueError:
        return default
    return path.rstrip("/").rpartition("/")[2] or default

"""依赖来源拉取器

职责:
- 按来源类型分派拉取（目前仅 url 可执行）
- 流式下载到同目录隐藏临时文件，边下载边计算 sha256
- 校验和通过后原子 rename 到目标路径；任何失败都删除临时文件
- 超时与取消: 单次读写有 socket 超时，整体有截止时间，
  每个数据块之间检查取消令牌
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import os
import tempfile
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import BinaryIO, Callable

from devenv.core.dep.models import DependencySource, SourceKind, UrlSource
from devenv.core.exceptions import (
    ChecksumMismatchError,
    FetchCancelledError,
    SourceFetchError,
    UnsupportedSourceKindError,
)
from devenv.utils.cancellation import CancellationToken
from devenv.utils.net import check_download_url, url_filename

logger = logging.getLogger(__name__)

# 处理器: (来源类型, 目标目录) -> 落地文件路径
FetchHandler = Callable[[SourceKind, Path], Path]


def file_sha256(path: Path, chunk_size: int = 64 * 1024) -> str:
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def _same_digest(expected: str, actual: str) -> bool:
    return expected.strip().lower() == actual.lower()


class SourceFetcher:
    """按来源类型分派的拉取器

    fetch() 的契约与来源类型无关，新类型通过 register() 接入，
    编排器无需修改。
    """

    def __init__(
        self,
        *,
        socket_timeout: float = 30.0,
        fetch_timeout: float = 300.0,
        chunk_size: int = 64 * 1024,
        token: CancellationToken | None = None,
    ) -> None:
        self.socket_timeout = socket_timeout
        self.fetch_timeout = fetch_timeout
        self.chunk_size = chunk_size
        self.token = token or CancellationToken()
        self._handlers: dict[type, FetchHandler] = {
            UrlSource: self._fetch_url,  # type: ignore[dict-item]
        }

    def register(self, kind_type: type, handler: FetchHandler) -> None:
        self._handlers[kind_type] = handler

    def fetch(self, source: DependencySource, destination_dir: Path) -> Path:
        """拉取单个来源到 destination_dir，返回落地文件路径

        Raises:
            UnsupportedSourceKindError: 来源类型没有可用的处理器
            SourceFetchError: 网络错误、超时、校验和不匹配、被取消
        """
        handler = self._handlers.get(type(source.kind))
        if handler is None:
            raise UnsupportedSourceKindError(
                f"不支持拉取的来源类型 '{source.kind.kind}': {source.describe()}"
            )
        return handler(source.kind, destination_dir)

    def _fetch_url(self, kind: UrlSource, destination_dir: Path) -> Path:
        dest = destination_dir / url_filename(kind.url, default=destination_dir.name)
        return self.download(kind.url, dest, sha=kind.sha)

    # ------------------------------------------------------------------
    # URL 下载
    # ------------------------------------------------------------------

    def download(self, url: str, dest: Path, sha: str = "") -> Path:
        """下载 url 到 dest；提供 sha 时校验通过才落地"""
        check_download_url(url, context=f"download {dest.name}")

        if dest.is_file() and (not sha or _same_digest(sha, file_sha256(dest, self.chunk_size))):
            logger.info("  缓存命中: %s", dest)
            return dest

        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(dest.parent), prefix=f".{dest.name}.", suffix=".part",
        )
        tmp = Path(tmp_name)
        promoted = False
        try:
            logger.info("  下载: %s", url)
            with os.fdopen(fd, "wb") as out:
                actual = self._stream(url, out)
            if sha and not _same_digest(sha, actual):
                raise ChecksumMismatchError(url, sha, actual)
            os.replace(tmp, dest)
            promoted = True
        finally:
            if not promoted:
                tmp.unlink(missing_ok=True)

        if sha:
            logger.info("  校验和通过: %s", dest.name)
        logger.info("  已保存: %s", dest)
        return dest

    def _stream(self, url: str, out: BinaryIO) -> str:
        """分块写入 out，返回内容的 sha256"""
        sha256 = hashlib.sha256()
        deadline = time.monotonic() + self.fetch_timeout
        try:
            with urllib.request.urlopen(url, timeout=self.socket_timeout) as resp:  # nosec B310
                while True:
                    if self.token.is_cancelled():
                        raise FetchCancelledError(f"下载已取消: {url}")
                    if time.monotonic() > deadline:
                        raise SourceFetchError(
                            f"下载超时（{self.fetch_timeout:.0f}秒）: {url}"
                        )
                    chunk = resp.read(self.chunk_size)
                    if not chunk:
                        break
                    out.write(chunk)
                    sha256.update(chunk)
        except (urllib.error.URLError, http.client.HTTPException, ValueError, OSError) as e:
            # http.client.InvalidURL 与畸形地址的 ValueError 在发出请求前抛出
            raise SourceFetchError(f"下载失败: {url} - {e}") from e
        return sha256.hexdigest()

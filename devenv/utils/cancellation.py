"""协作式取消令牌

下载循环在每个数据块之间检查令牌，被取消时自行清理临时文件后退出，
不依赖线程中断。
"""

from __future__ import annotations

import threading


class CancellationToken:
    """线程安全的取消标志"""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

"""构建取消令牌

同一次顶层构建内的所有阶段共享一个令牌，在每个挂起点前检查。
"""

from __future__ import annotations

import logging
import threading

from lucy.core.exceptions import BuildCancelledError

logger = logging.getLogger(__name__)


class CancelToken:
    """线程安全的一次性取消标记"""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()
            logger.warning("构建已请求取消: %s", reason or "-")

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            where = f" ({stage})" if stage else ""
            raise BuildCancelledError(f"构建已取消{where}: {self.reason or '-'}")

"""临时工作目录管理

职责:
- 为每次构建（含每个嵌套依赖构建）分配独立的工作目录
- 构建结束后（成功或失败）深度优先删除整个目录树

目录布局:
    <work_root>/build-xxxxxx/                     顶层构建
    <work_root>/build-xxxxxx/.lucy-deps/000-foo/  第 0 个依赖
    .../000-foo/.lucy-deps/000-bar/               依赖的依赖
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path

from lucy.core.exceptions import BuildIOError

logger = logging.getLogger(__name__)

DEP_NAMESPACE = ".lucy-deps"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_.\-]+")


def dependency_slot(index: int, name: str) -> str:
    """依赖在父目录命名空间下的确定性子目录名"""
    safe = _UNSAFE_CHARS_RE.sub("_", name).strip("._") or "dep"
    return f"{index:03d}-{safe[:64]}"


class WorkingTreeManager:
    """工作目录分配器"""

    def __init__(self, work_root: str = "") -> None:
        if not work_root:
            from lucy.core.config import get_config
            work_root = get_config().work_root
        self.work_root = Path(work_root)
        self._live: set[Path] = set()
        self._lock = threading.Lock()

    def allocate(self, parent: Path | None = None, slot: str = "") -> Path:
        """分配工作目录

        parent 为空时在 work_root 下创建唯一的临时目录；
        否则在 parent 的依赖命名空间下创建 slot 子目录。
        """
        try:
            if parent is None:
                self.work_root.mkdir(parents=True, exist_ok=True)
                path = Path(tempfile.mkdtemp(prefix="build-", dir=str(self.work_root)))
            else:
                if not slot:
                    raise BuildIOError(f"嵌套工作目录缺少 slot: parent={parent}")
                path = parent / DEP_NAMESPACE / slot
                path.mkdir(parents=True)
        except FileExistsError as e:
            raise BuildIOError(f"工作目录已存在: {e.filename}") from e
        except OSError as e:
            raise BuildIOError(f"创建工作目录失败: {e}") from e

        path = path.resolve()
        with self._lock:
            self._live.add(path)
        logger.debug("分配工作目录: %s", path)
        return path

    def release(self, path: Path) -> None:
        """删除工作目录及其全部内容（每个已分配路径只调用一次）"""
        path = Path(path).resolve()
        with self._lock:
            owned = path in self._live
            self._live.discard(path)
        if not owned:
            logger.warning("释放未登记的工作目录: %s", path)
        logger.info("rmdir: %s", path)
        try:
            _remove_tree(path)
        except OSError as e:
            raise BuildIOError(f"删除工作目录失败 {path}: {e}") from e

    def live(self) -> list[Path]:
        """当前尚未释放的工作目录"""
        with self._lock:
            return sorted(self._live)


def _remove_tree(path: Path) -> None:
    """深度优先删除: 先递归子目录，文件和符号链接直接 unlink，最后删除自身"""
    with os.scandir(path) as it:
        entries = list(it)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            _remove_tree(Path(entry.path))
        else:
            os.unlink(entry.path)
    os.rmdir(path)

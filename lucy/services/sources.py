"""源码来源适配器 - Git 克隆 / 归档解压

职责:
- 判定来源说明符走 Git 克隆还是注册中心
- Git 仓库 clone 到指定工作目录
- tar.gz 归档原地解压
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from lucy.core.exceptions import ExecutionError, ExtractionError, NetworkError
from lucy.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)

REPO_MARKER = ".git"


def is_repo_source(source: str) -> bool:
    """以 .git 结尾的说明符视为 Git 仓库地址，其余均为注册中心包名"""
    return source.endswith(REPO_MARKER)


class GitSource:
    """Git 仓库来源"""

    def __init__(self, executor: CommandExecutor | None = None, timeout: int | None = None) -> None:
        self._executor = executor
        self.timeout = timeout

    @property
    def executor(self) -> CommandExecutor:
        return self._executor or get_executor()

    def clone(self, url: str, workspace: Path) -> Path:
        """完整 clone 到 workspace（目录须为空）"""
        logger.info("Git 克隆: %s -> %s", url, workspace)
        try:
            r = self.executor.execute(
                ["git", "clone", "--quiet", url, str(workspace)],
                timeout=self.timeout,
            )
        except ExecutionError as e:
            raise NetworkError(f"git clone 失败 {url}: {e}") from e
        if not r.success:
            raise NetworkError(
                f"git clone 失败 (rc={r.returncode}) {url}: {r.stderr[:300]}"
            )
        return workspace


class ArchiveSource:
    """tar.gz 归档来源"""

    def extract(self, archive: Path, workspace: Path) -> Path:
        """将归档解压到 workspace，拒绝越界路径与特殊文件"""
        try:
            with tarfile.open(archive) as tf:
                tf.extractall(path=str(workspace), filter="data")  # noqa: S202
        except (OSError, tarfile.TarError) as e:
            logger.error("归档解压失败 %s: %s", archive, e)
            raise ExtractionError(f"归档解压失败 {archive.name}: {e}") from e
        logger.info("归档已解压: %s -> %s", archive.name, workspace)
        return workspace

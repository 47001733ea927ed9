"""包源码获取器

职责:
- 按来源说明符分派: *.git → Git 克隆；其余 → 注册中心归档
- 为每次获取分配独立工作目录，解析 package.json
- 获取失败时删除已创建的工作目录后再抛出异常
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from lucy.core.exceptions import BuildIOError
from lucy.core.models import PackageDefinition
from lucy.services.sources import ArchiveSource, GitSource, is_repo_source
from lucy.utils.logger import build_fields

if TYPE_CHECKING:
    from lucy.core.cancel import CancelToken
    from lucy.core.credentials import CredentialCache
    from lucy.core.worktree import WorkingTreeManager
    from lucy.services.registry import RegistryClient

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "package.tgz"


class PackageFetcher:
    """源码获取器 - 克隆或下载后解压到工作目录"""

    def __init__(
        self,
        trees: WorkingTreeManager,
        credentials: CredentialCache,
        registry: RegistryClient,
        git_source: GitSource | None = None,
        archive_source: ArchiveSource | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self.trees = trees
        self.credentials = credentials
        self.registry = registry
        self.git_source = git_source or GitSource()
        self.archive_source = archive_source or ArchiveSource()
        self.cancel = cancel

    def fetch(
        self, source: str, *, parent: Path | None = None, slot: str = "",
    ) -> tuple[Path, PackageDefinition]:
        """获取源码到新工作目录，返回 (工作目录, 包定义)

        调用方负责在构建结束后释放返回的工作目录；
        本方法内部失败时已自行释放，调用方无需处理。
        """
        if self.cancel is not None:
            self.cancel.raise_if_cancelled(f"fetch {source}")

        work_dir = self.trees.allocate(parent=parent, slot=slot)
        try:
            if is_repo_source(source):
                self.git_source.clone(source, work_dir)
            else:
                self._fetch_from_registry(source, work_dir)
            definition = PackageDefinition.load(work_dir)
        except Exception as e:
            logger.error(
                "获取失败，清理工作目录: %s", work_dir, extra=build_fields(source, "fetch", e),
            )
            try:
                self.trees.release(work_dir)
            except BuildIOError:
                logger.exception("删除工作目录失败: %s", work_dir)
            raise

        logger.info(
            "包定义已解析: %s (依赖 %d, 文件 %d, 脚本 %d)",
            definition.name or source, len(definition.dependencies),
            len(definition.files), len(definition.scripts),
            extra=build_fields(source, "fetch"),
        )
        return work_dir, definition

    def _fetch_from_registry(self, name: str, work_dir: Path) -> None:
        # 含冒号的说明符同样原样作为包名
        creds = self.credentials.credentials()
        archive = work_dir / ARCHIVE_NAME
        self.registry.fetch_archive(creds, name, archive)
        self.archive_source.extract(archive, work_dir)
        archive.unlink(missing_ok=True)

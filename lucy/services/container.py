"""服务容器 - 统一依赖注入

同一容器内的实例共享状态: 凭据缓存在整个进程内只获取一次，
所有构建共用同一个工作目录分配器和注册中心客户端。

依赖关系图（→ 表示依赖）:
  fetcher   → trees, credentials, registry
  builder   → fetcher (+ 每次构建新建的 transformer / scripts)
  publisher → registry, credentials

用法:
    container = ServiceContainer(config=Config.from_file("configs/default.yml"))
    builder = container.builder(dest_dir=Path.cwd())
    builder.build("my-package", {"name": "World"})
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from lucy.core.builder import PackageBuilder
    from lucy.core.cancel import CancelToken
    from lucy.core.config import Config
    from lucy.core.credentials import CredentialCache, Credentials
    from lucy.core.fetcher import PackageFetcher
    from lucy.core.worktree import WorkingTreeManager
    from lucy.services.publisher import Publisher
    from lucy.services.registry import RegistryClient
    from lucy.services.sources import GitSource

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self,
        config: Config | None = None,
        acquire: Callable[[], Credentials] | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from lucy.core.config import get_config
            config = get_config()
        self._config = config
        self._acquire = acquire

    @property
    def config(self) -> Config:
        return self._config

    @property
    def credentials(self) -> CredentialCache:
        if "credentials" not in self._instances:
            from lucy.core.credentials import CredentialCache
            self._instances["credentials"] = CredentialCache(self._acquire)
        return self._instances["credentials"]  # type: ignore[return-value]

    @property
    def registry(self) -> RegistryClient:
        if "registry" not in self._instances:
            from lucy.services.registry import RegistryClient
            self._instances["registry"] = RegistryClient(
                base_url=self._config.registry_url,
                protocol_version=self._config.protocol_version,
                timeout=self._config.network_timeout,
            )
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def trees(self) -> WorkingTreeManager:
        if "trees" not in self._instances:
            from lucy.core.worktree import WorkingTreeManager
            self._instances["trees"] = WorkingTreeManager(self._config.work_root)
        return self._instances["trees"]  # type: ignore[return-value]

    @property
    def git(self) -> GitSource:
        if "git" not in self._instances:
            from lucy.services.sources import GitSource
            self._instances["git"] = GitSource(timeout=self._config.command_timeout)
        return self._instances["git"]  # type: ignore[return-value]

    @property
    def publisher(self) -> Publisher:
        if "publisher" not in self._instances:
            from lucy.services.publisher import Publisher
            self._instances["publisher"] = Publisher(self.registry, self.credentials)
        return self._instances["publisher"]  # type: ignore[return-value]

    def fetcher(self, cancel: CancelToken | None = None) -> PackageFetcher:
        from lucy.core.fetcher import PackageFetcher
        return PackageFetcher(
            trees=self.trees,
            credentials=self.credentials,
            registry=self.registry,
            git_source=self.git,
            cancel=cancel,
        )

    def builder(self, dest_dir: Path, cancel: CancelToken | None = None) -> PackageBuilder:
        """为一次顶层构建组装编排器（共享凭据 / 工作目录分配器）"""
        from lucy.core.builder import PackageBuilder
        from lucy.core.scripts import ScriptRunner
        from lucy.core.transform import FileTransformPipeline
        return PackageBuilder(
            fetcher=self.fetcher(cancel),
            transformer=FileTransformPipeline(
                max_workers=self._config.max_workers, cancel=cancel,
            ),
            scripts=ScriptRunner(cancel=cancel),
            dest_dir=dest_dir,
            cancel=cancel,
        )


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None

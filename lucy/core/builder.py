"""包构建编排器

单次构建流程（顶层和每个依赖都走同一流程）:
    获取源码 → 递归构建依赖 → 处理文件 → 执行脚本 → 删除工作目录

依赖按声明顺序严格串行、深度优先: 前一个依赖的完整流程（含删除其工作目录）
结束后才开始获取下一个依赖。每个依赖的工作目录作为参数显式传递，
不修改任何共享的「当前目录」状态。
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from lucy.core.exceptions import BuildIOError
from lucy.core.models import BuildReport
from lucy.core.worktree import dependency_slot
from lucy.utils.logger import build_fields

if TYPE_CHECKING:
    from lucy.core.cancel import CancelToken
    from lucy.core.fetcher import PackageFetcher
    from lucy.core.models import PackageDefinition
    from lucy.core.scripts import ScriptRunner
    from lucy.core.transform import FileTransformPipeline

logger = logging.getLogger(__name__)


class PackageBuilder:
    """包构建编排器"""

    def __init__(
        self,
        fetcher: PackageFetcher,
        transformer: FileTransformPipeline,
        scripts: ScriptRunner,
        dest_dir: Path,
        cancel: CancelToken | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.transformer = transformer
        self.scripts = scripts
        self.dest_dir = Path(dest_dir)
        self.cancel = cancel

    def build(
        self,
        source: str,
        config: Mapping[str, Any],
        *,
        parent: Path | None = None,
        slot: str = "",
    ) -> BuildReport:
        """构建一个包（含其全部依赖），无论成功失败都删除其工作目录"""
        logger.info("构建: %s", source, extra=build_fields(source, "fetch"))
        start = time.monotonic()
        work_dir, definition = self.fetcher.fetch(source, parent=parent, slot=slot)
        report = BuildReport(source=source, name=definition.name)
        failed = True
        stage = "dependencies"
        try:
            report.dependencies = self.build_dependencies(definition, work_dir)
            stage = "files"
            self._checkpoint(f"files {source}")
            report.files = self.transformer.apply(
                definition.files, work_dir, self.dest_dir, config,
            )
            stage = "scripts"
            report.scripts_run = self.scripts.run(
                definition.scripts, work_dir, self.dest_dir, config,
            )
            failed = False
        except Exception as e:
            logger.error("构建失败: %s", source, extra=build_fields(source, stage, e))
            raise
        finally:
            try:
                self.fetcher.trees.release(work_dir)
            except BuildIOError:
                if not failed:
                    raise
                # 保留原始构建错误
                logger.exception(
                    "删除工作目录失败: %s", work_dir, extra=build_fields(source, "release"),
                )

        report.duration = time.monotonic() - start
        logger.info(
            "构建完成: %s (文件 %d, 脚本 %d, %.1fs)",
            source, len(report.files), report.scripts_run, report.duration,
            extra=build_fields(source, "done"),
        )
        return report

    def build_dependencies(
        self, definition: PackageDefinition, work_dir: Path,
    ) -> list[BuildReport]:
        """按声明顺序逐个构建依赖，每个依赖使用自己的配置"""
        deps = definition.dependencies
        if not deps:
            return []

        reports: list[BuildReport] = []
        for index, (name, dep_config) in enumerate(deps.items()):
            self._checkpoint(f"dependency {name}")
            logger.info(
                "构建依赖 [%d/%d]: %s", index + 1, len(deps), name,
                extra=build_fields(name, "dependencies"),
            )
            reports.append(self.build(
                name, _as_config(dep_config),
                parent=work_dir, slot=dependency_slot(index, name),
            ))
        logger.info("依赖构建完成: %d 个", len(reports))
        return reports

    def _checkpoint(self, stage: str) -> None:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled(stage)


def _as_config(value: Any) -> Mapping[str, Any]:
    """依赖配置是不透明值；非对象值包装为 {"value": ...} 以便用作模板上下文"""
    if isinstance(value, Mapping):
        return value
    return {"value": value}

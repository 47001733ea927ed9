"""构建后脚本执行器

脚本是包内的 Python 文件（路径相对工作目录，不得超出工作目录），须提供:

    def run(context, config):
        ...

context 为 ScriptContext(src_dir, dest_dir)，config 为构建配置原文。
函数正常返回表示完成，抛出异常表示失败；脚本严格按声明顺序逐个执行，
任一失败即中止后续脚本，已执行脚本的效果不撤销。
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from lucy.core.exceptions import ScriptError
from lucy.core.models import ScriptContext, resolve_within

if TYPE_CHECKING:
    from lucy.core.cancel import CancelToken

logger = logging.getLogger(__name__)

ENTRY_POINT = "run"


class ScriptRunner:
    """构建后脚本顺序执行器"""

    def __init__(self, cancel: CancelToken | None = None) -> None:
        self.cancel = cancel

    def run(
        self,
        scripts: Sequence[str],
        work_dir: Path,
        dest_dir: Path,
        config: Mapping[str, Any],
    ) -> int:
        """按顺序执行全部脚本，返回已执行数量"""
        if not scripts:
            return 0

        context = ScriptContext(src_dir=work_dir, dest_dir=dest_dir)
        for index, script in enumerate(scripts):
            if self.cancel is not None:
                self.cancel.raise_if_cancelled(f"script {script}")
            logger.info("执行脚本 [%d/%d]: %s", index + 1, len(scripts), script)
            path = resolve_within(work_dir, script, "script")
            entry = getattr(self._load(path, index), ENTRY_POINT, None)
            if not callable(entry):
                raise ScriptError(f"脚本 {script} 未定义 {ENTRY_POINT}(context, config)")
            try:
                entry(context, config)
            except Exception as e:
                logger.exception("脚本执行失败: %s", script)
                raise ScriptError(f"脚本执行失败 {script}: {e}") from e
        logger.info("已执行 %d 个脚本", len(scripts))
        return len(scripts)

    @staticmethod
    def _load(path: Path, index: int) -> ModuleType:
        """按文件路径加载脚本模块（不注册到 sys.modules）"""
        if not path.is_file():
            raise ScriptError(f"脚本不存在: {path}")
        spec = importlib.util.spec_from_file_location(f"lucy_script_{index}_{path.stem}", path)
        if spec is None or spec.loader is None:
            raise ScriptError(f"无法加载脚本: {path}")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise ScriptError(f"加载脚本失败 {path.name}: {e}") from e
        return module
